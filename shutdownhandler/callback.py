"""
Callback resolution and validation.

Deferred callbacks run while the interpreter is shutting down, when imports
may fail and errors are hard to report. Everything that can be checked about a
callback is therefore checked when it is registered: import strings are
resolved, the target must be callable, and the registered arguments must bind
to its signature.
"""

import functools
import importlib
import inspect
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from .exceptions import InvalidCallbackError

CallbackTarget = Callable[..., Any] | str


def callable_name(target: Any) -> str:
    """
    Get a readable name for a callback target, for errors and logs.

    Args:
        target: Callable, import string, or any other object

    Returns:
        str: e.g. "os.remove", "Session.close", "Flusher instance"
    """
    if isinstance(target, str):
        return target
    if isinstance(target, functools.partial):
        return f"functools.partial({callable_name(target.func)})"
    if inspect.ismethod(target):
        owner = target.__self__
        owner_cls = owner if inspect.isclass(owner) else type(owner)
        return f"{owner_cls.__qualname__}.{target.__func__.__name__}"
    qualname = getattr(target, "__qualname__", None)
    if qualname is not None:
        module = getattr(target, "__module__", None)
        if module and module != "builtins":
            return f"{module}.{qualname}"
        return qualname
    return f"{type(target).__qualname__} instance"


def resolve_callback(target: Any) -> Callable[..., Any]:
    """
    Resolve a callback target to a callable.

    Strings use the "package.module:attr.path" form and are imported
    immediately.

    Args:
        target: Callable or import string

    Returns:
        The resolved callable

    Raises:
        InvalidCallbackError: If the target cannot be resolved to a callable
    """
    name = callable_name(target)
    if isinstance(target, str):
        target = _import_target(target)
    if not callable(target):
        raise InvalidCallbackError(name)
    return target


def _import_target(spec: str) -> Any:
    """Import "module:attr.path" and return the named attribute."""
    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        raise InvalidCallbackError(spec, "expected 'module:attribute'")

    # Module bodies and attribute lookups may raise anything
    try:
        obj = importlib.import_module(module_name)
    except Exception as e:
        raise InvalidCallbackError(spec, f"cannot import '{module_name}'") from e

    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            raise InvalidCallbackError(spec, f"no attribute '{attr}'") from e
        except Exception as e:
            raise InvalidCallbackError(spec, f"cannot resolve '{attr}'") from e
    return obj


def _check_arguments(
    callback: Callable[..., Any], args: Sequence[Any], kwargs: Mapping[str, Any]
) -> None:
    """Check that args and kwargs bind to the callback's signature."""
    try:
        sig = inspect.signature(callback)
    except (TypeError, ValueError):
        # Some builtins expose no signature
        return

    try:
        sig.bind(*args, **kwargs)
    except TypeError as e:
        raise InvalidCallbackError(callable_name(callback), str(e)) from e


def validate_callback(
    target: CallbackTarget,
    args: Sequence[Any] = (),
    kwargs: Mapping[str, Any] | None = None,
) -> Callable[..., Any]:
    """
    Resolve and validate a callback together with its arguments.

    Args:
        target: Callable or "module:attr" import string
        args: Positional arguments the callback will receive
        kwargs: Keyword arguments the callback will receive

    Returns:
        The resolved callable

    Raises:
        InvalidCallbackError: If the target is not callable, cannot be
            imported, or does not accept the given arguments
    """
    callback = resolve_callback(target)
    _check_arguments(callback, args, kwargs or {})
    return callback
