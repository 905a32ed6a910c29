"""
Shutdown handlers that can be inspected, cancelled, re-keyed and run early.

Python's atexit registry only grows: a callback registered there cannot be
looked up, run ahead of time, or deduplicated against others. This package
installs one atexit hook and keeps its own ordered registry of handlers
behind it.

Example:
    from shutdownhandler import ShutdownHandler

    lock = ShutdownHandler(release_lock, (lock_path,), key="lock")
    ...
    lock.run()  # release now; nothing is left to do at exit
"""

from collections.abc import Callable
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from .callback import callable_name, resolve_callback, validate_callback
from .config import RegistryConfig
from .exceptions import ConfigError, InvalidCallbackError, ShutdownHandlerError
from .handler import ShutdownHandler
from .hooks import AtexitHook, SignalHook, TerminationHook
from .registry import HandlerRegistry

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("shutdownhandler")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"


def get_registry() -> HandlerRegistry:
    """Get the process-wide handler registry."""
    return HandlerRegistry.get_instance()


def run_all() -> None:
    """Run every handler registered with the process-wide registry."""
    get_registry().run_all()


def unregister_all() -> None:
    """Unregister every handler of the process-wide registry."""
    get_registry().unregister_all()


def get_handlers() -> list[ShutdownHandler]:
    """Registered handlers of the process-wide registry, in order."""
    return get_registry().get_handlers()


def on_shutdown(
    *args: Any, key: str | None = None, **kwargs: Any
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator registering a function with the process-wide registry."""
    return get_registry().on_shutdown(*args, key=key, **kwargs)


# Explicit public API
__all__ = [
    # Version
    "__version__",
    # Core classes
    "ShutdownHandler",
    "HandlerRegistry",
    "RegistryConfig",
    # Hooks
    "TerminationHook",
    "AtexitHook",
    "SignalHook",
    # Process-wide registry
    "get_registry",
    "run_all",
    "unregister_all",
    "get_handlers",
    "on_shutdown",
    # Callback utilities
    "callable_name",
    "resolve_callback",
    "validate_callback",
    # Exceptions
    "ShutdownHandlerError",
    "InvalidCallbackError",
    "ConfigError",
]
