"""
Shutdown handler objects.

A ShutdownHandler is one deferred callback. Creating it registers it with a
HandlerRegistry (the process-wide default unless one is given); from then on
it runs when the process exits, unless it is run early, unregistered, or
suppressed by another handler sharing its key.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from .callback import CallbackTarget, callable_name, validate_callback

if TYPE_CHECKING:
    from .registry import HandlerRegistry


class ShutdownHandler:
    """
    A callback deferred until process exit.

    Handlers sharing a key are deduplicated: only the last one of the group
    to be removed from the registry actually runs its callback.

    Usage:
        handler = ShutdownHandler(shutil.rmtree, (workdir,))
        ...
        handler.run()           # clean up now instead of at exit
        handler.unregister()    # or cancel

        # Only one flush at exit no matter how many writers registered it
        ShutdownHandler(flush_cache, key="cache-flush")
    """

    def __init__(
        self,
        callback: CallbackTarget,
        args: Sequence[Any] = (),
        key: str | None = None,
        *,
        kwargs: Mapping[str, Any] | None = None,
        registry: HandlerRegistry | None = None,
    ) -> None:
        """
        Validate the callback and register the handler.

        Args:
            callback: Callable, or "module:attr" import string resolved now
            args: Positional arguments for the callback
            key: Optional dedup key
            kwargs: Keyword arguments for the callback
            registry: Owning registry (defaults to the process-wide one)

        Raises:
            InvalidCallbackError: If the callback cannot be called with the
                given arguments
        """
        if registry is None:
            from .registry import HandlerRegistry

            registry = HandlerRegistry.get_instance()

        self._args = tuple(args)
        self._kwargs = dict(kwargs or {})
        self._callback = validate_callback(callback, self._args, self._kwargs)
        self._registry = registry
        self._key: str | None = None
        self._handler_id = ""

        registry._add(self, key)

    @property
    def handler_id(self) -> str:
        """Opaque id, unique within the owning registry."""
        return self._handler_id

    @property
    def callback(self) -> Callable[..., Any]:
        return self._callback

    @property
    def args(self) -> tuple[Any, ...]:
        return self._args

    @property
    def kwargs(self) -> dict[str, Any]:
        return dict(self._kwargs)

    @property
    def key(self) -> str | None:
        """Dedup key, or None. Change it with reregister()."""
        return self._key

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def name(self) -> str:
        """Readable callback name, for logs."""
        return callable_name(self._callback)

    def run(self) -> bool:
        """
        Unregister the handler and invoke its callback.

        The callback is skipped if other handlers with the same key are
        still registered.

        Returns:
            bool: False if the handler was no longer registered
        """
        return self._registry.run(self)

    def unregister(self) -> bool:
        """
        Unregister the handler without invoking it.

        Returns:
            bool: False if the handler was already unregistered
        """
        return self._registry.unregister(self)

    def reregister(self, key: str | None = None) -> None:
        """
        Register the handler again, under a new key.

        Re-keys a registered handler in place, or revives an unregistered one.
        """
        self._registry.reregister(self, key)

    def is_registered(self) -> bool:
        return self._registry.is_registered(self)

    def __repr__(self) -> str:
        state = "registered" if self.is_registered() else "unregistered"
        return (
            f"<ShutdownHandler {self._handler_id} {self.name} "
            f"key={self._key!r} {state}>"
        )
