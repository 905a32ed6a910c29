"""
Registry of shutdown handlers.

The registry owns every live ShutdownHandler and the single termination hook
that runs them. Unlike atexit, it can be inspected, and its entries can be
run early, cancelled or re-keyed at any time before the process exits.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from typing import Any, Optional

from .callback import CallbackTarget
from .config import ON_ERROR_ABORT, RegistryConfig
from .handler import ShutdownHandler
from .hooks import AtexitHook, SignalHook, TerminationHook

logger = logging.getLogger(__name__)


def _handler_extra(handler: ShutdownHandler) -> dict[str, Any]:
    return {
        "handler_id": handler.handler_id,
        "key": handler.key,
        "callback": handler.name,
    }


class HandlerRegistry:
    """
    Ordered registry of shutdown handlers with per-key reference counts.

    Handlers are kept in registration order, which is also the order in which
    run_all() runs them. For each dedup key the registry counts how many
    registered handlers carry it; run() only invokes a keyed callback once
    that count has dropped to zero.

    The termination hook is installed when the first handler is created.
    All state changes happen under one reentrant lock. Callbacks are invoked
    outside of it, so they may create, run or unregister handlers themselves.

    Example:
        registry = HandlerRegistry.get_instance()
        handler = registry.create(os.remove, ("/tmp/app.pid",))

        @registry.on_shutdown(key="metrics")
        def flush_metrics():
            ...
    """

    _instance: Optional["HandlerRegistry"] = None
    _lock_class = threading.Lock()  # Class-level lock for singleton

    def __init__(
        self,
        config: RegistryConfig | None = None,
        hook: TerminationHook | None = None,
        signal_hook: TerminationHook | None = None,
    ) -> None:
        """
        Initialize an empty registry.

        Args:
            config: Registry configuration (defaults apply if None)
            hook: Termination hook bound to run_all(), AtexitHook if None
            signal_hook: Optional hook turning signals into an orderly exit.
                Built from config.signals if None.
        """
        self.config = config or RegistryConfig()
        self._hook: TerminationHook = hook if hook is not None else AtexitHook()
        if signal_hook is None and self.config.signals:
            signal_hook = SignalHook(self.config.signal_numbers)
        self._signal_hook = signal_hook

        self._handlers: dict[str, ShutdownHandler] = {}
        self._keys: dict[str, int] = {}
        self._counter = 0
        self._hook_installed = False
        self._lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> "HandlerRegistry":
        """
        Get the process-wide registry.

        Created on first use with an AtexitHook and configuration read from
        SHUTDOWN_HANDLER_* environment variables.

        Returns:
            The default HandlerRegistry
        """
        if cls._instance is None:
            with cls._lock_class:
                if cls._instance is None:
                    cls._instance = cls(config=RegistryConfig.from_env())
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """
        Drop the process-wide registry (for testing only).

        Its termination hooks are uninstalled, so handlers left in it will not
        run at exit.
        """
        with cls._lock_class:
            if cls._instance is not None:
                cls._instance.uninstall_hook()
            cls._instance = None

    # -- Hook management ----------------------------------------------------

    @property
    def hook_installed(self) -> bool:
        return self._hook_installed

    def install_hook(self) -> None:
        """Install the termination hook. Only the first call has an effect."""
        with self._lock:
            if self._hook_installed:
                return
            self._hook.install(self.run_all)
            self._hook_installed = True
            if self._signal_hook is not None:
                self._install_signal_hook(self._signal_hook)

    def _install_signal_hook(self, signal_hook: TerminationHook) -> None:
        try:
            signal_hook.install(self.run_all)
        except ValueError as e:
            # signal.signal() only works in the main thread
            logger.warning(
                "cannot install signal handlers", extra={"exception": e}
            )

    def uninstall_hook(self) -> None:
        """Uninstall the termination hooks; the next create() reinstalls them."""
        with self._lock:
            if not self._hook_installed:
                return
            self._hook.uninstall()
            if self._signal_hook is not None and self._signal_hook.installed:
                self._signal_hook.uninstall()
            self._hook_installed = False

    # -- Registration -------------------------------------------------------

    def create(
        self,
        callback: CallbackTarget,
        args: Sequence[Any] = (),
        key: str | None = None,
        kwargs: Mapping[str, Any] | None = None,
    ) -> ShutdownHandler:
        """
        Create and register a handler.

        Args:
            callback: Callable, or "module:attr" import string resolved now
            args: Positional arguments for the callback
            key: Optional dedup key
            kwargs: Keyword arguments for the callback

        Returns:
            The registered ShutdownHandler

        Raises:
            InvalidCallbackError: If the callback cannot be called with the
                given arguments
        """
        return ShutdownHandler(callback, args, key, kwargs=kwargs, registry=self)

    def on_shutdown(
        self, *args: Any, key: str | None = None, **kwargs: Any
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """
        Decorator that registers a function as a shutdown handler.

        The function is returned unchanged; its handler is not accessible
        through the decorator, use get_handlers() to find it.

        Example:
            @registry.on_shutdown("/var/run/app.pid")
            def remove_pidfile(path):
                os.remove(path)
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.create(func, args, key=key, kwargs=kwargs)
            return func

        return decorator

    def _add(self, handler: ShutdownHandler, key: str | None) -> None:
        """Assign an id to a newly created handler and register it."""
        with self._lock:
            self.install_hook()
            handler._handler_id = f":{self._counter}"
            self._counter += 1
            self._register(handler, key)
        logger.debug("handler registered", extra=_handler_extra(handler))

    def _register(self, handler: ShutdownHandler, key: str | None) -> None:
        # A registered handler switching keys releases its old key first
        if handler._key is not None and self._is_registered(handler):
            self._release_key(handler._key)

        handler._key = key
        if key is not None:
            self._keys[key] = self._keys.get(key, 0) + 1
        self._handlers[handler.handler_id] = handler

    def _release_key(self, key: str) -> None:
        count = self._keys[key] - 1
        if count:
            self._keys[key] = count
        else:
            del self._keys[key]

    def _is_registered(self, handler: ShutdownHandler) -> bool:
        return self._handlers.get(handler.handler_id) is handler

    def _remove(self, handler: ShutdownHandler) -> bool:
        if not self._is_registered(handler):
            return False
        if handler._key is not None:
            self._release_key(handler._key)
        del self._handlers[handler.handler_id]
        return True

    def is_registered(self, handler: ShutdownHandler) -> bool:
        """Check if the handler is registered with this registry."""
        with self._lock:
            return self._is_registered(handler)

    def reregister(self, handler: ShutdownHandler, key: str | None = None) -> None:
        """
        Register a handler again under the given key.

        A registered handler keeps its position and only changes key; an
        unregistered one is appended to the end of the run order.
        Handlers owned by another registry are ignored.
        """
        if handler.registry is not self:
            logger.warning(
                "ignoring handler from another registry",
                extra=_handler_extra(handler),
            )
            return
        with self._lock:
            self._register(handler, key)
        logger.debug("handler reregistered", extra=_handler_extra(handler))

    def unregister(self, handler: ShutdownHandler) -> bool:
        """
        Unregister a handler without invoking it.

        Returns:
            bool: True if the handler was registered
        """
        with self._lock:
            removed = self._remove(handler)
        if removed:
            logger.debug("handler unregistered", extra=_handler_extra(handler))
        return removed

    def run(self, handler: ShutdownHandler) -> bool:
        """
        Unregister a handler and invoke its callback.

        The callback is invoked only if the handler has no key, or if no
        other handler with its key is still registered. Exceptions raised by
        the callback propagate.

        Returns:
            bool: True if the handler was registered
        """
        with self._lock:
            if not self._remove(handler):
                return False
            key = handler.key
            fire = key is None or self._keys.get(key, 0) == 0

        if not fire:
            logger.debug(
                "handler suppressed by key", extra=_handler_extra(handler)
            )
            return True

        logger.debug("running handler", extra=_handler_extra(handler))
        handler.callback(*handler.args, **handler.kwargs)
        return True

    # -- Batch operations ---------------------------------------------------

    def run_handlers(self, handlers: Iterable[ShutdownHandler]) -> None:
        """
        Run a set of handlers in the given order.

        With the "isolate" error policy a failing callback is logged and the
        remaining handlers still run. With "abort" the first exception
        propagates and the handlers after it stay registered.
        """
        for handler in list(handlers):
            if self.config.on_error == ON_ERROR_ABORT:
                handler.run()
                continue
            try:
                handler.run()
            except Exception:
                logger.exception(
                    "shutdown handler failed", extra=_handler_extra(handler)
                )

    def run_all(self) -> None:
        """Run every registered handler in registration order."""
        handlers = self.get_handlers()
        if handlers:
            logger.debug("running shutdown handlers", extra={"count": len(handlers)})
        self.run_handlers(handlers)

    def unregister_handlers(self, handlers: Iterable[ShutdownHandler]) -> None:
        """Unregister a set of handlers without invoking them."""
        for handler in list(handlers):
            handler.unregister()

    def unregister_all(self) -> None:
        """Unregister every handler without invoking any."""
        self.unregister_handlers(self.get_handlers())

    # -- Inspection ---------------------------------------------------------

    def get_handlers(self) -> list[ShutdownHandler]:
        """Snapshot of the registered handlers in registration order."""
        with self._lock:
            return list(self._handlers.values())

    def key_count(self, key: str) -> int:
        """Number of registered handlers carrying the given key."""
        with self._lock:
            return self._keys.get(key, 0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    def __iter__(self) -> Iterator[ShutdownHandler]:
        return iter(self.get_handlers())

    def __contains__(self, handler: object) -> bool:
        return isinstance(handler, ShutdownHandler) and self.is_registered(handler)
