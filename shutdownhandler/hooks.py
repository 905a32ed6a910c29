"""
Process termination hooks.

A termination hook is the single slot through which the registry learns that
the process is ending. AtexitHook uses the interpreter's atexit registry.
SignalHook complements it: signals such as SIGTERM kill the interpreter
without running atexit callbacks, so it turns them into a SystemExit that
unwinds the main thread and lets atexit run.
"""

import atexit
import logging
import signal
from collections.abc import Callable, Iterable
from typing import Any, Protocol


class TerminationHook(Protocol):
    """Interface for installing a callback that runs when the process ends."""

    @property
    def installed(self) -> bool: ...

    def install(self, callback: Callable[[], Any]) -> None: ...

    def uninstall(self) -> None: ...


class AtexitHook:
    """
    Termination hook backed by atexit.

    Usage:
        hook = AtexitHook()
        hook.install(registry.run_all)
    """

    def __init__(self) -> None:
        self._callback: Callable[[], Any] | None = None

    @property
    def installed(self) -> bool:
        return self._callback is not None

    def install(self, callback: Callable[[], Any]) -> None:
        """Register callback with atexit. Repeated calls are ignored."""
        if self._callback is not None:
            return
        atexit.register(callback)
        self._callback = callback
        logging.getLogger(__name__).debug(
            "atexit hook installed", extra={"callback": repr(callback)}
        )

    def uninstall(self) -> None:
        """Remove the callback from atexit."""
        if self._callback is None:
            return
        atexit.unregister(self._callback)
        self._callback = None


class SignalHook:
    """
    Converts termination signals into an orderly interpreter exit.

    On the first configured signal the handler raises SystemExit with the
    conventional 128 + signum status. Duplicate signals received while the
    process is already exiting are ignored. Original handlers are kept and
    restored on uninstall().

    Signal handlers can only be installed from the main thread.
    """

    def __init__(self, signals: Iterable[int]) -> None:
        self._signals = [signal.Signals(s) for s in signals]
        self._original_handlers: dict[signal.Signals, Any] = {}
        self._exiting = False
        self._exit_code: int | None = None

    @property
    def installed(self) -> bool:
        return bool(self._original_handlers)

    @property
    def signals(self) -> list[signal.Signals]:
        return list(self._signals)

    def install(self, callback: Callable[[], Any] | None = None) -> None:
        """
        Install handlers for the configured signals.

        Args:
            callback: Unused, the registry's handlers run through atexit
                once SystemExit has unwound the main thread.
        """
        if self.installed:
            return
        for signum in self._signals:
            self._original_handlers[signum] = signal.signal(signum, self._handle_signal)
        logging.getLogger(__name__).debug(
            "signal hook installed",
            extra={"signals": [s.name for s in self._signals]},
        )

    def uninstall(self) -> None:
        """Restore the handlers that were active before install()."""
        for signum, handler in self._original_handlers.items():
            signal.signal(signum, handler)
        self._original_handlers.clear()

    def _handle_signal(self, signum: int, frame: Any) -> None:
        """
        Handle a termination signal by raising SystemExit.

        Args:
            signum: Signal number
            frame: Current stack frame (unused)
        """
        if self._exiting:
            return

        self._exiting = True
        self._exit_code = 128 + signum
        logging.getLogger(__name__).debug(
            "termination signal received",
            extra={"signal": signal.Signals(signum).name},
        )
        raise SystemExit(self._exit_code)

    def is_exiting(self) -> bool:
        """Check if a termination signal has been handled."""
        return self._exiting

    def get_exit_code(self) -> int | None:
        """Exit status chosen for the handled signal, or None."""
        return self._exit_code
