"""
Exception hierarchy for shutdownhandler.

All package errors inherit from ShutdownHandlerError, so callers can catch
every failure raised by the registry with a single except clause.
"""

from typing import Any


class ShutdownHandlerError(Exception):
    """
    Base exception for all shutdownhandler errors.

    Example:
        try:
            ShutdownHandler(cleanup, ("/tmp/lock",))
        except ShutdownHandlerError as e:
            lg.error(f"cannot register cleanup: {e}")
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class InvalidCallbackError(ShutdownHandlerError):
    """
    Raised when a callback cannot be registered.

    Validation happens when the handler is created rather than when it runs,
    so the failure reaches the caller instead of surfacing during interpreter
    teardown.

    Examples:
        - Target is not callable
        - Import string names a missing module or attribute
        - Arguments do not bind to the callback's signature
    """

    def __init__(self, target: str, reason: str | None = None, **context: Any):
        self.target = target
        message = f"Callback: '{target}' is not callable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, **context)


class ConfigError(ShutdownHandlerError):
    """
    Configuration-related errors.

    Examples:
        - Unknown error policy
        - Unknown signal name
        - Config file missing, oversized or not valid YAML
    """

    pass
