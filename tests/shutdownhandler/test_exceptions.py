"""
Tests for the shutdownhandler exception hierarchy.

Tests key exception features including:
- Base ShutdownHandlerError with context
- InvalidCallbackError message and target
- Exception inheritance
"""

import pytest

from shutdownhandler.exceptions import (
    ConfigError,
    InvalidCallbackError,
    ShutdownHandlerError,
)


@pytest.mark.unit
class TestShutdownHandlerError:
    """Test ShutdownHandlerError base class."""

    def test_with_message(self):
        """Test error with simple message."""
        error = ShutdownHandlerError("Test error")
        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.context == {}

    def test_str_with_context(self):
        """Test string representation includes context."""
        error = ShutdownHandlerError("Test error", handler_id=":3", key="lock")
        assert str(error) == "Test error (handler_id=:3, key=lock)"


@pytest.mark.unit
class TestInvalidCallbackError:
    """Test InvalidCallbackError."""

    def test_message_names_target(self):
        """Test the message names the offending target."""
        error = InvalidCallbackError("Resource.close")

        assert str(error) == "Callback: 'Resource.close' is not callable"
        assert error.target == "Resource.close"

    def test_message_with_reason(self):
        """Test an optional reason is appended."""
        error = InvalidCallbackError("mod:func", "cannot import 'mod'")

        assert str(error) == "Callback: 'mod:func' is not callable: cannot import 'mod'"


@pytest.mark.unit
class TestHierarchy:
    """Test exception inheritance."""

    @pytest.mark.parametrize("cls", [InvalidCallbackError, ConfigError])
    def test_subclasses_base(self, cls):
        """Test every package error derives from the base class."""
        assert issubclass(cls, ShutdownHandlerError)

    def test_catch_with_base(self):
        """Test package errors can be caught with the base class."""
        with pytest.raises(ShutdownHandlerError):
            raise ConfigError("bad config")
