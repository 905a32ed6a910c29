"""
Tests for the package-level API over the process-wide registry.
"""

from unittest.mock import patch

import pytest

import shutdownhandler
from shutdownhandler import HandlerRegistry, ShutdownHandler


@pytest.fixture
def patched_atexit():
    """Keep the default registry away from the real atexit registry."""
    with patch("atexit.register"), patch("atexit.unregister"):
        yield


@pytest.mark.unit
class TestPackageApi:
    """Test module-level functions."""

    def test_exports(self):
        """Test the public names are exported."""
        for name in shutdownhandler.__all__:
            assert hasattr(shutdownhandler, name)

    def test_version(self):
        """Test a version string is available."""
        assert isinstance(shutdownhandler.__version__, str)

    def test_get_registry(self):
        """Test get_registry() returns the singleton."""
        assert shutdownhandler.get_registry() is HandlerRegistry.get_instance()

    def test_run_all(self, patched_atexit, calls):
        """Test run_all() runs handlers of the default registry in order."""
        ShutdownHandler(calls.append, ("a",))
        ShutdownHandler(calls.append, ("b",))

        shutdownhandler.run_all()

        assert calls == ["a", "b"]
        assert shutdownhandler.get_handlers() == []

    def test_unregister_all(self, patched_atexit, calls):
        """Test unregister_all() cancels everything."""
        ShutdownHandler(calls.append, ("a",))

        shutdownhandler.unregister_all()
        shutdownhandler.run_all()

        assert calls == []

    def test_get_handlers(self, patched_atexit):
        """Test get_handlers() lists the default registry's handlers."""
        handler = ShutdownHandler(print)

        assert shutdownhandler.get_handlers() == [handler]

    def test_on_shutdown(self, patched_atexit, calls):
        """Test the module-level decorator uses the default registry."""

        @shutdownhandler.on_shutdown("x", key="k")
        def cleanup(value):
            calls.append(value)

        (handler,) = shutdownhandler.get_handlers()
        assert handler.key == "k"

        handler.run()
        assert calls == ["x"]
