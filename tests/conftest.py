"""
Pytest configuration and shared fixtures.

This module provides central pytest configuration, custom markers,
and shared fixtures for the shutdownhandler test suite.
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest

from shutdownhandler import HandlerRegistry, RegistryConfig

# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (spawn child interpreters)"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_default_registry(monkeypatch) -> Generator[None, None, None]:
    """
    Isolate tests from the process-wide registry and its environment.

    Drops the default registry after each test, which also removes any
    atexit hook it installed.
    """
    monkeypatch.delenv("SHUTDOWN_HANDLER_ON_ERROR", raising=False)
    monkeypatch.delenv("SHUTDOWN_HANDLER_SIGNALS", raising=False)
    HandlerRegistry.reset_instance()
    yield
    HandlerRegistry.reset_instance()


@pytest.fixture
def hook() -> Mock:
    """Termination hook double recording install/uninstall calls."""
    return Mock(spec=["install", "uninstall", "installed"])


@pytest.fixture
def registry(hook: Mock) -> HandlerRegistry:
    """Fresh registry that never touches the real atexit registry."""
    return HandlerRegistry(config=RegistryConfig(), hook=hook)


@pytest.fixture
def calls() -> list:
    """List that recording callbacks append to."""
    return []


@pytest.fixture
def record(calls: list):
    """Callback factory: record("a") returns a callable appending "a"."""

    def factory(tag):
        def callback(*args, **kwargs):
            calls.append((tag, args, kwargs))

        return callback

    return factory


# =============================================================================
# Test Collection Hooks
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Add 'unit' marker to tests without other markers."""
    for item in items:
        if not any(mark.name == "integration" for mark in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
