"""Root pytest configuration for all tests."""

from __future__ import annotations

import logging

import pytest

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def anyio_backend():
    """Set anyio backend to asyncio."""
    return "asyncio"


@pytest.fixture
def fresh_logging():
    """Let a test call setup_logging() and undo its handlers afterwards."""
    import filetail.logging as logging_module

    logger = logging.getLogger("filetail")
    handlers = list(logger.handlers)
    level = logger.level
    logging_module._initialized = False
    yield logging_module
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers = handlers
    logger.setLevel(level)
    logging_module._initialized = False
