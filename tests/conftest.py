"""Pytest fixtures for qbitclient tests."""

import logging
from collections.abc import AsyncIterator, Generator

import pytest
import structlog

from qbitclient.client import Client
from qbitclient.core.config import ClientConfig
from tests.helpers import FakeServer

BASE_URL = "http://qbt.test:8080"


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging state before and after each test.

    This ensures test isolation for logging configuration.
    """
    from qbitclient.cli import helpers as cli_helpers

    cli_helpers.reset_state()

    # Reset structlog to default state
    structlog.reset_defaults()

    # Clear all handlers from root logger
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    cli_helpers.reset_state()
    structlog.reset_defaults()

    # Restore original handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def server() -> FakeServer:
    """A fake qBittorrent server accepting admin/adminadmin."""
    return FakeServer()


@pytest.fixture
def config() -> ClientConfig:
    """Client config with fast backoff so retry tests stay quick."""
    return ClientConfig(
        base_url=BASE_URL,
        username="admin",
        password="adminadmin",
        max_retries=2,
        retry_backoff=0.01,
        max_backoff=0.05,
    )


@pytest.fixture
async def client(config: ClientConfig, server: FakeServer) -> AsyncIterator[Client]:
    """A client wired to the fake server, closed after the test."""
    qbt = Client(config, http_transport=server.transport())
    try:
        yield qbt
    finally:
        await qbt.close()
