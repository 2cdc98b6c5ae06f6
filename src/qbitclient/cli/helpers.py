"""Shared utilities for qbitclient CLI commands.

- Logging option state and one-time configuration
- Config loading (YAML file or QBT_* environment variables)
- Running a command coroutine against a connected client
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console

from qbitclient.client import Client
from qbitclient.core.config import ClientConfig
from qbitclient.core.errors import QbitClientError
from qbitclient.core.logging import LogFormat, LogLevel, configure_logging, get_logger

T = TypeVar("T")

_logger = get_logger("cli")


class ErrorMessages:
    """Constants for CLI error messages."""

    CONFIG_LOAD_ERROR = "Error loading config"
    CONFIG_MISSING = "No server configured: pass --config or set QBT_BASE_URL"
    REQUEST_FAILED = "Request failed"


# =============================================================================
# Logging configuration
# =============================================================================


@dataclass
class CliState:
    """Global CLI option state, filled in by the app callback."""

    level: LogLevel = "WARNING"
    format: LogFormat = "console"
    config_path: Path | None = None
    debug: bool = False
    logging_configured: bool = False


_state = CliState()


def get_state() -> CliState:
    return _state


def reset_state() -> None:
    """Reset CLI state (primarily for testing)."""
    global _state
    _state = CliState()


def configure_global_logging() -> None:
    """Configure logging from the global CLI options, once per process."""
    if _state.logging_configured:
        return
    configure_logging(level=_state.level, format=_state.format)
    _state.logging_configured = True


# =============================================================================
# Config / client helpers
# =============================================================================


def load_config(console: Console) -> ClientConfig:
    """Load configuration from ``--config`` or the environment.

    Raises:
        typer.Exit: If no usable configuration is found.
    """
    try:
        if _state.config_path is not None:
            config = ClientConfig.from_yaml(_state.config_path)
        else:
            config = ClientConfig.from_env()
    except FileNotFoundError as e:
        console.print(f"[red]{ErrorMessages.CONFIG_LOAD_ERROR}:[/red] {e}")
        raise typer.Exit(1) from None
    except ValidationError as e:
        message = ErrorMessages.CONFIG_MISSING if _state.config_path is None else str(e)
        console.print(f"[red]{ErrorMessages.CONFIG_LOAD_ERROR}:[/red] {message}")
        raise typer.Exit(1) from None

    if _state.debug and not config.debug:
        config = config.model_copy(update={"debug": True})
    return config


async def run_with_client(
    console: Console,
    action: Callable[[Client], Awaitable[T]],
) -> T:
    """Open a client, run ``action`` with it, and close it.

    Library errors are printed and turned into exit code 1.
    """
    config = load_config(console)
    async with Client(config) as client:
        try:
            return await action(client)
        except QbitClientError as e:
            _logger.debug("command_failed", error=str(e))
            console.print(f"[red]{ErrorMessages.REQUEST_FAILED}:[/red] {e}")
            raise typer.Exit(1) from None
