"""qbitclient CLI.

Built with Typer. Global options (--verbose, --log-format, --config) are
handled by the app callback before any command runs; command logic lives in
the ``commands`` package.

Package structure:
    cli/
    ├── __init__.py      # app assembly
    ├── helpers.py       # option state, config loading, client runner
    ├── output.py        # rich formatting
    └── commands/
        ├── status.py    # status, list
        └── torrents.py  # add, pause, resume
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from qbitclient import __version__

from . import helpers as helpers
from .commands import add, list_torrents, pause, resume, status
from .helpers import configure_global_logging, get_state
from .output import console

app = typer.Typer(
    name="qbitclient",
    help="Command-line client for the qBittorrent Web API",
    add_completion=False,
)


# =============================================================================
# Global option callbacks
# =============================================================================


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"qbitclient v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log debug output, including every retry attempt",
    ),
    log_format: Annotated[
        str,
        typer.Option(
            "--log-format",
            help="Log format: json or console",
            envvar="QBT_LOG_FORMAT",
        ),
    ] = "console",
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML config file (defaults to QBT_* environment variables)",
            envvar="QBT_CONFIG",
        ),
    ] = None,
) -> None:
    """qbitclient - talk to a qBittorrent server from the shell."""
    state = get_state()
    if verbose:
        state.level = "DEBUG"
        state.debug = True
    if log_format not in ("json", "console"):
        console.print(f"[red]Invalid log format:[/red] {log_format}")
        raise typer.Exit(2)
    state.format = "json" if log_format == "json" else "console"
    state.config_path = config
    configure_global_logging()


app.command()(status)
app.command(name="list")(list_torrents)
app.command()(add)
app.command()(pause)
app.command()(resume)


__all__ = ["app", "helpers", "main"]
