"""Rich output formatting for the qbitclient CLI.

Shared console, status colors, size/speed/eta formatting and table builders.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from qbitclient.api.models import Torrent
from qbitclient.core.errors import ConnectionState, ConnectionStatus

console = Console()


# =============================================================================
# Status colors
# =============================================================================


class StatusColors:
    """Color mappings for connection and torrent states."""

    CONNECTION: dict[ConnectionState, str] = {
        ConnectionState.INITIALIZING: "yellow",
        ConnectionState.CONNECTED: "green",
        ConnectionState.UNAUTHORIZED: "red",
        ConnectionState.UNREACHABLE: "red",
    }

    # Torrent states grouped by the prefix qBittorrent uses
    TORRENT_PREFIX: dict[str, str] = {
        "downloading": "blue",
        "forcedDL": "blue",
        "metaDL": "blue",
        "stalledDL": "yellow",
        "uploading": "green",
        "forcedUP": "green",
        "stalledUP": "green",
        "paused": "dim",
        "stopped": "dim",
        "queued": "yellow",
        "checking": "cyan",
        "error": "red",
        "missingFiles": "red",
    }

    @classmethod
    def get_connection_color(cls, status: ConnectionState) -> str:
        return cls.CONNECTION.get(status, "white")

    @classmethod
    def get_torrent_color(cls, state: str) -> str:
        for prefix, color in cls.TORRENT_PREFIX.items():
            if state.startswith(prefix):
                return color
        return "white"


# =============================================================================
# Formatting
# =============================================================================


def format_bytes(num_bytes: int) -> str:
    """Format bytes to human-readable string (e.g. "512B", "1.5KB", "2.3GB")."""
    if num_bytes < 1024:
        return f"{num_bytes}B"
    value = float(num_bytes)
    for unit in ("KB", "MB", "GB"):
        value /= 1024
        if value < 1024:
            return f"{value:.1f}{unit}"
    return f"{value / 1024:.1f}TB"


def format_speed(bytes_per_second: int) -> str:
    return f"{format_bytes(bytes_per_second)}/s"


def format_eta(seconds: int) -> str:
    """Format an ETA; qBittorrent reports 8640000 for "infinite"."""
    if seconds >= 8640000:
        return "inf"
    if seconds <= 0:
        return "-"
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def format_progress(progress: float) -> str:
    return f"{progress * 100:.1f}%"


# =============================================================================
# Tables
# =============================================================================


def create_torrents_table(torrents: list[Torrent]) -> Table:
    """Build the table shown by ``qbitclient list``."""
    table = Table(title="Torrents")
    table.add_column("Hash", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("State")
    table.add_column("Progress", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Down", justify="right")
    table.add_column("Up", justify="right")
    table.add_column("ETA", justify="right")
    table.add_column("Category", style="dim")

    for torrent in torrents:
        color = StatusColors.get_torrent_color(torrent.state)
        table.add_row(
            torrent.hash[:12],
            torrent.name,
            f"[{color}]{torrent.state}[/{color}]",
            format_progress(torrent.progress),
            format_bytes(torrent.size),
            format_speed(torrent.dlspeed),
            format_speed(torrent.upspeed),
            format_eta(torrent.eta),
            torrent.category or "-",
        )
    return table


def create_status_table(
    base_url: str,
    connection: ConnectionStatus,
    app_version: str | None = None,
    api_version: str | None = None,
) -> Table:
    """Build the key/value table shown by ``qbitclient status``."""
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    color = StatusColors.get_connection_color(connection.status)
    table.add_row("Server", base_url)
    table.add_row("Connection", f"[{color}]{connection.status.value}[/{color}]")
    if app_version is not None:
        table.add_row("Version", app_version)
    if api_version is not None:
        table.add_row("Web API", api_version)
    if connection.error_kind is not None:
        severity = "permanent" if connection.permanent else "transient"
        table.add_row("Last error", f"{connection.error_kind.value} ({severity})")
        table.add_row("Message", connection.message)
    return table
