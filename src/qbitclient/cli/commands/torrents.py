"""Torrent commands for the qbitclient CLI.

- `qbitclient add <magnet>` - add a torrent from a magnet link or URL
- `qbitclient pause <hash>...` - stop torrents
- `qbitclient resume <hash>...` - start torrents
"""

from __future__ import annotations

import asyncio

import typer

from qbitclient.api.magnet import MAGNET_PREFIX, parse_magnet_link
from qbitclient.api.models import TorrentConfig
from qbitclient.client import Client

from ..helpers import run_with_client
from ..output import console

# Web API version that renamed pause/resume to stop/start
_START_STOP_API_VERSION = (2, 11)


async def _uses_start_stop(client: Client) -> bool:
    version = await client.get_api_version()
    parts = tuple(int(p) for p in version.split(".")[:2] if p.isdigit())
    return parts >= _START_STOP_API_VERSION


def add(
    uri: str = typer.Argument(..., help="Magnet link or torrent URL"),
    category: str = typer.Option("", "--category", "-c", help="Category to assign"),
    directory: str = typer.Option("", "--dir", "-d", help="Save path on the server"),
    paused: bool = typer.Option(False, "--paused", help="Add without starting"),
    skip_checking: bool = typer.Option(False, "--skip-checking", help="Skip hash check"),
) -> None:
    """Add a torrent from a magnet link or URL."""
    display = uri
    if uri.startswith(MAGNET_PREFIX):
        try:
            magnet = parse_magnet_link(uri)
        except ValueError as e:
            console.print(f"[red]Invalid magnet link:[/red] {e}")
            raise typer.Exit(1) from None
        display = magnet.display_name or magnet.hash

    torrent = TorrentConfig(
        magnet_uri=uri,
        directory=directory,
        category=category,
        paused=paused,
        skip_checking=skip_checking,
    )

    async def action(client: Client) -> None:
        await client.add_torrent_link(torrent)

    asyncio.run(run_with_client(console, action))
    console.print(f"[green]Added[/green] {display}")


def pause(
    hashes: list[str] = typer.Argument(..., help="Torrent hashes, or 'all'"),
) -> None:
    """Pause (stop) torrents."""

    async def action(client: Client) -> None:
        if await _uses_start_stop(client):
            await client.stop_torrents(hashes)
        else:
            await client.pause_torrents(hashes)

    asyncio.run(run_with_client(console, action))
    console.print(f"[yellow]Paused[/yellow] {len(hashes)} torrent(s)")


def resume(
    hashes: list[str] = typer.Argument(..., help="Torrent hashes, or 'all'"),
) -> None:
    """Resume (start) torrents."""

    async def action(client: Client) -> None:
        if await _uses_start_stop(client):
            await client.start_torrents(hashes)
        else:
            await client.resume_torrents(hashes)

    asyncio.run(run_with_client(console, action))
    console.print(f"[green]Resumed[/green] {len(hashes)} torrent(s)")
