"""Status commands for the qbitclient CLI.

- `qbitclient status` - connection state, server version and last error
- `qbitclient list` - torrents on the server, optionally by category
"""

from __future__ import annotations

import asyncio
import json

import typer

from qbitclient.api.models import Torrent
from qbitclient.client import Client
from qbitclient.core.errors import QbitClientError

from ..helpers import load_config, run_with_client
from ..output import console, create_status_table, create_torrents_table


def status(
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output status as JSON",
    ),
) -> None:
    """Show whether the server is reachable and the session is authenticated.

    Exits with code 1 when the server cannot be reached or login fails.
    """
    ok = asyncio.run(_status(json_output))
    if not ok:
        raise typer.Exit(1)


async def _status(json_output: bool) -> bool:
    config = load_config(console)
    app_version: str | None = None
    api_version: str | None = None
    failure: QbitClientError | None = None

    async with Client(config) as client:
        try:
            app_version = await client.get_app_version()
            api_version = await client.get_api_version()
        except QbitClientError as e:
            failure = e
        connection = client.get_connection_status()

    if json_output:
        payload = connection.to_dict()
        payload["base_url"] = config.base_url
        payload["app_version"] = app_version
        payload["api_version"] = api_version
        payload["error"] = str(failure) if failure is not None else None
        console.print_json(json.dumps(payload))
    else:
        console.print(create_status_table(config.base_url, connection, app_version, api_version))
        if failure is not None:
            console.print(f"[red]Error:[/red] {failure}")
    return failure is None


def list_torrents(
    category: str | None = typer.Option(
        None,
        "--category",
        "-c",
        help="Only show torrents in this category",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON",
    ),
) -> None:
    """List torrents on the server."""

    async def action(client: Client) -> list[Torrent]:
        return await client.list_torrents(category=category)

    torrents = asyncio.run(run_with_client(console, action))

    if json_output:
        data = [t.model_dump(exclude={"magnet_link"}) for t in torrents]
        console.print_json(json.dumps(data))
        return
    if not torrents:
        console.print("[dim]No torrents found.[/dim]")
        return
    console.print(create_torrents_table(torrents))
