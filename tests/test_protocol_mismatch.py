"""Plain http:// clients talking to TLS-only ports, over real sockets.

The servers here never speak HTTP: one hangs up after reading the request
the way a TLS listener does on a plaintext ClientHello, the other answers
with a TLS alert record. Both must fail fast as HTTPS_REQUIRED instead of
being retried as unknown errors.
"""

import asyncio
from collections.abc import AsyncIterator

import pytest

from qbitclient import Client, ClientConfig
from qbitclient.core.errors import ConnectionState, ErrorKind, PermanentFailureError

# TLS 1.0 alert record (fatal, protocol_version), terminated so h11 parses it
TLS_ALERT = b"\x15\x03\x01\x00\x02\x02\x46\r\n\r\n"


class RawServer:
    """asyncio TCP server counting the connections it accepts."""

    def __init__(self, reply: bytes | None) -> None:
        self.reply = reply
        self.connections = 0
        self._server: asyncio.Server | None = None

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        await reader.read(4096)
        if self.reply is not None:
            writer.write(self.reply)
            await writer.drain()
        writer.close()
        await writer.wait_closed()

    async def start(self) -> str:
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        port = self._server.sockets[0].getsockname()[1]
        return f"http://127.0.0.1:{port}"

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()


@pytest.fixture(autouse=True)
def no_proxy(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(params=[None, TLS_ALERT], ids=["hangup", "tls_alert"])
async def tls_only_server(request: pytest.FixtureRequest) -> AsyncIterator[tuple[RawServer, str]]:
    server = RawServer(request.param)
    base_url = await server.start()
    try:
        yield server, base_url
    finally:
        await server.stop()


class TestPlaintextToTlsPort:
    """End-to-end protocol mismatch handling."""

    async def test_fails_fast_as_https_required(self, tls_only_server: tuple[RawServer, str]):
        server, base_url = tls_only_server
        config = ClientConfig(
            base_url=base_url,
            username="admin",
            password="adminadmin",
            max_retries=2,
            retry_backoff=0.01,
        )
        client = Client(config)
        try:
            with pytest.raises(PermanentFailureError) as exc_info:
                await client.get_app_version()

            err = exc_info.value.error
            assert err.kind is ErrorKind.HTTPS_REQUIRED
            assert err.permanent
            assert client.get_status() is ConnectionState.UNREACHABLE
            assert client.get_last_error().kind is ErrorKind.HTTPS_REQUIRED
            # only the accessibility probe reached the server
            assert server.connections == 1
        finally:
            await client.close()
