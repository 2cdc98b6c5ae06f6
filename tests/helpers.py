"""Shared test helpers for qbitclient tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs

import httpx

Scripted = httpx.Response | Exception | Callable[[httpx.Request], httpx.Response]


class FakeServer:
    """In-memory stand-in for a qBittorrent Web UI behind ``httpx.MockTransport``.

    Implements the login/logout/cookie handshake for real and serves canned
    bodies for every other path. Individual requests can be scripted with
    ``enqueue`` to return a specific response or raise a transport error.

    Attributes:
        requests: Every request received, in order.
        routes: ``(method, path)`` -> JSON-serialisable body or text.
        active_sids: Session ids the server currently accepts.
    """

    def __init__(self, username: str = "admin", password: str = "adminadmin") -> None:
        self.username = username
        self.password = password
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Any] = {
            ("GET", "/api/v2/app/version"): "v4.6.2",
            ("GET", "/api/v2/app/webapiVersion"): "2.9.3",
        }
        self.active_sids: set[str] = set()
        self.logins = 0
        self.on_login: Callable[[], None] | None = None
        self._scripted: dict[tuple[str, str], list[Scripted]] = {}

    # ─── Scripting ─────────────────────────────────────────────────────

    def enqueue(self, method: str, path: str, *outcomes: Scripted) -> None:
        """Serve ``outcomes`` for the next matching requests, before normal handling."""
        self._scripted.setdefault((method, path), []).extend(outcomes)

    def expire_sessions(self) -> None:
        """Forget every session, as a server-side timeout would."""
        self.active_sids.clear()

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    # ─── Handling ──────────────────────────────────────────────────────

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)

        queue = self._scripted.get(key)
        if queue:
            outcome = queue.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, httpx.Response):
                return outcome
            return outcome(request)

        if key == ("POST", "/api/v2/auth/login"):
            return self._login(request)
        if key == ("POST", "/api/v2/auth/logout"):
            self.active_sids.discard(self._sid(request) or "")
            return httpx.Response(200, text="")
        if key == ("GET", "/api/v2/app/version"):
            return httpx.Response(200, text=self.routes[key])

        if self._sid(request) not in self.active_sids:
            return httpx.Response(403, text="Forbidden")

        body = self.routes.get(key, "")
        if isinstance(body, str):
            return httpx.Response(200, text=body)
        return httpx.Response(200, text=json.dumps(body))

    def _login(self, request: httpx.Request) -> httpx.Response:
        if self.on_login is not None:
            self.on_login()
        form = parse_qs(request.content.decode())
        username = form.get("username", [""])[0]
        password = form.get("password", [""])[0]
        if username != self.username or password != self.password:
            return httpx.Response(200, text="Fails.")

        self.logins += 1
        sid = f"sid{self.logins}"
        self.active_sids.add(sid)
        return httpx.Response(
            200,
            text="Ok.",
            headers={"Set-Cookie": f"SID={sid}; HttpOnly; path=/"},
        )

    @staticmethod
    def _sid(request: httpx.Request) -> str | None:
        header = request.headers.get("cookie", "")
        for part in header.split(";"):
            name, _, value = part.strip().partition("=")
            if name == "SID":
                return value
        return None
