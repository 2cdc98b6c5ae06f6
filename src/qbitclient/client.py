"""qBittorrent Web API client.

Composes the session-and-retry engine (session state, session manager,
retry executor, expiry sweep) with the endpoint mixins. Every endpoint call
goes through ``execute_with_retry``, so expired sessions are renewed
transparently and transient failures are retried with backoff.

Example:
    config = ClientConfig(base_url="http://localhost:8080", username="admin",
                          password="adminadmin")
    async with Client(config) as qbt:
        for torrent in await qbt.list_torrents(category="movies"):
            print(torrent.name, torrent.progress)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

from qbitclient.api.rss import RSSAPIMixin
from qbitclient.api.torrents import TorrentsAPIMixin
from qbitclient.api.transfer import TransferAPIMixin
from qbitclient.core.config import ClientConfig, RetryPolicy
from qbitclient.core.errors import (
    ClassifiedError,
    ConnectionState,
    ConnectionStatus,
    ErrorClassifier,
    QbitClientError,
    RequestError,
)
from qbitclient.core.logging import get_logger
from qbitclient.execution.backoff import BackoffPolicy
from qbitclient.execution.retry import RetryExecutor
from qbitclient.session.manager import SessionManager
from qbitclient.session.state import SessionState
from qbitclient.session.sweeper import ExpirySweeper
from qbitclient.transport import Transport

T = TypeVar("T")

# Module-level logger for client lifecycle events
_logger = get_logger("client")


class ClientClosedError(QbitClientError):
    """The client was closed and can no longer make calls."""


class Client(TransferAPIMixin, TorrentsAPIMixin, RSSAPIMixin):
    """Async qBittorrent Web API client with transparent session recovery.

    One instance owns one independent SessionState; nothing is shared between
    instances. Safe to use from many concurrent tasks.

    Attributes:
        config: Active configuration.
        policy: Retry policy, fixed at construction.
        state: Session state shared by the manager and the executor.
        session: Session manager (login, logout, invalidation).
        executor: Retry executor every call runs through.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
        classifier: ErrorClassifier | None = None,
        backoff: BackoffPolicy | None = None,
    ) -> None:
        """Initialize the client. No network traffic happens until the first call.

        Args:
            config: Client configuration.
            http_transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
            classifier: Custom error classifier.
            backoff: Custom backoff policy; defaults to one built from ``config``.
        """
        self.config = config
        self.policy: RetryPolicy = config.retry_policy()
        self.classifier = classifier or ErrorClassifier()
        self.state = SessionState(expiry_window=config.session_expiry)
        self.transport = Transport(config, self.state.cache, http_transport)
        self.session = SessionManager(config, self.state, self.transport, self.classifier)
        self.executor = RetryExecutor(
            self.policy,
            self.session,
            self.classifier,
            backoff,
            debug=config.debug,
        )
        self._sweeper = ExpirySweeper(self.session, config.sweep_interval)
        self._closed = False

    # ─── Core execution ────────────────────────────────────────────────

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str,
        *,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> T:
        """Run ``operation`` with session recovery and bounded retry.

        See RetryExecutor.execute_with_retry for the outcome contract.

        Raises:
            ClientClosedError: If the client was closed.
        """
        if self._closed:
            raise ClientClosedError("client is closed")
        self._sweeper.start()
        return await self.executor.execute_with_retry(
            operation, label, cancel=cancel, timeout=timeout
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, Any] | None = None,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        label = f"{method} {path}"

        async def operation() -> httpx.Response:
            return await self.transport.perform_request(
                method, path, data=data, json=json, params=params
            )

        response = await self.execute_with_retry(operation, label)
        if not response.is_success:
            raise RequestError(label, response.status_code, response.text)
        return response

    async def login(self) -> None:
        """Log in now instead of on the first call."""
        if self._closed:
            raise ClientClosedError("client is closed")
        self._sweeper.start()
        await self.session.ensure_authenticated(self.executor)

    # ─── Status / introspection ────────────────────────────────────────

    def get_status(self) -> ConnectionState:
        return self.state.status

    def get_last_error(self) -> ClassifiedError | None:
        return self.state.last_error

    def get_connection_status(self) -> ConnectionStatus:
        """Snapshot of status and last error for health reporting."""
        err = self.state.last_error
        if err is None:
            return ConnectionStatus(status=self.state.status)
        return ConnectionStatus(
            status=self.state.status,
            error_kind=err.kind,
            message=err.message,
            permanent=err.permanent,
        )

    def is_auth_permanently_failed(self) -> bool:
        return self.state.auth_failed

    def reset_auth_failure(self) -> None:
        """Allow logins again after the credentials were fixed."""
        self.session.reset_auth_failure()

    def invalidate_session(self) -> None:
        """Forget the current session; the next call logs in again."""
        self.session.invalidate()

    async def is_session_valid(self) -> bool:
        return await self.session.is_session_valid()

    # ─── Lifecycle ─────────────────────────────────────────────────────

    async def update(self, config: ClientConfig) -> None:
        """Swap credentials, URL or timeouts at runtime and force a re-login.

        Retry settings stay as constructed. Changing the credentials also
        clears a latched authentication failure.
        """
        credentials_changed = (
            config.username != self.config.username
            or config.password.get_secret_value() != self.config.password.get_secret_value()
            or config.base_url != self.config.base_url
        )
        self.config = config
        self.session.config = config
        await self.transport.reconfigure(config)
        self.session.invalidate()
        if credentials_changed and self.state.auth_failed:
            self.session.reset_auth_failure()
        _logger.info("client.reconfigured", base_url=config.base_url)

    async def close(self) -> ClassifiedError | None:
        """Log out (best effort), then release everything.

        Local session state is invalidated, the expiry sweep stopped and the
        HTTP client closed whether or not the remote logout succeeds.

        Returns:
            The logout failure, or None.
        """
        if self._closed:
            return None
        self._closed = True
        try:
            return await self.session.logout()
        finally:
            await self._sweeper.stop()
            await self.transport.aclose()
            _logger.debug("client.closed")

    async def __aenter__(self) -> Client:
        self._sweeper.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()
