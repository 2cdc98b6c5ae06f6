"""Session manager: login, logout, and session freshness.

Owns every transition of a client's SessionState. The retry executor asks
it to ``ensure_authenticated`` before each attempt and to ``invalidate``
whenever an authenticated call comes back 401/403.

Login is two requests:

1. An unauthenticated accessibility probe (``GET /api/v2/app/version``).
   A transport error or a 5xx here means the server is down or the URL is
   wrong, which is reported as such instead of as a credential problem.
2. A form-encoded ``POST /api/v2/auth/login``. The server answers bad
   credentials with ``200 Fails.``, so the body is checked as well as the
   status.
"""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING

import httpx

from qbitclient.core.config import ClientConfig
from qbitclient.core.constants import (
    LOGIN_FAILURE_SENTINEL,
    PATH_APP_VERSION,
    PATH_AUTH_LOGIN,
    PATH_AUTH_LOGOUT,
    SESSION_PROBE_TIMEOUT_SECONDS,
)
from qbitclient.core.errors import (
    ClassifiedError,
    ConnectionState,
    ErrorClassifier,
    ErrorKind,
)
from qbitclient.core.logging import get_logger
from qbitclient.transport import Transport, extract_artifacts

from .state import SessionState

if TYPE_CHECKING:
    from qbitclient.execution.retry import RetryExecutor

# Module-level logger for session events
_logger = get_logger("session")

LOGIN_OPERATION = "login"


class SessionManager:
    """Manages the authenticated session for one client.

    Attributes:
        config: Active client configuration (credentials, timeouts).
        state: The client's SessionState.
        transport: Transport used for login, logout and probes.
        classifier: ErrorClassifier for transport failures and statuses.
    """

    def __init__(
        self,
        config: ClientConfig,
        state: SessionState,
        transport: Transport,
        classifier: ErrorClassifier,
    ) -> None:
        self.config = config
        self.state = state
        self.transport = transport
        self.classifier = classifier
        self._rejection_lock = threading.Lock()
        self._consecutive_rejections = 0

    # ─── Login ─────────────────────────────────────────────────────────

    async def login(self) -> None:
        """Probe the server, then submit credentials.

        Raises:
            ClassifiedError: AUTH_FAILURE (permanent) when the latch is set or
                the credentials are rejected; the probe's classification when
                the server is unreachable; the status classification for any
                other non-200 login response.
        """
        if self.state.auth_failed:
            raise self._latched_error()

        await self._check_accessibility()

        try:
            response = await self.transport.perform_request(
                "POST",
                PATH_AUTH_LOGIN,
                data={
                    "username": self.config.username,
                    "password": self.config.password.get_secret_value(),
                },
                headers={"Referer": self.config.base_url},
                use_session=False,
            )
        except httpx.HTTPError as exc:
            err = self.classifier.classify(exc)
            self.record_error(err)
            raise err from exc

        if response.status_code != 200:
            err = self.classifier.classify_status(response.status_code, response.text)
            if err.kind is ErrorKind.AUTH_FAILURE:
                self.state.set_status(ConnectionState.UNAUTHORIZED)
            self.record_error(err)
            raise err

        if LOGIN_FAILURE_SENTINEL in response.text:
            err = ClassifiedError(
                ErrorKind.AUTH_FAILURE,
                "Invalid username or password",
                permanent=True,
                status_code=response.status_code,
                body=response.text,
            )
            self.state.set_status(ConnectionState.UNAUTHORIZED)
            self.record_error(err)
            raise err

        self.state.mark_authenticated(extract_artifacts(response))
        self.state.set_last_error(None)
        _logger.info(
            "session.login_succeeded",
            base_url=self.config.base_url,
            artifact_count=len(self.state.cache),
        )

    async def _check_accessibility(self) -> None:
        try:
            response = await self.transport.perform_request(
                "GET", PATH_APP_VERSION, use_session=False
            )
        except httpx.HTTPError as exc:
            err = self.classifier.classify(exc)
            self._mark_unreachable(err)
            raise err from exc

        if response.status_code >= 400:
            err = self.classifier.classify_status(response.status_code, response.text)
            # other 4xx replies still reached a server; login decides
            if response.status_code >= 500 or err.kind is ErrorKind.HTTPS_REQUIRED:
                self._mark_unreachable(err)
                raise err

    def _mark_unreachable(self, err: ClassifiedError) -> None:
        self.state.set_status(ConnectionState.UNREACHABLE)
        self.record_error(err)
        _logger.warning(
            "session.server_unreachable",
            base_url=self.config.base_url,
            kind=err.kind.value,
            error=err.message,
        )

    def _latched_error(self) -> ClassifiedError:
        return ClassifiedError(
            ErrorKind.AUTH_FAILURE,
            "Authentication permanently failed; fix credentials and call reset_auth_failure()",
            permanent=True,
        )

    # ─── Ensure / validate ─────────────────────────────────────────────

    async def ensure_authenticated(
        self,
        executor: RetryExecutor,
        *,
        cancel: asyncio.Event | None = None,
        deadline: float | None = None,
    ) -> None:
        """Log in unless the cached validity flag says the session is live.

        The login runs through ``executor``'s retry loop under the label
        ``"login"``, so transient probe or login failures back off and retry.

        Raises:
            PermanentFailureError: Credentials rejected or latch set.
            RetryExhaustedError: Login kept failing transiently.
            OperationCancelledError: Cancelled while logging in.
        """
        if self.state.valid:
            return
        if self.config.debug:
            _logger.debug("session.login_required", status=self.state.status.value)
        await executor.run(
            self.login,
            LOGIN_OPERATION,
            authenticate=False,
            cancel=cancel,
            deadline=deadline,
        )

    async def is_session_valid(self) -> bool:
        """Cheap freshness check.

        Returns the cached flag when it is set. A client that never logged
        in, or whose last login is older than the expiry window, is invalid
        without any traffic. Otherwise one authenticated probe decides and
        its outcome is written back to the flag.
        """
        if self.state.valid:
            return True

        age = self.state.session_age()
        if age is None or age > self.state.expiry_window:
            self.state.mark_valid(False)
            return False

        try:
            response = await self.transport.perform_request(
                "GET",
                PATH_APP_VERSION,
                apply_received_artifacts=True,
                timeout=SESSION_PROBE_TIMEOUT_SECONDS,
            )
        except httpx.HTTPError as exc:
            _logger.debug("session.probe_failed", error=str(exc))
            return False

        valid = response.status_code == 200
        self.state.mark_valid(valid)
        return valid

    # ─── Invalidation / logout ─────────────────────────────────────────

    def invalidate(self) -> None:
        """Drop the session so the next call logs in again."""
        self.state.invalidate()
        if self.config.debug:
            _logger.debug("session.invalidated")

    async def logout(self) -> ClassifiedError | None:
        """Best-effort remote logout followed by unconditional invalidation.

        Returns:
            The classified logout failure, or None if it succeeded or there
            was no session to end.
        """
        failure: ClassifiedError | None = None
        try:
            if self.state.valid or len(self.state.cache):
                response = await self.transport.perform_request(
                    "POST",
                    PATH_AUTH_LOGOUT,
                    timeout=self.config.request_timeout,
                )
                if response.status_code != 200:
                    failure = self.classifier.classify_status(
                        response.status_code, response.text
                    )
        except httpx.HTTPError as exc:
            failure = self.classifier.classify(exc)
        finally:
            self.invalidate()

        if failure is not None:
            _logger.warning("session.logout_failed", kind=failure.kind.value, error=failure.message)
        return failure

    # ─── Error bookkeeping ─────────────────────────────────────────────

    def record_error(self, err: ClassifiedError) -> None:
        """Store ``err`` as the last error; a permanent auth failure latches."""
        self.state.set_last_error(err)
        if err.kind is ErrorKind.AUTH_FAILURE and err.permanent:
            if not self.state.auth_failed:
                _logger.warning(
                    "session.auth_failure_latched",
                    base_url=self.config.base_url,
                    error=err.message,
                )
            self.state.set_auth_failed(True)

    def reset_auth_failure(self) -> None:
        """Clear the auth-failure latch and last error after a credential fix."""
        self.state.set_auth_failed(False)
        self.state.set_last_error(None)
        self.state.set_status(ConnectionState.INITIALIZING)
        with self._rejection_lock:
            self._consecutive_rejections = 0
        _logger.info("session.auth_failure_reset")

    def note_session_rejected(self, status_code: int) -> bool:
        """Count a 401/403 on an authenticated call.

        Returns:
            True if this rejection latched the permanent auth failure.
        """
        threshold = self.config.auth_rejection_latch_threshold
        if threshold is None:
            return False
        with self._rejection_lock:
            self._consecutive_rejections += 1
            count = self._consecutive_rejections
        if count < threshold:
            return False
        self.record_error(
            ClassifiedError(
                ErrorKind.AUTH_FAILURE,
                f"Session rejected {count} consecutive times; credentials may have been revoked",
                permanent=True,
                status_code=status_code,
            )
        )
        return True

    def note_request_succeeded(self) -> None:
        """Reset the consecutive-rejection counter."""
        with self._rejection_lock:
            self._consecutive_rejections = 0
