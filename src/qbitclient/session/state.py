"""Per-client session state.

One SessionState is owned by each client instance and passed by reference
to the session manager and the retry executor. Nothing here is global.

Lock layout:
- validity flag, login timestamp and connection status share a
  ReadWriteLock (shared for reads, exclusive for login/invalidate);
- the permanent auth-failure latch has its own lock;
- the last observed error has its own lock.

Keeping the latch and last error off the read/write lock keeps error
bookkeeping from contending with the validity check made on every call.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping

from qbitclient.core.constants import SESSION_EXPIRY_SECONDS
from qbitclient.core.errors import ClassifiedError, ConnectionState

from .cache import SessionCache
from .locks import ReadWriteLock


class SessionState:
    """Lock-guarded authentication state for one client.

    Invariants:
        - ``valid`` is True only between a successful login and the next
          invalidation.
        - While ``auth_failed`` is set nothing may attempt a login.
    """

    def __init__(
        self,
        expiry_window: float = SESSION_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self.cache = SessionCache(expiry_window, clock=clock)

        self._rw = ReadWriteLock()
        self._valid = False
        self._last_authenticated_at: float | None = None
        self._status = ConnectionState.INITIALIZING

        self._auth_lock = threading.Lock()
        self._auth_failed = False

        self._error_lock = threading.Lock()
        self._last_error: ClassifiedError | None = None

    @property
    def expiry_window(self) -> float:
        return self.cache.expiry_window

    # ─── Validity / status (read/write lock) ───────────────────────────

    @property
    def valid(self) -> bool:
        with self._rw.read():
            return self._valid

    @property
    def status(self) -> ConnectionState:
        with self._rw.read():
            return self._status

    @property
    def last_authenticated_at(self) -> float | None:
        with self._rw.read():
            return self._last_authenticated_at

    def set_status(self, status: ConnectionState) -> None:
        with self._rw.write():
            self._status = status

    def mark_authenticated(self, artifacts: Mapping[str, str]) -> None:
        """Record a successful login."""
        with self._rw.write():
            self.cache.update(artifacts)
            self._valid = True
            self._last_authenticated_at = self._clock()
            self._status = ConnectionState.CONNECTED

    def mark_valid(self, valid: bool) -> None:
        """Set the validity flag without touching the cache or status."""
        with self._rw.write():
            self._valid = valid

    def invalidate(self) -> None:
        """Drop the session: flag false, cache empty, status unauthorized."""
        with self._rw.write():
            self._valid = False
            self.cache.clear()
            self._status = ConnectionState.UNAUTHORIZED

    def session_age(self) -> float | None:
        """Seconds since the last successful login, or None if never."""
        with self._rw.read():
            if self._last_authenticated_at is None:
                return None
            return self._clock() - self._last_authenticated_at

    # ─── Auth-failure latch ────────────────────────────────────────────

    @property
    def auth_failed(self) -> bool:
        with self._auth_lock:
            return self._auth_failed

    def set_auth_failed(self, failed: bool) -> None:
        with self._auth_lock:
            self._auth_failed = failed

    # ─── Last observed error ───────────────────────────────────────────

    @property
    def last_error(self) -> ClassifiedError | None:
        with self._error_lock:
            return self._last_error

    def set_last_error(self, error: ClassifiedError | None) -> None:
        with self._error_lock:
            self._last_error = error
