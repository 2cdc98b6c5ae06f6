"""Session cookie cache.

Holds the cookies returned by a successful login together with a local
expiry clock. The server's own session lifetime is configurable and usually
shorter, so expiry here is only a presumption of staleness; the retry
executor still treats a 401/403 as the authoritative signal.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping

from qbitclient.core.constants import SESSION_EXPIRY_SECONDS

from .locks import ReadWriteLock


class SessionCache:
    """Thread-safe store of session artifacts (cookie name -> value).

    Attributes:
        expiry_window: Seconds after construction or clear() at which the
            cached set is presumed stale.
    """

    def __init__(
        self,
        expiry_window: float = SESSION_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if expiry_window <= 0:
            raise ValueError("expiry_window must be positive")
        self.expiry_window = expiry_window
        self._clock = clock
        self._lock = ReadWriteLock()
        self._artifacts: dict[str, str] = {}
        now = clock()
        self._expires_at = now + expiry_window
        self._last_used: float | None = None

    def update(self, artifacts: Mapping[str, str]) -> None:
        """Merge ``artifacts`` into the cache, overwriting by name."""
        with self._lock.write():
            self._artifacts.update(artifacts)
            self._last_used = self._clock()

    def clear(self) -> None:
        """Drop every artifact and restart the expiry window from now."""
        with self._lock.write():
            self._artifacts.clear()
            self._expires_at = self._clock() + self.expiry_window

    def snapshot(self) -> dict[str, str]:
        """Return a copy of the cached artifacts."""
        with self._lock.read():
            return dict(self._artifacts)

    def get(self, name: str) -> str | None:
        with self._lock.read():
            return self._artifacts.get(name)

    @property
    def expires_at(self) -> float:
        with self._lock.read():
            return self._expires_at

    @property
    def last_used(self) -> float | None:
        with self._lock.read():
            return self._last_used

    def is_expired(self) -> bool:
        """Whether the local expiry window has passed."""
        with self._lock.read():
            return self._clock() >= self._expires_at

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._artifacts)

    def __repr__(self) -> str:
        return f"SessionCache(entries={len(self)}, expiry_window={self.expiry_window})"
