"""Background session expiry sweep.

A cached validity flag can stay true long after the server forgot the
session if no calls are made for a while. The sweep invalidates the session
once the local expiry window has passed since the last login, independent
of any in-flight call.
"""

from __future__ import annotations

import asyncio

from qbitclient.core.logging import get_logger

from .manager import SessionManager

# Module-level logger for sweep events
_logger = get_logger("session.sweeper")


class ExpirySweeper:
    """Periodic task that expires stale sessions.

    Owned by the client: started on first use inside a running event loop
    and stopped (cancelled and awaited) on close.
    """

    def __init__(self, manager: SessionManager, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._manager = manager
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop on the running event loop. Idempotent."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._loop(), name="qbitclient-session-sweep")
        self._task.add_done_callback(self._on_loop_done)
        _logger.debug("sweeper.started", interval=self._interval)

    async def stop(self) -> None:
        """Stop the sweep loop and wait for it to finish."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            _logger.debug("sweeper.stopped")

    def sweep_once(self) -> bool:
        """Invalidate the session if it outlived the expiry window.

        Returns:
            True if the session was invalidated.
        """
        state = self._manager.state
        age = state.session_age()
        if age is None or age <= state.expiry_window or not state.valid:
            return False
        _logger.info("sweeper.session_expired", age_seconds=round(age, 1))
        self._manager.invalidate()
        return True

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("sweeper.loop_died_unexpectedly", error=str(exc))

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.sweep_once()
