"""Retry executor: authenticated execution with bounded retry.

Every remote call made by the client goes through
``RetryExecutor.execute_with_retry``. For each attempt ``n`` in
``0 .. max_retries``:

1. Entry: stop with OperationCancelledError if the caller cancelled or the
   deadline passed; stop with PermanentFailureError if the auth-failure
   latch is set; otherwise make sure a session exists (logging in through
   this same loop under the label ``"login"`` if needed).
2. Invoke the operation once:
   - exception: classify it; permanent errors end the call;
   - response 401/403: the server dropped the session; invalidate it and
     retry, so the next attempt logs in again;
   - response status in the retryable set: retry;
   - anything else: success, return the result.
3. Sleep ``backoff.delay_for_attempt(n)`` (interruptible), then retry, or
   raise RetryExhaustedError once ``max_retries + 1`` invocations failed.

A 401/403 is only transient here. The same status on the login request is a
credential problem, which the session manager reports as permanent.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from qbitclient.core.config import RetryPolicy
from qbitclient.core.errors import (
    ClassifiedError,
    ErrorClassifier,
    ErrorKind,
    OperationCancelledError,
    PermanentFailureError,
    RetryExhaustedError,
)
from qbitclient.core.logging import get_logger, operation_context

from .backoff import BackoffPolicy

if TYPE_CHECKING:
    from qbitclient.session.manager import SessionManager

T = TypeVar("T")

# Module-level logger for retry events
_logger = get_logger("retry")

_SESSION_REJECTED_STATUSES = frozenset({401, 403})


class RetryExecutor:
    """Runs operations with session recovery and exponential backoff.

    Concurrent calls run independent loops; nothing is coalesced. Two calls
    that both see an expired session will both invalidate and both log in,
    which is redundant but harmless.

    Attributes:
        policy: Immutable retry settings.
        session: Session manager consulted before each attempt.
        classifier: Classifier for exceptions and statuses.
        backoff: Delay policy between attempts.
        debug: Emit per-attempt debug tracing.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        session: SessionManager,
        classifier: ErrorClassifier,
        backoff: BackoffPolicy | None = None,
        *,
        debug: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy
        self.session = session
        self.classifier = classifier
        self.backoff = backoff or BackoffPolicy.from_retry_policy(policy)
        self.debug = debug
        self._clock = clock

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str,
        *,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
        authenticate: bool = True,
    ) -> T:
        """Run ``operation`` until it succeeds, fails permanently, or retries run out.

        Args:
            operation: Zero-argument coroutine function. It is invoked at most
                ``max_retries + 1`` times, never concurrently with itself. If it
                returns an ``httpx.Response`` the status is inspected.
            label: Name used in errors and logs, e.g. ``"GET /api/v2/app/version"``.
            cancel: Event the caller sets to abandon the call.
            timeout: Overall deadline in seconds for the whole call, retries and
                sleeps included.
            authenticate: Ensure a session before each attempt.

        Returns:
            Whatever the successful invocation returned.

        Raises:
            PermanentFailureError: A permanent failure, or the auth latch is set.
            RetryExhaustedError: Every attempt failed transiently.
            OperationCancelledError: Cancelled or deadline passed.
        """
        deadline = None if timeout is None else self._clock() + timeout
        return await self.run(
            operation,
            label,
            cancel=cancel,
            deadline=deadline,
            authenticate=authenticate,
        )

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str,
        *,
        cancel: asyncio.Event | None = None,
        deadline: float | None = None,
        authenticate: bool = True,
    ) -> T:
        """Same as execute_with_retry but with an absolute monotonic deadline."""
        max_attempts = self.policy.max_attempts
        attempt = 0

        with operation_context(label):
            while True:
                self._check_cancelled(label, cancel, deadline)
                if self.session.state.auth_failed:
                    raise PermanentFailureError(label, self._latched_error(), attempt)

                if self.debug:
                    _logger.debug(
                        "retry.attempt_started",
                        attempt=attempt,
                        max_attempts=max_attempts,
                    )

                try:
                    if authenticate:
                        await self.session.ensure_authenticated(
                            self, cancel=cancel, deadline=deadline
                        )
                    result = await self._invoke(operation, label, cancel, deadline)
                except OperationCancelledError as exc:
                    if exc.label == label:
                        raise
                    raise OperationCancelledError(label, f"{exc.label}: {exc.reason}") from exc
                except Exception as exc:
                    error = self.classifier.classify(exc)
                else:
                    rejected = self._inspect_result(result)
                    if rejected is None:
                        if authenticate:
                            self.session.note_request_succeeded()
                        if self.debug and attempt:
                            _logger.debug("retry.succeeded", attempts=attempt + 1)
                        return result
                    error = rejected

                if error.permanent:
                    self.session.state.set_last_error(error)
                    _logger.warning(
                        "retry.permanent_failure",
                        kind=error.kind.value,
                        attempts=attempt + 1,
                        error=error.message,
                    )
                    raise PermanentFailureError(label, error, attempt + 1)

                if attempt + 1 >= max_attempts:
                    self.session.state.set_last_error(error)
                    _logger.warning(
                        "retry.exhausted",
                        attempts=max_attempts,
                        kind=error.kind.value,
                        error=error.message,
                    )
                    raise RetryExhaustedError(label, error, max_attempts)

                delay = self.backoff.delay_for_attempt(attempt)
                if self.debug:
                    _logger.debug(
                        "retry.attempt_failed",
                        attempt=attempt,
                        max_attempts=max_attempts,
                        delay=delay,
                        kind=error.kind.value,
                        error=str(error),
                    )
                await self._sleep(delay, label, cancel, deadline)
                attempt += 1

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _latched_error(self) -> ClassifiedError:
        last = self.session.state.last_error
        if last is not None and last.kind is ErrorKind.AUTH_FAILURE:
            return last
        return ClassifiedError(
            ErrorKind.AUTH_FAILURE,
            "Authentication permanently failed; fix credentials and call reset_auth_failure()",
            permanent=True,
        )

    def _inspect_result(self, result: Any) -> ClassifiedError | None:
        """Return the failure a response represents, or None for success."""
        if not isinstance(result, httpx.Response):
            return None

        status = result.status_code
        if status in _SESSION_REJECTED_STATUSES:
            self.session.invalidate()
            latched = self.session.note_session_rejected(status)
            return ClassifiedError(
                ErrorKind.AUTH_FAILURE,
                f"Session rejected with status {status}",
                permanent=latched,
                status_code=status,
            )
        if status in self.policy.retryable_status_codes:
            return self.classifier.classify_status(status, result.text).as_transient()
        return None

    def _check_cancelled(
        self,
        label: str,
        cancel: asyncio.Event | None,
        deadline: float | None,
    ) -> None:
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(label, "cancellation requested")
        if deadline is not None and self._clock() >= deadline:
            raise OperationCancelledError(label, "deadline exceeded")

    async def _invoke(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str,
        cancel: asyncio.Event | None,
        deadline: float | None,
    ) -> T:
        """Await one invocation, racing it against cancellation and the deadline."""
        if cancel is None and deadline is None:
            return await operation()

        op_task: asyncio.Future[T] = asyncio.ensure_future(operation())
        waiters: set[asyncio.Future[Any]] = {op_task}
        cancel_task: asyncio.Future[Any] | None = None
        if cancel is not None:
            cancel_task = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_task)
        timeout = None if deadline is None else max(0.0, deadline - self._clock())

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if cancel_task is not None:
                cancel_task.cancel()
            if not op_task.done():
                op_task.cancel()
                await asyncio.gather(op_task, return_exceptions=True)

        if op_task in done:
            return op_task.result()
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(label, "cancelled during request")
        raise OperationCancelledError(label, "deadline exceeded during request")

    async def _sleep(
        self,
        delay: float,
        label: str,
        cancel: asyncio.Event | None,
        deadline: float | None,
    ) -> None:
        """Back off for ``delay`` seconds unless cancelled or out of time first."""
        hits_deadline = False
        if deadline is not None:
            remaining = deadline - self._clock()
            if remaining < delay:
                delay = max(0.0, remaining)
                hits_deadline = True

        if cancel is None:
            await asyncio.sleep(delay)
        else:
            waiter = asyncio.ensure_future(cancel.wait())
            try:
                done, _ = await asyncio.wait({waiter}, timeout=delay)
            finally:
                waiter.cancel()
            if done:
                raise OperationCancelledError(label, "cancelled during retry backoff")

        if hits_deadline:
            raise OperationCancelledError(label, "deadline exceeded during retry backoff")
