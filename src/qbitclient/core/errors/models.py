"""Exception and snapshot models for error handling.

This module provides:
- QbitClientError: Base class of every error the library raises
- ClassifiedError: A failure reduced to an ErrorKind with a permanence bit
- OperationError: Terminal outcome of a retried operation (permanent or exhausted)
- OperationCancelledError: The caller cancelled a retried operation
- RequestError: A final non-success HTTP response seen by the call surface
- ConnectionStatus: Point-in-time snapshot of a client's connection health
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .codes import ConnectionState, ErrorKind


class QbitClientError(Exception):
    """Base class for all qbitclient errors."""


class ClassifiedError(QbitClientError):
    """A failure classified into an ErrorKind.

    Attributes:
        kind: The classified kind.
        message: Human-readable description.
        cause: The underlying exception, if any. Also chained as ``__cause__``.
        permanent: Whether retrying can help. Defaults to the kind's permanence.
        status_code: HTTP status when the failure came from a response.
        body: Response body text when the failure came from a response.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        cause: BaseException | None = None,
        permanent: bool | None = None,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.cause = cause
        self.permanent = kind.is_permanent if permanent is None else permanent
        self.status_code = status_code
        self.body = body
        super().__init__(str(self))
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        text = f"{self.kind.value}: {self.message}"
        if self.cause is not None:
            text = f"{text} ({self.cause})"
        return text

    def __repr__(self) -> str:
        return (
            f"ClassifiedError(kind={self.kind.value!r}, message={self.message!r}, "
            f"permanent={self.permanent})"
        )

    def as_transient(self) -> ClassifiedError:
        """Return a copy of this error that the retry loop will retry."""
        return ClassifiedError(
            self.kind,
            self.message,
            cause=self.cause,
            permanent=False,
            status_code=self.status_code,
            body=self.body,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging or JSON output."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "permanent": self.permanent,
            "status_code": self.status_code,
        }


class OperationError(QbitClientError):
    """A retried operation reached a terminal failure.

    Attributes:
        label: Operation label, e.g. ``"login"`` or ``"POST /api/v2/torrents/add"``.
        error: The last classified failure.
        attempts: How many times the operation was invoked.
    """

    def __init__(self, label: str, error: ClassifiedError, attempts: int) -> None:
        self.label = label
        self.error = error
        self.attempts = attempts
        super().__init__(self._format())
        self.__cause__ = error

    def _format(self) -> str:
        return f"{self.label}: {self.error}"

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def permanent(self) -> bool:
        return self.error.permanent


class PermanentFailureError(OperationError):
    """The operation failed with an error that retrying cannot fix."""


class RetryExhaustedError(OperationError):
    """Every allowed attempt failed with a transient error."""

    def _format(self) -> str:
        return f"{self.label} failed after {self.attempts} attempts: {self.error}"


class OperationCancelledError(QbitClientError):
    """The caller cancelled the operation or its deadline passed.

    Distinct from the last transient failure so callers can tell a
    cancelled call from a failed one.
    """

    def __init__(self, label: str, reason: str) -> None:
        self.label = label
        self.reason = reason
        super().__init__(f"{label} cancelled: {reason}")


class RequestError(QbitClientError):
    """The server answered with a non-success status the retry loop accepted as final."""

    def __init__(self, label: str, status_code: int, body: str = "") -> None:
        self.label = label
        self.status_code = status_code
        self.body = body
        super().__init__(f"{label} returned status {status_code}: {body}")


@dataclass
class ConnectionStatus:
    """Snapshot of a client's connection health.

    Attributes:
        status: Current connection state.
        error_kind: Kind of the last observed error, if any.
        message: Message of the last observed error, empty when healthy.
        permanent: Whether the last observed error was permanent.
    """

    status: ConnectionState
    error_kind: ErrorKind | None = None
    message: str = ""
    permanent: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.message,
            "permanent": self.permanent,
        }
