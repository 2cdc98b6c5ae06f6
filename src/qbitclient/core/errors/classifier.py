"""ErrorClassifier implementation.

Reduces raw transport exceptions and HTTP responses to ClassifiedError
instances. Classification runs in three stages, first hit wins:

1. Pass-through: an exception that is (or wraps) a ClassifiedError is
   returned unchanged.
2. Structured inspection of the exception and its ``__cause__`` /
   ``__context__`` chain: httpx timeouts, ``socket.gaierror``, ``ssl``
   errors, ``ConnectionRefusedError``, unreachable-network errnos and
   httpx protocol errors from plaintext requests to a TLS port.
3. Case-insensitive substring matching of the message against an ordered
   pattern table, for errors that only arrive as text.
"""

from __future__ import annotations

import errno
import socket
import ssl
from collections.abc import Iterator, Sequence

import httpx

from qbitclient.core.logging import get_logger

from .codes import ErrorKind
from .models import ClassifiedError, OperationError

# Module-level logger for error classification
_logger = get_logger("errors")


# =============================================================================
# Free-text fallback table.
# Rows are (substring, kind, message) and are checked in order; the first
# substring found in the lower-cased error text wins.
# =============================================================================

_DEFAULT_MESSAGE_PATTERNS: tuple[tuple[str, ErrorKind, str], ...] = (
    # Timeouts
    ("timeout", ErrorKind.TIMEOUT, "Request timed out"),
    ("timed out", ErrorKind.TIMEOUT, "Request timed out"),
    ("deadline exceeded", ErrorKind.TIMEOUT, "Request timed out"),
    ("context canceled", ErrorKind.TIMEOUT, "Request timed out"),
    # Certificates / TLS
    ("certificate", ErrorKind.SSL_ERROR, "SSL/TLS connection failed - check certificate configuration"),
    ("x509", ErrorKind.SSL_ERROR, "SSL/TLS connection failed - check certificate configuration"),
    ("tls", ErrorKind.SSL_ERROR, "SSL/TLS connection failed - check certificate configuration"),
    ("ssl", ErrorKind.SSL_ERROR, "SSL/TLS connection failed - check certificate configuration"),
    # Protocol mismatch
    ("malformed http response", ErrorKind.HTTPS_REQUIRED, "Protocol mismatch - try using HTTPS instead of HTTP"),
    ("first record does not look like a tls handshake", ErrorKind.HTTPS_REQUIRED, "Protocol mismatch - try using HTTPS instead of HTTP"),
    ("plain http request was sent to https port", ErrorKind.HTTPS_REQUIRED, "Protocol mismatch - try using HTTPS instead of HTTP"),
    # Connection level
    ("connection refused", ErrorKind.CONNECTION_REFUSED, "Connection refused - server may be down"),
    ("network is unreachable", ErrorKind.NETWORK_UNREACHABLE, "Network unreachable - check network connectivity"),
    ("no route to host", ErrorKind.NETWORK_UNREACHABLE, "Network unreachable - check network connectivity"),
    # Name resolution
    ("no such host", ErrorKind.DNS_ERROR, "DNS resolution failed - check hostname"),
    ("name or service not known", ErrorKind.DNS_ERROR, "DNS resolution failed - check hostname"),
    ("nodename nor servname", ErrorKind.DNS_ERROR, "DNS resolution failed - check hostname"),
    ("getaddrinfo", ErrorKind.DNS_ERROR, "DNS resolution failed - check hostname"),
    ("lookup", ErrorKind.DNS_ERROR, "DNS resolution failed - check hostname"),
    ("dns", ErrorKind.DNS_ERROR, "DNS resolution failed - check hostname"),
    # Authentication, including the server's literal "Fails." login reply
    ("fails.", ErrorKind.AUTH_FAILURE, "Invalid username or password"),
    ("unauthorized", ErrorKind.AUTH_FAILURE, "Invalid username or password"),
    ("authentication failed", ErrorKind.AUTH_FAILURE, "Invalid username or password"),
    ("invalid username", ErrorKind.AUTH_FAILURE, "Invalid username or password"),
    ("invalid password", ErrorKind.AUTH_FAILURE, "Invalid username or password"),
    ("invalid credentials", ErrorKind.AUTH_FAILURE, "Invalid username or password"),
)

_UNREACHABLE_ERRNOS = frozenset({errno.ENETUNREACH, errno.EHOSTUNREACH})

# ssl reasons that mean one side spoke plaintext
_PROTOCOL_MISMATCH_SSL_REASONS = frozenset({
    "WRONG_VERSION_NUMBER",
    "HTTP_REQUEST",
    "RECORD_LAYER_FAILURE",
})

# h11/httpcore messages seen when an http:// request reaches a TLS-only port
_PLAINTEXT_TO_TLS_MESSAGES = (
    "illegal request line",
    "illegal status line",
    "server disconnected without sending a response",
)

_PROTOCOL_MISMATCH_MESSAGE = "Protocol mismatch - try using HTTPS instead of HTTP"


def _request_scheme(exc: httpx.RequestError) -> str | None:
    try:
        return exc.request.url.scheme
    except RuntimeError:
        # .request is unset on errors raised outside a client send
        return None


def _iter_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield exc followed by its __cause__/__context__ chain, skipping cycles."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


class ErrorClassifier:
    """Classifies transport exceptions and HTTP statuses into ErrorKinds.

    The classifier is stateless apart from its pattern table, so one
    instance is shared across every request a client makes.

    Example:
        classifier = ErrorClassifier()
        try:
            await client.get("/api/v2/app/version")
        except httpx.HTTPError as exc:
            err = classifier.classify(exc)
            if err.permanent:
                raise err from exc
    """

    def __init__(
        self,
        message_patterns: Sequence[tuple[str, ErrorKind, str]] | None = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            message_patterns: Ordered ``(substring, kind, message)`` rows for
                the free-text stage. Substrings are matched case-insensitively.
        """
        rows = _DEFAULT_MESSAGE_PATTERNS if message_patterns is None else message_patterns
        self.message_patterns: tuple[tuple[str, ErrorKind, str], ...] = tuple(
            (needle.lower(), kind, message) for needle, kind, message in rows
        )

    def classify(self, raw: BaseException) -> ClassifiedError:
        """Classify an exception.

        Args:
            raw: Any exception raised while performing a request.

        Returns:
            The ClassifiedError found in ``raw``'s chain, or a new one.
        """
        existing = self._find_classified(raw)
        if existing is not None:
            return existing

        result = self._classify_structured(raw)
        method = "structured"
        if result is None:
            result = self.classify_message(str(raw) or type(raw).__name__, cause=raw)
            method = "message"

        _logger.debug(
            "error_classified",
            kind=result.kind.value,
            permanent=result.permanent,
            method=method,
            exception_type=type(raw).__name__,
        )
        return result

    def classify_message(
        self, text: str, *, cause: BaseException | None = None
    ) -> ClassifiedError:
        """Classify free text using the ordered pattern table."""
        lowered = text.lower()
        for needle, kind, message in self.message_patterns:
            if needle in lowered:
                return ClassifiedError(kind, message, cause=cause)
        return ClassifiedError(ErrorKind.UNKNOWN, "Unknown error occurred", cause=cause)

    def classify_status(self, status_code: int, body: str = "") -> ClassifiedError:
        """Classify a non-success HTTP response.

        Args:
            status_code: HTTP status code.
            body: Response body text, carried on the error for diagnostics.

        Returns:
            ClassifiedError for the status.
        """
        mismatch = self._protocol_mismatch(body) if status_code == 400 else None
        if status_code in (401, 403):
            kind = ErrorKind.AUTH_FAILURE
            message = f"Authentication failed with status {status_code}"
        elif mismatch is not None:
            # e.g. nginx: "The plain HTTP request was sent to HTTPS port"
            kind = ErrorKind.HTTPS_REQUIRED
            message = mismatch
        elif status_code == 502:
            kind = ErrorKind.BAD_GATEWAY
            message = f"Bad Gateway (502): {body}"
        elif status_code == 503:
            kind = ErrorKind.SERVICE_UNAVAILABLE
            message = f"Service Unavailable (503): {body}"
        elif status_code == 504:
            kind = ErrorKind.TIMEOUT
            message = f"Gateway Timeout (504): {body}"
        else:
            kind = ErrorKind.UNKNOWN
            message = f"Request failed with status {status_code}: {body}"
        return ClassifiedError(kind, message, status_code=status_code, body=body)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _protocol_mismatch(self, body: str) -> str | None:
        """Message of the first protocol-mismatch row found in ``body``."""
        lowered = body.lower()
        for needle, kind, message in self.message_patterns:
            if kind is ErrorKind.HTTPS_REQUIRED and needle in lowered:
                return message
        return None

    @staticmethod
    def _find_classified(raw: BaseException) -> ClassifiedError | None:
        for exc in _iter_chain(raw):
            if isinstance(exc, ClassifiedError):
                return exc
            if isinstance(exc, OperationError):
                return exc.error
        return None

    @staticmethod
    def _classify_structured(raw: BaseException) -> ClassifiedError | None:
        for exc in _iter_chain(raw):
            if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
                return ClassifiedError(ErrorKind.TIMEOUT, "Request timed out", cause=raw)
            if isinstance(exc, httpx.RemoteProtocolError) and _request_scheme(exc) == "http":
                text = str(exc).lower()
                if any(marker in text for marker in _PLAINTEXT_TO_TLS_MESSAGES):
                    return ClassifiedError(
                        ErrorKind.HTTPS_REQUIRED, _PROTOCOL_MISMATCH_MESSAGE, cause=raw
                    )
            if isinstance(exc, socket.gaierror):
                return ClassifiedError(
                    ErrorKind.DNS_ERROR, "Failed to resolve hostname", cause=raw
                )
            if isinstance(exc, ssl.SSLCertVerificationError):
                return ClassifiedError(
                    ErrorKind.SSL_ERROR, "SSL certificate verification failed", cause=raw
                )
            if isinstance(exc, ssl.SSLError):
                if getattr(exc, "reason", None) in _PROTOCOL_MISMATCH_SSL_REASONS:
                    return ClassifiedError(
                        ErrorKind.HTTPS_REQUIRED,
                        "Protocol mismatch - the server does not speak TLS on this port",
                        cause=raw,
                    )
                return ClassifiedError(
                    ErrorKind.SSL_ERROR, "SSL/TLS handshake failed", cause=raw
                )
            if isinstance(exc, ConnectionRefusedError):
                return ClassifiedError(
                    ErrorKind.CONNECTION_REFUSED,
                    "Connection refused - server may be down or port is incorrect",
                    cause=raw,
                )
            if isinstance(exc, OSError) and exc.errno in _UNREACHABLE_ERRNOS:
                return ClassifiedError(
                    ErrorKind.NETWORK_UNREACHABLE,
                    "Network unreachable - check network connectivity",
                    cause=raw,
                )
        return None


# Shared default instance used by the module-level helpers
_default_classifier = ErrorClassifier()


def classify(raw: BaseException) -> ClassifiedError:
    """Classify ``raw`` with the default classifier."""
    return _default_classifier.classify(raw)


def classify_status(status_code: int, body: str = "") -> ClassifiedError:
    """Classify an HTTP status with the default classifier."""
    return _default_classifier.classify_status(status_code, body)


def get_error_kind(exc: BaseException | None) -> ErrorKind | None:
    """Return the ErrorKind of ``exc``, or None when there is no error."""
    if exc is None:
        return None
    return classify(exc).kind


def is_permanent(exc: BaseException | None) -> bool:
    """Whether ``exc`` is a failure that retrying cannot fix."""
    if exc is None:
        return False
    return classify(exc).permanent


def is_retryable(exc: BaseException | None) -> bool:
    """Whether ``exc`` is a failure worth retrying."""
    if exc is None:
        return False
    return not classify(exc).permanent
