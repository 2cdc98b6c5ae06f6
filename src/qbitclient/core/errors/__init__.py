"""Error classification and handling.

Re-exports all public symbols.
"""

from qbitclient.core.errors.codes import ConnectionState, ErrorKind
from qbitclient.core.errors.models import (
    ClassifiedError,
    ConnectionStatus,
    OperationCancelledError,
    OperationError,
    PermanentFailureError,
    QbitClientError,
    RequestError,
    RetryExhaustedError,
)
from qbitclient.core.errors.classifier import (
    ErrorClassifier,
    classify,
    classify_status,
    get_error_kind,
    is_permanent,
    is_retryable,
)

__all__ = [
    "ConnectionState",
    "ErrorKind",
    "ClassifiedError",
    "ConnectionStatus",
    "OperationCancelledError",
    "OperationError",
    "PermanentFailureError",
    "QbitClientError",
    "RequestError",
    "RetryExhaustedError",
    "ErrorClassifier",
    "classify",
    "classify_status",
    "get_error_kind",
    "is_permanent",
    "is_retryable",
]
