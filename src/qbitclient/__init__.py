"""qbitclient - resilient async client for the qBittorrent Web API."""

from qbitclient.client import Client, ClientClosedError
from qbitclient.core.config import ClientConfig, RetryPolicy
from qbitclient.core.errors import (
    ClassifiedError,
    ConnectionState,
    ConnectionStatus,
    ErrorKind,
    OperationCancelledError,
    OperationError,
    PermanentFailureError,
    QbitClientError,
    RequestError,
    RetryExhaustedError,
)

__version__ = "0.4.0"

__all__ = [
    "Client",
    "ClientClosedError",
    "ClientConfig",
    "RetryPolicy",
    "ClassifiedError",
    "ConnectionState",
    "ConnectionStatus",
    "ErrorKind",
    "OperationCancelledError",
    "OperationError",
    "PermanentFailureError",
    "QbitClientError",
    "RequestError",
    "RetryExhaustedError",
    "__version__",
]
