"""Execution: backoff policy and the retry executor."""

from qbitclient.execution.backoff import BackoffPolicy
from qbitclient.execution.retry import RetryExecutor

__all__ = [
    "BackoffPolicy",
    "RetryExecutor",
]
