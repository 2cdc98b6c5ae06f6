"""Structured logging for qbitclient.

Every component logs through structlog with a ``component`` field and, while
an operation is being retried, an ``operation`` field naming it. Credentials
and session cookies are redacted before rendering.

Example usage:
    from qbitclient.core.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", format="console")

    logger = get_logger("session")
    logger.info("session.login_succeeded", base_url="http://localhost:8080")

    with operation_context("GET /api/v2/torrents/info"):
        logger.debug("retry.attempt_started", attempt=0)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Literal

import structlog
from pydantic import SecretStr
from structlog.types import EventDict, Processor, WrappedLogger

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]

REDACTED = "[REDACTED]"

# Substrings of field names whose values are never rendered
SENSITIVE_PATTERNS = frozenset({
    "password",
    "passwd",
    "secret",
    "token",
    "cookie",
    "authorization",
    "api_key",
    "apikey",
    "credential",
})

# httpx logs one INFO line per request; only let it through at DEBUG
_NOISY_LIBRARIES = ("httpx", "httpcore")

_operation_label: ContextVar[str | None] = ContextVar("qbitclient_operation", default=None)


def get_current_operation() -> str | None:
    """Label of the operation running in this task, or None."""
    return _operation_label.get()


@contextmanager
def operation_context(label: str) -> Iterator[str]:
    """Attach ``operation=label`` to everything logged inside the block.

    The label lives in a ContextVar, so concurrent calls on one client
    each carry their own.
    """
    token = _operation_label.set(label)
    try:
        yield label
    finally:
        _operation_label.reset(token)


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(pattern in lowered for pattern in SENSITIVE_PATTERNS)


def _redact(key: str, value: Any) -> Any:
    """Return ``value``, or the redaction marker if it must not be logged."""
    if isinstance(value, SecretStr) or _is_sensitive(key):
        return REDACTED
    return value


def _redact_secrets(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor: redact top-level fields and header-style mappings."""
    clean: EventDict = {}
    for key, value in event_dict.items():
        if isinstance(value, Mapping):
            clean[key] = {str(k): _redact(str(k), v) for k, v in value.items()}
        else:
            clean[key] = _redact(key, value)
    return clean


def _add_operation(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    # an explicit operation= keyword wins over the context
    label = _operation_label.get()
    if label is not None:
        event_dict.setdefault("operation", label)
    return event_dict


class QbitLogger:
    """Logger bound to one component, plus any extra fields given at creation.

    The structlog logger is resolved on every call, so module-level loggers
    pick up whatever configure_logging() installed later.
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._context: dict[str, Any] = {"component": component, **initial_context}

    @property
    def component(self) -> str:
        return str(self._context["component"])

    def bind(self, **context: Any) -> QbitLogger:
        """Return a copy of this logger with more fields bound."""
        merged = {**self._context, **context}
        component = merged.pop("component")
        return QbitLogger(component, **merged)

    def _emit(self, method: str, event: str, fields: dict[str, Any]) -> None:
        bound = structlog.get_logger().bind(**self._context)
        getattr(bound, method)(event, **fields)

    def debug(self, event: str, **kw: Any) -> None:
        self._emit("debug", event, kw)

    def info(self, event: str, **kw: Any) -> None:
        self._emit("info", event, kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._emit("warning", event, kw)

    def error(self, event: str, **kw: Any) -> None:
        self._emit("error", event, kw)


def _build_output(fmt: LogFormat) -> tuple[logging.Handler, Processor]:
    if fmt == "json":
        return logging.StreamHandler(sys.stdout), structlog.processors.JSONRenderer()
    colors = sys.stderr.isatty()
    return logging.StreamHandler(sys.stderr), structlog.dev.ConsoleRenderer(colors=colors)


def configure_logging(
    level: LogLevel = "INFO",
    format: LogFormat = "console",  # noqa: A002
    include_timestamps: bool = True,
) -> None:
    """Install qbitclient's structlog pipeline on the root logger.

    Applications embedding the client normally configure logging
    themselves; the CLI calls this once per process.

    Args:
        level: Minimum level to emit.
        format: ``"json"`` writes one object per line to stdout,
            ``"console"`` writes readable lines to stderr.
        include_timestamps: Add a UTC ISO8601 ``timestamp`` field.
    """
    numeric_level = logging.getLevelName(level)
    handler, renderer = _build_output(format)
    handler.setLevel(numeric_level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _redact_secrets,
        _add_operation,
    ]
    if include_timestamps:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    processors += [
        structlog.processors.format_exc_info,
        renderer,
    ]

    # Loggers are not cached so ones created before this call still see it
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **initial_context: Any) -> QbitLogger:
    """Get a logger for ``component`` (``"session"``, ``"retry"``, ...)."""
    return QbitLogger(component, **initial_context)


__all__ = [
    "REDACTED",
    "SENSITIVE_PATTERNS",
    "LogFormat",
    "LogLevel",
    "QbitLogger",
    "configure_logging",
    "get_current_operation",
    "get_logger",
    "operation_context",
]
