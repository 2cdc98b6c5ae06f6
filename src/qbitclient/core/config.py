"""Client configuration models.

Defines the user-facing ClientConfig (connection, credentials, retry and
session tuning) and the immutable RetryPolicy derived from it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from qbitclient.core.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_MAX_BACKOFF_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_RETRYABLE_STATUS_CODES,
    SESSION_EXPIRY_SECONDS,
    SESSION_SWEEP_INTERVAL_SECONDS,
)

# Numeric fields where 0 or null means "use the default"
_ZERO_MEANS_DEFAULT: dict[str, float | int] = {
    "request_timeout": DEFAULT_REQUEST_TIMEOUT_SECONDS,
    "max_retries": DEFAULT_MAX_RETRIES,
    "retry_backoff": DEFAULT_RETRY_BACKOFF_SECONDS,
    "max_backoff": DEFAULT_MAX_BACKOFF_SECONDS,
    "backoff_factor": DEFAULT_BACKOFF_FACTOR,
    "session_expiry": SESSION_EXPIRY_SECONDS,
    "sweep_interval": SESSION_SWEEP_INTERVAL_SECONDS,
}

# Environment variable suffix -> ClientConfig field, for from_env()
_ENV_FIELDS: dict[str, str] = {
    "BASE_URL": "base_url",
    "USERNAME": "username",
    "PASSWORD": "password",
    "TIMEOUT": "request_timeout",
    "MAX_RETRIES": "max_retries",
    "RETRY_BACKOFF": "retry_backoff",
    "VERIFY_SSL": "verify_ssl",
    "DEBUG": "debug",
}


class RetryPolicy(BaseModel):
    """Immutable retry settings shared by every call on one client.

    Built once from ClientConfig; callers needing a different ceiling
    construct a client with a different config.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        description="Attempts beyond the first. Total invocations are max_retries + 1.",
    )
    base_delay: float = Field(
        default=DEFAULT_RETRY_BACKOFF_SECONDS,
        gt=0,
        description="Delay in seconds before the first retry",
    )
    max_delay: float = Field(
        default=DEFAULT_MAX_BACKOFF_SECONDS,
        gt=0,
        description="Ceiling in seconds on any single backoff delay",
    )
    backoff_factor: float = Field(
        default=DEFAULT_BACKOFF_FACTOR,
        ge=1.0,
        description="Multiplier applied to the delay per attempt",
    )
    retryable_status_codes: frozenset[int] = Field(
        default=DEFAULT_RETRYABLE_STATUS_CODES,
        description="HTTP statuses that count as a transient failure",
    )

    @property
    def max_attempts(self) -> int:
        """Total number of times an operation may be invoked."""
        return self.max_retries + 1


class ClientConfig(BaseModel):
    """Configuration for a qBittorrent Web API client.

    Numeric fields left at 0 (or null in YAML) fall back to their defaults,
    so a partially filled config behaves like an unset one.

    Example YAML:
        base_url: "http://localhost:8080"
        username: admin
        password: adminadmin
        request_timeout: 15
        max_retries: 5
    """

    base_url: str = Field(
        description="Base URL of the Web UI, e.g. http://localhost:8080",
    )
    username: str = Field(
        default="",
        description="Web UI username",
    )
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Web UI password",
    )
    request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        gt=0,
        description="Per-request timeout in seconds",
    )
    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        description="Retries after the first attempt",
    )
    retry_backoff: float = Field(
        default=DEFAULT_RETRY_BACKOFF_SECONDS,
        gt=0,
        description="Base backoff delay in seconds",
    )
    max_backoff: float = Field(
        default=DEFAULT_MAX_BACKOFF_SECONDS,
        gt=0,
        description="Backoff ceiling in seconds",
    )
    backoff_factor: float = Field(
        default=DEFAULT_BACKOFF_FACTOR,
        ge=1.0,
        description="Backoff multiplier per attempt",
    )
    retryable_status_codes: frozenset[int] = Field(
        default=DEFAULT_RETRYABLE_STATUS_CODES,
        description="HTTP statuses retried as transient failures",
    )
    session_expiry: float = Field(
        default=SESSION_EXPIRY_SECONDS,
        gt=0,
        description="Seconds after login when cached cookies are presumed stale",
    )
    sweep_interval: float = Field(
        default=SESSION_SWEEP_INTERVAL_SECONDS,
        gt=0,
        description="Seconds between background session expiry checks",
    )
    auth_rejection_latch_threshold: int | None = Field(
        default=None,
        ge=1,
        description=(
            "Latch the permanent auth failure after this many consecutive "
            "401/403 responses to authenticated calls. None never latches."
        ),
    )
    verify_ssl: bool = Field(
        default=True,
        description="Verify TLS certificates",
    )
    debug: bool = Field(
        default=False,
        description="Emit per-attempt debug tracing for session and retry handling",
    )

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults_for_unset(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name, default in _ZERO_MEANS_DEFAULT.items():
            if name in data and (
                data[name] is None or str(data[name]).strip() in ("", "0", "0.0")
            ):
                data[name] = default
        if not data.get("retryable_status_codes"):
            data.pop("retryable_status_codes", None)
        return data

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("base_url must not be empty")
        return v

    def retry_policy(self) -> RetryPolicy:
        """Build the immutable RetryPolicy for this configuration."""
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay=self.retry_backoff,
            max_delay=self.max_backoff,
            backoff_factor=self.backoff_factor,
            retryable_status_codes=self.retryable_status_codes,
        )

    @classmethod
    def from_yaml(cls, path: Path) -> ClientConfig:
        """Load client configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data)

    @classmethod
    def from_yaml_string(cls, yaml_str: str) -> ClientConfig:
        """Load client configuration from a YAML string."""
        data = yaml.safe_load(yaml_str)
        return cls.model_validate(data)

    @classmethod
    def from_env(
        cls,
        prefix: str = "QBT_",
        environ: dict[str, str] | None = None,
    ) -> ClientConfig:
        """Load client configuration from ``{prefix}BASE_URL``-style variables.

        Raises:
            pydantic.ValidationError: If ``{prefix}BASE_URL`` is missing.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for suffix, field_name in _ENV_FIELDS.items():
            value = env.get(f"{prefix}{suffix}")
            if value is not None:
                data[field_name] = value
        return cls.model_validate(data)
