"""Global constants for qbitclient.

Centralizes the defaults used when a configuration field is left unset,
along with the Web API paths the session layer depends on.
"""

# =============================================================================
# Request / Retry Defaults
# =============================================================================

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0
"""Per-request timeout applied to every outbound call."""

DEFAULT_MAX_RETRIES = 3
"""Attempts beyond the first before a call is reported as exhausted."""

DEFAULT_RETRY_BACKOFF_SECONDS = 1.0
"""Delay before the first retry."""

DEFAULT_MAX_BACKOFF_SECONDS = 30.0
"""Ceiling on any single backoff delay."""

DEFAULT_BACKOFF_FACTOR = 2.0
"""Multiplier applied per retry attempt."""

DEFAULT_RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
"""HTTP statuses treated as transient by the retry loop."""

# =============================================================================
# Session Defaults
# =============================================================================

SESSION_EXPIRY_SECONDS = 24 * 60 * 60.0
"""Local lifetime of cached session cookies (24 hours)."""

SESSION_SWEEP_INTERVAL_SECONDS = 5 * 60.0
"""How often the background sweep checks for an expired session."""

SESSION_PROBE_TIMEOUT_SECONDS = 5.0
"""Timeout for the lightweight authenticated freshness probe."""

LOGIN_FAILURE_SENTINEL = "Fails."
"""Body text the server returns with HTTP 200 when credentials are rejected."""

# =============================================================================
# Web API Paths
# =============================================================================

API_PREFIX = "/api/v2"

PATH_APP_VERSION = f"{API_PREFIX}/app/version"
PATH_AUTH_LOGIN = f"{API_PREFIX}/auth/login"
PATH_AUTH_LOGOUT = f"{API_PREFIX}/auth/logout"

MINIMUM_WEBAPI_VERSION = "2.0"
"""Oldest Web API version the call surface is written against."""
