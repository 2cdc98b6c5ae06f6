"""Error kinds and their permanence.

Error Kind Taxonomy
===================

Every failure the client observes is reduced to one of a small set of
kinds. Each kind carries a permanence bit: permanent failures need a human
(credential fix, URL fix, certificate fix) and are never retried; transient
failures are retried by the retry executor until its ceiling is reached.

    | Kind | Permanent | Typical cause |
    |------|-----------|---------------|
    | AUTH_FAILURE | Yes | bad credentials, 401/403 on login, "Fails." body |
    | TIMEOUT | No | request deadline exceeded, 504 |
    | DNS_ERROR | Yes | host name does not resolve |
    | HTTPS_REQUIRED | Yes | plaintext HTTP sent to a TLS-only endpoint |
    | SSL_ERROR | Yes | certificate or handshake failure |
    | VERSION_INCOMPATIBLE | Yes | server Web API older than supported |
    | CONNECTION_REFUSED | No | remote actively refused the connection |
    | NETWORK_UNREACHABLE | No | no route to host |
    | BAD_GATEWAY | No | 502 from a reverse proxy |
    | SERVICE_UNAVAILABLE | No | 503 |
    | UNKNOWN | No | nothing matched |

Note that AUTH_FAILURE is only permanent when it is produced by the login
itself. A 401/403 on an ordinary call after login means the server dropped
the session; the retry executor handles that case as transient.

Example::

    err = classifier.classify(exc)
    if err.kind is ErrorKind.AUTH_FAILURE:
        console.print("check username and password")
"""

from __future__ import annotations

from enum import Enum


class ConnectionState(str, Enum):
    """Connection status of a client's session.

    - INITIALIZING: No login attempted yet, or auth failure was reset.
    - CONNECTED: Last login succeeded and the session has not been invalidated.
    - UNAUTHORIZED: Session invalidated or credentials rejected.
    - UNREACHABLE: The accessibility probe failed (server down or misconfigured).
    """

    INITIALIZING = "initializing"
    CONNECTED = "connected"
    UNAUTHORIZED = "unauthorized"
    UNREACHABLE = "unreachable"


class ErrorKind(str, Enum):
    """Classification of a failed request."""

    AUTH_FAILURE = "auth_failure"
    """Credentials rejected by the server."""

    TIMEOUT = "timeout"
    """Request did not complete within its deadline."""

    DNS_ERROR = "dns_error"
    """Server host name could not be resolved."""

    HTTPS_REQUIRED = "https_required"
    """Plaintext request reached an endpoint that only speaks TLS."""

    SSL_ERROR = "ssl_error"
    """TLS certificate or handshake failure."""

    VERSION_INCOMPATIBLE = "version_incompatible"
    """Server Web API version is older than this client supports."""

    CONNECTION_REFUSED = "connection_refused"
    """Server host reachable but nothing accepted the connection."""

    NETWORK_UNREACHABLE = "network_unreachable"
    """No route to the server host."""

    BAD_GATEWAY = "bad_gateway"
    """Reverse proxy in front of the server returned 502."""

    SERVICE_UNAVAILABLE = "service_unavailable"
    """Server returned 503."""

    UNKNOWN = "unknown"
    """Nothing more specific matched."""

    @property
    def is_permanent(self) -> bool:
        """Whether this kind requires intervention rather than a retry."""
        return self in _PERMANENT_KINDS


_PERMANENT_KINDS = frozenset({
    ErrorKind.AUTH_FAILURE,
    ErrorKind.DNS_ERROR,
    ErrorKind.HTTPS_REQUIRED,
    ErrorKind.SSL_ERROR,
    ErrorKind.VERSION_INCOMPATIBLE,
})
