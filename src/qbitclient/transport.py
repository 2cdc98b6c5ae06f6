"""HTTP transport for the qBittorrent Web API.

Thin wrapper over a lazily created ``httpx.AsyncClient``. Session cookies are
owned by the SessionCache, not by httpx: the underlying client's cookie jar
rejects everything, cookies are sent from the cache as an explicit header,
and ``Set-Cookie`` values are copied into the cache only when the caller asks
for it (the login request).

Exceptions from httpx propagate unchanged; classifying them is the retry
executor's job.
"""

from __future__ import annotations

import http.cookiejar
from typing import TYPE_CHECKING, Any

import httpx

from qbitclient.core.config import ClientConfig
from qbitclient.core.logging import get_logger

if TYPE_CHECKING:
    from qbitclient.session.cache import SessionCache

# Module-level logger for HTTP traffic
_logger = get_logger("transport")


class _RejectAllCookiesPolicy(http.cookiejar.DefaultCookiePolicy):
    """Cookie policy for the httpx client jar: store nothing."""

    def set_ok(self, cookie: http.cookiejar.Cookie, request: Any) -> bool:
        return False


def extract_artifacts(response: httpx.Response) -> dict[str, str]:
    """Return the cookies set by ``response`` as a name -> value mapping."""
    return {cookie.name: cookie.value or "" for cookie in response.cookies.jar}


class Transport:
    """Performs single HTTP requests against one qBittorrent instance.

    Attributes:
        config: Active client configuration (base URL, timeout, TLS verification).
        cache: Session cache supplying and receiving cookies.
    """

    def __init__(
        self,
        config: ClientConfig,
        cache: SessionCache,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            config: Client configuration.
            cache: Session cache shared with the session manager.
            http_transport: Optional httpx transport, e.g. ``httpx.MockTransport``
                in tests.
        """
        self.config = config
        self.cache = cache
        self._http_transport = http_transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        Lazy initialization to avoid creating the client before the event loop.
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=httpx.Timeout(self.config.request_timeout),
                verify=self.config.verify_ssl,
                cookies=http.cookiejar.CookieJar(policy=_RejectAllCookiesPolicy()),
                transport=self._http_transport,
            )
        return self._client

    async def perform_request(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, Any] | None = None,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        use_session: bool = True,
        apply_received_artifacts: bool = False,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send one request and return the response, whatever its status.

        Args:
            method: HTTP method.
            path: Path relative to the base URL, e.g. ``/api/v2/app/version``.
            data: Form fields, sent url-encoded.
            json: JSON body.
            params: Query parameters.
            headers: Extra request headers.
            use_session: Attach cached session cookies.
            apply_received_artifacts: Merge ``Set-Cookie`` values into the cache.
            timeout: Override the configured request timeout, in seconds.

        Returns:
            The fully read httpx response.

        Raises:
            httpx.HTTPError: On transport failure (connect, TLS, timeout, protocol).
        """
        request_headers = dict(headers or {})
        if use_session:
            artifacts = self.cache.snapshot()
            if artifacts:
                request_headers["Cookie"] = "; ".join(
                    f"{name}={value}" for name, value in artifacts.items()
                )

        client = await self._get_client()
        kwargs: dict[str, Any] = {
            "data": data,
            "json": json,
            "params": params,
            "headers": request_headers,
        }
        if timeout is not None:
            kwargs["timeout"] = httpx.Timeout(timeout)

        response = await client.request(method, path, **kwargs)

        _logger.debug(
            "http_request",
            method=method,
            path=path,
            status_code=response.status_code,
            with_session=use_session,
        )

        if apply_received_artifacts:
            received = extract_artifacts(response)
            if received:
                self.cache.update(received)
        return response

    async def reconfigure(self, config: ClientConfig) -> None:
        """Swap configuration; the HTTP client is rebuilt on next use."""
        self.config = config
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client connection."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
