"""HTTP client wrapper shared by the external connectors.

Connectors never retry: a failed request surfaces as an ``httpx`` error so the
executor can abort the plan at the failing action. The wrapper only centralizes
timeouts, default headers, and error logging.

Usage:

    client = HttpClient(timeout=30, headers={"Authorization": "Bearer ..."})
    response = client.post("https://api.example.com/tasks", json={...})
"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class HttpClient:
    """Synchronous HTTP client that raises on transport and status errors.

    Args:
        timeout: Request timeout in seconds
        connect_timeout: Connection timeout in seconds
        headers: Headers sent with every request
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        timeout: int = 30,
        connect_timeout: int = 10,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the synchronous HTTP client."""
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.headers = dict(headers or {})
        self._transport = transport

    def post(self, url: str, **kwargs) -> httpx.Response:
        """Perform a synchronous POST request."""
        return self._request("POST", url, **kwargs)

    def put(self, url: str, **kwargs) -> httpx.Response:
        """Perform a synchronous PUT request."""
        return self._request("PUT", url, **kwargs)

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute a single HTTP request, raising on failure."""
        headers = {"Accept": "application/json", **self.headers, **kwargs.pop("headers", {})}
        try:
            with httpx.Client(
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
                transport=self._transport,
            ) as client:
                response = client.request(method, url, headers=headers, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            logger.error(
                "HTTP %s %s failed with status %s: %s",
                method,
                url,
                e.response.status_code,
                e.response.text[:500],
            )
            raise
        except httpx.RequestError as e:
            logger.error("HTTP %s %s failed: %s", method, url, e)
            raise
