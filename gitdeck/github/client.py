"""GitHub REST API client.

Provides an async httpx-based client performing exactly one request/response
exchange per call. Non-2xx statuses are ordinary return values; only
transport problems raise, tagged Transient or Fatal where they occur.

Reference: https://docs.github.com/en/rest
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from gitdeck import __version__
from gitdeck.errors import FailureKind, RemoteCallError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiResponse:
    """Status code and parsed JSON body of one exchange.

    Attributes:
        status: HTTP status code.
        data: Parsed JSON body, or None for an empty or unparseable body.
    """

    status: int
    data: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def error_message(self) -> str:
        if isinstance(self.data, dict) and self.data.get("message"):
            return str(self.data["message"])
        return f"HTTP {self.status}"

    def raise_for_status(self, *expected: int) -> "ApiResponse":
        """Turn an unexpected status into a RemoteCallError.

        Server errors (5xx) are tagged Transient so a caller that raises from
        inside a retried unit of work gets another attempt.

        Args:
            *expected: Acceptable status codes; any 2xx when omitted.

        Returns:
            self, for chaining.
        """
        accepted = self.status in expected if expected else self.ok
        if accepted:
            return self
        if self.status >= 500:
            raise RemoteCallError(
                f"GitHub API server error {self.status}, network may be unstable",
                kind=FailureKind.TRANSIENT,
                status_code=self.status,
            )
        raise RemoteCallError(
            f"GitHub API error {self.status}: {self.error_message()}",
            kind=FailureKind.FATAL,
            status_code=self.status,
        )


class GitHubClient:
    """GitHub REST API client using httpx with Bearer token auth.

    Uses a long-lived httpx.AsyncClient with connection pooling.

    Example:
        >>> async with GitHubClient("ghp_token") as client:
        ...     response = await client.request("GET", "/repos/owner/repo/actions/secrets")
        ...     if response.status == 200:
        ...         names = [s["name"] for s in response.data["secrets"]]
    """

    BASE_URL = "https://api.github.com"
    API_VERSION = "2022-11-28"
    DEFAULT_TIMEOUT = 15.0  # seconds

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize GitHub client with token authentication.

        Args:
            token: Pre-authenticated GitHub token.
            base_url: GitHub API base URL (default: https://api.github.com)
            timeout: Default per-request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": self.API_VERSION,
                "User-Agent": f"gitdeck/{__version__}",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the httpx client and release connections."""
        await self._client.aclose()

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except (ValueError, UnicodeDecodeError):
            logger.debug("Unparseable body for status %d", response.status_code)
            return None

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> ApiResponse:
        """Perform one request/response exchange.

        Args:
            method: HTTP method (GET, PUT, DELETE, ...).
            path: API path, e.g. /repos/owner/repo/actions/secrets.
            body: Optional JSON request body.
            timeout: Timeout in seconds for this exchange.

        Returns:
            ApiResponse with the status and parsed body, whatever the status.

        Raises:
            RemoteCallError: Transient on timeout or connectivity failure,
                Fatal on malformed framing or other transport errors.
        """
        effective = timeout if timeout is not None else self.timeout
        logger.debug("%s %s", method, path)

        try:
            response = await self._client.request(
                method,
                path,
                json=body,
                timeout=httpx.Timeout(effective),
            )
        except httpx.TimeoutException as e:
            logger.warning("Request timeout after %.1fs: %s %s", effective, method, path)
            raise RemoteCallError(
                "request timeout, check network connectivity",
                kind=FailureKind.TRANSIENT,
            ) from e
        except httpx.NetworkError as e:
            # DNS, refused/reset connections and TLS handshake failures
            raise RemoteCallError(
                f"network error: {e}",
                kind=FailureKind.TRANSIENT,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteCallError(
                f"malformed response: {e}",
                kind=FailureKind.FATAL,
            ) from e

        return ApiResponse(status=response.status_code, data=self._parse_body(response))
