"""JSON-over-HTTPS access shared by catalogs and venues."""

import asyncio
import logging
import time
from typing import Any, Optional

import httpx

from fundswap.errors import VenueError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Spaces requests at least 1/requests_per_second apart."""

    def __init__(self, requests_per_second: float = 1.0):
        self.interval = 1.0 / requests_per_second
        self._next_slot = 0.0
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        """Wait for the next free slot."""
        async with self._lock:
            now = time.monotonic()
            delay = self._next_slot - now
            self._next_slot = max(now, self._next_slot) + self.interval
        if delay > 0:
            await asyncio.sleep(delay)


class JsonApi:
    """Thin httpx wrapper that turns transport and status failures into VenueError."""

    def __init__(
        self,
        venue: str,
        base_url: str,
        timeout: float = 30.0,
        headers: Optional[dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """Initialize the API wrapper.

        Args:
            venue: Name used in errors and logs
            base_url: Prefix for every request path
            timeout: Per-request timeout in seconds
            headers: Headers sent with every request
            client: Shared client (tests inject one with a MockTransport);
                when omitted a client is opened per request
            rate_limiter: Optional request spacing
        """
        self.venue = venue
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = headers or {}
        self._client = client
        self._rate_limiter = rate_limiter

    async def get(self, path: str, params: Optional[dict] = None, headers: Optional[dict] = None) -> Any:
        return await self.request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        json: Any = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        expected: tuple[int, ...] = (200, 201),
    ) -> Any:
        return await self.request("POST", path, params=params, json=json, headers=headers, expected=expected)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Any = None,
        headers: Optional[dict] = None,
        expected: tuple[int, ...] = (200,),
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            VenueError: On transport failure, unexpected status or invalid JSON
        """
        if self._rate_limiter:
            await self._rate_limiter.wait()

        url = f"{self.base_url}{path}"
        merged = {**self.headers, **(headers or {})}
        try:
            if self._client is not None:
                response = await self._client.request(method, url, params=params, json=json, headers=merged)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, params=params, json=json, headers=merged)
        except httpx.HTTPError as e:
            raise VenueError(self.venue, f"{method} {path} failed: {type(e).__name__}: {e}") from e

        if response.status_code not in expected:
            logger.warning(f"{self.venue} API error: {method} {path} -> {response.status_code}")
            raise VenueError(self.venue, response.text[:300], response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise VenueError(self.venue, f"invalid JSON from {path}", response.status_code) from e
