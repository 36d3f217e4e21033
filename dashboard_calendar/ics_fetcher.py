"""HTTP client for downloading ICS calendar feeds - dashboard_calendar."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from .exceptions import FetchError
from .models import RawEvent

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

DEFAULT_HEADERS = {
    "User-Agent": "dashboard-calendar/1.0",
    "Accept": "text/calendar, text/plain;q=0.9, */*;q=0.8",
}


def create_client(timeout: float = DEFAULT_TIMEOUT_SECONDS) -> httpx.AsyncClient:
    """Create an HTTP client configured for feed downloads."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(connect=10.0, read=timeout, write=10.0, pool=30.0),
        follow_redirects=True,
        headers=DEFAULT_HEADERS,
    )


class ICSFetcher:
    """Async HTTP client for downloading ICS feeds."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        shared_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize ICS fetcher.

        Args:
            timeout: Read timeout in seconds
            shared_client: Optional shared HTTP client for connection reuse
        """
        self.timeout = timeout
        self.client: Optional[httpx.AsyncClient] = shared_client
        self._use_shared_client = shared_client is not None

        logger.debug("ICS fetcher initialized (shared_client: %s)", self._use_shared_client)

    async def __aenter__(self) -> ICSFetcher:
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None or self.client.is_closed:
            self.client = create_client(self.timeout)
        return self.client

    async def close(self) -> None:
        """Close the HTTP client unless it is shared."""
        if self.client is not None and not self._use_shared_client:
            if not self.client.is_closed:
                await self.client.aclose()
                logger.debug("Closed individual HTTP client")
        self.client = None

    def _validate_url(self, url: str) -> None:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise FetchError(f"Unsupported URL scheme: {parsed.scheme!r}", url=url)
        if not parsed.hostname:
            raise FetchError("URL missing hostname", url=url)

    async def fetch_text(self, url: str) -> str:
        """Download a feed and return its body as text.

        Raises:
            FetchError: On invalid URL, timeout, transport error or non-2xx status
        """
        self._validate_url(url)
        client = self._ensure_client()

        try:
            logger.debug("Fetching ICS from %s", url)
            response = await client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchError(f"Request timeout after {self.timeout}s", url=url) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise FetchError(
                f"HTTP {status}: {e.response.reason_phrase}", url=url, status_code=status
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Network error: {e}", url=url) from e

        logger.debug("Fetched %d bytes from %s", len(response.content), url)
        return response.text


async def fetch_calendar_events(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> list[RawEvent]:
    """Default fetch capability for the aggregator: download and parse a feed.

    Raises:
        FetchError: If the download fails
        ParseError: If the payload is not a readable calendar
    """
    from .ics_parser import parse_ics_events

    async with ICSFetcher(timeout=timeout, shared_client=client) as fetcher:
        text = await fetcher.fetch_text(url)
    return parse_ics_events(text, source_url=url)
