"""Unit tests for dashboard_calendar.ics_fetcher using httpx.MockTransport."""

import httpx
import pytest

from dashboard_calendar.exceptions import FetchError
from dashboard_calendar.ics_fetcher import ICSFetcher, fetch_calendar_events

pytestmark = pytest.mark.unit

FEED_URL = "https://calendar.example.com/work.ics"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestICSFetcher:
    async def test_fetch_text_when_ok_then_returns_body(self, sample_ics):
        async with _client(lambda request: httpx.Response(200, text=sample_ics)) as client:
            async with ICSFetcher(shared_client=client) as fetcher:
                text = await fetcher.fetch_text(FEED_URL)

        assert text == sample_ics

    async def test_fetch_text_when_not_found_then_fetch_error_with_status(self):
        async with _client(lambda request: httpx.Response(404)) as client:
            fetcher = ICSFetcher(shared_client=client)
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch_text(FEED_URL)

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == FEED_URL

    async def test_fetch_text_when_timeout_then_fetch_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as client:
            fetcher = ICSFetcher(timeout=5, shared_client=client)
            with pytest.raises(FetchError, match="timeout"):
                await fetcher.fetch_text(FEED_URL)

    async def test_fetch_text_when_connection_fails_then_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            fetcher = ICSFetcher(shared_client=client)
            with pytest.raises(FetchError, match="Network error"):
                await fetcher.fetch_text(FEED_URL)

    @pytest.mark.parametrize("url", ["ftp://example.com/a.ics", "webcal://example.com/a.ics", "https:///a.ics"])
    async def test_fetch_text_when_url_invalid_then_fetch_error(self, url):
        fetcher = ICSFetcher()
        try:
            with pytest.raises(FetchError):
                await fetcher.fetch_text(url)
        finally:
            await fetcher.close()

    async def test_shared_client_is_not_closed_on_exit(self, sample_ics):
        client = _client(lambda request: httpx.Response(200, text=sample_ics))

        async with ICSFetcher(shared_client=client) as fetcher:
            await fetcher.fetch_text(FEED_URL)

        assert not client.is_closed
        await client.aclose()


async def test_fetch_calendar_events_downloads_and_parses(sample_ics):
    requested = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, text=sample_ics)

    async with _client(handler) as client:
        events = await fetch_calendar_events(FEED_URL, client=client)

    assert requested == [FEED_URL]
    assert {e.uid for e in events} == {"dentist-1", "vacation-1", "standup-1"}
