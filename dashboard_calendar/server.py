"""aiohttp server for dashboard_calendar.

Serves the calendar API. Calendars are fetched on every /api/calendars request
using a shared HTTP client that lives as long as the application.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any, Callable, Optional

import httpx
from aiohttp import web

from .aggregator import FetchCallable
from .api_routes import build_calendar_payload, register_api_routes
from .config import CalendarStore, DashboardConfig
from .ics_fetcher import create_client, fetch_calendar_events
from .logging_config import configure_logging
from .models import RawEvent
from .window import now_local

logger = logging.getLogger(__name__)


def make_default_fetch(
    store: CalendarStore, client_ref: list[Optional[httpx.AsyncClient]]
) -> FetchCallable:
    """Fetch capability backed by the application's shared HTTP client.

    client_ref holds the shared client once the application has started;
    until then each fetch opens its own client.
    """

    async def _fetch(url: str) -> list[RawEvent]:
        return await fetch_calendar_events(
            url,
            client=client_ref[0],
            timeout=store.config.fetch_timeout_seconds,
        )

    return _fetch


def make_app(
    store: CalendarStore,
    fetch: Optional[FetchCallable] = None,
    time_provider: Callable[[], datetime] = now_local,
) -> web.Application:
    """Create the aiohttp application with calendar routes registered.

    Args:
        store: Calendar source store
        fetch: Fetch capability; defaults to downloading feeds over HTTP
        time_provider: Clock used to place the query window
    """
    app = web.Application()

    if fetch is None:
        client_ref: list[Optional[httpx.AsyncClient]] = [None]
        fetch = make_default_fetch(store, client_ref)

        async def _http_client_ctx(_app: web.Application) -> AsyncIterator[None]:
            client_ref[0] = create_client(store.config.fetch_timeout_seconds)
            logger.debug("Shared HTTP client created")
            yield
            client = client_ref[0]
            client_ref[0] = None
            if client is not None:
                await client.aclose()
                logger.debug("Shared HTTP client closed")

        app.cleanup_ctx.append(_http_client_ctx)

    register_api_routes(app, store=store, fetch=fetch, time_provider=time_provider)

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    return app


async def _serve(
    config: DashboardConfig,
    store: CalendarStore,
    external_stop_event: Optional[asyncio.Event] = None,
) -> None:
    """Run the HTTP server until signalled to stop."""
    stop_event = external_stop_event or asyncio.Event()

    app = make_app(store)
    runner = web.AppRunner(app)
    await runner.setup()

    host = config.server_bind
    port = config.server_port
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        raise

    logger.info("Server started on http://%s:%d (%d calendar sources)", host, port, len(store.sources()))

    if external_stop_event is None:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")
    await runner.cleanup()
    logger.info("Server shutdown complete")


def start_server(config: DashboardConfig, store: Optional[CalendarStore] = None) -> None:
    """Start the asyncio event loop and HTTP server.

    Args:
        config: Effective configuration (server_bind, server_port, log_level)
        store: Calendar store; a store over the default config path when omitted

    Blocks until SIGINT/SIGTERM is received.
    """
    configure_logging(debug_mode=config.log_level == "DEBUG")

    if store is None:
        store = CalendarStore(config=config)

    try:
        asyncio.run(_serve(config, store))
    except KeyboardInterrupt:
        logger.info("Interrupted")


def run_dump(store: CalendarStore, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """Aggregate all calendars once and return the API payload."""

    async def _dump() -> list[dict[str, Any]]:
        async with create_client(store.config.fetch_timeout_seconds) as client:
            fetch = make_default_fetch(store, [client])
            return await build_calendar_payload(store, fetch, now=now)

    return asyncio.run(_dump())
