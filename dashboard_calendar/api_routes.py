"""HTTP API routes for dashboard_calendar."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from .aggregator import FetchCallable, aggregate
from .config import CalendarStore
from .exceptions import ConfigError
from .window import QueryWindow, now_local

logger = logging.getLogger(__name__)


async def build_calendar_payload(
    store: CalendarStore,
    fetch: FetchCallable,
    now: Optional[datetime] = None,
) -> list[dict[str, Any]]:
    """Aggregate every configured calendar into the /api/calendars wire shape.

    The window and fetch settings are read from the store's current config.
    """
    config = store.config
    window = QueryWindow.around(
        now=now,
        lookback_days=config.lookback_days,
        lookahead_months=config.lookahead_months,
    )
    instances = await aggregate(
        store.sources(),
        fetch,
        window.start,
        window.end,
        concurrency=config.fetch_concurrency,
        max_occurrences=config.max_occurrences_per_rule,
    )
    return [instance.to_api_dict() for instance in instances]


def register_api_routes(
    app: Any,
    store: CalendarStore,
    fetch: FetchCallable,
    time_provider: Callable[[], datetime] = now_local,
) -> None:
    """Register calendar API routes.

    Args:
        app: aiohttp web application
        store: Calendar source store
        fetch: Fetch capability passed to the aggregator
        time_provider: Clock used to place the query window
    """
    from aiohttp import web

    async def health_check(_request: Any) -> Any:
        return web.json_response({"status": "ok", "sources": len(store.sources())})

    async def get_calendars(_request: Any) -> Any:
        try:
            payload = await build_calendar_payload(store, fetch, now=time_provider())
        except Exception:
            logger.exception("Calendar aggregation failed")
            return web.json_response({"error": "Failed to fetch calendars"}, status=500)
        return web.json_response(payload)

    async def list_sources(_request: Any) -> Any:
        return web.json_response(store.list_sources())

    async def add_calendar(request: Any) -> Any:
        try:
            data = await request.json()
        except ValueError:
            return web.json_response({"error": "Invalid JSON"}, status=400)
        if not isinstance(data, dict):
            return web.json_response({"error": "Expected a JSON object"}, status=400)

        try:
            calendar = store.add_calendar(
                kind=str(data.get("type", "")),
                name=data.get("name"),
                url=data.get("url") or "",
                color=data.get("color"),
            )
        except ConfigError as e:
            return web.json_response({"error": str(e)}, status=400)

        return web.json_response(
            {"success": True, "calendar": calendar.model_dump(exclude={"kind"})}
        )

    async def delete_calendar(request: Any) -> Any:
        kind = request.match_info["kind"]
        calendar_id = request.match_info["calendar_id"]
        try:
            store.delete_calendar(kind, calendar_id)
        except ConfigError as e:
            return web.json_response({"error": str(e)}, status=400)
        return web.json_response({"success": True})

    app.router.add_get("/health", health_check)
    app.router.add_get("/api/calendars", get_calendars)
    app.router.add_get("/api/calendars/sources", list_sources)
    app.router.add_post("/api/calendars/add", add_calendar)
    app.router.add_delete("/api/calendars/{kind}/{calendar_id}", delete_calendar)

    logger.debug("Calendar API routes registered")
