"""Aggregation of all configured calendar sources into one sorted instance list."""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from collections.abc import Awaitable, Iterable, Sequence
from datetime import datetime
from typing import Callable, Union

from .event_expander import expand_events
from .models import CalendarKind, CalendarSource, EventInstance, RawEvent
from .recurrence import DEFAULT_MAX_OCCURRENCES

logger = logging.getLogger(__name__)

DEFAULT_FETCH_CONCURRENCY = 4

DEFAULT_COLORS: dict[str, str] = {
    CalendarKind.GOOGLE.value: "#4285f4",
    CalendarKind.ICLOUD.value: "#ff2d55",
}

_WEBCAL_PATTERN = re.compile(r"^webcal://", re.IGNORECASE)

FetchCallable = Callable[[str], Union[Sequence[RawEvent], Awaitable[Sequence[RawEvent]]]]


def normalize_feed_url(url: str) -> str:
    """Rewrite a webcal:// subscription URL to https://."""
    return _WEBCAL_PATTERN.sub("https://", url.strip())


def resolve_source_color(source: CalendarSource) -> str:
    """Source color if configured, otherwise the default for its kind."""
    if source.color:
        return source.color
    return DEFAULT_COLORS.get(str(source.kind), DEFAULT_COLORS[CalendarKind.GOOGLE.value])


def active_sources(sources: Iterable[CalendarSource]) -> list[CalendarSource]:
    """Enabled sources that have a URL, in their original order."""
    return [source for source in sources if source.enabled and source.url and source.url.strip()]


async def aggregate(
    sources: Iterable[CalendarSource],
    fetch: FetchCallable,
    window_start: datetime,
    window_end: datetime,
    concurrency: int = DEFAULT_FETCH_CONCURRENCY,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> list[EventInstance]:
    """Fetch, expand and merge every active source.

    Each source is isolated: a fetch, parse or expansion failure is logged and
    that source contributes nothing. Fetches run concurrently (bounded by
    ``concurrency``) and all of them are awaited before merging.

    Args:
        sources: Configured calendar sources
        fetch: Callable returning the RawEvents of a feed URL (sync or async)
        window_start: Inclusive window start
        window_end: Inclusive window end
        concurrency: Maximum number of simultaneous fetches
        max_occurrences: Safety cap for recurrence enumeration per event

    Returns:
        All instances, stable-sorted by start
    """
    selected = active_sources(sources)
    if not selected:
        logger.info("No enabled calendar sources configured")
        return []

    semaphore = asyncio.Semaphore(max(1, concurrency))
    tasks = [
        asyncio.create_task(
            _process_source(semaphore, source, fetch, window_start, window_end, max_occurrences)
        )
        for source in selected
    ]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    merged: list[EventInstance] = []
    for source, result in zip(selected, results):
        if isinstance(result, BaseException):
            logger.error("Calendar %r failed: %s", source.name, result)
            continue
        logger.debug("Calendar %r contributed %d instances", source.name, len(result))
        merged.extend(result)

    merged.sort(key=lambda instance: instance.start)
    logger.debug("Aggregated %d instances from %d sources", len(merged), len(selected))
    return merged


async def _process_source(
    semaphore: asyncio.Semaphore,
    source: CalendarSource,
    fetch: FetchCallable,
    window_start: datetime,
    window_end: datetime,
    max_occurrences: int,
) -> list[EventInstance]:
    url = normalize_feed_url(source.url)
    async with semaphore:
        logger.debug("Fetching calendar %r from %s", source.name, url)
        result = fetch(url)
        if inspect.isawaitable(result):
            result = await result

    return expand_events(
        result,
        calendar_name=source.name,
        color=resolve_source_color(source),
        window_start=window_start,
        window_end=window_end,
        max_occurrences=max_occurrences,
    )
