"""Bridge from store-driven feed callbacks to server-sent events."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from app.schemas import SeriesResponse
from models.records import AggregatedResult, Granularity, TimeWindow
from services.feeds import FeedService


def _frame(house: str, result: AggregatedResult) -> str:
    payload = SeriesResponse.from_result(house, result).model_dump_json()
    return f"data: {payload}\n\n"


async def feed_events(
    feeds: FeedService,
    house: str,
    window: TimeWindow,
    granularity: Granularity,
) -> AsyncIterator[str]:
    """Yield one SSE frame per feed update until the consumer stops iterating.

    Callbacks may fire on a store listener thread, so updates are handed to
    the event loop with ``call_soon_threadsafe``.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[AggregatedResult] = asyncio.Queue()

    def on_update(result: AggregatedResult) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, result)

    subscription = feeds.subscribe_aggregated(house, window, granularity, on_update)
    try:
        while True:
            result = await queue.get()
            yield _frame(house, result)
    finally:
        subscription.unsubscribe()
