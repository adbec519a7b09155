"""Live aggregated feeds over the realtime store."""

from __future__ import annotations

import logging
from datetime import date
from functools import lru_cache
from threading import RLock
from typing import Any, Callable, Dict, Optional, Protocol

from datastore.base import StoreQuery, StoreReadError
from datastore.factory import RealtimeStore, build_default_store
from models.records import (
    READ_ERROR_MESSAGE,
    AggregatedResult,
    Granularity,
    ResolvedWindow,
    TimeWindow,
)
from services.aggregator import Aggregator
from services.keys import decode_entries
from services.window import key_range, resolve_house, resolve_window
from settings import get_settings

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[AggregatedResult], None]


class ListenerRegistration(Protocol):
    def close(self) -> None: ...


class Subscription:
    """Handle returned to subscribers; ``unsubscribe`` stops all delivery.

    Delivery and ``unsubscribe`` share a re-entrant lock, so once
    ``unsubscribe`` returns no callback is running or will run, and a callback
    may unsubscribe its own feed.
    """

    def __init__(self, on_update: Callable[[Any], None], description: str = "") -> None:
        self._on_update = on_update
        self._lock = RLock()
        self._active = True
        self._registration: Optional[ListenerRegistration] = None
        self.description = description

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    def attach(self, registration: ListenerRegistration) -> None:
        with self._lock:
            if self._active:
                self._registration = registration
                return
        registration.close()

    def deliver(self, payload: Any) -> None:
        with self._lock:
            if not self._active:
                return
            self._on_update(payload)

    def unsubscribe(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            registration = self._registration
            self._registration = None
        if registration is not None:
            registration.close()
        logger.debug("Subscription closed", extra={"path": self.description or None})

    __call__ = unsubscribe


class FeedService:
    """Turns store snapshots of one house into aggregated series."""

    def __init__(
        self, store: RealtimeStore, aggregator: Aggregator, default_house: str = "Pabellon_1"
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.default_house = default_house

    def subscribe_aggregated(
        self,
        house: str,
        window: TimeWindow,
        granularity: Granularity,
        on_update: UpdateCallback,
    ) -> Subscription:
        """Push a fresh ``AggregatedResult`` on the first snapshot and every change.

        Store failures are delivered as an empty result carrying an error
        message; the listener stays attached.
        """
        granularity = Granularity(granularity)
        house_id = resolve_house(house, self.default_house)
        resolved = resolve_window(window)
        start_at, end_at = key_range(house_id, window)
        subscription = Subscription(on_update, description=house_id)

        def handle_change(raw: Dict[str, Any]) -> None:
            subscription.deliver(self._shape(house_id, raw, resolved, granularity))

        def handle_error(exc: Exception) -> None:
            logger.warning(
                "Feed read failed",
                extra={"house": house_id, "granularity": granularity.value, "error": str(exc)},
            )
            subscription.deliver(AggregatedResult.empty(granularity, READ_ERROR_MESSAGE))

        try:
            registration = self.store.listen(
                house_id, StoreQuery(start_at=start_at, end_at=end_at), handle_change, handle_error
            )
        except StoreReadError as exc:
            handle_error(exc)
            return subscription

        subscription.attach(registration)
        logger.debug(
            "Subscription opened",
            extra={"house": house_id, "granularity": granularity.value},
        )
        return subscription

    def snapshot(
        self, house: str, window: TimeWindow, granularity: Granularity
    ) -> AggregatedResult:
        """One-shot read through the same decode, filter and aggregate pipeline."""
        granularity = Granularity(granularity)
        house_id = resolve_house(house, self.default_house)
        resolved = resolve_window(window)
        try:
            raw = self._read(house_id, window)
        except StoreReadError as exc:
            logger.warning(
                "Snapshot read failed",
                extra={"house": house_id, "granularity": granularity.value, "error": str(exc)},
            )
            return AggregatedResult.empty(granularity, READ_ERROR_MESSAGE)
        return self._shape(house_id, raw, resolved, granularity)

    def daily_total(self, house: str, day: date) -> Optional[int]:
        """Eggs counted by ``house`` over the whole of ``day``; ``None`` if unreadable."""
        house_id = resolve_house(house, self.default_house)
        window = TimeWindow.single_day(day)
        try:
            raw = self._read(house_id, window)
        except StoreReadError as exc:
            logger.warning("Daily total read failed", extra={"house": house_id, "error": str(exc)})
            return None
        return self.aggregator.total(decode_entries(house_id, raw), resolve_window(window))

    def _read(self, house_id: str, window: TimeWindow) -> Dict[str, Any]:
        start_at, end_at = key_range(house_id, window)
        return self.store.get(house_id, StoreQuery(start_at=start_at, end_at=end_at))

    def _shape(
        self,
        house_id: str,
        raw: Dict[str, Any],
        resolved: ResolvedWindow,
        granularity: Granularity,
    ) -> AggregatedResult:
        readings = decode_entries(house_id, raw)
        return self.aggregator.aggregate(readings, resolved, granularity)


class FeedHandle:
    """Keeps at most one live feed, closing the old one before opening the next."""

    def __init__(self, feeds: FeedService) -> None:
        self._feeds = feeds
        self._current: Optional[Subscription] = None

    @property
    def current(self) -> Optional[Subscription]:
        return self._current

    def replace(
        self,
        house: str,
        window: TimeWindow,
        granularity: Granularity,
        on_update: UpdateCallback,
    ) -> Subscription:
        self.close()
        self._current = self._feeds.subscribe_aggregated(house, window, granularity, on_update)
        return self._current

    def close(self) -> None:
        if self._current is not None:
            self._current.unsubscribe()
            self._current = None


@lru_cache
def build_default_feeds() -> FeedService:
    """Factory that wires the feed service to the shared store."""
    settings = get_settings()
    return FeedService(
        store=build_default_store(),
        aggregator=Aggregator(),
        default_house=settings.default_house,
    )
