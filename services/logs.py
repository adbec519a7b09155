"""Tail of the free-text ``LOG`` collection written by the devices."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from datastore.base import StoreQuery, StoreReadError
from datastore.factory import RealtimeStore, build_default_store
from models.records import LogEntry
from services.feeds import Subscription
from services.keys import house_number, iter_valid_entries
from services.window import ALL_HOUSES, resolve_house
from settings import get_settings

logger = logging.getLogger(__name__)

LOG_PATH = "LOG"
INVALID_LOG_MESSAGE = "Mensaje de log no válido."


def parse_log_entries(raw: Optional[Dict[str, Any]]) -> List[LogEntry]:
    """Decode raw log entries, newest first by encoded time."""
    if not raw:
        return []
    entries = []
    for key, house, timestamp, value in iter_valid_entries(raw):
        message = value.get("Log") if isinstance(value, dict) else None
        if not isinstance(message, str):
            message = INVALID_LOG_MESSAGE
        entries.append(LogEntry(key=key, house=house, timestamp=timestamp, message=message))
    entries.sort(key=lambda entry: (entry.timestamp, entry.key), reverse=True)
    return entries


def format_entry(entry: LogEntry) -> str:
    return f"Pabellón {house_number(entry.house)} ({entry.timestamp:%d-%m-%Y %H:%M}): {entry.message}"


class LogService:

    def __init__(self, store: RealtimeStore, limit: int = 100) -> None:
        self.store = store
        self.limit = limit

    def tail(self, house: Optional[str] = None) -> List[LogEntry]:
        try:
            raw = self.store.get(LOG_PATH, StoreQuery(limit_to_last=self.limit))
        except StoreReadError as exc:
            logger.warning("Log tail read failed", extra={"path": LOG_PATH, "error": str(exc)})
            return []
        return self._select(parse_log_entries(raw), house)

    def subscribe(
        self, house: Optional[str], on_update: Callable[[List[LogEntry]], None]
    ) -> Subscription:
        subscription = Subscription(on_update, description=LOG_PATH)

        def handle_change(raw: Dict[str, Any]) -> None:
            subscription.deliver(self._select(parse_log_entries(raw), house))

        def handle_error(exc: Exception) -> None:
            logger.warning("Log feed read failed", extra={"path": LOG_PATH, "error": str(exc)})
            subscription.deliver([])

        try:
            registration = self.store.listen(
                LOG_PATH, StoreQuery(limit_to_last=self.limit), handle_change, handle_error
            )
        except StoreReadError as exc:
            handle_error(exc)
            return subscription
        subscription.attach(registration)
        return subscription

    @staticmethod
    def _select(entries: List[LogEntry], house: Optional[str]) -> List[LogEntry]:
        if house is None or house.strip() == ALL_HOUSES:
            return entries
        # Entries match on the house number, as in "gallinero-2" -> "Pabellon_2".
        wanted = house_number(resolve_house(house, default_house=""))
        return [entry for entry in entries if house_number(entry.house) == wanted]


@lru_cache
def build_default_logs() -> LogService:
    return LogService(store=build_default_store(), limit=get_settings().log_tail_limit)
