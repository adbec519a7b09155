"""Best-effort discovery of houses and sensors from the store layout."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from datastore.base import StoreQuery, StoreReadError
from datastore.factory import RealtimeStore, build_default_store
from models.records import TimestampedReading
from services.keys import HOUSE_PATTERN, decode_entries, house_number

logger = logging.getLogger(__name__)

_LAST_RECORD = StoreQuery(limit_to_last=1)


class DiscoveryService:
    """An empty answer means "unknown", never "definitively none"."""

    def __init__(self, store: RealtimeStore) -> None:
        self.store = store

    def list_houses(self) -> List[str]:
        try:
            keys = self.store.shallow_keys("")
        except StoreReadError as exc:
            logger.warning("House discovery failed", extra={"error": str(exc)})
            return []
        houses = [key for key in keys if HOUSE_PATTERN.match(key)]
        return sorted(houses, key=lambda house: house_number(house) or 0)

    def list_sensors(self, house: str) -> List[str]:
        try:
            sample = self.store.get(house, _LAST_RECORD)
        except StoreReadError as exc:
            logger.warning("Sensor discovery failed", extra={"house": house, "error": str(exc)})
            return []
        for value in sample.values():
            if isinstance(value, dict):
                return [str(name) for name in value]
        return []

    def latest_reading(self, house: str) -> Optional[TimestampedReading]:
        """Last record of ``house`` by key order, which sorts by day of month first.

        This is the record the devices wrote last only within one month.
        """
        try:
            sample = self.store.get(house, _LAST_RECORD)
        except StoreReadError as exc:
            logger.warning("Latest reading failed", extra={"house": house, "error": str(exc)})
            return None
        readings = decode_entries(house, sample)
        return readings[-1] if readings else None


@lru_cache
def build_default_discovery() -> DiscoveryService:
    return DiscoveryService(store=build_default_store())
