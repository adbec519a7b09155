"""Decoding of the compound ``<house>-dd-mm-yyyy-HH-mm`` record keys."""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from typing import Any, Iterator, List, Mapping, Optional, Tuple

from models.records import TimestampedReading

logger = logging.getLogger(__name__)

HOUSE_PATTERN = re.compile(r"^Pabellon_(\d+)$")

_KEY_PATTERN = re.compile(
    r"^(?P<house>Pabellon_\d+)-"
    r"(?P<day>\d{2})-(?P<month>\d{2})-(?P<year>\d{4})-"
    r"(?P<hour>\d{2})-(?P<minute>\d{2})$"
)


class KeyParseError(ValueError):
    """Raised when a record key does not follow the store's key grammar."""


def house_number(house: str) -> Optional[int]:
    match = HOUSE_PATTERN.match(house)
    return int(match.group(1)) if match else None


def parse_record_key(key: str, house: Optional[str] = None) -> Tuple[str, datetime]:
    """Return ``(house, timestamp)`` for a record key.

    When ``house`` is given the key must belong to it. Day, month, hour and
    minute are two digits, the year four; the month is stored 1-based.
    """
    match = _KEY_PATTERN.match(key)
    if match is None:
        raise KeyParseError(f"Key {key!r} does not match <house>-dd-mm-yyyy-HH-mm.")

    key_house = match.group("house")
    if house is not None and key_house != house:
        raise KeyParseError(f"Key {key!r} does not belong to house {house!r}.")

    try:
        timestamp = datetime(
            year=int(match.group("year")),
            month=int(match.group("month")),
            day=int(match.group("day")),
            hour=int(match.group("hour")),
            minute=int(match.group("minute")),
        )
    except ValueError as exc:
        raise KeyParseError(f"Key {key!r} holds an invalid date: {exc}") from exc

    return key_house, timestamp


def format_record_key(house: str, timestamp: datetime) -> str:
    return f"{house}-{timestamp:%d-%m-%Y-%H-%M}"


def parse_sensor_counts(value: Any) -> dict[str, int]:
    """Keep the non-negative integer counts of a raw record value."""
    if not isinstance(value, Mapping):
        raise ValueError("record value is not a mapping")

    counts: dict[str, int] = {}
    for sensor, count in value.items():
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            continue
        if isinstance(count, float) and not math.isfinite(count):
            continue
        if count < 0 or count != int(count):
            continue
        counts[str(sensor)] = int(count)
    return counts


def iter_valid_entries(
    raw: Mapping[str, Any], house: Optional[str] = None
) -> Iterator[Tuple[str, str, datetime, Any]]:
    """Yield ``(key, house, timestamp, value)`` for every parseable key."""
    for key, value in raw.items():
        try:
            key_house, timestamp = parse_record_key(key, house)
        except KeyParseError as exc:
            logger.debug(
                "Dropping entry with malformed key",
                extra={"record_key": key, "reason": str(exc)},
            )
            continue
        yield key, key_house, timestamp, value


def decode_entries(house: str, raw: Optional[Mapping[str, Any]]) -> List[TimestampedReading]:
    """Decode a raw ``{key: {sensor: count}}`` snapshot, dropping bad entries."""
    if not raw:
        return []

    readings: List[TimestampedReading] = []
    for key, key_house, timestamp, value in iter_valid_entries(raw, house):
        try:
            sensors = parse_sensor_counts(value)
        except ValueError as exc:
            logger.debug(
                "Dropping entry with malformed value",
                extra={"record_key": key, "reason": str(exc)},
            )
            continue
        readings.append(TimestampedReading(house=key_house, timestamp=timestamp, sensors=sensors))

    dropped = len(raw) - len(readings)
    if dropped:
        logger.debug(
            "Decoded snapshot with dropped entries",
            extra={"house": house, "row_count": len(readings), "dropped_count": dropped},
        )
    return readings
