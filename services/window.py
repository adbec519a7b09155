"""Time-window resolution and record filtering."""

from __future__ import annotations

import logging
import re
from datetime import datetime, time, timedelta
from typing import Iterable, List, Tuple

from models.records import ResolvedWindow, TimestampedReading, TimeWindow
from services.keys import HOUSE_PATTERN

logger = logging.getLogger(__name__)

ALL_HOUSES = "all"

# Firebase's conventional high sentinel for prefix range queries.
KEY_RANGE_END = "\uf8ff"

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
_SELECTOR_PATTERN = re.compile(r"^gallinero-(\d+)$")


def parse_clock_time(text: str) -> Tuple[int, int]:
    """Parse ``HH:MM``; ``24:00`` is accepted as the end-of-day sentinel."""
    match = _CLOCK_PATTERN.match(text.strip())
    if match is None:
        raise ValueError(f"Invalid clock time {text!r}; expected HH:MM.")
    hour, minute = int(match.group(1)), int(match.group(2))
    if (hour, minute) == (24, 0):
        return hour, minute
    if hour > 23 or minute > 59:
        raise ValueError(f"Clock time {text!r} is out of range.")
    return hour, minute


def resolve_window(window: TimeWindow) -> ResolvedWindow:
    """Resolve a window to an inclusive ``[start, end]`` instant range.

    The end clock time is an exclusive minute boundary: ``14:10`` closes the
    window at ``14:09:59`` and ``24:00`` at ``23:59:59`` of the end date.
    """
    start_hour, start_minute = parse_clock_time(window.start_time)
    if start_hour == 24:
        raise ValueError("24:00 is only valid as an end time.")
    end_hour, end_minute = parse_clock_time(window.end_time)

    start = datetime.combine(window.start_date, time(start_hour, start_minute))
    end = (
        datetime.combine(window.end_date, time.min)
        + timedelta(hours=end_hour, minutes=end_minute)
        - timedelta(seconds=1)
    )
    return ResolvedWindow(start=start, end=end)


def in_window(reading: TimestampedReading, resolved: ResolvedWindow) -> bool:
    return resolved.contains(reading.timestamp)


def filter_readings(
    readings: Iterable[TimestampedReading], resolved: ResolvedWindow
) -> List[TimestampedReading]:
    if resolved.is_empty:
        return []
    return [reading for reading in readings if in_window(reading, resolved)]


def resolve_house(selector: str, default_house: str) -> str:
    """Map a house selector to a store house identifier.

    ``all`` collapses to ``default_house``: summing across houses is not
    implemented.
    """
    candidate = selector.strip()
    if candidate == ALL_HOUSES:
        logger.info(
            "House selector 'all' is scoped to the default house",
            extra={"house": default_house},
        )
        return default_house
    if HOUSE_PATTERN.match(candidate):
        return candidate
    match = _SELECTOR_PATTERN.match(candidate)
    if match:
        return f"Pabellon_{int(match.group(1))}"
    raise ValueError(f"Unknown house selector {selector!r}.")


def key_range(house: str, window: TimeWindow) -> Tuple[str, str]:
    """Approximate lexicographic key bounds covering ``window``.

    Keys sort by day of month first, so a day range is only usable when the
    window stays inside one calendar month; otherwise the whole house is read.
    """
    start, end = window.start_date, window.end_date
    if (start.year, start.month) == (end.year, end.month) and start <= end:
        return f"{house}-{start.day:02d}-", f"{house}-{end.day:02d}-{KEY_RANGE_END}"
    return f"{house}-", f"{house}-{KEY_RANGE_END}"
