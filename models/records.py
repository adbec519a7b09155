"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

READ_ERROR_MESSAGE = "could not read data"


class Granularity(str, Enum):
    """Aggregation step for an output series."""

    minute = "minute"
    hour = "hour"
    sensor = "sensor"


@dataclass(slots=True)
class TimestampedReading:
    """Per-sensor egg counts of one house at one minute."""

    house: str
    timestamp: datetime
    sensors: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.sensors.values())


@dataclass(frozen=True, slots=True)
class ResolvedWindow:
    """Inclusive instant range a ``TimeWindow`` resolves to."""

    start: datetime
    end: datetime

    @property
    def is_empty(self) -> bool:
        return self.end < self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """User-selected date range plus start/end clock times (``HH:MM``)."""

    start_date: date
    end_date: date
    start_time: str = "00:00"
    end_time: str = "24:00"

    @classmethod
    def single_day(cls, day: date) -> "TimeWindow":
        return cls(start_date=day, end_date=day)


@dataclass(slots=True)
class SeriesPoint:
    label: str
    eggs: int = 0


@dataclass(slots=True)
class DailySeries:
    """Dense points of one calendar day, labelled ``YYYY-MM-DD``."""

    date: str
    points: List[SeriesPoint] = field(default_factory=list)


@dataclass(slots=True)
class SensorRow:
    """Summed counts of every sensor reporting during one minute."""

    label: str
    timestamp: datetime
    values: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class AggregatedResult:
    """Output of one aggregation pass, pushed to subscribers."""

    granularity: Granularity
    series: List[DailySeries] = field(default_factory=list)
    rows: List[SensorRow] = field(default_factory=list)
    sensors: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def empty(cls, granularity: Granularity, error: Optional[str] = None) -> "AggregatedResult":
        return cls(granularity=granularity, error=error)

    @property
    def total(self) -> int:
        if self.granularity is Granularity.sensor:
            return sum(sum(row.values.values()) for row in self.rows)
        return sum(point.eggs for daily in self.series for point in daily.points)


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One free-text entry of the ``LOG`` collection."""

    key: str
    house: str
    timestamp: datetime
    message: str
