"""Aggregation logic for egg-count readings."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List

from models.records import (
    AggregatedResult,
    DailySeries,
    Granularity,
    ResolvedWindow,
    SensorRow,
    SeriesPoint,
    TimestampedReading,
)
from services.window import filter_readings

_STEPS = {
    Granularity.minute: timedelta(minutes=1),
    Granularity.hour: timedelta(hours=1),
}


def truncate(instant: datetime, granularity: Granularity) -> datetime:
    if granularity is Granularity.hour:
        return instant.replace(minute=0, second=0, microsecond=0)
    return instant.replace(second=0, microsecond=0)


def _point_label(instant: datetime, granularity: Granularity) -> str:
    if granularity is Granularity.hour:
        return f"{instant:%H}:00"
    return f"{instant:%H:%M}"


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(
        self,
        readings: Iterable[TimestampedReading],
        window: ResolvedWindow,
        granularity: Granularity,
    ) -> AggregatedResult:
        selected = filter_readings(readings, window)
        if granularity is Granularity.sensor:
            return self._by_sensor(selected)
        return self._by_time(selected, window, granularity)

    def total(self, readings: Iterable[TimestampedReading], window: ResolvedWindow) -> int:
        return sum(reading.total for reading in filter_readings(readings, window))

    def _by_time(
        self,
        readings: List[TimestampedReading],
        window: ResolvedWindow,
        granularity: Granularity,
    ) -> AggregatedResult:
        result = AggregatedResult(granularity=granularity)
        if window.is_empty:
            return result

        totals: Dict[datetime, int] = defaultdict(int)
        for reading in readings:
            totals[truncate(reading.timestamp, granularity)] += reading.total

        step = _STEPS[granularity]
        boundary = truncate(window.start, granularity)
        current: DailySeries | None = None
        while boundary <= window.end:
            day_label = boundary.date().isoformat()
            if current is None or current.date != day_label:
                current = DailySeries(date=day_label)
                result.series.append(current)
            current.points.append(
                SeriesPoint(label=_point_label(boundary, granularity), eggs=totals.get(boundary, 0))
            )
            boundary += step
        return result

    def _by_sensor(self, readings: List[TimestampedReading]) -> AggregatedResult:
        result = AggregatedResult(granularity=Granularity.sensor)
        rows: Dict[datetime, SensorRow] = {}
        discovered: Dict[str, None] = {}

        # Discovery order follows the chronological order of the readings.
        for reading in sorted(readings, key=lambda item: item.timestamp):
            minute = truncate(reading.timestamp, Granularity.minute)
            row = rows.get(minute)
            if row is None:
                row = SensorRow(label=f"{minute:%Y-%m-%d %H:%M}", timestamp=minute)
                rows[minute] = row
            for sensor, count in reading.sensors.items():
                discovered.setdefault(sensor, None)
                row.values[sensor] = row.values.get(sensor, 0) + count

        result.rows = [rows[minute] for minute in sorted(rows)]
        result.sensors = list(discovered)
        return result
