"""CSV rendering of aggregated series."""

from __future__ import annotations

import csv
import io
from typing import List, Optional, Sequence

from models.records import AggregatedResult, Granularity

_TIME_HEADERS = {
    Granularity.minute: ["day", "time", "eggs"],
    Granularity.hour: ["day", "hour", "eggs"],
}


def export_filename(granularity: Granularity) -> str:
    return {
        Granularity.minute: "produccion_por_minuto.csv",
        Granularity.hour: "produccion_por_hora.csv",
        Granularity.sensor: "produccion_por_sensor.csv",
    }[granularity]


def to_csv(result: AggregatedResult, sensors: Optional[Sequence[str]] = None) -> str:
    """Render ``result`` as CSV; ``sensors`` restricts and orders sensor columns."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_NONE, escapechar="\\")

    if result.granularity is Granularity.sensor:
        columns: List[str] = list(sensors) if sensors is not None else list(result.sensors)
        writer.writerow(["time", *columns])
        for row in result.rows:
            writer.writerow([row.label, *(row.values.get(sensor, 0) for sensor in columns)])
    else:
        writer.writerow(_TIME_HEADERS[result.granularity])
        for daily in result.series:
            for point in daily.points:
                writer.writerow([daily.date, point.label, point.eggs])

    return buffer.getvalue()
