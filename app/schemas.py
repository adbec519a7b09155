"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.records import AggregatedResult, Granularity, LogEntry, TimestampedReading


class HouseList(BaseModel):
    houses: List[str] = Field(default_factory=list)


class SensorList(BaseModel):
    house: str
    sensors: List[str] = Field(default_factory=list)


class Reading(BaseModel):
    """Latest per-sensor counts of one house."""

    house: str
    timestamp: datetime
    sensors: Dict[str, int] = Field(default_factory=dict)
    total: int = Field(..., ge=0)

    @classmethod
    def from_reading(cls, reading: TimestampedReading) -> "Reading":
        return cls(
            house=reading.house,
            timestamp=reading.timestamp,
            sensors=dict(reading.sensors),
            total=reading.total,
        )


class Point(BaseModel):
    label: str
    eggs: int = Field(..., ge=0)


class Daily(BaseModel):
    date: str
    points: List[Point] = Field(default_factory=list)


class Row(BaseModel):
    label: str
    timestamp: datetime
    values: Dict[str, int] = Field(default_factory=dict)


class SeriesResponse(BaseModel):
    """Aggregated series; ``error`` is set when the store could not be read."""

    house: str
    granularity: Granularity
    series: List[Daily] = Field(default_factory=list)
    rows: List[Row] = Field(default_factory=list)
    sensors: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_result(cls, house: str, result: AggregatedResult) -> "SeriesResponse":
        return cls(
            house=house,
            granularity=result.granularity,
            series=[
                Daily(
                    date=daily.date,
                    points=[Point(label=point.label, eggs=point.eggs) for point in daily.points],
                )
                for daily in result.series
            ],
            rows=[
                Row(label=row.label, timestamp=row.timestamp, values=dict(row.values))
                for row in result.rows
            ],
            sensors=list(result.sensors),
            error=result.error,
        )


class DailyTotal(BaseModel):
    house: str
    day: date
    eggs: Optional[int] = Field(default=None, description="None when the store could not be read.")


class LogLine(BaseModel):
    key: str
    house: str
    timestamp: datetime
    message: str
    text: str

    @classmethod
    def from_entry(cls, entry: LogEntry, text: str) -> "LogLine":
        return cls(
            key=entry.key,
            house=entry.house,
            timestamp=entry.timestamp,
            message=entry.message,
            text=text,
        )


class LogTail(BaseModel):
    entries: List[LogLine] = Field(default_factory=list)
