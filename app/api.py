"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse, StreamingResponse

from app.schemas import (
    DailyTotal,
    HouseList,
    LogLine,
    LogTail,
    Reading,
    SensorList,
    SeriesResponse,
)
from app.streaming import feed_events
from models.records import Granularity, TimeWindow
from services.discovery import DiscoveryService, build_default_discovery
from services.export import export_filename, to_csv
from services.feeds import FeedService, build_default_feeds
from services.logs import LogService, build_default_logs, format_entry
from services.window import resolve_house, resolve_window
from settings import get_settings

router = APIRouter()


def get_feeds() -> FeedService:
    return build_default_feeds()


def get_discovery() -> DiscoveryService:
    return build_default_discovery()


def get_logs() -> LogService:
    return build_default_logs()


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _house_id(house: str, feeds: FeedService) -> str:
    try:
        return resolve_house(house, feeds.default_house)
    except ValueError as exc:
        raise _bad_request(exc) from exc


def window_params(
    start: Optional[date] = Query(None, description="First day of the window (defaults to today)."),
    end: Optional[date] = Query(None, description="Last day of the window (defaults to start)."),
    start_time: str = Query("00:00", description="Clock time the window opens at, HH:MM."),
    end_time: str = Query("24:00", description="Clock time the window closes at, HH:MM."),
) -> TimeWindow:
    first = start or date.today()
    window = TimeWindow(
        start_date=first,
        end_date=end or first,
        start_time=start_time,
        end_time=end_time,
    )
    span_days = (window.end_date - window.start_date).days + 1
    max_days = get_settings().max_window_days
    if span_days > max_days:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Window spans {span_days} days; at most {max_days} are allowed.",
        )
    try:
        resolve_window(window)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return window


@router.get("/houses", response_model=HouseList, summary="List known houses.")
def list_houses(discovery: DiscoveryService = Depends(get_discovery)) -> HouseList:
    return HouseList(houses=discovery.list_houses())


@router.get(
    "/houses/{house}/sensors",
    response_model=SensorList,
    summary="List sensor names reported by a house.",
)
def list_sensors(
    house: str,
    feeds: FeedService = Depends(get_feeds),
    discovery: DiscoveryService = Depends(get_discovery),
) -> SensorList:
    house_id = _house_id(house, feeds)
    return SensorList(house=house_id, sensors=discovery.list_sensors(house_id))


@router.get(
    "/houses/{house}/latest",
    response_model=Reading,
    summary="Last record of a house in key order.",
)
def latest_reading(
    house: str,
    feeds: FeedService = Depends(get_feeds),
    discovery: DiscoveryService = Depends(get_discovery),
) -> Reading:
    house_id = _house_id(house, feeds)
    reading = discovery.latest_reading(house_id)
    if reading is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No readings available for {house_id!r}.",
        )
    return Reading.from_reading(reading)


@router.get(
    "/houses/{house}/series",
    response_model=SeriesResponse,
    summary="Aggregated egg counts for a window.",
)
def get_series(
    house: str,
    granularity: Granularity = Query(Granularity.hour),
    window: TimeWindow = Depends(window_params),
    feeds: FeedService = Depends(get_feeds),
) -> SeriesResponse:
    house_id = _house_id(house, feeds)
    result = feeds.snapshot(house_id, window, granularity)
    return SeriesResponse.from_result(house_id, result)


@router.get(
    "/houses/{house}/series.csv",
    response_class=PlainTextResponse,
    summary="Aggregated egg counts for a window as CSV.",
)
def export_series(
    house: str,
    granularity: Granularity = Query(Granularity.hour),
    sensor: Optional[List[str]] = Query(None, description="Sensor columns to export."),
    window: TimeWindow = Depends(window_params),
    feeds: FeedService = Depends(get_feeds),
) -> PlainTextResponse:
    house_id = _house_id(house, feeds)
    result = feeds.snapshot(house_id, window, granularity)
    return PlainTextResponse(
        to_csv(result, sensors=sensor),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(granularity)}"'
        },
    )


@router.get(
    "/houses/{house}/series/stream",
    summary="Live aggregated feed as server-sent events.",
)
async def stream_series(
    house: str,
    granularity: Granularity = Query(Granularity.minute),
    window: TimeWindow = Depends(window_params),
    feeds: FeedService = Depends(get_feeds),
) -> StreamingResponse:
    house_id = _house_id(house, feeds)
    return StreamingResponse(
        feed_events(feeds, house_id, window, granularity),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.get(
    "/houses/{house}/total",
    response_model=DailyTotal,
    summary="Eggs collected by a house during one day.",
)
def daily_total(
    house: str,
    day: Optional[date] = Query(None, description="Day to count (defaults to today)."),
    feeds: FeedService = Depends(get_feeds),
) -> DailyTotal:
    house_id = _house_id(house, feeds)
    target = day or date.today()
    return DailyTotal(house=house_id, day=target, eggs=feeds.daily_total(house_id, target))


@router.get("/logs", response_model=LogTail, summary="Latest device log entries, newest first.")
def log_tail(
    house: Optional[str] = Query(None, description="House selector; omit or 'all' for every house."),
    logs: LogService = Depends(get_logs),
) -> LogTail:
    try:
        entries = logs.tail(house)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return LogTail(entries=[LogLine.from_entry(entry, format_entry(entry)) for entry in entries])


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
