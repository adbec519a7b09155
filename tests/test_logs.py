from __future__ import annotations

from datetime import datetime
from typing import List

import pytest

from datastore.mock_realtime import MockRealtimeDatabase
from models.records import LogEntry
from services.logs import INVALID_LOG_MESSAGE, LogService, format_entry, parse_log_entries


def _seeded() -> MockRealtimeDatabase:
    database = MockRealtimeDatabase()
    database.set_value("LOG/Pabellon_1-17-07-2025-10-00", {"Log": "Sensor A reiniciado"})
    database.set_value("LOG/Pabellon_2-17-07-2025-10-05", {"Log": "WiFi conectado"})
    database.set_value("LOG/Pabellon_1-17-07-2025-10-10", {"Nope": 1})
    database.set_value("LOG/garbage", {"Log": "ignored"})
    return database


def test_parse_log_entries_orders_newest_first_across_houses_and_months() -> None:
    entries = parse_log_entries(
        {
            "Pabellon_1-31-07-2025-10-00": {"Log": "older"},
            "Pabellon_1-01-08-2025-10-00": {"Log": "newer"},
            "Pabellon_6-01-07-2025-10-00": {"Log": "oldest"},
            "bad-key": {"Log": "ignored"},
        }
    )

    assert [entry.message for entry in entries] == ["newer", "older", "oldest"]
    assert parse_log_entries(None) == []


def test_tail_returns_newest_entry_first() -> None:
    database = MockRealtimeDatabase()
    database.set_value("LOG/Pabellon_1-31-07-2025-10-00", {"Log": "older"})
    database.set_value("LOG/Pabellon_1-01-08-2025-10-00", {"Log": "newer"})
    database.set_value("LOG/Pabellon_6-01-07-2025-10-00", {"Log": "oldest"})

    assert [entry.message for entry in LogService(database).tail()] == ["newer", "older", "oldest"]


def test_entries_without_text_get_a_placeholder() -> None:
    entries = parse_log_entries({"Pabellon_3-01-01-2025-00-00": "raw"})

    assert entries[0].message == INVALID_LOG_MESSAGE
    assert entries[0].house == "Pabellon_3"


def test_format_entry() -> None:
    entry = LogEntry(
        key="Pabellon_2-17-07-2025-10-05",
        house="Pabellon_2",
        timestamp=datetime(2025, 7, 17, 10, 5),
        message="WiFi conectado",
    )

    assert format_entry(entry) == "Pabellón 2 (17-07-2025 10:05): WiFi conectado"


def test_tail_filters_by_house() -> None:
    service = LogService(_seeded(), limit=100)

    assert len(service.tail()) == 3
    assert len(service.tail("all")) == 3
    assert [entry.house for entry in service.tail("gallinero-2")] == ["Pabellon_2"]
    assert [entry.message for entry in service.tail("Pabellon_1")] == [
        INVALID_LOG_MESSAGE,
        "Sensor A reiniciado",
    ]


def test_tail_honours_the_limit() -> None:
    service = LogService(_seeded(), limit=3)

    assert [entry.key for entry in service.tail()] == [
        "Pabellon_1-17-07-2025-10-10",
        "Pabellon_2-17-07-2025-10-05",
    ]


def test_tail_rejects_unknown_selector() -> None:
    with pytest.raises(ValueError):
        LogService(_seeded()).tail("barn")


def test_tail_is_empty_when_unreadable() -> None:
    database = MockRealtimeDatabase()
    database.set_value("LOG", "broken")

    assert LogService(database).tail() == []


def test_subscribe_pushes_new_entries() -> None:
    database = _seeded()
    updates: List[List[LogEntry]] = []

    subscription = LogService(database).subscribe("Pabellon_2", updates.append)
    database.set_value("LOG/Pabellon_2-17-07-2025-11-00", {"Log": "Puerta abierta"})
    subscription.unsubscribe()
    database.set_value("LOG/Pabellon_2-17-07-2025-12-00", {"Log": "Puerta cerrada"})

    assert len(updates) == 2
    assert updates[1][0].message == "Puerta abierta"
    assert database.listener_count() == 0


def test_subscribe_delivers_empty_list_on_error() -> None:
    database = _seeded()
    updates: List[List[LogEntry]] = []
    LogService(database).subscribe(None, updates.append)

    database.set_value("LOG", 3)

    assert updates[-1] == []
