"""Unit tests for the in-process realtime database."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from datastore.base import StoreQuery, StoreReadError
from datastore.mock_realtime import MockRealtimeDatabase


def test_get_returns_deep_copy() -> None:
    database = MockRealtimeDatabase()
    database.set_value("Pabellon_1/Pabellon_1-17-07-2025-14-01", {"SensorA": 3})

    fetched = database.get("Pabellon_1")
    fetched["Pabellon_1-17-07-2025-14-01"]["SensorA"] = 99

    assert database.get("Pabellon_1") == {"Pabellon_1-17-07-2025-14-01": {"SensorA": 3}}


def test_get_missing_path_is_empty() -> None:
    assert MockRealtimeDatabase().get("Pabellon_9") == {}


def test_get_non_collection_raises() -> None:
    database = MockRealtimeDatabase()
    database.set_value("Pabellon_1", "oops")

    with pytest.raises(StoreReadError):
        database.get("Pabellon_1")


def test_query_bounds_are_inclusive_and_limit_keeps_the_tail() -> None:
    database = MockRealtimeDatabase()
    for minute in range(5):
        database.set_value(f"LOG/Pabellon_1-17-07-2025-10-0{minute}", {"Log": str(minute)})

    bounded = database.get(
        "LOG",
        StoreQuery(start_at="Pabellon_1-17-07-2025-10-01", end_at="Pabellon_1-17-07-2025-10-03"),
    )
    tail = database.get("LOG", StoreQuery(limit_to_last=2))

    assert list(bounded) == [
        "Pabellon_1-17-07-2025-10-01",
        "Pabellon_1-17-07-2025-10-02",
        "Pabellon_1-17-07-2025-10-03",
    ]
    assert list(tail) == ["Pabellon_1-17-07-2025-10-03", "Pabellon_1-17-07-2025-10-04"]


def test_shallow_keys_lists_top_level_children() -> None:
    database = MockRealtimeDatabase()
    database.set_value("Pabellon_2/k", {"A": 1})
    database.set_value("Pabellon_1/k", {"A": 1})
    database.set_value("LOG/k", {"Log": "x"})

    assert database.shallow_keys() == ["LOG", "Pabellon_1", "Pabellon_2"]
    assert database.shallow_keys("Pabellon_1/k/A") == []


def test_root_cannot_be_overwritten() -> None:
    with pytest.raises(ValueError):
        MockRealtimeDatabase().set_value("/", {"a": 1})


def test_listener_receives_initial_snapshot_and_changes() -> None:
    database = MockRealtimeDatabase()
    database.set_value("Pabellon_1/a", {"S": 1})
    snapshots: List[Dict[str, Any]] = []

    registration = database.listen("Pabellon_1", None, snapshots.append)
    database.set_value("Pabellon_1/b", {"S": 2})
    database.set_value("Pabellon_2/c", {"S": 3})
    database.delete("Pabellon_1/a")

    assert snapshots == [
        {"a": {"S": 1}},
        {"a": {"S": 1}, "b": {"S": 2}},
        {"b": {"S": 2}},
    ]

    registration.close()
    database.set_value("Pabellon_1/d", {"S": 4})
    assert len(snapshots) == 3
    assert database.listener_count() == 0


def test_listener_applies_its_query() -> None:
    database = MockRealtimeDatabase()
    snapshots: List[Dict[str, Any]] = []
    database.listen("LOG", StoreQuery(limit_to_last=1), snapshots.append)

    database.set_value("LOG/a", {"Log": "first"})
    database.set_value("LOG/b", {"Log": "second"})

    assert snapshots[-1] == {"b": {"Log": "second"}}


def test_listener_error_callback_on_unreadable_node() -> None:
    database = MockRealtimeDatabase()
    errors: List[Exception] = []
    snapshots: List[Dict[str, Any]] = []
    database.listen("Pabellon_1", None, snapshots.append, errors.append)

    database.set_value("Pabellon_1", 5)
    database.emit_error("Pabellon_1", StoreReadError("revoked"))

    assert snapshots == [{}]
    assert len(errors) == 2
    assert all(isinstance(error, StoreReadError) for error in errors)


def test_close_drops_every_listener() -> None:
    database = MockRealtimeDatabase()
    database.listen("a", None, lambda _snapshot: None)
    database.listen("b", None, lambda _snapshot: None)

    database.close()

    assert database.listener_count() == 0


def test_persistence_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "db.json"
    database = MockRealtimeDatabase(persistence_path=path)
    database.set_value("Pabellon_1/Pabellon_1-17-07-2025-14-01", {"SensorA": 3})

    stored = json.loads(path.read_text())
    reloaded = MockRealtimeDatabase(persistence_path=path)

    assert stored == {"Pabellon_1": {"Pabellon_1-17-07-2025-14-01": {"SensorA": 3}}}
    assert reloaded.get("Pabellon_1") == {"Pabellon_1-17-07-2025-14-01": {"SensorA": 3}}


def test_corrupt_persistence_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "db.json"
    path.write_text("{not json")

    assert MockRealtimeDatabase(persistence_path=path).shallow_keys() == []
