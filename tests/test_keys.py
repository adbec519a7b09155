"""Unit tests for record key decoding."""

from __future__ import annotations

from datetime import datetime

import pytest

from services.keys import (
    KeyParseError,
    decode_entries,
    format_record_key,
    house_number,
    parse_record_key,
    parse_sensor_counts,
)


def test_parse_record_key_recovers_calendar_fields() -> None:
    house, timestamp = parse_record_key("Pabellon_1-17-07-2025-14-30")

    assert house == "Pabellon_1"
    assert timestamp == datetime(2025, 7, 17, 14, 30)


def test_parse_record_key_accepts_matching_house() -> None:
    house, timestamp = parse_record_key("Pabellon_12-01-12-2024-00-05", "Pabellon_12")

    assert house == "Pabellon_12"
    assert timestamp == datetime(2024, 12, 1, 0, 5)


def test_parse_record_key_rejects_other_house() -> None:
    with pytest.raises(KeyParseError):
        parse_record_key("Pabellon_2-17-07-2025-14-30", "Pabellon_1")


@pytest.mark.parametrize(
    "key",
    [
        "",
        "Pabellon_1",
        "Pabellon_1-17-07-2025",
        "Pabellon_1-17-07-2025-14",
        "Pabellon_1-17-07-2025-14-30-00",
        "Pabellon_1-aa-07-2025-14-30",
        "Pabellon_1-7-7-2025-14-30",
        "Pabellon_1-31-02-2025-10-00",
        "Pabellon_1-17-13-2025-10-00",
        "Pabellon_1-17-07-2025-24-00",
        "Pabellon_1-17-07-2025-14-60",
        "Granero_1-17-07-2025-14-30",
    ],
)
def test_parse_record_key_rejects_malformed_keys(key: str) -> None:
    with pytest.raises(KeyParseError):
        parse_record_key(key)


def test_key_parse_error_is_a_value_error() -> None:
    assert issubclass(KeyParseError, ValueError)


def test_format_record_key_matches_store_layout() -> None:
    key = format_record_key("Pabellon_3", datetime(2025, 7, 3, 9, 5))

    assert key == "Pabellon_3-03-07-2025-09-05"
    assert parse_record_key(key) == ("Pabellon_3", datetime(2025, 7, 3, 9, 5))


def test_house_number() -> None:
    assert house_number("Pabellon_6") == 6
    assert house_number("LOG") is None


def test_parse_sensor_counts_keeps_non_negative_integers() -> None:
    counts = parse_sensor_counts(
        {"SensorA": 3, "SensorB": "7", "SensorC": -1, "SensorD": True, "SensorE": 2.0, "SensorF": 1.5}
    )

    assert counts == {"SensorA": 3, "SensorE": 2}


def test_parse_sensor_counts_skips_non_finite_values_per_sensor() -> None:
    counts = parse_sensor_counts({"A": float("inf"), "B": 2, "C": float("nan"), "D": float("-inf")})

    assert counts == {"B": 2}


def test_decode_entries_survives_non_finite_counts() -> None:
    raw = {
        "Pabellon_1-17-07-2025-14-30": {"A": float("inf"), "B": 2},
        "Pabellon_1-17-07-2025-14-31": {"A": float("nan")},
        "Pabellon_1-17-07-2025-14-32": {"A": 1},
    }

    readings = decode_entries("Pabellon_1", raw)

    assert [reading.sensors for reading in readings] == [{"B": 2}, {}, {"A": 1}]


def test_parse_sensor_counts_rejects_non_mapping() -> None:
    with pytest.raises(ValueError):
        parse_sensor_counts("broken")


def test_decode_entries_drops_bad_entries_without_aborting() -> None:
    raw = {
        "Pabellon_1-17-07-2025-14-30": {"SensorA": 3, "SensorB": 2},
        "Pabellon_1-17-07-2025-14": {"SensorA": 1},
        "Pabellon_1-17-07-2025-14-31": "broken",
        "Pabellon_2-17-07-2025-14-32": {"SensorA": 5},
        "Pabellon_1-17-07-2025-14-33": {"SensorA": 4},
    }

    readings = decode_entries("Pabellon_1", raw)

    assert [reading.timestamp for reading in readings] == [
        datetime(2025, 7, 17, 14, 30),
        datetime(2025, 7, 17, 14, 33),
    ]
    assert readings[0].sensors == {"SensorA": 3, "SensorB": 2}
    assert readings[0].total == 5
    assert all(reading.house == "Pabellon_1" for reading in readings)


def test_decode_entries_handles_empty_snapshot() -> None:
    assert decode_entries("Pabellon_1", None) == []
    assert decode_entries("Pabellon_1", {}) == []
