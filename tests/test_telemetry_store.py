"""Unit tests for the in-process telemetry store."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

from datastore.telemetry_store import TelemetryStore

BASE = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_fetch_returns_range_newest_first() -> None:
    store = TelemetryStore()
    for minute in range(5):
        store.append("washer", {"temp": float(minute)}, BASE + timedelta(minutes=minute))
    store.append("dryer", {"temp": 99.0}, BASE + timedelta(minutes=2))

    records = store.fetch_readings(
        "washer", BASE + timedelta(minutes=1), BASE + timedelta(minutes=3)
    )

    assert [record.payload["temp"] for record in records] == [3.0, 2.0, 1.0]
    assert all(record.device_id == "washer" for record in records)


def test_fetch_unknown_device_returns_empty() -> None:
    store = TelemetryStore()

    assert store.fetch_readings("missing", BASE, BASE + timedelta(hours=1)) == []


def test_fetch_returns_deep_copies() -> None:
    store = TelemetryStore()
    store.append("washer", {"temp": 1.0}, BASE)

    fetched = store.fetch_readings("washer", BASE, BASE)
    fetched[0].payload["temp"] = 42.0

    again = store.fetch_readings("washer", BASE, BASE)
    assert again[0].payload["temp"] == 1.0


def test_naive_timestamps_are_treated_as_utc() -> None:
    store = TelemetryStore()
    record = store.append("washer", {"temp": 1.0}, datetime(2024, 1, 1, 12, 0))

    assert record.timestamp == BASE
    assert store.fetch_readings("washer", datetime(2024, 1, 1, 11, 0), BASE) == [record]


def test_append_defaults_timestamp_to_now() -> None:
    store = TelemetryStore()
    before = datetime.now(timezone.utc)

    record = store.append("washer", {"temp": 1.0})

    assert before <= record.timestamp <= datetime.now(timezone.utc)


def test_append_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "telemetry.json"
    store = TelemetryStore(persistence_path=path)
    store.append("washer", {"temp": 100.0}, BASE)

    payload = json.loads(path.read_text())
    assert payload["washer"][0]["payload"] == {"temp": 100.0}

    reloaded = TelemetryStore(persistence_path=path)
    records = reloaded.fetch_readings("washer", BASE, BASE)
    assert len(records) == 1
    assert records[0].timestamp == BASE


def test_corrupt_persistence_file_starts_empty(tmp_path) -> None:
    path = tmp_path / "telemetry.json"
    path.write_text("{not json")

    store = TelemetryStore(persistence_path=path)

    assert store.fetch_readings("washer", BASE, BASE) == []
