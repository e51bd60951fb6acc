from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.schemas import TelemetryRecord
from services.extractor import MetricExtractor


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"temp": 21.5}, 21.5),
        ({"temp": 20}, 20.0),
        ({"temp": "21.5"}, None),
        ({"temp": True}, None),
        ({"temp": None}, None),
        ({"temp": float("nan")}, None),
        ({"temp": 10**400}, None),
        ({"humidity": 40}, None),
        ({}, None),
        ([1, 2, 3], None),
        ("temp", None),
    ],
)
def test_extract_top_level_field(payload, expected) -> None:
    assert MetricExtractor("temp").extract(payload) == expected


def test_extract_nested_field_path() -> None:
    extractor = MetricExtractor("probe.ohms")

    assert extractor.extract({"probe": {"ohms": 1200.0}}) == 1200.0
    assert extractor.extract({"probe": 1200.0}) is None
    assert extractor.extract({"ohms": 1200.0}) is None


def test_empty_field_path_is_rejected() -> None:
    with pytest.raises(ValueError):
        MetricExtractor("")


def test_extract_readings_discards_non_numeric_records() -> None:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    records = [
        TelemetryRecord(device_id="washer", payload={"temp": 100.0}, timestamp=base),
        TelemetryRecord(
            device_id="washer", payload={"temp": "hot"}, timestamp=base + timedelta(minutes=1)
        ),
        TelemetryRecord(
            device_id="washer", payload={"temp": 101.0}, timestamp=base + timedelta(minutes=2)
        ),
    ]

    readings = MetricExtractor("temp").extract_readings("washer", records)

    assert [reading.value for reading in readings] == [100.0, 101.0]
    assert all(reading.device_id == "washer" for reading in readings)
    assert readings[1].timestamp == base + timedelta(minutes=2)


def test_extract_readings_skips_integers_beyond_float_range() -> None:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    records = [
        TelemetryRecord(device_id="washer", payload={"temp": 10**400}, timestamp=base),
        TelemetryRecord(
            device_id="washer", payload={"temp": 99.5}, timestamp=base + timedelta(minutes=1)
        ),
    ]

    readings = MetricExtractor("temp").extract_readings("washer", records)

    assert [reading.value for reading in readings] == [99.5]
