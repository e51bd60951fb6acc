"""Pull the monitored scalar out of arbitrary telemetry payloads."""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional

from app.schemas import TelemetryRecord
from models.records import Reading


class MetricExtractor:
    """Reads a numeric value at a dotted field path such as ``temp`` or ``probe.ohms``."""

    def __init__(self, field_path: str = "temp") -> None:
        segments = tuple(part for part in field_path.split(".") if part)
        if not segments:
            raise ValueError("Metric field path must not be empty.")
        self.field_path = field_path
        self._segments = segments

    def extract(self, payload: Any) -> Optional[float]:
        current = payload
        for segment in self._segments:
            if not isinstance(current, Mapping):
                return None
            current = current.get(segment)
            if current is None:
                return None

        # bool is an int subclass; a flag is not a measurement.
        if isinstance(current, bool) or not isinstance(current, (int, float)):
            return None
        try:
            value = float(current)
        except OverflowError:
            return None
        if not math.isfinite(value):
            return None
        return value

    def extract_readings(
        self, device_id: str, records: Iterable[TelemetryRecord]
    ) -> list[Reading]:
        readings: list[Reading] = []
        for record in records:
            value = self.extract(record.payload)
            if value is None:
                continue
            readings.append(
                Reading(device_id=device_id, timestamp=record.timestamp, value=value)
            )
        return readings
