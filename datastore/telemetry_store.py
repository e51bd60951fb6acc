from __future__ import annotations
import json
from collections import defaultdict
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional

from app.schemas import TelemetryRecord
from settings import get_settings


class TelemetryStore:
    """Append-only telemetry records keyed by device, with range queries."""

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._records: Dict[str, List[TelemetryRecord]] = defaultdict(list)
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def append(
        self,
        device_id: str,
        payload: Mapping[str, Any],
        timestamp: Optional[datetime] = None,
    ) -> TelemetryRecord:
        record = TelemetryRecord(
            device_id=device_id,
            payload=dict(payload),
            timestamp=_as_utc(timestamp or datetime.now(timezone.utc)),
        )
        with self._lock:
            self._records[device_id].append(record)
            self._persist()
        return record.model_copy(deep=True)

    def fetch_readings(
        self, device_id: str, start: datetime, end: datetime
    ) -> list[TelemetryRecord]:
        """Return records with ``start <= timestamp <= end``, newest first."""

        start, end = _as_utc(start), _as_utc(end)
        with self._lock:
            matches = [
                record.model_copy(deep=True)
                for record in self._records.get(device_id, ())
                if start <= record.timestamp <= end
            ]
        matches.sort(key=lambda record: record.timestamp, reverse=True)
        return matches

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            device_id: [record.model_dump(mode="json") for record in records]
            for device_id, records in self._records.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for device_id, records in data.items():
            self._records[device_id] = [
                TelemetryRecord.model_validate(record) for record in records
            ]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@lru_cache
def build_default_store(path: Optional[str] = None) -> TelemetryStore:
    settings = get_settings()
    store_path = settings.telemetry_persistence_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return TelemetryStore(persistence_path=persistence)
