"""Retrieve the trailing window of telemetry for a device."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, Sequence

from app.schemas import TelemetryRecord

logger = logging.getLogger(__name__)


class DataUnavailable(Exception):
    """The telemetry store could not answer a window query."""


class TelemetrySource(Protocol):
    def fetch_readings(
        self, device_id: str, start: datetime, end: datetime
    ) -> Sequence[TelemetryRecord]: ...


class HistoryFetcher:
    """Queries the store with a bounded timeout and normalizes to oldest-first."""

    def __init__(
        self,
        store: TelemetrySource,
        lookback: timedelta = timedelta(hours=1),
        timeout: float = 5.0,
        workers: int = 4,
    ) -> None:
        self.store = store
        self.lookback = lookback
        self.timeout = timeout
        self.executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="history-fetch"
        )

    def fetch(
        self, device_id: str, now: Optional[datetime] = None
    ) -> list[TelemetryRecord]:
        end = now or datetime.now(timezone.utc)
        start = end - self.lookback
        future = self.executor.submit(self.store.fetch_readings, device_id, start, end)
        try:
            records = future.result(timeout=self.timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            raise DataUnavailable(
                f"Telemetry query for device {device_id!r} timed out after {self.timeout}s."
            ) from exc
        except Exception as exc:
            raise DataUnavailable(
                f"Telemetry query for device {device_id!r} failed: {exc}"
            ) from exc

        logger.debug(
            "Fetched telemetry window",
            extra={"device_id": device_id, "reading_count": len(records)},
        )
        return sorted(records, key=lambda record: record.timestamp)

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)
