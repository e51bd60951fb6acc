"""Background stability evaluation triggered by telemetry ingestion."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from functools import lru_cache
from threading import Lock
from typing import Any, Dict, Optional, Set

from app.schemas import AlertAttempt, EvaluationScheduling
from datastore.alert_log import AlertLog, build_default_alert_log
from datastore.telemetry_store import build_default_store
from models.records import StabilityVerdict
from services.dispatcher import AlertDispatcher
from services.extractor import MetricExtractor
from services.history import DataUnavailable, HistoryFetcher
from services.stability import StabilityDetector
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


class EvaluationOutcome(str, Enum):
    data_unavailable = "data_unavailable"
    no_data = "no_data"
    not_stable = "not_stable"
    suppressed = "suppressed"
    alerted = "alerted"
    alert_failed = "alert_failed"


@dataclass
class EvaluationReport:
    """What one trigger evaluation observed and did."""

    device_id: str
    outcome: EvaluationOutcome
    reading_count: int = 0
    verdict: Optional[StabilityVerdict] = None
    alert: Optional[AlertAttempt] = None


@dataclass
class _DeviceState:
    lock: Lock = field(default_factory=Lock)
    evaluation_lock: Lock = field(default_factory=Lock)
    in_flight: bool = False
    rerun_requested: bool = False
    # Set once an alert is delivered; cleared by the next non-stable verdict.
    alert_sent: bool = False


class TriggerCoordinator:
    """Runs fetch, extract, smooth, detect and dispatch for ingested devices.

    Each device has at most one evaluation in flight. Events arriving while
    one runs are coalesced into a single follow-up evaluation, so a burst of
    writes costs at most two evaluations. Different devices run in parallel
    on the worker pool.
    """

    def __init__(
        self,
        fetcher: HistoryFetcher,
        extractor: MetricExtractor,
        detector: StabilityDetector,
        dispatcher: AlertDispatcher,
        alert_log: AlertLog,
        workers: int = 4,
    ) -> None:
        self.fetcher = fetcher
        self.extractor = extractor
        self.detector = detector
        self.dispatcher = dispatcher
        self.alert_log = alert_log
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="trigger")
        self._devices: Dict[str, _DeviceState] = {}
        self._devices_lock = Lock()
        self._futures: Set[Future[None]] = set()
        self._futures_lock = Lock()

    def submit(self, device_id: str, payload: Any) -> EvaluationScheduling:
        """Hand an ingestion event to the background pool without waiting."""
        if self.extractor.extract(payload) is None:
            logger.debug(
                "Payload has no %s value; not evaluating",
                self.extractor.field_path,
                extra={"device_id": device_id},
            )
            return EvaluationScheduling.ignored

        state = self._state_for(device_id)
        with state.lock:
            if state.in_flight:
                state.rerun_requested = True
                logger.debug(
                    "Evaluation already in flight; coalescing",
                    extra={"device_id": device_id},
                )
                return EvaluationScheduling.coalesced
            state.in_flight = True

        try:
            future = self.executor.submit(self._run, device_id, state)
        except RuntimeError:
            with state.lock:
                state.in_flight = False
            raise
        with self._futures_lock:
            self._futures.add(future)
        future.add_done_callback(self._clear_future)
        return EvaluationScheduling.scheduled

    def evaluate(self, device_id: str, now: Optional[datetime] = None) -> EvaluationReport:
        """Run one evaluation synchronously, serialized with any other for the device."""
        state = self._state_for(device_id)
        with state.evaluation_lock:
            report = self._evaluate(device_id, state, now)
        logger.info(
            "Trigger evaluation finished",
            extra={
                "device_id": device_id,
                "outcome": report.outcome.value,
                "reading_count": report.reading_count,
                "normalized_derivative": report.verdict.normalized_derivative
                if report.verdict
                else None,
            },
        )
        return report

    def alert_pending(self, device_id: str) -> bool:
        """True while the device is inside an episode that was already alerted."""
        state = self._state_for(device_id)
        with state.lock:
            return state.alert_sent

    def wait_idle(self, timeout: float = 5.0) -> bool:
        """Block until no evaluation is scheduled; returns False on timeout."""
        deadline = time.monotonic() + timeout
        while True:
            with self._futures_lock:
                pending = [f for f in self._futures if not f.done()]
            if not pending:
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            wait(pending, timeout=remaining)

    def shutdown(self) -> None:
        """Release worker pools and the notification client."""
        self.executor.shutdown(wait=False, cancel_futures=True)
        self.fetcher.shutdown()
        self.dispatcher.close()

    def _state_for(self, device_id: str) -> _DeviceState:
        with self._devices_lock:
            state = self._devices.get(device_id)
            if state is None:
                state = self._devices[device_id] = _DeviceState()
            return state

    def _clear_future(self, future: Future[None]) -> None:
        with self._futures_lock:
            self._futures.discard(future)

    def _run(self, device_id: str, state: _DeviceState) -> None:
        while True:
            try:
                self.evaluate(device_id)
            except Exception:
                logger.exception(
                    "Trigger evaluation failed unexpectedly",
                    extra={"device_id": device_id},
                )
            with state.lock:
                if state.rerun_requested:
                    state.rerun_requested = False
                    continue
                state.in_flight = False
                return

    def _evaluate(
        self, device_id: str, state: _DeviceState, now: Optional[datetime]
    ) -> EvaluationReport:
        try:
            records = self.fetcher.fetch(device_id, now=now)
        except DataUnavailable as exc:
            logger.warning(
                "Telemetry window unavailable; skipping evaluation",
                extra={"device_id": device_id, "reason": str(exc)},
            )
            return EvaluationReport(device_id, EvaluationOutcome.data_unavailable)

        readings = self.extractor.extract_readings(device_id, records)
        if not readings:
            return EvaluationReport(device_id, EvaluationOutcome.no_data)

        verdict = self.detector.evaluate([reading.value for reading in readings])
        if not verdict.is_stable:
            with state.lock:
                state.alert_sent = False
            return EvaluationReport(
                device_id, EvaluationOutcome.not_stable, len(readings), verdict
            )

        with state.lock:
            already_alerted = state.alert_sent
        if already_alerted:
            return EvaluationReport(
                device_id, EvaluationOutcome.suppressed, len(readings), verdict
            )

        attempt = self.dispatcher.send(
            device_id, f"Device {device_id} reported stable resistance"
        )
        self.alert_log.record(attempt)
        if not attempt.delivered:
            return EvaluationReport(
                device_id, EvaluationOutcome.alert_failed, len(readings), verdict, attempt
            )

        with state.lock:
            state.alert_sent = True
        return EvaluationReport(
            device_id, EvaluationOutcome.alerted, len(readings), verdict, attempt
        )


@lru_cache
def build_default_coordinator(settings: Optional[Settings] = None) -> TriggerCoordinator:
    """Factory that wires the coordinator against the default stores."""
    settings = settings or get_settings()
    fetcher = HistoryFetcher(
        build_default_store(),
        lookback=timedelta(seconds=settings.lookback_seconds),
        timeout=settings.store_timeout_seconds,
        workers=settings.trigger_workers,
    )
    return TriggerCoordinator(
        fetcher=fetcher,
        extractor=MetricExtractor(settings.metric_field),
        detector=StabilityDetector(settings.stability_threshold, settings.smoothing_window),
        dispatcher=AlertDispatcher(settings),
        alert_log=build_default_alert_log(),
        workers=settings.trigger_workers,
    )
