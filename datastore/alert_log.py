from __future__ import annotations
from collections import defaultdict, deque
from functools import lru_cache
from threading import Lock
from typing import Deque, Dict

from app.schemas import AlertAttempt


class AlertLog:
    """Bounded, in-memory history of dispatch attempts per device."""

    def __init__(self, max_per_device: int = 100) -> None:
        self._attempts: Dict[str, Deque[AlertAttempt]] = defaultdict(
            lambda: deque(maxlen=max_per_device)
        )
        self._lock = Lock()

    def record(self, attempt: AlertAttempt) -> None:
        with self._lock:
            self._attempts[attempt.device_id].append(attempt.model_copy(deep=True))

    def list_for_device(self, device_id: str) -> list[AlertAttempt]:
        """Return the device's attempts, oldest first."""

        with self._lock:
            return [item.model_copy(deep=True) for item in self._attempts.get(device_id, ())]


@lru_cache
def build_default_alert_log() -> AlertLog:
    return AlertLog()
