from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_NTFY_BASE_URL_ENV = "NTFY_BASE_URL"
_NTFY_TOPIC_ENV = "NTFY_TOPIC"
_ALERT_TITLE_ENV = "ALERT_TITLE"
_ALERT_PRIORITY_ENV = "ALERT_PRIORITY"
_METRIC_FIELD_ENV = "METRIC_FIELD"
_THRESHOLD_ENV = "STABILITY_THRESHOLD"
_WINDOW_ENV = "SMOOTHING_WINDOW"
_LOOKBACK_ENV = "LOOKBACK_SECONDS"
_STORE_TIMEOUT_ENV = "STORE_TIMEOUT_SECONDS"
_NOTIFY_TIMEOUT_ENV = "NOTIFY_TIMEOUT_SECONDS"
_NOTIFY_ATTEMPTS_ENV = "NOTIFY_MAX_ATTEMPTS"
_NOTIFY_BACKOFF_ENV = "NOTIFY_BACKOFF_SECONDS"
_WORKER_COUNT_ENV = "TRIGGER_WORKER_COUNT"
_TELEMETRY_PATH_ENV = "TELEMETRY_PERSISTENCE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    ntfy_base_url: str = "https://ntfy.sh"
    ntfy_topic: Optional[str] = None
    alert_title: str = "Washing Complete :)"
    alert_priority: str = "default"
    metric_field: str = "temp"
    stability_threshold: float = 0.01
    smoothing_window: int = 3
    lookback_seconds: float = 3600.0
    store_timeout_seconds: float = 5.0
    notify_timeout_seconds: float = 10.0
    notify_max_attempts: int = 3
    notify_backoff_seconds: float = 0.5
    trigger_workers: int = 4
    telemetry_persistence_path: Optional[str] = None
    log_level: str = "INFO"


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        ntfy_base_url=_read_str_env(_NTFY_BASE_URL_ENV, "https://ntfy.sh").rstrip("/"),
        ntfy_topic=_read_optional_env(_NTFY_TOPIC_ENV, None),
        alert_title=_read_str_env(_ALERT_TITLE_ENV, "Washing Complete :)"),
        alert_priority=_read_str_env(_ALERT_PRIORITY_ENV, "default"),
        metric_field=_read_str_env(_METRIC_FIELD_ENV, "temp"),
        stability_threshold=_read_positive_float(_THRESHOLD_ENV, 0.01),
        smoothing_window=_read_positive_int(_WINDOW_ENV, 3),
        lookback_seconds=_read_positive_float(_LOOKBACK_ENV, 3600.0),
        store_timeout_seconds=_read_positive_float(_STORE_TIMEOUT_ENV, 5.0),
        notify_timeout_seconds=_read_positive_float(_NOTIFY_TIMEOUT_ENV, 10.0),
        notify_max_attempts=_read_positive_int(_NOTIFY_ATTEMPTS_ENV, 3),
        notify_backoff_seconds=_read_positive_float(_NOTIFY_BACKOFF_ENV, 0.5),
        trigger_workers=_read_positive_int(_WORKER_COUNT_ENV, 4),
        telemetry_persistence_path=_read_optional_env(_TELEMETRY_PATH_ENV, None),
        log_level=_read_log_level("INFO"),
    )
