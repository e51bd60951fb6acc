"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True, slots=True)
class Reading:
    """A single numeric observation extracted from a telemetry payload."""

    device_id: str
    timestamp: datetime
    value: float


@dataclass(frozen=True, slots=True)
class StabilityVerdict:
    """Outcome of the stability test over one smoothed series.

    ``normalized_derivative`` is ``None`` when the series could not be judged,
    either because it is too short or because its baseline is zero.
    """

    is_stable: bool
    normalized_derivative: Optional[float] = None
