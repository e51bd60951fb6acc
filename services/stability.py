"""Stability test over a smoothed series."""

from __future__ import annotations

import sys
from typing import Sequence

from models.records import StabilityVerdict
from services.smoothing import smooth

MIN_POINTS = 3
DEFAULT_THRESHOLD = 0.01


def detect_stability(
    series: Sequence[float], threshold: float = DEFAULT_THRESHOLD
) -> StabilityVerdict:
    """Judge a smoothed series by its endpoint slope relative to its first value.

    The slope is ``(last - first) / len(series)``, normalized by ``first``; the
    series is stable when the absolute normalized slope is below ``threshold``.
    Only the two endpoints are compared, so a transient at either end can flip
    the verdict while the middle of the window is ignored. Existing thresholds
    are tuned against exactly this formula.
    """
    if len(series) < MIN_POINTS:
        return StabilityVerdict(is_stable=False)

    first = series[0]
    last = series[-1]
    if abs(first) < sys.float_info.epsilon:
        return StabilityVerdict(is_stable=False)

    derivative = (last - first) / len(series)
    normalized = derivative / first
    return StabilityVerdict(
        is_stable=abs(normalized) < threshold,
        normalized_derivative=normalized,
    )


class StabilityDetector:
    """Smooths raw values and runs :func:`detect_stability` on the result."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD, window: int = 3) -> None:
        if window < 1:
            raise ValueError("Smoothing window must be at least 1.")
        self.threshold = threshold
        self.window = window

    def evaluate(self, values: Sequence[float]) -> StabilityVerdict:
        return detect_stability(smooth(values, self.window), self.threshold)
