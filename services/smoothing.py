"""Causal moving-average filter."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable


class MovingAverageFilter:
    """Mean of the last ``window`` pushed values.

    The buffer grows until it holds ``window`` samples and then slides, so the
    first ``window - 1`` outputs average over fewer samples.
    """

    def __init__(self, window: int = 3) -> None:
        if window < 1:
            raise ValueError("Smoothing window must be at least 1.")
        self.window = window
        self._buffer: Deque[float] = deque(maxlen=window)

    def push(self, value: float) -> float:
        self._buffer.append(value)
        return sum(self._buffer) / len(self._buffer)


def smooth(values: Iterable[float], window: int = 3) -> list[float]:
    """Apply a fresh filter to ``values`` in order."""
    moving_average = MovingAverageFilter(window)
    return [moving_average.push(value) for value in values]
