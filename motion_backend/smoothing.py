# smoothing.py
from __future__ import annotations
from collections import deque
from typing import Deque, Tuple

import numpy as np

Sample = Tuple[float, float]

POLICIES = ("weighted", "simple")


def new_history(window: int) -> Deque[Sample]:
    return deque(maxlen=max(1, int(window)))


class SampleSmoother:
    """
    Bounded-window moving average over (x, y) motion samples.

    Usage:
        smoother = SampleSmoother(window=3, policy="weighted")
        hist = new_history(smoother.window)
        fx, fy = smoother.push(hist, (0.0, 0.0), (4.0, -2.0))

    "weighted": sample i (oldest=1 .. newest=n) gets weight i**2.
    "simple":   plain arithmetic mean of the window.
    Either way the result stays within min/max of the samples in the window.
    """
    def __init__(self, window: int = 3, policy: str = "weighted",
                 outlier_guard: bool = True, outlier_threshold: float = 5.0,
                 outlier_blend: float = 0.4):
        if policy not in POLICIES:
            raise ValueError(f"Unknown smoothing policy '{policy}'")
        self.window = max(1, int(window))
        self.policy = policy
        self.outlier_guard = outlier_guard
        self.outlier_threshold = float(outlier_threshold)
        self.outlier_blend = float(outlier_blend)

    @classmethod
    def from_settings(cls, s) -> "SampleSmoother":
        return cls(window=s.window, policy=s.policy, outlier_guard=s.outlier_guard,
                   outlier_threshold=s.outlier_threshold, outlier_blend=s.outlier_blend)

    def _guard(self, prev: float, raw: float) -> float:
        # blend a spike toward the previous estimate instead of inserting it raw
        if self.outlier_guard and abs(raw - prev) > self.outlier_threshold:
            return (1.0 - self.outlier_blend) * prev + self.outlier_blend * raw
        return raw

    def push(self, history: Deque[Sample], prev: Sample, sample: Sample) -> Sample:
        """Insert `sample` into `history` (in place) and return the new filtered (x, y)."""
        x, y = float(sample[0]), float(sample[1])
        if not history:
            history.append((x, y))
            return (x, y)

        history.append((self._guard(prev[0], x), self._guard(prev[1], y)))
        while len(history) > self.window:
            history.popleft()
        return self.filtered(history)

    def filtered(self, history: Deque[Sample]) -> Sample:
        arr = np.asarray(history, dtype=float)
        if self.policy == "weighted":
            w = np.arange(1, len(arr) + 1, dtype=float) ** 2
            avg = np.average(arr, axis=0, weights=w)
        else:
            avg = arr.mean(axis=0)
        fx, fy = np.clip(avg, arr.min(axis=0), arr.max(axis=0))
        return (float(fx), float(fy))
