# mapping.py
from __future__ import annotations
import math
from typing import Tuple

import numpy as np

SCALE_MIN, SCALE_MAX, SCALE_CENTER = 1, 9, 5
AXIS_CENTER = 0
CENTER_SCALE = "X05Y05"

CURVES = ("linear", "sqrt")


def round_half_up(v: float) -> int:
    # halves go toward +inf: 2.5 -> 3, -2.5 -> -2
    return int(math.floor(v + 0.5))


def format_scale(sx: int, sy: int) -> str:
    """Fixed 6-char payload parsed positionally by the block client: X##Y##."""
    return f"X{int(sx):02d}Y{int(sy):02d}"


class RangeMapper:
    """
    Turns a filtered velocity into what the polling client consumes:
      - axis_value():  integer in [-axis_bound, axis_bound]
      - scale_value(): integer in [1, 9], 5 = centered
    Readings where either axis exceeds sanity_bound are treated as corrupted
    and replaced by the center value.
    """
    def __init__(self, sensitivity: float = 0.8, axis_bound: int = 5,
                 scale_range: float = 10.0, curve: str = "linear",
                 sanity_bound: float = 20.0):
        if curve not in CURVES:
            raise ValueError(f"Unknown response curve '{curve}'")
        if scale_range <= 0:
            raise ValueError("scale_range must be positive")
        self.sensitivity = float(sensitivity)
        self.axis_bound = int(axis_bound)
        self.scale_range = float(scale_range)
        self.curve = curve
        self.sanity_bound = float(sanity_bound)

    @classmethod
    def from_settings(cls, s) -> "RangeMapper":
        return cls(sensitivity=s.sensitivity, axis_bound=s.axis_bound,
                   scale_range=s.scale_range, curve=s.curve, sanity_bound=s.sanity_bound)

    def is_sane(self, x: float, y: float) -> bool:
        return (math.isfinite(x) and math.isfinite(y)
                and abs(x) <= self.sanity_bound and abs(y) <= self.sanity_bound)

    def axis_value(self, v: float) -> int:
        b = self.axis_bound
        return int(np.clip(round_half_up(v * self.sensitivity), -b, b))

    def scale_value(self, v: float) -> int:
        r = self.scale_range
        n = float(np.clip(v, -r, r)) / r
        if self.curve == "sqrt":
            n = math.copysign(abs(n) ** 0.5, n)
        s = round_half_up(((n + 1.0) / 2.0) * 8.0 + 1.0)
        return int(np.clip(s, SCALE_MIN, SCALE_MAX))

    # --------- whole-reading helpers ---------
    def axes(self, x: float, y: float) -> Tuple[int, int]:
        if not self.is_sane(x, y):
            return (AXIS_CENTER, AXIS_CENTER)
        return (self.axis_value(x), self.axis_value(y))

    def scale(self, x: float, y: float) -> str:
        if not self.is_sane(x, y):
            return CENTER_SCALE
        return format_scale(self.scale_value(x), self.scale_value(y))
