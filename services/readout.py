# readout.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from motion_backend.mapping import AXIS_CENTER, CENTER_SCALE, RangeMapper
from services.session_store import MotionSession, SessionStore, is_fresh

logger = logging.getLogger(__name__)


class ReadState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    ABSENT = "absent"


class MotionReadout:
    """
    Read side used by the polling client.

    scale() and axis() never raise: STALE, ABSENT and any internal fault all
    degrade to the center value ("X05Y05" / 0). latest() returns None for
    anything that is not FRESH so the HTTP layer can answer 404.
    """
    def __init__(self, store: SessionStore, mapper: RangeMapper, read_ttl: float = 60.0):
        self.store = store
        self.mapper = mapper
        self.read_ttl = float(read_ttl)

    def resolve(self, token: Optional[str], now: Optional[float] = None) -> Tuple[ReadState, Optional[MotionSession]]:
        s = self.store.get(token)
        if s is None:
            return ReadState.ABSENT, None
        now = self.store.now() if now is None else now
        if not is_fresh(s, self.read_ttl, now):
            return ReadState.STALE, s
        return ReadState.FRESH, s

    def scale(self, token: Optional[str]) -> str:
        try:
            state, s = self.resolve(token)
            if state is not ReadState.FRESH:
                return CENTER_SCALE
            return self.mapper.scale(s.filtered_x, s.filtered_y)
        except Exception:
            logger.exception(f"Scale read failed for {token!r}")
            return CENTER_SCALE

    def axis(self, token: Optional[str], axis: str) -> int:
        try:
            state, s = self.resolve(token)
            if state is not ReadState.FRESH:
                return AXIS_CENTER
            ax, ay = self.mapper.axes(s.filtered_x, s.filtered_y)
            return ax if axis == "x" else ay
        except Exception:
            logger.exception(f"Axis read failed for {token!r}")
            return AXIS_CENTER

    def latest(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        now = self.store.now()
        state, s = self.resolve(token, now)
        if state is not ReadState.FRESH:
            return None
        return {
            "x": s.filtered_x,
            "y": s.filtered_y,
            "raw_x": s.last_raw[0],
            "raw_y": s.last_raw[1],
            "age_s": round(s.age(now), 3),
            "update_count": s.update_count,
        }
