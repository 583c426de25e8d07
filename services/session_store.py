# session_store.py
from __future__ import annotations

import math
import time
import logging
import secrets
import threading
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

from motion_backend.smoothing import SampleSmoother, Sample, new_history
from services.errors import AtCapacity, InvalidMotionData, InvalidToken, TokenGenerationExhausted

logger = logging.getLogger(__name__)

ALPHABETS = {
    # no 0/1/O/I/l so tokens can be read off a screen and typed
    "clear": "23456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz",
    "numeric": "0123456789",
}


@dataclass
class MotionSession:
    token: str
    created_at: float
    last_update: float
    history: Deque[Sample]
    filtered_x: float = 0.0
    filtered_y: float = 0.0
    last_raw: Sample = (0.0, 0.0)
    update_count: int = 0
    throttled_count: int = 0

    def age(self, now: float) -> float:
        return now - self.last_update

    def summary(self, now: float) -> Dict[str, Any]:
        return {
            "token": self.token,
            "filtered": {"x": round(self.filtered_x, 3), "y": round(self.filtered_y, 3)},
            "history_len": len(self.history),
            "age_s": round(self.age(now), 3),
            "alive_s": round(now - self.created_at, 3),
            "update_count": self.update_count,
            "throttled_count": self.throttled_count,
        }


@dataclass
class UpdateResult:
    session: MotionSession
    throttled: bool = False


@dataclass
class StoreCounters:
    created: int = 0
    updates: int = 0
    throttled: int = 0
    expired: int = 0
    evicted: int = 0


def is_fresh(session: MotionSession, ttl: float, now: float) -> bool:
    """A session is alive while now - last_update <= ttl (age == ttl still counts)."""
    return session.age(now) <= ttl


class SessionStore:
    """
    In-memory token -> MotionSession table with TTL expiry and a size cap.

    Quick start:
        store = SessionStore(smoother=SampleSmoother())
        token = store.create()
        store.update(token, 3.2, -1.0)
        s = store.get(token)
        store.sweep_expired()       # drop sessions idle longer than ttl
        store.enforce_capacity()    # evict least recently updated

    `clock` returns seconds and defaults to time.monotonic; tests pass a fake.
    get() does not check TTL: each read path applies its own window.
    """

    def __init__(
        self,
        smoother: Optional[SampleSmoother] = None,
        ttl: float = 120.0,
        max_sessions: int = 500,
        token_length: int = 8,
        token_alphabet: str = "clear",
        token_attempts: int = 10,
        debounce: float = 0.020,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if token_alphabet not in ALPHABETS:
            raise ValueError(f"Unknown token alphabet '{token_alphabet}'")
        self.smoother = smoother or SampleSmoother()
        self.ttl = float(ttl)
        self.max_sessions = int(max_sessions)
        self.token_length = int(token_length)
        self.alphabet = ALPHABETS[token_alphabet]
        self.token_attempts = int(token_attempts)
        self.debounce = float(debounce)
        self._clock = clock or time.monotonic

        self._lock = threading.RLock()
        self._sessions: Dict[str, MotionSession] = {}
        self.counters = StoreCounters()

    @classmethod
    def from_settings(cls, s, smoother: SampleSmoother,
                      clock: Optional[Callable[[], float]] = None) -> "SessionStore":
        return cls(
            smoother=smoother,
            ttl=s.ttl_s,
            max_sessions=s.max_sessions,
            token_length=s.token_length,
            token_alphabet=s.token_alphabet,
            token_attempts=s.token_attempts,
            debounce=s.debounce_s,
            clock=clock,
        )

    def now(self) -> float:
        return self._clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._sessions

    # --------- Tokens ---------
    def _new_token(self) -> str:
        return "".join(secrets.choice(self.alphabet) for _ in range(self.token_length))

    # --------- Core API ---------
    def create(self) -> str:
        """Insert a zeroed session and return its token."""
        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                self.sweep_expired()
                if len(self._sessions) >= self.max_sessions:
                    logger.warning(f"Rejecting new session: store full ({self.max_sessions})")
                    raise AtCapacity()

            for _ in range(self.token_attempts):
                token = self._new_token()
                if token not in self._sessions:
                    break
            else:
                logger.error(f"No unique token after {self.token_attempts} attempts")
                raise TokenGenerationExhausted()

            now = self.now()
            self._sessions[token] = MotionSession(
                token=token,
                created_at=now,
                last_update=now,
                history=new_history(self.smoother.window),
            )
            self.counters.created += 1
        logger.info(f"Session {token} created ({len(self)} live)")
        return token

    def get(self, token: Optional[str]) -> Optional[MotionSession]:
        if not token:
            return None
        with self._lock:
            return self._sessions.get(token)

    def update(self, token: Optional[str], x: Any, y: Any) -> UpdateResult:
        """
        Feed one raw sample through the smoother.
        Updates arriving within `debounce` seconds of the previous accepted one
        are acknowledged but ignored (throttled=True).
        """
        with self._lock:
            s = self._sessions.get(token) if token else None
            if s is None:
                raise InvalidToken()

            if isinstance(x, bool) or isinstance(y, bool):
                raise InvalidMotionData()
            try:
                fx, fy = float(x), float(y)
            except (TypeError, ValueError):
                raise InvalidMotionData() from None
            if not (math.isfinite(fx) and math.isfinite(fy)):
                raise InvalidMotionData()

            now = max(self.now(), s.last_update)
            if s.update_count > 0 and (now - s.last_update) < self.debounce:
                s.throttled_count += 1
                self.counters.throttled += 1
                logger.debug(f"Session {token} update throttled")
                return UpdateResult(session=s, throttled=True)

            s.last_raw = (fx, fy)
            s.filtered_x, s.filtered_y = self.smoother.push(
                s.history, (s.filtered_x, s.filtered_y), (fx, fy)
            )
            s.last_update = now
            s.update_count += 1
            self.counters.updates += 1
            return UpdateResult(session=s)

    def delete(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def sessions(self) -> List[MotionSession]:
        with self._lock:
            return list(self._sessions.values())

    # --------- Maintenance ---------
    def sweep_expired(self, ttl: Optional[float] = None, now: Optional[float] = None) -> int:
        """Remove every session idle for more than ttl seconds. Returns number removed."""
        ttl = self.ttl if ttl is None else float(ttl)
        with self._lock:
            now = self.now() if now is None else now
            expired = [t for t, s in self._sessions.items() if not is_fresh(s, ttl, now)]
            for t in expired:
                del self._sessions[t]
            self.counters.expired += len(expired)
        if expired:
            logger.info(f"Swept {len(expired)} expired session(s)")
        return len(expired)

    def enforce_capacity(self, max_sessions: Optional[int] = None) -> int:
        """Evict least recently updated sessions until at most max_sessions remain."""
        cap = self.max_sessions if max_sessions is None else int(max_sessions)
        with self._lock:
            excess = len(self._sessions) - max(0, cap)
            if excess <= 0:
                return 0
            oldest = sorted(self._sessions.values(), key=lambda s: s.last_update)[:excess]
            for s in oldest:
                del self._sessions[s.token]
            self.counters.evicted += len(oldest)
        logger.info(f"Evicted {len(oldest)} session(s) over capacity {cap}")
        return len(oldest)

    # --------- Diagnostics ---------
    def stats(self, now: Optional[float] = None) -> Dict[str, Any]:
        with self._lock:
            now = self.now() if now is None else now
            ages: List[float] = [s.age(now) for s in self._sessions.values()]
            c = self.counters
            return {
                "sessions": len(ages),
                "max_sessions": self.max_sessions,
                "oldest_age_s": round(max(ages), 3) if ages else None,
                "newest_age_s": round(min(ages), 3) if ages else None,
                "total_created": c.created,
                "total_updates": c.updates,
                "total_throttled": c.throttled,
                "total_expired": c.expired,
                "total_evicted": c.evicted,
            }
