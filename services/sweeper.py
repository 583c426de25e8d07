# sweeper.py
from __future__ import annotations

import logging
import threading
from typing import Optional, Tuple

from services.session_store import SessionStore

logger = logging.getLogger(__name__)


class SessionSweeper:
    """
    Background maintenance for a SessionStore: every `interval` seconds drop
    expired sessions, then evict least recently updated ones over capacity.

    Usage:
        sweeper = SessionSweeper(store, interval=120)
        sweeper.start()
        ...
        sweeper.stop()

    run_once() does a single pass and is what tests call directly.
    """
    def __init__(self, store: SessionStore, interval: float = 120.0,
                 ttl: Optional[float] = None, max_sessions: Optional[int] = None):
        self.store = store
        self.interval = float(interval)
        self.ttl = ttl
        self.max_sessions = max_sessions
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self, now: Optional[float] = None) -> Tuple[int, int]:
        expired = self.store.sweep_expired(self.ttl, now=now)
        evicted = self.store.enforce_capacity(self.max_sessions)
        logger.debug(f"Sweep pass: expired={expired} evicted={evicted} live={len(self.store)}")
        return expired, evicted

    def _loop(self):
        while not self._stop.wait(self.interval):
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Session sweep failed: {e}")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="session-sweeper", daemon=True)
        self._thread.start()
        logger.info(f"Session sweeper started (every {self.interval:.0f}s)")

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
