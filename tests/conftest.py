import pytest

from motion_backend.config import Settings
from motion_backend.smoothing import SampleSmoother
from services.session_store import SessionStore


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, dt: float) -> float:
        self.t += dt
        return self.t


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(smoother=SampleSmoother(), ttl=120, max_sessions=50, clock=clock)


@pytest.fixture
def settings():
    s = Settings()
    s.session.sweep_autostart = False
    return s
