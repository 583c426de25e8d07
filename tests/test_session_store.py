import pytest

from motion_backend.smoothing import SampleSmoother
from services.errors import AtCapacity, InvalidMotionData, InvalidToken, TokenGenerationExhausted
from services.session_store import ALPHABETS, SessionStore


def test_create_returns_clear_token(store):
    token = store.create()
    assert len(token) == 8
    assert all(c in ALPHABETS["clear"] for c in token)
    assert not set(token) & set("01OIl")
    s = store.get(token)
    assert (s.filtered_x, s.filtered_y) == (0.0, 0.0)
    assert s.update_count == 0
    assert len(store) == 1


def test_numeric_tokens(clock):
    st = SessionStore(token_alphabet="numeric", token_length=6, clock=clock)
    token = st.create()
    assert len(token) == 6 and token.isdigit()


def test_tokens_are_unique(store):
    tokens = {store.create() for _ in range(40)}
    assert len(tokens) == 40


def test_token_collisions_exhaust(clock, monkeypatch):
    st = SessionStore(token_attempts=3, clock=clock)
    monkeypatch.setattr(st, "_new_token", lambda: "AAAAAAAA")
    st.create()
    with pytest.raises(TokenGenerationExhausted):
        st.create()


def test_get_unknown_is_none(store):
    assert store.get("nope") is None
    assert store.get(None) is None


def test_update_unknown_token(store):
    with pytest.raises(InvalidToken):
        store.update("ZZZZZZZZ", 1, 2)


def test_unknown_token_checked_before_numbers(store):
    with pytest.raises(InvalidToken):
        store.update("ZZZZZZZZ", "abc", None)


@pytest.mark.parametrize("x,y", [("abc", 1), (None, 0), (float("nan"), 0), (0, float("inf")), (True, 0), (0, False)])
def test_update_rejects_bad_numbers(store, x, y):
    token = store.create()
    with pytest.raises(InvalidMotionData):
        store.update(token, x, y)


def test_first_update_is_raw(store, clock):
    token = store.create()
    res = store.update(token, 10, -10)
    assert not res.throttled
    assert (res.session.filtered_x, res.session.filtered_y) == (10.0, -10.0)
    assert res.session.update_count == 1
    assert res.session.last_update == clock.t


def test_debounce_throttles_rapid_updates(store, clock):
    token = store.create()
    store.update(token, 1, 1)
    clock.advance(0.010)
    res = store.update(token, 3, 3)
    assert res.throttled
    assert res.session.update_count == 1
    assert res.session.filtered_x == 1.0
    clock.advance(0.015)
    res = store.update(token, 3, 3)
    assert not res.throttled
    assert res.session.update_count == 2
    assert store.stats()["total_throttled"] == 1


def test_history_bounded_and_filtered_in_range(clock):
    st = SessionStore(smoother=SampleSmoother(window=3), clock=clock)
    token = st.create()
    for i in range(10):
        clock.advance(0.1)
        st.update(token, (-1) ** i * i * 0.5, i * 0.3)
    s = st.get(token)
    assert len(s.history) == 3
    xs = [h[0] for h in s.history]
    ys = [h[1] for h in s.history]
    assert min(xs) <= s.filtered_x <= max(xs)
    assert min(ys) <= s.filtered_y <= max(ys)


def test_sweep_boundary_is_strict(store, clock):
    token = store.create()
    assert store.sweep_expired(now=clock.t + 120) == 0
    assert token in store
    assert store.sweep_expired(now=clock.t + 120.001) == 1
    assert token not in store


def test_sweep_removes_only_expired(store, clock):
    old = store.create()
    clock.advance(100)
    live = store.create()
    clock.advance(30)
    assert store.sweep_expired() == 1
    assert old not in store
    assert live in store


def test_update_keeps_session_alive(store, clock):
    token = store.create()
    clock.advance(100)
    store.update(token, 1, 1)
    clock.advance(100)
    assert store.sweep_expired() == 0


def test_create_rejects_when_full(clock):
    st = SessionStore(max_sessions=2, ttl=120, clock=clock)
    st.create()
    st.create()
    with pytest.raises(AtCapacity):
        st.create()
    assert len(st) == 2


def test_create_reclaims_expired_before_rejecting(clock):
    st = SessionStore(max_sessions=2, ttl=120, clock=clock)
    st.create()
    st.create()
    clock.advance(121)
    st.create()
    assert len(st) == 1


def test_enforce_capacity_evicts_least_recently_updated(store, clock):
    tokens = []
    for _ in range(5):
        tokens.append(store.create())
        clock.advance(1)
    clock.advance(1)
    store.update(tokens[0], 1, 1)
    assert store.enforce_capacity(2) == 3
    assert tokens[0] in store
    assert tokens[4] in store
    assert all(t not in store for t in tokens[1:4])
    assert store.stats()["total_evicted"] == 3


def test_enforce_capacity_noop_under_limit(store):
    store.create()
    assert store.enforce_capacity(10) == 0


def test_stats(store, clock):
    store.create()
    clock.advance(5)
    store.create()
    st = store.stats()
    assert st["sessions"] == 2
    assert st["oldest_age_s"] == 5
    assert st["newest_age_s"] == 0
    assert st["total_created"] == 2
