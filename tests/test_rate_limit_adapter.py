"""Unit tests for in-memory rate limiter adapter."""

import threading
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.base import Admit, Reject, UsageRecord
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

MINUTE = 60.0
WINDOW = 5 * MINUTE


def _limiter(limit: int = 10, window_seconds: float = WINDOW, **kwargs) -> InMemoryFixedWindowRateLimiter:
    clock = kwargs.pop("clock", Mock(return_value=0.0))
    return InMemoryFixedWindowRateLimiter(
        limit=limit,
        window_seconds=window_seconds,
        clock=clock,
        **kwargs,
    )


def test_admits_up_to_limit_then_rejects() -> None:
    limiter = _limiter(limit=3)

    assert limiter.check_and_record("k", now=0.0) == Admit()
    assert limiter.check_and_record("k", now=1.0) == Admit()
    assert limiter.check_and_record("k", now=2.0) == Admit()

    decision = limiter.check_and_record("k", now=3.0)
    assert isinstance(decision, Reject)
    assert decision.allowed is False


def test_first_request_creates_record() -> None:
    limiter = _limiter()

    limiter.check_and_record("k", now=100.0)

    assert limiter.get_record("k") == UsageRecord(count=1, window_reset_at=100.0 + WINDOW)
    assert len(limiter) == 1


def test_ten_requests_then_reject_then_reset() -> None:
    """Identity A: 10 at t=0, reject at t=1min, fresh window at t=6min."""
    limiter = _limiter(limit=10)

    decisions = [limiter.check_and_record("A", now=0.0) for _ in range(10)]
    assert all(d == Admit() for d in decisions)
    assert limiter.get_record("A").count == 10

    rejected = limiter.check_and_record("A", now=1 * MINUTE)
    assert rejected == Reject(minutes_remaining=4, retry_after_seconds=240)

    assert limiter.check_and_record("A", now=6 * MINUTE) == Admit()
    assert limiter.get_record("A") == UsageRecord(count=1, window_reset_at=11 * MINUTE)


def test_reject_does_not_mutate_record() -> None:
    limiter = _limiter(limit=2)
    limiter.check_and_record("k", now=0.0)
    limiter.check_and_record("k", now=0.0)

    limiter.check_and_record("k", now=10.0)
    after_first_reject = limiter.get_record("k")

    for t in range(11, 200):
        assert isinstance(limiter.check_and_record("k", now=float(t)), Reject)

    assert limiter.get_record("k") == after_first_reject
    assert after_first_reject == UsageRecord(count=2, window_reset_at=WINDOW)


def test_minutes_remaining_rounds_up() -> None:
    limiter = _limiter(limit=1)
    limiter.check_and_record("k", now=0.0)

    assert limiter.check_and_record("k", now=1.0).minutes_remaining == 5
    assert limiter.check_and_record("k", now=WINDOW - 61).minutes_remaining == 2
    assert limiter.check_and_record("k", now=WINDOW - 1).minutes_remaining == 1


def test_window_is_live_until_strictly_after_reset() -> None:
    limiter = _limiter(limit=1)
    limiter.check_and_record("k", now=0.0)

    at_boundary = limiter.check_and_record("k", now=WINDOW)
    assert isinstance(at_boundary, Reject)
    assert at_boundary.minutes_remaining == 0

    assert limiter.check_and_record("k", now=WINDOW + 0.001) == Admit()


def test_expired_window_is_discarded_entirely() -> None:
    limiter = _limiter(limit=5)
    for _ in range(5):
        limiter.check_and_record("k", now=0.0)
    assert isinstance(limiter.check_and_record("k", now=10.0), Reject)

    limiter.check_and_record("k", now=WINDOW + 50)

    assert limiter.get_record("k") == UsageRecord(count=1, window_reset_at=2 * WINDOW + 50)
    for _ in range(4):
        assert limiter.check_and_record("k", now=WINDOW + 60) == Admit()
    assert isinstance(limiter.check_and_record("k", now=WINDOW + 60), Reject)


def test_window_does_not_slide_with_traffic() -> None:
    limiter = _limiter(limit=100)
    limiter.check_and_record("k", now=0.0)
    limiter.check_and_record("k", now=WINDOW - 1)

    assert limiter.get_record("k").window_reset_at == WINDOW


def test_isolated_by_identity() -> None:
    limiter = _limiter(limit=1)

    assert limiter.check_and_record("k1", now=0.0) == Admit()
    assert isinstance(limiter.check_and_record("k1", now=0.0), Reject)

    assert limiter.check_and_record("k2", now=0.0) == Admit()
    assert limiter.get_record("k1").count == 1
    assert limiter.get_record("k2").count == 1


def test_unknown_clients_share_one_bucket() -> None:
    limiter = _limiter(limit=2)

    limiter.check_and_record("unknown", now=0.0)
    limiter.check_and_record("unknown", now=0.0)

    assert isinstance(limiter.check_and_record("unknown", now=0.0), Reject)


def test_uses_clock_when_now_omitted() -> None:
    clock = Mock(return_value=1_000.0)
    limiter = _limiter(limit=1, clock=clock)

    assert limiter.check_and_record("k") == Admit()
    assert limiter.get_record("k").window_reset_at == 1_000.0 + WINDOW

    clock.return_value = 1_000.0 + WINDOW + 1
    assert limiter.check_and_record("k") == Admit()


def test_sweep_removes_records_expired_for_a_full_window() -> None:
    """Identity B: reset at t=5min, grace through t=10min, swept at t=11min."""
    limiter = _limiter()
    limiter.check_and_record("B", now=0.0)

    assert limiter.sweep(now=10 * MINUTE) == 0
    assert limiter.get_record("B") is not None

    assert limiter.sweep(now=11 * MINUTE) == 1
    assert limiter.get_record("B") is None
    assert len(limiter) == 0


def test_sweep_keeps_live_and_recently_expired_records() -> None:
    limiter = _limiter()
    limiter.check_and_record("old", now=0.0)
    limiter.check_and_record("recent", now=4 * MINUTE)
    limiter.check_and_record("live", now=9 * MINUTE)

    removed = limiter.sweep(now=10 * MINUTE + 1)

    assert removed == 1
    assert limiter.get_record("old") is None
    assert limiter.get_record("recent") is not None
    assert limiter.get_record("live") is not None


def test_sweep_is_idempotent() -> None:
    limiter = _limiter()
    for i in range(5):
        limiter.check_and_record(f"k{i}", now=float(i * MINUTE))

    first = limiter.sweep(now=12.5 * MINUTE)
    second = limiter.sweep(now=12.5 * MINUTE)

    assert first == 3
    assert second == 0
    assert len(limiter) == 2


def test_probabilistic_sweep_runs_when_rng_below_probability() -> None:
    limiter = _limiter(sweep_probability=0.5, rng=Mock(return_value=0.1))
    limiter.check_and_record("stale", now=0.0)

    limiter.check_and_record("fresh", now=20 * MINUTE)

    assert limiter.get_record("stale") is None
    assert limiter.get_record("fresh") is not None


def test_probabilistic_sweep_skipped_when_rng_above_probability() -> None:
    limiter = _limiter(sweep_probability=0.5, rng=Mock(return_value=0.9))
    limiter.check_and_record("stale", now=0.0)

    limiter.check_and_record("fresh", now=20 * MINUTE)

    assert limiter.get_record("stale") is not None


def test_concurrent_requests_never_lose_increments() -> None:
    limiter = _limiter(limit=100)
    threads_count = 8
    calls_per_thread = 50
    barrier = threading.Barrier(threads_count)
    admitted: list[int] = []
    admitted_lock = threading.Lock()

    def _worker() -> None:
        barrier.wait()
        local = 0
        for _ in range(calls_per_thread):
            if limiter.check_and_record("shared", now=1.0) == Admit():
                local += 1
        with admitted_lock:
            admitted.append(local)

    threads = [threading.Thread(target=_worker) for _ in range(threads_count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(admitted) == 100
    assert limiter.get_record("shared").count == 100


def test_sweep_concurrent_with_updates() -> None:
    limiter = _limiter(limit=1_000)
    for i in range(200):
        limiter.check_and_record(f"stale-{i}", now=0.0)

    def _writer() -> None:
        for _ in range(500):
            limiter.check_and_record("active", now=20 * MINUTE)

    writer = threading.Thread(target=_writer)
    writer.start()
    removed = limiter.sweep(now=20 * MINUTE)
    writer.join()

    assert removed == 200
    assert limiter.get_record("active").count == 500


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
        {"limit": 1, "window_seconds": 60, "sweep_probability": 1.5},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryFixedWindowRateLimiter(**kwargs)


def test_invalid_identity() -> None:
    limiter = _limiter()

    with pytest.raises(ValueError):
        limiter.check_and_record("")
