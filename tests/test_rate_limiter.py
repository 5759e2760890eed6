import threading

import pytest

from chatbox_translator.core.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_requests_beyond_budget_wait_instead_of_failing():
    clock = FakeClock()
    limiter = RateLimiter(3, clock=clock, sleep=clock.sleep)

    results = [limiter.acquire() for _ in range(5)]

    assert results == [True] * 5
    # Two extra requests at 3 per minute need two refills of 20 s each
    assert clock.now == pytest.approx(40.0, abs=0.05)
    assert sum(clock.sleeps) >= 39.9


def test_first_burst_up_to_capacity_does_not_wait():
    clock = FakeClock()
    limiter = RateLimiter(10, clock=clock, sleep=clock.sleep)

    for _ in range(10):
        assert limiter.acquire() is True

    assert clock.sleeps == []
    assert limiter.try_acquire() is False


def test_tokens_refill_over_time():
    clock = FakeClock()
    limiter = RateLimiter(60, clock=clock, sleep=clock.sleep)
    for _ in range(60):
        assert limiter.try_acquire()
    assert limiter.try_acquire() is False

    clock.now += 1.0
    assert limiter.try_acquire() is True
    assert limiter.try_acquire() is False
    assert limiter.time_until_available() == pytest.approx(1.0)


def test_bucket_never_exceeds_capacity():
    clock = FakeClock()
    limiter = RateLimiter(5, clock=clock, sleep=clock.sleep)
    clock.now += 3600

    assert limiter.available_tokens == pytest.approx(5.0)


def test_stop_event_abandons_wait():
    limiter = RateLimiter(1)
    assert limiter.acquire() is True

    stop = threading.Event()
    timer = threading.Timer(0.1, stop.set)
    timer.start()
    try:
        assert limiter.acquire(stop) is False
    finally:
        timer.cancel()


def test_concurrent_callers_never_overdraw():
    clock = FakeClock()
    limiter = RateLimiter(50, clock=clock, sleep=clock.sleep)
    granted = []
    lock = threading.Lock()

    def worker():
        for _ in range(20):
            if limiter.try_acquire():
                with lock:
                    granted.append(1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(granted) == 50


def test_rejects_non_positive_rate():
    with pytest.raises(ValueError):
        RateLimiter(0)
