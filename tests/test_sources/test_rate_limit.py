from __future__ import annotations

import pytest

from fek_ingest.utils.rate_limit import MinIntervalRateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.t = 0.0
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.t

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += seconds

    def advance(self, seconds: float) -> None:
        self.t += seconds


def test_first_call_does_not_wait() -> None:
    clock = FakeClock()
    limiter = MinIntervalRateLimiter(1.2, now=clock.now, sleep=clock.sleep)

    with limiter.slot():
        pass

    assert clock.sleeps == []


def test_back_to_back_calls_are_spaced_from_completion() -> None:
    clock = FakeClock()
    limiter = MinIntervalRateLimiter(1.2, now=clock.now, sleep=clock.sleep)

    with limiter.slot():
        clock.advance(0.5)  # call duration
    with limiter.slot():
        pass

    assert clock.sleeps == [pytest.approx(1.2)]


def test_no_wait_when_interval_already_elapsed() -> None:
    clock = FakeClock()
    limiter = MinIntervalRateLimiter(1.2, now=clock.now, sleep=clock.sleep)

    with limiter.slot():
        pass
    clock.advance(2.0)
    with limiter.slot():
        pass

    assert clock.sleeps == []


def test_partial_wait() -> None:
    clock = FakeClock()
    limiter = MinIntervalRateLimiter(1.2, now=clock.now, sleep=clock.sleep)

    with limiter.slot():
        pass
    clock.advance(0.7)
    with limiter.slot():
        pass

    assert clock.sleeps == [pytest.approx(0.5)]


def test_completion_is_stamped_even_when_call_raises() -> None:
    clock = FakeClock()
    limiter = MinIntervalRateLimiter(1.0, now=clock.now, sleep=clock.sleep)

    with pytest.raises(RuntimeError):
        with limiter.slot():
            raise RuntimeError("boom")
    with limiter.slot():
        pass

    assert clock.sleeps == [pytest.approx(1.0)]


def test_negative_interval_rejected() -> None:
    with pytest.raises(ValueError):
        MinIntervalRateLimiter(-1)
