"""Retry policy and retry-inside-breaker composition."""

import random

import pytest

from agenda.application import CircuitOpen, Conflict, StoreUnavailable, UpstreamUnavailable
from agenda.infrastructure.resilience import (
    CircuitBreakerConfig,
    CircuitState,
    ResilienceConfig,
    ResiliencePolicy,
    RetryConfig,
    RetryPolicy,
    is_retryable,
)


class Flaky:
    """Fails `failures` times with `error`, then returns 'ok'."""

    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or StoreUnavailable("down")
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_retry_succeeds_within_attempts():
    sleeps = []
    policy = RetryPolicy(RetryConfig(max_attempts=3, base_delay=1.0, jitter=0), sleep=sleeps.append)
    fn = Flaky(2)

    assert policy.call(fn) == "ok"
    assert fn.calls == 3
    assert sleeps == [1.0, 2.0]


def test_retry_gives_up_after_max_attempts():
    sleeps = []
    policy = RetryPolicy(RetryConfig(max_attempts=3, base_delay=0.1, jitter=0), sleep=sleeps.append)
    fn = Flaky(10)

    with pytest.raises(StoreUnavailable):
        policy.call(fn)
    assert fn.calls == 3
    assert len(sleeps) == 2


def test_non_retryable_errors_raise_immediately():
    policy = RetryPolicy(RetryConfig(max_attempts=5, base_delay=0), sleep=lambda _: None)
    fn = Flaky(1, Conflict("c-1"))

    with pytest.raises(Conflict):
        policy.call(fn)
    assert fn.calls == 1


def test_backoff_is_capped_and_jittered():
    policy = RetryPolicy(
        RetryConfig(base_delay=1.0, multiplier=2.0, max_delay=3.0, jitter=0.5),
        rng=random.Random(7),
    )
    for attempt in range(1, 6):
        expected = min(2.0 ** (attempt - 1), 3.0)
        assert expected * 0.5 <= policy.delay_for(attempt) <= expected * 1.5


def test_is_retryable_classification():
    assert is_retryable(StoreUnavailable("x"))
    assert is_retryable(TimeoutError())
    assert is_retryable(ConnectionError())
    assert not is_retryable(CircuitOpen("store"))
    assert not is_retryable(UpstreamUnavailable("bad request", retryable=False))
    assert not is_retryable(ValueError("bad"))


def test_retry_sequence_counts_as_one_breaker_outcome():
    config = ResilienceConfig(
        retry=RetryConfig(max_attempts=3, base_delay=0, jitter=0),
        breaker=CircuitBreakerConfig(window_size=2, minimum_calls=2, failure_rate_threshold=1.0),
    )
    policy = ResiliencePolicy.from_config("store", config, clock=FakeClock(), sleep=lambda _: None)

    fn = Flaky(3)
    with pytest.raises(StoreUnavailable):
        policy.call(fn)
    assert fn.calls == 3
    assert policy.snapshot().failure_count == 1
    assert policy.breaker.state == CircuitState.CLOSED

    with pytest.raises(StoreUnavailable):
        policy.call(Flaky(3))
    assert policy.breaker.state == CircuitState.OPEN


def test_open_circuit_fails_fast_without_retrying():
    clock = FakeClock()
    config = ResilienceConfig(
        retry=RetryConfig(max_attempts=3, base_delay=0, jitter=0),
        breaker=CircuitBreakerConfig(
            window_size=1, minimum_calls=1, open_cooldown=10, half_open_probes=1
        ),
    )
    policy = ResiliencePolicy.from_config("upstream", config, clock=clock, sleep=lambda _: None)
    with pytest.raises(StoreUnavailable):
        policy.call(Flaky(5))

    fn = Flaky(0)
    with pytest.raises(CircuitOpen):
        policy.call(fn)
    assert fn.calls == 0

    clock.now = 10
    assert policy.call(fn) == "ok"
    assert policy.breaker.state == CircuitState.CLOSED


def test_recovered_call_is_a_breaker_success():
    policy = ResiliencePolicy(
        "store", retry=RetryPolicy(RetryConfig(base_delay=0), sleep=lambda _: None)
    )
    assert policy.call(Flaky(2)) == "ok"
    assert policy.snapshot().failure_count == 0
