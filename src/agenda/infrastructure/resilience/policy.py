"""Retry inside a circuit breaker: one exhausted retry sequence is one breaker failure."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from agenda.infrastructure.resilience.circuit_breaker import (
    BreakerSnapshot,
    CircuitBreaker,
    CircuitBreakerConfig,
)
from agenda.infrastructure.resilience.retry import RetryConfig, RetryPolicy


@dataclass(frozen=True)
class ResilienceConfig:
    retry: RetryConfig = field(default_factory=RetryConfig)
    breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    call_timeout: float = 5.0


class ResiliencePolicy:
    """Named protection for one outbound dependency."""

    def __init__(
        self,
        name: str,
        *,
        retry: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
        call_timeout: float = 5.0,
    ) -> None:
        self.name = name
        self.retry = retry or RetryPolicy()
        self.breaker = breaker or CircuitBreaker(name)
        self.call_timeout = call_timeout

    @classmethod
    def from_config(
        cls,
        name: str,
        config: ResilienceConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "ResiliencePolicy":
        return cls(
            name,
            retry=RetryPolicy(config.retry, sleep=sleep),
            breaker=CircuitBreaker(name, config.breaker, clock=clock),
            call_timeout=config.call_timeout,
        )

    def call(self, fn, *args, **kwargs):
        return self.breaker.call(self.retry.call, fn, *args, **kwargs)

    def snapshot(self) -> BreakerSnapshot:
        return self.breaker.snapshot()
