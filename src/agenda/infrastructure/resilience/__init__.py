"""Retry and circuit-breaker protection for outbound calls."""

from agenda.infrastructure.resilience.circuit_breaker import (
    BreakerSnapshot,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from agenda.infrastructure.resilience.policy import ResilienceConfig, ResiliencePolicy
from agenda.infrastructure.resilience.retry import RetryConfig, RetryPolicy, is_retryable

__all__ = [
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "ResilienceConfig",
    "ResiliencePolicy",
    "RetryConfig",
    "RetryPolicy",
    "is_retryable",
]
