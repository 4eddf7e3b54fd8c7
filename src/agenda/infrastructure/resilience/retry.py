"""Bounded retry with exponential backoff and jitter."""

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from agenda.application.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior. max_attempts counts the first call."""

    max_attempts: int = 3
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 5.0
    jitter: float = 0.5

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if not 0.0 <= self.jitter <= 1.0:
            raise ValueError("jitter must be in [0, 1]")


def is_retryable(error: BaseException) -> bool:
    """Transport-level failures are retried; business errors and open circuits are not."""
    if isinstance(error, UpstreamUnavailable):
        return error.retryable
    return isinstance(error, (TimeoutError, ConnectionError))


class RetryPolicy:
    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
        should_retry: Callable[[BaseException], bool] = is_retryable,
    ) -> None:
        self._config = config or RetryConfig()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._should_retry = should_retry

    @property
    def config(self) -> RetryConfig:
        return self._config

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number `attempt` (1-based), jitter applied."""
        cfg = self._config
        delay = min(cfg.base_delay * (cfg.multiplier ** (attempt - 1)), cfg.max_delay)
        if cfg.jitter:
            delay += self._rng.uniform(-cfg.jitter, cfg.jitter) * delay
        return max(0.0, delay)

    def call(self, fn, *args, **kwargs):
        attempt = 1
        while True:
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                if not self._should_retry(e) or attempt >= self._config.max_attempts:
                    if attempt > 1:
                        logger.debug("Giving up after %d attempt(s): %s", attempt, e)
                    raise
                delay = self.delay_for(attempt)
                logger.debug("Attempt %d failed (%s); retrying in %.2fs", attempt, e, delay)
                self._sleep(delay)
                attempt += 1
