"""Circuit breaker with an explicit state machine and a count-based sliding window."""

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from agenda.application.errors import CircuitOpen, Conflict, NotFound

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


# Allowed transitions. Anything else is a bug.
_TRANSITIONS: dict[CircuitState, frozenset[CircuitState]] = {
    CircuitState.CLOSED: frozenset({CircuitState.OPEN}),
    CircuitState.OPEN: frozenset({CircuitState.HALF_OPEN}),
    CircuitState.HALF_OPEN: frozenset({CircuitState.CLOSED, CircuitState.OPEN}),
}

# Outcomes that prove the dependency answered; never counted as failures.
DEFAULT_IGNORED_ERRORS: tuple[type[BaseException], ...] = (NotFound, Conflict, ValueError)


@dataclass(frozen=True)
class CircuitBreakerConfig:
    window_size: int = 10
    minimum_calls: int = 10
    failure_rate_threshold: float = 0.5
    open_cooldown: float = 30.0
    half_open_probes: int = 3

    def __post_init__(self):
        if self.window_size < 1:
            raise ValueError("window_size must be >= 1")
        if not 1 <= self.minimum_calls <= self.window_size:
            raise ValueError("minimum_calls must be between 1 and window_size")
        if not 0.0 < self.failure_rate_threshold <= 1.0:
            raise ValueError("failure_rate_threshold must be in (0, 1]")
        if self.open_cooldown < 0:
            raise ValueError("open_cooldown must be >= 0")
        if self.half_open_probes < 1:
            raise ValueError("half_open_probes must be >= 1")


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time view of the breaker, for health output and logs."""

    name: str
    state: CircuitState
    failure_count: int
    window_calls: int
    failure_rate: float
    probe_successes: int
    open_for: float | None  # seconds since the breaker last opened; None unless OPEN/HALF_OPEN

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "window_calls": self.window_calls,
            "failure_rate": self.failure_rate,
            "probe_successes": self.probe_successes,
            "open_for": self.open_for,
        }


class CircuitBreaker:
    """
    CLOSED -> OPEN when the failure rate over the last `window_size` calls reaches the
    threshold (once `minimum_calls` outcomes are recorded).
    OPEN -> HALF_OPEN after `open_cooldown` seconds.
    HALF_OPEN -> CLOSED after `half_open_probes` successful probes; -> OPEN on any probe failure.
    """

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        ignored_errors: tuple[type[BaseException], ...] = DEFAULT_IGNORED_ERRORS,
    ) -> None:
        self.name = name
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._ignored_errors = ignored_errors
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._window: deque[bool] = deque(maxlen=self._config.window_size)
        self._opened_at: float | None = None
        self._probes_in_flight = 0
        self._probe_successes = 0
        # Bumped on every transition; outcomes of calls admitted in an older generation are dropped.
        self._generation = 0

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._refresh()
            return self._state

    def call(self, fn, *args, **kwargs):
        """Run fn if the breaker admits it. Raises CircuitOpen without calling fn otherwise."""
        generation = self._acquire()
        try:
            result = fn(*args, **kwargs)
        except self._ignored_errors:
            self._on_success(generation)
            raise
        except Exception as e:
            self._on_failure(e, generation)
            raise
        self._on_success(generation)
        return result

    def snapshot(self) -> BreakerSnapshot:
        with self._lock:
            self._refresh()
            failures = sum(1 for ok in self._window if not ok)
            calls = len(self._window)
            return BreakerSnapshot(
                name=self.name,
                state=self._state,
                failure_count=failures,
                window_calls=calls,
                failure_rate=(failures / calls) if calls else 0.0,
                probe_successes=self._probe_successes,
                open_for=None if self._opened_at is None else self._clock() - self._opened_at,
            )

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._clear_counters()
            self._opened_at = None
            self._generation += 1
        logger.info("Circuit '%s' reset", self.name)

    # --- internals; callers hold self._lock ---

    def _acquire(self) -> int:
        with self._lock:
            self._refresh()
            if self._state == CircuitState.OPEN:
                raise CircuitOpen(self.name)
            if self._state == CircuitState.HALF_OPEN:
                if self._probes_in_flight + self._probe_successes >= self._config.half_open_probes:
                    raise CircuitOpen(self.name)
                self._probes_in_flight += 1
            return self._generation

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug("Circuit '%s' dropped outcome of a call admitted before the last transition", self.name)
            return True
        return False

    def _on_success(self, generation: int) -> None:
        with self._lock:
            if self._is_stale(generation):
                return
            if self._state == CircuitState.HALF_OPEN:
                self._probes_in_flight -= 1
                self._probe_successes += 1
                if self._probe_successes >= self._config.half_open_probes:
                    self._transition(CircuitState.CLOSED)
            elif self._state == CircuitState.CLOSED:
                self._window.append(True)

    def _on_failure(self, error: Exception, generation: int) -> None:
        with self._lock:
            if self._is_stale(generation):
                return
            logger.debug("Circuit '%s' recorded failure: %s", self.name, error)
            if self._state == CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN)
            elif self._state == CircuitState.CLOSED:
                self._window.append(False)
                if self._threshold_breached():
                    self._transition(CircuitState.OPEN)

    def _threshold_breached(self) -> bool:
        calls = len(self._window)
        if calls < self._config.minimum_calls:
            return False
        failures = sum(1 for ok in self._window if not ok)
        return failures / calls >= self._config.failure_rate_threshold

    def _refresh(self) -> None:
        if (
            self._state == CircuitState.OPEN
            and self._opened_at is not None
            and self._clock() - self._opened_at >= self._config.open_cooldown
        ):
            self._transition(CircuitState.HALF_OPEN)

    def _transition(self, target: CircuitState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Circuit '{self.name}': illegal transition {self._state.value} -> {target.value}"
            )
        previous = self._state
        self._state = target
        self._generation += 1
        self._clear_counters()
        if target == CircuitState.OPEN:
            self._opened_at = self._clock()
            logger.warning(
                "Circuit '%s' %s -> OPEN; rejecting calls for %.1fs",
                self.name,
                previous.value,
                self._config.open_cooldown,
            )
        elif target == CircuitState.HALF_OPEN:
            logger.info("Circuit '%s' OPEN -> HALF_OPEN; allowing %d probe(s)", self.name, self._config.half_open_probes)
        else:
            self._opened_at = None
            logger.info("Circuit '%s' HALF_OPEN -> CLOSED", self.name)

    def _clear_counters(self) -> None:
        self._window.clear()
        self._probes_in_flight = 0
        self._probe_successes = 0
