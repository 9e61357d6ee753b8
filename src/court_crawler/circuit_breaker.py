"""Circuit breaker guarding calls to an upstream portal."""

import logging
import time
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_RECOVERY_TIMEOUT = 600.0


class CircuitState(str, Enum):
    """Circuit breaker states"""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if recovered


class BreakerState(BaseModel):
    """Mutable health record of one upstream for the duration of a run."""

    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = Field(0, ge=0)
    last_failure_at: float | None = Field(
        None, description="Clock reading of the last recorded failure"
    )


class CircuitBreaker:
    """Short-circuits calls to an upstream after repeated failures.

    ``is_available`` must be consulted before every call and the outcome
    reported with ``record_success`` or ``record_failure``. An OPEN breaker
    moves to HALF_OPEN only when it is consulted after the recovery timeout;
    HALF_OPEN lets exactly one trial call through.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        recovery_timeout: float = DEFAULT_RECOVERY_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if recovery_timeout < 0:
            raise ValueError("recovery_timeout must not be negative")
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = BreakerState()
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        return self._state.state

    @property
    def consecutive_failures(self) -> int:
        return self._state.consecutive_failures

    @property
    def last_failure_at(self) -> float | None:
        return self._state.last_failure_at

    def snapshot(self) -> BreakerState:
        """Return a copy of the current state."""
        return self._state.model_copy()

    def is_available(self) -> bool:
        """Check whether the next call may reach the upstream."""
        if self._state.state is CircuitState.CLOSED:
            return True

        if self._state.state is CircuitState.OPEN:
            last = self._state.last_failure_at
            if last is not None and self._clock() - last > self.recovery_timeout:
                self._transition(CircuitState.HALF_OPEN)
                self._trial_in_flight = True
                return True
            return False

        # HALF_OPEN: only the single trial call is allowed.
        if self._trial_in_flight:
            return False
        self._trial_in_flight = True
        return True

    def record_success(self) -> None:
        """Report a successful call."""
        if self._state.state is CircuitState.OPEN:
            logger.debug(f"Ignoring success reported for open circuit {self.name}")
            return
        self._trial_in_flight = False
        self._state.consecutive_failures = 0
        if self._state.state is not CircuitState.CLOSED:
            self._transition(CircuitState.CLOSED)

    def record_failure(self) -> None:
        """Report a failed call."""
        self._trial_in_flight = False
        self._state.consecutive_failures += 1
        self._state.last_failure_at = self._clock()

        if self._state.state is CircuitState.HALF_OPEN:
            self._transition(CircuitState.OPEN)
        elif (
            self._state.state is CircuitState.CLOSED
            and self._state.consecutive_failures >= self.failure_threshold
        ):
            self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        logger.warning(
            f"Circuit {self.name}: {self._state.state.value} -> {new_state.value} "
            f"after {self._state.consecutive_failures} consecutive failures"
        )
        self._state.state = new_state
