r"""Circuit breaker state machine shared by the calls of one operation.

The circuit breaker has three states:

- CLOSED: Normal operation, attempts go through
- OPEN: After N consecutive failures, attempts are denied without
  invoking the operation
- HALF_OPEN: After the recovery timeout, one trial attempt is allowed
  to check whether the operation recovered

It is held in the retry context opened by ``CircuitBreakerRetryPolicy``;
with stateful retry that context lives in the store under the operation
key, so every call for that key sees the same breaker.
"""

from __future__ import annotations

__all__ = ["CircuitBreaker", "CircuitState"]

import logging
import threading
import time
from enum import Enum
from typing import TYPE_CHECKING

from aretry.utils.validation import validate_circuit_params

if TYPE_CHECKING:
    from collections.abc import Callable

logger: logging.Logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states.

    Attributes:
        CLOSED: Normal operation, attempts are allowed.
        OPEN: Circuit is open, attempts are denied up front.
        HALF_OPEN: Testing if the operation recovered, one trial attempt
            is allowed.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    r"""Consecutive-failure circuit breaker.

    Thread-safe implementation using a lock.

    Args:
        failure_threshold: Number of consecutive failures before opening
            the circuit. Must be > 0. Default is 5.
        recovery_timeout: Time in seconds to stay OPEN before allowing a
            trial attempt. Must be > 0. Default is 60.0 seconds.
        on_state_change: Optional callback called when the circuit state
            changes. Receives (old_state, new_state).

    Example:
        ```pycon
        >>> from aretry.circuit_breaker import CircuitBreaker
        >>> cb = CircuitBreaker(failure_threshold=2)
        >>> cb.state
        <CircuitState.CLOSED: 'closed'>
        >>> cb.record_failure()
        >>> cb.record_failure()
        >>> cb.state
        <CircuitState.OPEN: 'open'>
        >>> cb.allow_attempt()
        False

        ```
    """

    def __init__(
        self,
        *,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        on_state_change: Callable[[CircuitState, CircuitState], None] | None = None,
    ) -> None:
        validate_circuit_params(failure_threshold, recovery_timeout)

        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._on_state_change = on_state_change

        # State tracking (protected by lock)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        """The number of consecutive failures."""
        with self._lock:
            return self._failure_count

    @property
    def opened_at(self) -> float | None:
        """Monotonic timestamp at which the circuit last opened."""
        with self._lock:
            return self._opened_at

    def _change_state(self, new_state: CircuitState) -> None:
        """Change the circuit state and invoke the callback.

        Must be called with lock held.
        """
        old_state = self._state
        if old_state != new_state:
            self._state = new_state
            logger.debug(f"Circuit state changed: {old_state.value} -> {new_state.value}")

            if self._on_state_change is not None:
                try:
                    self._on_state_change(old_state, new_state)
                except Exception as e:  # noqa: BLE001
                    logger.warning(f"Error in circuit state change callback: {e}")

    def remaining_open_time(self) -> float:
        """Return the seconds left before a trial attempt is allowed."""
        with self._lock:
            if self._state != CircuitState.OPEN or self._opened_at is None:
                return 0.0
            return max(self._recovery_timeout - (time.monotonic() - self._opened_at), 0.0)

    def allow_attempt(self) -> bool:
        """Return whether an attempt may proceed.

        An OPEN circuit whose recovery timeout has elapsed moves to
        HALF_OPEN and allows the trial attempt.
        """
        with self._lock:
            if self._state != CircuitState.OPEN:
                return True
            if (
                self._opened_at is not None
                and time.monotonic() - self._opened_at >= self._recovery_timeout
            ):
                self._change_state(CircuitState.HALF_OPEN)
                return True
            return False

    def record_success(self) -> None:
        """Reset the failure count and close a HALF_OPEN circuit."""
        with self._lock:
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._change_state(CircuitState.CLOSED)
                logger.debug("Circuit recovery successful, circuit CLOSED")

    def record_failure(self) -> None:
        """Count a failure and open the circuit at the threshold.

        A failure of the HALF_OPEN trial attempt reopens the circuit
        immediately.
        """
        with self._lock:
            self._failure_count += 1
            logger.debug(
                f"Circuit recorded failure ({self._failure_count}/{self._failure_threshold})"
            )
            if self._state == CircuitState.HALF_OPEN or (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self._failure_threshold
            ):
                self._opened_at = time.monotonic()
                self._change_state(CircuitState.OPEN)
                logger.warning(f"Circuit OPENED after {self._failure_count} consecutive failures")

    def reset(self) -> None:
        """Manually reset the circuit breaker to CLOSED state."""
        with self._lock:
            self._failure_count = 0
            self._opened_at = None
            if self._state != CircuitState.CLOSED:
                self._change_state(CircuitState.CLOSED)
                logger.info("Circuit manually reset to CLOSED state")
