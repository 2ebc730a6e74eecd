r"""Circuit breaker retry policy.

The policy keeps a ``CircuitBreaker`` in the context it opens and marks
that context as global, so the stateful executor keeps it in the store
across sequences. Every call sharing the key therefore shares the
breaker: after ``failure_threshold`` consecutive failures the circuit
opens and calls are denied without invoking the operation until
``recovery_timeout`` has elapsed.

Example:
    ```pycon
    >>> from aretry.policy import CircuitBreakerRetryPolicy
    >>> policy = CircuitBreakerRetryPolicy(failure_threshold=2, recovery_timeout=30.0)
    >>> context = policy.open(key="inventory-service")
    >>> policy.register_attempt(context, ConnectionError("refused"))
    >>> policy.can_retry(context)
    True
    >>> policy.register_attempt(context, ConnectionError("refused"))
    >>> policy.can_retry(context)
    False
    >>> policy.is_open(context)
    True

    ```
"""

from __future__ import annotations

__all__ = ["CIRCUIT_BREAKER", "CircuitBreakerRetryPolicy"]

import logging
from typing import TYPE_CHECKING

from aretry.circuit_breaker import CircuitBreaker, CircuitState
from aretry.context import GLOBAL_STATE
from aretry.policy.base import BaseRetryPolicy

if TYPE_CHECKING:
    from collections.abc import Callable

    from aretry.context import RetryContext

logger: logging.Logger = logging.getLogger(__name__)

CIRCUIT_BREAKER = "circuit.breaker"


class CircuitBreakerRetryPolicy(BaseRetryPolicy):
    """Deny attempts while the shared circuit is open.

    Args:
        delegate: Optional policy bounding each sequence while the
            circuit is closed, e.g. ``SimpleRetryPolicy(3)``. Without a
            delegate, attempts are permitted for as long as the circuit
            stays closed.
        failure_threshold: Consecutive failures that open the circuit.
        recovery_timeout: Seconds the circuit stays open before a trial
            attempt is allowed.
        on_state_change: Optional callback receiving (old_state,
            new_state) on every transition.
    """

    def __init__(
        self,
        delegate: BaseRetryPolicy | None = None,
        *,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        on_state_change: Callable[[CircuitState, CircuitState], None] | None = None,
    ) -> None:
        self.delegate = delegate
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.on_state_change = on_state_change
        # Fail early on invalid parameters rather than on the first open()
        self._new_breaker()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(delegate={self.delegate!r}, "
            f"failure_threshold={self.failure_threshold}, "
            f"recovery_timeout={self.recovery_timeout})"
        )

    def _new_breaker(self) -> CircuitBreaker:
        return CircuitBreaker(
            failure_threshold=self.failure_threshold,
            recovery_timeout=self.recovery_timeout,
            on_state_change=self.on_state_change,
        )

    def prepare(self, context: RetryContext) -> None:
        context.set_attribute(GLOBAL_STATE, True)
        context.set_attribute(CIRCUIT_BREAKER, self._new_breaker())
        if self.delegate is not None:
            self.delegate.prepare(context)

    def breaker(self, context: RetryContext) -> CircuitBreaker:
        """Return the breaker shared through ``context``, creating it for
        contexts opened by another policy."""
        breaker = context.get_attribute(CIRCUIT_BREAKER)
        if breaker is None:
            breaker = self._new_breaker()
            context.set_attribute(CIRCUIT_BREAKER, breaker)
            context.set_attribute(GLOBAL_STATE, True)
        return breaker

    def is_open(self, context: RetryContext) -> bool:
        return self.breaker(context).state == CircuitState.OPEN

    def can_retry(self, context: RetryContext) -> bool:
        breaker = self.breaker(context)
        if not breaker.allow_attempt():
            logger.debug(
                f"Circuit for key {context.key!r} is open, "
                f"{breaker.remaining_open_time():.1f}s before a trial attempt"
            )
            return False
        return self.delegate is None or self.delegate.can_retry(context)

    def on_attempt(self, context: RetryContext, failure: Exception | None) -> None:
        breaker = self.breaker(context)
        if failure is None:
            breaker.record_success()
        else:
            breaker.record_failure()
        if self.delegate is not None:
            self.delegate.on_attempt(context, failure)
