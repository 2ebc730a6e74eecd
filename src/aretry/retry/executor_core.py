r"""Shared core logic for retry executors.

This module provides the base class and helper functions used by both
the synchronous and asynchronous retry executors: component wiring,
stateful context resolution, sequence termination and creation of the
exhaustion error.
"""

from __future__ import annotations

__all__ = [
    "NEXT_DELAY",
    "BaseRetryExecutor",
    "close_exhausted",
    "coerce_state",
    "create_exhausted_error",
    "end_sequence",
    "log_attempt_failure",
    "recovery_argument",
    "resolve_context",
]

import logging
from typing import TYPE_CHECKING, Any

from aretry.config import RetryConfig
from aretry.context import get_current_context
from aretry.exceptions import CircuitOpenError, RetryExhaustedError
from aretry.policy.circuit_breaker import CIRCUIT_BREAKER
from aretry.policy.classifier import NON_RETRYABLE
from aretry.retry.manager import CallbackManager
from aretry.state import RetryState
from aretry.store import RetryContextStore
from aretry.utils.structured_logging import log_structured

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

    from aretry.backoff import BaseBackoffPolicy
    from aretry.callbacks import CallbackConfig
    from aretry.context import RetryContext
    from aretry.policy import BaseRetryPolicy

logger: logging.Logger = logging.getLogger(__name__)

# Context attribute holding the advisory delay of a stateful sequence
NEXT_DELAY = "backoff.next_delay"


class BaseRetryExecutor:
    """Component wiring shared by the sync and async executors.

    Args:
        config: Retry configuration. Defaults to ``RetryConfig()``.
        policy: Retry policy overriding the one built from ``config``.
        backoff: Backoff policy overriding the one built from ``config``.
        callbacks: Lifecycle callbacks.
        store: Context store for stateful calls. Defaults to a new
            private ``RetryContextStore``.

    Attributes:
        config: The retry configuration.
        policy: The retry policy.
        backoff: The backoff policy.
        callbacks: Manager for invoking callbacks.
        store: The stateful context store.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        policy: BaseRetryPolicy | None = None,
        backoff: BaseBackoffPolicy | None = None,
        callbacks: CallbackConfig | None = None,
        store: RetryContextStore | None = None,
    ) -> None:
        self.config = config if config is not None else RetryConfig()
        self.policy: BaseRetryPolicy = policy if policy is not None else self.config.build_policy()
        self.backoff: BaseBackoffPolicy = (
            backoff if backoff is not None else self.config.build_backoff()
        )
        self.callbacks: CallbackManager = CallbackManager(callbacks)
        self.store: RetryContextStore = store if store is not None else RetryContextStore()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(policy={self.policy!r}, backoff={self.backoff!r})"
        )

    def resolve_recovery(
        self, recovery: Callable[[Exception], Any] | None
    ) -> Callable[[Exception], Any] | None:
        return recovery if recovery is not None else self.config.recovery_callback

    def advised_delay(self, key: Hashable) -> float | None:
        """Return the delay advised before the next stateful call.

        Args:
            key: The stateful correlation key.

        Returns:
            The backoff delay in seconds computed after the last failed
            call for ``key``, or ``None`` if no sequence is pending.
        """
        context = self.store.get(key)
        if context is None:
            return None
        return context.get_attribute(NEXT_DELAY)


def coerce_state(state: RetryState | Hashable) -> RetryState:
    """Wrap a bare key into a ``RetryState``."""
    if isinstance(state, RetryState):
        return state
    return RetryState(state)


def resolve_context(
    policy: BaseRetryPolicy,
    store: RetryContextStore,
    state: RetryState,
) -> RetryContext:
    """Return the stored context of the key, opening one if absent.

    Must be called with the lock of ``state.key`` held.
    """
    context = None if state.force_refresh else store.get(state.key)
    if context is None:
        context = policy.open(parent=get_current_context(), key=state.key)
        store.put(state.key, context)
        logger.debug(f"Opened retry context for key {state.key!r}")
    return context


def end_sequence(store: RetryContextStore, context: RetryContext) -> None:
    """End a stateful sequence after success, exhaustion or rollback.

    Global contexts stay in the store with their sequence fields reset;
    others are removed.
    """
    if context.is_global:
        context.reset()
        context.remove_attribute(NEXT_DELAY)
    else:
        store.remove(context.key)


def create_exhausted_error(context: RetryContext, *, attempted: bool) -> RetryExhaustedError:
    """Create the error surfaced when the policy denies further attempts.

    Args:
        context: The exhausted retry context.
        attempted: Whether an attempt was made in the current call.

    Returns:
        A ``CircuitOpenError`` if an open circuit denied the call up
        front, otherwise a ``RetryExhaustedError`` wrapping the last
        failure.
    """
    if not attempted and context.has_attribute(CIRCUIT_BREAKER):
        return CircuitOpenError(context.last_failure, key=context.key)
    return RetryExhaustedError(
        context.last_failure,
        attempt_count=context.attempt_count,
        non_retryable=(
            context.last_failure is not None
            and bool(context.get_attribute(NON_RETRYABLE, False))
        ),
        key=context.key,
    )


def close_exhausted(
    context: RetryContext,
    store: RetryContextStore | None,
    *,
    attempted: bool,
) -> RetryExhaustedError:
    """Mark the context exhausted and end a stateful sequence.

    Args:
        context: The exhausted retry context.
        store: The context store for stateful sequences, ``None`` for
            stateless loops.
        attempted: Whether an attempt was made in the current call.

    Returns:
        The error to surface (or to hand to the recovery callback).
    """
    error = create_exhausted_error(context, attempted=attempted)
    context.exhausted = True
    if store is not None:
        end_sequence(store, context)
    if isinstance(error, CircuitOpenError):
        logger.debug(f"Circuit open for key {error.key!r}, operation not invoked")
    else:
        logger.debug(
            f"Retry exhausted after {error.attempt_count} attempt(s)"
            f"{' (non-retryable failure)' if error.non_retryable else ''}: {error}"
        )
    return error


def recovery_argument(error: RetryExhaustedError) -> Exception:
    """Return the value handed to a recovery callback."""
    return error.last_failure if error.last_failure is not None else error


def log_attempt_failure(context: RetryContext, failure: Exception) -> None:
    log_structured(
        logger,
        logging.DEBUG,
        f"Attempt {context.attempt_count} failed with {type(failure).__name__}: {failure}",
        attempt=context.attempt_count,
        error_type=type(failure).__name__,
    )
