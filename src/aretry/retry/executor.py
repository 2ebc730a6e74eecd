r"""Synchronous retry executor.

This module provides the RetryExecutor class that runs a callable under
a retry policy, either as a blocking loop (stateless) or as one attempt
per call correlated by key (stateful).
"""

from __future__ import annotations

__all__ = ["RetryExecutor"]

import logging
import time
from typing import TYPE_CHECKING, TypeVar

from aretry.context import context_scope, get_current_context
from aretry.exceptions import RetryCancelledError
from aretry.retry.executor_core import (
    NEXT_DELAY,
    BaseRetryExecutor,
    close_exhausted,
    coerce_state,
    end_sequence,
    log_attempt_failure,
    recovery_argument,
    resolve_context,
)
from aretry.utils.structured_logging import retry_key_scope

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Hashable

    from aretry.backoff import BaseBackoffPolicy
    from aretry.callbacks import CallbackConfig
    from aretry.config import RetryConfig
    from aretry.context import RetryContext
    from aretry.policy import BaseRetryPolicy
    from aretry.state import RetryState
    from aretry.store import RetryContextStore

T = TypeVar("T")

logger: logging.Logger = logging.getLogger(__name__)


class RetryExecutor(BaseRetryExecutor):
    """Executes callables with automatic retry logic.

    The executor orchestrates the following components:
    - BaseRetryPolicy: Decides whether another attempt is allowed
    - BaseBackoffPolicy: Calculates the delay between attempts
    - CallbackManager: Invokes user-defined callbacks at lifecycle events
    - RetryContextStore: Keeps stateful contexts between calls

    Args:
        config: Retry configuration. Defaults to ``RetryConfig()``.
        policy: Retry policy overriding the one built from ``config``.
        backoff: Backoff policy overriding the one built from ``config``.
        callbacks: Lifecycle callbacks.
        store: Context store for stateful calls.
        sleep: Optional sleep function, ``time.sleep`` if not provided.

    Example:
        ```pycon
        >>> from aretry import BackoffKind, RetryConfig, RetryExecutor
        >>> calls = []
        >>> def flaky():
        ...     calls.append(1)
        ...     if len(calls) < 3:
        ...         raise ConnectionError("not yet")
        ...     return "done"
        ...
        >>> executor = RetryExecutor(RetryConfig(backoff_kind=BackoffKind.NONE))
        >>> executor.execute(flaky)
        'done'
        >>> len(calls)
        3

        ```
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        policy: BaseRetryPolicy | None = None,
        backoff: BaseBackoffPolicy | None = None,
        callbacks: CallbackConfig | None = None,
        store: RetryContextStore | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        super().__init__(config, policy=policy, backoff=backoff, callbacks=callbacks, store=store)
        self._sleep = sleep

    def execute(
        self,
        operation: Callable[[], T],
        *,
        recovery: Callable[[Exception], T] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds or the policy gives up.

        Before each attempt the policy is asked whether the attempt may
        proceed, so an open circuit denies the call without invoking
        ``operation``. After each retryable failure the executor sleeps
        for the delay computed by the backoff policy.

        Args:
            operation: Zero-argument callable to run.
            recovery: Optional callable invoked with the last failure when
                the sequence is exhausted; its return value is returned.
                Defaults to ``config.recovery_callback``.
            cancel_event: Optional event; once set, the loop stops before
                the next attempt and interrupts any backoff wait.

        Returns:
            The value returned by ``operation`` or by ``recovery``.

        Raises:
            RetryExhaustedError: If the policy denies further attempts and
                no recovery callback is set.
            CircuitOpenError: If an open circuit denied the first attempt.
            RetryCancelledError: If ``cancel_event`` was set.
        """
        recovery = self.resolve_recovery(recovery)
        start_time = time.time()
        context = self.policy.open(parent=get_current_context())
        while self.policy.can_retry(context):
            self._check_cancelled(context, cancel_event)
            self.callbacks.on_attempt(context)
            try:
                with context_scope(context):
                    result = operation()
            except RetryCancelledError:
                raise
            except Exception as exc:
                self.policy.register_attempt(context, exc)
                log_attempt_failure(context, exc)
                if not self.policy.can_retry(context):
                    break
                delay = self.backoff.next_delay(context)
                self.callbacks.on_retry(context, delay, exc)
                logger.debug(f"Retrying in {delay:.2f}s (attempt {context.attempt_count + 1})")
                self._pause(delay, context, cancel_event)
            else:
                self.policy.register_attempt(context)
                logger.debug(f"Operation succeeded on attempt {context.attempt_count}")
                self.callbacks.on_success(context, result, start_time)
                return result
        return self._exhaust(
            context, recovery, start_time, attempted=context.attempt_count > 0, stateful=False
        )

    def execute_stateful(
        self,
        operation: Callable[[], T],
        state: RetryState | Hashable,
        *,
        recovery: Callable[[Exception], T] | None = None,
    ) -> T:
        """Make one attempt of the sequence identified by ``state.key``.

        The context of the key is kept in the store between calls. A
        failure with attempts remaining is re-raised unchanged so that the
        caller (typically a transaction or message redelivery) can roll
        back and call again later. The backoff delay is not slept; it is
        advisory and available through ``advised_delay``.

        Args:
            operation: Zero-argument callable to run.
            state: A ``RetryState`` or a bare correlation key.
            recovery: Optional callable invoked with the last failure when
                the sequence is exhausted. Defaults to
                ``config.recovery_callback``.

        Returns:
            The value returned by ``operation`` or by ``recovery``.

        Raises:
            Exception: The original failure while attempts remain, or
                immediately when ``state`` forces a rollback for it.
            RetryExhaustedError: If the policy denies further attempts and
                no recovery callback is set.
            CircuitOpenError: If an open circuit denied the call.
        """
        state = coerce_state(state)
        recovery = self.resolve_recovery(recovery)
        start_time = time.time()
        with self.store.lock(state.key), retry_key_scope(state.key):
            context = resolve_context(self.policy, self.store, state)
            if not self.policy.can_retry(context):
                return self._exhaust(context, recovery, start_time, attempted=False, stateful=True)
            self.callbacks.on_attempt(context)
            try:
                with context_scope(context):
                    result = operation()
            except RetryCancelledError:
                raise
            except Exception as exc:
                if state.force_rollback(exc):
                    attempts = context.attempt_count + 1
                    context.exhausted = True
                    end_sequence(self.store, context)
                    logger.debug(f"Forced rollback for key {state.key!r} on {type(exc).__name__}")
                    self.callbacks.on_failure(attempts, exc, start_time, state.key)
                    raise
                self.policy.register_attempt(context, exc)
                log_attempt_failure(context, exc)
                if not self.policy.can_retry(context):
                    return self._exhaust(
                        context, recovery, start_time, attempted=True, stateful=True
                    )
                delay = self.backoff.next_delay(context)
                context.set_attribute(NEXT_DELAY, delay)
                self.callbacks.on_retry(context, delay, exc)
                raise
            self.policy.register_attempt(context)
            logger.debug(
                f"Operation succeeded on attempt {context.attempt_count} for key {state.key!r}"
            )
            self.callbacks.on_success(context, result, start_time)
            end_sequence(self.store, context)
            return result

    def _exhaust(
        self,
        context: RetryContext,
        recovery: Callable[[Exception], T] | None,
        start_time: float,
        *,
        attempted: bool,
        stateful: bool,
    ) -> T:
        error = close_exhausted(context, self.store if stateful else None, attempted=attempted)
        self.callbacks.on_failure(error.attempt_count, error, start_time, error.key)
        if recovery is not None:
            logger.debug("Invoking recovery callback")
            return recovery(recovery_argument(error))
        raise error from error.last_failure

    def _check_cancelled(
        self, context: RetryContext, cancel_event: threading.Event | None
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.debug(f"Retry cancelled after {context.attempt_count} attempt(s)")
            raise RetryCancelledError(context.attempt_count, context.last_failure)

    def _pause(
        self, delay: float, context: RetryContext, cancel_event: threading.Event | None
    ) -> None:
        if cancel_event is not None:
            if cancel_event.wait(delay):
                self._check_cancelled(context, cancel_event)
            return
        sleep = self._sleep if self._sleep is not None else time.sleep
        sleep(delay)
