r"""Asynchronous retry executor.

This module provides the AsyncRetryExecutor class that runs a coroutine
function under a retry policy. Backoff waits use ``asyncio.sleep`` so
other tasks run during retry waits.
"""

from __future__ import annotations

__all__ = ["AsyncRetryExecutor"]

import asyncio
import inspect
import logging
import time
from typing import TYPE_CHECKING, Any, TypeVar

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
    from collections.abc import Awaitable, Callable, Hashable

    from aretry.context import RetryContext
    from aretry.state import RetryState

T = TypeVar("T")

logger: logging.Logger = logging.getLogger(__name__)


class AsyncRetryExecutor(BaseRetryExecutor):
    """Executes coroutine functions with automatic retry logic.

    Same contract as ``RetryExecutor``, with two differences:

    - Backoff waits use ``asyncio.sleep``.
    - Cancelling the awaiting task while it sleeps or while the operation
      runs raises ``RetryCancelledError``, which is an
      ``asyncio.CancelledError``.

    Recovery callbacks may be plain functions or coroutine functions.

    Example:
        ```pycon
        >>> import asyncio
        >>> from aretry import AsyncRetryExecutor, BackoffKind, RetryConfig
        >>> async def fetch():
        ...     return 42
        ...
        >>> executor = AsyncRetryExecutor(RetryConfig(backoff_kind=BackoffKind.NONE))
        >>> asyncio.run(executor.execute(fetch))
        42

        ```
    """

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        recovery: Callable[[Exception], Any] | None = None,
    ) -> T:
        """Await ``operation`` until it succeeds or the policy gives up.

        Args:
            operation: Zero-argument coroutine function to run.
            recovery: Optional callable invoked with the last failure when
                the sequence is exhausted. Its result is awaited if it is
                awaitable. Defaults to ``config.recovery_callback``.

        Returns:
            The value returned by ``operation`` or by ``recovery``.

        Raises:
            RetryExhaustedError: If the policy denies further attempts and
                no recovery callback is set.
            CircuitOpenError: If an open circuit denied the first attempt.
            RetryCancelledError: If the task was cancelled.
        """
        recovery = self.resolve_recovery(recovery)
        start_time = time.time()
        context = self.policy.open(parent=get_current_context())
        while self.policy.can_retry(context):
            self.callbacks.on_attempt(context)
            try:
                with context_scope(context):
                    result = await operation()
            except RetryCancelledError:
                raise
            except asyncio.CancelledError as exc:
                raise self._cancelled(context) from exc
            except Exception as exc:
                self.policy.register_attempt(context, exc)
                log_attempt_failure(context, exc)
                if not self.policy.can_retry(context):
                    break
                delay = self.backoff.next_delay(context)
                self.callbacks.on_retry(context, delay, exc)
                logger.debug(f"Retrying in {delay:.2f}s (attempt {context.attempt_count + 1})")
                try:
                    await asyncio.sleep(delay)
                except asyncio.CancelledError as cancel:
                    raise self._cancelled(context) from cancel
            else:
                self.policy.register_attempt(context)
                logger.debug(f"Operation succeeded on attempt {context.attempt_count}")
                self.callbacks.on_success(context, result, start_time)
                return result
        return await self._exhaust(
            context, recovery, start_time, attempted=context.attempt_count > 0, stateful=False
        )

    async def execute_stateful(
        self,
        operation: Callable[[], Awaitable[T]],
        state: RetryState | Hashable,
        *,
        recovery: Callable[[Exception], Any] | None = None,
    ) -> T:
        """Make one attempt of the sequence identified by ``state.key``.

        See ``RetryExecutor.execute_stateful``. Calls sharing a key are
        serialized with an ``asyncio.Lock``.
        """
        state = coerce_state(state)
        recovery = self.resolve_recovery(recovery)
        start_time = time.time()
        async with self.store.alock(state.key):
            with retry_key_scope(state.key):
                context = resolve_context(self.policy, self.store, state)
                if not self.policy.can_retry(context):
                    return await self._exhaust(
                        context, recovery, start_time, attempted=False, stateful=True
                    )
                self.callbacks.on_attempt(context)
                try:
                    with context_scope(context):
                        result = await operation()
                except RetryCancelledError:
                    raise
                except asyncio.CancelledError as exc:
                    raise self._cancelled(context) from exc
                except Exception as exc:
                    if state.force_rollback(exc):
                        attempts = context.attempt_count + 1
                        context.exhausted = True
                        end_sequence(self.store, context)
                        logger.debug(
                            f"Forced rollback for key {state.key!r} on {type(exc).__name__}"
                        )
                        self.callbacks.on_failure(attempts, exc, start_time, state.key)
                        raise
                    self.policy.register_attempt(context, exc)
                    log_attempt_failure(context, exc)
                    if not self.policy.can_retry(context):
                        return await self._exhaust(
                            context, recovery, start_time, attempted=True, stateful=True
                        )
                    delay = self.backoff.next_delay(context)
                    context.set_attribute(NEXT_DELAY, delay)
                    self.callbacks.on_retry(context, delay, exc)
                    raise
                self.policy.register_attempt(context)
                logger.debug(
                    f"Operation succeeded on attempt {context.attempt_count} "
                    f"for key {state.key!r}"
                )
                self.callbacks.on_success(context, result, start_time)
                end_sequence(self.store, context)
                return result

    async def _exhaust(
        self,
        context: RetryContext,
        recovery: Callable[[Exception], Any] | None,
        start_time: float,
        *,
        attempted: bool,
        stateful: bool,
    ) -> Any:
        error = close_exhausted(context, self.store if stateful else None, attempted=attempted)
        self.callbacks.on_failure(error.attempt_count, error, start_time, error.key)
        if recovery is not None:
            logger.debug("Invoking recovery callback")
            value = recovery(recovery_argument(error))
            if inspect.isawaitable(value):
                value = await value
            return value
        raise error from error.last_failure

    def _cancelled(self, context: RetryContext) -> RetryCancelledError:
        logger.debug(f"Retry cancelled after {context.attempt_count} attempt(s)")
        return RetryCancelledError(context.attempt_count, context.last_failure)
