r"""Callback manager for orchestrating retry lifecycle events.

This module provides the CallbackManager class that handles invocation
of user-defined callbacks at various points in the retry lifecycle.
"""

from __future__ import annotations

__all__ = ["CallbackManager"]

import time
from typing import TYPE_CHECKING, Any

from aretry.callbacks import AttemptInfo, CallbackConfig, FailureInfo, RetryInfo, SuccessInfo

if TYPE_CHECKING:
    from aretry.context import RetryContext


class CallbackManager:
    """Manages callback invocations during the retry lifecycle.

    Exceptions raised by a callback propagate to the caller of the
    executor.

    Attributes:
        callbacks: Configuration containing callback functions for
            lifecycle events.
    """

    def __init__(self, callbacks: CallbackConfig | None = None) -> None:
        self.callbacks = callbacks if callbacks is not None else CallbackConfig()

    def on_attempt(self, context: RetryContext) -> None:
        """Invoke on_attempt callback before the next attempt.

        Args:
            context: The retry context; its attempt count is the number
                of attempts made so far.
        """
        if self.callbacks.on_attempt:
            self.callbacks.on_attempt(
                AttemptInfo(attempt=context.attempt_count + 1, key=context.key)
            )

    def on_retry(self, context: RetryContext, wait_time: float, error: Exception) -> None:
        """Invoke on_retry callback.

        Args:
            context: The retry context, after the failure was registered.
            wait_time: The backoff delay before the next attempt.
            error: The failure that triggered the retry.
        """
        if self.callbacks.on_retry:
            self.callbacks.on_retry(
                RetryInfo(
                    attempt=context.attempt_count + 1,
                    wait_time=wait_time,
                    error=error,
                    key=context.key,
                )
            )

    def on_success(self, context: RetryContext, result: Any, start_time: float) -> None:
        """Invoke on_success callback.

        Args:
            context: The retry context, after the success was registered.
            result: The value returned by the operation.
            start_time: Timestamp when the call started.
        """
        if self.callbacks.on_success:
            self.callbacks.on_success(
                SuccessInfo(
                    attempt=context.attempt_count,
                    result=result,
                    total_time=time.time() - start_time,
                    key=context.key,
                )
            )

    def on_failure(
        self,
        attempt_count: int,
        error: Exception,
        start_time: float,
        key: Any = None,
    ) -> None:
        """Invoke on_failure callback.

        Args:
            attempt_count: The number of attempts made in the sequence.
            error: The error surfaced to the caller.
            start_time: Timestamp when the call started.
            key: The stateful correlation key, if any.
        """
        if self.callbacks.on_failure:
            self.callbacks.on_failure(
                FailureInfo(
                    attempt=attempt_count,
                    error=error,
                    total_time=time.time() - start_time,
                    key=key,
                )
            )
