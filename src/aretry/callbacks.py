r"""Callback types and data structures for observability.

This module lets users hook into the retry lifecycle for logging,
metrics and alerting. Four lifecycle hooks are available:

- on_attempt: Called before each physical attempt
- on_retry: Called after a failed attempt that will be retried, with the
  computed backoff delay
- on_success: Called when the operation succeeds
- on_failure: Called when the sequence is exhausted

Example:
    ```pycon
    >>> from aretry import RetryExecutor
    >>> from aretry.callbacks import CallbackConfig, RetryInfo
    >>> def log_retry(retry_info: RetryInfo) -> None:
    ...     print(f"retry #{retry_info.attempt} in {retry_info.wait_time}s")
    ...
    >>> executor = RetryExecutor(callbacks=CallbackConfig(on_retry=log_retry))

    ```
"""

from __future__ import annotations

__all__ = [
    "AttemptInfo",
    "CallbackConfig",
    "FailureInfo",
    "RetryInfo",
    "SuccessInfo",
]

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable


@dataclass
class AttemptInfo:
    """Information passed to on_attempt callback.

    Attributes:
        attempt: The attempt about to be made (1-indexed).
        key: The stateful correlation key, ``None`` when stateless.
    """

    attempt: int
    key: Hashable | None


@dataclass
class RetryInfo:
    """Information passed to on_retry callback.

    Attributes:
        attempt: The next attempt number (1-indexed). First retry is
            attempt 2.
        wait_time: The backoff delay in seconds before the next attempt.
            Advisory in stateful mode.
        error: The failure that triggered the retry.
        key: The stateful correlation key, ``None`` when stateless.
    """

    attempt: int
    wait_time: float
    error: Exception
    key: Hashable | None


@dataclass
class SuccessInfo:
    """Information passed to on_success callback.

    Attributes:
        attempt: The attempt number that succeeded (1-indexed).
        result: The value returned by the operation.
        total_time: Seconds spent on the call, including backoff.
        key: The stateful correlation key, ``None`` when stateless.
    """

    attempt: int
    result: Any
    total_time: float
    key: Hashable | None


@dataclass
class FailureInfo:
    """Information passed to on_failure callback.

    Attributes:
        attempt: The number of attempts made in the sequence.
        error: The error surfaced to the caller (``RetryExhaustedError``,
            ``CircuitOpenError`` or the original failure on a forced
            rollback).
        total_time: Seconds spent on the call, including backoff.
        key: The stateful correlation key, ``None`` when stateless.
    """

    attempt: int
    error: Exception
    total_time: float
    key: Hashable | None


@dataclass
class CallbackConfig:
    """Configuration for callbacks.

    Attributes:
        on_attempt: Optional callback invoked before each attempt.
        on_retry: Optional callback invoked when an attempt will be retried.
        on_success: Optional callback invoked when the operation succeeds.
        on_failure: Optional callback invoked when the sequence is
            exhausted.
    """

    on_attempt: Callable[[AttemptInfo], None] | None = None
    on_retry: Callable[[RetryInfo], None] | None = None
    on_success: Callable[[SuccessInfo], None] | None = None
    on_failure: Callable[[FailureInfo], None] | None = None
