r"""Exception classes surfaced by the retry executors.

Every error raised by the engine itself derives from ``RetryError``.
Failures raised by the wrapped operation are never replaced silently:
they are either retried, re-raised unchanged (stateful calls with
attempts left, forced rollbacks) or chained as the ``__cause__`` of a
``RetryExhaustedError``.
"""

from __future__ import annotations

__all__ = [
    "CircuitOpenError",
    "RetryCancelledError",
    "RetryContextStoreFullError",
    "RetryError",
    "RetryExhaustedError",
]

import asyncio
from typing import Any


class RetryError(Exception):
    """Base class for all errors raised by the retry engine."""


class RetryExhaustedError(RetryError):
    """Exception raised when the retry policy denies further attempts.

    The message is the message of the last failure, unchanged, and the
    last failure is chained as ``__cause__`` so callers can pattern-match
    on its type through ``last_failure``.

    Args:
        last_failure: The most recent failure of the operation, or
            ``None`` if no attempt was made.
        attempt_count: Number of physical attempts made in the sequence.
        non_retryable: ``True`` if the last failure was classified as
            non-retryable rather than exhausting the attempt budget.
        key: The stateful correlation key, if any.
        message: Optional message overriding the last failure's message.

    Example:
        ```pycon
        >>> from aretry.exceptions import RetryExhaustedError
        >>> error = RetryExhaustedError(ValueError("boom"), attempt_count=3)
        >>> str(error)
        'boom'
        >>> error.attempt_count
        3
        >>> isinstance(error.last_failure, ValueError)
        True

        ```
    """

    def __init__(
        self,
        last_failure: Exception | None,
        *,
        attempt_count: int = 0,
        non_retryable: bool = False,
        key: Any = None,
        message: str | None = None,
    ) -> None:
        if message is None:
            message = str(last_failure) if last_failure is not None else "retry exhausted"
        super().__init__(message)
        self.last_failure = last_failure
        self.attempt_count = attempt_count
        self.non_retryable = non_retryable
        self.key = key

    @property
    def failure_type(self) -> type[Exception] | None:
        """The type of the last failure, or ``None``."""
        return type(self.last_failure) if self.last_failure is not None else None


class CircuitOpenError(RetryExhaustedError):
    """Exception raised when an open circuit denies the attempt up front.

    The operation was not invoked for this call.
    """

    def __init__(self, last_failure: Exception | None = None, *, key: Any = None) -> None:
        message = f"Circuit is OPEN for key {key!r}" if key is not None else "Circuit is OPEN"
        super().__init__(last_failure, key=key, message=message)


class RetryCancelledError(RetryError, asyncio.CancelledError):
    """Exception raised when the host abandons a retry sequence.

    It derives from ``asyncio.CancelledError`` so task cancellation keeps
    its usual semantics for asyncio callers.

    Args:
        attempt_count: Number of physical attempts made before cancellation.
        last_failure: The most recent failure, if any.
    """

    def __init__(self, attempt_count: int = 0, last_failure: Exception | None = None) -> None:
        super().__init__(f"retry sequence cancelled after {attempt_count} attempt(s)")
        self.attempt_count = attempt_count
        self.last_failure = last_failure


class RetryContextStoreFullError(RetryError):
    """Exception raised when the context store is full of in-flight keys."""

    def __init__(self, capacity: int) -> None:
        super().__init__(
            f"Retry context store is full ({capacity} in-flight keys); "
            "cannot evict an entry without racing an attempt"
        )
        self.capacity = capacity
