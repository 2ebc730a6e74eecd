r"""Parameter validation utilities for retry configuration.

This module provides validation functions for retry parameters to ensure
they meet the required constraints before policies, backoffs and stores
are built from them.
"""

from __future__ import annotations

__all__ = [
    "validate_backoff_params",
    "validate_capacity",
    "validate_circuit_params",
    "validate_retry_params",
]


def validate_retry_params(
    max_attempts: int,
    timeout_window: float | None = None,
) -> None:
    """Validate retry parameters.

    Args:
        max_attempts: Maximum number of physical attempts, including the
            first one. Must be >= 1.
        timeout_window: Optional time budget in seconds for the whole
            sequence. Must be > 0 if provided.

    Raises:
        ValueError: If max_attempts is < 1 or timeout_window is
            non-positive.

    Example:
        ```pycon
        >>> from aretry.utils.validation import validate_retry_params
        >>> validate_retry_params(max_attempts=3)
        >>> validate_retry_params(max_attempts=3, timeout_window=30.0)
        >>> validate_retry_params(max_attempts=0)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: max_attempts must be >= 1, got 0

        ```
    """
    if max_attempts < 1:
        msg = f"max_attempts must be >= 1, got {max_attempts}"
        raise ValueError(msg)
    if timeout_window is not None and timeout_window <= 0:
        msg = f"timeout_window must be > 0, got {timeout_window}"
        raise ValueError(msg)


def validate_backoff_params(
    initial_delay: float,
    multiplier: float = 1.0,
    max_delay: float | None = None,
) -> None:
    """Validate backoff parameters.

    Args:
        initial_delay: The first delay in seconds. Must be >= 0.
        multiplier: Growth factor between consecutive delays. Must be >= 1.
        max_delay: Optional delay cap in seconds. Must be >= initial_delay
            if provided.

    Raises:
        ValueError: If any parameter violates its constraint.
    """
    if initial_delay < 0:
        msg = f"initial_delay must be non-negative, got {initial_delay}"
        raise ValueError(msg)
    if multiplier < 1:
        msg = f"multiplier must be >= 1, got {multiplier}"
        raise ValueError(msg)
    if max_delay is not None and max_delay < initial_delay:
        msg = f"max_delay must be >= initial_delay ({initial_delay}), got {max_delay}"
        raise ValueError(msg)


def validate_circuit_params(failure_threshold: int, recovery_timeout: float) -> None:
    """Validate circuit breaker parameters.

    Raises:
        ValueError: If failure_threshold or recovery_timeout are not
            strictly positive.
    """
    if failure_threshold <= 0:
        msg = f"failure_threshold must be > 0, got {failure_threshold}"
        raise ValueError(msg)
    if recovery_timeout <= 0:
        msg = f"recovery_timeout must be > 0, got {recovery_timeout}"
        raise ValueError(msg)


def validate_capacity(capacity: int) -> None:
    """Validate the capacity of a retry context store.

    Raises:
        ValueError: If capacity is < 1.
    """
    if capacity < 1:
        msg = f"capacity must be >= 1, got {capacity}"
        raise ValueError(msg)
