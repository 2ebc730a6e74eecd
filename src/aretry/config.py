r"""Configuration dataclass and defaults for the retry executors.

This module provides the configuration constants and an immutable
dataclass-based configuration object from which the executors build
their classifier, retry policy and backoff policy.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_INITIAL_DELAY",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_MAX_DELAY",
    "DEFAULT_MULTIPLIER",
    "BackoffKind",
    "RetryConfig",
]

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from aretry.backoff import ExponentialBackoff, FixedBackoff, NoBackoff, UniformRandomBackoff
from aretry.classifier import ExceptionClassifier
from aretry.policy import (
    ClassifierRetryPolicy,
    CompositeRetryPolicy,
    SimpleRetryPolicy,
    TimeoutRetryPolicy,
)
from aretry.utils.validation import validate_backoff_params, validate_retry_params

if TYPE_CHECKING:
    from collections.abc import Callable

    from aretry.backoff import BaseBackoffPolicy
    from aretry.policy import BaseRetryPolicy

# Default maximum number of physical attempts, including the first one
DEFAULT_MAX_ATTEMPTS = 3

# Default first delay in seconds
DEFAULT_INITIAL_DELAY = 1.0

# Default growth factor of exponential backoff
DEFAULT_MULTIPLIER = 2.0

# Default delay cap in seconds
DEFAULT_MAX_DELAY = 30.0


class BackoffKind(Enum):
    """Kinds of backoff a ``RetryConfig`` can build.

    Attributes:
        NONE: Retry immediately.
        FIXED: Wait ``initial_delay`` before every retry.
        EXPONENTIAL: Wait ``initial_delay * multiplier ** n``, capped at
            ``max_delay``.
        RANDOM: Wait a uniformly random delay between ``initial_delay``
            and ``max_delay``.
    """

    NONE = "none"
    FIXED = "fixed"
    EXPONENTIAL = "exponential"
    RANDOM = "random"


@dataclass(frozen=True)
class RetryConfig:
    """Immutable retry configuration.

    Args:
        max_attempts: Maximum number of physical attempts, including the
            first one. Must be >= 1.
        include_failure_types: Exception types that are retryable. Empty
            means every type not excluded is retryable.
        exclude_failure_types: Exception types that are never retryable.
            Exclusion wins over inclusion.
        traverse_causes: Whether classification walks the exception
            chain when the failure itself matches no rule.
        retry_if: Optional predicate marking a failure retryable in
            addition to ``include_failure_types``.
        backoff_kind: The kind of backoff to build.
        initial_delay: First delay in seconds (or lower bound of the
            random delay). Must be >= 0.
        multiplier: Growth factor of exponential backoff. Must be >= 1.
        max_delay: Delay cap in seconds (or upper bound of the random
            delay). Must be >= initial_delay.
        timeout_window: Optional time budget in seconds for the whole
            sequence. Must be > 0 if provided.
        recovery_callback: Optional callable turning the last failure of
            an exhausted sequence into a normal result.

    Example:
        ```pycon
        >>> from aretry.config import BackoffKind, RetryConfig
        >>> config = RetryConfig(max_attempts=5, backoff_kind=BackoffKind.FIXED)
        >>> config.max_attempts
        5
        >>> config.build_backoff()
        FixedBackoff(delay=1.0)
        >>> merged = config.merge(max_attempts=10)  # Override specific parameters
        >>> merged.max_attempts
        10
        >>> config.max_attempts  # Original unchanged
        5

        ```
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    include_failure_types: tuple[type[BaseException], ...] = ()
    exclude_failure_types: tuple[type[BaseException], ...] = ()
    traverse_causes: bool = False
    retry_if: Callable[[BaseException], bool] | None = None
    backoff_kind: BackoffKind = BackoffKind.EXPONENTIAL
    initial_delay: float = DEFAULT_INITIAL_DELAY
    multiplier: float = DEFAULT_MULTIPLIER
    max_delay: float = DEFAULT_MAX_DELAY
    timeout_window: float | None = None
    recovery_callback: Callable[[Exception], Any] | None = None

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            ValueError: If any parameter fails validation.
        """
        # Accept any iterable of types (a set, a list) but store tuples
        object.__setattr__(self, "include_failure_types", tuple(self.include_failure_types))
        object.__setattr__(self, "exclude_failure_types", tuple(self.exclude_failure_types))
        object.__setattr__(self, "backoff_kind", BackoffKind(self.backoff_kind))
        validate_retry_params(self.max_attempts, self.timeout_window)
        validate_backoff_params(self.initial_delay, self.multiplier, self.max_delay)

    def merge(self, **overrides: Any) -> RetryConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied.

        Example:
            ```pycon
            >>> from aretry.config import RetryConfig
            >>> config = RetryConfig(max_attempts=3)
            >>> config.merge(max_attempts=5, timeout_window=None).max_attempts
            5

            ```
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)

    def build_classifier(self) -> ExceptionClassifier:
        return ExceptionClassifier(
            include=self.include_failure_types,
            exclude=self.exclude_failure_types,
            traverse_causes=self.traverse_causes,
            retry_if=self.retry_if,
        )

    def build_policy(self) -> BaseRetryPolicy:
        """Build the retry policy described by this configuration.

        The policy counts attempts up to ``max_attempts``, stops on
        non-retryable failures and, if ``timeout_window`` is set, also
        stops once the window has elapsed.
        """
        delegate: BaseRetryPolicy = SimpleRetryPolicy(self.max_attempts)
        if self.timeout_window is not None:
            delegate = CompositeRetryPolicy([delegate, TimeoutRetryPolicy(self.timeout_window)])
        return ClassifierRetryPolicy(self.build_classifier(), delegate)

    def build_backoff(self) -> BaseBackoffPolicy:
        if self.backoff_kind == BackoffKind.NONE:
            return NoBackoff()
        if self.backoff_kind == BackoffKind.FIXED:
            return FixedBackoff(self.initial_delay)
        if self.backoff_kind == BackoffKind.RANDOM:
            return UniformRandomBackoff(self.initial_delay, self.max_delay)
        return ExponentialBackoff(self.initial_delay, self.multiplier, self.max_delay)
