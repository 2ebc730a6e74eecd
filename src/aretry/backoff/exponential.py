r"""Exponential backoff policies."""

from __future__ import annotations

__all__ = ["ExponentialBackoff", "ExponentialRandomBackoff"]

import random

from aretry.backoff.base import BaseBackoffPolicy
from aretry.utils.validation import validate_backoff_params


class ExponentialBackoff(BaseBackoffPolicy):
    """Exponential backoff policy.

    Calculates delay as: initial_delay * (multiplier ** retry_index),
    capped at max_delay. The delay never decreases as the attempt count
    grows.

    Args:
        initial_delay: The first delay in seconds (default: 0.1).
        multiplier: Growth factor between consecutive delays
            (default: 2.0). Must be >= 1.
        max_delay: Maximum delay cap in seconds (default: 30.0).

    Example:
        ```pycon
        >>> from aretry.backoff import ExponentialBackoff
        >>> backoff = ExponentialBackoff(initial_delay=0.5, multiplier=2.0, max_delay=3.0)
        >>> backoff.calculate(0)  # First retry
        0.5
        >>> backoff.calculate(1)  # Second retry
        1.0
        >>> backoff.calculate(2)  # Third retry
        2.0
        >>> backoff.calculate(10)  # Would be 512.0, but capped
        3.0

        ```
    """

    def __init__(
        self,
        initial_delay: float = 0.1,
        multiplier: float = 2.0,
        max_delay: float = 30.0,
    ) -> None:
        validate_backoff_params(initial_delay, multiplier, max_delay)

        self.initial_delay = initial_delay
        self.multiplier = multiplier
        self.max_delay = max_delay

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(initial_delay={self.initial_delay}, "
            f"multiplier={self.multiplier}, max_delay={self.max_delay})"
        )

    def calculate(self, retry_index: int) -> float:
        if self.initial_delay == 0:
            return 0.0
        try:
            delay = self.initial_delay * float(self.multiplier) ** max(retry_index, 0)
        except OverflowError:
            return self.max_delay
        return min(delay, self.max_delay)


class ExponentialRandomBackoff(ExponentialBackoff):
    """Exponential backoff with a random spread.

    Each exponential delay is multiplied by a random factor drawn from
    ``[1, multiplier)`` and then capped at ``max_delay``, which spreads
    out callers that started retrying at the same time.

    Example:
        ```pycon
        >>> from aretry.backoff import ExponentialRandomBackoff
        >>> backoff = ExponentialRandomBackoff(initial_delay=1.0, multiplier=2.0, max_delay=10.0)
        >>> 1.0 <= backoff.calculate(0) < 2.0
        True

        ```
    """

    def calculate(self, retry_index: int) -> float:
        delay = super().calculate(retry_index)
        factor = 1.0 + random.random() * (self.multiplier - 1.0)  # noqa: S311
        return min(delay * factor, self.max_delay)
