r"""Uniform random backoff policy."""

from __future__ import annotations

__all__ = ["UniformRandomBackoff"]

import random

from aretry.backoff.base import BaseBackoffPolicy


class UniformRandomBackoff(BaseBackoffPolicy):
    """Random delay drawn uniformly from ``[min_delay, max_delay]``.

    Args:
        min_delay: Lower bound in seconds (default: 0.5).
        max_delay: Upper bound in seconds (default: 1.5).

    Example:
        ```pycon
        >>> from aretry.backoff import UniformRandomBackoff
        >>> backoff = UniformRandomBackoff(min_delay=1.0, max_delay=2.0)
        >>> 1.0 <= backoff.calculate(0) <= 2.0
        True

        ```
    """

    def __init__(self, min_delay: float = 0.5, max_delay: float = 1.5) -> None:
        if min_delay < 0:
            msg = f"min_delay must be non-negative, got {min_delay}"
            raise ValueError(msg)
        if max_delay < min_delay:
            msg = f"max_delay must be >= min_delay ({min_delay}), got {max_delay}"
            raise ValueError(msg)

        self.min_delay = min_delay
        self.max_delay = max_delay

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(min_delay={self.min_delay}, "
            f"max_delay={self.max_delay})"
        )

    def calculate(self, retry_index: int) -> float:  # noqa: ARG002
        return random.uniform(self.min_delay, self.max_delay)  # noqa: S311
