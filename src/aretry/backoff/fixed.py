r"""Fixed backoff policies."""

from __future__ import annotations

__all__ = ["FixedBackoff", "NoBackoff"]

from aretry.backoff.base import BaseBackoffPolicy


class FixedBackoff(BaseBackoffPolicy):
    """Fixed backoff policy.

    Returns the same delay for every retry, regardless of the attempt
    number.

    Args:
        delay: The fixed delay in seconds to use for all retries
            (default: 1.0).

    Example:
        ```pycon
        >>> from aretry.backoff import FixedBackoff
        >>> backoff = FixedBackoff(delay=2.5)
        >>> backoff.calculate(0)  # First retry
        2.5
        >>> backoff.calculate(10)  # Eleventh retry
        2.5

        ```
    """

    def __init__(self, delay: float = 1.0) -> None:
        if delay < 0:
            msg = f"delay must be non-negative, got {delay}"
            raise ValueError(msg)

        self.delay = delay

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(delay={self.delay})"

    def calculate(self, retry_index: int) -> float:  # noqa: ARG002
        return self.delay


class NoBackoff(FixedBackoff):
    """Backoff policy that retries immediately."""

    def __init__(self) -> None:
        super().__init__(delay=0.0)

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}()"
