r"""Time-window retry policy."""

from __future__ import annotations

__all__ = ["TimeoutRetryPolicy"]

from typing import TYPE_CHECKING

from aretry.policy.base import BaseRetryPolicy

if TYPE_CHECKING:
    from aretry.context import RetryContext


class TimeoutRetryPolicy(BaseRetryPolicy):
    """Permit attempts while the sequence is younger than ``timeout``.

    The window starts when the context is opened, i.e. just before the
    first attempt.

    Args:
        timeout: The time window in seconds (default: 1.0).
    """

    def __init__(self, timeout: float = 1.0) -> None:
        if timeout <= 0:
            msg = f"timeout must be > 0, got {timeout}"
            raise ValueError(msg)
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(timeout={self.timeout})"

    def can_retry(self, context: RetryContext) -> bool:
        return context.elapsed() < self.timeout
