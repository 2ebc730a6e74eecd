r"""Abstract base class for backoff policies."""

from __future__ import annotations

__all__ = ["BaseBackoffPolicy"]

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aretry.context import RetryContext


class BaseBackoffPolicy(ABC):
    """Abstract base class for backoff policies.

    A backoff policy determines how long to wait before the next attempt
    of a retry sequence. It only computes the delay; suspending the
    caller is left to the executor (or, in stateful mode, to the caller).
    """

    @abstractmethod
    def calculate(self, retry_index: int) -> float:
        """Calculate the backoff delay for a given retry.

        Args:
            retry_index: The retry number (0-indexed). For example,
                retry_index=0 is the wait before the second attempt,
                retry_index=1 the wait before the third attempt, etc.

        Returns:
            The non-negative delay in seconds before the next attempt.
        """

    def next_delay(self, context: RetryContext) -> float:
        """Calculate the delay before the next attempt of a sequence.

        Args:
            context: The retry context, after the last attempt has been
                registered.

        Returns:
            The non-negative delay in seconds.
        """
        return self.calculate(max(context.attempt_count - 1, 0))
