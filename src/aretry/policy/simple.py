r"""Attempt-count retry policy."""

from __future__ import annotations

__all__ = ["SimpleRetryPolicy"]

from typing import TYPE_CHECKING

from aretry.policy.base import BaseRetryPolicy
from aretry.utils.validation import validate_retry_params

if TYPE_CHECKING:
    from aretry.context import RetryContext


class SimpleRetryPolicy(BaseRetryPolicy):
    """Permit attempts while fewer than ``max_attempts`` were made.

    Args:
        max_attempts: Maximum number of physical attempts, including the
            first one (default: 3).

    Example:
        ```pycon
        >>> from aretry.policy import SimpleRetryPolicy
        >>> policy = SimpleRetryPolicy(max_attempts=2)
        >>> context = policy.open()
        >>> policy.can_retry(context)
        True
        >>> policy.register_attempt(context, RuntimeError("Planned"))
        >>> policy.can_retry(context)
        True
        >>> policy.register_attempt(context, RuntimeError("Planned"))
        >>> policy.can_retry(context)
        False

        ```
    """

    def __init__(self, max_attempts: int = 3) -> None:
        validate_retry_params(max_attempts)
        self.max_attempts = max_attempts

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(max_attempts={self.max_attempts})"

    def can_retry(self, context: RetryContext) -> bool:
        return context.attempt_count < self.max_attempts
