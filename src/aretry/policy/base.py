r"""Abstract base class for retry policies."""

from __future__ import annotations

__all__ = ["BaseRetryPolicy"]

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from aretry.context import RetryContext

if TYPE_CHECKING:
    from collections.abc import Hashable


class BaseRetryPolicy(ABC):
    """Abstract base class for retry policies.

    A retry policy decides, from a ``RetryContext``, whether another
    attempt is permitted, and records every attempt outcome into the
    context. Policies hold configuration only; all mutable state lives in
    the context, so one policy instance can serve any number of
    concurrent sequences.

    ``register_attempt`` must be called exactly once per physical
    attempt, including the first one and successful ones. ``can_retry``
    on a context with no registered attempt returns ``True`` for every
    policy except an open circuit breaker.
    """

    def open(
        self,
        parent: RetryContext | None = None,
        key: Hashable | None = None,
    ) -> RetryContext:
        """Create the context of a new retry sequence.

        Args:
            parent: The enclosing retry context, for nested scopes.
            key: The stateful correlation key, if any.

        Returns:
            A fresh retry context prepared by this policy.
        """
        context = RetryContext(parent=parent, key=key)
        self.prepare(context)
        return context

    def prepare(self, context: RetryContext) -> None:
        """Initialize policy-specific attributes of a new context."""

    @abstractmethod
    def can_retry(self, context: RetryContext) -> bool:
        """Return whether another attempt is permitted.

        Args:
            context: The retry context of the sequence.

        Returns:
            ``True`` if the operation may be attempted (again).
        """

    def register_attempt(self, context: RetryContext, failure: Exception | None = None) -> None:
        """Record one physical attempt into the context.

        Args:
            context: The retry context of the sequence.
            failure: The failure of the attempt, ``None`` on success.
        """
        context.register(failure)
        self.on_attempt(context, failure)

    def on_attempt(self, context: RetryContext, failure: Exception | None) -> None:
        """Update policy-specific state after an attempt was counted.

        Composite policies call this hook on their children so the
        attempt is only counted once.
        """
