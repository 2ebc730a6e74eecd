r"""Composition of several retry policies."""

from __future__ import annotations

__all__ = ["CompositeRetryPolicy"]

from typing import TYPE_CHECKING

from aretry.policy.base import BaseRetryPolicy

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aretry.context import RetryContext


class CompositeRetryPolicy(BaseRetryPolicy):
    """Combine several policies over one shared context.

    By default another attempt is permitted only if every child permits
    it (logical AND). With ``optimistic=True`` one permitting child is
    enough (logical OR). The attempt is counted once on the shared
    context and each child then sees it through ``on_attempt``.

    Args:
        policies: The child policies. Must not be empty.
        optimistic: Whether to combine the children with OR.

    Example:
        ```pycon
        >>> from aretry.policy import CompositeRetryPolicy, SimpleRetryPolicy, TimeoutRetryPolicy
        >>> policy = CompositeRetryPolicy([SimpleRetryPolicy(2), TimeoutRetryPolicy(60.0)])
        >>> context = policy.open()
        >>> policy.register_attempt(context, RuntimeError("Planned"))
        >>> policy.register_attempt(context, RuntimeError("Planned"))
        >>> context.attempt_count
        2
        >>> policy.can_retry(context)
        False

        ```
    """

    def __init__(self, policies: Iterable[BaseRetryPolicy], *, optimistic: bool = False) -> None:
        self.policies: tuple[BaseRetryPolicy, ...] = tuple(policies)
        if not self.policies:
            msg = "policies must not be empty"
            raise ValueError(msg)
        self.optimistic = optimistic

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(policies={list(self.policies)!r}, "
            f"optimistic={self.optimistic})"
        )

    def prepare(self, context: RetryContext) -> None:
        for policy in self.policies:
            policy.prepare(context)

    def can_retry(self, context: RetryContext) -> bool:
        if self.optimistic:
            return any(policy.can_retry(context) for policy in self.policies)
        return all(policy.can_retry(context) for policy in self.policies)

    def on_attempt(self, context: RetryContext, failure: Exception | None) -> None:
        for policy in self.policies:
            policy.on_attempt(context, failure)
