r"""Correlation state for stateful retry."""

from __future__ import annotations

__all__ = ["RetryState"]

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable


@dataclass(frozen=True)
class RetryState:
    """Identify one logical operation across separate stateful calls.

    The key must be stable and unique per logical operation instance,
    typically derived from a business identifier (a message id, an order
    number), never from the call site.

    Attributes:
        key: The correlation key.
        rollback_for: Exception types that force immediate exhaustion,
            e.g. when a non-idempotent side effect has already happened.
        rollback_if: Optional predicate forcing immediate exhaustion. It
            is consulted in addition to ``rollback_for``.
        force_refresh: Whether to discard any stored context for the key
            and start a new sequence.

    Example:
        ```pycon
        >>> from aretry.state import RetryState
        >>> state = RetryState("order-42", rollback_for=(PermissionError,))
        >>> state.force_rollback(PermissionError("denied"))
        True
        >>> state.force_rollback(TimeoutError("slow"))
        False

        ```
    """

    key: Hashable
    rollback_for: tuple[type[BaseException], ...] = ()
    rollback_if: Callable[[Exception], bool] | None = None
    force_refresh: bool = False

    def __post_init__(self) -> None:
        if self.key is None:
            msg = "key must not be None"
            raise ValueError(msg)

    def force_rollback(self, failure: Exception) -> bool:
        """Return whether this failure must bypass retry counting."""
        if self.rollback_for and isinstance(failure, self.rollback_for):
            return True
        if self.rollback_if is not None:
            return bool(self.rollback_if(failure))
        return False
