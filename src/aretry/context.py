r"""Mutable per-sequence retry state.

A ``RetryContext`` is created at the start of a stateless retry loop, or
on the first stateful call for a key, and is only mutated through
``BaseRetryPolicy.register_attempt``.
"""

from __future__ import annotations

__all__ = ["GLOBAL_STATE", "RetryContext", "context_scope", "get_current_context"]

import contextvars
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterator

# A context carrying this attribute outlives its sequences in the store.
GLOBAL_STATE = "state.global"


@dataclass
class RetryContext:
    """State of one logical retry sequence.

    Attributes:
        attempt_count: Number of physical attempts registered so far.
        last_failure: The most recent failure, or ``None``.
        exhausted: Whether the policy denied further attempts.
        attributes: Free-form values shared between attempts.
        parent: The enclosing retry context, for nested retry scopes.
        key: The stateful correlation key, ``None`` for stateless loops.
        start_time: Monotonic timestamp of the start of the sequence.

    Example:
        ```pycon
        >>> from aretry.context import RetryContext
        >>> context = RetryContext()
        >>> context.attempt_count
        0
        >>> context.register(ValueError("boom"))
        >>> context.attempt_count
        1
        >>> context.last_failure
        ValueError('boom')

        ```
    """

    attempt_count: int = 0
    last_failure: Exception | None = None
    exhausted: bool = False
    attributes: dict[str, Any] = field(default_factory=dict)
    parent: RetryContext | None = field(default=None, repr=False)
    key: Hashable | None = None
    start_time: float = field(default_factory=time.monotonic, repr=False)

    def register(self, failure: Exception | None = None) -> None:
        """Record one physical attempt.

        Args:
            failure: The failure of the attempt, ``None`` on success.
        """
        self.attempt_count += 1
        if failure is not None:
            self.last_failure = failure

    def reset(self) -> None:
        """Start a new sequence, keeping the attribute bag."""
        self.attempt_count = 0
        self.last_failure = None
        self.exhausted = False
        self.start_time = time.monotonic()

    @property
    def is_global(self) -> bool:
        return bool(self.attributes.get(GLOBAL_STATE, False))

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def set_attribute(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def remove_attribute(self, name: str) -> Any:
        return self.attributes.pop(name, None)

    def elapsed(self) -> float:
        """Return the seconds elapsed since the start of the sequence."""
        return time.monotonic() - self.start_time


# Innermost context of the running operation, the parent of nested scopes
_current_context: contextvars.ContextVar[RetryContext | None] = contextvars.ContextVar(
    "retry_context", default=None
)


def get_current_context() -> RetryContext | None:
    """Return the retry context of the operation being executed, if any.

    Example:
        ```pycon
        >>> from aretry.context import RetryContext, context_scope, get_current_context
        >>> get_current_context() is None
        True
        >>> context = RetryContext()
        >>> with context_scope(context):
        ...     get_current_context() is context
        ...
        True

        ```
    """
    return _current_context.get()


@contextmanager
def context_scope(context: RetryContext) -> Iterator[RetryContext]:
    """Make ``context`` the current retry context for the block."""
    token = _current_context.set(context)
    try:
        yield context
    finally:
        _current_context.reset(token)
