r"""Shared test helpers for retry executor tests."""

from __future__ import annotations

from typing import Any


class PlannedError(RuntimeError):
    """Failure raised on purpose by ``FailingOperation``."""


class IllegalStateError(RuntimeError):
    """A ``RuntimeError`` subclass used to test exclusion rules."""


class FailingOperation:
    """Callable failing a fixed number of times before returning.

    Args:
        failures: Number of calls that raise before the first success.
            ``None`` means every call raises.
        error: Factory of the raised exception.
        result: Value returned once the failures are used up.
    """

    def __init__(
        self,
        failures: int | None = None,
        error: type[Exception] = PlannedError,
        result: Any = "success",
    ) -> None:
        self.failures = failures
        self.error = error
        self.result = result
        self.calls = 0

    def __call__(self) -> Any:
        self.calls += 1
        if self.failures is None or self.calls <= self.failures:
            raise self.error("Planned")
        return self.result


class AsyncFailingOperation(FailingOperation):
    """Coroutine function version of ``FailingOperation``."""

    async def __call__(self) -> Any:  # type: ignore[override]
        return super().__call__()
