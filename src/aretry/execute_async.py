r"""Contains the asynchronous module-level retry helpers."""

from __future__ import annotations

__all__ = ["execute_async", "execute_stateful_async"]

from typing import TYPE_CHECKING, Any, TypeVar

from aretry.retry import AsyncRetryExecutor
from aretry.store import get_default_store

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Hashable

    from aretry.callbacks import CallbackConfig
    from aretry.config import RetryConfig
    from aretry.state import RetryState

T = TypeVar("T")


async def execute_async(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    *,
    callbacks: CallbackConfig | None = None,
    **kwargs: Any,
) -> T:
    r"""Await a coroutine function with automatic retry logic.

    Args:
        operation: Zero-argument coroutine function to run.
        config: An optional RetryConfig. If None, default RetryConfig
            values are used.
        callbacks: Optional lifecycle callbacks.
        **kwargs: Additional keyword arguments passed to
            ``AsyncRetryExecutor.execute()`` (``recovery``).

    Returns:
        The value returned by ``operation`` or by the recovery callback.

    Raises:
        RetryExhaustedError: If the retry policy denies further attempts
            and no recovery callback is set.
        RetryCancelledError: If the awaiting task was cancelled.

    Example:
        ```pycon
        >>> import asyncio
        >>> from aretry import execute_async
        >>> async def fetch():
        ...     return "ok"
        ...
        >>> asyncio.run(execute_async(fetch))
        'ok'

        ```
    """
    return await AsyncRetryExecutor(config, callbacks=callbacks).execute(operation, **kwargs)


async def execute_stateful_async(
    operation: Callable[[], Awaitable[T]],
    state: RetryState | Hashable,
    config: RetryConfig | None = None,
    *,
    callbacks: CallbackConfig | None = None,
    **kwargs: Any,
) -> T:
    r"""Make one attempt of a stateful retry sequence asynchronously.

    Shares the process-wide store with ``aretry.execute_stateful``.
    """
    executor = AsyncRetryExecutor(config, callbacks=callbacks, store=get_default_store())
    return await executor.execute_stateful(operation, state, **kwargs)
