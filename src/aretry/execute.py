r"""Contains the synchronous module-level retry helpers."""

from __future__ import annotations

__all__ = ["execute", "execute_stateful"]

from typing import TYPE_CHECKING, Any, TypeVar

from aretry.retry import RetryExecutor
from aretry.store import get_default_store

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

    from aretry.callbacks import CallbackConfig
    from aretry.config import RetryConfig
    from aretry.state import RetryState

T = TypeVar("T")


def execute(
    operation: Callable[[], T],
    config: RetryConfig | None = None,
    *,
    callbacks: CallbackConfig | None = None,
    **kwargs: Any,
) -> T:
    r"""Run a callable with automatic retry logic.

    A ``RetryExecutor`` is built from ``config`` for the call.

    Args:
        operation: Zero-argument callable to run.
        config: An optional RetryConfig. If None, default RetryConfig
            values are used.
        callbacks: Optional lifecycle callbacks.
        **kwargs: Additional keyword arguments passed to
            ``RetryExecutor.execute()`` (``recovery``, ``cancel_event``).

    Returns:
        The value returned by ``operation`` or by the recovery callback.

    Raises:
        RetryExhaustedError: If the retry policy denies further attempts
            and no recovery callback is set.

    Example:
        ```pycon
        >>> from aretry import BackoffKind, RetryConfig, execute
        >>> execute(lambda: "ok", RetryConfig(backoff_kind=BackoffKind.NONE))
        'ok'

        ```
    """
    return RetryExecutor(config, callbacks=callbacks).execute(operation, **kwargs)


def execute_stateful(
    operation: Callable[[], T],
    state: RetryState | Hashable,
    config: RetryConfig | None = None,
    *,
    callbacks: CallbackConfig | None = None,
    **kwargs: Any,
) -> T:
    r"""Make one attempt of a stateful retry sequence.

    Contexts are kept in the process-wide store returned by
    ``aretry.store.get_default_store()``, so successive calls with the
    same key continue the same sequence.

    Args:
        operation: Zero-argument callable to run.
        state: A ``RetryState`` or a bare correlation key.
        config: An optional RetryConfig. If None, default RetryConfig
            values are used.
        callbacks: Optional lifecycle callbacks.
        **kwargs: Additional keyword arguments passed to
            ``RetryExecutor.execute_stateful()`` (``recovery``).

    Returns:
        The value returned by ``operation`` or by the recovery callback.

    Raises:
        Exception: The original failure while attempts remain.
        RetryExhaustedError: If the retry policy denies further attempts
            and no recovery callback is set.
    """
    executor = RetryExecutor(config, callbacks=callbacks, store=get_default_store())
    return executor.execute_stateful(operation, state, **kwargs)
