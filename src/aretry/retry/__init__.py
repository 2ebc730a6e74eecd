r"""Retry package implementing the executors.

Public API:
    - RetryExecutor: Synchronous retry executor
    - AsyncRetryExecutor: Asynchronous retry executor
    - BaseRetryExecutor: Component wiring shared by both executors
    - CallbackManager: Manager for callback invocations
"""

from __future__ import annotations

__all__ = [
    "AsyncRetryExecutor",
    "BaseRetryExecutor",
    "CallbackManager",
    "RetryExecutor",
]

from aretry.retry.executor import RetryExecutor
from aretry.retry.executor_async import AsyncRetryExecutor
from aretry.retry.executor_core import BaseRetryExecutor
from aretry.retry.manager import CallbackManager
