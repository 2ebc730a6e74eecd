r"""aretry - Policy-driven retry execution for Python callables.

This package runs an operation under a retry policy, deciding after
each failure whether to try again, waiting between attempts according
to a backoff policy, and surfacing a terminal outcome once the policy
gives up.

Key Features:
    - Stateless retry loops for sync callables and coroutine functions
    - Stateful retry across calls, correlated by key, for transactional
      callers that must roll back between attempts
    - Exception classification with include and exclude rules
    - Fixed, exponential, exponential-random and uniform-random backoff
    - Attempt-count, timeout, composite and circuit-breaker policies
    - Recovery callbacks, cancellation and lifecycle callbacks

Example:
    ```pycon
    >>> from aretry import BackoffKind, RetryConfig, RetryExecutor
    >>> config = RetryConfig(
    ...     max_attempts=5,
    ...     include_failure_types=(ConnectionError,),
    ...     backoff_kind=BackoffKind.EXPONENTIAL,
    ...     initial_delay=0.1,
    ... )
    >>> executor = RetryExecutor(config)
    >>> executor.execute(lambda: "ok")
    'ok'

    ```
"""

from __future__ import annotations

__all__ = [
    "AsyncRetryExecutor",
    "BackoffKind",
    "CallbackConfig",
    "CircuitOpenError",
    "ExceptionClassifier",
    "RetryCancelledError",
    "RetryConfig",
    "RetryContext",
    "RetryContextStore",
    "RetryContextStoreFullError",
    "RetryError",
    "RetryExecutor",
    "RetryExhaustedError",
    "RetryState",
    "__version__",
    "execute",
    "execute_async",
    "execute_stateful",
    "execute_stateful_async",
    "get_current_context",
]

from importlib.metadata import PackageNotFoundError, version

from aretry.callbacks import CallbackConfig
from aretry.classifier import ExceptionClassifier
from aretry.config import BackoffKind, RetryConfig
from aretry.context import RetryContext, get_current_context
from aretry.exceptions import (
    CircuitOpenError,
    RetryCancelledError,
    RetryContextStoreFullError,
    RetryError,
    RetryExhaustedError,
)
from aretry.execute import execute, execute_stateful
from aretry.execute_async import execute_async, execute_stateful_async
from aretry.retry import AsyncRetryExecutor, RetryExecutor
from aretry.state import RetryState
from aretry.store import RetryContextStore

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
