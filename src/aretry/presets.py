r"""Ready-made retry configurations for httpx clients.

Transport failures raised by httpx (timeouts, refused connections,
dropped connections) are usually transient and worth retrying, while
``httpx.HTTPStatusError`` raised by ``response.raise_for_status()``
depends on the status code.

Example:
    ```pycon
    >>> import httpx
    >>> from aretry import RetryExecutor
    >>> from aretry.presets import httpx_retry_config
    >>> executor = RetryExecutor(httpx_retry_config(max_attempts=5))
    >>> with httpx.Client() as client:  # doctest: +SKIP
    ...     response = executor.execute(lambda: client.get("https://api.example.com/data"))
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "HTTPX_TRANSIENT_ERRORS",
    "RETRYABLE_STATUS_CODES",
    "httpx_retry_config",
    "is_retryable_status_error",
]

from typing import Any

import httpx

from aretry.config import BackoffKind, RetryConfig

# Transport-level failures that are safe to retry
HTTPX_TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)

# Status codes worth retrying when raised as httpx.HTTPStatusError
RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def is_retryable_status_error(exc: BaseException) -> bool:
    """Return ``True`` if ``exc`` is an ``httpx.HTTPStatusError`` with a
    retryable status code.

    Example:
        ```pycon
        >>> import httpx
        >>> from aretry.presets import is_retryable_status_error
        >>> request = httpx.Request("GET", "https://example.com")
        >>> response = httpx.Response(503, request=request)
        >>> is_retryable_status_error(
        ...     httpx.HTTPStatusError("unavailable", request=request, response=response)
        ... )
        True

        ```
    """
    return (
        isinstance(exc, httpx.HTTPStatusError)
        and exc.response.status_code in RETRYABLE_STATUS_CODES
    )


def httpx_retry_config(
    *,
    max_attempts: int = 4,
    initial_delay: float = 0.3,
    max_delay: float = 10.0,
    include_status_errors: bool = False,
    **kwargs: Any,
) -> RetryConfig:
    """Create a ``RetryConfig`` retrying transient httpx failures.

    Only ``HTTPX_TRANSIENT_ERRORS`` are retried, with exponential
    backoff. The cause chain is traversed so a transport error wrapped
    by application code is still recognized.

    Args:
        max_attempts: Maximum number of physical attempts.
        initial_delay: First backoff delay in seconds.
        max_delay: Backoff cap in seconds.
        include_status_errors: Whether ``httpx.HTTPStatusError`` with a
            status code in ``RETRYABLE_STATUS_CODES`` is also retried.
            Other status errors are surfaced at once.
        **kwargs: Additional ``RetryConfig`` fields.

    Returns:
        The retry configuration.

    Example:
        ```pycon
        >>> from aretry.presets import httpx_retry_config
        >>> config = httpx_retry_config(max_attempts=5)
        >>> config.max_attempts
        5
        >>> config.build_classifier().classify(httpx.ConnectTimeout("slow"))
        True
        >>> config.build_classifier().classify(ValueError("bad input"))
        False

        ```
    """
    options: dict[str, Any] = {
        "max_attempts": max_attempts,
        "include_failure_types": HTTPX_TRANSIENT_ERRORS,
        "retry_if": is_retryable_status_error if include_status_errors else None,
        "traverse_causes": True,
        "backoff_kind": BackoffKind.EXPONENTIAL,
        "initial_delay": initial_delay,
        "max_delay": max_delay,
    }
    options.update(kwargs)
    return RetryConfig(**options)
