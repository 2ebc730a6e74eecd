r"""Structured logging utilities for machine-readable log output.

This module provides a JSON log formatter and a context-local retry key.
The stateful executors set the retry key for the duration of a call, so
every record logged while the operation runs can be correlated with the
logical retry sequence it belongs to.

The structured logging system is opt-in and can be enabled by configuring
Python's logging system to use the provided formatter.

Example:
    Enable structured logging for aretry:

    ```python
    import logging
    from aretry.utils.structured_logging import StructuredFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger("aretry")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    ```
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "clear_retry_key",
    "get_retry_key",
    "log_structured",
    "retry_key_scope",
    "set_retry_key",
]

import contextvars
import json
import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterator

_retry_key: contextvars.ContextVar[Hashable | None] = contextvars.ContextVar(
    "retry_key", default=None
)

_RESERVED_ATTRIBUTES = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "msecs",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "sinfo",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "taskName",
    }
)


def get_retry_key() -> Hashable | None:
    """Get the retry key of the current context.

    Returns:
        The current retry key, or None if not set.

    Example:
        ```pycon
        >>> from aretry.utils.structured_logging import clear_retry_key, get_retry_key, set_retry_key
        >>> clear_retry_key()
        >>> get_retry_key()  # Initially None
        >>> set_retry_key("order-42")
        >>> get_retry_key()
        'order-42'
        >>> clear_retry_key()

        ```
    """
    return _retry_key.get()


def set_retry_key(key: Hashable) -> None:
    """Set the retry key for the current context.

    The key is stored in a context variable, making it thread-safe and
    async-safe.
    """
    _retry_key.set(key)


def clear_retry_key() -> None:
    """Clear the retry key for the current context."""
    _retry_key.set(None)


@contextmanager
def retry_key_scope(key: Hashable | None) -> Iterator[None]:
    """Set the retry key for the duration of a block and restore the
    previous value afterwards."""
    token = _retry_key.set(key)
    try:
        yield
    finally:
        _retry_key.reset(token)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Standard fields in the JSON output:
        - timestamp: ISO 8601 timestamp
        - level: Log level name
        - logger: Logger name
        - message: Log message
        - retry_key: Optional stateful retry key
        - module, function, line: Where the log originated
        - thread, process: Execution context

    Any additional fields added via the ``extra`` parameter in logging
    calls are included in the JSON output.

    Example:
        ```pycon
        >>> import logging
        >>> from io import StringIO
        >>> from aretry.utils.structured_logging import StructuredFormatter
        >>> stream = StringIO()
        >>> handler = logging.StreamHandler(stream)
        >>> handler.setFormatter(StructuredFormatter())
        >>> logger = logging.getLogger("test_logger")
        >>> logger.addHandler(handler)
        >>> logger.setLevel(logging.INFO)
        >>> logger.info("Attempt failed", extra={"attempt": 2})
        >>> output = stream.getvalue()
        >>> "Attempt failed" in output
        True
        >>> '"attempt": 2' in output
        True

        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": record.threadName,
            "process": record.process,
        }

        retry_key = get_retry_key()
        if retry_key is not None:
            log_data["retry_key"] = str(retry_key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRIBUTES:
                log_data[key] = value

        return json.dumps(log_data, default=str)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: ARG002
        """Format timestamp as ISO 8601 with millisecond precision."""
        return (
            time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z"
        )


def log_structured(
    logger: logging.Logger,
    level: int,
    message: str,
    **extra: Any,
) -> None:
    """Log a message with structured data.

    The extra fields are included in JSON output when using
    ``StructuredFormatter``.

    Args:
        logger: Logger to use.
        level: Log level (e.g., logging.INFO).
        message: Log message.
        **extra: Additional structured fields to include in the log.
    """
    if logger.isEnabledFor(level):
        logger.log(level, message, extra=extra)
