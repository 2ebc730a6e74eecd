r"""Utility functions for retry configuration and logging.

This package provides parameter validation and structured logging
helpers shared by the policies, backoffs and executors.
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "clear_retry_key",
    "get_retry_key",
    "log_structured",
    "retry_key_scope",
    "set_retry_key",
    "validate_backoff_params",
    "validate_capacity",
    "validate_circuit_params",
    "validate_retry_params",
]

from aretry.utils.structured_logging import (
    StructuredFormatter,
    clear_retry_key,
    get_retry_key,
    log_structured,
    retry_key_scope,
    set_retry_key,
)
from aretry.utils.validation import (
    validate_backoff_params,
    validate_capacity,
    validate_circuit_params,
    validate_retry_params,
)
