r"""Retry policies deciding whether another attempt is permitted.

This package provides the attempt-count, classification, time-window,
composite and circuit breaker policies.
"""

from __future__ import annotations

__all__ = [
    "BaseRetryPolicy",
    "CircuitBreakerRetryPolicy",
    "ClassifierRetryPolicy",
    "CompositeRetryPolicy",
    "SimpleRetryPolicy",
    "TimeoutRetryPolicy",
]

from aretry.policy.base import BaseRetryPolicy
from aretry.policy.circuit_breaker import CircuitBreakerRetryPolicy
from aretry.policy.classifier import ClassifierRetryPolicy
from aretry.policy.composite import CompositeRetryPolicy
from aretry.policy.simple import SimpleRetryPolicy
from aretry.policy.timeout import TimeoutRetryPolicy
