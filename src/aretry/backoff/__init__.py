r"""Backoff policies for retry delays.

This package provides the policies that compute how long to wait before
the next attempt: none, fixed, exponential (optionally randomized) and
uniform random delays.
"""

from __future__ import annotations

__all__ = [
    "BaseBackoffPolicy",
    "ExponentialBackoff",
    "ExponentialRandomBackoff",
    "FixedBackoff",
    "NoBackoff",
    "UniformRandomBackoff",
]

from aretry.backoff.base import BaseBackoffPolicy
from aretry.backoff.exponential import ExponentialBackoff, ExponentialRandomBackoff
from aretry.backoff.fixed import FixedBackoff, NoBackoff
from aretry.backoff.uniform import UniformRandomBackoff
