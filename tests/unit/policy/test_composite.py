r"""Unit tests for the composite retry policy."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from aretry.classifier import ExceptionClassifier
from aretry.context import RetryContext
from aretry.policy import (
    ClassifierRetryPolicy,
    CompositeRetryPolicy,
    SimpleRetryPolicy,
    TimeoutRetryPolicy,
)
from aretry.policy.classifier import NON_RETRYABLE

##########################################
#     Tests for CompositeRetryPolicy     #
##########################################


def test_composite_policy_counts_once() -> None:
    """Test that an attempt is counted once on the shared context."""
    policy = CompositeRetryPolicy([SimpleRetryPolicy(3), SimpleRetryPolicy(5)])
    context = policy.open()
    policy.register_attempt(context, RuntimeError("Planned"))
    assert context.attempt_count == 1


def test_composite_policy_pessimistic() -> None:
    """Test that every child must permit the attempt by default."""
    policy = CompositeRetryPolicy([SimpleRetryPolicy(2), SimpleRetryPolicy(5)])
    context = policy.open()
    policy.register_attempt(context, RuntimeError("Planned"))
    assert policy.can_retry(context)
    policy.register_attempt(context, RuntimeError("Planned"))
    assert not policy.can_retry(context)


def test_composite_policy_optimistic() -> None:
    """Test that one permitting child is enough when optimistic."""
    policy = CompositeRetryPolicy([SimpleRetryPolicy(2), SimpleRetryPolicy(5)], optimistic=True)
    context = policy.open()
    for _ in range(4):
        policy.register_attempt(context, RuntimeError("Planned"))
    assert policy.can_retry(context)
    policy.register_attempt(context, RuntimeError("Planned"))
    assert not policy.can_retry(context)


def test_composite_policy_with_timeout() -> None:
    """Test that the time window bounds the composite."""
    policy = CompositeRetryPolicy([SimpleRetryPolicy(10), TimeoutRetryPolicy(1.0)])
    context = RetryContext(start_time=0.0)
    with patch("aretry.context.time.monotonic", return_value=0.5):
        assert policy.can_retry(context)
    with patch("aretry.context.time.monotonic", return_value=1.5):
        assert not policy.can_retry(context)


def test_composite_policy_forwards_to_children() -> None:
    """Test that child hooks see each attempt."""
    classifier_policy = ClassifierRetryPolicy(ExceptionClassifier(exclude=(KeyError,)))
    policy = CompositeRetryPolicy([classifier_policy, SimpleRetryPolicy(5)])
    context = policy.open()
    policy.register_attempt(context, KeyError("missing"))
    assert context.attempt_count == 1
    assert context.get_attribute(NON_RETRYABLE)
    assert not policy.can_retry(context)


def test_composite_policy_empty() -> None:
    """Test that an empty composite raises ValueError."""
    with pytest.raises(ValueError, match=r"policies must not be empty"):
        CompositeRetryPolicy([])
