r"""Unit tests for the uniform random backoff policy."""

from __future__ import annotations

import pytest

from aretry.backoff import UniformRandomBackoff

##########################################
#     Tests for UniformRandomBackoff     #
##########################################


def test_uniform_random_backoff_within_bounds() -> None:
    """Test that delays are drawn from [min_delay, max_delay]."""
    backoff = UniformRandomBackoff(min_delay=0.5, max_delay=1.5)
    for index in range(100):
        assert 0.5 <= backoff.calculate(index) <= 1.5


def test_uniform_random_backoff_equal_bounds() -> None:
    """Test that equal bounds give a constant delay."""
    assert UniformRandomBackoff(min_delay=1.0, max_delay=1.0).calculate(3) == 1.0


@pytest.mark.parametrize(
    ("min_delay", "max_delay", "match"),
    [
        (-1.0, 1.0, r"min_delay must be non-negative"),
        (2.0, 1.0, r"max_delay must be >= min_delay"),
    ],
)
def test_uniform_random_backoff_invalid_params(
    min_delay: float, max_delay: float, match: str
) -> None:
    """Test that invalid bounds raise ValueError."""
    with pytest.raises(ValueError, match=match):
        UniformRandomBackoff(min_delay=min_delay, max_delay=max_delay)
