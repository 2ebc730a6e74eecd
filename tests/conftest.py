from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import pytest

from aretry.store import get_default_store

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def mock_sleep() -> Generator[Mock, None, None]:
    """Patch time.sleep to make tests run faster."""
    with patch("time.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture
def mock_asleep() -> Generator[Mock, None, None]:
    """Patch asyncio.sleep to make tests run faster."""
    with patch("asyncio.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture
def mock_callback() -> Mock:
    """Create a mock callback function for testing callbacks.

    Returns:
        A Mock object that can be used as a callback function.

    Example:
        >>> def test_callback(mock_callback):
        ...     RetryExecutor(callbacks=CallbackConfig(on_retry=mock_callback))
        ...     mock_callback.assert_called_once()
    """
    return Mock()


@pytest.fixture(autouse=True)
def clear_default_store() -> Generator[None, None, None]:
    """Start every test with an empty process-wide context store."""
    get_default_store().clear()
    yield
    get_default_store().clear()
