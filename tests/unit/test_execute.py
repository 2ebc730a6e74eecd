r"""Unit tests for the module-level execute helpers."""

from __future__ import annotations

import asyncio
from unittest.mock import Mock

import pytest

import aretry
from aretry import (
    RetryConfig,
    RetryExhaustedError,
    execute,
    execute_async,
    execute_stateful,
    execute_stateful_async,
)
from aretry.callbacks import CallbackConfig
from aretry.store import get_default_store
from tests.helpers import AsyncFailingOperation, FailingOperation, PlannedError


def test_execute(mock_sleep: Mock) -> None:
    """Test the synchronous execute helper."""
    operation = FailingOperation(failures=2)
    assert execute(operation, RetryConfig(max_attempts=3)) == "success"
    assert operation.calls == 3
    assert mock_sleep.call_count == 2


def test_execute_default_config(mock_sleep: Mock) -> None:
    """Test execute with the default config."""
    with pytest.raises(RetryExhaustedError):
        execute(FailingOperation())
    assert mock_sleep.call_count == 2


def test_execute_forwards_kwargs(mock_sleep: Mock, mock_callback: Mock) -> None:
    """Test that recovery and callbacks are forwarded."""
    result = execute(
        FailingOperation(),
        RetryConfig(max_attempts=2),
        callbacks=CallbackConfig(on_failure=mock_callback),
        recovery=lambda exc: "fallback",
    )
    assert result == "fallback"
    mock_callback.assert_called_once()


def test_execute_stateful_uses_default_store() -> None:
    """Test that successive helper calls continue one sequence."""
    operation = FailingOperation()
    config = RetryConfig(max_attempts=2)

    with pytest.raises(PlannedError):
        execute_stateful(operation, "job-1", config)
    assert get_default_store().get("job-1").attempt_count == 1

    with pytest.raises(RetryExhaustedError):
        execute_stateful(operation, "job-1", config)
    assert "job-1" not in get_default_store()


@pytest.mark.asyncio
async def test_execute_async(mock_asleep: Mock) -> None:
    """Test the asynchronous execute helper."""
    operation = AsyncFailingOperation(failures=1)
    assert await execute_async(operation) == "success"
    assert operation.calls == 2
    mock_asleep.assert_awaited_once_with(1.0)


@pytest.mark.asyncio
async def test_execute_stateful_async_shares_default_store() -> None:
    """Test that the async helper shares the default store with the sync
    one."""
    config = RetryConfig(max_attempts=3)
    with pytest.raises(PlannedError):
        execute_stateful(FailingOperation(), "job-2", config)
    with pytest.raises(PlannedError):
        await execute_stateful_async(AsyncFailingOperation(), "job-2", config)
    assert get_default_store().get("job-2").attempt_count == 2


@pytest.mark.asyncio
async def test_execute_stateful_sync_and_async_callers_share_key() -> None:
    """Test that a thread and a task updating one key lose no attempt."""
    config = RetryConfig(max_attempts=1000)

    def sync_calls() -> None:
        for _ in range(50):
            with pytest.raises(PlannedError):
                execute_stateful(FailingOperation(), "mixed", config)

    async def async_calls() -> None:
        for _ in range(50):
            with pytest.raises(PlannedError):
                await execute_stateful_async(AsyncFailingOperation(), "mixed", config)

    await asyncio.gather(asyncio.to_thread(sync_calls), async_calls())
    assert get_default_store().get("mixed").attempt_count == 100


def test_version() -> None:
    """Test that the package exposes a version string."""
    assert isinstance(aretry.__version__, str)
