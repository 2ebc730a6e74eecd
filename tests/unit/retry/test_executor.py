r"""Unit tests for the synchronous retry executor."""

from __future__ import annotations

import threading
from unittest.mock import Mock, call, patch

import pytest

from aretry.backoff import ExponentialBackoff, FixedBackoff, NoBackoff
from aretry.callbacks import AttemptInfo, CallbackConfig, FailureInfo
from aretry.config import BackoffKind, RetryConfig
from aretry.context import get_current_context
from aretry.exceptions import (
    CircuitOpenError,
    RetryCancelledError,
    RetryExhaustedError,
)
from aretry.policy import CircuitBreakerRetryPolicy, ClassifierRetryPolicy, SimpleRetryPolicy
from aretry.retry import RetryExecutor
from aretry.retry.executor_core import NEXT_DELAY
from aretry.state import RetryState
from aretry.store import RetryContextStore
from aretry.utils.structured_logging import get_retry_key
from tests.helpers import FailingOperation, IllegalStateError, PlannedError

###################################
#     Tests for construction      #
###################################


def test_retry_executor_defaults() -> None:
    """Test RetryExecutor initialization from the default config."""
    executor = RetryExecutor()
    assert executor.config == RetryConfig()
    assert isinstance(executor.policy, ClassifierRetryPolicy)
    assert isinstance(executor.backoff, ExponentialBackoff)
    assert executor.callbacks is not None
    assert isinstance(executor.store, RetryContextStore)


def test_retry_executor_overrides() -> None:
    """Test that explicit components override the config."""
    policy = SimpleRetryPolicy(7)
    backoff = NoBackoff()
    store = RetryContextStore()
    executor = RetryExecutor(policy=policy, backoff=backoff, store=store)
    assert executor.policy is policy
    assert executor.backoff is backoff
    assert executor.store is store


def test_retry_executor_repr() -> None:
    """Test RetryExecutor string representation."""
    executor = RetryExecutor(policy=SimpleRetryPolicy(2), backoff=NoBackoff())
    assert repr(executor) == (
        "RetryExecutor(policy=SimpleRetryPolicy(max_attempts=2), backoff=NoBackoff())"
    )


###############################
#     Tests for execute       #
###############################


def test_execute_success_first_attempt(mock_sleep: Mock) -> None:
    """Test that a successful operation runs once."""
    operation = FailingOperation(failures=0)
    assert RetryExecutor().execute(operation) == "success"
    assert operation.calls == 1
    mock_sleep.assert_not_called()


def test_execute_planned_failures_then_success(mock_sleep: Mock) -> None:
    """Test an operation failing twice with 'Planned' before
    succeeding."""
    operation = FailingOperation(failures=2)
    executor = RetryExecutor(RetryConfig(max_attempts=3))

    assert executor.execute(operation) == "success"
    assert operation.calls == 3
    assert mock_sleep.call_args_list == [call(1.0), call(2.0)]


def test_execute_succeeds_on_attempt_k() -> None:
    """Test that an operation succeeding on attempt K runs K times."""
    for k in range(1, 6):
        operation = FailingOperation(failures=k - 1)
        executor = RetryExecutor(RetryConfig(max_attempts=5), backoff=NoBackoff())
        assert executor.execute(operation) == "success"
        assert operation.calls == k


@pytest.mark.parametrize("max_attempts", [1, 2, 3, 5])
def test_execute_always_failing(max_attempts: int) -> None:
    """Test that an always-failing operation runs exactly N times."""
    operation = FailingOperation()
    executor = RetryExecutor(RetryConfig(max_attempts=max_attempts), backoff=NoBackoff())

    with pytest.raises(RetryExhaustedError, match=r"^Planned$") as exc_info:
        executor.execute(operation)

    assert operation.calls == max_attempts
    error = exc_info.value
    assert error.attempt_count == max_attempts
    assert isinstance(error.last_failure, PlannedError)
    assert error.__cause__ is error.last_failure
    assert not error.non_retryable


def test_execute_excluded_failure_surfaces_on_first_attempt(mock_sleep: Mock) -> None:
    """Test that an explicitly excluded subclass of an included type is
    surfaced on the first attempt."""
    operation = FailingOperation(error=IllegalStateError)
    config = RetryConfig(
        max_attempts=3,
        include_failure_types=(RuntimeError,),
        exclude_failure_types=(IllegalStateError,),
    )

    with pytest.raises(RetryExhaustedError, match=r"Planned") as exc_info:
        RetryExecutor(config).execute(operation)

    assert operation.calls == 1
    assert exc_info.value.attempt_count == 1
    assert exc_info.value.non_retryable
    assert isinstance(exc_info.value.last_failure, IllegalStateError)
    mock_sleep.assert_not_called()


def test_execute_unmatched_failure_with_include_is_not_retried() -> None:
    """Test that a failure matching no rule is not retried when include
    rules exist."""
    operation = FailingOperation(error=ValueError)
    config = RetryConfig(include_failure_types=(ConnectionError,))

    with pytest.raises(RetryExhaustedError) as exc_info:
        RetryExecutor(config, backoff=NoBackoff()).execute(operation)

    assert operation.calls == 1
    assert exc_info.value.non_retryable


def test_execute_included_failure_is_retried() -> None:
    """Test that included failures are retried."""
    operation = FailingOperation(failures=1, error=ConnectionError)
    config = RetryConfig(include_failure_types=(ConnectionError,))
    assert RetryExecutor(config, backoff=NoBackoff()).execute(operation) == "success"
    assert operation.calls == 2


def test_execute_fixed_backoff(mock_sleep: Mock) -> None:
    """Test sleeping with a fixed backoff between attempts."""
    config = RetryConfig(max_attempts=4, backoff_kind=BackoffKind.FIXED, initial_delay=0.5)
    with pytest.raises(RetryExhaustedError):
        RetryExecutor(config).execute(FailingOperation())
    assert mock_sleep.call_args_list == [call(0.5), call(0.5), call(0.5)]


def test_execute_custom_sleep() -> None:
    """Test that a custom sleep function is used."""
    sleep = Mock()
    executor = RetryExecutor(backoff=FixedBackoff(0.25), sleep=sleep)
    assert executor.execute(FailingOperation(failures=1)) == "success"
    sleep.assert_called_once_with(0.25)


def test_execute_recovery_callback() -> None:
    """Test that the recovery callback converts exhaustion into a
    result."""
    recovery = Mock(return_value="fallback")
    executor = RetryExecutor(RetryConfig(max_attempts=2), backoff=NoBackoff())

    assert executor.execute(FailingOperation(), recovery=recovery) == "fallback"
    recovery.assert_called_once()
    assert isinstance(recovery.call_args.args[0], PlannedError)


def test_execute_recovery_from_config() -> None:
    """Test the recovery callback set on the config."""
    config = RetryConfig(max_attempts=2, recovery_callback=lambda exc: f"recovered: {exc}")
    executor = RetryExecutor(config, backoff=NoBackoff())
    assert executor.execute(FailingOperation()) == "recovered: Planned"


def test_execute_recovery_argument_overrides_config() -> None:
    """Test that the recovery argument takes precedence over the
    config."""
    config = RetryConfig(max_attempts=1, recovery_callback=lambda exc: "config")
    executor = RetryExecutor(config)
    assert executor.execute(FailingOperation(), recovery=lambda exc: "argument") == "argument"


def test_execute_callbacks(mock_sleep: Mock) -> None:
    """Test the lifecycle callbacks of a successful sequence."""
    on_attempt, on_retry, on_success, on_failure = Mock(), Mock(), Mock(), Mock()
    callbacks = CallbackConfig(
        on_attempt=on_attempt, on_retry=on_retry, on_success=on_success, on_failure=on_failure
    )
    executor = RetryExecutor(RetryConfig(max_attempts=3), callbacks=callbacks)

    executor.execute(FailingOperation(failures=2))

    assert on_attempt.call_args_list == [
        call(AttemptInfo(attempt=1, key=None)),
        call(AttemptInfo(attempt=2, key=None)),
        call(AttemptInfo(attempt=3, key=None)),
    ]
    assert on_retry.call_count == 2
    assert [c.args[0].attempt for c in on_retry.call_args_list] == [2, 3]
    assert [c.args[0].wait_time for c in on_retry.call_args_list] == [1.0, 2.0]
    on_success.assert_called_once()
    assert on_success.call_args.args[0].attempt == 3
    assert on_success.call_args.args[0].result == "success"
    on_failure.assert_not_called()
    assert mock_sleep.call_count == 2


def test_execute_on_failure_callback(mock_callback: Mock) -> None:
    """Test that on_failure receives the exhaustion error."""
    executor = RetryExecutor(
        RetryConfig(max_attempts=2),
        backoff=NoBackoff(),
        callbacks=CallbackConfig(on_failure=mock_callback),
    )
    with pytest.raises(RetryExhaustedError) as exc_info:
        executor.execute(FailingOperation())

    mock_callback.assert_called_once()
    info = mock_callback.call_args.args[0]
    assert isinstance(info, FailureInfo)
    assert info.attempt == 2
    assert info.error is exc_info.value


def test_execute_callback_error_propagates() -> None:
    """Test that an exception raised by a callback propagates."""
    executor = RetryExecutor(
        backoff=NoBackoff(),
        callbacks=CallbackConfig(on_retry=Mock(side_effect=RuntimeError("callback"))),
    )
    with pytest.raises(RuntimeError, match=r"callback"):
        executor.execute(FailingOperation(failures=1))


def test_execute_base_exception_propagates() -> None:
    """Test that BaseExceptions are neither classified nor retried."""
    operation = Mock(side_effect=KeyboardInterrupt)
    with pytest.raises(KeyboardInterrupt):
        RetryExecutor(backoff=NoBackoff()).execute(operation)
    operation.assert_called_once()


def test_execute_cancelled_before_first_attempt() -> None:
    """Test that a set cancel event stops the loop before any attempt."""
    cancel_event = threading.Event()
    cancel_event.set()
    operation = FailingOperation(failures=0)

    with pytest.raises(RetryCancelledError) as exc_info:
        RetryExecutor().execute(operation, cancel_event=cancel_event)

    assert operation.calls == 0
    assert exc_info.value.attempt_count == 0


def test_execute_cancelled_during_backoff() -> None:
    """Test that setting the cancel event interrupts the backoff wait."""
    cancel_event = threading.Event()

    def operation() -> None:
        cancel_event.set()
        raise PlannedError("Planned")

    executor = RetryExecutor(RetryConfig(max_attempts=5), backoff=FixedBackoff(60.0))
    with pytest.raises(RetryCancelledError) as exc_info:
        executor.execute(operation, cancel_event=cancel_event)

    assert exc_info.value.attempt_count == 1
    assert isinstance(exc_info.value.last_failure, PlannedError)


def test_execute_cancel_event_not_set() -> None:
    """Test that an unset cancel event waits for the backoff delay."""
    cancel_event = Mock(spec=threading.Event)
    cancel_event.is_set.return_value = False
    cancel_event.wait.return_value = False

    executor = RetryExecutor(backoff=FixedBackoff(0.5))
    assert executor.execute(FailingOperation(failures=1), cancel_event=cancel_event) == "success"
    cancel_event.wait.assert_called_once_with(0.5)


def test_execute_nested_scope_parent() -> None:
    """Test that a nested execution uses the outer context as parent."""
    executor = RetryExecutor(backoff=NoBackoff())
    seen = {}

    def inner() -> str:
        seen["inner"] = get_current_context()
        return "inner"

    def outer() -> str:
        seen["outer"] = get_current_context()
        return executor.execute(inner)

    assert executor.execute(outer) == "inner"
    assert seen["inner"].parent is seen["outer"]
    assert seen["outer"].parent is None
    assert get_current_context() is None


def test_execute_nested_exhaustion_is_retried_by_outer() -> None:
    """Test that an inner exhaustion is a failure of the outer
    attempt."""
    executor = RetryExecutor(RetryConfig(max_attempts=2), backoff=NoBackoff())
    inner_operation = FailingOperation()

    with pytest.raises(RetryExhaustedError) as exc_info:
        executor.execute(lambda: executor.execute(inner_operation))

    assert inner_operation.calls == 4
    assert isinstance(exc_info.value.last_failure, RetryExhaustedError)


def test_execute_circuit_breaker_opens_mid_sequence() -> None:
    """Test that an opening circuit ends a stateless sequence."""
    policy = CircuitBreakerRetryPolicy(SimpleRetryPolicy(5), failure_threshold=2)
    operation = FailingOperation()

    with pytest.raises(RetryExhaustedError) as exc_info:
        RetryExecutor(policy=policy, backoff=NoBackoff()).execute(operation)

    assert operation.calls == 2
    assert not isinstance(exc_info.value, CircuitOpenError)


#######################################
#     Tests for execute_stateful      #
#######################################


def test_execute_stateful_three_calls() -> None:
    """Test stateful correlation across three failing calls."""
    store = RetryContextStore()
    executor = RetryExecutor(RetryConfig(max_attempts=3), store=store)
    operation = FailingOperation()

    with pytest.raises(PlannedError, match=r"Planned"):
        executor.execute_stateful(operation, "msg-1")
    assert store.get("msg-1").attempt_count == 1

    with pytest.raises(PlannedError, match=r"Planned"):
        executor.execute_stateful(operation, "msg-1")
    assert store.get("msg-1").attempt_count == 2

    with pytest.raises(RetryExhaustedError, match=r"Planned") as exc_info:
        executor.execute_stateful(operation, "msg-1")
    assert exc_info.value.attempt_count == 3
    assert exc_info.value.key == "msg-1"
    assert "msg-1" not in store
    assert operation.calls == 3


def test_execute_stateful_does_not_sleep(mock_sleep: Mock) -> None:
    """Test that stateful backoff is advisory."""
    executor = RetryExecutor(RetryConfig(max_attempts=3, initial_delay=2.0))

    with pytest.raises(PlannedError):
        executor.execute_stateful(FailingOperation(), "k")

    mock_sleep.assert_not_called()
    assert executor.advised_delay("k") == 2.0
    assert executor.store.get("k").get_attribute(NEXT_DELAY) == 2.0


def test_execute_stateful_advised_delay_grows() -> None:
    """Test that the advised delay follows the backoff policy."""
    executor = RetryExecutor(RetryConfig(max_attempts=5, initial_delay=1.0, multiplier=3.0))
    operation = FailingOperation()
    delays = []
    for _ in range(3):
        with pytest.raises(PlannedError):
            executor.execute_stateful(operation, "k")
        delays.append(executor.advised_delay("k"))
    assert delays == [1.0, 3.0, 9.0]


def test_execute_stateful_advised_delay_unknown_key() -> None:
    """Test advised_delay for a key with no pending sequence."""
    assert RetryExecutor().advised_delay("unknown") is None


def test_execute_stateful_success_removes_context() -> None:
    """Test that a success ends the sequence."""
    store = RetryContextStore()
    executor = RetryExecutor(store=store)
    operation = FailingOperation(failures=1)

    with pytest.raises(PlannedError):
        executor.execute_stateful(operation, "k")
    assert executor.execute_stateful(operation, "k") == "success"
    assert "k" not in store


def test_execute_stateful_accepts_retry_state() -> None:
    """Test that a RetryState may be given instead of a bare key."""
    store = RetryContextStore()
    executor = RetryExecutor(store=store)
    with pytest.raises(PlannedError):
        executor.execute_stateful(FailingOperation(), RetryState(("orders", 7)))
    assert store.get(("orders", 7)).attempt_count == 1


def test_execute_stateful_none_key() -> None:
    """Test that a None key is rejected."""
    with pytest.raises(ValueError, match=r"key must not be None"):
        RetryExecutor().execute_stateful(FailingOperation(), None)


def test_execute_stateful_non_retryable() -> None:
    """Test that a non-retryable failure exhausts the sequence at
    once."""
    store = RetryContextStore()
    executor = RetryExecutor(RetryConfig(exclude_failure_types=(KeyError,)), store=store)

    with pytest.raises(RetryExhaustedError) as exc_info:
        executor.execute_stateful(FailingOperation(error=KeyError), "k")

    assert exc_info.value.non_retryable
    assert exc_info.value.attempt_count == 1
    assert "k" not in store


def test_execute_stateful_forced_rollback(mock_callback: Mock) -> None:
    """Test that a rollback failure is re-raised and ends the
    sequence."""
    store = RetryContextStore()
    executor = RetryExecutor(
        RetryConfig(max_attempts=5),
        store=store,
        callbacks=CallbackConfig(on_failure=mock_callback),
    )
    state = RetryState("k", rollback_for=(PermissionError,))

    with pytest.raises(PlannedError):
        executor.execute_stateful(FailingOperation(), state)
    with pytest.raises(PermissionError, match=r"Planned"):
        executor.execute_stateful(FailingOperation(error=PermissionError), state)

    assert "k" not in store
    mock_callback.assert_called_once()
    assert isinstance(mock_callback.call_args.args[0].error, PermissionError)
    assert mock_callback.call_args.args[0].attempt == 2


def test_execute_stateful_rollback_if() -> None:
    """Test a rollback forced by predicate."""
    store = RetryContextStore()
    executor = RetryExecutor(store=store)
    state = RetryState("k", rollback_if=lambda exc: isinstance(exc, PlannedError))

    with pytest.raises(PlannedError):
        executor.execute_stateful(FailingOperation(), state)
    assert "k" not in store


def test_execute_stateful_force_refresh() -> None:
    """Test that force_refresh starts a new sequence."""
    store = RetryContextStore()
    executor = RetryExecutor(RetryConfig(max_attempts=5), store=store)
    operation = FailingOperation()

    for _ in range(3):
        with pytest.raises(PlannedError):
            executor.execute_stateful(operation, "k")
    assert store.get("k").attempt_count == 3

    with pytest.raises(PlannedError):
        executor.execute_stateful(operation, RetryState("k", force_refresh=True))
    assert store.get("k").attempt_count == 1


def test_execute_stateful_recovery() -> None:
    """Test the recovery callback on stateful exhaustion."""
    executor = RetryExecutor(RetryConfig(max_attempts=1))
    recovery = Mock(return_value="fallback")
    assert executor.execute_stateful(FailingOperation(), "k", recovery=recovery) == "fallback"
    assert isinstance(recovery.call_args.args[0], PlannedError)


def test_execute_stateful_callbacks() -> None:
    """Test the on_retry callback of a stateful call."""
    on_retry = Mock()
    executor = RetryExecutor(
        RetryConfig(initial_delay=0.5), callbacks=CallbackConfig(on_retry=on_retry)
    )
    with pytest.raises(PlannedError):
        executor.execute_stateful(FailingOperation(), "k")
    info = on_retry.call_args.args[0]
    assert info.attempt == 2
    assert info.wait_time == 0.5
    assert info.key == "k"


def test_execute_stateful_sets_retry_key() -> None:
    """Test that the retry key is set while the operation runs."""
    seen = []

    def operation() -> str:
        seen.append(get_retry_key())
        return "ok"

    RetryExecutor().execute_stateful(operation, "order-42")
    assert seen == ["order-42"]
    assert get_retry_key() is None


def test_execute_stateful_nested_in_stateless() -> None:
    """Test that a stateful context opened inside a stateless loop has
    the loop context as parent."""
    store = RetryContextStore()
    executor = RetryExecutor(RetryConfig(max_attempts=3), backoff=NoBackoff(), store=store)
    seen = {}

    def inner() -> None:
        seen["inner"] = get_current_context()
        raise PlannedError("Planned")

    def outer() -> None:
        seen["outer"] = get_current_context()
        executor.execute_stateful(inner, "inner")

    with pytest.raises(RetryExhaustedError):
        executor.execute(outer)

    assert "inner" not in store
    assert seen["inner"].key == "inner"
    assert seen["inner"].parent is seen["outer"]
    assert seen["outer"].attempt_count == 3


def test_execute_stateful_distinct_keys_concurrently() -> None:
    """Test that concurrent calls on distinct keys do not interfere."""
    store = RetryContextStore()
    executor = RetryExecutor(RetryConfig(max_attempts=100), store=store)
    barrier = threading.Barrier(8)

    def worker(key: str) -> None:
        barrier.wait()
        for _ in range(10):
            with pytest.raises(PlannedError):
                executor.execute_stateful(FailingOperation(), key)

    threads = [threading.Thread(target=worker, args=(f"key-{i}",)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    for i in range(8):
        assert store.get(f"key-{i}").attempt_count == 10


def test_execute_stateful_same_key_concurrently() -> None:
    """Test that concurrent calls on one key never lose an attempt."""
    store = RetryContextStore()
    executor = RetryExecutor(RetryConfig(max_attempts=1000), store=store)

    def worker() -> None:
        for _ in range(25):
            with pytest.raises(PlannedError):
                executor.execute_stateful(FailingOperation(), "shared")

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.get("shared").attempt_count == 100


######################################################
#     Tests for stateful circuit breaker policies     #
######################################################


def test_execute_stateful_circuit_breaker() -> None:
    """Test that an open circuit denies calls without invoking the
    operation, then allows a trial after the recovery timeout."""
    store = RetryContextStore()
    policy = CircuitBreakerRetryPolicy(
        SimpleRetryPolicy(3), failure_threshold=2, recovery_timeout=30.0
    )
    executor = RetryExecutor(policy=policy, backoff=NoBackoff(), store=store)
    operation = FailingOperation(failures=2, error=ConnectionError)

    with patch("aretry.circuit_breaker.time.monotonic", return_value=0.0):
        with pytest.raises(ConnectionError):
            executor.execute_stateful(operation, "svc")
        with pytest.raises(RetryExhaustedError) as exc_info:
            executor.execute_stateful(operation, "svc")
        assert not isinstance(exc_info.value, CircuitOpenError)
        assert "svc" in store
        assert store.get("svc").attempt_count == 0

        with pytest.raises(CircuitOpenError, match=r"Circuit is OPEN for key 'svc'"):
            executor.execute_stateful(operation, "svc")
        assert operation.calls == 2

    with patch("aretry.circuit_breaker.time.monotonic", return_value=31.0):
        assert executor.execute_stateful(operation, "svc") == "success"
    assert operation.calls == 3
    assert not policy.is_open(store.get("svc"))


def test_execute_circuit_open_recovery() -> None:
    """Test that recovery receives the CircuitOpenError when no attempt
    was made."""
    store = RetryContextStore()
    policy = CircuitBreakerRetryPolicy(SimpleRetryPolicy(1), failure_threshold=1)
    executor = RetryExecutor(policy=policy, backoff=NoBackoff(), store=store)

    with pytest.raises(RetryExhaustedError):
        executor.execute_stateful(FailingOperation(), "svc")
    recovery = Mock(return_value="cached")
    assert executor.execute_stateful(FailingOperation(), "svc", recovery=recovery) == "cached"
    assert isinstance(recovery.call_args.args[0], CircuitOpenError)
