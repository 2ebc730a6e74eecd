r"""Bounded store of retry contexts for stateful retry.

The store maps a correlation key to its ``RetryContext``. It keeps at
most ``capacity`` entries and evicts the least recently used one when
full. Access to a given key is serialized with a per-key lock, so calls
sharing a key never lose an attempt update, while calls on different
keys only contend on a short structural guard.
"""

from __future__ import annotations

__all__ = ["RetryContextStore", "get_default_store"]

import asyncio
import logging
import threading
from collections import OrderedDict
from contextlib import asynccontextmanager, contextmanager
from typing import TYPE_CHECKING

from aretry.exceptions import RetryContextStoreFullError
from aretry.utils.validation import validate_capacity

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Hashable, Iterator

    from aretry.context import RetryContext

logger: logging.Logger = logging.getLogger(__name__)

# Seconds between attempts of a coroutine to take a key held by a thread
_LOCK_POLL_INTERVAL = 0.005


class _KeyLock:
    """A lock shared by the callers of one key, with a holder count."""

    __slots__ = ("lock", "users")

    def __init__(self, lock: threading.Lock | asyncio.Lock) -> None:
        self.lock = lock
        self.users = 0


class RetryContextStore:
    r"""LRU store of retry contexts keyed by correlation key.

    Thread-safe. A key is *in flight* while a caller holds (or waits
    for) its lock; in-flight keys are never evicted.

    Args:
        capacity: Maximum number of stored contexts. Default is 4096.

    Example:
        ```pycon
        >>> from aretry.context import RetryContext
        >>> from aretry.store import RetryContextStore
        >>> store = RetryContextStore(capacity=2)
        >>> store.put("a", RetryContext(key="a"))
        >>> store.put("b", RetryContext(key="b"))
        >>> store.put("c", RetryContext(key="c"))
        >>> "a" in store
        False
        >>> len(store)
        2

        ```
    """

    def __init__(self, capacity: int = 4096) -> None:
        validate_capacity(capacity)
        self._capacity = capacity
        self._contexts: OrderedDict[Hashable, RetryContext] = OrderedDict()
        self._locks: dict[Hashable, _KeyLock] = {}
        self._async_locks: dict[Hashable, _KeyLock] = {}
        self._guard = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._guard:
            return len(self._contexts)

    def __contains__(self, key: Hashable) -> bool:
        with self._guard:
            return key in self._contexts

    def get(self, key: Hashable) -> RetryContext | None:
        """Return the context stored for the key and mark it recently
        used, or ``None``."""
        with self._guard:
            context = self._contexts.get(key)
            if context is not None:
                self._contexts.move_to_end(key)
            return context

    def put(self, key: Hashable, context: RetryContext) -> None:
        """Store a context, evicting the least recently used idle entry
        if the store is full.

        Raises:
            RetryContextStoreFullError: If the store is full and every
                stored key is in flight.
        """
        with self._guard:
            if key in self._contexts:
                self._contexts[key] = context
                self._contexts.move_to_end(key)
                return
            if len(self._contexts) >= self._capacity:
                self._evict_one()
            self._contexts[key] = context

    def remove(self, key: Hashable) -> RetryContext | None:
        """Remove and return the context stored for the key, if any."""
        with self._guard:
            return self._contexts.pop(key, None)

    def clear(self) -> None:
        with self._guard:
            self._contexts.clear()

    def is_in_flight(self, key: Hashable) -> bool:
        with self._guard:
            return self._in_flight(key)

    @contextmanager
    def lock(self, key: Hashable) -> Iterator[None]:
        """Hold the key for the duration of the block from a thread.

        Example:
            ```pycon
            >>> from aretry.store import RetryContextStore
            >>> store = RetryContextStore()
            >>> with store.lock("order-42"):
            ...     store.is_in_flight("order-42")
            ...
            True
            >>> store.is_in_flight("order-42")
            False

            ```
        """
        entry = self._acquire_entry(self._locks, key, threading.Lock)
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            self._release_entry(self._locks, key, entry)

    @asynccontextmanager
    async def alock(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the key for the duration of the block from a coroutine.

        Tasks of one event loop queue on the asyncio lock of the key. The
        task at the head of the queue then also takes the thread lock
        used by ``lock``, polling it so the event loop is never blocked.
        Synchronous and asynchronous callers of a key therefore exclude
        each other.
        """
        entry = self._acquire_entry(self._async_locks, key, asyncio.Lock)
        shared = self._acquire_entry(self._locks, key, threading.Lock)
        try:
            await entry.lock.acquire()
            try:
                while not shared.lock.acquire(blocking=False):
                    await asyncio.sleep(_LOCK_POLL_INTERVAL)
            except BaseException:
                entry.lock.release()
                raise
        except BaseException:
            self._release_entry(self._locks, key, shared)
            self._release_entry(self._async_locks, key, entry)
            raise
        try:
            yield
        finally:
            shared.lock.release()
            entry.lock.release()
            self._release_entry(self._locks, key, shared)
            self._release_entry(self._async_locks, key, entry)

    def _acquire_entry(self, locks: dict, key: Hashable, factory: type) -> _KeyLock:
        with self._guard:
            entry = locks.get(key)
            if entry is None:
                entry = locks[key] = _KeyLock(factory())
            entry.users += 1
            return entry

    def _release_entry(self, locks: dict, key: Hashable, entry: _KeyLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del locks[key]

    def _in_flight(self, key: Hashable) -> bool:
        """Must be called with ``self._guard`` held."""
        return key in self._locks or key in self._async_locks

    def _evict_one(self) -> None:
        """Evict the least recently used idle entry.

        Must be called with ``self._guard`` held.
        """
        for candidate in self._contexts:
            if not self._in_flight(candidate):
                del self._contexts[candidate]
                logger.debug(
                    f"Evicted retry context for key {candidate!r} (capacity={self._capacity})"
                )
                return
        raise RetryContextStoreFullError(self._capacity)


# Shared by the module-level execute helpers
_default_store = RetryContextStore()


def get_default_store() -> RetryContextStore:
    """Return the process-wide store used by ``aretry.execute_stateful``
    and ``aretry.execute_stateful_async``."""
    return _default_store
