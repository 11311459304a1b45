"""
Blocking queue used between pipeline stages.

A single monitor (lock + condition) guards the items, so producers blocked on
a full queue and consumers blocked on an empty one are always woken by the
operation that changes their condition. Closing the queue wakes everybody.
"""

from __future__ import annotations

import threading
from collections import deque
from queue import Empty
from typing import Callable, Generic, Iterable, Optional, TypeVar

T = TypeVar('T')


class QueueClosed(Exception):
    """Raised by get() once a closed queue has been fully drained."""


class BlockingQueue(Generic[T]):
    """
    FIFO queue with optional capacity and close semantics.

    - put() blocks while the queue is full (capacity set) and returns False
      once the queue is closed.
    - get() blocks while the queue is empty and raises QueueClosed once it is
      closed and empty.
    - drain() never blocks.
    - close() refuses further puts; items already queued can still be taken.

    Args:
        capacity: Maximum number of items held, or None for unbounded
        on_change: Optional callback(size, capacity) fired after every change,
            outside the lock
    """

    def __init__(
        self,
        capacity: Optional[int] = None,
        on_change: Optional[Callable[[int, Optional[int]], None]] = None,
    ):
        if capacity is not None and capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._items: deque[T] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._on_change = on_change

    @property
    def capacity(self) -> Optional[int]:
        return self._capacity

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def _full(self) -> bool:
        return self._capacity is not None and len(self._items) >= self._capacity

    def _changed(self, size: int) -> None:
        if self._on_change is not None:
            self._on_change(size, self._capacity)

    def put(self, item: T) -> bool:
        """
        Append an item, blocking while the queue is at capacity.

        Returns:
            True if the item was queued, False if the queue was closed
        """
        with self._cond:
            while self._full() and not self._closed:
                self._cond.wait()
            if self._closed:
                return False
            self._items.append(item)
            size = len(self._items)
            self._cond.notify_all()
        self._changed(size)
        return True

    def put_all(self, items: Iterable[T]) -> int:
        """
        Append many items at once (unbounded queues only).

        Returns:
            Number of items queued (0 if the queue is closed)
        """
        if self._capacity is not None:
            raise TypeError("put_all() is only supported on unbounded queues")
        with self._cond:
            if self._closed:
                return 0
            before = len(self._items)
            self._items.extend(items)
            size = len(self._items)
            self._cond.notify_all()
        self._changed(size)
        return size - before

    def get(self, timeout: Optional[float] = None) -> T:
        """
        Remove and return the oldest item, blocking while empty.

        Raises:
            QueueClosed: If the queue is closed and empty
            queue.Empty: If timeout expires first
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._items or self._closed, timeout):
                raise Empty
            if not self._items:
                raise QueueClosed
            item = self._items.popleft()
            size = len(self._items)
            self._cond.notify_all()
        self._changed(size)
        return item

    def wait_not_empty(self, timeout: Optional[float] = None) -> bool:
        """
        Block until an item is available or the queue is closed.

        Returns:
            True if items are available, False if closed and empty
            (or on timeout)
        """
        with self._cond:
            self._cond.wait_for(lambda: self._items or self._closed, timeout)
            return bool(self._items)

    def drain(self, max_elements: int) -> list[T]:
        """Pop up to max_elements items without blocking."""
        drained: list[T] = []
        with self._cond:
            while self._items and len(drained) < max_elements:
                drained.append(self._items.popleft())
            size = len(self._items)
            if drained:
                self._cond.notify_all()
        if drained:
            self._changed(size)
        return drained

    def clear(self) -> int:
        """Discard all queued items. Returns the number discarded."""
        with self._cond:
            discarded = len(self._items)
            self._items.clear()
            self._cond.notify_all()
        self._changed(0)
        return discarded

    def close(self) -> None:
        """Refuse further puts and wake every waiting thread."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()


__all__ = ['BlockingQueue', 'QueueClosed']
