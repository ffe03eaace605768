"""Max-first priority queue on top of heapq."""

from __future__ import annotations

import heapq
import itertools
from typing import Generic, TypeVar

T = TypeVar("T")


class PriorityQueue(Generic[T]):
    """Binary heap that pops the highest priority first.

    Equal priorities pop in insertion order.
    """

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, T]] = []
        self._counter = itertools.count()

    def push(self, item: T, priority: float) -> None:
        heapq.heappush(self._heap, (-priority, next(self._counter), item))

    def pop(self) -> tuple[T, float]:
        if not self._heap:
            raise IndexError("pop from empty priority queue")
        neg_priority, _, item = heapq.heappop(self._heap)
        return item, -neg_priority

    def peek(self) -> tuple[T, float] | None:
        if not self._heap:
            return None
        neg_priority, _, item = self._heap[0]
        return item, -neg_priority

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
