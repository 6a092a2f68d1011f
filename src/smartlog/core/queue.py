"""Delivery queue holding records the agent could not hand off directly."""

from collections import deque
from typing import Generic, TypeVar

from smartlog.core.errors import ConfigurationError

T = TypeVar("T")

QUEUE_STRATEGIES = frozenset({"grow"})


class DeliveryQueue(Generic[T]):
    """Unbounded FIFO of pending items.

    Only the ``grow`` strategy exists: the queue never evicts and never
    refuses an item, so nothing handed to it is lost.

    Args:
        strategy: Growth policy name.
    """

    def __init__(self, strategy: str = "grow") -> None:
        if strategy not in QUEUE_STRATEGIES:
            raise ConfigurationError(f"unknown queue strategy {strategy!r}")
        self._strategy = strategy
        self._items: deque[T] = deque()

    @property
    def strategy(self) -> str:
        return self._strategy

    def __len__(self) -> int:
        return len(self._items)

    def enqueue(self, item: T) -> None:
        """Append an item at the tail."""
        self._items.append(item)

    def dequeue(self) -> T:
        """Remove and return the item at the head.

        Raises:
            IndexError: If the queue is empty.
        """
        return self._items.popleft()

    def clear(self) -> None:
        self._items.clear()
