"""The log agent: builds records and hands them downstream without blocking.

Producers call the severity methods (or ``counter``/``histogram``) from
synchronous code. Each call builds one Record and either pushes it into the
agent's readable buffer or, when the buffer reported "not ready" on the last
push, appends it to the delivery queue. Consumers pull records with
``await agent.read()`` or ``async for record in agent``; every pull drains the
delivery queue back into the buffer until it is empty or the buffer fills up
again.
"""

import asyncio
import threading
from collections import deque
from collections.abc import Mapping
from typing import Any

from smartlog.core.errors import ConfigurationError
from smartlog.core.levels import DEFAULT_LEVEL, LEVELS, RANKS, rank
from smartlog.core.models import Record, now_ms
from smartlog.core.queue import DeliveryQueue

DEFAULT_HIGH_WATER_MARK = 16

# Terminal marker placed in the stream by end().
_END = object()
# Returned by _take() when there is nothing to read yet.
_EMPTY = object()


def _timestamp_from(value: Any) -> int:
    """Convert a caller-supplied ``ts`` to milliseconds, or use the clock.

    Values ``int()`` cannot convert, and bools, are discarded.
    """
    if value is None or isinstance(value, bool):
        return now_ms()
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return now_ms()


class Agent:
    """Level-gated record producer with a backpressure-aware delivery queue.

    Producer methods never raise and never block. Once ``end()`` or
    ``destroy()`` has been called they silently drop whatever they are given.

    The can-push flag, the delivery queue and the readable buffer are guarded
    by a single lock, so producers may run on other threads than the reader.

    Example:
        ```python
        agent = Agent(default_fields={"service": "billing"}, level="info")
        agent.info("charge accepted", amount=42)
        agent.counter("charges")
        record = await agent.read()
        ```
    """

    def __init__(
        self,
        default_fields: Mapping[str, Any] | None = None,
        level: str = DEFAULT_LEVEL,
        queue_strategy: str = "grow",
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    ) -> None:
        """Initialize the agent.

        Args:
            default_fields: Fields merged into every log record before the
                call-site fields.
            level: Least severe level that is still emitted.
            queue_strategy: Growth policy of the delivery queue.
            high_water_mark: Number of buffered records at which the output
                channel reports "not ready".

        Raises:
            ConfigurationError: If ``level``, ``queue_strategy`` or
                ``high_water_mark`` is invalid.
        """
        rank(level)
        if high_water_mark < 1:
            raise ConfigurationError("high_water_mark must be at least 1")
        self._default_fields = dict(default_fields or {})
        self._level = level
        self._high_water_mark = high_water_mark
        self._queue: DeliveryQueue[Any] | None = DeliveryQueue(queue_strategy)
        self._buffer: deque[Any] = deque()
        self._can_push = True
        self._ending = False
        self._ended = False
        self._destroyed = False
        self._lock = threading.Lock()
        self._waiter: asyncio.Event | None = None
        self._waiter_loop: asyncio.AbstractEventLoop | None = None

    # --- Configuration ---

    @property
    def level(self) -> str:
        """The least severe level that is currently emitted."""
        return self._level

    @level.setter
    def level(self, new_level: str) -> None:
        rank(new_level)
        self._level = new_level

    def set_level(self, new_level: str) -> None:
        """Change the threshold; takes effect for the very next call."""
        self.level = new_level

    @property
    def default_fields(self) -> dict[str, Any]:
        return dict(self._default_fields)

    @property
    def high_water_mark(self) -> int:
        return self._high_water_mark

    @property
    def length(self) -> int:
        """Number of entries waiting in the delivery queue."""
        queue = self._queue
        return len(queue) if queue is not None else 0

    @property
    def closed(self) -> bool:
        """True once ``end()`` or ``destroy()`` has been called."""
        return self._ending or self._destroyed

    def is_enabled_for(self, level: str) -> bool:
        """Return True if a log call at ``level`` would produce a record."""
        level_rank = RANKS.get(level)
        return level_rank is not None and level_rank <= RANKS[self._level]

    # --- Producer API ---

    def log(
        self,
        level: str,
        message: str | None = None,
        *,
        error: BaseException | None = None,
        **fields: Any,
    ) -> None:
        """Emit one log record at ``level``.

        Unknown level names are treated as always suppressed.

        Args:
            level: Severity name.
            message: Optional message, stored as ``msg``.
            error: Optional exception, stored as ``error``.
            **fields: Extra fields, merged over the default fields. A ``ts``
                field overrides the record timestamp (milliseconds).
        """
        if self.closed or not self.is_enabled_for(level):
            return
        payload = dict(self._default_fields)
        if message is not None:
            payload["msg"] = message
        if error is not None:
            payload["error"] = error
        payload.update(fields)
        payload.pop("level", None)
        record = Record(
            timestamp=_timestamp_from(payload.pop("ts", None)),
            level=level,
            payload=payload,
        )
        self._push_or_enqueue(record)

    def emergency(
        self,
        message: str | None = None,
        *,
        error: BaseException | None = None,
        **fields: Any,
    ) -> None:
        self.log("emergency", message, error=error, **fields)

    def alert(
        self,
        message: str | None = None,
        *,
        error: BaseException | None = None,
        **fields: Any,
    ) -> None:
        self.log("alert", message, error=error, **fields)

    def critical(
        self,
        message: str | None = None,
        *,
        error: BaseException | None = None,
        **fields: Any,
    ) -> None:
        self.log("critical", message, error=error, **fields)

    def error(
        self,
        message: str | None = None,
        *,
        error: BaseException | None = None,
        **fields: Any,
    ) -> None:
        self.log("error", message, error=error, **fields)

    def warning(
        self,
        message: str | None = None,
        *,
        error: BaseException | None = None,
        **fields: Any,
    ) -> None:
        self.log("warning", message, error=error, **fields)

    def notice(
        self,
        message: str | None = None,
        *,
        error: BaseException | None = None,
        **fields: Any,
    ) -> None:
        self.log("notice", message, error=error, **fields)

    def info(
        self,
        message: str | None = None,
        *,
        error: BaseException | None = None,
        **fields: Any,
    ) -> None:
        self.log("info", message, error=error, **fields)

    def debug(
        self,
        message: str | None = None,
        *,
        error: BaseException | None = None,
        **fields: Any,
    ) -> None:
        self.log("debug", message, error=error, **fields)

    def counter(self, key: str, value: float = 1, unit: str | None = None) -> None:
        """Record a counter metric. Never gated by the level threshold."""
        self._metric("counter", key, value, unit)

    def histogram(self, key: str, value: float, unit: str | None = None) -> None:
        """Record a histogram observation. Never gated by the level threshold."""
        self._metric("histogram", key, value, unit)

    def end(self) -> None:
        """Terminate the stream once everything already emitted is read."""
        with self._lock:
            if self._ending or self._destroyed:
                return
            self._ending = True
            self._deliver(_END)
        self._notify()

    def destroy(self) -> None:
        """Tear the agent down, discarding anything not yet read."""
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True
            self._queue = None
            self._buffer.clear()
        self._notify()

    # --- Consumer API ---

    def pull(self) -> None:
        """Drain the delivery queue into the buffer until it fills up again."""
        with self._lock:
            self._pull()
        self._notify()

    async def read(self) -> Record | None:
        """Return the next record, waiting for one if necessary.

        Returns:
            The next Record, or None once the stream has ended or the agent
            has been destroyed.
        """
        while True:
            waiter = self._arm_waiter()
            item = self._take()
            if item is not _EMPTY:
                return item
            await waiter.wait()

    def __aiter__(self) -> "Agent":
        return self

    async def __anext__(self) -> Record:
        record = await self.read()
        if record is None:
            raise StopAsyncIteration
        return record

    # --- Internals ---

    def _metric(
        self, metric: str, key: str, value: float, unit: str | None
    ) -> None:
        if self.closed:
            return
        payload: dict[str, Any] = {"key": key, "value": value}
        if unit is not None:
            payload["unit"] = unit
        self._push_or_enqueue(Record(timestamp=now_ms(), level=metric, payload=payload))

    def _push_or_enqueue(self, item: Any) -> None:
        with self._lock:
            if self._ending or self._destroyed:
                return
            self._deliver(item)
        self._notify()

    def _deliver(self, item: Any) -> None:
        # @tra: Agent.Backpressure.PushOrEnqueue
        if self._can_push:
            self._can_push = self._push(item)
        else:
            assert self._queue is not None
            self._queue.enqueue(item)

    def _push(self, item: Any) -> bool:
        """Hand an item to the output channel and report its readiness."""
        self._buffer.append(item)
        return len(self._buffer) < self._high_water_mark

    def _pull(self) -> None:
        # @tra: Agent.Backpressure.Drain
        queue = self._queue
        if queue is None:
            return
        self._can_push = True
        while len(queue) > 0 and self._can_push:
            self._can_push = self._push(queue.dequeue())

    def _take(self) -> Any:
        """Pop the next readable item, pulling from the queue as needed."""
        with self._lock:
            if not self._buffer and not (self._destroyed or self._ended):
                self._pull()
            if not self._buffer:
                return None if self._destroyed or self._ended else _EMPTY
            item = self._buffer.popleft()
            if item is _END:
                self._ended = True
                return None
            if len(self._buffer) < self._high_water_mark:
                self._pull()
            return item

    def _arm_waiter(self) -> asyncio.Event:
        """Get the reader's wake-up event, cleared, bound to the running loop."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._waiter is None or self._waiter_loop is not loop:
                self._waiter = asyncio.Event()
                self._waiter_loop = loop
            self._waiter.clear()
            return self._waiter

    def _notify(self) -> None:
        """Wake a waiting reader, from any thread."""
        waiter, loop = self._waiter, self._waiter_loop
        if waiter is None or loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            waiter.set()
        else:
            loop.call_soon_threadsafe(waiter.set)


__all__ = ["Agent", "DEFAULT_HIGH_WATER_MARK", "LEVELS"]
