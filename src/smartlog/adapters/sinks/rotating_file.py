"""Rotating file sink: one append-mode NDJSON file per day.

Records are routed by the day of their timestamp, so several day files can be
open at once (late records keep landing in yesterday's file). Handles that see
no writes for a whole idle interval are closed by a periodic sweep and
reopened in append mode on the next write.
"""

import asyncio
import contextlib
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiofiles

from smartlog.adapters.sinks.base import (
    FORMAT_ERRORS,
    BaseSink,
    RecordFilter,
    encoding_error,
)
from smartlog.core.encoding.ndjson import encode_record
from smartlog.core.errors import (
    ConfigurationError,
    PersistenceError,
    logger,
    report_error,
)
from smartlog.core.models import Record, now_ms

DEFAULT_IDLE_TIMEOUT_MS = 60000


@dataclass
class _OpenFile:
    """An entry of the file table."""

    handle: Any
    active: bool = False


def _persistence_error(message: str, cause: OSError) -> PersistenceError:
    error = PersistenceError(f"{message}: {cause}")
    error.__cause__ = cause
    return error


class RotatingFileSink(BaseSink):
    """Writes records to ``{directory}/{prefix}{YYYYMMDD}{suffix}``.

    The idle sweep runs every ``idle_timeout`` milliseconds on the event loop
    of the first write. A file survives one sweep without writes and is closed
    on the next one.

    Example:
        ```python
        sink = RotatingFileSink(directory="/var/log/myapp", prefix="app-")
        await pipe(agent, sink)
        ```
    """

    def __init__(
        self,
        filter: RecordFilter | None = None,
        directory: str | Path = "/var/log",
        prefix: str = "log-",
        suffix: str = ".log",
        idle_timeout: int = DEFAULT_IDLE_TIMEOUT_MS,
        utc: bool = False,
    ) -> None:
        """Initialize the sink.

        Args:
            filter: Predicate selecting the records to write.
            directory: Directory holding the day files. Must already exist.
            prefix: File name prefix.
            suffix: File name suffix.
            idle_timeout: Sweep interval in milliseconds.
            utc: Derive day keys from UTC instead of local time.

        Raises:
            ConfigurationError: If ``idle_timeout`` is not positive.
        """
        if idle_timeout <= 0:
            raise ConfigurationError("idle_timeout must be a positive number of ms")
        super().__init__(filter)
        self._directory = Path(directory)
        self._prefix = prefix
        self._suffix = suffix
        self._idle_timeout = idle_timeout
        self._utc = utc
        self._files: dict[str, _OpenFile] = {}
        self._lock: asyncio.Lock | None = None
        self._timer: asyncio.Task[None] | None = None

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def suffix(self) -> str:
        return self._suffix

    @property
    def idle_timeout(self) -> int:
        return self._idle_timeout

    @property
    def open_buckets(self) -> list[str]:
        """Day keys that currently have an open handle."""
        return sorted(self._files)

    def day_key(self, timestamp: int | None = None) -> str:
        """Return the ``YYYYMMDD`` bucket of a millisecond timestamp."""
        seconds = (now_ms() if timestamp is None else timestamp) / 1000
        if self._utc:
            moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
        else:
            moment = datetime.fromtimestamp(seconds)
        return moment.strftime("%Y%m%d")

    def path_for(self, key: str) -> Path:
        """Return the file path of a day bucket."""
        return (self._directory / f"{self._prefix}{key}{self._suffix}").resolve()

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the file table lock (lazy to avoid event loop issues)."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def _ensure_timer(self) -> None:
        if self._timer is None or self._timer.done():
            self._timer = asyncio.get_running_loop().create_task(
                self._reclaim_idle_files()
            )

    async def _reclaim_idle_files(self) -> None:
        interval = self._idle_timeout / 1000
        while True:
            await asyncio.sleep(interval)
            await self.sweep()

    async def _write(self, record: Record) -> None:
        self._ensure_timer()
        try:
            key = self.day_key(record.timestamp)
            line = encode_record(record)
        except FORMAT_ERRORS as exc:
            report_error(encoding_error("rotating file sink", record, exc))
            return
        async with self._get_lock():
            entry = self._files.get(key)
            if entry is None:
                entry = await self._open(key)
                if entry is None:
                    return
            entry.active = True
            try:
                await entry.handle.write(line)
                await entry.handle.flush()
            except OSError as exc:
                report_error(
                    _persistence_error(f"failed to write {self.path_for(key)}", exc)
                )

    async def _open(self, key: str) -> _OpenFile | None:
        path = self.path_for(key)
        try:
            handle = await aiofiles.open(path, mode="a", encoding="utf-8")
        except OSError as exc:
            report_error(_persistence_error(f"failed to open {path}", exc))
            return None
        entry = _OpenFile(handle=handle)
        self._files[key] = entry
        logger.debug("opened log file %s", path)
        return entry

    async def _close_file(self, key: str, entry: _OpenFile) -> None:
        try:
            await entry.handle.close()
        except OSError as exc:
            report_error(
                _persistence_error(f"failed to close {self.path_for(key)}", exc)
            )
        else:
            logger.debug("closed log file %s", self.path_for(key))

    async def sweep(self) -> list[str]:
        """Close files idle since the previous sweep; mark the rest idle.

        Returns:
            The day keys whose files were closed.
        """
        # @tra: Sink.RotatingFile.IdleReclamation
        async with self._get_lock():
            idle = [key for key, entry in self._files.items() if not entry.active]
            closing = [(key, self._files.pop(key)) for key in idle]
            for entry in self._files.values():
                entry.active = False
            await asyncio.gather(
                *(self._close_file(key, entry) for key, entry in closing)
            )
        return idle

    async def _close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer
            self._timer = None
        async with self._get_lock():
            closing = list(self._files.items())
            self._files.clear()
            await asyncio.gather(
                *(self._close_file(key, entry) for key, entry in closing)
            )
