"""Shared behaviour for sink adapters implementing SinkPort."""

from collections.abc import Callable
from types import TracebackType

from smartlog.core.errors import EncodingError, logger
from smartlog.core.models import Record

RecordFilter = Callable[[Record], bool]

# Raised while turning a record into bytes or a destination: json.dumps on
# circular or unsupported keys, datetime.fromtimestamp on timestamps the
# platform cannot represent.
FORMAT_ERRORS: tuple[type[Exception], ...] = (
    ValueError,
    TypeError,
    OverflowError,
    OSError,
)


def encoding_error(sink: str, record: Record, cause: Exception) -> EncodingError:
    """Wrap a formatting failure for the error hook."""
    error = EncodingError(
        f"{sink} cannot format {record.level} record at ts={record.timestamp}: "
        f"{cause}"
    )
    error.__cause__ = cause
    return error


def accept_all(record: Record) -> bool:
    """Default filter: every record is written."""
    return True


class BaseSink:
    """Base class for sinks.

    Applies the configured filter once per record before delegating to
    ``_write``, and makes ``close`` idempotent. Subclasses implement
    ``_write`` and, if they hold resources, ``_close``.
    """

    def __init__(self, filter: RecordFilter | None = None) -> None:
        self._filter: RecordFilter = filter or accept_all
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def filter(self, record: Record) -> bool:
        """Return True if the record should be written."""
        return bool(self._filter(record))

    async def write(self, record: Record) -> None:
        """Write the record if it passes the filter."""
        if self._closed:
            logger.debug("%s is closed; dropping record", type(self).__name__)
            return
        if not self.filter(record):
            return
        await self._write(record)

    async def close(self) -> None:
        """Release held resources. Later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        await self._close()

    async def _write(self, record: Record) -> None:
        raise NotImplementedError

    async def _close(self) -> None:
        return None

    async def __aenter__(self) -> "BaseSink":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
