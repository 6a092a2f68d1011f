"""Console sink writing one JSON line per record to a text stream."""

import sys
from typing import TextIO

from smartlog.adapters.sinks.base import (
    FORMAT_ERRORS,
    BaseSink,
    RecordFilter,
    encoding_error,
)
from smartlog.core.encoding.ndjson import encode_record
from smartlog.core.errors import PersistenceError, report_error
from smartlog.core.models import Record


class ConsoleSink(BaseSink):
    """Writes records to ``stream`` (standard error by default)."""

    def __init__(
        self,
        filter: RecordFilter | None = None,
        stream: TextIO | None = None,
    ) -> None:
        super().__init__(filter)
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved late so redirected stderr (e.g. pytest capture) is honoured.
        return self._stream if self._stream is not None else sys.stderr

    async def _write(self, record: Record) -> None:
        try:
            line = encode_record(record)
        except FORMAT_ERRORS as exc:
            report_error(encoding_error("console sink", record, exc))
            return
        stream = self.stream
        try:
            stream.write(line)
            stream.flush()
        except (OSError, ValueError) as exc:
            # ValueError: write to a closed stream.
            error = PersistenceError(f"console write failed: {exc}")
            error.__cause__ = exc
            report_error(error)
