"""Port interface for sinks.

Any object satisfying this protocol can consume the agent's output. The core
domain depends only on this interface, not on concrete sinks.
"""

from typing import Protocol, runtime_checkable

from smartlog.core.models import Record


@runtime_checkable
class SinkPort(Protocol):
    """Port for record consumers.

    Adapters implementing this protocol receive records one at a time.
    Examples: ConsoleSink, RotatingFileSink, SyslogSink.
    """

    def filter(self, record: Record) -> bool:
        """Return True if the record should be written.

        Evaluated exactly once per record and must not mutate it.
        """
        ...

    async def write(self, record: Record) -> None:
        """Persist or forward one record.

        Returns once the underlying I/O has completed. I/O failures are
        reported through ``smartlog.core.errors.report_error`` and do not
        propagate, so a failing sink never stalls the caller.
        """
        ...

    async def close(self) -> None:
        """Release held resources. Safe to call more than once."""
        ...
