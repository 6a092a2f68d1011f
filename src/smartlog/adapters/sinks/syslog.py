"""Syslog sink sending one UDP datagram per record.

Datagram layout::

    <PRI>2024-01-31T12:00:00.000Z host.example.com my-app:@cee:{"ts":...}

PRI is ``(facility << 3) + severity rank``. The ``@cee:`` marker announces a
JSON body to structured-syslog aware collectors.
"""

import asyncio
import socket
from datetime import datetime, timezone

from smartlog.adapters.sinks.base import (
    FORMAT_ERRORS,
    BaseSink,
    RecordFilter,
    encoding_error,
)
from smartlog.core.encoding.ndjson import encode_json
from smartlog.core.errors import (
    ConfigurationError,
    TransportError,
    logger,
    report_error,
)
from smartlog.core.levels import RANKS
from smartlog.core.models import Record

FACILITIES: dict[str, int] = {
    "kernel": 0,  # kernel messages
    "user": 1,  # user-level messages
    "mail": 2,  # mail system
    "daemon": 3,  # system daemons
    "auth": 4,  # security/authorization messages
    "syslog": 5,  # messages generated internally by syslogd
    "lpr": 6,  # line printer subsystem
    "news": 7,  # netnews subsystem
    "uucp": 8,  # uucp subsystem
    "cron": 9,  # clock daemon
    "authpriv": 10,  # private security/authorization messages
    "ftp": 11,  # ftp daemon
    "ntp": 12,  # ntp subsystem
    "audit": 13,  # audit subsystem
    "clock": 15,  # clock daemon (cron/at)
    "local0": 16,
    "local1": 17,
    "local2": 18,
    "local3": 19,
    "local4": 20,
    "local5": 21,
    "local6": 22,
    "local7": 23,
}

STRUCTURED_DATA_MARKER = "@cee:"

# Metric records carry no severity; they are sent as informational.
_METRIC_RANK = RANKS["info"]


def _transport_error(message: str, cause: BaseException) -> TransportError:
    error = TransportError(f"{message}: {cause}")
    error.__cause__ = cause
    return error


class _SyslogProtocol(asyncio.DatagramProtocol):
    """Routes asynchronous socket errors to the error hook."""

    def __init__(self, address: tuple[str, int]) -> None:
        self._address = address

    def error_received(self, exc: Exception) -> None:
        host, port = self._address
        report_error(_transport_error(f"syslog send to {host}:{port}", exc))

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is not None:
            report_error(_transport_error("syslog socket lost", exc))


class SyslogSink(BaseSink):
    """Frames records as syslog messages and sends them over UDP.

    The socket is created on the first write, on the running event loop.
    Transmission failures are reported through the error hook; the write
    still completes.

    Args:
        id: Application identifier placed in the header. Required.
        filter: Predicate selecting the records to send.
        hostname: Address of the syslog server.
        port: UDP port of the syslog server.
        facility: Facility name, see ``FACILITIES``.
        fqdn: Host name placed in the header. Defaults to this host's name.

    Raises:
        ConfigurationError: If ``id`` is missing or ``facility`` is unknown.
    """

    def __init__(
        self,
        id: str | None = None,  # noqa: A002
        filter: RecordFilter | None = None,
        hostname: str = "127.0.0.1",
        port: int = 514,
        facility: str = "user",
        fqdn: str | None = None,
    ) -> None:
        if not id:
            raise ConfigurationError('"id" is a required property')
        if facility not in FACILITIES:
            raise ConfigurationError(f"unknown syslog facility {facility!r}")
        super().__init__(filter)
        self._id = id
        self._hostname = hostname
        self._port = port
        self._facility = facility
        self._fqdn = fqdn or socket.gethostname()
        self._transport: asyncio.DatagramTransport | None = None
        self._connect_lock: asyncio.Lock | None = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def hostname(self) -> str:
        return self._hostname

    @property
    def port(self) -> int:
        return self._port

    @property
    def facility(self) -> str:
        return self._facility

    @property
    def fqdn(self) -> str:
        return self._fqdn

    def priority(self, record: Record) -> int:
        """Return the PRI value of a record."""
        severity = RANKS.get(record.level, _METRIC_RANK)
        return (FACILITIES[self._facility] << 3) + severity

    def format_message(self, record: Record) -> bytes:
        """Encode a record as a syslog datagram payload."""
        timestamp = (
            datetime.fromtimestamp(record.timestamp / 1000, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )
        header = f"<{self.priority(record)}>{timestamp} {self._fqdn} {self._id}:"
        return f"{header}{STRUCTURED_DATA_MARKER}{encode_json(record)}".encode()

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the connect lock (lazy to avoid event loop issues)."""
        if self._connect_lock is None:
            self._connect_lock = asyncio.Lock()
        return self._connect_lock

    async def _connect(self) -> asyncio.DatagramTransport | None:
        if self._transport is not None:
            return self._transport
        address = (self._hostname, self._port)
        async with self._get_lock():
            if self._transport is None and not self._closed:
                loop = asyncio.get_running_loop()
                try:
                    self._transport, _ = await loop.create_datagram_endpoint(
                        lambda: _SyslogProtocol(address), remote_addr=address
                    )
                except OSError as exc:
                    report_error(
                        _transport_error(f"cannot reach syslog at {address}", exc)
                    )
                    return None
                if self._closed:
                    # close() ran while the endpoint was being created.
                    self._transport.close()
                    self._transport = None
                    return None
                logger.debug("syslog socket open to %s:%s", *address)
        return self._transport

    async def _write(self, record: Record) -> None:
        # @tra: Sink.Syslog.Framing
        try:
            message = self.format_message(record)
        except FORMAT_ERRORS as exc:
            report_error(encoding_error("syslog sink", record, exc))
            return
        transport = await self._connect()
        if transport is None:
            return
        try:
            transport.sendto(message)
        except OSError as exc:
            report_error(_transport_error("syslog send failed", exc))

    async def _close(self) -> None:
        async with self._get_lock():
            if self._transport is not None:
                self._transport.close()
                self._transport = None
                logger.debug("syslog socket closed")
