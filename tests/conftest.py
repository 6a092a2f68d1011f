"""Shared test fixtures for all test modules."""

import asyncio
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest

from smartlog.core.agent import Agent
from smartlog.core.errors import set_error_handler


@pytest.fixture
def agent() -> Generator[Agent]:
    """Agent emitting every severity, destroyed after the test."""
    instance = Agent(level="debug")
    yield instance
    instance.destroy()


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for rotating file sink tests."""
    directory = tmp_path / "logs"
    directory.mkdir()
    return directory


@pytest.fixture
def captured_errors() -> Generator[list[BaseException]]:
    """Collect everything routed to the error hook during the test."""
    errors: list[BaseException] = []
    previous = set_error_handler(errors.append)
    yield errors
    set_error_handler(previous)


class _Collector(asyncio.DatagramProtocol):
    """Datagram protocol storing every received payload."""

    def __init__(self) -> None:
        self.messages: asyncio.Queue[bytes] = asyncio.Queue()

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self.messages.put_nowait(data)


class UdpServer:
    """A local UDP endpoint standing in for a syslog daemon."""

    def __init__(self, transport: asyncio.DatagramTransport, collector: _Collector):
        self.transport = transport
        self.collector = collector
        self.host, self.port = transport.get_extra_info("sockname")[:2]

    async def receive(self, timeout: float = 2.0) -> bytes:
        return await asyncio.wait_for(self.collector.messages.get(), timeout)

    def pending(self) -> int:
        return self.collector.messages.qsize()


@pytest.fixture
async def udp_server() -> AsyncGenerator[UdpServer]:
    """Local UDP server bound to an ephemeral port."""
    loop = asyncio.get_running_loop()
    transport, collector = await loop.create_datagram_endpoint(
        _Collector, local_addr=("127.0.0.1", 0)
    )
    server = UdpServer(transport, collector)
    yield server
    transport.close()
