"""End-to-end tests: agent piped into several sinks."""

import asyncio
import io
import json
import threading
from pathlib import Path

import pytest

from smartlog import Agent, ConsoleSink, RotatingFileSink, SyslogSink, pipe
from smartlog.core.errors import EncodingError
from smartlog.core.models import Record

pytestmark = [
    pytest.mark.integration,
    pytest.mark.tier(2),
    pytest.mark.tra("Pipeline"),
]


class SlowSink:
    """Sink that yields to the loop on every write to simulate a slow consumer."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.records: list[Record] = []
        self.closed = False

    def filter(self, record: Record) -> bool:
        return True

    async def write(self, record: Record) -> None:
        await asyncio.sleep(self.delay)
        self.records.append(record)

    async def close(self) -> None:
        self.closed = True


class FailingSink(SlowSink):
    """Sink whose write raises for records carrying ``fail=True``."""

    async def write(self, record: Record) -> None:
        if record.payload.get("fail"):
            raise RuntimeError("sink bug")
        await super().write(record)


class TestPipe:
    async def test_every_sink_sees_records_in_order(self) -> None:
        agent = Agent(level="debug", high_water_mark=2)
        first, second = SlowSink(), SlowSink(0.001)
        for n in range(20):
            agent.info("event", n=n)
        agent.end()

        count = await pipe(agent, first, second)

        assert count == 20
        for sink in (first, second):
            assert [r.payload["n"] for r in sink.records] == list(range(20))
            assert sink.closed

    async def test_close_sinks_false_leaves_sinks_open(self) -> None:
        agent = Agent()
        sink = SlowSink()
        agent.end()

        await pipe(agent, sink, close_sinks=False)

        assert not sink.closed

    async def test_raising_sink_does_not_end_the_stream(
        self, captured_errors: list[BaseException]
    ) -> None:
        agent = Agent(level="info")
        failing, healthy = FailingSink(), SlowSink()
        agent.info("a")
        agent.info("b", fail=True)
        agent.info("c")
        agent.end()

        assert await pipe(agent, failing, healthy) == 3

        assert [r.payload["msg"] for r in failing.records] == ["a", "c"]
        assert [r.payload["msg"] for r in healthy.records] == ["a", "b", "c"]
        assert [str(exc) for exc in captured_errors] == ["sink bug"]
        assert failing.closed and healthy.closed

    async def test_out_of_range_timestamp_does_not_stop_file_delivery(
        self, log_dir: Path, captured_errors: list[BaseException]
    ) -> None:
        agent = Agent(level="info")
        agent.info("bad", ts=10**17)
        agent.info("good", ts=1706702400000)
        agent.end()

        await pipe(agent, RotatingFileSink(directory=log_dir, utc=True))

        day_file = log_dir / "log-20240131.log"
        lines = day_file.read_text().splitlines()
        assert [json.loads(line)["msg"] for line in lines] == ["good"]
        assert [type(exc) for exc in captured_errors] == [EncodingError]

    async def test_producers_on_other_threads_feed_the_pipe(self) -> None:
        agent = Agent(level="info", high_water_mark=4)
        sink = SlowSink(0.0005)

        def produce(worker: int) -> None:
            for n in range(50):
                agent.info("tick", worker=worker, n=n)

        consumer = asyncio.create_task(pipe(agent, sink))
        threads = [threading.Thread(target=produce, args=(w,)) for w in range(3)]
        for thread in threads:
            thread.start()
        await asyncio.to_thread(lambda: [thread.join() for thread in threads])
        agent.end()

        assert await asyncio.wait_for(consumer, timeout=5) == 150
        for worker in range(3):
            seen = [
                r.payload["n"] for r in sink.records if r.payload["worker"] == worker
            ]
            assert seen == list(range(50))

    async def test_agent_to_file_console_and_syslog(
        self, log_dir: Path, udp_server
    ) -> None:
        agent = Agent(default_fields={"app": "shop"}, level="info")
        stream = io.StringIO()
        sinks = [
            ConsoleSink(stream=stream),
            RotatingFileSink(
                directory=log_dir, utc=True, filter=lambda r: not r.is_metric
            ),
            SyslogSink(
                id="shop",
                hostname=udp_server.host,
                port=udp_server.port,
                filter=lambda r: r.level == "error",
            ),
        ]

        agent.info("started", ts=1706702400000)
        agent.debug("hidden")
        agent.error("failed", error=ValueError("bad"), ts=1706702400001)
        agent.counter("orders", 3)
        agent.end()
        await pipe(agent, *sinks)

        console = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert [line["level"] for line in console] == ["info", "error", "counter"]
        assert console[1]["error"]["type"] == "ValueError"

        day_file = log_dir / "log-20240131.log"
        written = [json.loads(line) for line in day_file.read_text().splitlines()]
        assert [line["msg"] for line in written] == ["started", "failed"]
        assert all(line["app"] == "shop" for line in written)

        datagram = (await udp_server.receive()).decode()
        assert '"msg":"failed"' in datagram
        assert udp_server.pending() == 0
