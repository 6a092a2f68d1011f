"""BDD step definitions for agent delivery features."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from smartlog.adapters.sinks.rotating_file import RotatingFileSink
from smartlog.core.agent import Agent
from smartlog.core.models import Record
from smartlog.pipeline import pipe


@dataclass
class DeliveryScenarioContext:
    """Shared state between steps in a delivery scenario."""

    agent: Agent | None = None
    sink: RotatingFileSink | None = None
    directory: Path | None = None
    emitted: list[str] = field(default_factory=list)


@pytest.fixture
def ctx() -> DeliveryScenarioContext:
    """Fresh scenario context for each test."""
    return DeliveryScenarioContext()


def run_async(coro: Any) -> Any:
    """Run a coroutine synchronously."""
    return asyncio.run(coro)


def read_all(agent: Agent) -> list[Record]:
    """End the agent and collect everything left in its stream."""

    async def drain() -> list[Record]:
        agent.end()
        return [record async for record in agent]

    return run_async(drain())


def _agent(ctx: DeliveryScenarioContext) -> Agent:
    assert ctx.agent is not None, "no agent configured"
    return ctx.agent


# === Given ===
@given(parsers.parse('an agent with level "{level}" and high water mark {hwm:d}'))
def step_agent(ctx: DeliveryScenarioContext, level: str, hwm: int) -> None:
    ctx.agent = Agent(level=level, high_water_mark=hwm)


@given(parsers.parse('the agent level is changed to "{level}"'))
def step_change_level(ctx: DeliveryScenarioContext, level: str) -> None:
    _agent(ctx).set_level(level)


@given("a rotating file sink writing to a temporary directory")
def step_file_sink(ctx: DeliveryScenarioContext, tmp_path: Path) -> None:
    ctx.directory = tmp_path
    ctx.sink = RotatingFileSink(directory=tmp_path, prefix="bdd-")


# === When ===
@when(parsers.parse('the agent logs "{level}" message "{message}"'))
def step_log_message(ctx: DeliveryScenarioContext, level: str, message: str) -> None:
    _agent(ctx).log(level, message)
    ctx.emitted.append(message)


@when(parsers.parse('the agent logs {n:d} "{level}" messages'))
def step_log_many(ctx: DeliveryScenarioContext, n: int, level: str) -> None:
    for index in range(n):
        _agent(ctx).log(level, f"message {index}", index=index)


@when(parsers.parse('the agent counts "{key}" by {value:d}'))
def step_count(ctx: DeliveryScenarioContext, key: str, value: int) -> None:
    _agent(ctx).counter(key, value)


@when("the agent is ended")
def step_end(ctx: DeliveryScenarioContext) -> None:
    _agent(ctx).end()


@when("the agent is piped into the sink")
def step_pipe(ctx: DeliveryScenarioContext) -> None:
    assert ctx.sink is not None
    agent = _agent(ctx)
    agent.end()
    run_async(pipe(agent, ctx.sink))


# === Then ===
@then(parsers.parse('reading the stream yields messages "{messages}"'))
def step_yields_messages(ctx: DeliveryScenarioContext, messages: str) -> None:
    expected = [message.strip() for message in messages.split(",")]
    assert [r.payload["msg"] for r in read_all(_agent(ctx))] == expected


@then(parsers.parse("the delivery queue holds {n:d} records"))
def step_queue_length(ctx: DeliveryScenarioContext, n: int) -> None:
    assert _agent(ctx).length == n


@then(parsers.parse("reading the stream yields {n:d} records in emission order"))
def step_yields_in_order(ctx: DeliveryScenarioContext, n: int) -> None:
    records = read_all(_agent(ctx))
    assert [r.payload["index"] for r in records] == list(range(n))


@then(
    parsers.parse(
        'reading the stream yields 1 counter record for "{key}" with value {value:d}'
    )
)
def step_yields_counter(ctx: DeliveryScenarioContext, key: str, value: int) -> None:
    (record,) = read_all(_agent(ctx))
    assert record.level == "counter"
    assert record.payload == {"key": key, "value": value}


@then(parsers.parse("the day file contains {n:d} lines"))
def step_day_file(ctx: DeliveryScenarioContext, n: int) -> None:
    assert ctx.directory is not None
    (day_file,) = ctx.directory.glob("bdd-*.log")
    assert len(day_file.read_text().splitlines()) == n


@then("the sink is closed")
def step_sink_closed(ctx: DeliveryScenarioContext) -> None:
    assert ctx.sink is not None
    assert ctx.sink.closed
