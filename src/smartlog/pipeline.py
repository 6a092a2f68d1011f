"""Feed an agent's output into one or more sinks."""

import asyncio
from collections.abc import Awaitable

from smartlog.core.agent import Agent
from smartlog.core.errors import report_error
from smartlog.core.ports import SinkPort


async def _settle(calls: list[Awaitable[None]]) -> None:
    """Await all calls; report failures instead of raising them."""
    for result in await asyncio.gather(*calls, return_exceptions=True):
        if isinstance(result, Exception):
            report_error(result)


async def pipe(agent: Agent, *sinks: SinkPort, close_sinks: bool = True) -> int:
    """Consume ``agent`` until its stream ends, writing every record to ``sinks``.

    Each record is written to all sinks concurrently and the next record is
    read only once every sink has finished, so each sink sees records in
    emission order and the agent's delivery queue absorbs any slowness.
    A sink that raises has the exception sent to the error hook; the stream
    keeps flowing to every sink.

    Args:
        agent: The agent to consume.
        *sinks: Sinks receiving every record.
        close_sinks: Close the sinks once the stream ends (default True).

    Returns:
        Number of records read from the agent.
    """
    count = 0
    try:
        async for record in agent:
            await _settle([sink.write(record) for sink in sinks])
            count += 1
    finally:
        if close_sinks:
            await _settle([sink.close() for sink in sinks])
    return count
