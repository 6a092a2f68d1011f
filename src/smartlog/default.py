"""Process-wide default agent with one-time initialization."""

import threading
from typing import Any

from smartlog.core.agent import Agent
from smartlog.core.errors import AgentAlreadyInitializedError


class DefaultAgentHandle:
    """Holds the well-known agent of a process.

    ``init`` may succeed only once; a second call raises. Independent
    ``Agent`` instances can still be created freely.
    """

    def __init__(self) -> None:
        self._agent: Agent | None = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._agent is not None

    def init(self, **kwargs: Any) -> Agent:
        """Create the default agent.

        Args:
            **kwargs: Passed to ``Agent``.

        Raises:
            AgentAlreadyInitializedError: If an agent already exists.
        """
        with self._lock:
            if self._agent is not None:
                raise AgentAlreadyInitializedError(
                    "log agent has already been initialized!"
                )
            self._agent = Agent(**kwargs)
            return self._agent

    def get(self) -> Agent:
        """Return the default agent.

        Raises:
            RuntimeError: If ``init`` has not been called.
        """
        agent = self._agent
        if agent is None:
            raise RuntimeError("log agent has not been initialized; call init()")
        return agent

    def reset(self) -> Agent | None:
        """Forget the default agent (for tests) and return it, destroyed."""
        with self._lock:
            agent, self._agent = self._agent, None
        if agent is not None:
            agent.destroy()
        return agent


default_agent = DefaultAgentHandle()


def init(**kwargs: Any) -> Agent:
    """Initialize the process default agent. See ``DefaultAgentHandle.init``."""
    return default_agent.init(**kwargs)


def get_agent() -> Agent:
    """Return the process default agent."""
    return default_agent.get()
