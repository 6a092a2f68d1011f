"""Python logging handler adapter for smartlog.

This adapter bridges Python's standard library logging module to an Agent,
so records from third-party libraries flow through the same sinks.
"""

import logging
from typing import Any

from smartlog.core.agent import Agent

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Extras that would collide with Agent.log parameters
_RESERVED_EXTRA_KEYS = _STANDARD_LOGRECORD_ATTRS | {"level", "error"}

# Default attributes to extract from LogRecord
_DEFAULT_INCLUDE_ATTRS = ["logger", "module", "funcName", "lineno"]


def level_for(levelno: int) -> str:
    """Map a stdlib numeric level onto the syslog severity scale."""
    if levelno >= logging.CRITICAL:
        return "critical"
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warning"
    if levelno >= logging.INFO:
        return "info"
    return "debug"


class AgentHandler(logging.Handler):
    """Logging handler that forwards log records to an Agent.

    The agent's own level threshold still applies after the handler's.

    Example:
        ```python
        from smartlog import Agent
        from smartlog.adapters.logging import AgentHandler

        agent = Agent(level="info")
        logging.getLogger().addHandler(AgentHandler(agent))
        ```
    """

    def __init__(
        self,
        agent: Agent,
        include_attrs: list[str] | None = None,
        level: int = logging.NOTSET,
    ) -> None:
        """Initialize the handler with the agent to forward to.

        Args:
            agent: Agent receiving the records.
            include_attrs: LogRecord attributes to include. Defaults to
                ["logger", "module", "funcName", "lineno"].
            level: Handler level, as for any logging.Handler.
        """
        super().__init__(level)
        self._agent = agent
        self._include_attrs = include_attrs or _DEFAULT_INCLUDE_ATTRS

    def emit(self, record: logging.LogRecord) -> None:
        """Forward a log record to the agent.

        Args:
            record: The log record to emit.
        """
        try:
            # Map of attribute names to their values from LogRecord
            attr_mapping: dict[str, Any] = {
                "logger": record.name,
                "module": record.module,
                "funcName": record.funcName or "",
                "lineno": record.lineno,
                "pathname": record.pathname,
            }
            fields: dict[str, Any] = {
                key: attr_mapping[key]
                for key in self._include_attrs
                if key in attr_mapping
            }

            # Add any extra attributes passed via logging call
            for key, value in record.__dict__.items():
                if key not in _RESERVED_EXTRA_KEYS and isinstance(
                    value, (str, int, float, bool)
                ):
                    fields[key] = value

            error = None
            if record.exc_info and record.exc_info[1] is not None:
                error = record.exc_info[1]

            fields["ts"] = int(record.created * 1000)
            self._agent.log(
                level_for(record.levelno),
                record.getMessage(),
                error=error,
                **fields,
            )
        except Exception:
            self.handleError(record)
