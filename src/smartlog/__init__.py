"""smartlog - an in-process log and metric agent with pluggable sinks.

Producers log through an Agent that never blocks; records are delivered to
sinks (console, rotating day files, syslog over UDP) at the pace the sinks
can absorb.
"""

from typing import Any

from smartlog.adapters.logging import AgentHandler
from smartlog.adapters.sinks import ConsoleSink, RotatingFileSink, SyslogSink
from smartlog.core.agent import Agent
from smartlog.core.errors import (
    AgentAlreadyInitializedError,
    ConfigurationError,
    EncodingError,
    PersistenceError,
    SmartLogError,
    TransportError,
    report_error,
    set_error_handler,
)
from smartlog.core.levels import LEVELS, METRIC_TYPES
from smartlog.core.models import Record
from smartlog.core.ports import SinkPort
from smartlog.default import default_agent, get_agent, init
from smartlog.pipeline import pipe

__version__ = "0.1.0"


def create_console_sink(**kwargs: Any) -> ConsoleSink:
    """Create a console sink. See ``ConsoleSink``."""
    return ConsoleSink(**kwargs)


def create_rotating_file_sink(**kwargs: Any) -> RotatingFileSink:
    """Create a rotating file sink. See ``RotatingFileSink``."""
    return RotatingFileSink(**kwargs)


def create_syslog_sink(**kwargs: Any) -> SyslogSink:
    """Create a syslog sink. See ``SyslogSink``."""
    return SyslogSink(**kwargs)


__all__ = [
    # Agent
    "Agent",
    "Record",
    "LEVELS",
    "METRIC_TYPES",
    "init",
    "get_agent",
    "default_agent",
    "pipe",
    # Sinks
    "SinkPort",
    "ConsoleSink",
    "RotatingFileSink",
    "SyslogSink",
    "create_console_sink",
    "create_rotating_file_sink",
    "create_syslog_sink",
    "AgentHandler",
    # Errors
    "SmartLogError",
    "ConfigurationError",
    "EncodingError",
    "PersistenceError",
    "TransportError",
    "AgentAlreadyInitializedError",
    "report_error",
    "set_error_handler",
]
