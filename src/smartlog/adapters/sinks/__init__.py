"""Sink adapters implementing SinkPort."""

from smartlog.adapters.sinks.base import BaseSink, accept_all
from smartlog.adapters.sinks.console import ConsoleSink
from smartlog.adapters.sinks.rotating_file import RotatingFileSink
from smartlog.adapters.sinks.syslog import FACILITIES, SyslogSink

__all__ = [
    "BaseSink",
    "ConsoleSink",
    "FACILITIES",
    "RotatingFileSink",
    "SyslogSink",
    "accept_all",
]
