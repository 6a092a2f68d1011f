"""Core domain model for records flowing from the agent to its sinks."""

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from smartlog.core.levels import METRIC_TYPES


def now_ms() -> int:
    """Return the current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Record:
    """A structured log entry or metric sample.

    Attributes:
        timestamp: Milliseconds since the epoch.
        level: A severity name, or ``counter`` / ``histogram`` for metrics.
        payload: Log fields (``msg``, ``error`` and caller fields) or the
            metric's ``key``, ``value`` and optional ``unit``. Read-only.
    """

    timestamp: int
    level: str
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    @property
    def is_metric(self) -> bool:
        """True for counter and histogram records."""
        return self.level in METRIC_TYPES

    def to_dict(self) -> dict[str, Any]:
        """Flatten into the self-describing shape written by the sinks.

        Payload keys never override ``ts`` and ``level``.
        """
        flat: dict[str, Any] = {"ts": self.timestamp, "level": self.level}
        flat.update(
            (key, value)
            for key, value in self.payload.items()
            if key not in _RESERVED_KEYS
        )
        return flat


_RESERVED_KEYS = frozenset({"ts", "level"})
