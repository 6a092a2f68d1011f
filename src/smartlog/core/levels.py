"""Severity scale shared by the agent and the sinks.

The scale is the syslog one: eight named levels, most severe first. A level's
rank is its position in the scale, so a lower rank means a more severe level.
"""

from smartlog.core.errors import ConfigurationError

LEVELS: tuple[str, ...] = (
    "emergency",  # system is unusable
    "alert",  # action must be taken immediately
    "critical",  # critical conditions
    "error",  # error conditions
    "warning",  # warning conditions
    "notice",  # normal but significant condition
    "info",  # informational
    "debug",  # debug-level messages
)

METRIC_TYPES: tuple[str, ...] = ("counter", "histogram")

DEFAULT_LEVEL = "warning"

RANKS: dict[str, int] = {name: rank for rank, name in enumerate(LEVELS)}


def rank(level: str) -> int:
    """Return the zero-based rank of a severity name.

    Raises:
        ConfigurationError: If the name is not on the scale.
    """
    try:
        return RANKS[level]
    except KeyError:
        raise ConfigurationError(
            f"unknown log level {level!r}; expected one of {', '.join(LEVELS)}"
        ) from None


def is_enabled(level: str, threshold: str) -> bool:
    """Return True if ``level`` is at least as severe as ``threshold``."""
    return RANKS[level] <= RANKS[threshold]
