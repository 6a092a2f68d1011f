"""Error taxonomy and the process-wide error hook.

Sinks never raise I/O failures back into the producer. They hand them to
``report_error`` instead, which forwards them to the installed handler. The
default handler logs through the ``smartlog`` logger.
"""

import logging
from collections.abc import Callable

logger = logging.getLogger("smartlog")

ErrorHandler = Callable[[BaseException], None]


class SmartLogError(Exception):
    """Base class for all smartlog errors."""


class ConfigurationError(SmartLogError, ValueError):
    """A component was constructed with an unusable configuration."""


class PersistenceError(SmartLogError, OSError):
    """A file sink failed to open or write one of its files."""


class TransportError(SmartLogError, OSError):
    """A network sink failed to transmit a message."""


class EncodingError(SmartLogError, ValueError):
    """A sink could not serialize a record or derive its destination."""


class AgentAlreadyInitializedError(SmartLogError, RuntimeError):
    """The default agent was initialized twice."""


def _log_error(exc: BaseException) -> None:
    logger.error("%s: %s", type(exc).__name__, exc, exc_info=exc)


_handler: ErrorHandler = _log_error


def set_error_handler(handler: ErrorHandler | None) -> ErrorHandler:
    """Install a new error handler and return the previous one.

    Args:
        handler: Callable receiving the exception. ``None`` restores the
            default handler, which logs to the ``smartlog`` logger.

    Returns:
        The handler that was installed before the call.
    """
    global _handler
    previous = _handler
    _handler = handler if handler is not None else _log_error
    return previous


def report_error(exc: BaseException | None) -> None:
    """Hand an out-of-band failure to the installed error handler.

    ``None`` is accepted and ignored so callers can forward optional errors
    unconditionally.
    """
    if exc is None:
        return
    try:
        _handler(exc)
    except Exception:
        # The hook must never raise into an I/O callback.
        logger.exception("error handler failed while reporting %r", exc)
