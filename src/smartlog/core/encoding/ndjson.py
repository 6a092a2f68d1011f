"""NDJSON encoder for records."""

import json
import traceback
from collections.abc import Iterable
from typing import Any

from smartlog.core.models import Record


def _encode_error(exc: BaseException) -> dict[str, str]:
    """Describe an exception as JSON-friendly fields."""
    return {
        "type": type(exc).__name__,
        "message": str(exc),
        "traceback": "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        ),
    }


def _default(obj: Any) -> Any:
    """Fallback for values the json module cannot encode natively."""
    if isinstance(obj, BaseException):
        return _encode_error(obj)
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


def encode_json(record: Record) -> str:
    """Encode a single record as a compact JSON object (no trailing newline)."""
    return json.dumps(record.to_dict(), default=_default, separators=(",", ":"))


def encode_record(record: Record) -> str:
    """Encode a single record as one newline-terminated JSON line."""
    return encode_json(record) + "\n"


def encode_records(records: Iterable[Record]) -> str:
    """Encode records to newline-delimited JSON.

    Args:
        records: An iterable of Record objects.

    Returns:
        NDJSON string with one JSON object per line.
        Empty string if no records.
    """
    return "".join(encode_record(record) for record in records)
