"""Record encoders."""

from smartlog.core.encoding.ndjson import encode_json, encode_record, encode_records

__all__ = ["encode_json", "encode_record", "encode_records"]
