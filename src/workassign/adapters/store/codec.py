"""Tagged-value wire format for the REST fallback transport.

The wire format is a closed tagged union; every value is a single-key
object whose key is one of:

    stringValue     "text"
    integerValue    "42"          (decimal string; fractions are floored)
    booleanValue    true
    nullValue       null
    timestampValue  "2024-01-15T09:30:00Z"
    mapValue        {"fields": {name: <value>, ...}}
    arrayValue      {"values": [<value>, ...]}

Three asymmetries are part of the format and must be kept:

- numbers are floored on encode, so 2.9 comes back as 2 and -0.5 as -1;
- a map field named ``id`` is never encoded, at any depth. Document ids
  travel in the document name and are restored by ``decode_document``;
  ids of nested maps are lost;
- a calendar ``date`` has no tag of its own. It is sent as midnight UTC
  and comes back as that ``datetime``, never as a ``date``.

Unknown or missing tags decode to None.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

WireValue = dict[str, Any]

STRING = "stringValue"
INTEGER = "integerValue"
BOOLEAN = "booleanValue"
NULL = "nullValue"
TIMESTAMP = "timestampValue"
MAP = "mapValue"
ARRAY = "arrayValue"

ID_FIELD = "id"


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with a ``Z`` suffix and millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    utc = value.astimezone(UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


class ValueCodec:
    """Converts between Python values and the tagged wire format."""

    def encode(self, value: Any) -> WireValue:
        """Encode a Python value as a wire value.

        Raises:
            ValueError: For non-finite numbers, which have no integer form.
        """
        if value is None:
            return {NULL: None}
        if isinstance(value, Enum):
            return self.encode(value.value)
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return {BOOLEAN: value}
        if isinstance(value, str):
            return {STRING: value}
        if isinstance(value, int):
            return {INTEGER: str(value)}
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(f"Cannot encode non-finite number: {value}")
            return {INTEGER: str(math.floor(value))}
        if isinstance(value, datetime):
            return {TIMESTAMP: format_timestamp(value)}
        if isinstance(value, date):
            return {TIMESTAMP: format_timestamp(datetime(value.year, value.month, value.day))}
        if isinstance(value, list | tuple):
            return {ARRAY: {"values": [self.encode(v) for v in value]}}
        if isinstance(value, Mapping):
            return {MAP: {"fields": self.encode_fields(value)}}
        return {STRING: str(value)}

    def encode_fields(self, data: Mapping[str, Any]) -> dict[str, WireValue]:
        """Encode a mapping's fields, leaving out ``id``."""
        return {key: self.encode(value) for key, value in data.items() if key != ID_FIELD}

    def decode(self, wire: Any) -> Any:
        """Decode a wire value. Unknown or absent tags give None."""
        if not isinstance(wire, Mapping):
            return None
        if STRING in wire:
            return wire[STRING]
        if INTEGER in wire:
            try:
                return int(wire[INTEGER])
            except (TypeError, ValueError):
                return None
        if BOOLEAN in wire:
            return bool(wire[BOOLEAN])
        if NULL in wire:
            return None
        if TIMESTAMP in wire:
            try:
                return parse_timestamp(wire[TIMESTAMP])
            except (TypeError, ValueError):
                return None
        if ARRAY in wire:
            values = (wire[ARRAY] or {}).get("values") or []
            return [self.decode(v) for v in values]
        if MAP in wire:
            return self.decode_fields((wire[MAP] or {}).get("fields") or {})
        return None

    def decode_fields(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Decode a wire field map into a plain dict."""
        return {key: self.decode(value) for key, value in fields.items()}

    def decode_document(self, document: Mapping[str, Any]) -> dict[str, Any]:
        """Decode a stored document, deriving ``id`` from its name.

        Args:
            document: ``{"name": ".../documents/<path>/<id>", "fields": {...}}``.

        Returns:
            Plain dict with ``id`` set to the last segment of the name.
        """
        result = self.decode_fields(document.get("fields") or {})
        name = document.get("name") or ""
        result[ID_FIELD] = name.rsplit("/", 1)[-1]
        return result
