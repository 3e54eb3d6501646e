"""Pre-built JSON arrays for log events, and field-list encoding."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Iterable, List

from .encoding import (
    encode_bool,
    encode_bytes,
    encode_duration,
    encode_float,
    encode_hex,
    encode_int,
    encode_interface,
    encode_ip,
    encode_mac,
    encode_prefix,
    encode_string,
    encode_time,
)
from .event import (
    Event,
    _encode_error,
    _encode_value,
    _is_object_marshaler,
    _marshal_object,
)
from .settings import settings

_NULL = "null"


class Array:
    """An array of values, built by chained methods and added to events."""

    def __init__(self) -> None:
        self._items: List[str] = []

    def _append(self, fragment: str) -> Array:
        self._items.append(fragment)
        return self

    def __len__(self) -> int:
        return len(self._items)

    def marshal_zerolog_array(self, a: Array) -> None:
        """Copy this array's encoded values into a; marshalling into itself changes nothing."""
        if a is not self:
            a._items.extend(self._items)

    def to_json(self) -> str:
        """The array as JSON text."""
        return "[" + ",".join(self._items) + "]"

    def object(self, obj: Any) -> Array:
        """Append an object marshaler's fields as a nested object, or null."""
        if obj is None:
            return self._append(_NULL)
        return self._append(_marshal_object(obj))

    def str(self, val: str) -> Array:
        return self._append(encode_string(val))

    def bytes(self, val: bytes) -> Array:
        return self._append(encode_bytes(val))

    def hex(self, val: bytes) -> Array:
        return self._append(encode_hex(val))

    def raw_json(self, val: Any) -> Array:
        """Append already encoded JSON; it is not checked."""
        if isinstance(val, (bytes, bytearray)):
            val = bytes(val).decode("utf-8")
        return self._append(val)

    def err(self, err: Any) -> Array:
        """Append err serialised through the configured error marshal function."""
        return self._append(_encode_error(err))

    def bool(self, b: bool) -> Array:
        return self._append(encode_bool(b))

    def int(self, i: int) -> Array:
        return self._append(encode_int(i))

    def uint(self, i: int) -> Array:
        if i < 0:
            raise ValueError(f"unsigned value cannot be negative: {i}")
        return self._append(encode_int(i))

    def float32(self, f: float) -> Array:
        return self._append(encode_float(f, 32))

    def float64(self, f: float) -> Array:
        return self._append(encode_float(f, 64))

    def time(self, t: datetime) -> Array:
        """Append t formatted with the configured time field format."""
        return self._append(encode_time(t, settings.time_field_format))

    def dur(self, d: timedelta) -> Array:
        """Append d expressed in the configured duration unit."""
        return self._append(encode_duration(d))

    def interface(self, i: Any) -> Array:
        """Append any value using the configured marshal function."""
        if _is_object_marshaler(i):
            return self.object(i)
        return self._append(encode_interface(i))

    def ip_addr(self, ip: Any) -> Array:
        return self._append(encode_ip(ip))

    def ip_prefix(self, pfx: Any) -> Array:
        return self._append(encode_prefix(pfx))

    def mac_addr(self, ha: Any) -> Array:
        return self._append(encode_mac(ha))

    def dict(self, d: Event) -> Array:
        """Append the fields of an event as a nested object."""
        return self._append(d._json_object())


def arr() -> Array:
    """Create an empty array to add to an event."""
    return Array()


def encode_fields(fields: Any) -> str:
    """Encode fields as comma-separated JSON key/value pairs, without braces.

    A mapping is encoded in sorted key order; a list or tuple must alternate
    keys and values, and an odd trailing element is ignored. Pairs whose key
    is not a string are skipped. Anything else yields an empty fragment.
    """
    if isinstance(fields, dict):
        pairs: Iterable[Any] = ((key, fields[key]) for key in sorted(fields))
    elif isinstance(fields, (list, tuple)):
        items = list(fields)
        pairs = zip(items[0::2], items[1::2])
    else:
        return ""
    return ",".join(
        encode_string(key) + ":" + _encode_value(value)
        for key, value in pairs
        if isinstance(key, str)
    )