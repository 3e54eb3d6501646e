"""JSON fragment encoders for log field values."""

from __future__ import annotations

import ipaddress
import json
import math
import struct
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from .settings import (
    TIME_FORMAT_RFC3339,
    TIME_FORMAT_UNIX,
    TIME_FORMAT_UNIX_MICRO,
    TIME_FORMAT_UNIX_MS,
    TIME_FORMAT_UNIX_NANO,
    settings,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def encode_string(value: str) -> str:
    """Encode a string as a JSON string literal, leaving non-ASCII text as is."""
    return json.dumps(value, ensure_ascii=False)


def encode_bytes(value: bytes) -> str:
    """Encode bytes as a JSON string; invalid UTF-8 becomes U+FFFD."""
    return encode_string(bytes(value).decode("utf-8", errors="replace"))


def encode_hex(value: bytes) -> str:
    """Encode bytes as a quoted lower-case hex string."""
    return '"' + bytes(value).hex() + '"'


def encode_bool(value: bool) -> str:
    """Encode the truth of value as a JSON boolean literal."""
    return json.dumps(bool(value))


def encode_int(value: int) -> str:
    return str(int(value))


def _to_float32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _shortest_float32(value: float) -> str:
    for precision in range(1, 10):
        text = f"{value:.{precision}g}"
        if _to_float32(float(text)) == value:
            return text
    return repr(value)


def encode_float(value: float, bits: int = 64) -> str:
    """Encode a float in positional notation with the fewest digits that round-trip.

    NaN and infinities, which JSON cannot express, become quoted strings.
    """
    value = float(value)
    if bits == 32:
        value = _to_float32(value)
    elif bits != 64:
        raise ValueError(f"unsupported float size: {bits}")
    if math.isnan(value):
        return '"NaN"'
    if math.isinf(value):
        return '"+Inf"' if value > 0 else '"-Inf"'
    text = _shortest_float32(value) if bits == 32 else repr(value)
    return format(Decimal(text).normalize(), "f")


def _unix_micros(value: datetime) -> int:
    delta = value - _EPOCH
    return (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds


def _rfc3339(value: datetime) -> str:
    base = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    offset = value.utcoffset()
    if not offset:
        return base + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    minutes = abs(minutes)
    return f"{base}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def encode_time(value: datetime, fmt: Optional[str] = None) -> str:
    """Encode a datetime using fmt (default: the configured time field format).

    Naive datetimes are taken to be UTC. The unix formats give integers,
    anything else a quoted string (a strftime pattern or RFC 3339).
    """
    if fmt is None:
        fmt = settings.time_field_format
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    if fmt == TIME_FORMAT_UNIX:
        return str(_unix_micros(value) // 1_000_000)
    if fmt == TIME_FORMAT_UNIX_MS:
        return str(_unix_micros(value) // 1_000)
    if fmt == TIME_FORMAT_UNIX_MICRO:
        return str(_unix_micros(value))
    if fmt == TIME_FORMAT_UNIX_NANO:
        return str(_unix_micros(value) * 1_000)
    if fmt == TIME_FORMAT_RFC3339:
        return encode_string(_rfc3339(value))
    return encode_string(value.strftime(fmt))


def encode_duration(
    value: timedelta,
    unit: Optional[timedelta] = None,
    use_int: Optional[bool] = None,
) -> str:
    """Encode a duration as a number of units, truncated when use_int is set."""
    if unit is None:
        unit = settings.duration_field_unit
    if use_int is None:
        use_int = settings.duration_field_integer
    amount = value // _MICROSECOND
    per_unit = unit // _MICROSECOND
    if per_unit == 0:
        raise ValueError("duration unit must be at least one microsecond")
    if use_int:
        quotient = abs(amount) // abs(per_unit)
        return str(quotient if (amount < 0) == (per_unit < 0) else -quotient)
    return encode_float(amount / per_unit)


def encode_interface(value: Any) -> str:
    """Encode any value with the configured marshal function.

    A marshalling failure is recorded as a string describing the error.
    """
    try:
        text = settings.interface_marshal_func(value)
    except Exception as exc:  # the marshal function is user-supplied
        return encode_string(f"marshaling error: {exc}")
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8", errors="replace")
    return text


_ADDRESS_TYPES = (ipaddress.IPv4Address, ipaddress.IPv6Address)
_PREFIX_TYPES = (
    ipaddress.IPv4Network,
    ipaddress.IPv6Network,
    ipaddress.IPv4Interface,
    ipaddress.IPv6Interface,
)


def encode_ip(value: Any) -> str:
    """Encode an IPv4 or IPv6 address given as an address, text or packed bytes."""
    if isinstance(value, bytearray):
        value = bytes(value)
    address = value if isinstance(value, _ADDRESS_TYPES) else ipaddress.ip_address(value)
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return encode_string(str(address))


def encode_prefix(value: Any) -> str:
    """Encode an address with its prefix length, as in 192.168.0.10/24."""
    if isinstance(value, _PREFIX_TYPES):
        return encode_string(str(value))
    return encode_string(str(ipaddress.ip_interface(value)))


def encode_mac(value: Any) -> str:
    """Encode a hardware address as colon-separated lower-case hex."""
    if isinstance(value, str):
        value = bytes.fromhex(value.replace(":", "").replace("-", ""))
    return encode_string(":".join(f"{octet:02x}" for octet in bytes(value)))


def encode_list(values: Iterable[Any], item_encoder: Callable[[Any], str]) -> str:
    """Encode values as a JSON array using item_encoder for each element."""
    return "[" + ",".join(item_encoder(item) for item in values) + "]"