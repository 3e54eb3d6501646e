"""Log events: a JSON object built field by field and written once."""

from __future__ import annotations

import io
import ipaddress
import sys
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, List, Optional

from .encoding import (
    encode_bool,
    encode_bytes,
    encode_duration,
    encode_float,
    encode_hex,
    encode_int,
    encode_interface,
    encode_ip,
    encode_list,
    encode_mac,
    encode_prefix,
    encode_string,
    encode_time,
)
from .settings import Level, settings

_NULL = "null"

_ADDRESS_TYPES = (ipaddress.IPv4Address, ipaddress.IPv6Address)
_PREFIX_TYPES = (
    ipaddress.IPv4Network,
    ipaddress.IPv6Network,
    ipaddress.IPv4Interface,
    ipaddress.IPv6Interface,
)


def _is_object_marshaler(value: Any) -> bool:
    return callable(getattr(value, "marshal_zerolog_object", None))


def _marshal_object(obj: Any) -> str:
    """Render an object that knows how to add its fields to an event."""
    sub = new_dict()
    obj.marshal_zerolog_object(sub)
    return sub._json_object()


def _encode_error(err: Any) -> str:
    """Encode one error through the configured error marshal function."""
    marshaled = settings.error_marshal_func(err)
    if marshaled is None:
        return _NULL
    if _is_object_marshaler(marshaled):
        return _marshal_object(marshaled)
    if isinstance(marshaled, BaseException):
        return encode_string(str(marshaled))
    if isinstance(marshaled, str):
        return encode_string(marshaled)
    return encode_interface(marshaled)


def _encode_value(value: Any) -> str:
    """Encode an arbitrary field value, choosing the encoder by type."""
    if value is None:
        return _NULL
    if _is_object_marshaler(value):
        return _marshal_object(value)
    if isinstance(value, str):
        return encode_string(value)
    if isinstance(value, (bytes, bytearray)):
        return encode_bytes(value)
    if isinstance(value, BaseException):
        return _encode_error(value)
    if isinstance(value, bool):
        return encode_bool(value)
    if isinstance(value, int):
        return encode_int(value)
    if isinstance(value, float):
        return encode_float(value)
    if isinstance(value, datetime):
        return encode_time(value, settings.time_field_format)
    if isinstance(value, timedelta):
        return encode_duration(value)
    if isinstance(value, _ADDRESS_TYPES):
        return encode_ip(value)
    if isinstance(value, _PREFIX_TYPES):
        return encode_prefix(value)
    if isinstance(value, (list, tuple)):
        if value and all(isinstance(item, BaseException) for item in value):
            return encode_list(value, _encode_error)
        return encode_list(value, _encode_value)
    return encode_interface(value)


class LevelWriterAdapter:
    """Give a plain writable stream the level-aware write interface."""

    def __init__(self, out: Any) -> None:
        self.out = out

    def write_level(self, level: Level, data: bytes) -> Any:
        """Write data, decoding it first when the stream takes text."""
        if isinstance(self.out, io.TextIOBase):
            return self.out.write(data.decode("utf-8"))
        return self.out.write(data)


class Event:
    """A log event, built by chained field methods and sent by msg()."""

    def __init__(self, writer: Any, level: Level | int) -> None:
        self._parts: List[str] = []
        self.writer = writer
        self.level = Level(level)
        self.done: Optional[Callable[[str], None]] = None
        self.hooks: List[Any] = []
        self._stack = False
        self._skip_frame = 0
        self._discarded = False

    # -- internals -------------------------------------------------------

    def _append(self, key: str, fragment: str) -> Event:
        self._parts.append(encode_string(key) + ":" + fragment)
        return self

    def _json_fields(self) -> str:
        """The event's fields as a comma-separated fragment, without braces."""
        return ",".join(self._parts)

    def _json_object(self) -> str:
        """The event's fields as a JSON object."""
        return "{" + self._json_fields() + "}"

    def _write(self) -> None:
        if self.level == Level.DISABLED or self.writer is None:
            return
        data = (self._json_object() + "\n").encode("utf-8")
        self.writer.write_level(self.level, data)

    def _send(self, message: str) -> None:
        for hook in self.hooks:
            hook.run(self, self.level, message)
        if message:
            self._append(settings.message_field_name, encode_string(message))
        try:
            self._write()
        except Exception as exc:  # writers are user-supplied
            if settings.error_handler is not None:
                settings.error_handler(exc)
            else:
                print(f"zlogpy: could not write event: {exc}", file=sys.stderr)
        finally:
            if self.done is not None:
                self.done(message)

    def _caller(self, skip: int) -> Event:
        try:
            frame = sys._getframe(skip + self._skip_frame)
        except ValueError:
            return self
        location = settings.caller_marshal_func(
            0, frame.f_code.co_filename, frame.f_lineno
        )
        return self._append(settings.caller_field_name, encode_string(location))

    # -- lifecycle -------------------------------------------------------

    def enabled(self) -> bool:
        """Report whether the event will be written."""
        return not self._discarded and self.level != Level.DISABLED

    def discard(self) -> Event:
        """Disable the event so that msg() writes nothing."""
        self.level = Level.DISABLED
        self._discarded = True
        return self

    def msg(self, message: str) -> None:
        """Send the event, adding message as the message field if not empty."""
        if self._discarded:
            return
        self._send(message)

    def send(self) -> None:
        """Send the event without a message."""
        self.msg("")

    def msgf(self, fmt: str, *args: Any) -> None:
        """Send the event with a %-formatted message."""
        self.msg(fmt % args if args else fmt)

    def msg_func(self, create_msg: Callable[[], str]) -> None:
        """Send the event with the message returned by create_msg."""
        if self._discarded:
            return
        self._send(create_msg())

    # -- structured fields -----------------------------------------------

    def fields(self, fields: Any) -> Event:
        """Add fields from a mapping (sorted by key) or an alternating key/value list.

        An odd trailing element is ignored, as are pairs whose key is not a string.
        """
        if isinstance(fields, dict):
            pairs: Iterable[Any] = ((k, fields[k]) for k in sorted(fields))
        elif isinstance(fields, (list, tuple)):
            items = list(fields)
            pairs = zip(items[0::2], items[1::2])
        else:
            return self
        for key, value in pairs:
            if isinstance(key, str):
                self._append(key, _encode_value(value))
        return self

    def dict(self, key: str, d: Event) -> Event:
        """Add the fields of another event as a nested object."""
        return self._append(key, d._json_object())

    def array(self, key: str, arr: Any) -> Event:
        """Add an array built with arr() or by an array marshaler."""
        if not callable(getattr(arr, "to_json", None)):
            from .array import arr as new_array

            built = new_array()
            arr.marshal_zerolog_array(built)
            arr = built
        return self._append(key, arr.to_json())

    def object(self, key: str, obj: Any) -> Event:
        """Add an object marshaler's fields as a nested object, or null."""
        if obj is None:
            return self._append(key, _NULL)
        return self._append(key, _marshal_object(obj))

    def func(self, f: Callable[[Event], Any]) -> Event:
        """Run f on the event only if it is enabled."""
        if self.enabled():
            f(self)
        return self

    def embed_object(self, obj: Any) -> Event:
        """Add an object marshaler's fields directly to this event."""
        if obj is not None:
            obj.marshal_zerolog_object(self)
        return self

    def str(self, key: str, val: str) -> Event:
        return self._append(key, encode_string(val))

    def strs(self, key: str, vals: Iterable[str]) -> Event:
        return self._append(key, encode_list(vals, encode_string))

    def stringer(self, key: str, val: Any) -> Event:
        """Add str(val), or null when val is None."""
        return self._append(key, _NULL if val is None else encode_string(str(val)))

    def stringers(self, key: str, vals: Iterable[Any]) -> Event:
        return self._append(
            key,
            encode_list(vals, lambda v: _NULL if v is None else encode_string(str(v))),
        )

    def bytes(self, key: str, val: bytes) -> Event:
        return self._append(key, encode_bytes(val))

    def hex(self, key: str, val: bytes) -> Event:
        return self._append(key, encode_hex(val))

    def raw_json(self, key: str, b: Any) -> Event:
        """Add already encoded JSON; it is not checked."""
        if isinstance(b, (bytes, bytearray)):
            b = bytes(b).decode("utf-8")
        return self._append(key, b)

    def an_err(self, key: str, err: Any) -> Event:
        """Add err under key; nothing is added when it marshals to None."""
        marshaled = settings.error_marshal_func(err)
        if marshaled is None:
            return self
        if _is_object_marshaler(marshaled):
            return self.object(key, marshaled)
        if isinstance(marshaled, BaseException):
            return self.str(key, str(marshaled))
        if isinstance(marshaled, str):
            return self.str(key, marshaled)
        return self.interface(key, marshaled)

    def errs(self, key: str, errs: Iterable[Any]) -> Event:
        """Add an array of serialised errors."""
        items = []
        for err in errs:
            marshaled = settings.error_marshal_func(err)
            if _is_object_marshaler(marshaled):
                items.append(_marshal_object(marshaled))
            elif isinstance(marshaled, BaseException):
                items.append(_encode_error(marshaled))
            elif isinstance(marshaled, str):
                items.append(encode_string(marshaled))
            else:
                items.append(encode_interface(marshaled))
        return self._append(key, "[" + ",".join(items) + "]")

    def err(self, err: Any) -> Event:
        """Add err under the error field, and its stack if stack() was called."""
        marshaler = settings.error_stack_marshaler
        if self._stack and marshaler is not None:
            stack = marshaler(err)
            field = settings.error_stack_field_name
            if stack is None:
                pass
            elif _is_object_marshaler(stack):
                self.object(field, stack)
            elif isinstance(stack, BaseException):
                self.str(field, str(stack))
            elif isinstance(stack, str):
                self.str(field, stack)
            else:
                self.interface(field, stack)
        return self.an_err(settings.error_field_name, err)

    def stack(self) -> Event:
        """Record the error stack in err(); needs an error stack marshaler."""
        self._stack = True
        return self

    def bool(self, key: str, b: bool) -> Event:
        return self._append(key, encode_bool(b))

    def bools(self, key: str, b: Iterable[bool]) -> Event:
        return self._append(key, encode_list(b, encode_bool))

    def int(self, key: str, i: int) -> Event:
        return self._append(key, encode_int(i))

    def ints(self, key: str, i: Iterable[int]) -> Event:
        return self._append(key, encode_list(i, encode_int))

    def uint(self, key: str, i: int) -> Event:
        if i < 0:
            raise ValueError(f"unsigned value cannot be negative: {i}")
        return self._append(key, encode_int(i))

    def uints(self, key: str, i: Iterable[int]) -> Event:
        values = list(i)
        if any(v < 0 for v in values):
            raise ValueError("unsigned values cannot be negative")
        return self._append(key, encode_list(values, encode_int))

    def float32(self, key: str, f: float) -> Event:
        return self._append(key, encode_float(f, 32))

    def floats32(self, key: str, f: Iterable[float]) -> Event:
        return self._append(key, encode_list(f, lambda v: encode_float(v, 32)))

    def float64(self, key: str, f: float) -> Event:
        return self._append(key, encode_float(f, 64))

    def floats64(self, key: str, f: Iterable[float]) -> Event:
        return self._append(key, encode_list(f, lambda v: encode_float(v, 64)))

    def timestamp(self) -> Event:
        """Add the current time under the timestamp field name."""
        return self._append(
            settings.timestamp_field_name,
            encode_time(settings.timestamp_func(), settings.time_field_format),
        )

    def time(self, key: str, t: datetime) -> Event:
        return self._append(key, encode_time(t, settings.time_field_format))

    def times(self, key: str, t: Iterable[datetime]) -> Event:
        fmt = settings.time_field_format
        return self._append(key, encode_list(t, lambda v: encode_time(v, fmt)))

    def dur(self, key: str, d: timedelta) -> Event:
        """Add a duration expressed in the configured duration unit."""
        return self._append(key, encode_duration(d))

    def durs(self, key: str, d: Iterable[timedelta]) -> Event:
        return self._append(key, encode_list(d, encode_duration))

    def time_diff(self, key: str, t: datetime, start: datetime) -> Event:
        """Add t - start as a duration, or zero when t is not after start."""
        delta = t - start if t > start else timedelta(0)
        return self._append(key, encode_duration(delta))

    def interface(self, key: str, i: Any) -> Event:
        """Add any value using the configured marshal function."""
        if _is_object_marshaler(i):
            return self.object(key, i)
        return self._append(key, encode_interface(i))

    def caller_skip_frame(self, skip: int) -> Event:
        """Skip extra stack frames in later caller() calls."""
        self._skip_frame += skip
        return self

    def caller(self, *args: int) -> Event:
        """Add file:line of the calling code; an optional argument skips more frames."""
        skip = settings.caller_skip_frame_count
        if args:
            skip = args[0] + settings.caller_skip_frame_count
        return self._caller(skip)

    def ip_addr(self, key: str, ip: Any) -> Event:
        return self._append(key, encode_ip(ip))

    def ip_prefix(self, key: str, pfx: Any) -> Event:
        return self._append(key, encode_prefix(pfx))

    def mac_addr(self, key: str, ha: Any) -> Event:
        return self._append(key, encode_mac(ha))


def new_dict() -> Event:
    """Create an event to be nested into another with Event.dict()."""
    return Event(None, Level.DEBUG)