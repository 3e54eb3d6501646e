"""Human-friendly, optionally colourised rendering of JSON log lines."""

from __future__ import annotations

import io
import json
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any, Callable, List, Optional, Sequence, Union

from .settings import (
    TIME_FORMAT_RFC3339,
    TIME_FORMAT_UNIX,
    TIME_FORMAT_UNIX_MICRO,
    TIME_FORMAT_UNIX_MS,
    TIME_FORMAT_UNIX_NANO,
    settings,
)

Formatter = Callable[[Any], str]

# Named layouts understood by the timestamp formatter; anything else is a
# strftime pattern.
KITCHEN = "Kitchen"
RFC3339 = TIME_FORMAT_RFC3339
RFC822 = "RFC822"
STAMP = "Stamp"
STAMP_MILLI = "StampMilli"
STAMP_MICRO = "StampMicro"

DEFAULT_TIME_FORMAT = KITCHEN

_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_UNIX_FORMATS = (
    TIME_FORMAT_UNIX,
    TIME_FORMAT_UNIX_MS,
    TIME_FORMAT_UNIX_MICRO,
    TIME_FORMAT_UNIX_NANO,
)


class Color(IntEnum):
    """ANSI SGR codes used by the default formatters."""

    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    MAGENTA = 35
    CYAN = 36
    WHITE = 37
    BOLD = 1
    DARK_GRAY = 90


class _Number(str):
    """A JSON number kept as the literal text it was written with."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON value {name}")


def _plain(value: Any) -> Any:
    """Turn decoded numbers back into Python numbers for re-marshalling."""
    if isinstance(value, _Number):
        try:
            return int(value)
        except ValueError:
            return float(value)
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _go_str(value: Any) -> str:
    """Render a decoded value the way a plain %s verb would."""
    if value is None:
        return "%!s(<nil>)"
    if isinstance(value, bool):
        return f"%!s(bool={'true' if value else 'false'})"
    if isinstance(value, str):
        return str.__str__(value)
    return str(value)


_QUOTE_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def _quote(s: str) -> str:
    out = ['"']
    for ch in s:
        if ch in _QUOTE_ESCAPES:
            out.append(_QUOTE_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        elif ord(ch) < 0x80:
            out.append(f"\\x{ord(ch):02x}")
        elif ord(ch) < 0x10000:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(f"\\U{ord(ch):08x}")
    out.append('"')
    return "".join(out)


def needs_quote(s: str) -> bool:
    """Report whether s has to be quoted: control, non-ASCII, space, backslash or quote."""
    return any(
        b < 0x20 or b > 0x7E or b in (0x20, 0x5C, 0x22)
        for b in s.encode("utf-8", errors="surrogatepass")
    )


def colorize(s: Any, color: Union[Color, int], disabled: bool) -> str:
    """Wrap s in the ANSI code color, unless disabled."""
    if disabled:
        return _go_str(s)
    text = s if isinstance(s, str) else _go_str(s)
    return f"\x1b[{int(color)}m{text}\x1b[0m"


# ----- time handling ---------------------------------------------------------


def _rfc3339(dt: datetime) -> str:
    text = dt.replace(microsecond=0).isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def _format_time(dt: datetime, layout: str) -> str:
    month = _MONTHS[dt.month - 1]
    clock = f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
    if layout == KITCHEN:
        hour = dt.hour % 12 or 12
        return f"{hour}:{dt.minute:02d}{'AM' if dt.hour < 12 else 'PM'}"
    if layout == RFC3339:
        return _rfc3339(dt)
    if layout == RFC822:
        zone = dt.tzname() or dt.strftime("%z")
        return (
            f"{dt.day:02d} {month} {dt.year % 100:02d} "
            f"{dt.hour:02d}:{dt.minute:02d} {zone}"
        )
    if layout == STAMP:
        return f"{month} {dt.day:>2} {clock}"
    if layout == STAMP_MILLI:
        return f"{month} {dt.day:>2} {clock}.{dt.microsecond // 1000:03d}"
    if layout == STAMP_MICRO:
        return f"{month} {dt.day:>2} {clock}.{dt.microsecond:06d}"
    return dt.strftime(layout)


def _parse_time(text: str, fmt: str) -> Optional[datetime]:
    """Parse text laid out with the time field format; None when it does not fit."""
    if fmt in _UNIX_FORMATS:
        return None
    try:
        if fmt == TIME_FORMAT_RFC3339:
            if len(text) < 20 or text[10] not in "Tt":
                return None
            candidate = text[:-1] + "+00:00" if text[-1] in "Zz" else text
            parsed = datetime.fromisoformat(candidate)
            return parsed if parsed.tzinfo is not None else None
        parsed = datetime.strptime(text, fmt)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ----- default formatters ----------------------------------------------------


def _default_parts_order() -> List[str]:
    return [
        settings.timestamp_field_name,
        settings.level_field_name,
        settings.caller_field_name,
        settings.message_field_name,
    ]


def _default_format_timestamp(time_format: str, no_color: bool) -> Formatter:
    layout = time_format or DEFAULT_TIME_FORMAT

    def fmt(i: Any) -> str:
        t = "<nil>"
        if isinstance(i, _Number):
            try:
                value = int(i)
            except ValueError:
                t = str.__str__(i)
            else:
                field_format = settings.time_field_format
                if field_format == TIME_FORMAT_UNIX_MS:
                    delta = timedelta(milliseconds=value)
                elif field_format == TIME_FORMAT_UNIX_MICRO:
                    delta = timedelta(microseconds=value)
                else:
                    delta = timedelta(seconds=value)
                try:
                    t = _format_time((_EPOCH + delta).astimezone(), layout)
                except (OverflowError, ValueError, OSError):
                    t = str.__str__(i)
        elif isinstance(i, str):
            parsed = _parse_time(i, settings.time_field_format)
            t = i if parsed is None else _format_time(parsed.astimezone(), layout)
        return colorize(t, Color.DARK_GRAY, no_color)

    return fmt


def _default_format_level(no_color: bool) -> Formatter:
    def fmt(i: Any) -> str:
        if isinstance(i, str) and not isinstance(i, _Number):
            if i == settings.level_trace_value:
                return colorize("TRC", Color.MAGENTA, no_color)
            if i == settings.level_debug_value:
                return colorize("DBG", Color.YELLOW, no_color)
            if i == settings.level_info_value:
                return colorize("INF", Color.GREEN, no_color)
            if i == settings.level_warn_value:
                return colorize("WRN", Color.RED, no_color)
            if i == settings.level_error_value:
                return colorize(colorize("ERR", Color.RED, no_color), Color.BOLD, no_color)
            if i == settings.level_fatal_value:
                return colorize(colorize("FTL", Color.RED, no_color), Color.BOLD, no_color)
            if i == settings.level_panic_value:
                return colorize(colorize("PNC", Color.RED, no_color), Color.BOLD, no_color)
            return colorize("???", Color.BOLD, no_color)
        if i is None:
            return colorize("???", Color.BOLD, no_color)
        return _go_str(i).upper()[0:3]

    return fmt


def _default_format_caller(no_color: bool) -> Formatter:
    def fmt(i: Any) -> str:
        c = ""
        if isinstance(i, str) and not isinstance(i, _Number):
            c = str.__str__(i)
        if c:
            if os.path.isabs(c):
                try:
                    c = os.path.relpath(c, os.getcwd())
                except (OSError, ValueError):
                    pass
            c = colorize(c, Color.BOLD, no_color) + colorize(" >", Color.CYAN, no_color)
        return c

    return fmt


def _default_format_message(i: Any) -> str:
    if i is None:
        return ""
    return _go_str(i)


def _default_format_field_name(no_color: bool) -> Formatter:
    def fmt(i: Any) -> str:
        return colorize(f"{_go_str(i)}=", Color.CYAN, no_color)

    return fmt


def _default_format_field_value(i: Any) -> str:
    return _go_str(i)


def _default_format_err_field_name(no_color: bool) -> Formatter:
    def fmt(i: Any) -> str:
        return colorize(f"{_go_str(i)}=", Color.CYAN, no_color)

    return fmt


def _default_format_err_field_value(no_color: bool) -> Formatter:
    def fmt(i: Any) -> str:
        return colorize(_go_str(i), Color.RED, no_color)

    return fmt


# ----- the writer ------------------------------------------------------------


@dataclass
class ConsoleWriter:
    """Parse JSON log lines and write them in a readable, optionally coloured form.

    ``out`` defaults to standard output. ``time_format`` is one of the named
    layouts of this module or a strftime pattern; empty means ``Kitchen``.
    """

    out: Any = None
    no_color: bool = False
    time_format: str = ""
    parts_order: Optional[List[str]] = None
    parts_exclude: Sequence[str] = field(default_factory=list)
    fields_exclude: Sequence[str] = field(default_factory=list)
    format_timestamp: Optional[Formatter] = None
    format_level: Optional[Formatter] = None
    format_caller: Optional[Formatter] = None
    format_message: Optional[Formatter] = None
    format_field_name: Optional[Formatter] = None
    format_field_value: Optional[Formatter] = None
    format_err_field_name: Optional[Formatter] = None
    format_err_field_value: Optional[Formatter] = None
    format_extra: Optional[Callable[[dict, io.StringIO], Any]] = None

    def write(self, p: Union[bytes, bytearray, str]) -> int:
        """Render one JSON event to out and return the length of p.

        Raises ValueError when p is not a JSON object.
        """
        text = bytes(p).decode("utf-8") if isinstance(p, (bytes, bytearray)) else p
        try:
            evt = json.loads(
                text,
                parse_int=_Number,
                parse_float=_Number,
                parse_constant=_reject_constant,
            )
        except ValueError as exc:
            raise ValueError(f"cannot decode event: {exc}") from exc
        if not isinstance(evt, dict):
            raise ValueError("cannot decode event: not a JSON object")

        buf = io.StringIO()
        parts = self.parts_order if self.parts_order is not None else _default_parts_order()
        for part in parts:
            self._write_part(buf, evt, part)
        self._write_fields(evt, buf)
        if self.format_extra is not None:
            self.format_extra(evt, buf)
        buf.write("\n")

        out = self.out if self.out is not None else sys.stdout
        rendered = buf.getvalue()
        if isinstance(out, io.TextIOBase):
            out.write(rendered)
        else:
            out.write(rendered.encode("utf-8"))
        return len(p)

    def _write_fields(self, evt: dict, buf: io.StringIO) -> None:
        skipped = {
            settings.level_field_name,
            settings.timestamp_field_name,
            settings.message_field_name,
            settings.caller_field_name,
        }
        names = sorted(
            name for name in evt if name not in self.fields_exclude and name not in skipped
        )
        if buf.tell() > 0 and names:
            buf.write(" ")

        error_name = settings.error_field_name
        if error_name in names:
            names.remove(error_name)
            names.insert(0, error_name)

        rendered = []
        for name in names:
            if name == error_name:
                fn = self.format_err_field_name or _default_format_err_field_name(self.no_color)
                fv = self.format_err_field_value or _default_format_err_field_value(self.no_color)
            else:
                fn = self.format_field_name or _default_format_field_name(self.no_color)
                fv = self.format_field_value or _default_format_field_value

            piece = fn(name)
            value = evt[name]
            if isinstance(value, _Number):
                piece += fv(value)
            elif isinstance(value, str):
                piece += fv(_quote(value) if needs_quote(value) else value)
            else:
                try:
                    marshaled = settings.interface_marshal_func(_plain(value))
                except Exception as exc:  # the marshal function is user-supplied
                    piece += colorize(f"[error: {exc}]", Color.RED, self.no_color)
                else:
                    if isinstance(marshaled, (bytes, bytearray)):
                        marshaled = bytes(marshaled).decode("utf-8", errors="replace")
                    piece += fv(marshaled)
            rendered.append(piece)
        buf.write(" ".join(rendered))

    def _write_part(self, buf: io.StringIO, evt: dict, part: str) -> None:
        if part in self.parts_exclude:
            return
        if part == settings.level_field_name:
            f = self.format_level or _default_format_level(self.no_color)
        elif part == settings.timestamp_field_name:
            f = self.format_timestamp or _default_format_timestamp(
                self.time_format, self.no_color
            )
        elif part == settings.message_field_name:
            f = self.format_message or _default_format_message
        elif part == settings.caller_field_name:
            f = self.format_caller or _default_format_caller(self.no_color)
        else:
            f = self.format_field_value or _default_format_field_value

        s = f(evt.get(part))
        if s:
            if buf.tell() > 0:
                buf.write(" ")
            buf.write(s)


def new_console_writer(*args: Callable[[ConsoleWriter], Any]) -> ConsoleWriter:
    """Create a writer to standard output, then apply each option to it."""
    writer = ConsoleWriter(
        out=None,
        time_format=DEFAULT_TIME_FORMAT,
        parts_order=_default_parts_order(),
    )
    for option in args:
        option(writer)
    return writer