"""Process-wide logging settings and severity levels."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Any, Callable, Optional

# Time field formats that serialise timestamps as integers.
TIME_FORMAT_UNIX = ""
TIME_FORMAT_UNIX_MS = "UNIXMS"
TIME_FORMAT_UNIX_MICRO = "UNIXMICRO"
TIME_FORMAT_UNIX_NANO = "UNIXNANO"
# RFC 3339 with second precision and a "Z" suffix for UTC.
TIME_FORMAT_RFC3339 = "RFC3339"

# Frames added by the hook machinery when a caller is recorded from a context.
CONTEXT_CALLER_SKIP_FRAME_COUNT = 2


class Level(IntEnum):
    """Severity of a log event."""

    TRACE = -1
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    FATAL = 4
    PANIC = 5
    NO_LEVEL = 6
    DISABLED = 7

    def __str__(self) -> str:
        names = {
            Level.TRACE: settings.level_trace_value,
            Level.DEBUG: settings.level_debug_value,
            Level.INFO: settings.level_info_value,
            Level.WARN: settings.level_warn_value,
            Level.ERROR: settings.level_error_value,
            Level.FATAL: settings.level_fatal_value,
            Level.PANIC: settings.level_panic_value,
            Level.DISABLED: "disabled",
            Level.NO_LEVEL: "",
        }
        return names[self]

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


_HTML_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def _marshal_json(value: Any) -> str:
    text = json.dumps(
        value,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        allow_nan=False,
    )
    return text.translate(_HTML_ESCAPES)


def _level_to_string(level: Level) -> str:
    return str(level)


def _caller_to_string(pc: int, file: str, line: int) -> str:
    return f"{file}:{line}"


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class Settings:
    """Field names, formats and hooks shared by every logger."""

    timestamp_field_name: str = "time"
    level_field_name: str = "level"
    level_trace_value: str = "trace"
    level_debug_value: str = "debug"
    level_info_value: str = "info"
    level_warn_value: str = "warn"
    level_error_value: str = "error"
    level_fatal_value: str = "fatal"
    level_panic_value: str = "panic"
    level_field_marshal_func: Callable[[Level], str] = _level_to_string
    message_field_name: str = "message"
    error_field_name: str = "error"
    caller_field_name: str = "caller"
    caller_skip_frame_count: int = 2
    caller_marshal_func: Callable[[int, str, int], str] = _caller_to_string
    error_stack_field_name: str = "stack"
    error_stack_marshaler: Optional[Callable[[BaseException], Any]] = None
    # By default errors are passed through unchanged.
    error_marshal_func: Callable[[Any], Any] = lambda err: err
    interface_marshal_func: Callable[[Any], Any] = _marshal_json
    time_field_format: str = TIME_FORMAT_RFC3339
    timestamp_func: Callable[[], datetime] = _now
    duration_field_unit: timedelta = timedelta(milliseconds=1)
    duration_field_integer: bool = False
    error_handler: Optional[Callable[[BaseException], None]] = None
    default_context_logger: Any = None


settings = Settings()

_state_lock = threading.Lock()
_global_level = Level.TRACE
_sampling_disabled = False


def set_global_level(level: Level | int) -> None:
    """Set the minimum level every logger honours; DISABLED silences all."""
    global _global_level
    value = Level(level)
    with _state_lock:
        _global_level = value


def global_level() -> Level:
    """Return the current global minimum level."""
    with _state_lock:
        return _global_level


def disable_sampling(value: bool) -> None:
    """Turn sampling off in all loggers when value is true."""
    global _sampling_disabled
    with _state_lock:
        _sampling_disabled = bool(value)


def sampling_disabled() -> bool:
    """Report whether sampling is globally disabled."""
    with _state_lock:
        return _sampling_disabled