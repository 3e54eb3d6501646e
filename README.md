# zlogpy

Structured logging that writes each event as a single line of JSON, plus
tools around it: a console renderer for those lines, a non-blocking writer
backed by a ring buffer, and a proxy that records what an HTTP response
writer sent.

## Installation

```
pip install zlogpy
```

The package has no runtime dependencies. To run the test suite:

```
pip install "zlogpy[test]"
pytest
```

## Building events

`zlogpy.event.Event` is built field by field with chained methods and sent
with `msg()`, `msgf()`, `msg_func()` or `send()`. The finished line is handed
to a writer's `write_level(level, data)`; `LevelWriterAdapter` gives any
stream that interface (text streams receive `str`, others `bytes`).

```python
import sys

from zlogpy.array import arr
from zlogpy.event import Event, LevelWriterAdapter, new_dict
from zlogpy.settings import Level

out = LevelWriterAdapter(sys.stdout)

(
    Event(out, Level.INFO)
    .str("user", "alice")
    .int("attempt", 3)
    .array("tags", arr().str("a").int(1))
    .dict("request", new_dict().str("method", "GET"))
    .msg("login")
)
```

This prints:

```
{"user":"alice","attempt":3,"tags":["a",1],"request":{"method":"GET"},"message":"login"}
```

Fields are written only as you add them; an event does not add a level
field by itself. Field methods include `str`, `strs`, `stringer`, `bytes`,
`hex`, `raw_json`, `bool`, `int`, `uint`, `float32`, `float64` (and their
list forms), `time`, `times`, `dur`, `durs`, `time_diff`, `timestamp`,
`ip_addr`, `ip_prefix`, `mac_addr`, `interface`, `object`, `embed_object`,
`fields`, `err`, `an_err`, `errs` and `caller`.

- An event at `Level.DISABLED`, or one on which `discard()` was called, is
  not written; `enabled()` reports this.
- Objects with a `marshal_zerolog_object(event)` method can be nested with
  `object()` or merged in with `embed_object()`.
- `zlogpy.array.arr()` starts an `Array`; `encode_fields()` turns a mapping
  (sorted by key) or an alternating key/value list into JSON key/value pairs.
- A write failure is passed to `settings.error_handler` if set, otherwise
  reported on standard error.

The encoders behind these methods (`encode_string`, `encode_float`,
`encode_time`, `encode_duration`, `encode_ip` and others) are in
`zlogpy.encoding`.

## Settings

`zlogpy.settings.settings` is a `Settings` instance holding the field
names, the time field format (RFC 3339 by default, or the unix formats
`TIME_FORMAT_UNIX`, `TIME_FORMAT_UNIX_MS`, `TIME_FORMAT_UNIX_MICRO`,
`TIME_FORMAT_UNIX_NANO`), the duration unit, and the marshal functions for
errors, error stacks, callers and arbitrary values. Change its attributes to
change behaviour for the whole process.

`set_global_level()` / `global_level()` and `disable_sampling()` /
`sampling_disabled()` store process-wide values in a thread-safe way.

## Human-friendly console output

`zlogpy.console.ConsoleWriter` reads one JSON log line per `write()` and
writes a readable line to `out` (standard output when unset): timestamp,
three-letter level, caller and message, then the remaining fields as
`key=value`, sorted by key, with the `error` field moved to the front. ANSI
colours are on unless `no_color` is set. Options include `time_format`
(the named layouts `KITCHEN`, `RFC3339`, `RFC822`, `STAMP`, `STAMP_MILLI`,
`STAMP_MICRO`, or a strftime pattern), `parts_order`, `parts_exclude`,
`fields_exclude`, a formatter for each part, and `format_extra`. Input that
is not a JSON object raises `ValueError`.

```python
import sys

from zlogpy.console import ConsoleWriter

w = ConsoleWriter(out=sys.stdout, no_color=True)
w.write(b'{"level": "warn", "message": "disk low", "free": 3}')
# <nil> WRN disk low free=3
```

`new_console_writer(*options)` builds a writer with the default layout and
applies each option function to it. `needs_quote()` and `colorize()` are
available on their own.

## Non-blocking writes

`zlogpy.diode.DiodeWriter` puts each write into a fixed-size ring buffer
that a background thread copies to the wrapped stream. Writers never block;
if the reader falls behind, the oldest entries are overwritten and the
alerter is called with the number dropped. Closing it drains what is queued,
stops the thread and closes the wrapped stream.

```python
from zlogpy.diode import DiodeWriter

with open("events.log", "wb") as sink, DiodeWriter(
    sink, 1000, 0, lambda missed: print(f"dropped {missed}")
) as w:
    w.write(b'{"level":"debug","message":"test"}\n')
```

A poll interval above zero (seconds or a `timedelta`) reads by polling
(`zlogpy.polling.Poller`); zero sleeps until a write arrives
(`zlogpy.polling.Waiter`). The ring buffers are `zlogpy.ring.OneToOne`, for
one writer, and `zlogpy.ring.ManyToOne`, for many.

## Response tracking

`zlogpy.writer_proxy.wrap_writer()` wraps an object offering
`write_header(code)` and `write(data)`. The returned `WriterProxy` sends a
200 status before the first write if none was sent, and records the status
(`status()`) and body size (`bytes_written()`). `tee()` copies the body to a
second stream; `flush()` and `read_from()` pass through when the wrapped
object supports them.

## What it does not do

There is no logger object: nothing holds context fields, hooks or a
per-logger level, and the event builder does not consult the global level
or sampling setting — it writes whatever is not disabled. There is no HTTP
middleware that attaches loggers or request ids to requests, and no
command-line tool.