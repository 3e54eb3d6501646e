import io
import ipaddress
import sys
from datetime import datetime, timedelta, timezone

import pytest

from zlogpy.event import Event, LevelWriterAdapter, new_dict
from zlogpy.settings import Level, settings


def make_event(level=Level.DEBUG):
    out = io.BytesIO()
    return Event(LevelWriterAdapter(out), level), out


def output(out):
    return out.getvalue().decode("utf-8").strip()


class Pair:
    def __init__(self, key, value):
        self.key = key
        self.value = value

    def marshal_zerolog_object(self, e):
        e.str(self.key, self.value)


class Prebuilt:
    def to_json(self):
        return "[1,2]"


class RecordingHook:
    def __init__(self):
        self.calls = []

    def run(self, e, level, msg):
        self.calls.append((level, msg))
        e.str("hooked", "yes")


@pytest.mark.parametrize(
    "err, want",
    [
        (None, "{}"),
        (ValueError("test"), '{"err":"test"}'),
    ],
)
def test_an_err(err, want):
    e, out = make_event()
    e.an_err("err", err)
    e.send()
    assert output(out) == want


def test_object_with_nil():
    e, out = make_event()
    e.object("obj", None)
    e.send()
    assert output(out) == '{"obj":null}'


def test_embed_object_with_nil():
    e, out = make_event()
    e.embed_object(None)
    e.send()
    assert output(out) == "{}"


def test_object_and_embed_object():
    e, out = make_event()
    e.object("obj", Pair("a", "b")).embed_object(Pair("c", "d"))
    e.send()
    assert output(out) == '{"obj":{"a":"b"},"c":"d"}'


def test_msg_adds_message_last():
    e, out = make_event()
    e.str("foo", "bar").int("n", 3).bool("ok", True).msg("hello")
    assert output(out) == '{"foo":"bar","n":3,"ok":true,"message":"hello"}'


def test_msgf_formats_message():
    e, out = make_event()
    e.msgf("%s=%d", "x", 5)
    assert output(out) == '{"message":"x=5"}'


def test_msg_func():
    e, out = make_event()
    e.msg_func(lambda: "lazy")
    assert output(out) == '{"message":"lazy"}'


def test_output_ends_with_newline():
    e, out = make_event()
    e.send()
    assert out.getvalue() == b"{}\n"


def test_discard_prevents_write():
    e, out = make_event()
    e.discard()
    assert e.enabled() is False
    e.msg("dropped")
    assert out.getvalue() == b""


def test_disabled_level_writes_nothing():
    e, out = make_event(Level.DISABLED)
    e.msg("nothing")
    assert out.getvalue() == b""


def test_func_runs_only_when_enabled():
    seen = []
    e, _ = make_event()
    e.func(lambda ev: seen.append("on"))
    e.discard().func(lambda ev: seen.append("off"))
    assert seen == ["on"]


def test_hooks_and_done():
    e, out = make_event(Level.INFO)
    hook = RecordingHook()
    done = []
    e.hooks.append(hook)
    e.done = done.append
    e.msg("hi")
    assert hook.calls == [(Level.INFO, "hi")]
    assert done == ["hi"]
    assert output(out) == '{"hooked":"yes","message":"hi"}'


def test_level_passed_to_writer():
    class Recorder:
        def __init__(self):
            self.seen = []

        def write_level(self, level, data):
            self.seen.append((level, data))

    rec = Recorder()
    Event(rec, Level.WARN).msg("w")
    assert rec.seen == [(Level.WARN, b'{"message":"w"}\n')]


def test_text_stream_adapter():
    out = io.StringIO()
    Event(LevelWriterAdapter(out), Level.DEBUG).str("a", "b").send()
    assert out.getvalue() == '{"a":"b"}\n'


def test_write_failure_goes_to_error_handler(monkeypatch):
    received = []

    class Broken:
        def write_level(self, level, data):
            received.append((level, data))
            raise OSError("disk full")

    errors = []
    monkeypatch.setattr(settings, "error_handler", errors.append)
    event = Event(Broken(), Level.INFO)
    assert event.enabled() is True
    event.msg("x")
    assert received == [(Level.INFO, b'{"message":"x"}\n')]
    assert len(errors) == 1
    assert str(errors[0]) == "disk full"


def test_fields_mapping_sorted():
    e, out = make_event()
    e.fields({"b": 2, "a": "x", "c": None})
    e.send()
    assert output(out) == '{"a":"x","b":2,"c":null}'


def test_fields_list_drops_odd_and_non_string_keys():
    e, out = make_event()
    e.fields(["a", True, 5, "skipped", "c", 1.5, "dangling"])
    e.send()
    assert output(out) == '{"a":true,"c":1.5}'


def test_fields_errors_and_lists():
    e, out = make_event()
    e.fields({"e": ValueError("bad"), "es": [ValueError("x"), ValueError("y")]})
    e.send()
    assert output(out) == '{"e":"bad","es":["x","y"]}'


def test_dict_nests_event():
    e, out = make_event()
    e.dict("d", new_dict().str("bar", "baz").int("n", 1))
    e.send()
    assert output(out) == '{"d":{"bar":"baz","n":1}}'


def test_array_uses_prebuilt_json():
    e, out = make_event()
    e.array("a", Prebuilt())
    e.send()
    assert output(out) == '{"a":[1,2]}'


def test_errs():
    e, out = make_event()
    e.errs("errs", [ValueError("a"), None, "text"])
    e.send()
    assert output(out) == '{"errs":["a",null,"text"]}'


def test_err_with_stack(monkeypatch):
    monkeypatch.setattr(settings, "error_stack_marshaler", lambda err: "trace")
    e, out = make_event()
    e.stack().err(ValueError("boom"))
    e.send()
    assert output(out) == '{"stack":"trace","error":"boom"}'


def test_err_without_stack_flag_ignores_marshaler(monkeypatch):
    monkeypatch.setattr(settings, "error_stack_marshaler", lambda err: "trace")
    e, out = make_event()
    e.err(ValueError("boom"))
    e.send()
    assert output(out) == '{"error":"boom"}'


def test_strings_and_stringers():
    e, out = make_event()
    e.strs("s", ["a", "b"]).stringer("n", None).stringer("v", 42)
    e.stringers("l", [1, None])
    e.send()
    assert output(out) == '{"s":["a","b"],"n":null,"v":"42","l":["1",null]}'


def test_bytes_hex_raw_json():
    e, out = make_event()
    e.bytes("b", b"hi").hex("h", b"\x1f").raw_json("j", b'{"some":"json"}')
    e.send()
    assert output(out) == '{"b":"hi","h":"1f","j":{"some":"json"}}'


def test_numbers():
    e, out = make_event()
    e.ints("i", [1, 2]).uint("u", 7).uints("us", [3]).float64("f", 12.987654321)
    e.bools("bs", [True, False]).floats64("fs", [1.5])
    e.send()
    assert output(out) == (
        '{"i":[1,2],"u":7,"us":[3],"f":12.987654321,'
        '"bs":[true,false],"fs":[1.5]}'
    )


def test_uint_rejects_negative():
    e, _ = make_event()
    with pytest.raises(ValueError):
        e.uint("u", -1)


def test_time_and_timestamp(monkeypatch):
    fixed = datetime(2001, 2, 3, 4, 5, 6, tzinfo=timezone.utc)
    monkeypatch.setattr(settings, "timestamp_func", lambda: fixed)
    e, out = make_event()
    e.time("t", fixed).timestamp()
    e.send()
    assert output(out) == '{"t":"2001-02-03T04:05:06Z","time":"2001-02-03T04:05:06Z"}'


def test_durations():
    e, out = make_event()
    start = datetime(2020, 1, 1, tzinfo=timezone.utc)
    later = start + timedelta(seconds=2)
    e.dur("d", timedelta(seconds=1)).time_diff("td", later, start)
    e.time_diff("neg", start, later)
    e.send()
    assert output(out) == '{"d":1000,"td":2000,"neg":0}'


def test_interface():
    e, out = make_event()
    e.interface("m", {"a": 1}).interface("o", Pair("k", "v"))
    e.send()
    assert output(out) == '{"m":{"a":1},"o":{"k":"v"}}'


def test_network_fields():
    e, out = make_event()
    e.ip_addr("ip", ipaddress.ip_address("192.168.0.10"))
    e.ip_prefix("net", ipaddress.ip_network("10.0.0.0/8"))
    e.mac_addr("mac", bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x01]))
    e.send()
    assert output(out) == (
        '{"ip":"192.168.0.10","net":"10.0.0.0/8","mac":"02:00:00:00:00:01"}'
    )


def test_caller_records_this_file():
    e, out = make_event()
    line = sys._getframe().f_lineno + 1
    e.caller()
    e.send()
    assert output(out).endswith(f'test_event.py:{line}"}}')


def test_new_dict_is_debug_without_writer():
    d = new_dict()
    assert d.level == Level.DEBUG
    assert d.writer is None
    d.str("a", "b").send()
    assert d.enabled() is True