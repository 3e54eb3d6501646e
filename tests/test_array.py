import io
import ipaddress
import json
from datetime import datetime, timedelta, timezone

import pytest

from zlogpy.array import Array, arr, encode_fields
from zlogpy.event import Event, LevelWriterAdapter, new_dict
from zlogpy.settings import TIME_FORMAT_UNIX, Level, settings


class _User:
    def __init__(self, name):
        self.name = name

    def marshal_zerolog_object(self, e):
        e.str("name", self.name)


class _Pair:
    def marshal_zerolog_array(self, a):
        a.int(1).int(2)


def test_array_all_types():
    a = (
        arr()
        .bool(True)
        .int(1)
        .int(2)
        .int(3)
        .int(4)
        .int(5)
        .uint(6)
        .uint(7)
        .uint(8)
        .uint(9)
        .uint(10)
        .float32(11.98122)
        .float64(12.987654321)
        .str("a")
        .bytes(b"b")
        .hex(bytes([0x1F]))
        .raw_json(b'{"some":"json"}')
        .time(datetime(1, 1, 1))
        .ip_addr(bytes([192, 168, 0, 10]))
        .dur(timedelta(0))
        .dict(new_dict().str("bar", "baz").int("n", 1))
    )
    want = (
        '[true,1,2,3,4,5,6,7,8,9,10,11.98122,12.987654321,"a","b","1f",'
        '{"some":"json"},"0001-01-01T00:00:00Z","192.168.0.10",0,{"bar":"baz","n":1}]'
    )
    assert a.to_json() == want


def test_empty_array():
    assert arr().to_json() == "[]"


def test_chain_returns_same_array():
    a = arr()
    assert a.str("x") is a
    assert len(a) == 1


def test_object_and_interface_marshaler():
    a = arr().object(_User("ann")).interface(_User("bob")).object(None)
    assert a.to_json() == '[{"name":"ann"},{"name":"bob"},null]'


def test_interface_uses_json_marshal():
    a = arr().interface({"b": 1, "a": [1, 2]}).interface(None)
    assert a.to_json() == '[{"a":[1,2],"b":1},null]'


def test_err_variants():
    a = arr().err(ValueError("boom")).err(None).err("plain")
    assert a.to_json() == '["boom",null,"plain"]'


def test_uint_negative_raises():
    with pytest.raises(ValueError):
        arr().uint(-1)


def test_network_values():
    a = (
        arr()
        .ip_addr(ipaddress.ip_address("2001:db8::1"))
        .ip_prefix(ipaddress.ip_network("10.0.0.0/8"))
        .mac_addr(bytes([0x00, 0x00, 0x5E, 0x00, 0x53, 0x01]))
    )
    assert a.to_json() == '["2001:db8::1","10.0.0.0/8","00:00:5e:00:53:01"]'


def test_time_uses_configured_format(monkeypatch):
    monkeypatch.setattr(settings, "time_field_format", TIME_FORMAT_UNIX)
    a = arr().time(datetime(1970, 1, 1, 0, 0, 10, tzinfo=timezone.utc))
    assert a.to_json() == "[10]"


def test_dur_milliseconds():
    assert arr().dur(timedelta(seconds=1, milliseconds=500)).to_json() == "[1500]"


def test_marshal_array_is_noop():
    a = arr().int(1)
    a.marshal_zerolog_array(arr())
    assert a.to_json() == "[1]"


def test_array_in_event():
    buf = io.BytesIO()
    e = Event(LevelWriterAdapter(buf), Level.DEBUG)
    e.array("a", arr().str("x").int(2)).array("p", _Pair()).send()
    assert buf.getvalue() == b'{"a":["x",2],"p":[1,2]}\n'


def test_array_output_is_valid_json():
    a = arr().str('quote " and \\').float64(1.5).bool(False)
    assert json.loads(a.to_json()) == ['quote " and \\', 1.5, False]


def test_encode_fields_mapping_sorted():
    assert encode_fields({"b": 2, "a": "x"}) == '"a":"x","b":2'


def test_encode_fields_list_odd_and_bad_keys():
    assert encode_fields(["k", True, 5, "skipped", "z", None, "trail"]) == (
        '"k":true,"z":null'
    )


def test_encode_fields_errors_and_objects():
    text = encode_fields(
        {"e": ValueError("bad"), "u": _User("ann"), "es": [KeyError("k"), OSError("o")]}
    )
    assert text == '"e":"bad","es":["\'k\'","o"],"u":{"name":"ann"}'


def test_encode_fields_other_types():
    assert encode_fields("nope") == ""
    assert encode_fields({}) == ""


def test_encode_fields_durations_and_lists():
    text = encode_fields(["d", timedelta(milliseconds=3), "l", [1, 2], "f", 0.5])
    assert text == '"d":3,"l":[1,2],"f":0.5'


def test_array_type():
    assert isinstance(arr(), Array) and arr().to_json() == "[]"