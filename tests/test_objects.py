import io
from datetime import datetime, timedelta, timezone

import pytest

from tinymsg.append import (
    append_array_header,
    append_int64,
    append_intf,
    append_map_header,
    append_string,
    append_time,
)
from tinymsg.format import (
    InvalidPrefixError,
    MsgpError,
    RawExtension,
    ShortBytesError,
    UnsupportedTypeError,
)
from tinymsg.objects import Raw, read_intf_bytes, read_map_str_intf_bytes, skip
from tinymsg.writer import Writer


def _write(fn):
    stream = io.BytesIO()
    writer = Writer(stream)
    fn(writer)
    writer.flush()
    return stream.getvalue()


@pytest.mark.parametrize(
    "value",
    [
        3.5,
        -49082,
        34908,
        "hello!",
        b"blah.",
        {"key_one": 3.5, "key_two": "hi."},
    ],
)
def test_read_intf_bytes_from_writer(value):
    data = _write(lambda w: w.write_intf(value))
    out, rest = read_intf_bytes(data)
    assert len(rest) == 0
    assert out == value
    assert type(out) is type(value)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        (True, True),
        (42, 42),
        (3.14159, 3.14159),
        ("hello", "hello"),
        (b"hello", b"hello"),
        ([], []),
        ([1, 2, 3], [1, 2, 3]),
        ({}, {}),
        ({"a": 1, "b": 2}, {"a": 1, "b": 2}),
        ({"a": 1, "b": "2"}, {"a": 1, "b": "2"}),
        ({"a": "1", "b": "2"}, {"a": "1", "b": "2"}),
        ({"a": (1, 2), "b": (3,)}, {"a": [1, 2], "b": [3]}),
        (
            {"a": {"a": 1, "b": 2}, "b": {"c": 3}},
            {"a": {"a": 1, "b": 2}, "b": {"c": 3}},
        ),
        (
            [{"a": 1, "b": "2"}, {"c": 3}],
            [{"a": 1, "b": "2"}, {"c": 3}],
        ),
        ([(1, 2), [3]], [[1, 2], [3]]),
        ([[1, 2], {"c": 3}], [[1, 2], {"c": 3}]),
        ({"a": [1, 2], "b": {"c": 3}}, {"a": [1, 2], "b": {"c": 3}}),
    ],
)
def test_encode_decode(value, expected):
    data = append_intf(None, value)
    out, rest = read_intf_bytes(data)
    assert out == expected
    assert len(rest) == 0


def test_encode_invalid_keys():
    with pytest.raises(MsgpError, match="map keys must be strings"):
        append_intf(None, {1: 2})


def test_encode_nested_invalid_keys():
    with pytest.raises(MsgpError, match="map keys must be strings"):
        append_intf(None, {"a": {1: "2"}})


def test_encode_invalid_type():
    with pytest.raises(UnsupportedTypeError, match="not supported"):
        append_intf(None, object())


def test_read_intf_extensions_and_special_types():
    when = datetime(2021, 3, 4, 5, 6, 7, 123456, tzinfo=timezone.utc)
    ext = RawExtension(55, b"raw data!!!")
    data = append_intf(None, [when, complex(12.8, 32.0), ext])
    out, rest = read_intf_bytes(data)
    assert len(rest) == 0
    assert out[0] == when
    assert out[1] == complex(12.8, 32.0)
    assert out[2] == ext


def test_read_intf_empty_and_invalid():
    with pytest.raises(ShortBytesError):
        read_intf_bytes(b"")
    with pytest.raises(InvalidPrefixError):
        read_intf_bytes(b"\xc1")


def test_read_map_str_intf_bytes_with_bin_keys():
    data = _write(
        lambda w: (
            w.write_map_header(2),
            w.write_string("one"),
            w.write_int64(1),
            w.write_bytes(b"two"),
            w.write_string("2"),
        )
    )
    out, rest = read_map_str_intf_bytes(data + b"\xc0")
    assert out == {"one": 1, "two": "2"}
    assert bytes(rest) == b"\xc0"


def test_read_map_str_intf_bytes_short():
    data = append_string(append_map_header(None, 2), "a")
    data = append_int64(data, 1)
    with pytest.raises(ShortBytesError):
        read_map_str_intf_bytes(data)


def test_skip_complex_map():
    def build(w):
        w.write_map_header(6)
        w.write_string("thing_one")
        w.write_string("value_one")
        w.write_string("thing_two")
        w.write_float64(3.14159)
        w.write_string("some_bytes")
        w.write_bytes(b"nkl4321rqw908vxzpojnlk2314rqew098-s09123rdscasd")
        w.write_string("the_time")
        w.write_time(datetime.now(timezone.utc))
        w.write_string("what?")
        w.write_bool(True)
        w.write_string("ext")
        w.write_extension(RawExtension(55, b"raw data!!!"))

    data = _write(build)
    assert len(skip(data)) == 0
    assert bytes(skip(data + b"\x01\x02")) == b"\x01\x02"


def test_skip_nested_arrays():
    data = append_array_header(None, 2)
    data = append_array_header(data, 1)
    data = append_int64(data, 100000)
    data = append_intf(data, {"k": [1, "x"]})
    data += b"\x07"
    assert bytes(skip(data)) == b"\x07"


def test_skip_errors():
    with pytest.raises(ShortBytesError):
        skip(b"")
    with pytest.raises(InvalidPrefixError):
        skip(b"\xc1")
    with pytest.raises(ShortBytesError):
        skip(b"\xa5abc")
    with pytest.raises(ShortBytesError):
        skip(b"\x92\x01")
    with pytest.raises(ShortBytesError):
        skip(b"\xdc\x00")


def test_raw_marshal_empty_is_nil():
    assert bytes(Raw().marshal_msg(None)) == b"\xc0"
    assert Raw().msgsize() == 1


def test_raw_marshal_appends():
    raw = Raw(b"\x93\x01\x02\x03")
    assert bytes(raw.marshal_msg(b"\xc3")) == b"\xc3\x93\x01\x02\x03"
    assert raw.msgsize() == 4


def test_raw_unmarshal_roundtrip():
    data = append_intf(None, {"a": [1, 2], "b": "c"})
    raw = Raw()
    rest = raw.unmarshal_msg(bytes(data) + b"\xc2")
    assert raw.data == bytes(data)
    assert bytes(rest) == b"\xc2"
    out, _ = read_intf_bytes(raw.data)
    assert out == {"a": [1, 2], "b": "c"}


def test_raw_unmarshal_nil_gives_empty():
    raw = Raw(b"\x01")
    rest = raw.unmarshal_msg(b"\xc0")
    assert raw.data == b""
    assert len(rest) == 0


def test_raw_unmarshal_error():
    raw = Raw(b"\x05")
    with pytest.raises(ShortBytesError):
        raw.unmarshal_msg(b"\x92\x01")
    assert raw.data == b"\x05"


def test_raw_encode_msg_and_intf():
    assert _write(lambda w: Raw().encode_msg(w)) == b"\xc0"
    assert _write(lambda w: Raw(b"\xa1x").encode_msg(w)) == b"\xa1x"
    assert _write(lambda w: w.write_intf([Raw(b"\x05"), Raw()])) == b"\x92\x05\xc0"
    assert bytes(append_intf(None, Raw(b"\x05"))) == b"\x05"


def test_read_intf_time_is_local_equal():
    when = datetime.now(timezone.utc).replace(microsecond=500) - timedelta(days=3)
    out, rest = read_intf_bytes(append_time(None, when))
    assert out == when
    assert len(rest) == 0