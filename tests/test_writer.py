import io
import struct
from datetime import datetime, timedelta, timezone

import pytest

from tinymsg.append import (
    append_bytes,
    append_duration,
    append_float32,
    append_float64,
    append_int64,
    append_intf,
    append_string,
    append_uint64,
)
from tinymsg.format import MsgpError, RawExtension, UnsupportedTypeError
from tinymsg.writer import Writer, encode, guess_size

TUINT16 = 300
TUINT32 = 0xFFFF + 100


def _written(action, size=2048):
    buf = io.BytesIO()
    wr = Writer(buf, size)
    action(wr)
    wr.flush()
    return buf.getvalue()


@pytest.mark.parametrize(
    "sz, expected",
    [
        (0, b"\x80"),
        (1, b"\x81"),
        (100, b"\xde\x00\x64"),
        (TUINT32, b"\xdf\x00\x01\x00\x63"),
    ],
)
def test_write_map_header(sz, expected):
    assert _written(lambda w: w.write_map_header(sz)) == expected


@pytest.mark.parametrize(
    "sz, expected",
    [
        (0, b"\x90"),
        (1, b"\x91"),
        (TUINT16, b"\xdc\x01\x2c"),
        (TUINT32, b"\xdd\x00\x01\x00\x63"),
    ],
)
def test_write_array_header(sz, expected):
    assert _written(lambda w: w.write_array_header(sz)) == expected


@pytest.mark.parametrize(
    "sz, expected",
    [
        (0, b"\xa0"),
        (5, b"\xa5"),
        (8, b"\xa8"),
        (19, b"\xb3"),
        (150, b"\xd9\x96"),
        (TUINT16, b"\xda\x01\x2c"),
        (TUINT32, b"\xdb\x00\x01\x00\x63"),
    ],
)
def test_write_string_header(sz, expected):
    assert _written(lambda w: w.write_string_header(sz)) == expected


@pytest.mark.parametrize(
    "sz, expected",
    [
        (0, b"\xc4\x00"),
        (5, b"\xc4\x05"),
        (150, b"\xc4\x96"),
        (TUINT16, b"\xc5\x01\x2c"),
        (TUINT32, b"\xc6\x00\x01\x00\x63"),
    ],
)
def test_write_bytes_header(sz, expected):
    assert _written(lambda w: w.write_bytes_header(sz)) == expected


def test_write_nil():
    assert _written(lambda w: w.write_nil()) == b"\xc0"


@pytest.mark.parametrize("f", [0.0, 3.14159, -1e300, 1.7e308, -2.5])
def test_write_float64(f):
    out = _written(lambda w: w.write_float64(f))
    assert out[0] == 0xCB
    assert out == bytes(append_float64(None, f))


@pytest.mark.parametrize("f", [3.1, -1000.5, 0.0])
def test_write_float32(f):
    out = _written(lambda w: w.write_float32(f))
    assert out[0] == 0xCA
    assert out == bytes(append_float32(None, f))


def test_write_duration_timedelta():
    out = _written(lambda w: w.write_duration(timedelta(seconds=1)))
    assert out == b"\xd2\x3b\x9a\xca\x00"


@pytest.mark.parametrize("d", [1 << 40, (1 << 62) + 12345, 9_000_000_000_000])
def test_write_duration_large(d):
    out = _written(lambda w: w.write_duration(d))
    assert out[0] == 0xD3
    assert out == bytes(append_duration(None, d))


@pytest.mark.parametrize(
    "i", [0, 1, -5, -50, 150, 0x7FFF + 100, 0x7FFFFFFF + 100, -(1 << 63), (1 << 63) - 1]
)
def test_write_int64(i):
    out = _written(lambda w: w.write_int64(i))
    assert len(out) <= 9
    assert out == bytes(append_int64(None, i))


@pytest.mark.parametrize("u", [0, 1, TUINT16, TUINT32, 0xFFFFFFFF + 100, (1 << 64) - 1])
def test_write_uint64(u):
    out = _written(lambda w: w.write_uint64(u))
    assert len(out) <= 9
    assert out == bytes(append_uint64(None, u))


def test_write_int_out_of_range():
    wr = Writer(io.BytesIO())
    with pytest.raises(OverflowError):
        wr.write_int64(1 << 63)


@pytest.mark.parametrize("size", [0, 1, 225, TUINT32])
def test_write_bytes(size):
    data = bytes(i % 256 for i in range(size))
    out = _written(lambda w: w.write_bytes(data))
    assert len(out) >= size
    assert out == bytes(append_bytes(None, data))


@pytest.mark.parametrize("s", ["", "hello", "x" * 40, "é" * 300])
def test_write_string(s):
    assert _written(lambda w: w.write_string(s)) == bytes(append_string(None, s))


def test_write_bool():
    assert _written(lambda w: (w.write_bool(True), w.write_bool(False))) == b"\xc3\xc2"


def test_write_complex():
    out = _written(lambda w: w.write_complex128(complex(12.8, 32.0)))
    assert out[:2] == b"\xd8\x04"
    assert struct.unpack(">dd", out[2:]) == (12.8, 32.0)
    out = _written(lambda w: w.write_complex64(complex(1.5, -2.0)))
    assert out[:2] == b"\xd7\x03"
    assert struct.unpack(">ff", out[2:]) == (1.5, -2.0)


def test_write_time():
    t = datetime(2020, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)
    out = _written(lambda w: w.write_time(t))
    assert len(out) == 15
    assert out[:3] == b"\xc7\x0c\x05"
    assert struct.unpack(">qi", out[3:]) == (1577934245, 123456000)


def test_write_extension():
    ext = RawExtension(55, b"raw data!!!")
    out = _written(lambda w: w.write_extension(ext))
    assert out == b"\xc7\x0b\x37raw data!!!"


def test_write_map_str_str():
    out = _written(lambda w: w.write_map_str_str({"a": "b"}))
    assert out == b"\x81\xa1a\xa1b"


def test_write_intf_matches_append():
    value = {"a": [1, 2.5, None, True, "x", b"yz"], "b": {"c": -3}}
    out = _written(lambda w: w.write_intf(value))
    assert out == bytes(append_intf(None, value))


def test_write_intf_map_keys_must_be_strings():
    wr = Writer(io.BytesIO())
    with pytest.raises(MsgpError, match="map keys must be strings"):
        wr.write_intf({"a": {1: "2"}})


def test_write_intf_unsupported():
    wr = Writer(io.BytesIO())
    with pytest.raises(UnsupportedTypeError):
        wr.write_intf(object())


def test_write_intf_uses_encode_msg():
    class Thing:
        def encode_msg(self, writer):
            writer.write_string("thing")

    assert _written(lambda w: w.write_intf(Thing())) == b"\xa5thing"


def test_small_buffer_flushes_in_order():
    values = list(range(-1000, 1000, 7))

    def action(w):
        for v in values:
            w.write_int64(v)

    expected = bytearray()
    for v in values:
        append_int64(expected, v)
    assert _written(action, size=1) == bytes(expected)


def test_buffered_and_flush():
    buf = io.BytesIO()
    wr = Writer(buf)
    wr.write_nil()
    wr.append(0x01, 0x02)
    assert wr.buffered() == 3
    assert buf.getvalue() == b""
    wr.flush()
    assert wr.buffered() == 0
    assert buf.getvalue() == b"\xc0\x01\x02"


def test_write_large_passes_through():
    buf = io.BytesIO()
    wr = Writer(buf, 18)
    data = b"z" * 100
    assert wr.write(data) == 100
    assert buf.getvalue() == data


def test_partial_writes_are_completed():
    class Trickle(io.RawIOBase):
        def __init__(self):
            self.data = bytearray()

        def writable(self):
            return True

        def write(self, b):
            chunk = bytes(b[:3])
            self.data += chunk
            return len(chunk)

    sink = Trickle()
    wr = Writer(sink, 20)
    wr.write_string("hello world, this is long enough")
    wr.write_int64(1 << 40)
    wr.flush()
    expected = append_string(None, "hello world, this is long enough")
    append_int64(expected, 1 << 40)
    assert bytes(sink.data) == bytes(expected)


def test_reset_discards_buffer():
    first, second = io.BytesIO(), io.BytesIO()
    wr = Writer(first)
    wr.write_nil()
    wr.reset(second)
    wr.write_bool(True)
    wr.flush()
    assert first.getvalue() == b""
    assert second.getvalue() == b"\xc3"


def test_context_manager_flushes():
    buf = io.BytesIO()
    with Writer(buf) as wr:
        wr.write_uint(200)
    assert buf.getvalue() == b"\xcc\xc8"


def test_encode():
    class Thing:
        def encode_msg(self, writer):
            writer.write_map_header(1)
            writer.write_string("k")
            writer.write_int(7)

    buf = io.BytesIO()
    encode(buf, Thing())
    assert buf.getvalue() == b"\x81\xa1k\x07"


def test_guess_size_uses_msgsize():
    class Sized:
        def msgsize(self):
            return 77

    assert guess_size(Sized()) == 77