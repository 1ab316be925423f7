"""Functions that append MessagePack-encoded values to a byte buffer.

Every function takes a buffer (a bytearray, any bytes-like object, or None),
extends it and returns the resulting bytearray. A bytearray argument is
extended in place.
"""

from __future__ import annotations

import struct
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from .format import (
    COMPLEX64_EXTENSION,
    COMPLEX128_EXTENSION,
    MARRAY16,
    MARRAY32,
    MBIN8,
    MBIN16,
    MBIN32,
    MEXT8,
    MEXT16,
    MEXT32,
    MFALSE,
    MFIXARRAY,
    MFIXEXT1,
    MFIXEXT2,
    MFIXEXT4,
    MFIXEXT8,
    MFIXEXT16,
    MFIXMAP,
    MFIXSTR,
    MFLOAT32,
    MFLOAT64,
    MINT8,
    MINT16,
    MINT32,
    MINT64,
    MMAP16,
    MMAP32,
    MNIL,
    MSTR8,
    MSTR16,
    MSTR32,
    MTRUE,
    MUINT8,
    MUINT16,
    MUINT32,
    MUINT64,
    TIME_EXTENSION,
    MsgpError,
    RawExtension,
    UnsupportedTypeError,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MAX_UINT32 = 0xFFFFFFFF
_FIXEXT_PREFIXES = {1: MFIXEXT1, 2: MFIXEXT2, 4: MFIXEXT4, 8: MFIXEXT8, 16: MFIXEXT16}


def _out(b) -> bytearray:
    if b is None:
        return bytearray()
    if isinstance(b, bytearray):
        return b
    return bytearray(b)


def _check_range(value: int, low: int, high: int, name: str) -> None:
    if not low <= value <= high:
        raise OverflowError(f"{value} out of range for {name}")


def _check_length(sz: int) -> None:
    if not 0 <= sz <= _MAX_UINT32:
        raise ValueError(f"length {sz} does not fit in 32 bits")


def _header(out: bytearray, sz: int, fix: int, p16: int, p32: int) -> bytearray:
    _check_length(sz)
    if sz <= 15:
        out.append(fix | sz)
    elif sz <= 0xFFFF:
        out += struct.pack(">BH", p16, sz)
    else:
        out += struct.pack(">BI", p32, sz)
    return out


def _bin_header(out: bytearray, sz: int) -> bytearray:
    _check_length(sz)
    if sz <= 0xFF:
        out += struct.pack(">BB", MBIN8, sz)
    elif sz <= 0xFFFF:
        out += struct.pack(">BH", MBIN16, sz)
    else:
        out += struct.pack(">BI", MBIN32, sz)
    return out


def _str_header(out: bytearray, sz: int) -> bytearray:
    _check_length(sz)
    if sz <= 31:
        out.append(MFIXSTR | sz)
    elif sz <= 0xFF:
        out += struct.pack(">BB", MSTR8, sz)
    elif sz <= 0xFFFF:
        out += struct.pack(">BH", MSTR16, sz)
    else:
        out += struct.pack(">BI", MSTR32, sz)
    return out


def _nanoseconds(d) -> int:
    if isinstance(d, timedelta):
        return (d.days * 86400 + d.seconds) * 1_000_000_000 + d.microseconds * 1000
    if isinstance(d, int) and not isinstance(d, bool):
        return d
    raise TypeError(f"expected timedelta or int nanoseconds, got {type(d).__name__}")


def _unix(t: datetime) -> tuple[int, int]:
    if t.tzinfo is None:
        t = t.astimezone(timezone.utc)
    delta = t - _EPOCH
    return delta.days * 86400 + delta.seconds, delta.microseconds * 1000


def append_map_header(b, sz: int) -> bytearray:
    """Append a map header for ``sz`` key/value pairs."""
    return _header(_out(b), sz, MFIXMAP, MMAP16, MMAP32)


def append_array_header(b, sz: int) -> bytearray:
    """Append an array header for ``sz`` elements."""
    return _header(_out(b), sz, MFIXARRAY, MARRAY16, MARRAY32)


def append_nil(b) -> bytearray:
    """Append a nil."""
    out = _out(b)
    out.append(MNIL)
    return out


def append_float64(b, f: float) -> bytearray:
    """Append a 64-bit float."""
    out = _out(b)
    out += struct.pack(">Bd", MFLOAT64, f)
    return out


def append_float32(b, f: float) -> bytearray:
    """Append a 32-bit float."""
    out = _out(b)
    out += struct.pack(">Bf", MFLOAT32, f)
    return out


def append_duration(b, d) -> bytearray:
    """Append a duration (a timedelta or integer nanoseconds) as an int64."""
    return append_int64(b, _nanoseconds(d))


def append_int64(b, i: int) -> bytearray:
    """Append a signed integer using the smallest encoding."""
    _check_range(i, -(1 << 63), (1 << 63) - 1, "int64")
    out = _out(b)
    if i >= 0:
        if i <= 0x7F:
            out.append(i)
        elif i <= 0x7FFF:
            out += struct.pack(">Bh", MINT16, i)
        elif i <= 0x7FFFFFFF:
            out += struct.pack(">Bi", MINT32, i)
        else:
            out += struct.pack(">Bq", MINT64, i)
    elif i >= -32:
        out.append(i & 0xFF)
    elif i >= -0x80:
        out += struct.pack(">Bb", MINT8, i)
    elif i >= -0x8000:
        out += struct.pack(">Bh", MINT16, i)
    elif i >= -0x80000000:
        out += struct.pack(">Bi", MINT32, i)
    else:
        out += struct.pack(">Bq", MINT64, i)
    return out


def append_int(b, i: int) -> bytearray:
    """Append an int."""
    return append_int64(b, i)


def append_int8(b, i: int) -> bytearray:
    """Append an int8."""
    _check_range(i, -0x80, 0x7F, "int8")
    return append_int64(b, i)


def append_int16(b, i: int) -> bytearray:
    """Append an int16."""
    _check_range(i, -0x8000, 0x7FFF, "int16")
    return append_int64(b, i)


def append_int32(b, i: int) -> bytearray:
    """Append an int32."""
    _check_range(i, -0x80000000, 0x7FFFFFFF, "int32")
    return append_int64(b, i)


def append_uint64(b, u: int) -> bytearray:
    """Append an unsigned integer using the smallest encoding."""
    _check_range(u, 0, (1 << 64) - 1, "uint64")
    out = _out(b)
    if u <= 0x7F:
        out.append(u)
    elif u <= 0xFF:
        out += struct.pack(">BB", MUINT8, u)
    elif u <= 0xFFFF:
        out += struct.pack(">BH", MUINT16, u)
    elif u <= _MAX_UINT32:
        out += struct.pack(">BI", MUINT32, u)
    else:
        out += struct.pack(">BQ", MUINT64, u)
    return out


def append_uint(b, u: int) -> bytearray:
    """Append a uint."""
    return append_uint64(b, u)


def append_uint8(b, u: int) -> bytearray:
    """Append a uint8."""
    _check_range(u, 0, 0xFF, "uint8")
    return append_uint64(b, u)


def append_byte(b, u: int) -> bytearray:
    """Append a byte; the same as append_uint8."""
    return append_uint8(b, u)


def append_uint16(b, u: int) -> bytearray:
    """Append a uint16."""
    _check_range(u, 0, 0xFFFF, "uint16")
    return append_uint64(b, u)


def append_uint32(b, u: int) -> bytearray:
    """Append a uint32."""
    _check_range(u, 0, _MAX_UINT32, "uint32")
    return append_uint64(b, u)


def append_bytes(b, data) -> bytearray:
    """Append binary data as a 'bin' object."""
    data = bytes(data)
    out = _bin_header(_out(b), len(data))
    out += data
    return out


def append_bytes_header(b, sz: int) -> bytearray:
    """Append only the header of a 'bin' object of ``sz`` bytes."""
    return _bin_header(_out(b), sz)


def append_bool(b, t: bool) -> bytearray:
    """Append a bool."""
    out = _out(b)
    out.append(MTRUE if t else MFALSE)
    return out


def append_string(b, s: str) -> bytearray:
    """Append a str as a UTF-8 'str' object."""
    return append_string_from_bytes(b, s.encode("utf-8"))


def append_string_from_bytes(b, data) -> bytearray:
    """Append raw bytes as a 'str' object."""
    data = bytes(data)
    out = _str_header(_out(b), len(data))
    out += data
    return out


def append_complex64(b, c: complex) -> bytearray:
    """Append a complex number as a complex64 extension."""
    c = complex(c)
    out = _out(b)
    out += struct.pack(">BBff", MFIXEXT8, COMPLEX64_EXTENSION, c.real, c.imag)
    return out


def append_complex128(b, c: complex) -> bytearray:
    """Append a complex number as a complex128 extension."""
    c = complex(c)
    out = _out(b)
    out += struct.pack(">BBdd", MFIXEXT16, COMPLEX128_EXTENSION, c.real, c.imag)
    return out


def append_time(b, t: datetime) -> bytearray:
    """Append a datetime as a time extension (Unix seconds and nanoseconds).

    Time zone information is dropped; naive datetimes are taken as local time.
    """
    sec, nsec = _unix(t)
    out = _out(b)
    out += struct.pack(">BBBqi", MEXT8, 12, TIME_EXTENSION, sec, nsec)
    return out


def append_extension(b, ext) -> bytearray:
    """Append an extension object that has ``type`` and ``data`` attributes."""
    data = bytes(ext.data)
    typ = ext.type & 0xFF
    size = len(data)
    _check_length(size)
    out = _out(b)
    prefix = _FIXEXT_PREFIXES.get(size)
    if prefix is not None:
        out += bytes((prefix, typ))
    elif size <= 0xFF:
        out += struct.pack(">BBB", MEXT8, size, typ)
    elif size <= 0xFFFF:
        out += struct.pack(">BHB", MEXT16, size, typ)
    else:
        out += struct.pack(">BIB", MEXT32, size, typ)
    out += data
    return out


def append_map_str_str(b, m: Mapping[str, str]) -> bytearray:
    """Append a mapping of str to str."""
    out = append_map_header(b, len(m))
    for key, val in m.items():
        append_string(out, key)
        append_string(out, val)
    return out


def append_map_str_intf(b, m: Mapping[str, Any]) -> bytearray:
    """Append a mapping of str to any supported value."""
    out = append_map_header(b, len(m))
    for key, val in m.items():
        append_string(out, key)
        append_intf(out, val)
    return out


def append_intf(b, value: Any) -> bytearray:
    """Append any supported value.

    Supported are None, bool, int, float, complex, str, bytes-like objects,
    datetime, RawExtension, objects with a ``marshal_msg(b)`` method, and
    lists, tuples and str-keyed dicts of these.
    """
    out = _out(b)
    if value is None:
        return append_nil(out)
    marshal = getattr(value, "marshal_msg", None)
    if callable(marshal):
        return marshal(out)
    if isinstance(value, RawExtension):
        return append_extension(out, value)
    if isinstance(value, bool):
        return append_bool(out, value)
    if isinstance(value, int):
        if value >= 1 << 63:
            return append_uint64(out, value)
        return append_int64(out, value)
    if isinstance(value, float):
        return append_float64(out, value)
    if isinstance(value, complex):
        return append_complex128(out, value)
    if isinstance(value, str):
        return append_string(out, value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return append_bytes(out, value)
    if isinstance(value, datetime):
        return append_time(out, value)
    if isinstance(value, Mapping):
        if not all(isinstance(key, str) for key in value):
            raise MsgpError("msgp: map keys must be strings")
        return append_map_str_intf(out, value)
    if isinstance(value, (list, tuple)):
        append_array_header(out, len(value))
        for item in value:
            append_intf(out, item)
        return out
    raise UnsupportedTypeError(type(value))