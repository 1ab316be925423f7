"""Functions that decode MessagePack values from the front of a byte buffer.

Each reader takes a bytes-like object and returns the decoded value together
with the rest of the input as a memoryview, so calls can be chained without
copying. Functions whose names end in ``_zc`` also return the payload as a
memoryview into the input. Errors are raised as :class:`MsgpError` subclasses.
"""

from __future__ import annotations

import struct
from datetime import datetime, timedelta, timezone

from .format import (
    BYTE_SPECS,
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
    MNFIXINT,
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
    ArrayError,
    ExtensionTypeError,
    IntOverflowError,
    MsgTypeError,
    RawExtension,
    ShortBytesError,
    Type,
    UintBelowZeroError,
    UintOverflowError,
    _bad_prefix,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MAX_INT64 = (1 << 63) - 1

_INT_FORMATS = {
    MINT8: ">b",
    MINT16: ">h",
    MINT32: ">i",
    MINT64: ">q",
    MUINT8: ">B",
    MUINT16: ">H",
    MUINT32: ">I",
    MUINT64: ">Q",
}
_SIGNED_LEADS = frozenset((MINT8, MINT16, MINT32, MINT64))

_MAP_LENGTHS = {MMAP16: ">H", MMAP32: ">I"}
_ARRAY_LENGTHS = {MARRAY16: ">H", MARRAY32: ">I"}
_BIN_LENGTHS = {MBIN8: ">B", MBIN16: ">H", MBIN32: ">I"}
_STR_LENGTHS = {MSTR8: ">B", MSTR16: ">H", MSTR32: ">I"}
_EXT_LENGTHS = {MEXT8: ">B", MEXT16: ">H", MEXT32: ">I"}
_FIXEXT_SIZES = {MFIXEXT1: 1, MFIXEXT2: 2, MFIXEXT4: 4, MFIXEXT8: 8, MFIXEXT16: 16}


def _view(b) -> memoryview:
    view = memoryview(b)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


def _signed8(value: int) -> int:
    return value - 256 if value > 127 else value


def _read_length(view: memoryview, fmt: str) -> tuple[int, int]:
    """Return (length, header size) for a length field following the lead byte."""
    header = 1 + struct.calcsize(fmt)
    if len(view) < header:
        raise ShortBytesError()
    (length,) = struct.unpack_from(fmt, view, 1)
    return length, header


def _read_container_header(b, fix: int, lengths: dict, kind: Type):
    view = _view(b)
    if not view:
        raise ShortBytesError()
    lead = view[0]
    if fix <= lead <= fix + 0x0F:
        return lead & 0x0F, view[1:]
    fmt = lengths.get(lead)
    if fmt is None:
        raise _bad_prefix(kind, lead)
    length, header = _read_length(view, fmt)
    return length, view[header:]


def read_map_header_bytes(b) -> tuple[int, memoryview]:
    """Read a map header; return the number of pairs and the rest."""
    return _read_container_header(b, MFIXMAP, _MAP_LENGTHS, Type.MAP)


def read_array_header_bytes(b) -> tuple[int, memoryview]:
    """Read an array header; return the number of elements and the rest."""
    return _read_container_header(b, MFIXARRAY, _ARRAY_LENGTHS, Type.ARRAY)


def read_map_key_zc(b) -> tuple[memoryview, memoryview]:
    """Read a map key stored as 'str' or 'bin' without copying."""
    try:
        return read_string_zc(b)
    except MsgTypeError as err:
        if err.encoded is Type.BIN:
            return read_bytes_zc(b)
        raise


def read_bytes_header(b) -> tuple[int, memoryview]:
    """Read the header of a 'bin' object; return its size and the rest."""
    view = _view(b)
    if not view:
        raise ShortBytesError()
    fmt = _BIN_LENGTHS.get(view[0])
    if fmt is None:
        raise _bad_prefix(Type.BIN, view[0])
    length, header = _read_length(view, fmt)
    return length, view[header:]


def read_nil_bytes(b) -> memoryview:
    """Read a nil and return the rest."""
    view = _view(b)
    if not view:
        raise ShortBytesError()
    if view[0] != MNIL:
        raise _bad_prefix(Type.NIL, view[0])
    return view[1:]


def read_float32_bytes(b) -> tuple[float, memoryview]:
    """Read a 32-bit float."""
    view = _view(b)
    if len(view) < 5:
        raise ShortBytesError()
    if view[0] != MFLOAT32:
        raise MsgTypeError(method=Type.FLOAT32, encoded=BYTE_SPECS[view[0]].type)
    (value,) = struct.unpack_from(">f", view, 1)
    return value, view[5:]


def read_float64_bytes(b) -> tuple[float, memoryview]:
    """Read a 64-bit float; a 32-bit float is accepted and widened."""
    view = _view(b)
    if len(view) < 9:
        if len(view) >= 5 and view[0] == MFLOAT32:
            return read_float32_bytes(view)
        raise ShortBytesError()
    if view[0] != MFLOAT64:
        if view[0] == MFLOAT32:
            return read_float32_bytes(view)
        raise _bad_prefix(Type.FLOAT64, view[0])
    (value,) = struct.unpack_from(">d", view, 1)
    return value, view[9:]


def read_bool_bytes(b) -> tuple[bool, memoryview]:
    """Read a bool."""
    view = _view(b)
    if not view:
        raise ShortBytesError()
    lead = view[0]
    if lead == MTRUE:
        return True, view[1:]
    if lead == MFALSE:
        return False, view[1:]
    raise _bad_prefix(Type.BOOL, lead)


def _read_sized_int(view: memoryview, lead: int) -> tuple[int, int]:
    fmt = _INT_FORMATS[lead]
    size = 1 + struct.calcsize(fmt)
    if len(view) < size:
        raise ShortBytesError()
    (value,) = struct.unpack_from(fmt, view, 1)
    return value, size


def read_int64_bytes(b) -> tuple[int, memoryview]:
    """Read a signed integer of any encoding that fits in int64."""
    view = _view(b)
    if not view:
        raise ShortBytesError()
    lead = view[0]
    if lead <= 0x7F:
        return lead, view[1:]
    if lead >= MNFIXINT:
        return lead - 256, view[1:]
    if lead not in _INT_FORMATS:
        raise _bad_prefix(Type.INT, lead)
    value, size = _read_sized_int(view, lead)
    if lead == MUINT64 and value > _MAX_INT64:
        raise UintOverflowError(value, 64)
    return value, view[size:]


def _read_narrow_int(b, bits: int) -> tuple[int, memoryview]:
    value, rest = read_int64_bytes(b)
    limit = 1 << (bits - 1)
    if not -limit <= value < limit:
        raise IntOverflowError(value, bits)
    return value, rest


def read_int32_bytes(b) -> tuple[int, memoryview]:
    """Read an integer that must fit in int32."""
    return _read_narrow_int(b, 32)


def read_int16_bytes(b) -> tuple[int, memoryview]:
    """Read an integer that must fit in int16."""
    return _read_narrow_int(b, 16)


def read_int8_bytes(b) -> tuple[int, memoryview]:
    """Read an integer that must fit in int8."""
    return _read_narrow_int(b, 8)


def read_int_bytes(b) -> tuple[int, memoryview]:
    """Read an int (64 bits wide)."""
    return read_int64_bytes(b)


def read_duration_bytes(b) -> tuple[int, memoryview]:
    """Read a duration, returned as integer nanoseconds."""
    return read_int64_bytes(b)


def read_uint64_bytes(b) -> tuple[int, memoryview]:
    """Read a non-negative integer of any encoding that fits in uint64."""
    view = _view(b)
    if not view:
        raise ShortBytesError()
    lead = view[0]
    if lead <= 0x7F:
        return lead, view[1:]
    if lead not in _INT_FORMATS:
        if lead >= MNFIXINT:
            raise UintBelowZeroError(lead - 256)
        raise _bad_prefix(Type.UINT, lead)
    value, size = _read_sized_int(view, lead)
    if lead in _SIGNED_LEADS and value < 0:
        raise UintBelowZeroError(value)
    return value, view[size:]


def _read_narrow_uint(b, bits: int) -> tuple[int, memoryview]:
    value, rest = read_uint64_bytes(b)
    if value >= 1 << bits:
        raise UintOverflowError(value, bits)
    return value, rest


def read_uint32_bytes(b) -> tuple[int, memoryview]:
    """Read an unsigned integer that must fit in uint32."""
    return _read_narrow_uint(b, 32)


def read_uint16_bytes(b) -> tuple[int, memoryview]:
    """Read an unsigned integer that must fit in uint16."""
    return _read_narrow_uint(b, 16)


def read_uint8_bytes(b) -> tuple[int, memoryview]:
    """Read an unsigned integer that must fit in uint8."""
    return _read_narrow_uint(b, 8)


def read_uint_bytes(b) -> tuple[int, memoryview]:
    """Read a uint (64 bits wide)."""
    return read_uint64_bytes(b)


def read_byte_bytes(b) -> tuple[int, memoryview]:
    """Read a byte; the same as read_uint8_bytes."""
    return read_uint8_bytes(b)


def read_bytes_zc(b) -> tuple[memoryview, memoryview]:
    """Read a 'bin' object without copying its payload."""
    length, rest = read_bytes_header(b)
    if len(rest) < length:
        raise ShortBytesError()
    return rest[:length], rest[length:]


def read_bytes_bytes(b) -> tuple[bytes, memoryview]:
    """Read a 'bin' object; the payload is returned as a copy."""
    data, rest = read_bytes_zc(b)
    return bytes(data), rest


def read_exact_bytes(b, length: int) -> tuple[bytes, memoryview]:
    """Read a 'bin' object whose payload must be exactly ``length`` bytes."""
    size, rest = read_bytes_header(b)
    if size != length:
        raise ArrayError(wanted=length, got=size)
    if len(rest) < size:
        raise ShortBytesError()
    return bytes(rest[:size]), rest[size:]


def read_string_zc(b) -> tuple[memoryview, memoryview]:
    """Read a 'str' object without copying; the payload is raw UTF-8."""
    view = _view(b)
    if not view:
        raise ShortBytesError()
    lead = view[0]
    if MFIXSTR <= lead <= MFIXSTR + 0x1F:
        length, header = lead & 0x1F, 1
    else:
        fmt = _STR_LENGTHS.get(lead)
        if fmt is None:
            raise MsgTypeError(method=Type.STR, encoded=BYTE_SPECS[lead].type)
        length, header = _read_length(view, fmt)
    rest = view[header:]
    if len(rest) < length:
        raise ShortBytesError()
    return rest[:length], rest[length:]


def read_string_bytes(b) -> tuple[str, memoryview]:
    """Read a 'str' object as a str."""
    data, rest = read_string_zc(b)
    return bytes(data).decode("utf-8"), rest


def read_string_as_bytes(b) -> tuple[bytes, memoryview]:
    """Read a 'str' object; its raw payload is returned as a copy."""
    data, rest = read_string_zc(b)
    return bytes(data), rest


def read_complex128_bytes(b) -> tuple[complex, memoryview]:
    """Read a complex128 extension object."""
    view = _view(b)
    if len(view) < 18:
        raise ShortBytesError()
    if view[0] != MFIXEXT16:
        raise _bad_prefix(Type.COMPLEX128, view[0])
    ext_type = _signed8(view[1])
    if ext_type != COMPLEX128_EXTENSION:
        raise ExtensionTypeError(got=ext_type, want=COMPLEX128_EXTENSION)
    real, imag = struct.unpack_from(">dd", view, 2)
    return complex(real, imag), view[18:]


def read_complex64_bytes(b) -> tuple[complex, memoryview]:
    """Read a complex64 extension object."""
    view = _view(b)
    if len(view) < 10:
        raise ShortBytesError()
    if view[0] != MFIXEXT8:
        raise _bad_prefix(Type.COMPLEX64, view[0])
    ext_type = _signed8(view[1])
    if ext_type != COMPLEX64_EXTENSION:
        raise ExtensionTypeError(got=ext_type, want=COMPLEX64_EXTENSION)
    real, imag = struct.unpack_from(">ff", view, 2)
    return complex(real, imag), view[10:]


def read_time_bytes(b) -> tuple[datetime, memoryview]:
    """Read a time extension object as an aware datetime in local time.

    Nanoseconds are truncated to the microsecond precision of datetime.
    """
    view = _view(b)
    if len(view) < 15:
        raise ShortBytesError()
    if view[0] != MEXT8 or view[1] != 12:
        raise _bad_prefix(Type.TIME, view[0])
    ext_type = _signed8(view[2])
    if ext_type != TIME_EXTENSION:
        raise ExtensionTypeError(got=ext_type, want=TIME_EXTENSION)
    sec, nsec = struct.unpack_from(">qi", view, 3)
    moment = _EPOCH + timedelta(seconds=sec, microseconds=nsec // 1000)
    return moment.astimezone(), view[15:]


def read_extension_bytes(b) -> tuple[RawExtension, memoryview]:
    """Read any extension object as its type identifier and raw payload."""
    view = _view(b)
    if not view:
        raise ShortBytesError()
    lead = view[0]
    size = _FIXEXT_SIZES.get(lead)
    if size is not None:
        header = 2
        if len(view) < header:
            raise ShortBytesError()
    else:
        fmt = _EXT_LENGTHS.get(lead)
        if fmt is None:
            raise _bad_prefix(Type.EXTENSION, lead)
        size, length_end = _read_length(view, fmt)
        header = length_end + 1
        if len(view) < header:
            raise ShortBytesError()
    ext_type = _signed8(view[header - 1])
    rest = view[header:]
    if len(rest) < size:
        raise ShortBytesError()
    return RawExtension(ext_type, bytes(rest[:size])), rest[size:]