"""MessagePack wire-format constants, type classification and errors."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import NamedTuple

# Worst-case encoded sizes. For variable-length objects (bytes, str,
# extensions) the total size is the prefix size plus the payload length.
INT64_SIZE = 9
INT_SIZE = INT64_SIZE
UINT_SIZE = INT64_SIZE
INT8_SIZE = 2
INT16_SIZE = 3
INT32_SIZE = 5
UINT8_SIZE = 2
BYTE_SIZE = UINT8_SIZE
UINT16_SIZE = 3
UINT32_SIZE = 5
UINT64_SIZE = INT64_SIZE
FLOAT64_SIZE = 9
FLOAT32_SIZE = 5
COMPLEX64_SIZE = 10
COMPLEX128_SIZE = 18
DURATION_SIZE = INT64_SIZE
TIME_SIZE = 15
BOOL_SIZE = 1
NIL_SIZE = 1
MAP_HEADER_SIZE = 5
ARRAY_HEADER_SIZE = 5
BYTES_PREFIX_SIZE = 5
STRING_PREFIX_SIZE = 5
EXTENSION_PREFIX_SIZE = 6

# Leading bytes.
MFIXMAP = 0x80
MFIXARRAY = 0x90
MFIXSTR = 0xA0
MNFIXINT = 0xE0
MNIL = 0xC0
MFALSE = 0xC2
MTRUE = 0xC3
MBIN8 = 0xC4
MBIN16 = 0xC5
MBIN32 = 0xC6
MEXT8 = 0xC7
MEXT16 = 0xC8
MEXT32 = 0xC9
MFLOAT32 = 0xCA
MFLOAT64 = 0xCB
MUINT8 = 0xCC
MUINT16 = 0xCD
MUINT32 = 0xCE
MUINT64 = 0xCF
MINT8 = 0xD0
MINT16 = 0xD1
MINT32 = 0xD2
MINT64 = 0xD3
MFIXEXT1 = 0xD4
MFIXEXT2 = 0xD5
MFIXEXT4 = 0xD6
MFIXEXT8 = 0xD7
MFIXEXT16 = 0xD8
MSTR8 = 0xD9
MSTR16 = 0xDA
MSTR32 = 0xDB
MARRAY16 = 0xDC
MARRAY32 = 0xDD
MMAP16 = 0xDE
MMAP32 = 0xDF

# Built-in extension type identifiers.
COMPLEX64_EXTENSION = 3
COMPLEX128_EXTENSION = 4
TIME_EXTENSION = 5

# How the length of an object is found from its header.
# Non-negative values are a count of child objects that follow a fixed header.
CONSTSIZE = 0
EXTRA8 = -1
EXTRA16 = -2
EXTRA32 = -3
MAP16V = -4
MAP32V = -5
ARRAY16V = -6
ARRAY32V = -7


class Type(enum.Enum):
    """Kind of a MessagePack object."""

    INVALID = "<invalid>"
    STR = "str"
    BIN = "bin"
    MAP = "map"
    ARRAY = "array"
    FLOAT64 = "float64"
    FLOAT32 = "float32"
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    NIL = "nil"
    DURATION = "duration"
    EXTENSION = "extension"
    COMPLEX64 = "complex64"
    COMPLEX128 = "complex128"
    TIME = "time"
    NUMBER = "number"

    def __str__(self) -> str:
        return self.value


class _ByteSpec(NamedTuple):
    size: int
    extra: int
    type: Type


_FIXED_SPECS = {
    MNIL: _ByteSpec(1, CONSTSIZE, Type.NIL),
    MFALSE: _ByteSpec(1, CONSTSIZE, Type.BOOL),
    MTRUE: _ByteSpec(1, CONSTSIZE, Type.BOOL),
    MBIN8: _ByteSpec(2, EXTRA8, Type.BIN),
    MBIN16: _ByteSpec(3, EXTRA16, Type.BIN),
    MBIN32: _ByteSpec(5, EXTRA32, Type.BIN),
    MEXT8: _ByteSpec(3, EXTRA8, Type.EXTENSION),
    MEXT16: _ByteSpec(4, EXTRA16, Type.EXTENSION),
    MEXT32: _ByteSpec(6, EXTRA32, Type.EXTENSION),
    MFLOAT32: _ByteSpec(5, CONSTSIZE, Type.FLOAT32),
    MFLOAT64: _ByteSpec(9, CONSTSIZE, Type.FLOAT64),
    MUINT8: _ByteSpec(2, CONSTSIZE, Type.UINT),
    MUINT16: _ByteSpec(3, CONSTSIZE, Type.UINT),
    MUINT32: _ByteSpec(5, CONSTSIZE, Type.UINT),
    MUINT64: _ByteSpec(9, CONSTSIZE, Type.UINT),
    MINT8: _ByteSpec(2, CONSTSIZE, Type.INT),
    MINT16: _ByteSpec(3, CONSTSIZE, Type.INT),
    MINT32: _ByteSpec(5, CONSTSIZE, Type.INT),
    MINT64: _ByteSpec(9, CONSTSIZE, Type.INT),
    MFIXEXT1: _ByteSpec(3, CONSTSIZE, Type.EXTENSION),
    MFIXEXT2: _ByteSpec(4, CONSTSIZE, Type.EXTENSION),
    MFIXEXT4: _ByteSpec(6, CONSTSIZE, Type.EXTENSION),
    MFIXEXT8: _ByteSpec(10, CONSTSIZE, Type.EXTENSION),
    MFIXEXT16: _ByteSpec(18, CONSTSIZE, Type.EXTENSION),
    MSTR8: _ByteSpec(2, EXTRA8, Type.STR),
    MSTR16: _ByteSpec(3, EXTRA16, Type.STR),
    MSTR32: _ByteSpec(5, EXTRA32, Type.STR),
    MARRAY16: _ByteSpec(3, ARRAY16V, Type.ARRAY),
    MARRAY32: _ByteSpec(5, ARRAY32V, Type.ARRAY),
    MMAP16: _ByteSpec(3, MAP16V, Type.MAP),
    MMAP32: _ByteSpec(5, MAP32V, Type.MAP),
}

_INVALID_SPEC = _ByteSpec(0, CONSTSIZE, Type.INVALID)


def _spec_for(lead: int) -> _ByteSpec:
    if lead < 0x80 or lead >= MNFIXINT:
        return _ByteSpec(1, CONSTSIZE, Type.INT)
    if lead < MFIXARRAY:
        return _ByteSpec(1, 2 * (lead & 0x0F), Type.MAP)
    if lead < MFIXSTR:
        return _ByteSpec(1, lead & 0x0F, Type.ARRAY)
    if lead < MNIL:
        return _ByteSpec(1 + (lead & 0x1F), CONSTSIZE, Type.STR)
    return _FIXED_SPECS.get(lead, _INVALID_SPEC)


# Size, length mode and type for every possible leading byte.
BYTE_SPECS = tuple(_spec_for(lead) for lead in range(256))

_EXTENSION_TYPES = {
    TIME_EXTENSION: Type.TIME,
    COMPLEX128_EXTENSION: Type.COMPLEX128,
    COMPLEX64_EXTENSION: Type.COMPLEX64,
}


def _int8(value: int) -> int:
    return value - 256 if value > 127 else value


class MsgpError(ValueError):
    """Base class for all encoding and decoding errors."""


class ShortBytesError(MsgpError):
    """The input ended before the object was complete."""

    def __init__(self) -> None:
        super().__init__("msgp: too few bytes left to read object")


class MsgTypeError(MsgpError):
    """The object on the wire is not of the requested type."""

    def __init__(self, method: Type, encoded: Type) -> None:
        self.method = method
        self.encoded = encoded
        super().__init__(
            f'msgp: attempted to decode type "{encoded}" with method for "{method}"'
        )


class InvalidPrefixError(MsgpError):
    """The leading byte is not a valid MessagePack prefix."""

    def __init__(self, prefix: int) -> None:
        self.prefix = prefix
        super().__init__(f"msgp: unrecognized type prefix 0x{prefix:x}")


class IntOverflowError(MsgpError):
    """A signed value does not fit in the requested width."""

    def __init__(self, value: int, failed_bitsize: int) -> None:
        self.value = value
        self.failed_bitsize = failed_bitsize
        super().__init__(f"msgp: {value} overflows int{failed_bitsize}")


class UintOverflowError(MsgpError):
    """An unsigned value does not fit in the requested width."""

    def __init__(self, value: int, failed_bitsize: int) -> None:
        self.value = value
        self.failed_bitsize = failed_bitsize
        super().__init__(f"msgp: {value} overflows uint{failed_bitsize}")


class UintBelowZeroError(MsgpError):
    """A negative value was read as unsigned."""

    def __init__(self, value: int) -> None:
        self.value = value
        super().__init__(f"msgp: attempted to cast int {value} to unsigned")


class ArrayError(MsgpError):
    """An array or binary object has an unexpected length."""

    def __init__(self, wanted: int, got: int) -> None:
        self.wanted = wanted
        self.got = got
        super().__init__(f"msgp: wanted array of size {wanted}; got {got}")


class ExtensionTypeError(MsgpError):
    """An extension object carries an unexpected type identifier."""

    def __init__(self, got: int, want: int) -> None:
        self.got = got
        self.want = want
        super().__init__(
            f"msgp: error decoding extension: wanted type {want}; got type {got}"
        )


class UnsupportedTypeError(MsgpError):
    """A value of this Python type cannot be encoded."""

    def __init__(self, value_type: object) -> None:
        self.value_type = value_type
        name = getattr(value_type, "__name__", str(value_type))
        super().__init__(f'msgp: type "{name}" not supported')


def _bad_prefix(want: Type, lead: int) -> MsgpError:
    encoded = BYTE_SPECS[lead].type
    if encoded is Type.INVALID:
        return InvalidPrefixError(lead)
    return MsgTypeError(method=want, encoded=encoded)


@dataclass
class RawExtension:
    """An extension object kept as its type identifier and raw payload."""

    type: int
    data: bytes = b""

    def __post_init__(self) -> None:
        if not -128 <= self.type <= 127:
            raise ValueError(f"extension type {self.type} is not an int8")
        self.data = bytes(self.data)


def next_type(b: bytes) -> Type:
    """Return the type of the next object in ``b``; INVALID if ``b`` is empty."""
    if not b:
        return Type.INVALID
    spec = BYTE_SPECS[b[0]]
    if spec.type is Type.EXTENSION and len(b) > spec.size:
        raw = b[1] if spec.extra == CONSTSIZE else b[spec.size - 1]
        return _EXTENSION_TYPES.get(_int8(raw), Type.EXTENSION)
    return spec.type


def is_nil(b: bytes) -> bool:
    """Return True if ``b`` starts with a nil byte."""
    return len(b) != 0 and b[0] == MNIL