"""Decoding of whole objects: dynamic values, skipping and raw pass-through."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any

from .append import append_nil
from .format import (
    ARRAY16V,
    ARRAY32V,
    BYTE_SPECS,
    EXTRA8,
    EXTRA16,
    EXTRA32,
    MAP16V,
    MAP32V,
    InvalidPrefixError,
    MsgpError,
    ShortBytesError,
    Type,
    is_nil,
    next_type,
)
from .read_bytes import (
    read_array_header_bytes,
    read_bool_bytes,
    read_bytes_bytes,
    read_complex64_bytes,
    read_complex128_bytes,
    read_extension_bytes,
    read_float32_bytes,
    read_float64_bytes,
    read_int64_bytes,
    read_map_header_bytes,
    read_map_key_zc,
    read_nil_bytes,
    read_string_bytes,
    read_time_bytes,
    read_uint64_bytes,
)

# Length field format and whether the length counts child objects
# (and how many per entry) rather than payload bytes.
_VARIABLE_MODES = {
    EXTRA8: (">B", 0),
    EXTRA16: (">H", 0),
    EXTRA32: (">I", 0),
    MAP16V: (">H", 2),
    MAP32V: (">I", 2),
    ARRAY16V: (">H", 1),
    ARRAY32V: (">I", 1),
}


def _view(b) -> memoryview:
    view = memoryview(b)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


def _get_size(view: memoryview) -> tuple[int, int]:
    """Return (bytes to skip, child objects to skip) for the next object."""
    if not view:
        raise ShortBytesError()
    lead = view[0]
    spec = BYTE_SPECS[lead]
    if spec.size == 0:
        raise InvalidPrefixError(lead)
    if spec.extra >= 0:
        return spec.size, spec.extra
    if len(view) < spec.size:
        raise ShortBytesError()
    mode = _VARIABLE_MODES.get(spec.extra)
    if mode is None:
        raise MsgpError("msgp: invalid byte specification")
    fmt, per_entry = mode
    (length,) = struct.unpack_from(fmt, view, 1)
    if per_entry == 0:
        return spec.size + length, 0
    return spec.size, per_entry * length


def skip(b) -> memoryview:
    """Skip the next object, including all elements of maps and arrays.

    Returns the rest of the input.
    """
    view = _view(b)
    remaining = 1
    while remaining:
        size, children = _get_size(view)
        if len(view) < size:
            raise ShortBytesError()
        view = view[size:]
        remaining += children - 1
    return view


def read_map_str_intf_bytes(b) -> tuple[dict[str, Any], memoryview]:
    """Read a map with 'str' or 'bin' keys into a dict of dynamic values."""
    size, rest = read_map_header_bytes(b)
    result: dict[str, Any] = {}
    for _ in range(size):
        if not rest:
            raise ShortBytesError()
        key, rest = read_map_key_zc(rest)
        value, rest = read_intf_bytes(rest)
        result[bytes(key).decode("utf-8")] = value
    return result, rest


def read_intf_bytes(b) -> tuple[Any, memoryview]:
    """Read the next object as the natural Python value for its type.

    Maps become dicts, arrays lists, 'bin' bytes, 'str' str, nil None,
    time extensions datetimes, complex extensions complex numbers and any
    other extension a RawExtension.
    """
    view = _view(b)
    if not view:
        raise ShortBytesError()
    kind = next_type(view)
    if kind is Type.MAP:
        return read_map_str_intf_bytes(view)
    if kind is Type.ARRAY:
        size, rest = read_array_header_bytes(view)
        items = []
        for _ in range(size):
            item, rest = read_intf_bytes(rest)
            items.append(item)
        return items, rest
    if kind is Type.NIL:
        return None, read_nil_bytes(view)
    readers = {
        Type.FLOAT32: read_float32_bytes,
        Type.FLOAT64: read_float64_bytes,
        Type.INT: read_int64_bytes,
        Type.UINT: read_uint64_bytes,
        Type.BOOL: read_bool_bytes,
        Type.TIME: read_time_bytes,
        Type.COMPLEX64: read_complex64_bytes,
        Type.COMPLEX128: read_complex128_bytes,
        Type.EXTENSION: read_extension_bytes,
        Type.BIN: read_bytes_bytes,
        Type.STR: read_string_bytes,
    }
    reader = readers.get(kind)
    if reader is None:
        raise InvalidPrefixError(view[0])
    return reader(view)


@dataclass
class Raw:
    """Encoded MessagePack kept as-is, without interpreting its contents.

    Empty data stands for nil.
    """

    data: bytes = b""

    def __post_init__(self) -> None:
        self.data = bytes(self.data)

    def marshal_msg(self, b) -> bytearray:
        """Append the raw bytes to ``b``, or a nil if there are none."""
        if not self.data:
            return append_nil(b)
        out = bytearray() if b is None else (b if isinstance(b, bytearray) else bytearray(b))
        out += self.data
        return out

    def unmarshal_msg(self, b) -> memoryview:
        """Take the next object from ``b`` as the raw data; return the rest."""
        view = _view(b)
        rest = skip(view)
        chunk = view[: len(view) - len(rest)]
        self.data = b"" if is_nil(chunk) else bytes(chunk)
        return rest

    def encode_msg(self, writer) -> None:
        """Write the raw bytes to ``writer``, or a nil if there are none."""
        if not self.data:
            writer.write_nil()
        else:
            writer.write(self.data)

    def msgsize(self) -> int:
        """Return the encoded size."""
        return len(self.data) or 1