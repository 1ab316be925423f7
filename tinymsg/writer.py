"""A buffered writer that encodes MessagePack objects onto a binary stream."""

from __future__ import annotations

import struct
from datetime import datetime, timedelta
from typing import Any, BinaryIO, Mapping

from .append import (
    append_array_header,
    append_bool,
    append_bytes_header,
    append_complex64,
    append_complex128,
    append_duration,
    append_extension,
    append_float32,
    append_float64,
    append_int64,
    append_map_header,
    append_nil,
    append_time,
    append_uint64,
)
from .format import (
    BOOL_SIZE,
    BYTES_PREFIX_SIZE,
    COMPLEX128_SIZE,
    EXTENSION_PREFIX_SIZE,
    FLOAT64_SIZE,
    INT_SIZE,
    MAP_HEADER_SIZE,
    MFIXSTR,
    MSTR8,
    MSTR16,
    MSTR32,
    NIL_SIZE,
    STRING_PREFIX_SIZE,
    MsgpError,
    RawExtension,
    UnsupportedTypeError,
)

MIN_WRITER_SIZE = 18
DEFAULT_WRITER_SIZE = 2048


def _string_header(sz: int) -> bytes:
    if not 0 <= sz <= 0xFFFFFFFF:
        raise ValueError(f"length {sz} does not fit in 32 bits")
    if sz <= 31:
        return bytes((MFIXSTR | sz,))
    if sz <= 0xFF:
        return struct.pack(">BB", MSTR8, sz)
    if sz <= 0xFFFF:
        return struct.pack(">BH", MSTR16, sz)
    return struct.pack(">BI", MSTR32, sz)


class Writer:
    """Buffered MessagePack writer.

    Encoded data is kept in an internal buffer until it fills up or
    :meth:`flush` is called. Used as a context manager, the writer is
    flushed on a clean exit.
    """

    def __init__(self, stream: BinaryIO, size: int = DEFAULT_WRITER_SIZE) -> None:
        self._stream = stream
        self._size = max(size, MIN_WRITER_SIZE)
        self._buf = bytearray()

    def __enter__(self) -> "Writer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.flush()

    def _write_all(self, data) -> None:
        view = memoryview(data)
        while view:
            n = self._stream.write(view)
            if n is None:
                n = len(view)
            if n <= 0:
                raise OSError("short write to underlying stream")
            view = view[n:]

    def flush(self) -> None:
        """Write all buffered data to the underlying stream."""
        while self._buf:
            n = self._stream.write(bytes(self._buf))
            if n is None:
                n = len(self._buf)
            if n <= 0:
                raise OSError("short write to underlying stream")
            del self._buf[:n]

    def buffered(self) -> int:
        """Return the number of bytes waiting in the buffer."""
        return len(self._buf)

    def _put(self, data) -> None:
        if len(self._buf) + len(data) > self._size:
            self.flush()
        self._buf += data

    def write(self, data) -> int:
        """Write raw bytes; large writes bypass the buffer."""
        length = len(data)
        if self._size - len(self._buf) < length:
            self.flush()
            if length > self._size:
                self._write_all(data)
                return length
        self._buf += data
        return length

    def append(self, *args: int) -> None:
        """Write the given byte values verbatim."""
        self.write(bytes(args))

    def reset(self, stream: BinaryIO) -> None:
        """Discard buffered data and write to ``stream`` from now on."""
        self._buf.clear()
        self._stream = stream

    def write_map_header(self, sz: int) -> None:
        """Write a map header for ``sz`` pairs."""
        self._put(append_map_header(None, sz))

    def write_array_header(self, sz: int) -> None:
        """Write an array header for ``sz`` elements."""
        self._put(append_array_header(None, sz))

    def write_nil(self) -> None:
        """Write a nil."""
        self._put(append_nil(None))

    def write_float64(self, f: float) -> None:
        """Write a 64-bit float."""
        self._put(append_float64(None, f))

    def write_float32(self, f: float) -> None:
        """Write a 32-bit float."""
        self._put(append_float32(None, f))

    def write_duration(self, d) -> None:
        """Write a duration (timedelta or integer nanoseconds) as an int64."""
        self._put(append_duration(None, d))

    def write_int64(self, i: int) -> None:
        """Write a signed integer in its smallest encoding."""
        self._put(append_int64(None, i))

    def write_int(self, i: int) -> None:
        """Write an int."""
        self.write_int64(i)

    def write_uint64(self, u: int) -> None:
        """Write an unsigned integer in its smallest encoding."""
        self._put(append_uint64(None, u))

    def write_uint(self, u: int) -> None:
        """Write a uint."""
        self.write_uint64(u)

    def write_bytes(self, data) -> None:
        """Write binary data as a 'bin' object."""
        self.write_bytes_header(len(data))
        self.write(data)

    def write_bytes_header(self, sz: int) -> None:
        """Write only the header of a 'bin' object of ``sz`` bytes."""
        self._put(append_bytes_header(None, sz))

    def write_bool(self, b: bool) -> None:
        """Write a bool."""
        self._put(append_bool(None, b))

    def write_string(self, s: str) -> None:
        """Write a str as a UTF-8 'str' object."""
        self.write_string_from_bytes(s.encode("utf-8"))

    def write_string_header(self, sz: int) -> None:
        """Write only the header of a 'str' object of ``sz`` bytes."""
        self._put(_string_header(sz))

    def write_string_from_bytes(self, data) -> None:
        """Write raw bytes as a 'str' object."""
        self.write_string_header(len(data))
        self.write(data)

    def write_complex64(self, c: complex) -> None:
        """Write a complex number as a complex64 extension."""
        self._put(append_complex64(None, c))

    def write_complex128(self, c: complex) -> None:
        """Write a complex number as a complex128 extension."""
        self._put(append_complex128(None, c))

    def write_extension(self, ext) -> None:
        """Write an extension object with ``type`` and ``data`` attributes."""
        self.write(append_extension(None, ext))

    def write_map_str_str(self, m: Mapping[str, str]) -> None:
        """Write a mapping of str to str."""
        self.write_map_header(len(m))
        for key, val in m.items():
            self.write_string(key)
            self.write_string(val)

    def write_map_str_intf(self, m: Mapping[str, Any]) -> None:
        """Write a mapping of str to any supported value."""
        self.write_map_header(len(m))
        for key, val in m.items():
            self.write_string(key)
            self.write_intf(val)

    def write_time(self, t: datetime) -> None:
        """Write a datetime as a time extension; the time zone is dropped."""
        self._put(append_time(None, t))

    def write_intf(self, value: Any) -> None:
        """Write any supported value.

        Supported are None, objects with an ``encode_msg(writer)`` method,
        RawExtension, bool, int, float, complex, str, bytes-like objects,
        datetime, timedelta, and lists, tuples and str-keyed mappings of these.
        """
        if value is None:
            self.write_nil()
            return
        encode_msg = getattr(value, "encode_msg", None)
        if callable(encode_msg):
            encode_msg(self)
        elif isinstance(value, RawExtension):
            self.write_extension(value)
        elif isinstance(value, bool):
            self.write_bool(value)
        elif isinstance(value, int):
            if value >= 1 << 63:
                self.write_uint64(value)
            else:
                self.write_int64(value)
        elif isinstance(value, float):
            self.write_float64(value)
        elif isinstance(value, complex):
            self.write_complex128(value)
        elif isinstance(value, str):
            self.write_string(value)
        elif isinstance(value, (bytes, bytearray, memoryview)):
            self.write_bytes(value)
        elif isinstance(value, datetime):
            self.write_time(value)
        elif isinstance(value, timedelta):
            self.write_duration(value)
        elif isinstance(value, Mapping):
            if not all(isinstance(key, str) for key in value):
                raise MsgpError("msgp: map keys must be strings")
            self.write_map_str_intf(value)
        elif isinstance(value, (list, tuple)):
            self.write_array_header(len(value))
            for item in value:
                self.write_intf(item)
        else:
            raise UnsupportedTypeError(type(value))


def encode(stream, obj) -> None:
    """Encode ``obj`` (which has ``encode_msg``) to ``stream`` and flush."""
    writer = stream if isinstance(stream, Writer) else Writer(stream)
    obj.encode_msg(writer)
    writer.flush()


def guess_size(value: Any) -> int:
    """Estimate the encoded size of ``value``; 512 for anything non-simple."""
    if value is None:
        return NIL_SIZE
    msgsize = getattr(value, "msgsize", None)
    if callable(msgsize):
        return msgsize()
    if isinstance(value, RawExtension):
        return EXTENSION_PREFIX_SIZE + len(value.data)
    if isinstance(value, bool):
        return BOOL_SIZE
    if isinstance(value, int):
        return INT_SIZE
    if isinstance(value, float):
        return FLOAT64_SIZE
    if isinstance(value, complex):
        return COMPLEX128_SIZE
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BYTES_PREFIX_SIZE + len(value)
    if isinstance(value, str):
        return STRING_PREFIX_SIZE + len(value.encode("utf-8"))
    if isinstance(value, Mapping) and all(isinstance(key, str) for key in value):
        return MAP_HEADER_SIZE + sum(
            STRING_PREFIX_SIZE + len(key.encode("utf-8")) + guess_size(val)
            for key, val in value.items()
        )
    return 512