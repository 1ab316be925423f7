# tinymsg

MessagePack encoding and decoding for Python. Values are appended to or
read from in-memory byte buffers, or written through a buffered writer
over any binary stream.

## Install

```
pip install tinymsg
```

## Appending to a buffer

The functions in `tinymsg.append` each take a buffer (a `bytearray`, any
bytes-like object, or `None`), add one encoded value and return the
result as a `bytearray`. A `bytearray` passed in is extended in place;
anything else is copied first.

```python
from tinymsg.append import append_map_header, append_string, append_int

b = append_map_header(None, 2)
append_string(b, "i")
append_int(b, 1)
append_string(b, "s")
append_string(b, "2")
assert b == bytes([130, 161, 105, 1, 161, 115, 161, 50])
```

Integers use the smallest encoding that holds them. The width-checked
variants (`append_int8`, `append_uint16`, and so on) raise
`OverflowError` for values outside their range.

`append_intf` picks the encoding from the Python value: `None`, `bool`,
`int`, `float`, `complex`, `str`, bytes-like objects, `datetime`,
`RawExtension`, objects with a `marshal_msg(b)` method, and lists, tuples
and mappings with `str` keys of these. Other types raise
`UnsupportedTypeError`; a mapping with non-`str` keys raises `MsgpError`.

Times are stored as a 12-byte extension of Unix seconds and nanoseconds;
the time zone is dropped and naive datetimes are taken as local time.
Durations may be given as a `timedelta` or as integer nanoseconds.

## Reading from a buffer

Each reader in `tinymsg.read_bytes` takes a bytes-like object and returns
the value together with the rest of the input as a `memoryview`, so reads
can be chained without copying:

```python
from tinymsg.read_bytes import read_map_header_bytes, read_string_bytes, read_int32_bytes

size, rest = read_map_header_bytes(b)
key, rest = read_string_bytes(rest)
value, rest = read_int32_bytes(rest)
```

Functions ending in `_zc` (`read_string_zc`, `read_bytes_zc`,
`read_map_key_zc`) return the payload as a `memoryview` into the input.
`read_time_bytes` returns an aware `datetime` in local time, truncated to
microseconds. `read_duration_bytes` returns integer nanoseconds.
`read_extension_bytes` returns any extension as a `RawExtension`.

`tinymsg.objects` works on whole values:

- `read_intf_bytes` decodes the next value without knowing its type:
  maps become dicts, arrays lists, `bin` bytes, `str` str, nil `None`,
  and extensions other than time and complex a `RawExtension`.
- `read_map_str_intf_bytes` reads a map whose keys are `str` or `bin`.
- `skip` steps over the next value, including everything nested in it.
- `Raw` holds one encoded value as it is, with `marshal_msg`,
  `unmarshal_msg`, `encode_msg` and `msgsize`.

`tinymsg.format.next_type` and `is_nil` look at the next value without
decoding it.

## Streaming output

`tinymsg.writer.Writer` buffers encoded values and writes them to a
binary stream when the buffer fills or when `flush()` is called. Used as a
context manager, it flushes on a clean exit.

```python
import io
from tinymsg.writer import Writer

out = io.BytesIO()
with Writer(out) as w:
    w.write_map_header(1)
    w.write_string("key")
    w.write_intf([1, 2.5, "three"])
```

`encode(stream, obj)` writes an object that has an `encode_msg(writer)`
method and flushes. `guess_size(value)` estimates the encoded size of a
value, falling back to 512 for anything not simple.

## Errors

Problems raise subclasses of `tinymsg.format.MsgpError` (itself a
`ValueError`): `ShortBytesError` when the input ends too early,
`MsgTypeError` when the next value has a different type than asked for,
`InvalidPrefixError` for an unknown leading byte, `IntOverflowError`,
`UintOverflowError` or `UintBelowZeroError` when an integer does not fit
the requested width, `ArrayError` for a `bin` of the wrong length,
`ExtensionTypeError` for an unexpected extension type, and
`UnsupportedTypeError` for values that cannot be encoded.

## What it does not do

There is no reader for streams: decoding works only on bytes already in
memory. There is no registry of custom extension types, and no generation
of encoding code for user-defined classes; such classes take part by
providing `marshal_msg`, `encode_msg` or `msgsize` methods themselves.