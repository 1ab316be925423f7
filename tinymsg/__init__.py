"""MessagePack encoding to byte buffers and streams, and decoding from byte buffers."""

__version__ = "0.1.0"
__all__ = ["format", "append", "writer", "read_bytes", "objects"]