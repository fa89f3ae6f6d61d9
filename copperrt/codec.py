"""Compact binary encoding with variable-length integers.

Integers use the varint scheme where values below 251 take a single byte
and larger values are announced by a tag byte followed by a little-endian
fixed-width integer:

* 251: a 16-bit value follows
* 252: a 32-bit value follows
* 253: a 64-bit value follows

Byte strings are written as their varint length followed by the raw bytes.
"""

from __future__ import annotations

import io
import struct

_SINGLE_BYTE_MAX = 250
_TAG_U16 = 251
_TAG_U32 = 252
_TAG_U64 = 253

_U16_MAX = 0xFFFF
_U32_MAX = 0xFFFF_FFFF
_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF


class DecodeError(ValueError):
    """Raised when encoded data is truncated or malformed."""


def _check_range(value: int, limit: int, kind: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{kind} value must be an int, got {type(value).__name__}")
    if value < 0 or value > limit:
        raise ValueError(f"{value} does not fit in a {kind}")


class Encoder:
    """Accumulates encoded values in memory."""

    def __init__(self) -> None:
        self._buffer = io.BytesIO()

    def _write_varint(self, value: int) -> None:
        if value <= _SINGLE_BYTE_MAX:
            self._buffer.write(bytes((value,)))
        elif value <= _U16_MAX:
            self._buffer.write(bytes((_TAG_U16,)) + struct.pack("<H", value))
        elif value <= _U32_MAX:
            self._buffer.write(bytes((_TAG_U32,)) + struct.pack("<I", value))
        else:
            self._buffer.write(bytes((_TAG_U64,)) + struct.pack("<Q", value))

    def write_u64(self, value: int) -> None:
        """Write an unsigned 64-bit integer."""
        _check_range(value, _U64_MAX, "u64")
        self._write_varint(value)

    def write_u32(self, value: int) -> None:
        """Write an unsigned 32-bit integer."""
        _check_range(value, _U32_MAX, "u32")
        self._write_varint(value)

    def write_bytes(self, data: bytes) -> None:
        """Write a length-prefixed byte string."""
        raw = bytes(data)
        self._write_varint(len(raw))
        self._buffer.write(raw)

    def getvalue(self) -> bytes:
        """Return everything encoded so far."""
        return self._buffer.getvalue()


class Decoder:
    """Reads values back from encoded bytes."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(bytes(data))
        self._pos = 0

    def _take(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise DecodeError(
                f"unexpected end of data: needed {count} bytes, "
                f"{len(self._data) - self._pos} available"
            )
        chunk = self._data[self._pos:end].tobytes()
        self._pos = end
        return chunk

    def _read_varint(self, max_tag: int) -> int:
        tag = self._take(1)[0]
        if tag <= _SINGLE_BYTE_MAX:
            return tag
        if tag > max_tag:
            raise DecodeError(f"invalid integer tag {tag}")
        if tag == _TAG_U16:
            return struct.unpack("<H", self._take(2))[0]
        if tag == _TAG_U32:
            return struct.unpack("<I", self._take(4))[0]
        return struct.unpack("<Q", self._take(8))[0]

    def read_u64(self) -> int:
        """Read an unsigned 64-bit integer."""
        return self._read_varint(_TAG_U64)

    def read_u32(self) -> int:
        """Read an unsigned 32-bit integer."""
        return self._read_varint(_TAG_U32)

    def read_bytes(self) -> bytes:
        """Read a length-prefixed byte string."""
        length = self._read_varint(_TAG_U64)
        return self._take(length)