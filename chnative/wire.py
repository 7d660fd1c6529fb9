"""Varint-coded streams and the wire encoding of fixed values and strings."""

from __future__ import annotations

import struct

from .streams import OutputStream, ZeroCopyInput

MAX_VARINT_BYTES = 10
MAX_STRING_LENGTH = 0x00FFFFFF
_UINT64_MASK = (1 << 64) - 1


class CodedInputStream:
    """Reads varint-encoded integers and raw bytes from a stream."""

    def __init__(self, input: ZeroCopyInput):
        self._input = input

    def read_varint64(self) -> int:
        """Read an unsigned varint; EOFError at end of data, ValueError if overlong."""
        value = 0
        for index in range(MAX_VARINT_BYTES):
            byte = self._input.read_byte()
            if byte is None:
                raise EOFError("unexpected end of stream while reading varint")
            value |= (byte & 0x7F) << (7 * index)
            if not byte & 0x80:
                return value & _UINT64_MASK
        raise ValueError(f"varint is longer than {MAX_VARINT_BYTES} bytes")

    def read_raw(self, size: int) -> bytes:
        """Read exactly ``size`` bytes."""
        parts = []
        remaining = size
        while remaining > 0:
            chunk = self._input.next(remaining)
            if not chunk:
                raise EOFError(f"unexpected end of stream: {remaining} of {size} bytes missing")
            parts.append(chunk)
            remaining -= len(chunk)
        return b"".join(parts)

    def skip(self, count: int) -> None:
        """Skip ``count`` bytes."""
        while count > 0:
            chunk = self._input.next(count)
            if not chunk:
                raise EOFError("unexpected end of stream while skipping")
            count -= len(chunk)


class CodedOutputStream:
    """Writes varint-encoded integers and raw bytes to a stream."""

    def __init__(self, output: OutputStream):
        self._output = output

    def flush(self) -> None:
        self._output.flush()

    def write_raw(self, data) -> None:
        self._output.write(data)

    def write_varint64(self, value: int) -> None:
        """Write an unsigned 64-bit integer as a varint."""
        if not 0 <= value <= _UINT64_MASK:
            raise ValueError(f"value {value} does not fit in an unsigned 64-bit integer")
        encoded = bytearray()
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                encoded.append(byte | 0x80)
            else:
                encoded.append(byte)
                break
        self.write_raw(bytes(encoded))


def _struct(fmt: str) -> struct.Struct:
    if fmt and fmt[0] in "@=<>!":
        return struct.Struct(fmt)
    return struct.Struct("<" + fmt)


def read_fixed(stream: CodedInputStream, fmt: str):
    """Read a fixed-width value described by a struct format (little-endian by default)."""
    packer = _struct(fmt)
    values = packer.unpack(stream.read_raw(packer.size))
    return values[0] if len(values) == 1 else values


def read_bytes(stream: CodedInputStream, size: int) -> bytes:
    return stream.read_raw(size)


def read_string(stream: CodedInputStream) -> str:
    """Read a length-prefixed UTF-8 string."""
    length = stream.read_varint64()
    if length > MAX_STRING_LENGTH:
        raise ValueError(f"string length {length} exceeds limit {MAX_STRING_LENGTH}")
    return stream.read_raw(length).decode("utf-8", "surrogateescape")


def read_uint64(stream: CodedInputStream) -> int:
    return stream.read_varint64()


def write_fixed(stream: CodedOutputStream, fmt: str, value) -> None:
    """Write a fixed-width value described by a struct format (little-endian by default)."""
    packer = _struct(fmt)
    data = packer.pack(*value) if isinstance(value, tuple) else packer.pack(value)
    stream.write_raw(data)


def write_bytes(stream: CodedOutputStream, data) -> None:
    stream.write_raw(data)


def write_string(stream: CodedOutputStream, value) -> None:
    """Write a length-prefixed string; ``value`` may be str or bytes."""
    if isinstance(value, str):
        value = value.encode("utf-8", "surrogateescape")
    stream.write_varint64(len(value))
    stream.write_raw(value)


def write_uint64(stream: CodedOutputStream, value: int) -> None:
    stream.write_varint64(value)