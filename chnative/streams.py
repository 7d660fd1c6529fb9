"""Byte input and output streams with in-memory and buffered variants."""

from __future__ import annotations

from abc import ABC, abstractmethod

DEFAULT_BUFFER_SIZE = 8192


def _as_bytes(data) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return data
    return bytes(data)


class InputStream(ABC):
    """A source of bytes."""

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; an empty result means no data."""
        return self._do_read(size)

    def read_byte(self) -> int | None:
        """Read one byte, or return None if the stream has none left."""
        data = self._do_read(1)
        return data[0] if len(data) == 1 else None

    @abstractmethod
    def _do_read(self, size: int) -> bytes:
        """Read up to ``size`` bytes."""


class ZeroCopyInput(InputStream):
    """An input stream that hands out chunks of its own data."""

    def next(self, size: int) -> bytes:
        """Return the next chunk of at most ``size`` bytes."""
        return self._do_next(size)

    @abstractmethod
    def _do_next(self, size: int) -> bytes:
        """Return the next chunk of at most ``size`` bytes."""

    def _do_read(self, size: int) -> bytes:
        return self._do_next(size)


class ArrayInput(ZeroCopyInput):
    """An input stream over an in-memory byte string."""

    def __init__(self, data: bytes = b""):
        self.reset(data)

    def reset(self, data: bytes) -> None:
        """Start reading from ``data``."""
        self._view = memoryview(_as_bytes(data))
        self._pos = 0

    @property
    def avail(self) -> int:
        """Number of bytes left to read."""
        return len(self._view) - self._pos

    @property
    def exhausted(self) -> bool:
        """Whether all data has been read."""
        return self.avail == 0

    @property
    def data(self) -> bytes:
        """The bytes not yet read."""
        return bytes(self._view[self._pos:])

    def _do_next(self, size: int) -> bytes:
        size = min(size, self.avail)
        chunk = bytes(self._view[self._pos:self._pos + size])
        self._pos += size
        return chunk


class BufferedInput(ZeroCopyInput):
    """Reads from another stream in blocks of ``buffer_size`` bytes."""

    def __init__(self, slave: InputStream, buffer_size: int = DEFAULT_BUFFER_SIZE):
        self._slave = slave
        self._buffer_size = buffer_size
        self._array = ArrayInput()

    def reset(self) -> None:
        """Drop any buffered data."""
        self._array.reset(b"")

    def _refill(self) -> None:
        self._array.reset(self._slave.read(self._buffer_size))

    def _do_next(self, size: int) -> bytes:
        if self._array.exhausted:
            self._refill()
        return self._array.next(size)

    def _do_read(self, size: int) -> bytes:
        if self._array.exhausted:
            if size > self._buffer_size // 2:
                return self._slave.read(size)
            self._refill()
        return self._array.read(size)


class OutputStream(ABC):
    """A sink for bytes."""

    def write(self, data) -> None:
        """Write ``data`` to the stream."""
        self._do_write(_as_bytes(data))

    def flush(self) -> None:
        """Push out any buffered data."""
        self._do_flush()

    def _do_flush(self) -> None:
        pass

    @abstractmethod
    def _do_write(self, data: bytes) -> None:
        """Write ``data``."""


class ArrayOutput(OutputStream):
    """Writes into a fixed-size in-memory buffer; bytes that do not fit are dropped."""

    def __init__(self, size: int):
        self._buffer = bytearray(size)
        self._pos = 0

    def reset(self, size: int) -> None:
        """Discard written data and start over with a buffer of ``size`` bytes."""
        if size != len(self._buffer):
            self._buffer = bytearray(size)
        self._pos = 0

    @property
    def avail(self) -> int:
        """Free space left in the buffer."""
        return len(self._buffer) - self._pos

    @property
    def exhausted(self) -> bool:
        """Whether the buffer is full."""
        return self.avail == 0

    @property
    def data(self) -> bytes:
        """The bytes written so far."""
        return bytes(self._buffer[:self._pos])

    def _do_write(self, data: bytes) -> None:
        size = min(len(data), self.avail)
        self._buffer[self._pos:self._pos + size] = data[:size]
        self._pos += size


class BufferOutput(OutputStream):
    """Writes into a bytearray from its start, growing it as needed."""

    def __init__(self, buffer: bytearray):
        self.buffer = buffer
        self._pos = 0

    def _do_write(self, data: bytes) -> None:
        end = self._pos + len(data)
        self.buffer[self._pos:end] = data
        self._pos = end


class BufferedOutput(OutputStream):
    """Collects writes and passes them to another stream in blocks."""

    def __init__(self, slave: OutputStream, buffer_size: int = DEFAULT_BUFFER_SIZE):
        self._slave = slave
        self._buffer_size = buffer_size
        self._array = ArrayOutput(buffer_size)

    def reset(self) -> None:
        """Drop any buffered data."""
        self._array.reset(self._buffer_size)

    def _do_flush(self) -> None:
        pending = self._array.data
        if pending:
            self._slave.write(pending)
            self._slave.flush()
            self.reset()

    def _do_write(self, data: bytes) -> None:
        if self._array.avail < len(data):
            self.flush()
            if len(data) > self._buffer_size // 2:
                self._slave.write(data)
                return
        self._array.write(data)