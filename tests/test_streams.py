from chnative.streams import (
    ArrayInput,
    ArrayOutput,
    BufferedInput,
    BufferedOutput,
    BufferOutput,
    InputStream,
    OutputStream,
)


class _ChunkedSource(InputStream):
    def __init__(self, data, chunk):
        self._data = data
        self._chunk = chunk
        self.requests = []

    def _do_read(self, size):
        self.requests.append(size)
        n = min(size, self._chunk)
        out, self._data = self._data[:n], self._data[n:]
        return out


class _Sink(OutputStream):
    def __init__(self):
        self.writes = []
        self.flushes = 0

    def _do_write(self, data):
        self.writes.append(bytes(data))

    def _do_flush(self):
        self.flushes += 1


def test_array_input_next_returns_limited_chunks():
    stream = ArrayInput(b"abcdef")
    assert stream.next(4) == b"abcd"
    assert stream.avail == 2
    assert stream.next(10) == b"ef"
    assert stream.exhausted
    assert stream.next(3) == b""


def test_array_input_read_byte_until_end():
    stream = ArrayInput(b"\x01\x02")
    assert [stream.read_byte(), stream.read_byte(), stream.read_byte()] == [1, 2, None]


def test_array_input_reset():
    stream = ArrayInput(b"xy")
    stream.read(2)
    stream.reset(b"hello")
    assert stream.data == b"hello"
    assert stream.read(5) == b"hello"


def test_buffered_input_refills_with_buffer_size():
    source = _ChunkedSource(b"0123456789", chunk=100)
    stream = BufferedInput(source, 8)
    assert stream.read(3) == b"012"
    assert stream.read(3) == b"345"
    assert source.requests == [8]


def test_buffered_input_large_read_goes_direct():
    source = _ChunkedSource(b"0123456789", chunk=100)
    stream = BufferedInput(source, 8)
    assert stream.read(6) == b"012345"
    assert source.requests == [6]


def test_buffered_input_next_and_reset():
    source = _ChunkedSource(b"abcdefgh", chunk=4)
    stream = BufferedInput(source, 8)
    assert stream.next(2) == b"ab"
    stream.reset()
    assert stream.next(8) == b"efgh"


def test_buffered_input_collects_all_bytes():
    payload = bytes(range(200))
    stream = BufferedInput(_ChunkedSource(payload, chunk=7), 16)
    collected = bytearray()
    while (byte := stream.read_byte()) is not None:
        collected.append(byte)
    assert bytes(collected) == payload


def test_array_output_drops_what_does_not_fit():
    out = ArrayOutput(4)
    out.write(b"abcdef")
    assert out.data == b"abcd"
    assert out.exhausted


def test_array_output_reset():
    out = ArrayOutput(4)
    out.write(b"ab")
    out.reset(4)
    assert out.data == b""
    assert out.avail == 4


def test_buffer_output_overwrites_from_start_and_grows():
    buffer = bytearray(b"\x00" * 5)
    out = BufferOutput(buffer)
    out.write(b"\x82")
    out.write(b"abcdefg")
    assert buffer == bytearray(b"\x82abcdefg")


def test_buffered_output_holds_small_writes_until_flush():
    sink = _Sink()
    out = BufferedOutput(sink, 16)
    out.write(b"ab")
    out.write(b"cd")
    assert sink.writes == []
    out.flush()
    assert sink.writes == [b"abcd"]
    assert sink.flushes == 1


def test_buffered_output_large_write_goes_direct():
    sink = _Sink()
    out = BufferedOutput(sink, 8)
    out.write(b"ab")
    out.write(b"0123456789")
    assert sink.writes == [b"ab", b"0123456789"]


def test_buffered_output_flush_without_data_does_nothing():
    sink = _Sink()
    out = BufferedOutput(sink, 8)
    out.flush()
    assert (sink.writes, sink.flushes) == ([], 0)


def test_buffered_output_reset_discards():
    sink = _Sink()
    out = BufferedOutput(sink, 8)
    out.write(b"abc")
    out.reset()
    out.write(b"z")
    out.flush()
    assert sink.writes == [b"z"]