# chnative

A pure-Python client for the ClickHouse native TCP protocol. The package has
these parts:

- the protocol's building blocks: byte streams, varint coding and the wire format
- in-memory data blocks
- socket handling
- a `Client` that does the handshake, runs queries, pings the server and
  inserts blocks

It has no third-party dependencies.

## Installation

```
pip install .
```

## Modules

- `chnative.protocol` holds the packet codes `ServerCode` and `ClientCode`,
  along with `CompressionState`, `Stage` and the server's `ErrorCode` values.
- `chnative.exceptions` holds `ExceptionInfo` and `ServerException`.
  - `ExceptionInfo` has the fields `code`, `name`, `display_text`,
    `stack_trace` and `nested`.
  - `ServerException` is a `RuntimeError` with `.exception` and `.code`
    attributes. Its string form is the server's display text.
- `chnative.streams` holds the byte streams.
  - For input: `InputStream`, `ZeroCopyInput`, `ArrayInput` and `BufferedInput`.
  - For output: `OutputStream`, `ArrayOutput`, `BufferOutput` and
    `BufferedOutput`.
  - `ArrayOutput` has a fixed size and drops bytes that do not fit.
  - `BufferOutput` grows a `bytearray` as needed.
- `chnative.wire` holds `CodedInputStream`, `CodedOutputStream` and helper
  functions.
  - The helpers are `read_fixed`, `read_bytes`, `read_string`, `read_uint64`,
    `write_fixed`, `write_bytes`, `write_string` and `write_uint64`.
  - Fixed-width values are given as `struct` formats, little-endian by default.
  - Reading past the end of the data raises `EOFError`.
  - A varint longer than 10 bytes raises `ValueError`.
  - A string longer than `0xFFFFFF` bytes raises `ValueError`.
- `chnative.block` holds `Block`, `BlockInfo` and `BlockColumn`.
  - A `Block` is an ordered set of named columns of equal length.
  - Add columns with `append_column`.
  - Its properties are `row_count`, `column_count` and `info`.
  - `column_name(i)` gives the name of a column and `block[i]` gives the
    column itself.
  - `refresh_row_count()` counts the rows again.
  - Iterating over a block yields `BlockColumn` items.
- `chnative.net` holds the socket functions and streams.
  - `is_local_name` and `resolve` deal with host names.
  - `connect` makes a TCP connection with a timeout.
  - `set_tcp_keepalive` turns on TCP keep-alive.
  - `SocketInput` and `SocketOutput` are the socket streams.
- `chnative.options` holds `ClientOptions`, `CompressionMethod` and
  `ServerInfo`. `ClientOptions` is a frozen dataclass.
- `chnative.client` holds `Client`, `QueryHandler`, `Progress` and `Profile`.

## Wire format example

```python
from chnative.streams import ArrayInput, BufferOutput
from chnative.wire import (
    CodedInputStream, CodedOutputStream, read_string, read_uint64,
    write_string, write_uint64,
)

buffer = bytearray()
out = CodedOutputStream(BufferOutput(buffer))
write_uint64(out, 300)
write_string(out, "hello")

inp = CodedInputStream(ArrayInput(bytes(buffer)))
assert read_uint64(inp) == 300
assert read_string(inp) == "hello"
```

## Client

The client moves blocks to and from the server, but it does not decode column
data itself. You supply a `column_loader(type_name, stream, rows)` function.

- It reads `rows` values of the named type from `stream` and returns a column.
- It returns `None` for a type it does not know. The client then raises
  `RuntimeError`.

Columns used for inserting must meet three requirements:

- support `len()`
- have a `type_name` attribute
- write themselves with a `save(stream)` method

```python
import struct

from chnative.block import Block
from chnative.client import Client
from chnative.exceptions import ServerException
from chnative.options import ClientOptions
from chnative.protocol import ErrorCode
from chnative.wire import read_bytes, write_bytes


class UInt64Column(list):
    type_name = "UInt64"

    def save(self, stream):
        write_bytes(stream, struct.pack(f"<{len(self)}Q", *self))


def load_column(type_name, stream, rows):
    if type_name == "UInt64":
        return UInt64Column(struct.unpack(f"<{rows}Q", read_bytes(stream, 8 * rows)))
    return None


options = ClientOptions(host="localhost", ping_before_query=True)

with Client(options, load_column) as client:
    client.ping()
    try:
        client.execute("CREATE TABLE test.t (id UInt64) ENGINE = Memory")
    except ServerException as exc:
        if exc.code != ErrorCode.TABLE_ALREADY_EXISTS:
            raise

    block = Block()
    block.append_column("id", UInt64Column([1, 7]))
    client.insert("test.t", block)

    client.select("SELECT id FROM test.t", lambda b: print(list(b[0]) if len(b) else []))

    # Returning False cancels the query.
    client.select_cancelable("SELECT id FROM test.t", lambda b: False)
```

### Connecting and retrying

- The constructor connects and does the handshake. It stores what the server
  reports in `client.server_info`.
- If connecting fails with an `OSError`, the client retries up to
  `send_retries` times, waiting `retry_timeout` seconds between attempts.
- With `ping_before_query`, every query and insert is preceded by a ping.
  A failed ping is retried after reconnecting.
- `reset_connection()` opens a fresh connection.
- `close()` closes the connection, or you can use the client as a context
  manager.

### Query events

Pass a `QueryHandler` subclass to `Client.execute` to receive events. Its
methods are:

- `on_data`
- `on_data_cancelable`
- `on_progress`
- `on_profile`
- `on_finish`
- `on_server_exception`

The base class records these in its `progress`, `profile`, `finished` and
`exception` attributes.

Server exceptions are raised as `ServerException`. If `rethrow_exceptions` is
`False`, `execute` instead reports them only to the handler and returns.

### Prepared inserts

1. `prepare_insert(query, callback)` sends an `INSERT ... VALUES` query.
2. It passes the server's sample block to `callback`.
3. Send the data with `insert(table_name, block, prepared=True)`.

## What the package does not do

- There are no column types. Decoding and encoding column values is left to
  the `column_loader` and column objects you provide.
- Block compression is not supported. Creating a `Client` with
  `CompressionMethod.LZ4` raises `ValueError`.
- There is no command-line program.

## Running the tests

```
pip install .[test]
pytest
```