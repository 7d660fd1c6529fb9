"""Client for the native TCP protocol of the database server."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from . import net
from .block import Block
from .exceptions import ExceptionInfo, ServerException
from .options import ClientOptions, CompressionMethod, ServerInfo
from .protocol import ClientCode, CompressionState, ServerCode, Stage
from .streams import BufferedInput, BufferedOutput
from .wire import (
    CodedInputStream,
    CodedOutputStream,
    read_fixed,
    read_string,
    read_uint64,
    write_fixed,
    write_string,
    write_uint64,
)

DBMS_NAME = "ClickHouse"
DBMS_VERSION_MAJOR = 1
DBMS_VERSION_MINOR = 2
REVISION = 54405

MIN_REVISION_WITH_TEMPORARY_TABLES = 50264
MIN_REVISION_WITH_TOTAL_ROWS_IN_PROGRESS = 51554
MIN_REVISION_WITH_BLOCK_INFO = 51903
MIN_REVISION_WITH_CLIENT_INFO = 54032
MIN_REVISION_WITH_SERVER_TIMEZONE = 54058
MIN_REVISION_WITH_QUOTA_KEY_IN_CLIENT_INFO = 54060
MIN_REVISION_WITH_SERVER_DISPLAY_NAME = 54372
MIN_REVISION_WITH_VERSION_PATCH = 54401

_INITIAL_ADDRESS = "[::ffff:127.0.0.1]:0"
_IFACE_TCP = 1
_QUERY_KIND_INITIAL = 1

ColumnLoader = Callable[[str, CodedInputStream, int], Any]


@dataclass
class Profile:
    """Profiling information sent by the server."""

    rows: int = 0
    blocks: int = 0
    bytes: int = 0
    applied_limit: bool = False
    rows_before_limit: int = 0
    calculated_rows_before_limit: bool = False


@dataclass
class Progress:
    """Query progress sent by the server."""

    rows: int = 0
    bytes: int = 0
    total_rows: int = 0


class QueryHandler:
    """Receives the events of a running query and records what the server reported."""

    def __init__(self) -> None:
        self.progress: Optional[Progress] = None
        self.profile: Optional[Profile] = None
        self.finished = False
        self.exception: Optional[ExceptionInfo] = None

    def on_data(self, block: Block) -> None:
        """Called for every data block."""

    def on_data_cancelable(self, block: Block) -> bool:
        """Called for every data block; returning False cancels the query."""
        return True

    def on_progress(self, progress: Progress) -> None:
        """Record the latest progress reported by the server."""
        self.progress = progress

    def on_profile(self, profile: Profile) -> None:
        """Record the profiling information sent by the server."""
        self.profile = profile

    def on_finish(self) -> None:
        """Mark the query as finished."""
        self.finished = True

    def on_server_exception(self, exception: ExceptionInfo) -> None:
        """Record the exception reported by the server."""
        self.exception = exception


class _SelectHandler(QueryHandler):
    def __init__(self, callback: Callable[[Block], Any]):
        super().__init__()
        self._callback = callback

    def on_data(self, block: Block) -> None:
        self._callback(block)


class _CancelableHandler(QueryHandler):
    def __init__(self, callback: Callable[[Block], bool]):
        super().__init__()
        self._callback = callback

    def on_data_cancelable(self, block: Block) -> bool:
        return bool(self._callback(block))


class Client:
    """A connection to a server speaking the native protocol.

    ``column_loader(type_name, stream, rows)`` builds a column of the named type
    holding ``rows`` values read from ``stream``, or returns None for an unknown
    type. Columns must support ``len()``, carry a ``type_name`` attribute and
    write their values with ``save(stream)``.
    """

    def __init__(self, options: ClientOptions, column_loader: ColumnLoader):
        if options.compression_method is not CompressionMethod.NONE:
            raise ValueError(f"unsupported compression method {options.compression_method.name}")
        self._options = options
        self._load_column = column_loader
        self._handler: Optional[QueryHandler] = None
        self._compression = CompressionState.DISABLE
        self._sock = None
        self._input: Optional[CodedInputStream] = None
        self._output: Optional[CodedOutputStream] = None
        self.server_info = ServerInfo()

        attempt = 0
        try:
            while True:
                try:
                    self.reset_connection()
                    break
                except OSError:
                    attempt += 1
                    if attempt > options.send_retries:
                        raise
                    time.sleep(options.retry_timeout)
        except BaseException:
            self.close()
            raise

    @property
    def options(self) -> ClientOptions:
        return self._options

    # public interface

    def execute(self, query: str, handler: Optional[QueryHandler] = None) -> None:
        """Run an arbitrary query, reporting its events to ``handler``."""
        self._handler = handler
        try:
            if self._options.ping_before_query:
                self._retry_guard(self.ping)
            self._send_query(query)
            while self._receive_packet()[0]:
                pass
        finally:
            self._handler = None

    def select(self, query: str, callback: Callable[[Block], Any]) -> None:
        """Run a select query; ``callback`` receives every data block."""
        self.execute(query, _SelectHandler(callback))

    def select_cancelable(self, query: str, callback: Callable[[Block], bool]) -> None:
        """Run a select query that is cancelled when ``callback`` returns False."""
        self.execute(query, _CancelableHandler(callback))

    def insert(self, table_name: str, block: Block, prepared: bool = False) -> None:
        """Insert ``block`` into ``table_name``.

        With ``prepared`` the insert query must already have been sent by
        :meth:`prepare_insert`.
        """
        if not prepared:
            if self._options.ping_before_query:
                self._retry_guard(self.ping)
            fields = ",".join(item.name for item in block)
            self._send_query(f"INSERT INTO {table_name} ( {fields} ) VALUES")
            while True:
                ok, packet = self._receive_packet()
                if not ok:
                    raise RuntimeError("fail to receive data packet")
                if packet == ServerCode.DATA:
                    break

        self._send_data(block)
        if block.column_count > 0:
            self._send_data(Block())

        while self._receive_packet()[0]:
            pass

    def prepare_insert(self, query: str, callback: Callable[[Block], Any]) -> None:
        """Send an insert query and pass the server's sample block to ``callback``."""
        self._handler = _SelectHandler(callback)
        try:
            if self._options.ping_before_query:
                self._retry_guard(self.ping)
            self._send_query(query)
            if not self._receive_sample_packet():
                raise RuntimeError("fail to receive data packet")
        finally:
            self._handler = None

    def ping(self) -> None:
        """Check that the server answers."""
        write_uint64(self._output, ClientCode.PING)
        self._output.flush()
        ok, packet = self._receive_packet()
        if not ok or packet != ServerCode.PONG:
            raise RuntimeError("fail to ping server")

    def reset_connection(self) -> None:
        """Open a new connection with the initial settings and shake hands."""
        options = self._options
        sock = net.connect(options.host, options.port)
        if options.tcp_keepalive:
            net.set_tcp_keepalive(
                sock,
                options.tcp_keepalive_idle,
                options.tcp_keepalive_interval,
                options.tcp_keepalive_count,
            )
        self._close_socket()
        self._sock = sock
        self._input = CodedInputStream(BufferedInput(net.SocketInput(sock)))
        self._output = CodedOutputStream(BufferedOutput(net.SocketOutput(sock)))

        if not self._handshake():
            raise RuntimeError(f"fail to connect to {options.host}")

    def close(self) -> None:
        """Close the connection."""
        self._close_socket()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # connection handling

    def _close_socket(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

    def _retry_guard(self, func: Callable[[], None]) -> None:
        attempt = 0
        while True:
            try:
                func()
                return
            except OSError as exc:
                ok = True
                try:
                    time.sleep(self._options.retry_timeout)
                    self.reset_connection()
                except Exception:
                    ok = False
                if not ok and attempt == self._options.send_retries:
                    raise exc
            attempt += 1

    def _handshake(self) -> bool:
        self._send_hello()
        return self._receive_hello()

    def _send_hello(self) -> None:
        out = self._output
        write_uint64(out, ClientCode.HELLO)
        write_string(out, f"{DBMS_NAME} client")
        write_uint64(out, DBMS_VERSION_MAJOR)
        write_uint64(out, DBMS_VERSION_MINOR)
        write_uint64(out, REVISION)
        write_string(out, self._options.default_database)
        write_string(out, self._options.user)
        write_string(out, self._options.password)
        out.flush()

    def _receive_hello(self) -> bool:
        stream = self._input
        try:
            packet = read_uint64(stream)
        except EOFError:
            return False

        if packet == ServerCode.HELLO:
            info = self.server_info
            info.name = read_string(stream)
            info.version_major = read_uint64(stream)
            info.version_minor = read_uint64(stream)
            info.revision = read_uint64(stream)
            if info.revision >= MIN_REVISION_WITH_SERVER_TIMEZONE:
                info.timezone = read_string(stream)
            if info.revision >= MIN_REVISION_WITH_SERVER_DISPLAY_NAME:
                info.display_name = read_string(stream)
            if info.revision >= MIN_REVISION_WITH_VERSION_PATCH:
                info.version_patch = read_uint64(stream)
            return True
        if packet == ServerCode.EXCEPTION:
            self._receive_exception(rethrow=True)
        return False

    # receiving

    def _receive_packet(self) -> tuple[bool, Optional[int]]:
        """Read one packet; the flag tells whether more packets follow."""
        stream = self._input
        try:
            packet = read_uint64(stream)
        except EOFError:
            return False, None

        if packet == ServerCode.DATA:
            self._receive_data()
            return True, packet

        if packet == ServerCode.EXCEPTION:
            self._receive_exception()
            return False, packet

        if packet == ServerCode.PROFILE_INFO:
            profile = Profile(
                rows=read_uint64(stream),
                blocks=read_uint64(stream),
                bytes=read_uint64(stream),
                applied_limit=read_fixed(stream, "?"),
                rows_before_limit=read_uint64(stream),
                calculated_rows_before_limit=read_fixed(stream, "?"),
            )
            if self._handler:
                self._handler.on_profile(profile)
            return True, packet

        if packet == ServerCode.PROGRESS:
            progress = self._read_progress()
            if self._handler:
                self._handler.on_progress(progress)
            return True, packet

        if packet == ServerCode.PONG:
            return True, packet

        if packet == ServerCode.END_OF_STREAM:
            if self._handler:
                self._handler.on_finish()
            return False, packet

        raise RuntimeError(f"unimplemented {packet}")

    def _read_progress(self) -> Progress:
        stream = self._input
        progress = Progress(rows=read_uint64(stream), bytes=read_uint64(stream))
        if REVISION >= MIN_REVISION_WITH_TOTAL_ROWS_IN_PROGRESS:
            progress.total_rows = read_uint64(stream)
        return progress

    def _receive_sample_packet(self) -> bool:
        stream = self._input
        while True:
            try:
                packet = read_uint64(stream)
            except EOFError:
                return False

            if packet == ServerCode.DATA:
                self._receive_data()
                return True
            if packet == ServerCode.EXCEPTION:
                self._receive_exception(rethrow=True)
                return False
            if packet == ServerCode.PROGRESS:
                self._read_progress()
                continue
            if packet == ServerCode.LOG:
                self._receive_data(log=True)
                continue
            raise RuntimeError(f"unexpected package type {packet} for insert query")

    def _read_block(self, stream: CodedInputStream) -> Block:
        block = Block()
        if REVISION >= MIN_REVISION_WITH_BLOCK_INFO:
            read_uint64(stream)
            block.info.is_overflows = read_fixed(stream, "B")
            read_uint64(stream)
            block.info.bucket_num = read_fixed(stream, "i")
            read_uint64(stream)

        num_columns = read_uint64(stream)
        num_rows = read_uint64(stream)

        for _ in range(num_columns):
            name = read_string(stream)
            type_name = read_string(stream)
            column = self._load_column(type_name, stream, num_rows)
            if column is None:
                raise RuntimeError(f"unsupported column type: {type_name}")
            block.append_column(name, column)
        return block

    def _receive_data(self, log: bool = False) -> None:
        if REVISION >= MIN_REVISION_WITH_TEMPORARY_TABLES:
            read_string(self._input)

        block = self._read_block(self._input)

        if self._handler and not log:
            self._handler.on_data(block)
            if not self._handler.on_data_cancelable(block):
                self._send_cancel()

    def _receive_exception(self, rethrow: bool = False) -> None:
        stream = self._input
        root = current = ExceptionInfo()
        while True:
            current.code = read_fixed(stream, "i")
            current.name = read_string(stream)
            current.display_text = read_string(stream)
            current.stack_trace = read_string(stream)
            if not read_fixed(stream, "?"):
                break
            current.nested = ExceptionInfo()
            current = current.nested

        if self._handler:
            self._handler.on_server_exception(root)

        if rethrow or self._options.rethrow_exceptions:
            raise ServerException(root)

    # sending

    def _send_cancel(self) -> None:
        write_uint64(self._output, ClientCode.CANCEL)
        self._output.flush()

    def _send_query(self, query: str) -> None:
        out = self._output
        revision = self.server_info.revision
        write_uint64(out, ClientCode.QUERY)
        write_string(out, "")

        if revision >= MIN_REVISION_WITH_CLIENT_INFO:
            write_fixed(out, "B", _QUERY_KIND_INITIAL)
            write_string(out, "")  # initial user
            write_string(out, "")  # initial query id
            write_string(out, _INITIAL_ADDRESS)
            write_fixed(out, "B", _IFACE_TCP)
            write_string(out, "")  # os user
            write_string(out, "")  # client hostname
            write_string(out, f"{DBMS_NAME} client")
            write_uint64(out, DBMS_VERSION_MAJOR)
            write_uint64(out, DBMS_VERSION_MINOR)
            write_uint64(out, REVISION)
            if revision >= MIN_REVISION_WITH_QUOTA_KEY_IN_CLIENT_INFO:
                write_string(out, "")  # quota key
            if revision >= MIN_REVISION_WITH_VERSION_PATCH:
                write_uint64(out, 0)

        write_string(out, "")  # per-query settings
        write_uint64(out, Stage.COMPLETE)
        write_uint64(out, self._compression)
        write_string(out, query)
        self._send_data(Block())
        out.flush()

    def _write_block(self, block: Block, out: CodedOutputStream) -> None:
        if self.server_info.revision >= MIN_REVISION_WITH_BLOCK_INFO:
            write_uint64(out, 1)
            write_fixed(out, "B", block.info.is_overflows)
            write_uint64(out, 2)
            write_fixed(out, "i", block.info.bucket_num)
            write_uint64(out, 0)

        write_uint64(out, block.column_count)
        write_uint64(out, block.row_count)
        for item in block:
            write_string(out, item.name)
            write_string(out, item.column.type_name)
            item.column.save(out)

    def _send_data(self, block: Block) -> None:
        out = self._output
        write_uint64(out, ClientCode.DATA)
        if self.server_info.revision >= MIN_REVISION_WITH_TEMPORARY_TABLES:
            write_string(out, "")
        self._write_block(block, out)
        out.flush()