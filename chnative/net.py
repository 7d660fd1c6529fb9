"""Address resolution, TCP connection and socket-backed byte streams."""

from __future__ import annotations

import socket

from .streams import InputStream, OutputStream

LOCAL_NAMES = frozenset(
    {
        "localhost",
        "localhost.localdomain",
        "localhost6",
        "localhost6.localdomain6",
        "::1",
        "127.0.0.1",
    }
)

DEFAULT_CONNECT_TIMEOUT = 5.0


def is_local_name(host: str) -> bool:
    """Whether ``host`` names the loopback interface."""
    return host in LOCAL_NAMES


def resolve(host: str, port) -> list:
    """Resolve ``host`` and ``port`` to stream socket addresses.

    Non-local names only yield families that are configured on this system.
    """
    flags = 0 if is_local_name(host) else socket.AI_ADDRCONFIG
    return socket.getaddrinfo(
        host, str(port), socket.AF_UNSPEC, socket.SOCK_STREAM, 0, flags
    )


def connect(host: str, port, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> socket.socket:
    """Open a blocking TCP connection to the first address that accepts it."""
    last_error: OSError | None = None
    for family, socktype, proto, _canonname, address in resolve(host, port):
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError as exc:
            last_error = exc
            continue
        try:
            sock.settimeout(timeout)
            sock.connect(address)
        except OSError as exc:
            sock.close()
            last_error = exc
            continue
        sock.settimeout(None)
        return sock
    if last_error is not None:
        raise ConnectionError(f"fail to connect: {last_error}") from last_error
    raise ConnectionError("fail to connect")


def set_tcp_keepalive(sock: socket.socket, idle: int, interval: int, count: int) -> None:
    """Enable TCP keepalive probes; options the platform lacks are skipped."""
    options = [(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)]
    idle_option = getattr(socket, "TCP_KEEPIDLE", None) or getattr(socket, "TCP_KEEPALIVE", None)
    if idle_option is not None:
        options.append((socket.IPPROTO_TCP, idle_option, int(idle)))
    for name, value in (("TCP_KEEPINTVL", interval), ("TCP_KEEPCNT", count)):
        option = getattr(socket, name, None)
        if option is not None:
            options.append((socket.IPPROTO_TCP, option, int(value)))
    for level, option, value in options:
        try:
            sock.setsockopt(level, option, value)
        except OSError:
            pass


class SocketInput(InputStream):
    """Reads bytes from a connected socket."""

    def __init__(self, sock: socket.socket):
        self._sock = sock

    def _do_read(self, size: int) -> bytes:
        try:
            data = self._sock.recv(size)
        except OSError as exc:
            raise ConnectionError(f"can't receive string data: {exc}") from exc
        if not data:
            raise ConnectionError("closed")
        return data


class SocketOutput(OutputStream):
    """Writes bytes to a connected socket."""

    def __init__(self, sock: socket.socket):
        self._sock = sock

    def _do_write(self, data: bytes) -> None:
        try:
            self._sock.sendall(data)
        except OSError as exc:
            raise ConnectionError(f"fail to send data: {exc}") from exc