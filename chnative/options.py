"""Client connection options and server information."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CompressionMethod(Enum):
    """Methods of block compression."""

    NONE = -1
    LZ4 = 1


@dataclass
class ServerInfo:
    """What the server reports about itself during the handshake."""

    name: str = ""
    timezone: str = ""
    display_name: str = ""
    version_major: int = 0
    version_minor: int = 0
    version_patch: int = 0
    revision: int = 0


@dataclass(frozen=True)
class ClientOptions:
    """Settings for a client connection; durations are in seconds."""

    host: str = ""
    port: int = 9000
    default_database: str = "default"
    user: str = "default"
    password: str = ""
    rethrow_exceptions: bool = True
    ping_before_query: bool = False
    send_retries: int = 1
    retry_timeout: float = 5.0
    compression_method: CompressionMethod = CompressionMethod.NONE
    tcp_keepalive: bool = False
    tcp_keepalive_idle: float = 60.0
    tcp_keepalive_interval: float = 5.0
    tcp_keepalive_count: int = 3

    def __str__(self) -> str:
        compression = "LZ4" if self.compression_method is CompressionMethod.LZ4 else "None"
        return (
            f"Client({self.user}@{self.host}:{self.port}"
            f" ping_before_query:{int(self.ping_before_query)}"
            f" send_retries:{self.send_retries}"
            f" retry_timeout:{self.retry_timeout:g}"
            f" compression_method:{compression})"
        )