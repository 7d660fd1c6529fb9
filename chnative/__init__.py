"""Client for the ClickHouse native TCP protocol: streams, wire format, blocks and queries."""

__version__ = "0.1.0"

__all__ = ["block", "client", "exceptions", "net", "options", "protocol", "streams", "wire"]