"""Exceptions reported by the server."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ExceptionInfo:
    """An exception as sent by the server, possibly with a nested cause."""

    code: int = 0
    name: str = ""
    display_text: str = ""
    stack_trace: str = ""
    nested: ExceptionInfo | None = None


class ServerException(RuntimeError):
    """Raised when the server reports an exception for a request."""

    def __init__(self, exception: ExceptionInfo):
        super().__init__(exception.display_text)
        self.exception = exception
        self.code = exception.code

    def __str__(self) -> str:
        return self.exception.display_text