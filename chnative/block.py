"""A block of named columns that all hold the same number of rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator


@dataclass
class BlockInfo:
    """Extra information sent with every block."""

    is_overflows: int = 0
    bucket_num: int = -1


@dataclass
class BlockColumn:
    """A column of a block together with its name."""

    name: str
    column: Any


def _mismatch(name: str, rows: int, size: int) -> ValueError:
    return ValueError(
        "all columns in block must have same count of rows. "
        f"Name: [{name}], rows: [{rows}], columns: [{size}]"
    )


class Block:
    """An ordered set of named columns of equal length.

    A column is any object whose ``len()`` is its number of rows.
    ``len(block)`` is the number of columns.
    """

    def __init__(self):
        self.info = BlockInfo()
        self._columns: list[BlockColumn] = []
        self._rows = 0

    @property
    def column_count(self) -> int:
        """Number of columns in the block."""
        return len(self._columns)

    @property
    def row_count(self) -> int:
        """Number of rows in the block."""
        return self._rows

    def append_column(self, name: str, column) -> None:
        """Add a named column; it must have as many rows as those already present."""
        size = len(column)
        if not self._columns:
            self._rows = size
        elif size != self._rows:
            raise _mismatch(name, self._rows, size)
        self._columns.append(BlockColumn(name, column))

    def refresh_row_count(self) -> int:
        """Recount rows from the columns, checking they still agree."""
        rows = 0
        for position, item in enumerate(self._columns):
            size = len(item.column)
            if position == 0:
                rows = size
            elif size != rows:
                raise _mismatch(item.name, rows, size)
        self._rows = rows
        return rows

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._columns):
            raise IndexError(
                "column index is out of range. "
                f"Index: [{index}], columns: [{len(self._columns)}]"
            )

    def column_name(self, index: int) -> str:
        """Name of the column at ``index``."""
        self._check_index(index)
        return self._columns[index].name

    def __getitem__(self, index: int):
        self._check_index(index)
        return self._columns[index].column

    def __iter__(self) -> Iterator[BlockColumn]:
        return iter(list(self._columns))

    def __len__(self) -> int:
        return len(self._columns)