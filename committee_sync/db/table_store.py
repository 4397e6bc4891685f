"""
Row-oriented table service interface.

Tables are addressed by name; rows are 1-based (row 1 is the header).
Implementations: SheetsTableStore (Google Sheets) and InMemoryTableStore
(dry runs, tests). Callers never retry; every call is safe to retry.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import TableStoreError

Row = List[str]


class TableStore(ABC):
    @abstractmethod
    async def table_exists(self, name: str) -> bool: ...

    @abstractmethod
    async def create_table(self, name: str, header: Sequence[str]) -> None: ...

    @abstractmethod
    async def read_range(
        self, name: str, from_row: int, to_row: Optional[int], columns: int
    ) -> List[Row]:
        """Rows from_row..to_row (inclusive, None = to the end), first `columns` cells."""

    @abstractmethod
    async def append_row(self, name: str, row: Sequence[str]) -> None: ...

    @abstractmethod
    async def update_row(self, name: str, row_index: int, row: Sequence[str]) -> None: ...

    async def ensure_table(self, name: str, header: Sequence[str]) -> bool:
        """Create the table with its header row if missing. Returns True if created."""
        if await self.table_exists(name):
            return False
        await self.create_table(name, header)
        print(f"[table_store] created table: {name}")
        return True


class InMemoryTableStore(TableStore):
    """
    Dict-backed store with the same observable behavior as the sheet:
    trailing empty cells are trimmed on read.

    `calls` keeps an ordered journal of writes: ("create" | "append" | "update", name, detail).
    """

    def __init__(self, tables: Optional[Dict[str, List[Row]]] = None) -> None:
        self.tables: Dict[str, List[Row]] = {
            name: [list(r) for r in rows] for name, rows in (tables or {}).items()
        }
        self.calls: List[Tuple[str, str, object]] = []

    def _rows(self, name: str) -> List[Row]:
        try:
            return self.tables[name]
        except KeyError:
            raise TableStoreError(f"Unable to parse range: table {name!r} does not exist") from None

    async def table_exists(self, name: str) -> bool:
        return name in self.tables

    async def create_table(self, name: str, header: Sequence[str]) -> None:
        if name in self.tables:
            raise TableStoreError(f"A sheet with the name {name!r} already exists")
        self.tables[name] = [list(header)]
        self.calls.append(("create", name, list(header)))

    async def read_range(
        self, name: str, from_row: int, to_row: Optional[int], columns: int
    ) -> List[Row]:
        rows = self._rows(name)
        stop = len(rows) if to_row is None else min(to_row, len(rows))
        out: List[Row] = []
        for row in rows[from_row - 1 : stop]:
            cells = list(row[:columns])
            while cells and cells[-1] == "":
                cells.pop()
            out.append(cells)
        while out and not out[-1]:
            out.pop()
        return out

    async def append_row(self, name: str, row: Sequence[str]) -> None:
        rows = self._rows(name)
        rows.append(list(row))
        self.calls.append(("append", name, list(row)))

    async def update_row(self, name: str, row_index: int, row: Sequence[str]) -> None:
        if row_index < 1:
            raise TableStoreError(f"invalid row index {row_index}")
        rows = self._rows(name)
        while len(rows) < row_index:
            rows.append([])
        rows[row_index - 1] = list(row)
        self.calls.append(("update", name, (row_index, list(row))))
