from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

from .db.table_store import Row, TableStore
from .errors import ReconciliationWriteError
from .models import FIRST_DATA_ROW, MAIN_COLUMNS, MAIN_HEADER, MeetingRecord, pad_row

logger = logging.getLogger(__name__)

# 0-based position of the detail URL (the row key) in a main-table row
KEY_COLUMN = MAIN_COLUMNS - 1


@dataclass(frozen=True)
class UpsertResult:
    updated: int = 0
    inserted: int = 0


def build_key_index(rows: Sequence[Row]) -> Dict[str, int]:
    """
    detail_url -> 1-based row index for rows read from FIRST_DATA_ROW on.

    Duplicate keys already in the table are tolerated, not repaired: the
    later row wins. Rows with an empty key cell are ignored.
    """
    index: Dict[str, int] = {}
    for offset, row in enumerate(rows):
        key = pad_row(row, MAIN_COLUMNS)[KEY_COLUMN].strip()
        if key:
            index[key] = FIRST_DATA_ROW + offset
    return index


async def read_existing_rows(store: TableStore, table_name: str) -> List[Row]:
    rows = await store.read_range(table_name, FIRST_DATA_ROW, None, MAIN_COLUMNS)
    return [pad_row(r, MAIN_COLUMNS) for r in rows]


async def upsert_meetings(
    store: TableStore,
    records: Sequence[MeetingRecord],
    table_name: str,
) -> UpsertResult:
    """
    Merge records into table_name keyed by detail_url.

    Known keys get a full-row overwrite at their row; unknown keys are
    appended. Writes go out one at a time in input order. A failed write
    raises ReconciliationWriteError; rows already written stay written.

    Read failures propagate: treating an unreadable table as empty would
    append a duplicate of every row.
    """
    await store.ensure_table(table_name, MAIN_HEADER)

    existing = await read_existing_rows(store, table_name)
    key_index = build_key_index(existing)
    next_row = FIRST_DATA_ROW + len(existing)

    updated = 0
    inserted = 0

    for record in records:
        row = record.to_row()
        row_index = key_index.get(record.detail_url)

        try:
            if row_index is not None:
                await store.update_row(table_name, row_index, row)
            else:
                await store.append_row(table_name, row)
        except Exception as e:
            logger.error(
                "[storage] write FAILED table=%s row=%s url=%s | %s: %s",
                table_name, row_index, record.detail_url, type(e).__name__, e,
            )
            raise ReconciliationWriteError(
                table_name,
                row_index,
                f"Failed to write {record.detail_url} to {table_name}: {e}",
            ) from e

        if row_index is not None:
            updated += 1
            print(f"[storage] updated row {row_index}: {record.name}")
        else:
            # a repeated key later in this batch must hit the row just appended
            key_index[record.detail_url] = next_row
            next_row += 1
            inserted += 1
            print(f"[storage] inserted new row: {record.name}")

    return UpsertResult(updated=updated, inserted=inserted)
