from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

from pydantic import BaseModel, field_validator

# Fixed column layouts of the persisted tables. Order is part of the contract.
MAIN_HEADER: List[str] = ["審議会名", "開催日", "開催時間", "議題", "詳細URL"]
HISTORY_HEADER: List[str] = ["実行日時", "ステータス", "処理件数", "エラー詳細"]

MAIN_COLUMNS = len(MAIN_HEADER)
HISTORY_COLUMNS = len(HISTORY_HEADER)

# Row 1 holds the header.
FIRST_DATA_ROW = 2

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class MeetingRecord(BaseModel):
    """
    One committee meeting, normalized across sources.

    detail_url is the identity key within a table. date is mandatory: a
    meeting the adapter cannot date is not publishable and never gets built.
    """

    name: str = ""
    date: str
    time: str = ""
    agenda: str = ""
    detail_url: str

    @field_validator("date")
    @classmethod
    def _date_is_iso(cls, v: str) -> str:
        if not _ISO_DATE_RE.match(v or ""):
            raise ValueError(f"date must be YYYY-MM-DD, got {v!r}")
        return v

    @field_validator("detail_url")
    @classmethod
    def _detail_url_is_absolute(cls, v: str) -> str:
        v = (v or "").strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"detail_url must be an absolute URL, got {v!r}")
        return v

    def to_row(self) -> List[str]:
        return [self.name, self.date, self.time, self.agenda, self.detail_url]

    @classmethod
    def from_row(cls, row: Sequence[str]) -> "MeetingRecord":
        cells = pad_row(row, MAIN_COLUMNS)
        return cls(
            name=cells[0],
            date=cells[1],
            time=cells[2],
            agenda=cells[3],
            detail_url=cells[4],
        )


class RunStatus(str, Enum):
    SUCCESS = "成功"
    FAILURE = "失敗"


@dataclass(frozen=True)
class ExecutionLogEntry:
    timestamp: str
    status: RunStatus
    summary: str
    detail: str = "-"

    def to_row(self) -> List[str]:
        return [self.timestamp, self.status.value, self.summary, self.detail]


def pad_row(row: Sequence[str], width: int) -> List[str]:
    """
    Table services trim trailing empty cells; pad back to a fixed width
    (and cut anything beyond it).
    """
    cells = [str(c) if c is not None else "" for c in row][:width]
    cells.extend([""] * (width - len(cells)))
    return cells
