"""
Append one row per source run to that source's history table.
Pure observability: must never raise into the caller, because a logging
failure must not replace the run outcome being reported.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..models import HISTORY_HEADER, ExecutionLogEntry, RunStatus
from .table_store import TableStore

logger = logging.getLogger(__name__)

# The history tables are read by people in Japan. Fixed offset, no tz database.
DEFAULT_OFFSET_HOURS = 9


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(now_utc: datetime, offset_hours: int = DEFAULT_OFFSET_HOURS) -> str:
    """UTC instant + fixed offset as 'YYYY-MM-DD HH:MM:SS'."""
    if now_utc.tzinfo is not None:
        now_utc = now_utc.astimezone(timezone.utc)
    local = now_utc + timedelta(hours=offset_hours)
    return local.strftime("%Y-%m-%d %H:%M:%S")


def build_entry(
    status: RunStatus,
    summary: str,
    detail: str = "-",
    *,
    now: Optional[datetime] = None,
    offset_hours: int = DEFAULT_OFFSET_HOURS,
) -> ExecutionLogEntry:
    return ExecutionLogEntry(
        timestamp=format_timestamp(now or _utc_now(), offset_hours),
        status=status,
        summary=summary,
        detail=detail or "-",
    )


async def log_execution(
    store: TableStore,
    history_table_name: str,
    status: RunStatus,
    summary: str,
    detail: str = "-",
    *,
    now: Optional[datetime] = None,
    offset_hours: int = DEFAULT_OFFSET_HOURS,
) -> None:
    try:
        entry = build_entry(status, summary, detail, now=now, offset_hours=offset_hours)
        await store.ensure_table(history_table_name, HISTORY_HEADER)
        await store.append_row(history_table_name, entry.to_row())
        print(f"[history] logged execution: {history_table_name} {entry.status.value} - {entry.summary}")
    except Exception as e:
        logger.error(
            "[history] failed to log execution table=%s status=%s | %s: %s",
            history_table_name, status.value, type(e).__name__, e,
        )
