from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass, replace
from typing import List, Mapping, Optional

from .config import AppConfig, load_config
from .db.execution_history import log_execution
from .db.table_store import InMemoryTableStore, TableStore
from .errors import ConfigError
from .models import RunStatus
from .sources.base import BaseAdapter
from .sources.http import HttpFetcher
from .sources.registry import get_adapter
from .sources.types import SourceConfig
from .storage import UpsertResult, upsert_meetings

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


@dataclass
class RunCounters:
    sources_run: int = 0
    succeeded: int = 0
    failed: int = 0
    updated: int = 0
    inserted: int = 0


def summarize_upsert(result: UpsertResult) -> str:
    return f"更新{result.updated}件、新規{result.inserted}件"


def _error_message(e: BaseException) -> str:
    return str(e) or type(e).__name__


async def process_source(
    cfg: SourceConfig,
    adapter: BaseAdapter,
    store: TableStore,
    *,
    offset_hours: int = 9,
) -> UpsertResult:
    """
    scrape -> upsert -> one SUCCESS history row. Exceptions from scrape or
    upsert propagate unlogged; the caller decides where FAILURE is written.
    """
    print(f"[source] start source_id={cfg.source_id} adapter={cfg.adapter}")
    records = await adapter.scrape()

    if not records:
        print(f"[source] WARNING no meetings found source_id={cfg.source_id}")
        await log_execution(store, cfg.history_table_name, RunStatus.SUCCESS, "0件", offset_hours=offset_hours)
        return UpsertResult()

    print(f"[source] scraped {len(records)} meetings, updating table={cfg.main_table_name}")
    result = await upsert_meetings(store, records, cfg.main_table_name)
    print(
        f"[source] done source_id={cfg.source_id} "
        f"updated={result.updated} inserted={result.inserted}"
    )

    await log_execution(
        store, cfg.history_table_name, RunStatus.SUCCESS, summarize_upsert(result), offset_hours=offset_hours
    )
    return result


async def _log_failure(
    store: TableStore, sources: List[SourceConfig], error: BaseException, offset_hours: int
) -> None:
    for cfg in sources:
        await log_execution(
            store,
            cfg.history_table_name,
            RunStatus.FAILURE,
            type(error).__name__,
            _error_message(error),
            offset_hours=offset_hours,
        )


def _print_summary(counters: RunCounters) -> None:
    # grep '[pipeline][summary]'
    print(
        f"[pipeline][summary]"
        f" sources_run={counters.sources_run}"
        f" succeeded={counters.succeeded}"
        f" failed={counters.failed}"
        f" updated={counters.updated}"
        f" inserted={counters.inserted}"
    )


async def run_sources(
    config: AppConfig,
    store: TableStore,
    adapters: Mapping[str, BaseAdapter],
) -> int:
    """
    Run every configured source in order, one at a time. Returns the exit code.

    Default mode: the first failing source stops the run; a FAILURE row is
    written to every configured source's history table and the exit code is
    non-zero. Sources after the failing one are not attempted.

    isolate_failures: a failure is written to the failing source's history
    table only and the remaining sources still run.
    """
    counters = RunCounters()
    sources = list(config.sources)
    offset = config.timestamp_offset_hours

    print("[pipeline] start")
    try:
        for cfg in sources:
            counters.sources_run += 1
            try:
                result = await process_source(cfg, adapters[cfg.source_id], store, offset_hours=offset)
            except Exception as e:
                if not config.isolate_failures:
                    raise
                counters.failed += 1
                print(f"[source] ERROR source_id={cfg.source_id}: {type(e).__name__}: {e}")
                await log_execution(
                    store,
                    cfg.history_table_name,
                    RunStatus.FAILURE,
                    type(e).__name__,
                    _error_message(e),
                    offset_hours=offset,
                )
                continue

            counters.succeeded += 1
            counters.updated += result.updated
            counters.inserted += result.inserted

    except Exception as e:
        counters.failed += 1
        print(f"[pipeline] FAILED: {type(e).__name__}: {e}")
        await _log_failure(store, sources, e, offset)
        print("[pipeline] error logged to history tables")
        _print_summary(counters)
        return EXIT_FAILURE

    _print_summary(counters)
    if counters.failed:
        return EXIT_FAILURE
    print("[pipeline] all sources completed successfully")
    return EXIT_OK


def build_store(config: AppConfig, *, dry_run: bool) -> TableStore:
    if dry_run:
        return InMemoryTableStore()

    from .db.sheets_client import SheetsTableStore

    return SheetsTableStore.from_config(config.spreadsheet_id or "", config.credentials_file)


async def run(config: AppConfig, *, dry_run: bool = False) -> int:
    store = build_store(config, dry_run=dry_run)
    async with HttpFetcher(config.user_agent, timeout_s=config.http_timeout_s) as fetcher:
        adapters = {
            cfg.source_id: get_adapter(cfg, fetcher, request_interval_s=config.request_interval_s)
            for cfg in config.sources
        }
        code = await run_sources(config, store, adapters)

    if dry_run and isinstance(store, InMemoryTableStore):
        for name, rows in store.tables.items():
            print(f"[pipeline][dry-run] table={name} rows={max(len(rows) - 1, 0)}")
    return code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync committee meeting announcements into the meetings spreadsheet."
    )
    parser.add_argument(
        "--source",
        action="append",
        default=None,
        help="Only run this source_id (repeatable). Configured order is kept.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Scrape and reconcile against an in-memory table; nothing is written.",
    )
    parser.add_argument(
        "--isolate-failures",
        action="store_true",
        help="Keep going after a failing source; log the failure to that source only.",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(require_spreadsheet=not args.dry_run)
        if args.source:
            config = config.with_sources(args.source)
        if args.isolate_failures:
            config = replace(config, isolate_failures=True)
    except ConfigError as e:
        print(f"[pipeline] config error: {e}")
        return EXIT_CONFIG

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(run(config, dry_run=args.dry_run))
    except ConfigError as e:
        print(f"[pipeline] config error: {e}")
        return EXIT_CONFIG


def cli() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    cli()
