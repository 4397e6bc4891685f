# tests/test_pipeline.py
"""
Orchestrator: sequential per-source processing, history rows, failure
propagation (default) and per-source isolation (opt-in), summary line.
"""
from __future__ import annotations

import asyncio
import re
from dataclasses import replace
from unittest.mock import patch

from committee_sync.config import AppConfig
from committee_sync.db.table_store import InMemoryTableStore
from committee_sync.errors import ListingFetchError
from committee_sync.models import MAIN_HEADER, MeetingRecord
from committee_sync.pipeline import EXIT_CONFIG, EXIT_FAILURE, EXIT_OK, main, run_sources
from committee_sync.sources.types import SourceConfig

SOURCE_A = SourceConfig("a", "meti", "https://a.example/list", "A会議", "A会議_実行履歴")
SOURCE_B = SourceConfig("b", "occto", "https://b.example/feed", "B会議", "B会議_実行履歴")

CONFIG = AppConfig(spreadsheet_id="sheet-id", sources=(SOURCE_A, SOURCE_B))


def _rec(key: str) -> MeetingRecord:
    return MeetingRecord(name=key, date="2026-01-20", detail_url=f"https://example.go.jp/{key}")


class FakeAdapter:
    def __init__(self, records=None, error: Exception | None = None, journal: list | None = None, name: str = ""):
        self.records = records or []
        self.error = error
        self.calls = 0
        self.journal = journal
        self.name = name

    async def scrape(self):
        self.calls += 1
        if self.journal is not None:
            self.journal.append(self.name)
        if self.error:
            raise self.error
        return list(self.records)


def _history(store: InMemoryTableStore, cfg: SourceConfig) -> list[list[str]]:
    return store.tables.get(cfg.history_table_name, [])[1:]


def test_success_runs_sources_in_order_and_logs_counts():
    journal: list[str] = []
    store = InMemoryTableStore({"A会議": [MAIN_HEADER, _rec("x").to_row()]})
    adapters = {
        "a": FakeAdapter([_rec("x"), _rec("y")], journal=journal, name="a"),
        "b": FakeAdapter([_rec("z")], journal=journal, name="b"),
    }

    code = asyncio.run(run_sources(CONFIG, store, adapters))

    assert code == EXIT_OK
    assert journal == ["a", "b"]
    assert [r[1:3] for r in _history(store, SOURCE_A)] == [["成功", "更新1件、新規1件"]]
    assert [r[1:3] for r in _history(store, SOURCE_B)] == [["成功", "更新0件、新規1件"]]
    assert _history(store, SOURCE_A)[0][3] == "-"
    assert len(store.tables["B会議"]) == 2


def test_zero_records_is_success_and_touches_no_main_table():
    store = InMemoryTableStore()
    adapters = {"a": FakeAdapter([]), "b": FakeAdapter([])}

    code = asyncio.run(run_sources(CONFIG, store, adapters))

    assert code == EXIT_OK
    assert [r[1:3] for r in _history(store, SOURCE_A)] == [["成功", "0件"]]
    assert "A会議" not in store.tables
    assert "B会議" not in store.tables


def test_listing_failure_stops_run_and_logs_failure_everywhere():
    store = InMemoryTableStore()
    adapters = {
        "a": FakeAdapter(error=ListingFetchError("a", "a listing fetch failed: 503")),
        "b": FakeAdapter([_rec("z")]),
    }

    code = asyncio.run(run_sources(CONFIG, store, adapters))

    assert code == EXIT_FAILURE
    assert adapters["b"].calls == 0  # never attempted
    assert _history(store, SOURCE_A)[0][1:] == ["失敗", "ListingFetchError", "a listing fetch failed: 503"]
    # the top-level handler writes FAILURE to every configured source
    assert _history(store, SOURCE_B)[0][1:] == ["失敗", "ListingFetchError", "a listing fetch failed: 503"]
    assert "B会議" not in store.tables


def test_failure_in_second_source_keeps_first_source_results():
    store = InMemoryTableStore()
    adapters = {
        "a": FakeAdapter([_rec("x")]),
        "b": FakeAdapter(error=RuntimeError("boom")),
    }

    code = asyncio.run(run_sources(CONFIG, store, adapters))

    assert code == EXIT_FAILURE
    assert store.tables["A会議"][1] == _rec("x").to_row()
    assert [r[1] for r in _history(store, SOURCE_A)] == ["成功", "失敗"]
    assert [r[1] for r in _history(store, SOURCE_B)] == ["失敗"]


def test_isolate_failures_continues_and_logs_only_failing_source():
    store = InMemoryTableStore()
    adapters = {
        "a": FakeAdapter(error=ListingFetchError("a", "down")),
        "b": FakeAdapter([_rec("z")]),
    }

    code = asyncio.run(run_sources(replace(CONFIG, isolate_failures=True), store, adapters))

    assert code == EXIT_FAILURE
    assert adapters["b"].calls == 1
    assert [r[1:] for r in _history(store, SOURCE_A)] == [["失敗", "ListingFetchError", "down"]]
    assert [r[1:3] for r in _history(store, SOURCE_B)] == [["成功", "更新0件、新規1件"]]


def test_summary_line(capsys):
    store = InMemoryTableStore()
    adapters = {"a": FakeAdapter([_rec("x")]), "b": FakeAdapter([_rec("y"), _rec("z")])}

    asyncio.run(run_sources(CONFIG, store, adapters))

    out = capsys.readouterr().out
    summary = [l for l in out.splitlines() if "[pipeline][summary]" in l]
    assert len(summary) == 1
    pairs = dict(re.findall(r"(\w+)=(\d+)", summary[0]))
    assert pairs == {"sources_run": "2", "succeeded": "2", "failed": "0", "updated": "0", "inserted": "3"}


def test_main_without_spreadsheet_id_is_config_error(monkeypatch):
    monkeypatch.delenv("SPREADSHEET_ID", raising=False)

    assert main([]) == EXIT_CONFIG


def test_main_rejects_unknown_source(monkeypatch):
    monkeypatch.setenv("SPREADSHEET_ID", "sheet-id")

    assert main(["--source", "nope"]) == EXIT_CONFIG


def test_main_dry_run_passes_flags_through(monkeypatch):
    monkeypatch.delenv("SPREADSHEET_ID", raising=False)
    seen = {}

    async def fake_run(config, *, dry_run=False):
        seen["config"] = config
        seen["dry_run"] = dry_run
        return EXIT_OK

    with patch("committee_sync.pipeline.run", side_effect=fake_run):
        code = main(["--dry-run", "--source", "occto", "--isolate-failures"])

    assert code == EXIT_OK
    assert seen["dry_run"] is True
    assert seen["config"].isolate_failures is True
    assert [s.source_id for s in seen["config"].sources] == ["occto"]
