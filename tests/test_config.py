from __future__ import annotations

import pytest

from committee_sync.config import DEFAULT_SOURCES, load_config
from committee_sync.errors import ConfigError
from committee_sync.sources.adapters.meti import MetiCommitteeAdapter
from committee_sync.sources.adapters.occto import OcctoNewsFeedAdapter
from committee_sync.sources.http import HttpFetcher
from committee_sync.sources.registry import get_adapter

_ENV = (
    "SPREADSHEET_ID",
    "GOOGLE_APPLICATION_CREDENTIALS",
    "COMMITTEE_SYNC_USER_AGENT",
    "COMMITTEE_SYNC_REQUEST_INTERVAL_S",
    "COMMITTEE_SYNC_HTTP_TIMEOUT_S",
    "COMMITTEE_SYNC_ISOLATE_FAILURES",
    "COMMITTEE_SYNC_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    monkeypatch.setenv("SPREADSHEET_ID", " sheet-id ")

    cfg = load_config()

    assert cfg.spreadsheet_id == "sheet-id"
    assert cfg.request_interval_s == 0.5
    assert cfg.timestamp_offset_hours == 9
    assert cfg.isolate_failures is False
    assert [s.source_id for s in cfg.sources] == ["meti", "occto"]


def test_missing_spreadsheet_id_fails_fast():
    with pytest.raises(ConfigError):
        load_config()

    assert load_config(require_spreadsheet=False).spreadsheet_id is None


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SPREADSHEET_ID", "x")
    monkeypatch.setenv("COMMITTEE_SYNC_REQUEST_INTERVAL_S", "1.5")
    monkeypatch.setenv("COMMITTEE_SYNC_ISOLATE_FAILURES", "yes")
    monkeypatch.setenv("COMMITTEE_SYNC_LOG_LEVEL", "debug")

    cfg = load_config()

    assert cfg.request_interval_s == 1.5
    assert cfg.isolate_failures is True
    assert cfg.log_level == "DEBUG"


def test_bad_number_is_config_error(monkeypatch):
    monkeypatch.setenv("SPREADSHEET_ID", "x")
    monkeypatch.setenv("COMMITTEE_SYNC_HTTP_TIMEOUT_S", "soon")

    with pytest.raises(ConfigError):
        load_config()


@pytest.mark.parametrize("raw", ["0", "0.1", "-1"])
def test_request_interval_below_floor_is_rejected(monkeypatch, raw):
    monkeypatch.setenv("SPREADSHEET_ID", "x")
    monkeypatch.setenv("COMMITTEE_SYNC_REQUEST_INTERVAL_S", raw)

    with pytest.raises(ConfigError, match="at least 0.5"):
        load_config()


def test_request_interval_at_floor_is_accepted(monkeypatch):
    monkeypatch.setenv("SPREADSHEET_ID", "x")
    monkeypatch.setenv("COMMITTEE_SYNC_REQUEST_INTERVAL_S", "0.5")

    assert load_config().request_interval_s == 0.5


def test_with_sources_keeps_configured_order(monkeypatch):
    monkeypatch.setenv("SPREADSHEET_ID", "x")

    cfg = load_config().with_sources(["occto", "meti"])

    assert [s.source_id for s in cfg.sources] == ["meti", "occto"]


def test_registry_builds_adapter_per_source():
    fetcher = HttpFetcher("ua")
    meti, occto = DEFAULT_SOURCES

    a = get_adapter(meti, fetcher, request_interval_s=0.25)
    b = get_adapter(occto, fetcher)

    assert isinstance(a, MetiCommitteeAdapter)
    assert isinstance(b, OcctoNewsFeedAdapter)
    assert a.queue.min_interval_s == 0.25
    assert a.queue is not b.queue
