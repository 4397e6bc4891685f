from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigError
from .sources.types import SourceConfig

load_dotenv()

DEFAULT_USER_AGENT = "committee-sync/0.1"
# detail fetches may be spaced further apart, never closer
MIN_REQUEST_INTERVAL_S = 0.5

METI_LIST_URL = "https://wwws.meti.go.jp/interface/honsho/committee/index.cgi/committee"
OCCTO_NEWS_JSON_URL = "https://www.occto.or.jp/_include/json/news-list.json"

# Processing order is the order of this tuple.
DEFAULT_SOURCES: Tuple[SourceConfig, ...] = (
    SourceConfig(
        source_id="meti",
        adapter="meti",
        seed_url=METI_LIST_URL,
        main_table_name="経済産業省",
        history_table_name="経済産業省_実行履歴",
    ),
    SourceConfig(
        source_id="occto",
        adapter="occto",
        seed_url=OCCTO_NEWS_JSON_URL,
        main_table_name="電力広域的運営推進機関",
        history_table_name="電力広域的運営推進機関_実行履歴",
    ),
)


@dataclass(frozen=True)
class AppConfig:
    spreadsheet_id: Optional[str]
    credentials_file: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    request_interval_s: float = MIN_REQUEST_INTERVAL_S
    http_timeout_s: float = 30.0
    timestamp_offset_hours: int = 9
    isolate_failures: bool = False
    log_level: str = "INFO"
    sources: Tuple[SourceConfig, ...] = DEFAULT_SOURCES

    def with_sources(self, source_ids: list[str]) -> "AppConfig":
        """Restrict to the given source ids, keeping configured order."""
        known = {s.source_id for s in self.sources}
        unknown = [s for s in source_ids if s not in known]
        if unknown:
            raise ConfigError(f"Unknown source id(s): {', '.join(unknown)}")
        wanted = set(source_ids)
        return replace(self, sources=tuple(s for s in self.sources if s.source_id in wanted))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y")


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def load_config(*, require_spreadsheet: bool = True) -> AppConfig:
    """
    Build the process-wide configuration once at startup.

    Env:
      SPREADSHEET_ID                     target spreadsheet (required unless dry run)
      GOOGLE_APPLICATION_CREDENTIALS     service-account JSON (optional)
      COMMITTEE_SYNC_USER_AGENT
      COMMITTEE_SYNC_REQUEST_INTERVAL_S  min seconds between detail fetches (>= 0.5)
      COMMITTEE_SYNC_HTTP_TIMEOUT_S
      COMMITTEE_SYNC_ISOLATE_FAILURES    true/false (default false)
      COMMITTEE_SYNC_LOG_LEVEL           logging level (default INFO)
    """
    spreadsheet_id = (os.getenv("SPREADSHEET_ID") or "").strip() or None

    # Fail fast if required env vars are missing
    if require_spreadsheet and not spreadsheet_id:
        raise ConfigError(
            "Missing required environment variable: SPREADSHEET_ID. "
            "Copy .env.example to .env and fill in the spreadsheet id."
        )

    request_interval_s = _env_float("COMMITTEE_SYNC_REQUEST_INTERVAL_S", MIN_REQUEST_INTERVAL_S)
    if request_interval_s < MIN_REQUEST_INTERVAL_S:
        raise ConfigError(
            f"COMMITTEE_SYNC_REQUEST_INTERVAL_S must be at least {MIN_REQUEST_INTERVAL_S}, "
            f"got {request_interval_s}"
        )

    return AppConfig(
        spreadsheet_id=spreadsheet_id,
        credentials_file=(os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or "").strip() or None,
        user_agent=(os.getenv("COMMITTEE_SYNC_USER_AGENT") or "").strip() or DEFAULT_USER_AGENT,
        request_interval_s=request_interval_s,
        http_timeout_s=_env_float("COMMITTEE_SYNC_HTTP_TIMEOUT_S", 30.0),
        isolate_failures=_env_bool("COMMITTEE_SYNC_ISOLATE_FAILURES", False),
        log_level=(os.getenv("COMMITTEE_SYNC_LOG_LEVEL") or "INFO").strip().upper(),
    )
