from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Callable, List, Optional

from pydantic import ValidationError

from ..errors import HttpFetchError, ListingFetchError
from ..models import MeetingRecord
from .http import HttpFetcher
from .throttle import RateLimitedQueue
from .types import (
    DetailFields,
    DetailResult,
    ListingEntry,
    SourceConfig,
    Unresolved,
)

ALL_DETAIL_FIELDS = frozenset({"name", "date", "time", "agenda"})


def absolutize_url(href: str, *, origin: str, base: str) -> str:
    """
    'https://…' stays as-is, '/path' is joined to the origin, anything else
    is treated as relative to base.
    """
    href = href.strip()
    if href.startswith("http"):
        return href
    if href.startswith("/"):
        return origin.rstrip("/") + href
    return base.rstrip("/") + "/" + href


class BaseAdapter(ABC):
    """
    Strategy:
    - list stage: one listing fetch -> ListingEntry candidates (fatal on failure)
    - detail stage: one fetch per candidate through the rate-limited queue
      (failures recovered per record)
    - records without a resolvable date are dropped
    """

    def __init__(
        self,
        cfg: SourceConfig,
        fetcher: HttpFetcher,
        queue: RateLimitedQueue,
        *,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.cfg = cfg
        self.fetcher = fetcher
        self.queue = queue
        self._today = today or (lambda: datetime.now().date())

    @property
    def tag(self) -> str:
        return f"[{self.cfg.source_id}]"

    @abstractmethod
    async def list_entries(self) -> List[ListingEntry]:
        """Fetch and parse the listing. Raise ListingFetchError on failure."""

    @abstractmethod
    def parse_detail(self, html: str) -> DetailResult:
        """Extract detail fields from a fetched detail page."""

    async def fetch_listing(self, url: str) -> str:
        try:
            return await self.fetcher.fetch(url)
        except HttpFetchError as e:
            raise ListingFetchError(self.cfg.source_id, f"{self.cfg.source_id} listing fetch failed: {e}") from e

    async def fetch_detail(self, entry: ListingEntry) -> DetailResult:
        """Fetch + parse one detail page. Never raises."""
        print(f"{self.tag} fetching details for: {entry.name}")
        try:
            html = await self.fetcher.fetch(entry.detail_url)
            return self.parse_detail(html)
        except Exception as e:
            print(f"{self.tag} detail parse failed: {entry.detail_url} | err: {e!r}")
            return Unresolved(fields=DetailFields(), missing=ALL_DETAIL_FIELDS, error=repr(e))

    def build_record(self, entry: ListingEntry, result: DetailResult) -> Optional[MeetingRecord]:
        fields = result.fields
        record_date = fields.date or entry.date or ""
        if not record_date:
            return None
        try:
            return MeetingRecord(
                name=fields.name or entry.name,
                date=record_date,
                time=fields.time,
                agenda=fields.agenda,
                detail_url=entry.detail_url,
            )
        except ValidationError as e:
            print(f"{self.tag} invalid record dropped: {entry.detail_url} | err: {e.errors()[0]['msg']}")
            return None

    async def scrape(self) -> List[MeetingRecord]:
        print(f"{self.tag} start scraping source_id={self.cfg.source_id} seed_url={self.cfg.seed_url}")

        entries = await self.list_entries()
        print(f"{self.tag} found {len(entries)} candidates on listing")

        results = await self.queue.map(self.fetch_detail, entries)

        records: List[MeetingRecord] = []
        stats = {"ok": 0, "unresolved": 0, "skip_no_date": 0}
        for entry, result in zip(entries, results):
            if isinstance(result, Unresolved):
                stats["unresolved"] += 1
            record = self.build_record(entry, result)
            if record is None:
                stats["skip_no_date"] += 1
                print(f"{self.tag} skipping entry due to missing date: {entry.detail_url}")
                continue
            records.append(record)
            stats["ok"] += 1

        print(f"{self.tag} stats: {stats}")
        print(f"{self.tag} successfully scraped {len(records)} meetings")
        return records
