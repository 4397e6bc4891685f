from __future__ import annotations

import json
from datetime import date
from typing import Any, List, Optional

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, Field, ValidationError

from ...errors import ListingFetchError
from ..base import BaseAdapter, absolutize_url
from ..datetime_text import in_month_window, parse_date_time_text, parse_feed_date
from ..types import DetailFields, DetailResult, ListingEntry, detail_result

OCCTO_ORIGIN = "https://www.occto.or.jp"

# Committee schedule entries are filed under this top-level category.
TARGET_CATEGORY_ID = "50"
TARGET_CATEGORY_PARENT_ID = "0"


class OcctoCategory(BaseModel):
    id: str
    parent_id: str = ""


class OcctoNewsItem(BaseModel):
    title: str = ""
    published_date: str
    url: str = Field(min_length=1)
    categories: List[OcctoCategory] = Field(default_factory=list)

    def in_target_category(self) -> bool:
        return any(
            c.id == TARGET_CATEGORY_ID and c.parent_id == TARGET_CATEGORY_PARENT_ID
            for c in self.categories
        )

    def published_on(self) -> Optional[date]:
        return parse_feed_date(self.published_date)


def parse_news_items(payload: Any) -> List[OcctoNewsItem]:
    """
    Validate feed items one by one; malformed items are skipped, not fatal.
    The payload itself must be a JSON array.
    """
    if not isinstance(payload, list):
        raise ValueError(f"expected a JSON array, got {type(payload).__name__}")

    items: List[OcctoNewsItem] = []
    for idx, raw in enumerate(payload):
        try:
            items.append(OcctoNewsItem.model_validate(raw))
        except ValidationError as e:
            print(f"[occto] skipping malformed feed item #{idx}: {e.error_count()} error(s)")
    return items


def select_entries(items: List[OcctoNewsItem], today: date) -> List[ListingEntry]:
    """Category filter, then the current-month-plus-two window on published_date."""
    entries: List[ListingEntry] = []
    for item in items:
        if not item.in_target_category():
            continue
        published = item.published_on()
        if published is None:
            print(f"[occto] skipping item with unparseable published_date: {item.published_date!r}")
            continue
        if not in_month_window(published, today):
            continue
        entries.append(
            ListingEntry(
                name=item.title.strip(),
                detail_url=absolutize_url(item.url, origin=OCCTO_ORIGIN, base=OCCTO_ORIGIN),
            )
        )
    return entries


def _heading_with(soup: BeautifulSoup, tag: str, text: str) -> Tag | None:
    for h in soup.find_all(tag):
        if text in h.get_text():
            return h
    return None


def parse_detail_page(html: str) -> DetailResult:
    """
    name      <h1>
    date/time <p> after <h4>日時</h4>, e.g. 2026年2月17日（火曜日）18時00分～20時00分
    agenda    <li> items of the <ol> after <h4>予定議題</h4>
    """
    soup = BeautifulSoup(html, "html.parser")

    h1 = soup.find("h1")
    name = h1.get_text(strip=True) if h1 else ""

    date_str = ""
    time_str = ""
    when = _heading_with(soup, "h4", "日時")
    if when is not None:
        p = when.find_next_sibling("p")
        if p is not None:
            date_str, time_str = parse_date_time_text(p.get_text(strip=True))

    agenda = ""
    topics = _heading_with(soup, "h4", "予定議題")
    if topics is not None:
        ol = topics.find_next_sibling("ol")
        if ol is not None:
            agenda = "\n".join(li.get_text(strip=True) for li in ol.find_all("li"))

    fields = DetailFields(name=name, date=date_str, time=time_str, agenda=agenda)
    return detail_result(fields, ("name", "date", "time", "agenda"))


class OcctoNewsFeedAdapter(BaseAdapter):
    """
    OCCTO committee schedule (JSON news feed).

    Strategy:
    - Fetch news-list.json, keep category 50 items published in the current
      month or the next two
    - Detail page is authoritative for name, date, time and agenda
    """

    async def list_entries(self) -> List[ListingEntry]:
        today = self._today()
        text = await self.fetch_listing(self.cfg.seed_url)
        try:
            items = parse_news_items(json.loads(text))
        except ValueError as e:
            raise ListingFetchError(
                self.cfg.source_id, f"Failed to parse OCCTO news JSON: {e}"
            ) from e

        entries = select_entries(items, today)
        print(
            f"[occto] feed items={len(items)} selected={len(entries)} "
            f"(current + next 2 months from {today.isoformat()})"
        )
        return entries

    def parse_detail(self, html: str) -> DetailResult:
        return parse_detail_page(html)
