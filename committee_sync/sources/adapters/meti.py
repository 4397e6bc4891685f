from __future__ import annotations

import re
from typing import List

from bs4 import BeautifulSoup, Tag

from ..base import BaseAdapter, absolutize_url
from ..datetime_text import parse_japanese_date, parse_time_range
from ..types import DetailFields, DetailResult, ListingEntry, detail_result

METI_ORIGIN = "https://wwws.meti.go.jp"
METI_BASE_URL = "https://wwws.meti.go.jp/interface/honsho/committee/index.cgi"

# the page wraps the 日時 block across lines; the sheet cell keeps it on one
_LINE_BREAK_RE = re.compile(r"[\r\n]")


def parse_list_page(html: str) -> List[ListingEntry]:
    """
    Rows of the 開催案内 table: date in the first <th>, name + link in the
    first <td><a>. Rows without a parseable date are dropped here.
    """
    soup = BeautifulSoup(html, "html.parser")
    entries: List[ListingEntry] = []

    for row in soup.select("table.tbl-si tr"):
        th = row.find("th")
        link = row.select_one("td a")
        if th is None or link is None:
            continue

        date_text = th.get_text(strip=True)
        name = link.get_text(strip=True)
        href = (link.get("href") or "").strip()
        if not (name and href and date_text):
            continue

        date = parse_japanese_date(date_text)
        detail_url = absolutize_url(href, origin=METI_ORIGIN, base=METI_BASE_URL)
        if not date:
            print(f"[meti] failed to parse date: {date_text!r} | {detail_url}")
            continue

        entries.append(ListingEntry(name=name, detail_url=detail_url, date=date))

    return entries


def _next_element(tag: Tag) -> Tag | None:
    sib = tag.find_next_sibling()
    return sib if isinstance(sib, Tag) else None


def parse_detail_page(html: str) -> DetailResult:
    """time from the block after <h3>日時</h3>, agenda from the block after <h3>議題</h3>."""
    soup = BeautifulSoup(html, "html.parser")
    time = ""
    agenda = ""

    for h3 in soup.find_all("h3"):
        header = h3.get_text(strip=True)
        nxt = _next_element(h3)
        if nxt is None:
            continue

        if "日時" in header:
            time = parse_time_range(_LINE_BREAK_RE.sub(" ", nxt.get_text(" ", strip=True)))
        elif "議題" in header:
            if nxt.name in ("ul", "ol"):
                agenda = "\n".join(li.get_text(strip=True) for li in nxt.find_all("li"))
            else:
                agenda = nxt.get_text(strip=True)

    return detail_result(DetailFields(time=time, agenda=agenda), ("time", "agenda"))


class MetiCommitteeAdapter(BaseAdapter):
    """
    METI committee schedule (HTML table).

    Strategy:
    - Fetch the committee list page; date and name come from the table
    - Detail page supplies time and agenda
    """

    async def list_entries(self) -> List[ListingEntry]:
        html = await self.fetch_listing(self.cfg.seed_url)
        return parse_list_page(html)

    def parse_detail(self, html: str) -> DetailResult:
        return parse_detail_page(html)
