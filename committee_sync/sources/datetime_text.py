"""
Date/time text helpers shared by the adapters.

Detail pages publish the meeting date and time as free Japanese text, e.g.

  2026年2月17日（火曜日）18時00分～20時00分
  2026年3月1日（日曜日）15:00～17:00

The date is captured explicitly as year/month/day and zero padded. The time
range is recognized in either the 時/分 glyph convention or the colon
convention; anything else is kept verbatim so an odd page degrades into the
record instead of failing the run.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Optional, Tuple

_JA_DATE_RE = re.compile(r"(\d{4})年\s*(\d{1,2})月\s*(\d{1,2})日")
_GLYPH_TIME_RE = re.compile(r"(\d{1,2})時(\d{2})分\s*[～~〜]\s*(\d{1,2})時(\d{2})分")
_COLON_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})\s*[～~〜]\s*(\d{1,2}):(\d{2})")
_FEED_DATE_RE = re.compile(r"^\s*(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})")


def parse_japanese_date(text: str | None) -> Optional[str]:
    """'2026年1月19日(月)' -> '2026-01-19'. None when no date is found."""
    if not text:
        return None
    m = _JA_DATE_RE.search(text)
    if not m:
        return None
    year, month, day = m.groups()
    try:
        # reject impossible dates like 2026年2月31日
        date(int(year), int(month), int(day))
    except ValueError:
        return None
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def parse_time_range(text: str | None) -> str:
    """
    '18時00分～20時00分' and '15:00～17:00' are normalized (separator is
    always '～'). Unrecognized text is returned verbatim (only
    outer whitespace stripped).
    """
    if not text:
        return ""

    m = _GLYPH_TIME_RE.search(text)
    if m:
        sh, sm, eh, em = m.groups()
        return f"{sh}時{sm}分～{eh}時{em}分"

    m = _COLON_TIME_RE.search(text)
    if m:
        sh, sm, eh, em = m.groups()
        return f"{sh}:{sm}～{eh}:{em}"

    return text.strip()


def parse_date_time_text(text: str | None) -> Tuple[str, str]:
    """Split one '日時' paragraph into (YYYY-MM-DD or '', time text)."""
    if not text or not text.strip():
        return "", ""
    return parse_japanese_date(text) or "", parse_time_range(text)


def parse_feed_date(text: str | None) -> Optional[date]:
    """
    Parse a feed published_date ('2026-01-15', '2026/01/15 10:00',
    '2026-01-15T10:00:00+09:00'). None when malformed.
    """
    if not text:
        return None
    s = text.strip()
    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        pass
    m = _FEED_DATE_RE.match(s)
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def target_months(today: date, count: int = 3) -> List[Tuple[int, int]]:
    """
    (year, month) for the current month and the following count-1 months.
    December rolls over into January of the next year.
    """
    out: List[Tuple[int, int]] = []
    for offset in range(count):
        idx = today.month - 1 + offset
        out.append((today.year + idx // 12, idx % 12 + 1))
    return out


def in_month_window(d: date, today: date, count: int = 3) -> bool:
    return (d.year, d.month) in target_months(today, count)
