from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Union


@dataclass(frozen=True)
class SourceConfig:
    source_id: str
    adapter: str
    seed_url: str
    main_table_name: str
    history_table_name: str


@dataclass
class ListingEntry:
    """
    Candidate extracted from a listing (list stage).
    date is only set when the listing itself carries it.
    """
    name: str
    detail_url: str
    date: str | None = None


@dataclass(frozen=True)
class DetailFields:
    name: str = ""
    date: str = ""
    time: str = ""
    agenda: str = ""


@dataclass(frozen=True)
class Parsed:
    fields: DetailFields


@dataclass(frozen=True)
class Unresolved:
    """
    Detail page parsed only partially (or not at all). fields carries what
    was resolved; missing names the fields that were not.
    """
    fields: DetailFields
    missing: FrozenSet[str] = field(default_factory=frozenset)
    error: str | None = None


DetailResult = Union[Parsed, Unresolved]


def detail_result(fields: DetailFields, wanted: tuple[str, ...]) -> DetailResult:
    """Classify parsed fields as Parsed or Unresolved by the fields the adapter expects."""
    missing = frozenset(name for name in wanted if not getattr(fields, name))
    if missing:
        return Unresolved(fields=fields, missing=missing)
    return Parsed(fields=fields)
