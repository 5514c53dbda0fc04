from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from dto.grant_dto import GrantDTO

ALL_SOURCES = "tutte"


def search_by_title(grants: Iterable[GrantDTO], term: str) -> List[GrantDTO]:
    """Case-insensitive substring search on the title. An empty term matches nothing."""
    needle = (term or "").strip().lower()
    if not needle:
        return []
    return [g for g in grants if needle in g.title.lower()]


def filter_by_deadline_range(grants: Iterable[GrantDTO], start: date, end: date) -> List[GrantDTO]:
    """Grants whose structured deadline falls in [start, end], bounds included."""
    return [g for g in grants if g.deadline is not None and start <= g.deadline <= end]


def filter_by_source(grants: Iterable[GrantDTO], source: Optional[str]) -> List[GrantDTO]:
    if not source or source.lower() == ALL_SOURCES:
        return list(grants)
    wanted = source.lower()
    return [g for g in grants if g.source.lower() == wanted]


def filter_grants(
    grants: Iterable[GrantDTO],
    text: str = "",
    source: Optional[str] = None,
) -> List[GrantDTO]:
    """Free-text filter over title, description and source, combined with a source filter."""
    needle = (text or "").strip().lower()
    out = []
    for g in filter_by_source(grants, source):
        if needle and not (
            needle in g.title.lower()
            or needle in (g.description or "").lower()
            or needle in g.source.lower()
        ):
            continue
        out.append(g)
    return out
