from datetime import date

from conftest import make_grant
from services.grant.grant_filters import (
    filter_by_deadline_range,
    filter_by_source,
    filter_grants,
    search_by_title,
)

GRANTS = [
    make_grant("a", title="Bando Digitale", source="MIMIT", deadline=date(2024, 7, 1)),
    make_grant("b", title="Transizione digitale", source="Regione Lazio", deadline=date(2024, 7, 31)),
    make_grant("c", title="Turismo", source="mimit", description="Ospitalità digitale", deadline=None),
]


def test_search_by_title():
    assert [g.key for g in search_by_title(GRANTS, "  DIGITAL ")] == ["a", "b"]
    assert search_by_title(GRANTS, "") == []


def test_deadline_range_is_inclusive():
    assert [g.key for g in filter_by_deadline_range(GRANTS, date(2024, 7, 1), date(2024, 7, 31))] == ["a", "b"]
    assert [g.key for g in filter_by_deadline_range(GRANTS, date(2024, 7, 2), date(2024, 7, 30))] == []


def test_source_filter_is_case_insensitive():
    assert [g.key for g in filter_by_source(GRANTS, "Mimit")] == ["a", "c"]
    assert len(filter_by_source(GRANTS, "tutte")) == 3
    assert len(filter_by_source(GRANTS, None)) == 3


def test_text_and_source_combined():
    assert [g.key for g in filter_grants(GRANTS, "digitale")] == ["a", "b", "c"]
    assert [g.key for g in filter_grants(GRANTS, "digitale", "MIMIT")] == ["a", "c"]
    assert [g.key for g in filter_grants(GRANTS, "lazio")] == ["b"]
