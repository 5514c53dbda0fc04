import pytest

from conftest import make_client, make_grant
from dao.client_dao import ClientDAO
from dao.generation_dao import GenerationDAO
from dao.grant_dao import GrantDAO
from dto.match_dto import MatchResultDTO
from services.errors import StaleReadError
from services.matching.match_store import MatchStore
from services.report.report_service import ReportService


@pytest.fixture
def seeded(session_factory, now):
    with session_factory() as sess:
        GrantDAO(sess).upsert_grants([make_grant("g1", source="MIMIT"), make_grant("g2", source="Invitalia")])
        ClientDAO(sess).upsert_clients([make_client("c1"), make_client("c2"), make_client("c3", active=False)])
        sess.commit()
    MatchStore(session_factory=session_factory).upsert_many([
        MatchResultDTO(client_id="c1", grant_id="g1", score=80, computed_at=now),
        MatchResultDTO(client_id="c2", grant_id="g2", score=40, computed_at=now),
    ])
    return session_factory


def test_snapshot_from_store(seeded, now):
    snap = ReportService(session_factory=seeded).snapshot(now=now)

    assert snap.totale_match == 2
    assert snap.tasso_successo == 50.0
    assert snap.fonti_attive == 2
    assert snap.numero_clienti == 2
    assert [p.cliente for p in snap.performance_clienti] == ["Cliente c1", "Cliente c2"]
    assert snap.generation is not None


def test_no_active_clients_counts_zero(session_factory, now):
    with session_factory() as sess:
        GrantDAO(sess).upsert_grants([make_grant("g1")])
        ClientDAO(sess).upsert_clients([make_client("c1", active=False)])
        sess.commit()
    MatchStore(session_factory=session_factory).upsert(
        MatchResultDTO(client_id="c1", grant_id="g1", score=80, computed_at=now)
    )

    snap = ReportService(session_factory=session_factory).snapshot(now=now)

    assert snap.totale_match == 1
    assert snap.numero_clienti == 0


def test_concurrent_write_during_read_is_stale(seeded, now, monkeypatch):
    values = iter([3, 4])
    monkeypatch.setattr(GenerationDAO, "current", lambda self: next(values))

    with pytest.raises(StaleReadError) as exc_info:
        ReportService(session_factory=seeded).snapshot(now=now)
    assert (exc_info.value.expected_generation, exc_info.value.actual_generation) == (3, 4)
