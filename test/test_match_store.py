import threading
from datetime import timedelta

import pytest

from conftest import make_grant
from dao.generation_dao import GenerationDAO
from dao.grant_dao import GrantDAO
from dto.match_dto import MatchFilter, MatchResultDTO
from services.errors import StoreError
from services.matching.match_store import MatchStore


@pytest.fixture
def store(session_factory):
    with session_factory() as sess:
        GrantDAO(sess).upsert_grants([make_grant("g1"), make_grant("g2"), make_grant("g3")])
        sess.commit()
    return MatchStore(session_factory=session_factory)


def _result(client_id, grant_id, score, computed_at):
    return MatchResultDTO(client_id=client_id, grant_id=grant_id, score=score, computed_at=computed_at)


def test_upsert_twice_keeps_one_row_with_latest_write(store, now):
    store.upsert(_result("c1", "g1", 40, now))
    store.upsert(_result("c1", "g1", 85, now + timedelta(minutes=1)))

    rows = store.query(MatchFilter(client_id="c1", grant_id="g1"))
    assert len(rows) == 1
    assert rows[0].score == 85


def test_last_writer_wins_even_with_lower_score(store, now):
    store.upsert(_result("c1", "g1", 90, now))
    store.upsert(_result("c1", "g1", 20, now))
    assert store.get("c1", "g1").score == 20


def test_recompute_keeps_review_flags(store, now):
    store.upsert(_result("c1", "g1", 60, now))
    assert store.mark_notified("c1", "g1") is True
    store.upsert(_result("c1", "g1", 75, now))

    row = store.get("c1", "g1")
    assert row.score == 75
    assert row.notified is True


def test_flags_on_missing_pair_return_false(store):
    assert store.mark_notified("nobody", "g1") is False


def test_query_filters(store, now):
    store.upsert_many([
        _result("c1", "g1", 80, now - timedelta(days=40)),
        _result("c1", "g2", 50, now),
        _result("c2", "g1", 71, now),
        _result("c2", "g3", 10, now),
    ])
    store.set_archived("c2", "g3")

    assert [(m.client_id, m.grant_id) for m in store.query()] == [
        ("c1", "g1"), ("c1", "g2"), ("c2", "g1"), ("c2", "g3"),
    ]
    assert [m.grant_id for m in store.query(MatchFilter(client_id="c2"))] == ["g1", "g3"]
    assert [m.client_id for m in store.query(MatchFilter(grant_id="g1"))] == ["c1", "c2"]
    assert [m.score for m in store.query(MatchFilter(min_score=70))] == [80, 71]
    assert len(store.query(MatchFilter(since=now - timedelta(days=1)))) == 3
    assert len(store.query(MatchFilter(until=now - timedelta(days=1)))) == 1
    assert len(store.query(MatchFilter(include_archived=False))) == 3


def test_computed_at_round_trips_as_utc(store, now):
    store.upsert(_result("c1", "g1", 50, now))
    assert store.get("c1", "g1").computed_at == now


def test_delete_grant_removes_its_matches(store, session_factory, now):
    store.upsert_many([_result("c1", "g1", 80, now), _result("c2", "g1", 30, now), _result("c1", "g2", 30, now)])

    assert store.delete_grant("g1") is True
    assert store.query(MatchFilter(grant_id="g1")) == []
    assert len(store.query()) == 1
    with session_factory() as sess:
        assert GrantDAO(sess).get("g1") is None


def test_writes_bump_the_generation(store, session_factory, now):
    with session_factory() as sess:
        before = GenerationDAO(sess).current()
    store.upsert(_result("c1", "g1", 50, now))
    with session_factory() as sess:
        assert GenerationDAO(sess).current() == before + 1


def test_unknown_grant_is_a_store_error(store, now):
    with pytest.raises(StoreError) as exc_info:
        store.upsert(_result("c1", "missing", 50, now))
    assert exc_info.value.operation == "match.upsert"
    assert store.query() == []


def test_concurrent_upserts_on_same_pair_leave_one_row(store, now):
    def worker(score):
        store.upsert(_result("c1", "g1", score, now))

    threads = [threading.Thread(target=worker, args=(s,)) for s in range(10, 60, 5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    rows = store.query(MatchFilter(client_id="c1", grant_id="g1"))
    assert len(rows) == 1
    assert rows[0].score in set(range(10, 60, 5))


def test_orphaned_matches_can_be_removed_keeping_the_grant(store, session_factory, now):
    store.upsert_many([_result("c1", "g2", 80, now), _result("c2", "g2", 30, now)])

    assert store.delete_for_grant("g2") == 2
    assert store.query(MatchFilter(grant_id="g2")) == []
    with session_factory() as sess:
        assert GrantDAO(sess).get("g2") is not None
