from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, sessionmaker

from dao.grant_dao import GrantDAO
from dao.match_dao import MatchDAO
from db.db_conn import SessionLocal
from dto.match_dto import MatchFilter, MatchResultDTO

logger = logging.getLogger(__name__)

PairKey = Tuple[str, str]
LOCK_STRIPES = 64


class MatchStore:
    """
    Transactional front for MatchResult persistence.

    Each public write runs in its own transaction. Writes for the same
    (client_id, grant_id) pair are serialized in-process so the last caller to
    acquire the pair lock is the value left in the store; the ON CONFLICT
    upsert keeps the row replacement atomic across processes.
    """

    def __init__(self, *, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory
        self._stripes = [threading.Lock() for _ in range(LOCK_STRIPES)]

    # =============== Helper Actions ===============
    def _stripe(self, key: PairKey) -> int:
        return hash(key) % LOCK_STRIPES

    def _lock_for(self, key: PairKey) -> threading.Lock:
        return self._stripes[self._stripe(key)]

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        with self.session_factory() as sess:
            try:
                yield sess
                sess.commit()
            except Exception:
                sess.rollback()
                raise

    # =============== Upsert Actions ===============
    def upsert(self, result: MatchResultDTO) -> None:
        with self._lock_for((result.client_id, result.grant_id)):
            with self._transaction() as sess:
                MatchDAO(sess).upsert_matches([result])

    def upsert_many(self, results: Sequence[MatchResultDTO]) -> int:
        if not results:
            return 0
        stripes = sorted({self._stripe((r.client_id, r.grant_id)) for r in results})
        locks = [self._stripes[i] for i in stripes]
        # fixed acquisition order avoids deadlock between overlapping batches
        for lock in locks:
            lock.acquire()
        try:
            with self._transaction() as sess:
                return MatchDAO(sess).upsert_matches(results)
        finally:
            for lock in reversed(locks):
                lock.release()

    # =============== Flag Actions ===============
    def mark_notified(self, client_id: str, grant_id: str, notified: bool = True) -> bool:
        with self._lock_for((client_id, grant_id)):
            with self._transaction() as sess:
                return MatchDAO(sess).set_flags(client_id, grant_id, notified=notified)

    def set_archived(self, client_id: str, grant_id: str, archived: bool = True) -> bool:
        with self._lock_for((client_id, grant_id)):
            with self._transaction() as sess:
                return MatchDAO(sess).set_flags(client_id, grant_id, archived=archived)

    # =============== Delete Actions ===============
    def delete_grant(self, grant_id: str) -> bool:
        """Remove a grant from the canonical set together with its MatchResults."""
        with self._transaction() as sess:
            removed = GrantDAO(sess).delete_grant(grant_id)
        logger.info("Deleted grant %r (found=%s) and its match results", grant_id, removed)
        return removed

    def delete_for_grant(self, grant_id: str) -> int:
        with self._transaction() as sess:
            return MatchDAO(sess).delete_for_grant(grant_id)

    # =============== Read Actions ===============
    def query(self, flt: Optional[MatchFilter] = None) -> List[MatchResultDTO]:
        with self.session_factory() as sess:
            return MatchDAO(sess).query(flt)

    def get(self, client_id: str, grant_id: str) -> Optional[MatchResultDTO]:
        with self.session_factory() as sess:
            return MatchDAO(sess).get(client_id, grant_id)
