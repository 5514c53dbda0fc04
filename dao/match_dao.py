from __future__ import annotations

from typing import Iterable, List, Optional

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from dao.generation_dao import GenerationDAO
from dao.store_errors import store_operation
from db.models.match_result import MatchResult
from db.upsert import chunked, dialect_insert, last_per_key
from dto.match_dto import MatchFilter, MatchResultDTO
from mappers.row_to_match_result import match_result_from_row, match_result_to_row
from mappers.time_utils import as_utc

# Recomputation replaces the score, never the review flags.
RECOMPUTED_COLS = (
    "score",
    "sector_score",
    "keyword_score",
    "constraint_score",
    "breakdown",
    "computed_at",
)


class MatchDAO:
    """Data access layer for match result read/write operations."""

    def __init__(self, session: Session):
        """Initialize DAO with an active SQLAlchemy session."""
        self.session = session

    # =============== Upsert Actions ===============
    @store_operation("match.upsert")
    def upsert_matches(self, results: Iterable[MatchResultDTO]) -> int:
        """Bulk upsert by (client_id, grant_id); ON CONFLICT replaces each row atomically."""
        rows = last_per_key([match_result_to_row(r) for r in results], ["client_id", "grant_id"])
        if not rows:
            return 0

        for chunk in chunked(rows):
            stmt = dialect_insert(self.session, MatchResult).values(chunk)
            stmt = stmt.on_conflict_do_update(
                index_elements=[MatchResult.client_id, MatchResult.grant_id],
                set_={c: getattr(stmt.excluded, c) for c in RECOMPUTED_COLS},
            )
            self.session.execute(stmt)
        GenerationDAO(self.session).bump()
        return len(rows)

    # =============== Flag Actions ===============
    @store_operation("match.set_flags")
    def set_flags(
        self,
        client_id: str,
        grant_id: str,
        *,
        notified: Optional[bool] = None,
        archived: Optional[bool] = None,
    ) -> bool:
        values = {}
        if notified is not None:
            values["notified"] = notified
        if archived is not None:
            values["archived"] = archived
        if not values:
            return False
        res = self.session.execute(
            update(MatchResult)
            .where(MatchResult.client_id == client_id, MatchResult.grant_id == grant_id)
            .values(**values)
        )
        GenerationDAO(self.session).bump()
        return res.rowcount > 0

    # =============== Delete Actions ===============
    @store_operation("match.delete_for_grant")
    def delete_for_grant(self, grant_id: str) -> int:
        res = self.session.execute(delete(MatchResult).where(MatchResult.grant_id == grant_id))
        GenerationDAO(self.session).bump()
        return int(res.rowcount or 0)

    # =============== Read Actions ===============
    @store_operation("match.query")
    def query(self, flt: Optional[MatchFilter] = None) -> List[MatchResultDTO]:
        flt = flt or MatchFilter()
        q = self.session.query(MatchResult)
        if flt.client_id is not None:
            q = q.filter(MatchResult.client_id == flt.client_id)
        if flt.grant_id is not None:
            q = q.filter(MatchResult.grant_id == flt.grant_id)
        if flt.min_score is not None:
            q = q.filter(MatchResult.score >= flt.min_score)
        if flt.since is not None:
            q = q.filter(MatchResult.computed_at >= as_utc(flt.since))
        if flt.until is not None:
            q = q.filter(MatchResult.computed_at <= as_utc(flt.until))
        if not flt.include_archived:
            q = q.filter(MatchResult.archived.is_(False))

        rows = q.order_by(MatchResult.client_id, MatchResult.grant_id).all()
        return [match_result_from_row(r) for r in rows]

    def get(self, client_id: str, grant_id: str) -> Optional[MatchResultDTO]:
        rows = self.query(MatchFilter(client_id=client_id, grant_id=grant_id))
        return rows[0] if rows else None
