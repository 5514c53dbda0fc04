from __future__ import annotations

from typing import List, Optional, Sequence

from sqlalchemy import delete, func, or_
from sqlalchemy.orm import Session

from dao.generation_dao import GenerationDAO
from dao.store_errors import store_operation
from db.models.grant import Bando
from db.models.match_result import MatchResult
from db.upsert import chunked, dialect_insert, last_per_key
from dto.grant_dto import GrantDTO
from mappers.row_to_grant import GRANT_COLS, grant_from_row, grant_to_row

UPDATABLE_COLS = [c for c in GRANT_COLS if c != "key"]


class GrantDAO:
    """Read/write access to the canonical grant set."""

    def __init__(self, session: Session):
        self.session = session

    # =============== Upsert Actions ===============
    @store_operation("grant.upsert")
    def upsert_grants(self, grants: Sequence[GrantDTO]) -> int:
        """
        Bulk upsert by identity key.

        A stored grant is only replaced by a strictly more recent ingestion,
        or when the stored copy has no ingestion timestamp.
        """
        if not grants:
            return 0
        rows = last_per_key([grant_to_row(g) for g in grants], ["key"])
        for chunk in chunked(rows):
            stmt = dialect_insert(self.session, Bando).values(chunk)
            stmt = stmt.on_conflict_do_update(
                index_elements=[Bando.key],
                set_={c: getattr(stmt.excluded, c) for c in UPDATABLE_COLS},
                where=or_(
                    Bando.ingested_at.is_(None),
                    stmt.excluded.ingested_at > Bando.ingested_at,
                ),
            )
            self.session.execute(stmt)
        GenerationDAO(self.session).bump()
        return len(rows)

    # =============== Delete Actions ===============
    @store_operation("grant.delete")
    def delete_grant(self, key: str) -> bool:
        """Delete a grant and every MatchResult pointing at it."""
        self.session.execute(delete(MatchResult).where(MatchResult.grant_id == key))
        res = self.session.execute(delete(Bando).where(Bando.key == key))
        GenerationDAO(self.session).bump()
        return res.rowcount > 0

    # =============== Read Actions ===============
    @store_operation("grant.get")
    def get(self, key: str) -> Optional[GrantDTO]:
        row = self.session.get(Bando, key)
        return grant_from_row(row) if row else None

    @store_operation("grant.read_all")
    def read_all(self) -> List[GrantDTO]:
        rows = self.session.query(Bando).order_by(Bando.key).all()
        return [grant_from_row(r) for r in rows]

    @store_operation("grant.count")
    def count(self) -> int:
        return int(self.session.query(func.count(Bando.key)).scalar() or 0)

