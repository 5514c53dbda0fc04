from __future__ import annotations

from typing import List, Sequence

from sqlalchemy.orm import Session

from dao.generation_dao import GenerationDAO
from dao.store_errors import store_operation
from db.models.client import Cliente
from db.upsert import dialect_insert
from dto.client_dto import ClientProfileDTO
from mappers.row_to_client import CLIENT_COLS, client_from_row, client_to_row


class ClientDAO:
    """Client profiles. The engine reads them; ``upsert_clients`` is for seeding/imports."""

    def __init__(self, session: Session):
        self.session = session

    @store_operation("client.read_active")
    def read_active(self) -> List[ClientProfileDTO]:
        rows = (
            self.session.query(Cliente)
            .filter(Cliente.active.is_(True))
            .order_by(Cliente.id)
            .all()
        )
        return [client_from_row(r) for r in rows]

    @store_operation("client.upsert")
    def upsert_clients(self, clients: Sequence[ClientProfileDTO]) -> int:
        if not clients:
            return 0
        rows = [client_to_row(c) for c in clients]
        stmt = dialect_insert(self.session, Cliente).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Cliente.id],
            set_={c: getattr(stmt.excluded, c) for c in CLIENT_COLS if c != "id"},
        )
        self.session.execute(stmt)
        GenerationDAO(self.session).bump()
        return len(rows)
