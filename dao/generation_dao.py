from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from dao.store_errors import store_operation
from db.models.store_generation import GENERATION_ROW_ID, StoreGeneration


class GenerationDAO:
    """Monotonic write counter used to detect reads that straddle a write."""

    def __init__(self, session: Session):
        self.session = session

    @store_operation("generation.read")
    def current(self) -> int:
        value = self.session.execute(
            select(StoreGeneration.generation).where(StoreGeneration.id == GENERATION_ROW_ID)
        ).scalar_one_or_none()
        return int(value or 0)

    @store_operation("generation.bump")
    def bump(self) -> None:
        res = self.session.execute(
            update(StoreGeneration)
            .where(StoreGeneration.id == GENERATION_ROW_ID)
            .values(generation=StoreGeneration.generation + 1)
        )
        if res.rowcount == 0:
            self.session.add(StoreGeneration(id=GENERATION_ROW_ID, generation=1))
            self.session.flush()
