from sqlalchemy import BigInteger, Column, Integer

from db.base import Base

GENERATION_ROW_ID = 1


class StoreGeneration(Base):
    """Single-row counter bumped by every write to bandi or match results."""
    __tablename__ = "store_generation"

    id = Column(Integer, primary_key=True)
    generation = Column(BigInteger, nullable=False, default=0)
