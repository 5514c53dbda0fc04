from __future__ import annotations

from sqlalchemy import Boolean, Column, Float, Index, String, Text

from db.base import Base, JSONType


class Cliente(Base):
    """Client profile. Owned by account management; the engine only reads it."""
    __tablename__ = "cliente"
    __table_args__ = (
        Index("ix_cliente_active", "active"),
    )

    id = Column(String(64), primary_key=True)
    name = Column(String(255))
    email = Column(String(255))

    sector = Column(String(255))
    sector_interests = Column(JSONType, nullable=False, default=list)
    ateco_code = Column(String(32))
    requirements = Column(Text, nullable=False, default="")

    region = Column(String(128))
    province = Column(String(128))
    budget_min = Column(Float)
    budget_max = Column(Float)

    active = Column(Boolean, nullable=False, default=True)
