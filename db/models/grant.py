from __future__ import annotations

from sqlalchemy import Column, Date, DateTime, Float, Index, String, Text

from db.base import Base, JSONType


class Bando(Base):
    """Canonical grant row. ``key`` is the identity key from the normalizer."""
    __tablename__ = "bando"
    __table_args__ = (
        Index("ix_bando_source", "source"),
        Index("ix_bando_ingested_at", "ingested_at"),
        Index("ix_bando_deadline", "deadline"),
    )

    key = Column(String(512), primary_key=True)
    key_origin = Column(String(16), nullable=False, default="derived")

    title = Column(Text, nullable=False)
    source = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    full_description = Column(Text)
    grant_type = Column(String(16), nullable=False, default="altro")

    deadline = Column(Date)
    deadline_text = Column(Text)
    ingested_at = Column(DateTime(timezone=True))

    sectors = Column(JSONType, nullable=False, default=list)
    regions = Column(JSONType, nullable=False, default=list)
    amount_min = Column(Float)
    amount_max = Column(Float)

    url = Column(String(2048))
    budget_available = Column(Text)
    requirements = Column(Text)
    submission_mode = Column(Text)
    latest_updates = Column(Text)

    source_kind = Column(String(16), nullable=False, default="database")
    raw_payload = Column(JSONType, nullable=False, default=dict)
