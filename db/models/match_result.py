from __future__ import annotations

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from db.base import Base, JSONType


class MatchResult(Base):
    __tablename__ = "match_result"
    __table_args__ = (
        # at most one result per (client, grant); recomputation overwrites
        UniqueConstraint("client_id", "grant_id", name="ux_match_client_grant"),
        Index("ix_match_client", "client_id"),
        Index("ix_match_grant", "grant_id"),
        Index("ix_match_computed_at", "computed_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    client_id = Column(String(64), nullable=False)
    grant_id = Column(
        String(512),
        ForeignKey("bando.key", ondelete="CASCADE"),
        nullable=False,
    )

    score = Column(Integer, nullable=False)
    sector_score = Column(Float, nullable=False, default=0.0)
    keyword_score = Column(Float, nullable=False, default=0.0)
    constraint_score = Column(Float, nullable=False, default=1.0)
    breakdown = Column(JSONType, nullable=False, default=dict)
    computed_at = Column(DateTime(timezone=True), nullable=False)

    notified = Column(Boolean, nullable=False, default=False)
    archived = Column(Boolean, nullable=False, default=False)

    grant = relationship("Bando", backref="match_results", passive_deletes=True)
