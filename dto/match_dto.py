from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SectorMethod = Literal["codes", "fallback", "none"]


class ScoreBreakdownDTO(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    sector: float = Field(0.0, ge=0.0, le=1.0)
    keyword: float = Field(0.0, ge=0.0, le=1.0)
    constraint: float = Field(1.0, ge=0.0, le=1.0)

    # per-constraint detail; None means "not declared" (neutral)
    budget: Optional[float] = None
    geography: Optional[float] = None

    sector_method: SectorMethod = "none"
    matched_codes: List[str] = Field(default_factory=list)
    matched_keywords: List[str] = Field(default_factory=list)


class MatchResultDTO(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    client_id: str
    grant_id: str
    score: int = Field(..., ge=0, le=100)
    breakdown: ScoreBreakdownDTO = Field(default_factory=ScoreBreakdownDTO)
    computed_at: datetime

    notified: bool = False
    archived: bool = False


@dataclass
class MatchFilter:
    client_id: Optional[str] = None
    grant_id: Optional[str] = None
    min_score: Optional[int] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    include_archived: bool = True
