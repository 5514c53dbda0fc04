from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

GrantType = Literal["europeo", "statale", "regionale", "altro"]
KeyOrigin = Literal["persisted", "derived"]


class GrantDTO(BaseModel):
    """Canonical grant ("bando") after normalization."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    key: str
    key_origin: KeyOrigin = "derived"

    title: str
    source: str
    description: str = ""
    full_description: Optional[str] = None
    grant_type: GrantType = "altro"

    deadline: Optional[date] = None
    deadline_text: Optional[str] = None
    ingested_at: Optional[datetime] = None

    sectors: List[str] = Field(default_factory=list)
    regions: List[str] = Field(default_factory=list)
    amount_min: Optional[float] = None
    amount_max: Optional[float] = None

    url: Optional[str] = None
    budget_available: Optional[str] = None
    requirements: Optional[str] = None
    submission_mode: Optional[str] = None
    latest_updates: Optional[str] = None

    source_kind: str = "database"
    raw_payload: Dict[str, Any] = Field(default_factory=dict)

    def is_new(self, now: datetime, window: timedelta) -> bool:
        if self.ingested_at is None:
            return False
        return now - self.ingested_at <= window

    def search_text(self) -> str:
        parts = [self.title, self.description, self.full_description or "", " ".join(self.sectors)]
        return " ".join(p for p in parts if p)
