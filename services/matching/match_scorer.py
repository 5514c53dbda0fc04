from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from config import DEFAULT_ENGINE_CONFIG, EngineConfig
from dto.client_dto import ClientProfileDTO
from dto.grant_dto import GrantDTO
from dto.match_dto import MatchResultDTO, ScoreBreakdownDTO
from services.matching.classification import ClassificationTable
from services.matching.keyword_overlap import keyword_overlap
from services.matching.sector_resolver import SectorCompatibilityResolver

logger = logging.getLogger(__name__)

# Grants of these types are open nationwide (or EU-wide).
NATIONWIDE_TYPES = {"europeo", "statale"}


def _norm(s: Optional[str]) -> str:
    return " ".join((s or "").split()).lower()


def budget_satisfaction(client: ClientProfileDTO, grant: GrantDTO) -> Optional[float]:
    """1.0 when the client's budget range overlaps the grant's funding range. None if undeclared."""
    if client.budget_min is None and client.budget_max is None:
        return None
    if grant.amount_min is None and grant.amount_max is None:
        return 1.0

    c_lo = client.budget_min if client.budget_min is not None else 0.0
    c_hi = client.budget_max if client.budget_max is not None else math.inf
    g_lo = grant.amount_min if grant.amount_min is not None else 0.0
    g_hi = grant.amount_max if grant.amount_max is not None else math.inf
    return 1.0 if c_lo <= g_hi and g_lo <= c_hi else 0.0


def geography_satisfaction(client: ClientProfileDTO, grant: GrantDTO) -> Optional[float]:
    """1.0 when the grant is open to the client's region/province. None if undeclared."""
    places = [p for p in (_norm(client.region), _norm(client.province)) if p]
    if not places:
        return None
    if grant.grant_type in NATIONWIDE_TYPES:
        return 1.0

    if grant.regions:
        regions = {_norm(r) for r in grant.regions}
        return 1.0 if any(p in regions for p in places) else 0.0

    if grant.grant_type == "regionale":
        text = _norm(" ".join([grant.source, grant.title, grant.description]))
        return 1.0 if any(p in text for p in places) else 0.0

    return 1.0


def composite_score(sector: float, keyword: float, constraint: float, config: EngineConfig) -> int:
    raw = (
        config.sector_weight * sector
        + config.keyword_weight * keyword
        + config.constraint_weight * constraint
    )
    # half-up rounding, clamped
    return max(0, min(100, int(math.floor(raw * 100 + 0.5))))


class MatchScorer:
    """
    Scores one (client, grant) pair.

    Deterministic: for the same client, grant and ``now`` the returned
    MatchResultDTO is identical.
    """

    def __init__(self, table: ClassificationTable, config: EngineConfig = DEFAULT_ENGINE_CONFIG):
        self.config = config
        self.resolver = SectorCompatibilityResolver(table, config)

    def score(self, client: ClientProfileDTO, grant: GrantDTO, *, now: Optional[datetime] = None) -> MatchResultDTO:
        now = now or datetime.now(timezone.utc)

        sector = self.resolver.score_client(client, grant)

        grant_text = " ".join(p for p in (grant.title, grant.description) if p)
        kw_score, kw_common = keyword_overlap(client.requirements, grant_text)

        budget = budget_satisfaction(client, grant)
        geography = geography_satisfaction(client, grant)
        declared = [x for x in (budget, geography) if x is not None]
        constraint = sum(declared) / len(declared) if declared else 1.0

        if sector.score == 0.0 and kw_score == 0.0:
            # constraints only modify real signal
            score = 0
        else:
            score = composite_score(sector.score, kw_score, constraint, self.config)

        return MatchResultDTO(
            client_id=client.id,
            grant_id=grant.key,
            score=score,
            breakdown=ScoreBreakdownDTO(
                sector=sector.score,
                keyword=kw_score,
                constraint=constraint,
                budget=budget,
                geography=geography,
                sector_method=sector.method,
                matched_codes=sector.matched_codes,
                matched_keywords=sorted(kw_common),
            ),
            computed_at=now,
        )

    def score_many(
        self,
        client: ClientProfileDTO,
        grants: Iterable[GrantDTO],
        *,
        now: Optional[datetime] = None,
    ) -> List[MatchResultDTO]:
        now = now or datetime.now(timezone.utc)
        return [self.score(client, g, now=now) for g in grants]

    def is_successful(self, result: MatchResultDTO) -> bool:
        return self.config.is_successful(result.score)
