from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Sequence

from config import DEFAULT_ENGINE_CONFIG, EngineConfig
from dto.client_dto import ClientProfileDTO
from dto.grant_dto import GrantDTO
from services.errors import SectorLookupError
from services.matching.classification import ClassificationTable, looks_like_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SectorScore:
    score: float
    method: str  # "codes" | "fallback" | "none"
    matched_codes: List[str] = field(default_factory=list)


class SectorCompatibilityResolver:
    """Overlap between a client's classification codes and a grant's eligible sectors."""

    def __init__(self, table: ClassificationTable, config: EngineConfig = DEFAULT_ENGINE_CONFIG):
        self.table = table
        self.config = config

    # =============== Helper Actions ===============
    def client_codes(self, sectors: Sequence[str], explicit_codes: Sequence[str] = ()) -> FrozenSet[str]:
        codes = set(c.strip() for c in explicit_codes if c and c.strip())
        for s in sectors:
            if looks_like_code(s):
                codes.add(s.strip())
                continue
            try:
                codes |= self.table.codes_for(s)
            except SectorLookupError as exc:
                # Not fatal: falls back to text matching below
                logger.debug("%s", exc.message)
        return frozenset(codes)

    def grant_codes(self, grant: GrantDTO) -> FrozenSet[str]:
        codes = set()
        for tag in grant.sectors:
            if looks_like_code(tag):
                codes.add(tag.strip())
        codes |= self.table.resolve(t for t in grant.sectors if not looks_like_code(t))
        return frozenset(codes)

    # =============== Scoring ===============
    def score(
        self,
        sectors: Sequence[str],
        grant: GrantDTO,
        explicit_codes: Sequence[str] = (),
    ) -> SectorScore:
        c_codes = self.client_codes(sectors, explicit_codes)

        if c_codes:
            common = c_codes & self.grant_codes(grant)
            ratio = len(common) / len(c_codes)
            return SectorScore(
                score=min(1.0, max(0.0, ratio)),
                method="codes",
                matched_codes=sorted(common),
            )

        text = grant.search_text().lower()
        for s in sectors:
            needle = " ".join((s or "").split()).lower()
            if needle and needle in text:
                return SectorScore(score=self.config.sector_fallback_score, method="fallback")
        return SectorScore(score=0.0, method="none")

    def score_client(self, client: ClientProfileDTO, grant: GrantDTO) -> SectorScore:
        explicit = [client.ateco_code] if client.ateco_code else []
        return self.score(client.declared_sectors(), grant, explicit)
