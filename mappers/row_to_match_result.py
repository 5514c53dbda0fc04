from typing import Any, Dict

from db.models.match_result import MatchResult
from dto.match_dto import MatchResultDTO, ScoreBreakdownDTO
from mappers.time_utils import as_utc


def match_result_to_row(dto: MatchResultDTO) -> Dict[str, Any]:
    b = dto.breakdown
    return {
        "client_id": dto.client_id,
        "grant_id": dto.grant_id,
        "score": int(dto.score),
        "sector_score": float(b.sector),
        "keyword_score": float(b.keyword),
        "constraint_score": float(b.constraint),
        "breakdown": b.model_dump(mode="json"),
        "computed_at": as_utc(dto.computed_at),
        "notified": dto.notified,
        "archived": dto.archived,
    }


def match_result_from_row(row: MatchResult) -> MatchResultDTO:
    breakdown = ScoreBreakdownDTO.model_validate(row.breakdown or {})
    return MatchResultDTO(
        client_id=row.client_id,
        grant_id=row.grant_id,
        score=int(row.score),
        breakdown=breakdown,
        computed_at=as_utc(row.computed_at),
        notified=bool(row.notified),
        archived=bool(row.archived),
    )
