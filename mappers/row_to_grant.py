from typing import Any, Dict

from db.models.grant import Bando
from dto.grant_dto import GrantDTO
from mappers.time_utils import as_utc

GRANT_COLS = (
    "key",
    "key_origin",
    "title",
    "source",
    "description",
    "full_description",
    "grant_type",
    "deadline",
    "deadline_text",
    "ingested_at",
    "sectors",
    "regions",
    "amount_min",
    "amount_max",
    "url",
    "budget_available",
    "requirements",
    "submission_mode",
    "latest_updates",
    "source_kind",
    "raw_payload",
)


def grant_to_row(dto: GrantDTO) -> Dict[str, Any]:
    data = dto.model_dump(include=set(GRANT_COLS))
    data["ingested_at"] = as_utc(dto.ingested_at)
    data["raw_payload"] = dto.model_dump(mode="json", include={"raw_payload"})["raw_payload"]
    return data


def grant_from_row(row: Bando) -> GrantDTO:
    data = {c: getattr(row, c) for c in GRANT_COLS}
    data["ingested_at"] = as_utc(row.ingested_at)
    data["sectors"] = list(row.sectors or [])
    data["regions"] = list(row.regions or [])
    data["raw_payload"] = dict(row.raw_payload or {})
    return GrantDTO.model_validate(data)
