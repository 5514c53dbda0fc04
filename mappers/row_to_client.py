from typing import Any, Dict

from db.models.client import Cliente
from dto.client_dto import ClientProfileDTO

CLIENT_COLS = (
    "id",
    "name",
    "email",
    "sector",
    "sector_interests",
    "ateco_code",
    "requirements",
    "region",
    "province",
    "budget_min",
    "budget_max",
    "active",
)


def client_to_row(dto: ClientProfileDTO) -> Dict[str, Any]:
    return dto.model_dump(include=set(CLIENT_COLS))


def client_from_row(row: Cliente) -> ClientProfileDTO:
    data = {c: getattr(row, c) for c in CLIENT_COLS}
    data["sector_interests"] = list(row.sector_interests or [])
    data["requirements"] = row.requirements or ""
    return ClientProfileDTO.model_validate(data)
