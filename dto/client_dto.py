from __future__ import annotations

from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

# Free-text profile fields that feed the keyword requirements when no explicit
# requirements text is given.
_REQUIREMENT_FIELDS = (
    "tecnologieSpecifiche",
    "competenzeDipendenti",
    "capacitaRD",
    "certificazioni",
    "partnership",
    "criteriESG",
    "esperienzaFinanziamenti",
)


class ClientProfileDTO(BaseModel):
    """Client profile as read from the account store."""
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    id: str
    name: Optional[str] = Field(None, validation_alias=AliasChoices("name", "nome"))
    email: Optional[str] = None

    sector: Optional[str] = Field(None, validation_alias=AliasChoices("sector", "settore"))
    sector_interests: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "sector_interests", "interessisettoriali", "interessi_settoriali", "interessiSettoriali"
        ),
    )
    ateco_code: Optional[str] = Field(
        None, validation_alias=AliasChoices("ateco_code", "codiceateco", "codiceATECO", "codice_ateco")
    )
    requirements: str = Field("", validation_alias=AliasChoices("requirements", "requisiti", "keywords"))

    region: Optional[str] = Field(None, validation_alias=AliasChoices("region", "regione"))
    province: Optional[str] = Field(None, validation_alias=AliasChoices("province", "provincia"))
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None

    active: bool = True

    @model_validator(mode="before")
    @classmethod
    def _compose_requirements(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if any(data.get(k) for k in ("requirements", "requisiti", "keywords")):
            return data
        extra = [str(data[k]).strip() for k in _REQUIREMENT_FIELDS if data.get(k)]
        if extra:
            data = {**data, "requirements": " ".join(extra)}
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    @field_validator("sector_interests", mode="before")
    @classmethod
    def _split_interests(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("requirements", mode="before")
    @classmethod
    def _join_keywords(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, (list, tuple)):
            return " ".join(str(x) for x in v if x)
        return v

    def declared_sectors(self) -> List[str]:
        out: List[str] = []
        seen = set()
        for s in [self.sector, *self.sector_interests]:
            k = (s or "").strip()
            if k and k.lower() not in seen:
                seen.add(k.lower())
                out.append(k)
        return out
