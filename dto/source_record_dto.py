from __future__ import annotations

import logging
import math
import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator

logger = logging.getLogger(__name__)

# 150.000 / 1.250.000,50
_IT_GROUPED = re.compile(r"^\d{1,3}(\.\d{3})+(,\d+)?$")


# ───────────────────────────────────────────────
# Raw per-source records (external store schema)
# ───────────────────────────────────────────────

class SourceRecordBase(BaseModel):
    # Unknown keys are kept so the raw payload survives for audit.
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    titolo: Optional[str] = Field(None, validation_alias=AliasChoices("titolo", "titolo_incentivo", "title"))
    fonte: Optional[str] = Field(None, validation_alias=AliasChoices("fonte", "source"))
    descrizione: Optional[str] = Field(None, validation_alias=AliasChoices("descrizione", "description"))
    descrizione_completa: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("descrizione_completa", "descrizioneCompleta", "descrizione_dettagliata"),
    )
    scadenza: Optional[Any] = Field(None, validation_alias=AliasChoices("scadenza", "deadline"))
    scadenza_dettagliata: Optional[str] = Field(
        None, validation_alias=AliasChoices("scadenza_dettagliata", "scadenzaDettagliata")
    )
    tipo: Optional[str] = None
    url: Optional[str] = None
    settori: Optional[Union[List[str], str]] = Field(None, validation_alias=AliasChoices("settori", "sectors"))
    regioni: Optional[Union[List[str], str]] = Field(None, validation_alias=AliasChoices("regioni", "regions"))
    importo_min: Optional[float] = Field(None, validation_alias=AliasChoices("importo_min", "importoMin"))
    importo_max: Optional[float] = Field(None, validation_alias=AliasChoices("importo_max", "importoMax"))
    budget_disponibile: Optional[str] = Field(
        None, validation_alias=AliasChoices("budget_disponibile", "budgetDisponibile")
    )
    requisiti: Optional[str] = None
    modalita_presentazione: Optional[str] = Field(
        None, validation_alias=AliasChoices("modalita_presentazione", "modalitaPresentazione")
    )
    ultimi_aggiornamenti: Optional[str] = Field(
        None, validation_alias=AliasChoices("ultimi_aggiornamenti", "ultimiAggiornamenti")
    )
    data_estrazione: Optional[Any] = Field(
        None, validation_alias=AliasChoices("data_estrazione", "dataEstrazione", "ingested_at")
    )
    created_at: Optional[Any] = None

    @field_validator("importo_min", "importo_max", mode="before")
    @classmethod
    def _coerce_amount(cls, v: Any) -> Optional[float]:
        # spreadsheet cells come through as "", "150.000" or "150.000,00"
        if v is None:
            return None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            s = str(v)
        else:
            s = str(v).strip().replace("€", "").replace(" ", "")
            if not s:
                return None
            if _IT_GROUPED.match(s) or "," in s:
                s = s.replace(".", "").replace(",", ".")
        try:
            amount = float(s)
        except ValueError:
            amount = None
        if amount is None or not math.isfinite(amount):
            # an amount is optional; a bad one must not reject the record
            logger.warning("Ignoring unparseable amount %r", v)
            return None
        return amount

    @field_validator("id", "external_id", mode="before", check_fields=False)
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    def persisted_id(self) -> Optional[str]:
        """Stable identifier supplied by the origin, if it has one."""
        return None

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class DatabaseRecord(SourceRecordBase):
    """Row read from the grants table of the external store."""
    kind: Literal["database"] = "database"
    id: Optional[str] = None

    def persisted_id(self) -> Optional[str]:
        return self.id


class WebhookRecord(SourceRecordBase):
    """Record pushed by an automation webhook."""
    kind: Literal["webhook"] = "webhook"
    external_id: Optional[str] = Field(None, validation_alias=AliasChoices("external_id", "externalId", "id"))

    def persisted_id(self) -> Optional[str]:
        return self.external_id


class SheetRecord(SourceRecordBase):
    """Spreadsheet row. Row ids are positional and never used as identity."""
    kind: Literal["sheet"] = "sheet"
    row_index: Optional[int] = None


class ScrapedRecord(SourceRecordBase):
    """Page extracted by the crawler. Carries no stable identifier."""
    kind: Literal["scraped"] = "scraped"
    page_url: Optional[str] = None


RawSourceRecord = Annotated[
    Union[DatabaseRecord, WebhookRecord, SheetRecord, ScrapedRecord],
    Field(discriminator="kind"),
]

RAW_RECORD_ADAPTER: TypeAdapter = TypeAdapter(RawSourceRecord)

SOURCE_KINDS = ("database", "webhook", "sheet", "scraped")


def parse_raw_record(payload: Dict[str, Any], default_kind: str = "database") -> SourceRecordBase:
    """
    Validate one free-form key/value record into its tagged variant.
    ``kind`` in the payload wins over ``default_kind``.
    """
    data = dict(payload)
    data.setdefault("kind", default_kind)
    return RAW_RECORD_ADAPTER.validate_python(data)
