from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# Field names follow the reporting contract consumed by the chart surfaces;
# dump with ``by_alias=True`` to get the camelCase keys.
class _ReportModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


@dataclass(frozen=True)
class ReportRange:
    """Inclusive bounds on MatchResult.computed_at. ``None`` means unbounded."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, ts: datetime) -> bool:
        if self.start is not None and ts < self.start:
            return False
        if self.end is not None and ts > self.end:
            return False
        return True


class PeriodBucketDTO(_ReportModel):
    periodo: str
    mese: str
    totale_match: int = Field(0, alias="totaleMatch")
    match_successo: int = Field(0, alias="matchSuccesso")
    tasso_successo: float = Field(0.0, alias="tassoSuccesso")


class SourceDistributionDTO(_ReportModel):
    fonte: str
    valore: int


class SourcePerformanceDTO(_ReportModel):
    fonte: str
    totale_match: int = Field(0, alias="totaleMatch")
    percentuale_successo: float = Field(0.0, alias="percentualeSuccesso")


class ClientPerformanceDTO(_ReportModel):
    cliente: str
    match_generati: int = Field(0, alias="matchGenerati")
    match_alta: int = Field(0, alias="matchAlta")
    match_media: int = Field(0, alias="matchMedia")
    match_bassa: int = Field(0, alias="matchBassa")


class TypeDistributionDTO(_ReportModel):
    europei: int = 0
    statali: int = 0
    regionali: int = 0
    altri: int = 0


class DeadlineDistributionDTO(_ReportModel):
    scaduti: int = 0
    entro_un_mese: int = Field(0, alias="entroUnMese")
    entro_tre_mesi: int = Field(0, alias="entroTreMesi")
    oltre_tre_mesi: int = Field(0, alias="oltreTreMesi")
    senza_scadenza: int = Field(0, alias="senzaScadenza")


class ReportSnapshotDTO(_ReportModel):
    range_start: Optional[datetime] = Field(None, alias="inizio")
    range_end: Optional[datetime] = Field(None, alias="fine")
    generated_at: datetime = Field(..., alias="generatoIl")

    totale_match: int = Field(0, alias="totaleMatch")
    tasso_successo: float = Field(0.0, alias="tassoSuccesso")
    fonti_attive: int = Field(0, alias="fontiAttive")
    numero_clienti: int = Field(0, alias="numeroClienti")
    bandi_nuovi: int = Field(0, alias="bandiNuovi")

    analisi_temporale: List[PeriodBucketDTO] = Field(default_factory=list, alias="analisiTemporale")
    distribuzione_fonti: List[SourceDistributionDTO] = Field(default_factory=list, alias="distribuzioneFonti")
    performance_match: List[SourcePerformanceDTO] = Field(default_factory=list, alias="performanceMatch")
    performance_clienti: List[ClientPerformanceDTO] = Field(default_factory=list, alias="performanceClienti")
    distribuzione_tipi: TypeDistributionDTO = Field(default_factory=TypeDistributionDTO, alias="distribuzioneTipi")
    distribuzione_scadenze: DeadlineDistributionDTO = Field(
        default_factory=DeadlineDistributionDTO, alias="distribuzioneScadenze"
    )

    generation: Optional[int] = None
