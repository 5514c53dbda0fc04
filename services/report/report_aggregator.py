from __future__ import annotations

import calendar
import logging
from collections import Counter, defaultdict
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from config import DEFAULT_ENGINE_CONFIG, EngineConfig
from dto.grant_dto import GrantDTO
from dto.match_dto import MatchResultDTO
from dto.report_dto import (
    ClientPerformanceDTO,
    DeadlineDistributionDTO,
    PeriodBucketDTO,
    ReportRange,
    ReportSnapshotDTO,
    SourceDistributionDTO,
    SourcePerformanceDTO,
    TypeDistributionDTO,
)
from mappers.time_utils import as_utc

logger = logging.getLogger(__name__)

MONTH_LABELS = ("Gen", "Feb", "Mar", "Apr", "Mag", "Giu", "Lug", "Ago", "Set", "Ott", "Nov", "Dic")
UNKNOWN_SOURCE = "N/D"
# lower bound of the "media" band in the per-client split; "alta" starts at the success threshold
MEDIUM_SCORE_FLOOR = 40

YearMonth = Tuple[int, int]


# ---------------------------- Helpers ----------------------------

def _rate(successes: int, total: int) -> float:
    """Percentage with one decimal; 0.0 for an empty population."""
    if total <= 0:
        return 0.0
    return round(100.0 * successes / total, 1)


def _shift_month(ym: YearMonth, delta: int) -> YearMonth:
    idx = ym[0] * 12 + (ym[1] - 1) + delta
    return idx // 12, idx % 12 + 1


def trailing_months(now: datetime, count: int) -> List[YearMonth]:
    """``count`` calendar months ending with the month of ``now``, oldest first."""
    current = (now.year, now.month)
    return [_shift_month(current, -i) for i in range(count - 1, -1, -1)]


def add_months(d: date, months: int) -> date:
    y, m = _shift_month((d.year, d.month), months)
    day = min(d.day, calendar.monthrange(y, m)[1])
    return date(y, m, day)


def month_label(ym: YearMonth) -> str:
    return f"{MONTH_LABELS[ym[1] - 1]} {ym[0]}"


def _sorted_by_count(counts: Mapping[str, int]) -> List[Tuple[str, int]]:
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


class ReportAggregator:
    """
    Pure aggregation over a canonical grant set and a MatchResult history.

    Nothing here touches the store or the clock; ``now`` is always passed in,
    so identical inputs give an identical ReportSnapshotDTO.
    """

    def __init__(self, config: EngineConfig = DEFAULT_ENGINE_CONFIG):
        self.config = config

    # =============== Snapshot Actions ===============
    def snapshot(
        self,
        grants: Sequence[GrantDTO],
        matches: Iterable[MatchResultDTO],
        *,
        now: datetime,
        report_range: Optional[ReportRange] = None,
        client_count: Optional[int] = None,
        client_names: Optional[Mapping[str, str]] = None,
        generation: Optional[int] = None,
    ) -> ReportSnapshotDTO:
        now = as_utc(now)
        rng = report_range or ReportRange()
        rng = ReportRange(as_utc(rng.start), as_utc(rng.end))
        in_range = [
            m for m in matches
            if rng.contains(as_utc(m.computed_at))
        ]
        # input order must not leak into the output
        in_range.sort(key=lambda m: (m.client_id, m.grant_id))

        successes = sum(1 for m in in_range if self.config.is_successful(m.score))
        if client_count is None:
            client_count = len({m.client_id for m in in_range})

        snap = ReportSnapshotDTO(
            range_start=rng.start,
            range_end=rng.end,
            generated_at=now,
            totale_match=len(in_range),
            tasso_successo=_rate(successes, len(in_range)),
            fonti_attive=len({g.source for g in grants}),
            numero_clienti=client_count,
            bandi_nuovi=sum(1 for g in grants if g.is_new(now, self.config.new_grant_window)),
            analisi_temporale=self.period_buckets(in_range, now=now),
            distribuzione_fonti=self.source_distribution(grants),
            performance_match=self.source_performance(grants, in_range),
            performance_clienti=self.client_performance(in_range, client_names),
            distribuzione_tipi=self.type_distribution(grants),
            distribuzione_scadenze=self.deadline_distribution(grants, today=now.date()),
            generation=generation,
        )
        logger.debug(
            "Report snapshot: %d matches (%.1f%% successful), %d grants, %d sources",
            snap.totale_match, snap.tasso_successo, len(grants), snap.fonti_attive,
        )
        return snap

    # =============== Time Series Actions ===============
    def period_buckets(self, matches: Iterable[MatchResultDTO], *, now: datetime) -> List[PeriodBucketDTO]:
        months = trailing_months(now, self.config.report_months)
        totals: Dict[YearMonth, int] = {ym: 0 for ym in months}
        wins: Dict[YearMonth, int] = {ym: 0 for ym in months}

        for m in matches:
            ts = as_utc(m.computed_at)
            ym = (ts.year, ts.month)
            if ym not in totals:
                continue
            totals[ym] += 1
            if self.config.is_successful(m.score):
                wins[ym] += 1

        return [
            PeriodBucketDTO(
                periodo=month_label(ym),
                mese=f"{ym[0]:04d}-{ym[1]:02d}",
                totale_match=totals[ym],
                match_successo=wins[ym],
                tasso_successo=_rate(wins[ym], totals[ym]),
            )
            for ym in months
        ]

    # =============== Distribution Actions ===============
    def source_distribution(self, grants: Iterable[GrantDTO]) -> List[SourceDistributionDTO]:
        counts = Counter(g.source for g in grants)
        return [SourceDistributionDTO(fonte=src, valore=n) for src, n in _sorted_by_count(counts)]

    def type_distribution(self, grants: Iterable[GrantDTO]) -> TypeDistributionDTO:
        counts = Counter(g.grant_type for g in grants)
        return TypeDistributionDTO(
            europei=counts["europeo"],
            statali=counts["statale"],
            regionali=counts["regionale"],
            altri=counts["altro"],
        )

    def deadline_distribution(self, grants: Iterable[GrantDTO], *, today: date) -> DeadlineDistributionDTO:
        one_month = add_months(today, 1)
        three_months = add_months(today, 3)
        buckets = Counter()
        for g in grants:
            if g.deadline is None:
                buckets["senza_scadenza"] += 1
            elif g.deadline < today:
                buckets["scaduti"] += 1
            elif g.deadline <= one_month:
                buckets["entro_un_mese"] += 1
            elif g.deadline <= three_months:
                buckets["entro_tre_mesi"] += 1
            else:
                buckets["oltre_tre_mesi"] += 1
        return DeadlineDistributionDTO(**buckets)

    # =============== Performance Actions ===============
    def source_performance(
        self,
        grants: Iterable[GrantDTO],
        matches: Iterable[MatchResultDTO],
    ) -> List[SourcePerformanceDTO]:
        source_of = {g.key: g.source for g in grants}
        totals: Counter = Counter()
        wins: Counter = Counter()
        for m in matches:
            src = source_of.get(m.grant_id, UNKNOWN_SOURCE)
            totals[src] += 1
            if self.config.is_successful(m.score):
                wins[src] += 1

        return [
            SourcePerformanceDTO(fonte=src, totale_match=n, percentuale_successo=_rate(wins[src], n))
            for src, n in _sorted_by_count(totals)
        ]

    def client_performance(
        self,
        matches: Iterable[MatchResultDTO],
        client_names: Optional[Mapping[str, str]] = None,
    ) -> List[ClientPerformanceDTO]:
        names = client_names or {}
        bands: Dict[str, Counter] = defaultdict(Counter)
        for m in matches:
            c = bands[m.client_id]
            c["total"] += 1
            if self.config.is_successful(m.score):
                c["alta"] += 1
            elif m.score >= MEDIUM_SCORE_FLOOR:
                c["media"] += 1
            else:
                c["bassa"] += 1

        rows = [
            ClientPerformanceDTO(
                cliente=names.get(cid) or cid,
                match_generati=c["total"],
                match_alta=c["alta"],
                match_media=c["media"],
                match_bassa=c["bassa"],
            )
            for cid, c in bands.items()
        ]
        rows.sort(key=lambda r: (-r.match_generati, r.cliente))
        return rows


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
