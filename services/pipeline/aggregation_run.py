from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import sessionmaker
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from config import DEFAULT_ENGINE_CONFIG, EngineConfig
from dao.client_dao import ClientDAO
from dao.grant_dao import GrantDAO
from dao.match_dao import MatchDAO
from db.db_conn import SessionLocal
from dto.client_dto import ClientProfileDTO
from dto.match_dto import MatchResultDTO
from dto.report_dto import ReportRange, ReportSnapshotDTO
from services.errors import RunCancelledError, StoreError
from services.grant.deduplicator import DedupResult, Deduplicator, SourceBatch
from services.matching.classification import ClassificationTable, get_classification_table
from services.matching.match_scorer import MatchScorer
from services.report.report_service import ReportService
from services.report.report_aggregator import utc_now

logger = logging.getLogger(__name__)


class CancellationToken:
    """Set from any thread; the run checks it between phases and between clients."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, phase: str) -> None:
        if self._event.is_set():
            raise RunCancelledError(message=f"run cancelled during {phase}", phase=phase)


@dataclass
class RunResult:
    dedup: DedupResult
    snapshot: ReportSnapshotDTO
    grants_written: int = 0
    matches_written: int = 0
    clients_scored: int = 0
    successful_matches: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dedup": self.dedup.to_dict(),
            "grants_written": self.grants_written,
            "matches_written": self.matches_written,
            "clients_scored": self.clients_scored,
            "successful_matches": self.successful_matches,
            "skipped_records": len(self.errors),
        }


class MatchingPipeline:
    """
    One aggregation run: dedup -> score every active client -> report.

    The canonical grant set is fully built before any scoring starts, and all
    grant and MatchResult writes for the run share one transaction, so a
    failure or cancellation leaves the store as it was. The snapshot is only
    computed after that transaction commits.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker = SessionLocal,
        classification: Optional[ClassificationTable] = None,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ):
        self.session_factory = session_factory
        self.config = config
        self.classification = classification or get_classification_table()
        self.deduplicator = Deduplicator(config)
        self.scorer = MatchScorer(self.classification, config)
        self.reports = ReportService(session_factory=session_factory, config=config)

    def run(
        self,
        batches: Iterable[SourceBatch],
        *,
        clients: Optional[Sequence[ClientProfileDTO]] = None,
        cancel_token: Optional[CancellationToken] = None,
        report_range: Optional[ReportRange] = None,
        now: Optional[datetime] = None,
        show_progress: bool = False,
    ) -> RunResult:
        token = cancel_token or CancellationToken()
        now = now or utc_now()

        # -------------------------
        # 1) Dedup
        # -------------------------
        dedup = self.deduplicator.merge(batches)
        logger.info("[1/3 DEDUP] Completed %s", dedup.to_dict())
        token.raise_if_cancelled("dedup")

        # -------------------------
        # 2) Persist grants + score
        # -------------------------
        grants_written = 0
        matches_written = 0
        successful = 0
        scored_clients = 0
        pending: List[MatchResultDTO] = []

        with self.session_factory() as sess:
            try:
                grant_dao = GrantDAO(sess)
                match_dao = MatchDAO(sess)

                grants_written = grant_dao.upsert_grants(dedup.grants)
                if clients is None:
                    clients = ClientDAO(sess).read_active()
                else:
                    clients = [c for c in clients if c.active]

                with logging_redirect_tqdm():
                    for client in tqdm(clients, desc="Scoring clients", unit="client", disable=not show_progress):
                        token.raise_if_cancelled("scoring")
                        for result in self.scorer.score_many(client, dedup.grants, now=now):
                            pending.append(result)
                            if self.config.is_successful(result.score):
                                successful += 1
                        scored_clients += 1

                        if len(pending) >= self.config.commit_every:
                            matches_written += match_dao.upsert_matches(pending)
                            pending = []

                if pending:
                    matches_written += match_dao.upsert_matches(pending)
                    pending = []
                token.raise_if_cancelled("scoring")
                sess.commit()
            except RunCancelledError:
                sess.rollback()
                discarded = matches_written + len(pending)
                logger.warning(
                    "Run cancelled; %d match results discarded (%d flushed, %d unflushed)",
                    discarded, matches_written, len(pending),
                )
                raise
            except StoreError as exc:
                sess.rollback()
                logger.error("Run aborted, nothing committed: %s", exc)
                raise

        logger.info(
            "[2/3 SCORE] Completed (%d grants, %d clients, %d match results, %d successful)",
            grants_written, scored_clients, matches_written, successful,
        )

        # -------------------------
        # 3) Report
        # -------------------------
        snapshot = self.reports.snapshot(report_range, now=now)
        logger.info("[3/3 REPORT] Completed (totaleMatch=%d)", snapshot.totale_match)

        return RunResult(
            dedup=dedup,
            snapshot=snapshot,
            grants_written=grants_written,
            matches_written=matches_written,
            clients_scored=scored_clients,
            successful_matches=successful,
            errors=[e.to_dict() for e in dedup.errors],
        )
