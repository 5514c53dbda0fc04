from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import sessionmaker

from config import DEFAULT_ENGINE_CONFIG, EngineConfig
from dao.client_dao import ClientDAO
from dao.generation_dao import GenerationDAO
from dao.grant_dao import GrantDAO
from dao.match_dao import MatchDAO
from db.db_conn import SessionLocal
from dto.match_dto import MatchFilter
from dto.report_dto import ReportRange, ReportSnapshotDTO
from services.errors import StaleReadError
from services.report.report_aggregator import ReportAggregator, utc_now

logger = logging.getLogger(__name__)


class ReportService:
    """
    Loads the canonical grants, active clients and MatchResult history from the
    store and hands them to ReportAggregator.

    The store generation is read before and after loading; if a write landed in
    between, the inputs may mix two states and StaleReadError is raised instead
    of returning a snapshot.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker = SessionLocal,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ):
        self.session_factory = session_factory
        self.config = config
        self.aggregator = ReportAggregator(config)

    def snapshot(
        self,
        report_range: Optional[ReportRange] = None,
        *,
        now: Optional[datetime] = None,
        client_count: Optional[int] = None,
    ) -> ReportSnapshotDTO:
        now = now or utc_now()
        rng = report_range or ReportRange()

        with self.session_factory() as sess:
            gen_dao = GenerationDAO(sess)
            before = gen_dao.current()

            grants = GrantDAO(sess).read_all()
            matches = MatchDAO(sess).query(MatchFilter(since=rng.start, until=rng.end))
            clients = ClientDAO(sess).read_active()

            after = gen_dao.current()

        if before != after:
            logger.warning("Store generation moved during report read (%d -> %d)", before, after)
            raise StaleReadError(
                message="store changed while the report inputs were being read",
                expected_generation=before,
                actual_generation=after,
            )

        if client_count is None:
            client_count = len(clients)

        return self.aggregator.snapshot(
            grants,
            matches,
            now=now,
            report_range=rng,
            client_count=client_count,
            client_names={c.id: c.name for c in clients if c.name},
            generation=after,
        )
