from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from config import DEFAULT_ENGINE_CONFIG, EngineConfig
from dto.grant_dto import GrantDTO
from services.errors import ValidationError
from services.grant.normalizer import RecordInput, normalize_record

logger = logging.getLogger(__name__)


@dataclass
class SourceBatch:
    """One raw-record collection tagged with the name of its origin."""
    source_name: str
    records: Sequence[RecordInput]
    kind: str = "database"


@dataclass
class DedupResult:
    grants: List[GrantDTO] = field(default_factory=list)
    received: int = 0
    skipped: int = 0
    discarded: int = 0
    derived_keys: int = 0
    errors: List[ValidationError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canonical": len(self.grants),
            "received": self.received,
            "skipped": self.skipped,
            "discarded": self.discarded,
            "derived_keys": self.derived_keys,
        }


def is_new(grant: GrantDTO, now: datetime, window: timedelta = DEFAULT_ENGINE_CONFIG.new_grant_window) -> bool:
    """A grant is "new" while ``now - ingested_at <= window``. Never stored."""
    return grant.is_new(now, window)


def _supersedes(candidate: GrantDTO, current: GrantDTO) -> bool:
    # Strictly more recent wins; absent/equal timestamps keep the first seen.
    if candidate.ingested_at is None:
        return False
    if current.ingested_at is None:
        return True
    return candidate.ingested_at > current.ingested_at


class Deduplicator:
    """Builds the canonical grant set from many source collections."""

    def __init__(self, config: EngineConfig = DEFAULT_ENGINE_CONFIG):
        self.config = config

    def merge_normalized(self, grants: Iterable[GrantDTO], result: Optional[DedupResult] = None) -> DedupResult:
        result = result or DedupResult()

        winners: Dict[str, GrantDTO] = {}
        first_seen: Dict[str, int] = {}

        for grant in grants:
            current = winners.get(grant.key)
            if current is None:
                winners[grant.key] = grant
                first_seen[grant.key] = len(first_seen)
                continue

            result.discarded += 1
            if _supersedes(grant, current):
                logger.info(
                    "Key %r: record from %r (%s) replaces %r (%s)",
                    grant.key, grant.source, grant.ingested_at, current.source, current.ingested_at,
                )
                winners[grant.key] = grant
            else:
                logger.info(
                    "Key %r: discarding later record from %r (%s), keeping %r (%s)",
                    grant.key, grant.source, grant.ingested_at, current.source, current.ingested_at,
                )

        ordered = sorted(winners.values(), key=lambda g: first_seen[g.key])
        # stable: equal timestamps keep first-seen order
        ordered.sort(
            key=lambda g: (g.ingested_at is not None, g.ingested_at or datetime.min),
            reverse=True,
        )
        result.grants = ordered
        return result

    def merge(self, batches: Iterable[SourceBatch]) -> DedupResult:
        result = DedupResult()
        normalized: List[GrantDTO] = []

        for batch in batches:
            for idx, record in enumerate(batch.records):
                result.received += 1
                try:
                    grant = normalize_record(record, batch.source_name, default_kind=batch.kind)
                except ValidationError as exc:
                    result.skipped += 1
                    result.errors.append(exc)
                    logger.warning(
                        "Skipping record %d of source %r: %s", idx, batch.source_name, exc.message
                    )
                    continue
                if grant.key_origin == "derived":
                    result.derived_keys += 1
                normalized.append(grant)

        self.merge_normalized(normalized, result)
        logger.info("Deduplication completed %s", result.to_dict())
        return result
