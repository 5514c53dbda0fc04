import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]  # .../root
sys.path.insert(0, str(PROJECT_ROOT))

import argparse
import json
import logging
from datetime import datetime, time, timezone
from typing import List, Optional

from pydantic import TypeAdapter

from config import DEFAULT_ENGINE_CONFIG, settings
from logging_setup import setup_logging

from dao.client_dao import ClientDAO
from dao.grant_dao import GrantDAO
from dao.match_dao import MatchDAO
from db.db_conn import SessionLocal
from db.init_db import init_database
from dto.client_dto import ClientProfileDTO
from dto.match_dto import MatchFilter
from dto.report_dto import ReportRange
from dto.source_record_dto import SOURCE_KINDS
from services.grant.deduplicator import SourceBatch
from services.matching.classification import get_classification_table
from services.pipeline.aggregation_run import MatchingPipeline
from services.report.match_export import write_matches_csv

logger = logging.getLogger("run_matching")

_CLIENTS_ADAPTER = TypeAdapter(List[ClientProfileDTO])


def _read_json_list(path: Path) -> list:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        # {"bandi": [...]} / {"records": [...]} exports
        for k in ("records", "bandi", "data", "clienti"):
            if isinstance(data.get(k), list):
                return data[k]
        raise ValueError(f"{path}: expected a JSON list of records")
    return data


def _parse_source(arg: str, kind: str) -> SourceBatch:
    name, sep, path = arg.partition("=")
    if not sep or not name.strip() or not path.strip():
        raise argparse.ArgumentTypeError(f"--source expects NAME=PATH, got {arg!r}")
    records = _read_json_list(Path(path.strip()))
    logger.info("Loaded %d raw records for source %r from %s", len(records), name.strip(), path.strip())
    return SourceBatch(source_name=name.strip(), records=records, kind=kind)


def _parse_day(value: Optional[str], end: bool = False) -> Optional[datetime]:
    if not value:
        return None
    d = datetime.strptime(value, "%Y-%m-%d").date()
    return datetime.combine(d, time.max if end else time.min, tzinfo=timezone.utc)


def run_matching(
    sources: List[str],
    kind: str = "database",
    clients_path: Optional[Path] = None,
    since: Optional[str] = None,
    until: Optional[str] = None,
    export_csv: Optional[Path] = None,
    show_progress: bool = True,
) -> None:
    batches = [_parse_source(s, kind) for s in sources]

    clients = None
    if clients_path is not None:
        clients = _CLIENTS_ADAPTER.validate_python(_read_json_list(clients_path))
        with SessionLocal() as sess:
            ClientDAO(sess).upsert_clients(clients)
            sess.commit()
        logger.info("Imported %d client profiles from %s", len(clients), clients_path)

    pipeline = MatchingPipeline(
        session_factory=SessionLocal,
        classification=get_classification_table(settings.classification_table_path),
        config=DEFAULT_ENGINE_CONFIG,
    )
    result = pipeline.run(
        batches,
        clients=clients,
        report_range=ReportRange(start=_parse_day(since), end=_parse_day(until, end=True)),
        show_progress=show_progress,
    )
    logger.info("Run completed %s", result.to_dict())

    if export_csv is not None:
        with SessionLocal() as sess:
            matches = MatchDAO(sess).query(MatchFilter(include_archived=False))
            grants = {g.key: g for g in GrantDAO(sess).read_all()}
            all_clients = {c.id: c for c in ClientDAO(sess).read_active()}
        path = write_matches_csv(export_csv, matches, all_clients, grants)
        logger.info("Exported %d match results to %s", len(matches), path)

    print(result.snapshot.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":
    setup_logging("run_matching")

    parser = argparse.ArgumentParser(description="Aggregate grant sources, score clients and print the report")

    parser.add_argument(
        "--source",
        action="append",
        default=[],
        metavar="NAME=PATH",
        help="Source name and JSON file with its raw records (repeatable)",
    )
    parser.add_argument(
        "--kind",
        choices=SOURCE_KINDS,
        default="database",
        help="Record shape of the source files",
    )
    parser.add_argument(
        "--clients",
        type=Path,
        default=None,
        help="JSON file with client profiles to import before scoring (default: active clients in the store)",
    )
    parser.add_argument("--since", type=str, default=None, help="Report range start, YYYY-MM-DD")
    parser.add_argument("--until", type=str, default=None, help="Report range end, YYYY-MM-DD")
    parser.add_argument("--export-csv", type=Path, default=None, help="Write match results to this CSV file")
    parser.add_argument("--init-db", action="store_true", help="Create tables before running")
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")

    args = parser.parse_args()

    if args.init_db:
        init_database()

    run_matching(
        sources=args.source,
        kind=args.kind,
        clients_path=args.clients,
        since=args.since,
        until=args.until,
        export_csv=args.export_csv,
        show_progress=not args.no_progress,
    )
