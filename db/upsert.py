from __future__ import annotations

from typing import Any, Dict, Iterator, List, Sequence, Tuple

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session


def dialect_insert(session: Session, model):
    """INSERT construct supporting ON CONFLICT DO UPDATE for the session's dialect."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return pg_insert(model)
    if name == "sqlite":
        return sqlite_insert(model)
    raise NotImplementedError(f"Upsert not supported on dialect {name!r}")


def chunked(rows: List[Dict[str, Any]], size: int = 500) -> Iterator[List[Dict[str, Any]]]:
    # keeps statements under SQLite's bound-parameter limit
    for i in range(0, len(rows), size):
        yield rows[i:i + size]


def last_per_key(rows: List[Dict[str, Any]], key_cols: Sequence[str]) -> List[Dict[str, Any]]:
    """One row per conflict key (the last one), so ON CONFLICT never hits a row twice."""
    by_key: Dict[Tuple[Any, ...], Dict[str, Any]] = {}
    for r in rows:
        by_key[tuple(r[c] for c in key_cols)] = r
    return list(by_key.values())
