from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Union

from dto.client_dto import ClientProfileDTO
from dto.grant_dto import GrantDTO
from dto.match_dto import MatchResultDTO

EXPORT_HEADER = [
    "ID",
    "Cliente",
    "Bando",
    "Compatibilità (%)",
    "Notificato",
    "Scadenza",
    "Settori in comune",
]
MISSING = "N/D"


def common_sectors(client: Optional[ClientProfileDTO], grant: Optional[GrantDTO]) -> List[str]:
    """Grant sector tags the client also declares, compared case-insensitively, in grant order."""
    if client is None or grant is None:
        return []
    declared = {s.lower() for s in client.declared_sectors()}
    return [s for s in grant.sectors if s.lower() in declared]


def export_row(
    match: MatchResultDTO,
    client: Optional[ClientProfileDTO],
    grant: Optional[GrantDTO],
) -> List[str]:
    deadline = MISSING
    if grant is not None:
        if grant.deadline is not None:
            deadline = grant.deadline.isoformat()
        elif grant.deadline_text:
            deadline = grant.deadline_text
    return [
        f"{match.client_id}/{match.grant_id}",
        (client.name if client else None) or MISSING,
        (grant.title if grant else None) or MISSING,
        str(match.score),
        "Sì" if match.notified else "No",
        deadline,
        "; ".join(common_sectors(client, grant)),
    ]


def matches_to_csv(
    matches: Iterable[MatchResultDTO],
    clients: Mapping[str, ClientProfileDTO],
    grants: Mapping[str, GrantDTO],
) -> str:
    """Render MatchResults as CSV text; missing clients or grants show as N/D."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)
    for m in matches:
        writer.writerow(export_row(m, clients.get(m.client_id), grants.get(m.grant_id)))
    return buf.getvalue()


def write_matches_csv(
    path: Union[str, Path],
    matches: Iterable[MatchResultDTO],
    clients: Mapping[str, ClientProfileDTO],
    grants: Mapping[str, GrantDTO],
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(matches_to_csv(matches, clients, grants), encoding="utf-8")
    return path
