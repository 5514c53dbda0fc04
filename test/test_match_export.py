import csv
import io
from datetime import date

from conftest import make_client, make_grant
from dto.match_dto import MatchResultDTO
from services.report.match_export import EXPORT_HEADER, matches_to_csv, write_matches_csv


def _rows(text):
    return list(csv.reader(io.StringIO(text)))


def test_export_rows(now):
    client = make_client("c1", name='Alfa "Tech" Srl', sector="Tecnologia", sector_interests=["Energia"])
    grant = make_grant(
        "g1", title="Bando, con virgola", deadline=date(2024, 9, 30), sectors=["energia", "Turismo", "Tecnologia"]
    )
    matches = [
        MatchResultDTO(client_id="c1", grant_id="g1", score=82, computed_at=now, notified=True),
        MatchResultDTO(client_id="ghost", grant_id="gone", score=12, computed_at=now),
    ]

    rows = _rows(matches_to_csv(matches, {"c1": client}, {"g1": grant}))

    assert rows[0] == EXPORT_HEADER
    assert rows[1] == [
        "c1/g1", 'Alfa "Tech" Srl', "Bando, con virgola", "82", "Sì", "2024-09-30", "energia; Tecnologia",
    ]
    assert rows[2] == ["ghost/gone", "N/D", "N/D", "12", "No", "N/D", ""]


def test_deadline_text_used_when_no_date(now):
    grant = make_grant("g1", deadline_text="a sportello")
    text = matches_to_csv(
        [MatchResultDTO(client_id="c1", grant_id="g1", score=50, computed_at=now)], {}, {"g1": grant}
    )
    assert _rows(text)[1][5] == "a sportello"


def test_write_to_file(tmp_path, now):
    path = write_matches_csv(tmp_path / "out" / "match.csv", [], {}, {})
    assert path.read_text(encoding="utf-8").splitlines() == [",".join(EXPORT_HEADER)]
