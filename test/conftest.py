import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from config import EngineConfig
from db.db_conn import make_session_factory
from db.init_db import init_database
from dto.client_dto import ClientProfileDTO
from dto.grant_dto import GrantDTO
from services.matching.classification import ClassificationTable

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def session_factory():
    factory = make_session_factory("sqlite+pysqlite:///:memory:")
    bind = factory.kw["bind"]
    init_database(bind)
    yield factory
    bind.dispose()


@pytest.fixture
def classification():
    return ClassificationTable.load(PROJECT_ROOT / "data" / "classification" / "ateco.json")


@pytest.fixture
def single_code_table():
    return ClassificationTable.from_mapping({
        "Tecnologia": [{"codice": "62.01.00", "descrizione": "Produzione di software"}],
        "Energia": [
            {"codice": "35.11.00", "descrizione": "Produzione di energia elettrica"},
            {"codice": "35.14.00", "descrizione": "Commercio di energia elettrica"},
        ],
    })


def make_grant(key="g1", **kw) -> GrantDTO:
    data = dict(
        key=key,
        key_origin="persisted",
        title=f"Bando {key}",
        source="RegioneX",
        description="Contributi per la digitalizzazione",
        ingested_at=NOW,
    )
    data.update(kw)
    return GrantDTO(**data)


def make_client(client_id="c1", **kw) -> ClientProfileDTO:
    data = dict(id=client_id, name=f"Cliente {client_id}", sector="Tecnologia", requirements="")
    data.update(kw)
    return ClientProfileDTO(**data)
