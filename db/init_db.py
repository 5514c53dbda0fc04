import os
import sys

# ───────────────────────────────────────────────
# Ensure project root on sys.path
# ───────────────────────────────────────────────
if __package__ is None or __package__ == "":
    PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if PROJECT_ROOT not in sys.path:
        sys.path.insert(0, PROJECT_ROOT)

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

# Shared Base + engine
from db.base import Base
from db.db_conn import engine as default_engine

# Import ALL model modules so their tables register on Base
import db.models  # noqa: F401
from db.models.store_generation import GENERATION_ROW_ID, StoreGeneration

logger = logging.getLogger(__name__)


# ───────────────────────────────────────────────
# Initialize DB
# ───────────────────────────────────────────────
def init_database(bind: Engine | None = None) -> None:
    bind = bind or default_engine
    logger.info("Creating database tables (if not exist): %s", sorted(Base.metadata.tables.keys()))
    Base.metadata.create_all(bind)
    with Session(bind) as sess:
        if sess.get(StoreGeneration, GENERATION_ROW_ID) is None:
            sess.add(StoreGeneration(id=GENERATION_ROW_ID, generation=0))
            sess.commit()
    logger.info("All tables ready.")


if __name__ == "__main__":
    from logging_setup import setup_logging

    setup_logging("init_db")
    init_database()
