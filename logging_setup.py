from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from config import settings

# Title-derived identity keys are traced here, apart from the run log.
AUDIT_LOGGER_NAME = "audit.identity"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _rotating_file(path: Path, fmt: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=10_000_000,   # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(fmt)
    return handler


def _setup_audit_log(log_dir: Path, log_name: str, fmt: logging.Formatter) -> None:
    audit = logging.getLogger(AUDIT_LOGGER_NAME)
    audit.addHandler(_rotating_file(log_dir / f"{log_name}.audit.log", fmt))


def setup_logging(log_name: str | None = "bandi") -> None:
    """
    Call once at process start.
    Console + rotating run log on the root logger, plus the identity-key audit log.
    """
    root = logging.getLogger()

    # Prevent duplicate handlers if setup_logging() is called twice
    if root.handlers:
        return

    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    fmt = logging.Formatter(LOG_FORMAT)
    log_name = log_name or "bandi"

    log_dir: Path = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    root.addHandler(console)
    root.addHandler(_rotating_file(log_dir / f"{log_name}.log", fmt))

    _setup_audit_log(log_dir, log_name, fmt)
