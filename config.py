from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Final

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    # =========================
    # Store
    # =========================
    database_url: str = f"sqlite+pysqlite:///{BASE_DIR / 'data' / 'bandi.db'}"
    commit_every: int = 200

    # =========================
    # Logging
    # =========================
    log_level: str = "INFO"
    log_dir: Path = BASE_DIR / "logs"

    # =========================
    # Matching policy
    # =========================
    success_threshold: int = 70
    new_grant_window_hours: int = 24
    sector_weight: float = 0.6
    keyword_weight: float = 0.3
    constraint_weight: float = 0.1
    sector_fallback_score: float = 0.3

    # =========================
    # Reporting
    # =========================
    report_months: int = 6

    # =========================
    # Reference data
    # =========================
    classification_table_path: Path = BASE_DIR / "data" / "classification" / "ateco.json"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        case_sensitive=False,
    )


settings = Settings()


@dataclass(frozen=True)
class EngineConfig:
    """
    Policy values handed to the engine components at construction.

    Components never read ``settings`` directly; request handlers build one of
    these (usually via ``from_settings``) and pass it in.
    """
    success_threshold: int = 70
    new_grant_window: timedelta = timedelta(hours=24)
    sector_weight: float = 0.6
    keyword_weight: float = 0.3
    constraint_weight: float = 0.1
    sector_fallback_score: float = 0.3
    report_months: int = 6
    commit_every: int = 200

    @classmethod
    def from_settings(cls, s: Settings) -> "EngineConfig":
        return cls(
            success_threshold=s.success_threshold,
            new_grant_window=timedelta(hours=s.new_grant_window_hours),
            sector_weight=s.sector_weight,
            keyword_weight=s.keyword_weight,
            constraint_weight=s.constraint_weight,
            sector_fallback_score=s.sector_fallback_score,
            report_months=s.report_months,
            commit_every=s.commit_every,
        )

    def is_successful(self, score: int) -> bool:
        return score >= self.success_threshold


# =========================
# Frequently used aliases: Constant
# =========================
SUCCESS_THRESHOLD: Final[int] = settings.success_threshold
NEW_GRANT_WINDOW: Final[timedelta] = timedelta(hours=settings.new_grant_window_hours)
DEFAULT_ENGINE_CONFIG: Final[EngineConfig] = EngineConfig.from_settings(settings)
