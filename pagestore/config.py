"""
Central configuration.

Settings are read from environment variables (``PAGESTORE_*``) and from a
``.env`` file at the repo root, if present.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Persistence settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=_REPO_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Paths
    DATA_DIR: Path = Field(default=_REPO_ROOT / "data", validation_alias="PAGESTORE_DATA_DIR")
    DATABASE_PATH: Path = Field(
        default=_REPO_ROOT / "data" / "pages.db",
        validation_alias="PAGESTORE_DATABASE_PATH",
    )

    # SQLite connection
    JOURNAL_MODE: str = Field(default="WAL", validation_alias="PAGESTORE_JOURNAL_MODE")
    BUSY_TIMEOUT_MS: int = Field(default=5000, ge=0, validation_alias="PAGESTORE_BUSY_TIMEOUT_MS")

    # Schema creation against an already-initialized store
    SETUP_EXIST_OK: bool = Field(default=False, validation_alias="PAGESTORE_SETUP_EXIST_OK")

    LOG_LEVEL: str = Field(default="INFO", validation_alias="PAGESTORE_LOG_LEVEL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def get_repo_root() -> Path:
    return _REPO_ROOT


def get_db_path() -> Path:
    return get_settings().DATABASE_PATH
