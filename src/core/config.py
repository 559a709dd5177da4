"""
Centralised application settings loaded from environment / .env file.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)

_DEFAULT_CATALOG = Path(__file__).resolve().parents[2] / "catalog" / "data_sources.yml"


class Settings(BaseSettings):
    # ── Postgres ─────────────────────────────────────────
    postgres_user: str = "reports"
    postgres_password: str = "reports_pw"
    postgres_db: str = "operations"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    database_url_override: str = ""  # e.g. sqlite:///reports.db

    # ── Report engine ────────────────────────────────────
    report_row_limit: int = 1000
    source_row_cap: int = 50_000
    source_timeout_ms: int = 10_000
    catalog_path: str = str(_DEFAULT_CATALOG)
    execution_log_enabled: bool = True

    # ── App ──────────────────────────────────────────────
    api_port: int = 8000
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
