# app/core/config.py
from __future__ import annotations

"""
# Clipvault · Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; explicit where prod needs secrets.
- CSV → list helpers for CORS allow-lists.
- Optional external systems (S3, Redis) so imports never crash in dev.
- Media delivery mode (stream vs. signed) chosen per deployment.

## Usage
    from app.core.config import settings
"""

import logging
from pathlib import Path
from typing import List, Optional, Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Delivery:
        - `MEDIA_DELIVERY_MODE=stream` serves byte ranges from the backing store.
        - `MEDIA_DELIVERY_MODE=signed` hands out time-bound object references.

    Notes:
        - `DATABASE_URL_OVERRIDE` wins over the POSTGRES_* parts (tests, sqlite).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "Clipvault API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True

    # ── Security / JWT (verification only; issuance lives elsewhere) ──
    JWT_SECRET_KEY: SecretStr = SecretStr("dev-only-change-me")
    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = "HS256"
    JWT_AUDIENCE: Optional[str] = None

    # ── Redis / Rate limiting ─────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    DEFAULT_RATE_LIMIT: Optional[str] = None  # e.g., "200/minute"
    RATELIMIT_STORAGE_URI: Optional[str] = None  # read by app.core.limiter; memory:// when unset
    ANALYTICS_RATE_LIMIT: str = "120/minute"
    SHARE_RATE_LIMIT: str = "60/minute"

    # ── Database (PostgreSQL) ─────────────────────────────────
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = SecretStr("postgres")
    POSTGRES_DB: str = "clipvault"
    DATABASE_URL_OVERRIDE: Optional[str] = None

    # ── CORS ─────────────────────────────────────────────────
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    FRONTEND_ORIGINS: Optional[str] = None  # CSV

    # ── Media storage & delivery ──────────────────────────────
    MEDIA_DELIVERY_MODE: Literal["stream", "signed"] = "stream"
    STORAGE_BACKEND: Literal["local", "s3"] = "local"
    MEDIA_ROOT: Path = Path("media")
    SIGNED_URL_TTL_SECONDS: int = Field(3600, ge=60, le=7 * 24 * 60 * 60)
    STREAM_CHUNK_SIZE: int = Field(64 * 1024, ge=1024, le=8 * 1024 * 1024)
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[SecretStr] = None
    AWS_REGION: str = "us-east-1"
    AWS_BUCKET_NAME: Optional[str] = None

    # ── Analytics ─────────────────────────────────────────────
    ANALYTICS_WINDOW_DAYS: int = Field(30, ge=1, le=365)
    ANALYTICS_DEFAULT_QUARTER_SECONDS: float = 60.0

    # ── Folders ───────────────────────────────────────────────
    FOLDER_LOCK_TIMEOUT_SECONDS: int = Field(10, ge=1, le=120)
    FOLDER_LOCK_WAIT_SECONDS: int = Field(3, ge=0, le=60)

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _assemble_cors_origins(cls, v: str | List[str]):
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @field_validator("FRONTEND_ORIGINS", mode="before")
    @classmethod
    def _normalize_frontend_csv(cls, v):
        return None if v is None else ",".join(_split_csv(str(v)))

    # ── Derived / convenience properties ─────────────────────
    # Database DSNs
    @property
    def DATABASE_URL(self) -> str:
        """Sync DSN."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def frontend_origins_list(self) -> List[str]:
        """
        Preferred CORS allowlist:
        Priority → FRONTEND_ORIGINS (CSV) → BACKEND_CORS_ORIGINS (typed list).
        """
        if self.FRONTEND_ORIGINS:
            return _split_csv(self.FRONTEND_ORIGINS)
        return [str(u) for u in (self.BACKEND_CORS_ORIGINS or [])]


# Singleton instance
settings = Settings()
