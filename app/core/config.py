# app/core/config.py
from __future__ import annotations

"""
# StreamGate — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; explicit where prod needs secrets.
- CSV → list helpers for CORS.
- Optional storage credentials so imports never crash in dev.
- Bounded TTLs for streaming credentials and signed URLs.

## Usage
    from app.core.config import settings
"""

import logging
from typing import List, Literal, Optional

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


def _normalize_url_like(v: str | None) -> str:
    """Normalize to a string URL without trailing slash (scheme enforced)."""
    s = (v or "").strip()
    if not s:
        return ""
    if not (s.startswith("http://") or s.startswith("https://")):
        s = "https://" + s
    return s.rstrip("/")


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Security:
        - Explicit secret for access tokens; a dedicated streaming secret is
          optional and falls back to the access-token secret.
        - Error internals are hidden unless `EXPOSE_ERROR_DETAILS` is set.

    Notes:
        - Prefer the convenience properties when composing URLs/DSNs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "StreamGate API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True
    EXPOSE_ERROR_DETAILS: bool = False

    # ── Security / JWT ────────────────────────────────────────
    JWT_SECRET_KEY: SecretStr = Field(...)
    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = "HS256"
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None

    # ── Streaming credentials ─────────────────────────────────
    STREAMING_TOKEN_SECRET: Optional[SecretStr] = None
    STREAM_TOKEN_TTL_SECONDS: int = Field(2 * 60 * 60, ge=60, le=24 * 60 * 60)
    SUBTITLE_URL_TTL_SECONDS: int = Field(60 * 60, ge=60, le=24 * 60 * 60)
    PII_HASH_SALT: str = "streamgate:pii_salt"

    # ── Concurrency guard ─────────────────────────────────────
    ADMISSION_MAX_ATTEMPTS: int = Field(5, ge=1, le=50)
    ADMISSION_RETRY_BACKOFF_MS: int = Field(15, ge=0, le=1000)

    # ── Rate limiting (memory:// in dev, redis://… in prod) ───
    DEFAULT_RATE_LIMIT: str = "100/minute"
    RATELIMIT_STORAGE_URI: Optional[str] = None

    # ── Database (PostgreSQL) ─────────────────────────────────
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = Field(...)
    POSTGRES_DB: str = "streamgate"
    DB_POOL_SIZE: int = Field(10, ge=1, le=100)
    DB_MAX_OVERFLOW: int = Field(20, ge=0, le=200)
    DB_POOL_RECYCLE_SECONDS: int = 1800
    DB_ECHO: bool = False

    # ── CORS ──────────────────────────────────────────────────
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )

    # ── Object storage (S3-compatible; Cloudflare R2 in prod) ─
    R2_ENDPOINT: Optional[str] = None
    R2_ACCESS_KEY_ID: Optional[str] = None
    R2_SECRET_ACCESS_KEY: Optional[SecretStr] = None
    R2_BUCKET_NAME: Optional[str] = None
    R2_PUBLIC_URL: Optional[str] = None
    R2_REGION: str = "auto"

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _assemble_cors_origins(cls, v: str | List[str]):
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @field_validator("R2_ENDPOINT", "R2_PUBLIC_URL", mode="before")
    @classmethod
    def _normalize_storage_urls(cls, v: str | None) -> str | None:
        s = _normalize_url_like(v)
        return s or None

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENV.lower() == "development"

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
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def streaming_secret(self) -> str:
        """Secret used to sign streaming credentials (falls back to the JWT secret)."""
        if self.STREAMING_TOKEN_SECRET is not None:
            return self.STREAMING_TOKEN_SECRET.get_secret_value()
        return self.JWT_SECRET_KEY.get_secret_value()

    @property
    def ratelimit_storage(self) -> str:
        """Storage URI for SlowAPI/limits; in-memory when unset."""
        return (self.RATELIMIT_STORAGE_URI or "").strip() or "memory://"


# Singleton instance
settings = Settings()
