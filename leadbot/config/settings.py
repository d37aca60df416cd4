"""
LeadBot - Centralized Configuration
=====================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr`` and has **no default value**.
  If the key is missing at startup, Pydantic will raise a ``ValidationError``
  with a clear error message.  The raw value is never exposed in repr,
  logs, or tracebacks.
- ``MONGO_URI`` is also ``SecretStr`` — connection strings contain
  credentials and must never leak into logs.
- ``SESSION_SECRET`` signs the session cookie.  Required.

Paths
-----
All filesystem paths are ``Path.resolve()``-d at class level so they
work identically on Windows, WSL, and Linux.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required** — the app will refuse
    to start until they are provided.

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr
        API key for Google AI Studio (Gemini embeddings + generation).
    MONGO_URI : SecretStr
        MongoDB connection string.  Contains credentials — never log raw value.
    MONGO_DB_NAME : str
        Database holding the lead records.
    MONGO_COLLECTION : str
        Collection holding one document per visitor (``_id`` = session id).
    SESSION_SECRET : SecretStr
        Key used to sign the visitor's session cookie.
    SESSION_MAX_AGE : int
        Session cookie lifetime in seconds.
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity and cookie security.
    SITE_NAME / SITE_DOMAIN : str
        Persona scope handed to the generative model.
    TOP_K : int
        Number of passages retrieved per question.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_RAW_DIR: Path = BASE_DIR / "data" / "raw"
    DATA_PROCESSED_DIR: Path = BASE_DIR / "data" / "processed"
    LANCEDB_PATH: Path = BASE_DIR / "data" / "lancedb"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"
    APP_NAME: str = "leadbot"

    # ── API Keys (REQUIRED — no default) ───────────────────────────────
    GOOGLE_API_KEY: SecretStr

    # ── MongoDB (REQUIRED — no default) ────────────────────────────────
    MONGO_URI: SecretStr
    MONGO_DB_NAME: str = "chatbot_db"
    MONGO_COLLECTION: str = "user_queries"

    # ── HTTP / Sessions ────────────────────────────────────────────────
    SESSION_SECRET: SecretStr
    SESSION_MAX_AGE: int = 15 * 60
    CORS_ORIGINS: list[str] = ["*"]

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.3

    # ── Persona ────────────────────────────────────────────────────────
    SITE_NAME: str = "Triad Flair"
    SITE_DOMAIN: str = "heyaryan.com"

    # ── Retrieval ──────────────────────────────────────────────────────
    TOP_K: int = 3
    LANCEDB_TABLE_NAME: str = "site_pages"

    # ── Ingestion Parameters ───────────────────────────────────────────
    CHUNK_SIZE: int = 800

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("CHUNK_SIZE")
    @classmethod
    def _chunk_size_positive(cls, v: int) -> int:
        if v < 50:
            raise ValueError(f"CHUNK_SIZE must be ≥ 50, got {v}")
        return v


    @field_validator("TOP_K")
    @classmethod
    def _top_k_range(cls, v: int) -> int:
        if not 1 <= v <= 20:
            raise ValueError(f"TOP_K must be 1–20, got {v}")
        return v


    @field_validator("SESSION_MAX_AGE")
    @classmethod
    def _max_age_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"SESSION_MAX_AGE must be positive, got {v}")
        return v

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this from bootstrap code only (app factory, CLI, logger):
#     from leadbot.config.settings import settings
settings = Settings()
