"""
GrowFlow — Centralized configuration.

Loads all settings from .env and validates them once at process start.
The resulting Settings object is passed explicitly to every service;
business logic never reads the environment itself.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from src.data.models import Priority, match_enum

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Datastore: "supabase" | "sqlite"
    DATASTORE_PROVIDER: str = "sqlite"
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    DATABASE_PATH: str = "data/growflow.db"

    # LLM: openai, anthropic, gemini or cohere.
    # An empty key means notes are parsed with the deterministic parser only.
    LLM_PROVIDER: str = "openai"
    LLM_MODEL: str = ""          # empty → smart default per provider
    LLM_API_KEY: str = ""
    LLM_TEMPERATURE: float = 0.3
    LLM_TIMEOUT_SECONDS: float = 30.0

    DEFAULT_PRIORITY: Priority = Priority.MEDIUM

    # HTTP API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Telegram note ingress (optional)
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_USER_MAP: dict[int, str] = {}

    @field_validator("DATASTORE_PROVIDER", "LLM_PROVIDER", mode="before")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return (v or "").strip().lower()

    @field_validator("LLM_API_KEY", mode="before")
    @classmethod
    def drop_placeholder_key(cls, v: str) -> str:
        v = (v or "").strip()
        if v.startswith("your-"):
            return ""
        return v

    @field_validator("DEFAULT_PRIORITY", mode="before")
    @classmethod
    def parse_priority(cls, v: object) -> object:
        return match_enum(Priority, v)

    @field_validator("TELEGRAM_USER_MAP", mode="before")
    @classmethod
    def parse_user_map(cls, v: str | dict) -> dict:
        """Parse "123:uuid-a,456:uuid-b" into {123: "uuid-a", 456: "uuid-b"}."""
        if isinstance(v, dict):
            return v
        mapping: dict[int, str] = {}
        if isinstance(v, str) and v.strip():
            for pair in v.split(","):
                if not pair.strip():
                    continue
                telegram_id, _, profile_id = pair.partition(":")
                if not profile_id.strip():
                    raise ValueError(f"Invalid TELEGRAM_USER_MAP entry: {pair!r}")
                mapping[int(telegram_id.strip())] = profile_id.strip()
        return mapping

    @property
    def model_enabled(self) -> bool:
        return bool(self.LLM_API_KEY)


def load_settings(env_path: Path | None = _ENV_PATH) -> Settings:
    """Load settings from environment, validating required keys.

    Raises:
        ValueError: if the selected datastore is missing its credentials.
    """
    if env_path is not None:
        load_dotenv(env_path)

    settings = Settings(
        DATASTORE_PROVIDER=os.getenv("DATASTORE_PROVIDER", "sqlite"),
        SUPABASE_URL=os.getenv("SUPABASE_URL", ""),
        SUPABASE_SERVICE_ROLE_KEY=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/growflow.db"),
        LLM_PROVIDER=os.getenv("LLM_PROVIDER", "openai"),
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=os.getenv("LLM_API_KEY", ""),
        LLM_TEMPERATURE=os.getenv("LLM_TEMPERATURE", "0.3"),
        LLM_TIMEOUT_SECONDS=os.getenv("LLM_TIMEOUT_SECONDS", "30"),
        DEFAULT_PRIORITY=os.getenv("DEFAULT_PRIORITY", "Medium"),
        API_HOST=os.getenv("API_HOST", "0.0.0.0"),
        API_PORT=os.getenv("API_PORT", "8000"),
        TELEGRAM_BOT_TOKEN=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        TELEGRAM_USER_MAP=os.getenv("TELEGRAM_USER_MAP", ""),
    )

    if settings.DATASTORE_PROVIDER == "supabase":
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set "
                "when DATASTORE_PROVIDER=supabase"
            )

    return settings
