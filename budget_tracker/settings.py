"""Environment-driven settings.

Values come from environment variables or a ``.env`` file in the working
directory. Domain data (seed categories, keyword rules) lives in the JSON
config handled by :mod:`budget_tracker.config` instead.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent
DEFAULT_DATABASE_URL = f"sqlite:///{PROJECT_ROOT / 'budget_tracker.db'}"


class GeminiSettings(BaseSettings):
    """Gemini model configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: Optional[str] = Field(default=None, description="Gemini API key")
    model_name: str = Field(default="gemini-2.5-flash", description="Gemini model to use")
    temperature: float = Field(default=0.1, ge=0.0, le=1.0)
    max_tokens: int = Field(default=1024, ge=64, le=8192)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(default=DEFAULT_DATABASE_URL, description="SQLAlchemy database URL")
    secret_key: str = Field(default="dev-budget-tracker", description="Flask session signing key")
    budget_config_path: Optional[str] = Field(
        default=None,
        description="JSON file with categories, keyword rules and payment methods",
    )
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False, description="Render log lines as JSON")
    debug_mode: bool = Field(default=False, description="Run the `serve` command with the Flask debugger")

    @property
    def sqlalchemy_url(self) -> str:
        # Hosted Postgres providers still hand out the legacy scheme.
        if self.database_url.startswith("postgres://"):
            return "postgresql://" + self.database_url[len("postgres://"):]
        return self.database_url


@lru_cache()
def get_settings() -> AppSettings:
    """Cached app settings. Call ``get_settings.cache_clear()`` to reload."""
    return AppSettings()


@lru_cache()
def get_gemini_settings() -> GeminiSettings:
    return GeminiSettings()
