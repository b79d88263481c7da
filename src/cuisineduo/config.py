"""
CuisineDuo - Configuration and settings.

All settings come from the environment (or `.env`). Import `settings` for
lazy access; nothing is read until the first attribute lookup.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI
    openai_api_key: str
    openai_scan_api_key: str | None = None  # Vision traffic, falls back to openai_api_key

    # Supabase
    supabase_url: str
    supabase_anon_key: str
    supabase_service_role_key: str

    # Giphy
    giphy_api_key: str | None = None

    # Web push (VAPID)
    vapid_public_key: str | None = None
    vapid_private_key: str | None = None
    vapid_subject: str = "mailto:noreply@cuisineduo.app"

    # Application
    cuisineduo_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    cors_origins: list[str] = ["*"]

    # Prompt logging
    # CUISINEDUO_LOG_PROMPTS=1 - markdown files under prompt_logs/ (dev only)
    # CUISINEDUO_LOG_TO_DB=1 - one ai_logs row per model call
    cuisineduo_log_prompts: bool = False
    cuisineduo_log_to_db: bool = False

    # Swipe sessions
    swipe_poll_interval_seconds: float = 2.0

    @property
    def is_development(self) -> bool:
        return self.cuisineduo_env == "development"

    @property
    def is_production(self) -> bool:
        return self.cuisineduo_env == "production"

    @property
    def scan_api_key(self) -> str:
        return self.openai_scan_api_key or self.openai_api_key

    @property
    def push_enabled(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
