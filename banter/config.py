"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from datetime import timedelta
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # API Settings
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Banter Conversation Practice"
    version: str = "1.0.0"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # DeepSeek (OpenAI-compatible chat completions)
    deepseek_api_key: str = ""
    deepseek_base_url: str = "https://api.deepseek.com"
    deepseek_model: str = "deepseek-chat"
    llm_timeout_seconds: float = 30.0
    llm_max_retries: int = 2
    llm_temperature: float = 0.8
    llm_max_tokens: int = 150

    # Conversation handling
    history_context_messages: int = 16  # turns handed to the model per reply
    max_message_length: int = 500
    idle_threshold_minutes: int = 120
    retention_hours: int = 24
    end_grace_seconds: int = 5
    reap_interval_minutes: int = 30

    # Rate limiting (per subject, sliding window)
    rate_limit_enabled: bool = True
    rate_limit_window_seconds: int = 3600
    rate_limit_message_per_hour: int = 100
    rate_limit_conversation_start_per_hour: int = 10

    @property
    def idle_threshold(self) -> timedelta:
        return timedelta(minutes=self.idle_threshold_minutes)

    @property
    def retention_threshold(self) -> timedelta:
        return timedelta(hours=self.retention_hours)

    @property
    def end_grace(self) -> timedelta:
        return timedelta(seconds=self.end_grace_seconds)

    @property
    def reap_interval(self) -> timedelta:
        return timedelta(minutes=self.reap_interval_minutes)

    @property
    def llm_configured(self) -> bool:
        key = (self.deepseek_api_key or "").strip()
        return bool(key and not key.startswith("sk-your-"))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
