"""Application configuration using Pydantic Settings."""
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # AI gateway (OpenAI-compatible chat completions)
    ai_gateway_api_key: Optional[str] = None
    ai_gateway_base_url: str = "https://ai.gateway.lovable.dev/v1"
    ai_gateway_model: str = "google/gemini-2.5-flash"
    ai_gateway_timeout_seconds: float = 30.0
    # Retries only apply to 5xx and transport errors, never to 429/402
    ai_gateway_max_retries: int = 1
    ai_gateway_retry_backoff_seconds: float = 0.5

    # Rate Limiting
    rate_limit_window_seconds: float = 60.0
    analyze_rate_limit: int = 20
    live_screen_rate_limit: int = 15
    rate_limit_identity: str = "bearer"  # bearer | ip

    # Request limits
    message_max_chars: int = 5000
    custom_instructions_max_chars: int = 1000
    latest_info_max_chars: int = 2000
    manual_instruction_max_chars: int = 500
    enum_field_max_chars: int = 50
    history_max_entries: int = 50
    image_max_bytes: int = 10 * 1024 * 1024

    # Result cache
    analysis_cache_enabled: bool = True
    analysis_cache_ttl_seconds: float = 300.0
    analysis_cache_max_entries: int = 50

    # Admin
    admin_token: str = Field(default="", alias="ADMIN_TOKEN")

    # CORS
    cors_allow_origins: List[str] = ["*"]

    # Paths
    log_dir: Path = Path("logs")
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.log_dir.mkdir(exist_ok=True)


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
