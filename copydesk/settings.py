"""Application settings loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Environment-driven configuration with sensible defaults."""

    supabase_url: str = Field(default="", alias="SUPABASE_URL")
    supabase_anon_key: str = Field(default="", alias="SUPABASE_ANON_KEY")
    supabase_service_role_key: str = Field(default="", alias="SUPABASE_SERVICE_ROLE_KEY")

    ai_gateway_url: str = Field(
        default="https://ai.gateway.lovable.dev/v1/chat/completions", alias="AI_GATEWAY_URL"
    )
    ai_gateway_api_key: str = Field(default="", alias="AI_GATEWAY_API_KEY")
    ai_model: str = Field(default="google/gemini-2.5-flash", alias="AI_MODEL")
    ai_temperature: float = Field(default=0.7, alias="AI_TEMPERATURE")
    ai_max_tokens: int = Field(default=2000, alias="AI_MAX_TOKENS")
    ai_timeout_seconds: float = Field(default=60.0, alias="AI_TIMEOUT_SECONDS")
    ai_max_retries: int = Field(default=2, alias="AI_MAX_RETRIES")
    max_concurrent_ai_requests: int = Field(default=16, alias="MAX_CONCURRENT_AI_REQUESTS")
    request_timeout_seconds: float = Field(default=5.0, alias="REQUEST_TIMEOUT_SECONDS")
    max_request_size_bytes: int = Field(default=512_000, alias="MAX_REQUEST_SIZE_BYTES")

    credit_estimate_tokens: int = Field(default=5000, alias="CREDIT_ESTIMATE_TOKENS")
    chat_history_limit: int = Field(default=20, alias="CHAT_HISTORY_LIMIT")
    generation_history_limit: int = Field(default=15, alias="GENERATION_HISTORY_LIMIT")

    prompts_file: Path = Field(
        default=PROJECT_ROOT / "config" / "prompts.yaml", alias="PROMPTS_FILE"
    )
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    service_version: str = Field(default="0.3.0", alias="SERVICE_VERSION")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    @property
    def prompts_path(self) -> Path:
        return self.prompts_file


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
