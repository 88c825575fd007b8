"""Settings configuration"""
import json
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings read from the environment or a .env file"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False,
        validate_assignment=True, populate_by_name=True
    )

    # Application
    app_name: str = Field(default="Prompt Studio", validation_alias="APP_NAME")
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    api_prefix: str = Field(default="/api", validation_alias="API_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8000, validation_alias="PORT", ge=1, le=65535)
    workers: int = Field(default=1, validation_alias="WORKERS", ge=1)
    reload: bool = Field(default=False, validation_alias="RELOAD")

    # Upstream
    openrouter_api_key: Optional[SecretStr] = Field(default=None, validation_alias="OPENROUTER_API_KEY")
    openrouter_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_URL"
    )
    openrouter_models_url: str = Field(
        default="https://openrouter.ai/api/v1/models", validation_alias="OPENROUTER_MODELS_URL"
    )
    openrouter_site_url: str = Field(default="", validation_alias="OPENROUTER_SITE_URL")
    openrouter_site_name: str = Field(default="Prompt Playground", validation_alias="OPENROUTER_SITE_NAME")

    # Model slots, in priority order
    llm_primary_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="LLM_PRIMARY_MODEL")
    llm_primary_max_attempts: int = Field(default=2, validation_alias="LLM_PRIMARY_MAX_ATTEMPTS", ge=1)
    llm_secondary_model: str = Field(default="deepseek/deepseek-chat", validation_alias="LLM_SECONDARY_MODEL")
    llm_secondary_max_attempts: int = Field(default=3, validation_alias="LLM_SECONDARY_MAX_ATTEMPTS", ge=1)
    llm_tertiary_model: str = Field(
        default="meta-llama/llama-3.1-8b-instruct:free", validation_alias="LLM_TERTIARY_MODEL"
    )
    llm_tertiary_max_attempts: int = Field(default=1, validation_alias="LLM_TERTIARY_MAX_ATTEMPTS", ge=1)

    # Token limits
    max_tokens_default: int = Field(default=1200, validation_alias="MAX_TOKENS_DEFAULT", ge=1)
    max_tokens_hard_cap: int = Field(default=2000, validation_alias="MAX_TOKENS_HARD_CAP", ge=1)

    # Timeouts (milliseconds)
    request_timeout_ms: int = Field(default=30000, validation_alias="REQUEST_TIMEOUT_MS", gt=0)
    orchestration_deadline_ms: Optional[int] = Field(
        default=None, validation_alias="ORCHESTRATION_DEADLINE_MS", gt=0
    )
    health_probe_timeout_ms: int = Field(default=5000, validation_alias="HEALTH_PROBE_TIMEOUT_MS", gt=0)

    # Security
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"], validation_alias="CORS_ORIGINS"
    )

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            # Handle JSON array format
            if v.startswith("["):
                try:
                    return json.loads(v)
                except (json.JSONDecodeError, ValueError):
                    pass
            # Handle comma-separated format
            return [origin.strip() for origin in v.split(",")]
        return v

    # Properties
    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def has_openrouter_key(self) -> bool:
        return bool(self.openrouter_api_key and self.openrouter_api_key.get_secret_value())


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
