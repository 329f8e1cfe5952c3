"""
Configuration - environment driven settings (pydantic-settings).

Values come from environment variables or a `.env` file in the working
directory. Use `get_settings()`; call `get_settings.cache_clear()` to reload.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AISettings(BaseSettings):
    """OpenAI-compatible chat completions endpoint used for invoice extraction."""

    model_config = SettingsConfigDict(
        env_prefix="OPENAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str | None = Field(default=None, description="API key; extraction is disabled without it")
    api_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="Chat completions endpoint",
    )
    model: str = Field(default="gpt-4o-mini")
    temperature: float = Field(default=0.1, ge=0.0, le=1.0)
    max_tokens: int = Field(default=1000, ge=100, le=8192)
    timeout_seconds: int = Field(default=60, ge=1)
    max_retries: int = Field(default=3, ge=0, le=10)
    initial_delay_seconds: float = Field(default=1.0, ge=0.0)
    max_delay_seconds: float = Field(default=10.0, ge=0.0)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="ZZP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "ZZP Boekhouding API"
    environment: str = Field(default="development", description="development, test, production")
    debug: bool = False

    database_url: str | None = Field(default=None, description="SQLAlchemy URL; overrides database_type")
    database_type: str = Field(default="sqlite", description="sqlite or postgresql")
    database_path: str = "./data/zzpboek.db"

    log_level: str = "INFO"
    log_json: bool = True

    cors_origins: str = Field(default="*", description="Comma separated list of allowed origins")

    upload_dir: str = "./data/uploads"
    max_upload_size_mb: int = Field(default=10, ge=1, le=50)
    supported_upload_types: str = "application/pdf,image/png,image/jpeg,image/webp"

    software_name: str = "ZZP Boekhouding"
    software_version: str = "0.1.0"

    @field_validator("database_type")
    @classmethod
    def validate_database_type(cls, v: str) -> str:
        v = v.lower()
        if v not in ("sqlite", "postgresql"):
            raise ValueError(f"Unsupported database type: {v}")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def supported_upload_types_list(self) -> list[str]:
        return [t.strip().lower() for t in self.supported_upload_types.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def upload_path(self) -> Path:
        return Path(self.upload_dir)

    @property
    def ai(self) -> AISettings:
        return AISettings()


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return Settings()
