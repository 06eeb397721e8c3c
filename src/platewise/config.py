"""Application configuration."""

import os
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_anon_key: str
    supabase_service_key: str
    stripe_secret_key: str
    stripe_publishable_key: str | None = None
    stripe_webhook_secret: str
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_max_output_tokens: int = 1500
    app_url: str
    environment: Literal["development", "production", "test"] = (
        _ENVIRONMENT  # type: ignore[assignment]
    )
    meal_images_bucket: str = "meal-images"
    cors_allow_origins: str = "*"

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("supabase_url", "app_url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return cleaned.rstrip("/")


def parse_cors_origins(raw: str | None) -> list[str]:
    """Parse allowed CORS origins from env."""
    if raw is None:
        return ["*"]
    origins = [chunk.strip() for chunk in raw.split(",") if chunk.strip()]
    return origins or ["*"]
