from functools import lru_cache
from typing import ClassVar

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Required secrets (validated at startup)
    REQUIRED_SECRETS: ClassVar[list[str]] = [
        "supabase_url",
        "supabase_service_role_key",
        "openrouter_api_key",
    ]

    # Environment (development, staging, production)
    environment: str = "development"

    # App
    app_name: str = "Chat Moderation API"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # CORS (the chat client calls from arbitrary origins)
    cors_origins: list[str] = ["*"]

    # Supabase (service role bypasses row-level security)
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Redis (Celery broker + rate limit storage)
    redis_url: str = "redis://localhost:6379"

    # Classifier (OpenRouter chat completions)
    openrouter_api_key: str = ""
    classifier_url: str = "https://openrouter.ai/api/v1/chat/completions"
    classifier_model: str = "google/gemini-2.0-flash-001"
    classifier_referer: str = "https://lovable.dev"
    classifier_timeout_seconds: float = 20.0

    # PostHog
    posthog_enabled: bool = True
    posthog_api_key: str = ""
    posthog_host: str = "https://us.i.posthog.com"

    # Rate limiting
    rate_limit_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @model_validator(mode="after")
    def validate_required_secrets(self) -> "Settings":
        """Validate that all required secrets are set (non-empty)."""
        missing = []
        for secret_name in self.REQUIRED_SECRETS:
            value = getattr(self, secret_name, "")
            if not value or not value.strip():
                missing.append(secret_name.upper())

        if missing:
            raise ValueError(
                f"Missing required secrets: {', '.join(missing)}. "
                "Set these environment variables before starting the application."
            )

        return self

    @model_validator(mode="after")
    def validate_classifier_timeout(self) -> "Settings":
        """Classifier calls must carry a finite, bounded timeout."""
        timeout = self.classifier_timeout_seconds
        if not 0 < timeout <= 60:
            raise ValueError(
                f"CLASSIFIER_TIMEOUT_SECONDS must be in (0, 60], got {timeout}."
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
