"""
NoteForge Backend — Application Configuration
===============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by main.py and the routes; services receive a Settings
       instance through their constructors so tests can inject their own.
When:  Loaded once at module import time; validated before app starts.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Value shipped in .env.example; treated as "no key configured".
PLACEHOLDER_API_KEY = "your_gemini_api_key_here"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development. The Gemini key is
    optional: without it the service runs in fallback-only mode.
    """

    # ── Google Gemini ─────────────────────────────────────────────────────
    # Default credential read by SettingsCredentialStore. The user can
    # replace it at runtime through PUT /api/ai/credential.
    gemini_api_key: str = Field(
        default="",
        description="Google Gemini API key used when no credential has been bound",
    )

    # Model used for note, content and tag generation
    gemini_model: str = Field(default="gemini-2.5-pro")

    # Cheap model used only by credential validation
    gemini_test_model: str = Field(default="gemini-2.0-flash")

    generation_temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    # ── Credential Lifecycle ──────────────────────────────────────────────
    # Pause between tearing down a client and building its replacement
    rebind_settle_delay: float = Field(default=0.2, ge=0.0, le=5.0)

    # ── Provider Calls ────────────────────────────────────────────────────
    # Upper bound for a single provider call, in seconds
    request_timeout: float = Field(default=60.0, gt=0.0, le=600.0)

    # Tenacity settings; only network errors and timeouts are retried
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: float = Field(default=1.0, ge=0.0, le=30.0)
    retry_max_wait: float = Field(default=10.0, ge=0.0, le=120.0)

    # Content excerpt length sent with tag generation prompts
    tag_excerpt_chars: int = Field(default=500, ge=50, le=10_000)

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("gemini_api_key")
    @classmethod
    def strip_api_key(cls, v: str) -> str:
        return v.strip()

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def has_default_credential(self) -> bool:
        """True when a real (non-placeholder) Gemini key is configured."""
        return bool(self.gemini_api_key) and self.gemini_api_key != PLACEHOLDER_API_KEY

    def validate_required_for_production(self) -> None:
        """
        What:  Reports settings that leave the service in a degraded mode.
        When:  Called during app startup (lifespan).
        How:   Raises ValueError listing every problem found. The caller logs it
               and keeps serving, since fallback generation works without a key.
        """
        errors = []
        if not self.has_default_credential:
            errors.append(
                "GEMINI_API_KEY is not set. AI generation stays in fallback mode "
                "until a key is bound. Get a key at https://aistudio.google.com/app/apikey"
            )
        if self.retry_min_wait > self.retry_max_wait:
            errors.append("RETRY_MIN_WAIT must not exceed RETRY_MAX_WAIT")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance, imported by the application entry points
settings = Settings()
