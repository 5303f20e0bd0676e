from functools import lru_cache
import json
import os
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_list_value(value: str) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )
    environment: str = "development"
    log_level: str = "INFO"

    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""
    supabase_screenshot_bucket: str = "screenshots"
    database_url: str = ""

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = False

    # --- AI critique ---
    ai_critique_provider: str = "openai"
    ai_critique_model: str = "gpt-4.1"
    ai_allowed_providers_raw: str = Field(
        default="openai,claude,mock",
        validation_alias=AliasChoices("AI_ALLOWED_PROVIDERS"),
    )
    ai_allowed_models_raw: str = Field(
        default="",
        validation_alias=AliasChoices("AI_ALLOWED_MODELS"),
    )
    ai_timeout_seconds: float = 60.0
    ai_temperature: float = 0.7
    ai_max_tokens: int = 4096
    ai_debug_store_raw: bool = False
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # --- Screenshot capture ---
    capture_backend: str = "playwright"
    capture_timeout_seconds: float = 30.0
    capture_delay_seconds: float = 2.0
    capture_viewport_width: int = 1440
    capture_viewport_height: int = 900
    screenshot_max_width: int = 1280
    screenshot_max_height: int = 8000
    screenshot_quality: int = 80

    # --- Rate limiting ---
    rate_limit_roast_enabled: bool = True
    rate_limit_roast_max: int = 3
    rate_limit_roast_window_seconds: int = 15 * 60
    rate_limit_allowlist_raw: str = Field(
        default="",
        validation_alias=AliasChoices("RATE_LIMIT_ALLOWLIST"),
    )
    trusted_proxy_cidrs_raw: str = Field(
        default="",
        validation_alias=AliasChoices("TRUSTED_PROXY_CIDRS"),
    )

    security_headers_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("SECURITY_HEADERS_ENABLED", "SECURE_HEADERS_ENABLED"),
    )

    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)
    cors_allow_methods: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_allow_headers: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["Content-Type", "Accept"])

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return _parse_list_value(value)
        return value

    @property
    def ai_allowed_providers(self) -> list[str]:
        return [p.lower() for p in _parse_list_value(self.ai_allowed_providers_raw)]

    @property
    def ai_allowed_models(self) -> dict[str, list[str]]:
        """Parse ``AI_ALLOWED_MODELS`` entries of the form ``provider:model``."""
        models: dict[str, list[str]] = {}
        for entry in _parse_list_value(self.ai_allowed_models_raw):
            provider, sep, model = entry.partition(":")
            if not sep or not model.strip():
                continue
            models.setdefault(provider.strip().lower(), []).append(model.strip())
        return models

    @property
    def rate_limit_allowlist(self) -> list[str]:
        return _parse_list_value(self.rate_limit_allowlist_raw)

    @property
    def trusted_proxy_cidrs(self) -> list[str]:
        return _parse_list_value(self.trusted_proxy_cidrs_raw)

    def validate_required_config(self) -> list[str]:
        """Return human-readable problems with production-critical settings."""
        errors: list[str] = []
        if not self.database_url:
            errors.append("DATABASE_URL is not set")
        if not self.supabase_url:
            errors.append("SUPABASE_URL is not set")
        if not (self.supabase_service_role_key or self.supabase_key):
            errors.append("SUPABASE_SERVICE_ROLE_KEY or SUPABASE_KEY is not set")
        provider = self.ai_critique_provider.lower().strip()
        if provider == "openai" and not self.openai_api_key:
            errors.append("OPENAI_API_KEY is not set")
        if provider == "claude" and not self.anthropic_api_key:
            errors.append("ANTHROPIC_API_KEY is not set")
        if provider == "mock" or self.capture_backend.lower().strip() == "mock":
            errors.append("mock AI provider or capture backend configured")
        return errors


def is_production() -> bool:
    return os.getenv("ENVIRONMENT", get_settings().environment).strip().lower() == "production"


@lru_cache

def get_settings() -> Settings:
    return Settings()
