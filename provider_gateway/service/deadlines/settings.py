"""
Timeout presets for the deadline enforcer.

Presets are grouped by operation category and exposed as an explicit settings
object, so callers override per call instead of mutating shared state.

Environment variables use the TIMEOUT_ prefix:
    TIMEOUT_PROVIDER_API_MS=20000
    TIMEOUT_WEBHOOK_HANDLER_MS=5000

Usage:
    from provider_gateway.service.deadlines.settings import timeout_settings

    config = timeout_settings.config_for("provider_api", operation_name="plaid_sync")
"""

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import TimeoutConfig


class TimeoutSettings(BaseSettings):
    """Default timeouts in milliseconds per operation category."""

    model_config = SettingsConfigDict(
        env_prefix="TIMEOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    provider_api_ms: int = Field(default=30_000, gt=0, description="External provider API calls")
    internal_service_ms: int = Field(default=10_000, gt=0, description="Internal service calls")
    database_query_ms: int = Field(default=15_000, gt=0)
    database_transaction_ms: int = Field(default=30_000, gt=0)
    background_job_ms: int = Field(default=300_000, gt=0)
    user_request_ms: int = Field(default=5_000, gt=0, description="User-facing quick operations")
    webhook_handler_ms: int = Field(default=10_000, gt=0, description="Webhook business logic")
    cache_operation_ms: int = Field(default=2_000, gt=0)
    file_operation_ms: int = Field(default=60_000, gt=0)
    health_check_ms: int = Field(default=5_000, gt=0)
    blockchain_query_ms: int = Field(default=10_000, gt=0, description="Blockchain RPC/explorer queries")

    def timeout_ms_for(self, category: str) -> int:
        """Look up the preset for a category, e.g. ``"provider_api"``."""
        field_name = f"{category}_ms"
        if field_name not in type(self).model_fields:
            raise ValueError(f"Unknown timeout category: {category}")
        return getattr(self, field_name)

    def config_for(self, category: str, **overrides: Any) -> TimeoutConfig:
        """Build a ``TimeoutConfig`` from a preset plus per-call overrides."""
        config = TimeoutConfig(
            timeout_ms=self.timeout_ms_for(category),
            operation_name=category,
        )
        return config.with_overrides(**overrides) if overrides else config


@lru_cache
def get_timeout_settings() -> TimeoutSettings:
    """Get cached timeout settings instance."""
    return TimeoutSettings()


timeout_settings = get_timeout_settings()
