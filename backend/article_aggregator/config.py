"""
Application configuration using Pydantic Settings.

Values come from (highest priority first) init kwargs, `APP_*` environment
variables (`__` separates nested groups, e.g. `APP_HTTP__TIMEOUT_SECONDS=5`),
a `.env` file and an optional `config.toml`.
"""

import os
from functools import lru_cache

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from article_aggregator.errors import InvalidConfiguration

DEFAULT_KEYWORDS = [
    "rust",
    "async",
    "tokio",
    "performance",
    "concurrency",
    "memory safety",
    "compiler",
    "webassembly",
]


class HttpSettings(BaseModel):
    """Per-request behaviour."""

    timeout_seconds: float = Field(default=10.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay_ms: int = Field(
        default=500,
        ge=0,
        description="Base backoff; attempt k waits retry_delay * 2^(k-1)",
    )
    user_agent: str = Field(default="article-aggregator/0.1.0")
    pool_max_idle_per_host: int = Field(default=10, gt=0)

    @property
    def retry_delay(self) -> float:
        """Base backoff in seconds."""
        return self.retry_delay_ms / 1000


class FetcherSettings(BaseModel):
    """Fan-out limits."""

    max_concurrent_requests: int = Field(default=10, gt=0)
    per_source_item_cap: int = Field(
        default=30,
        gt=0,
        description="Maximum number of targets fetched from one source",
    )
    partial_on_cancel: bool = Field(
        default=True,
        description="Return items of already completed sources when cancelled",
    )


class RateLimitSettings(BaseModel):
    requests_per_second: int = Field(default=5, gt=0)


class AnalyzerSettings(BaseModel):
    scorer_threads: int = Field(default_factory=lambda: os.cpu_count() or 1, gt=0)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        toml_file="config.toml",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Article Aggregator"
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    http: HttpSettings = Field(default_factory=HttpSettings)
    fetcher: FetcherSettings = Field(default_factory=FetcherSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    analyzer: AnalyzerSettings = Field(default_factory=AnalyzerSettings)

    keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_KEYWORDS))

    # Display
    top_n: int = Field(default=10, gt=0)

    @field_validator("keywords")
    @classmethod
    def validate_keywords(cls, v: list[str]) -> list[str]:
        keywords = [k.strip() for k in v]
        if not keywords:
            raise ValueError("keywords list cannot be empty")
        if any(not k for k in keywords):
            raise ValueError("keywords must be non-empty strings")
        if len(set(keywords)) != len(keywords):
            raise ValueError("keywords must be distinct")
        return keywords

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
        )


def load_settings(**overrides) -> Settings:
    """Build settings, reporting validation problems as `InvalidConfiguration`."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidConfiguration(details) from e


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return load_settings()
