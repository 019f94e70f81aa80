"""Application settings using Pydantic Settings."""

import logging
from functools import lru_cache
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    log_level: str = "INFO"

    # CoinGecko
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_api_key: SecretStr | None = None
    user_agent: str = "CryptoSpy/1.0"

    # Cache
    cache_max_size: int = 1000
    cache_ttl_market: float = 120  # 2 minutes
    cache_ttl_search: float = 1800  # 30 minutes
    cache_ttl_historical: float = 3600  # 1 hour
    cache_ttl_price: float = 30  # 30 seconds

    # Rate limit (sliding window)
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: float = 60.0

    # Retry policy (seconds)
    request_timeout: float = 10.0
    request_retries: int = 2
    backoff_base: float = 1.0
    backoff_max: float = 5.0
    max_backoff_multiplier: float = 32.0

    @field_validator(
        "cache_max_size",
        "rate_limit_max_requests",
        "rate_limit_window_seconds",
        "request_timeout",
        "backoff_base",
        "backoff_max",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @field_validator("request_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Retries cannot be negative")
        return v

    @field_validator("max_backoff_multiplier")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        if v < 1:
            raise ValueError("Backoff multiplier cap must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for applications embedding the client."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
