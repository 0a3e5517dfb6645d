# src/aggregator/core/config.py
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "Product Aggregator API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # API keys: JSON list in the environment, e.g. '["key_abc123", "key_xyz789"]'
    api_key_auth_enabled: bool = False
    api_keys: list[str] = Field(default_factory=list)

    # CORS
    cors_origins: list[str] = Field(default=["*"])

    # Rate limiting (slowapi limit string)
    rate_limit_enabled: bool = True
    rate_limit: str = "100/15minutes"

    # Product cache
    cache_ttl_seconds: int = 30 * 60
    cache_file: Path = Path("cache/products_cache.json")
    warmup_enabled: bool = True
    warmup_initial_delay_seconds: float = 5.0
    warmup_interval_seconds: float = 30 * 60

    # Provider feature flags
    ppn_enabled: bool = True

    # GlobeTopper
    globetopper_base_url: str = "https://api.globetopper.com/api/v2"
    globetopper_api_key: str = ""
    globetopper_timeout_seconds: float = 20.0

    # DT-One
    dtone_base_url: str = "https://dvs-api.dtone.com/v1"
    dtone_user: str = ""
    dtone_password: str = ""
    dtone_timeout_seconds: float = 30.0
    dtone_page_delay_seconds: float = 1.2

    # PPN (ValueTopup)
    ppn_base_url: str = "https://api.valuetopup.com/api/v2"
    ppn_user: str = ""
    ppn_password: str = ""
    ppn_timeout_seconds: float = 20.0

    # Billers
    billers_base_url: str = "https://api.bilrs.com/v1"
    billers_api_token: str = ""
    billers_timeout_seconds: float = 30.0

    # Retries for 429 / 5xx upstream responses
    provider_max_retries: int = 3
    provider_retry_backoff_seconds: float = 1.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
