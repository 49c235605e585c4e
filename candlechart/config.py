"""Configuration module for the candlestick chart.

This module centralizes the reading of environment variables and provides a
`Settings` object that other modules can import.  It uses Pydantic's
`BaseSettings` to automatically read values from a `.env` file when present.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Chart settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    yahoo_base_url: str = Field(
        default="https://query1.finance.yahoo.com",
        validation_alias=AliasChoices("YAHOO_BASE_URL", "yahoo_base_url"),
    )
    yahoo_proxy_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("YAHOO_PROXY_URL", "CORS_PROXY_URL"),
    )
    alpha_vantage_api_key: str = Field(
        default="demo",
        validation_alias=AliasChoices("ALPHA_VANTAGE_API_KEY", "ALPHAVANTAGE_API_KEY"),
    )
    alpha_vantage_base_url: str = Field(
        default="https://www.alphavantage.co",
        validation_alias=AliasChoices("ALPHA_VANTAGE_BASE_URL", "alpha_vantage_base_url"),
    )
    request_timeout: float = Field(8.0, validation_alias=AliasChoices("CHART_REQUEST_TIMEOUT", "request_timeout"))
    default_days: int = Field(90, validation_alias=AliasChoices("CHART_DEFAULT_DAYS", "default_days"))
    min_visible: int = Field(10, validation_alias=AliasChoices("CHART_MIN_VISIBLE", "min_visible"))
    use_real_data: bool = Field(False, validation_alias=AliasChoices("CHART_USE_REAL_DATA", "use_real_data"))
    synthetic_enabled: bool = Field(
        True,
        validation_alias=AliasChoices("CHART_SYNTHETIC_ENABLED", "synthetic_enabled"),
    )
    log_level: str = Field("INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))

    @field_validator("yahoo_base_url", "alpha_vantage_base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("yahoo_proxy_url", mode="before")
    @classmethod
    def _blank_proxy_is_none(cls, value: str | None) -> str | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("request_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("request_timeout must be positive")
        return value

    @field_validator("default_days", "min_visible")
    @classmethod
    def _positive_int(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value


@lru_cache()
def get_settings() -> Settings:
    """Return a cached instance of the chart settings.

    Pydantic caches the parsed environment variables so that repeated calls
    throughout the package are inexpensive.
    """

    return Settings()
