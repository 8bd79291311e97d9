"""
Configuration settings for the permit analytics package.

Uses Pydantic Settings to load environment variables for the backing store
connection, logging, period resolution defaults, and the revenue forecast
heuristics.
"""
from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("permit_portal", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(30_000, alias="DB_STATEMENT_TIMEOUT_MS")
    db_pool_min: int = Field(1, alias="DB_POOL_MIN")
    db_pool_max: int = Field(10, alias="DB_POOL_MAX")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Analytics defaults
    default_period: str = Field("monthly", alias="DEFAULT_PERIOD")
    all_time_epoch: datetime = Field(
        datetime(2020, 1, 1, tzinfo=timezone.utc), alias="ALL_TIME_EPOCH"
    )
    fetch_concurrency: int = Field(4, alias="FETCH_CONCURRENCY")

    # Revenue forecast heuristics (PGK)
    forecast_annual_fee_ratio: float = Field(0.10, alias="FORECAST_ANNUAL_FEE_RATIO")
    forecast_fallback_fee: float = Field(5000.0, alias="FORECAST_FALLBACK_FEE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def dsn(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
