"""
Configuration settings for the Sesimiz Ol feature flag service.

Uses Pydantic Settings to load environment variables for the flag store
connection, logging, the cache staleness bound, and the raw per-flag default
values that are resolved once at process start.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("sesimiz_ol", alias="DB_NAME")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE", ge=0)
    db_pool_max_size: int = Field(5, alias="DB_POOL_MAX_SIZE", ge=1)

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    security_event_log_channel: str = Field("security", alias="SECURITY_EVENT_LOG_CHANNEL")

    # Feature flags
    feature_flag_refresh_interval_ms: int = Field(
        300_000, alias="FEATURE_FLAG_REFRESH_INTERVAL_MS", ge=0
    )
    # Raw strings on purpose: coerced with the flag truthiness rules, not pydantic's.
    feature_messaging_enabled: Optional[str] = Field(None, alias="FEATURE_MESSAGING_ENABLED")
    feature_admin_panel_enabled: Optional[str] = Field(None, alias="FEATURE_ADMIN_PANEL_ENABLED")
    feature_email_notifications: Optional[str] = Field(None, alias="FEATURE_EMAIL_NOTIFICATIONS")
    feature_migration_mode: Optional[str] = Field(None, alias="FEATURE_MIGRATION_MODE")
    feature_password_reset_v2: Optional[str] = Field(None, alias="FEATURE_PASSWORD_RESET_V2")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
