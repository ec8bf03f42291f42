"""Configuration management for ReportFlow.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded at application
startup and is immutable during runtime.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="REPORTFLOW_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "ReportFlow"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./rf_data/reportflow.db"
    db_echo: bool = False

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Dynamic table Settings
    table_prefix: str = Field(
        default="tbl_",
        description="Prefix for physical tables backing registered schemas",
    )
    default_page_size: int = Field(default=10, ge=1)

    # Schema administration
    schema_access_key: str | None = Field(
        default=None,
        description="Shared key required to update a schema (unchecked when unset)",
    )

    # Submission window
    enforce_submission_window: bool = Field(
        default=True,
        description="Refuse submitter mutations outside the configured timeline",
    )

    # Bulk import
    upload_dir: str = "./rf_data/uploads"
    allowed_import_extensions: list[str] = Field(default=[".csv", ".xlsx"])

    @field_validator("allowed_import_extensions", mode="before")
    @classmethod
    def parse_extensions(cls, v: str | list[str]) -> list[str]:
        """Parse import extensions from comma-separated string or list."""
        if isinstance(v, str):
            v = [ext.strip() for ext in v.split(",") if ext.strip()]
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Dynamic tables use SQLite DDL, so only the aiosqlite driver is supported."""
        if not v.startswith("sqlite+aiosqlite:"):
            raise ValueError("database_url must use the sqlite+aiosqlite driver")
        return v

    @field_validator("table_prefix")
    @classmethod
    def validate_table_prefix(cls, v: str) -> str:
        """Table prefix must be a plain SQL identifier fragment."""
        if not v or not v.replace("_", "").isalnum():
            raise ValueError("table_prefix must contain only letters, digits and underscores")
        return v.lower()

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    This function caches the settings instance to avoid reloading
    configuration on every call. Settings are loaded once at startup.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
