"""Application configuration settings."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Record store database configuration."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    url: str = Field(default="sqlite:///./data/records.db")


class SwiftypeSettings(BaseSettings):
    """Remote search service configuration."""

    model_config = SettingsConfigDict(env_prefix="SWIFTYPE_")

    api_key: Optional[str] = Field(default=None, description="API key sent as auth_token")
    engine_name: Optional[str] = Field(default=None, description="Deployment override for the engine name")
    base_url: str = Field(default="https://api.swiftype.com/api/v1/")
    verify_ssl: bool = Field(default=False, description="Verify TLS certificates")
    request_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")


class ExportSettings(BaseSettings):
    """Export batching configuration."""

    model_config = SettingsConfigDict(env_prefix="EXPORT_")

    batch_length: int = Field(default=100, description="Records per scheduled bulk export unit")
    page_length: int = Field(default=20, description="Records fetched per limit/offset query")
    delete_poll_interval: float = Field(default=1.0)
    delete_poll_timeout: float = Field(default=30.0)
    link_base: Optional[str] = Field(default=None, description="Base URL for the Link field")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file_path: Optional[str] = Field(default=None)
    file_max_bytes: int = Field(default=10 * 1024 * 1024, description="Size at which the log file rotates")
    file_backup_count: int = Field(default=5)


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    name: str = Field(default="Index Sync")
    version: str = Field(default="1.0.0")
    environment: str = Field(default="development")

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    swiftype: SwiftypeSettings = Field(default_factory=SwiftypeSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Global settings instance
settings = AppSettings()


def get_settings() -> AppSettings:
    """Get application settings."""
    return settings


def reload_settings() -> AppSettings:
    """Rebuild settings from the current environment."""
    global settings
    settings = AppSettings()
    return settings
