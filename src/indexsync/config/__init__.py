"""Configuration package for the index synchronization engine."""

from .settings import (
    DatabaseSettings,
    SwiftypeSettings,
    ExportSettings,
    LoggingSettings,
    AppSettings,
    get_settings,
    reload_settings
)

from .schema import (
    IndexConfig,
    IndicesConfig
)

__all__ = [
    "DatabaseSettings",
    "SwiftypeSettings",
    "ExportSettings",
    "LoggingSettings",
    "AppSettings",
    "get_settings",
    "reload_settings",

    "IndexConfig",
    "IndicesConfig",
]
