"""Configuration package for remaimber."""

from remaimber.config.app_config import (
    AppConfig,
    DatabaseSettings,
    GradingSettings,
    LLMSettings,
    ServerSettings,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "DatabaseSettings",
    "GradingSettings",
    "LLMSettings",
    "ServerSettings",
    "clear_config_cache",
    "load_app_config",
]
