"""Application configuration loader.

Loads configuration from a YAML file (``data/config/remaimber.yaml`` or the
path in ``REMAIMBER_CONFIG``) merged over built-in defaults, then applies
environment variable overrides.

Usage:
    from remaimber.config.app_config import load_app_config

    config = load_app_config()
    config.llm.base_url
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/remaimber.yaml")
CONFIG_ENV = "REMAIMBER_CONFIG"

# Environment overrides: variable -> (section, key, type)
ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "REMAIMBER_LLM_BASE_URL": ("llm", "base_url", str),
    "REMAIMBER_LLM_MODEL": ("llm", "model", str),
    "REMAIMBER_LLM_TIMEOUT": ("llm", "timeout", int),
    "REMAIMBER_DB_PATH": ("database", "path", str),
    "REMAIMBER_HOST": ("server", "host", str),
    "REMAIMBER_PORT": ("server", "port", int),
}


@dataclass
class LLMSettings:
    """Grading oracle connection settings."""

    base_url: str = "http://localhost:11434"
    model: str = "qwen3:8b"
    temperature: float = 0.0
    timeout: int = 120
    api_key_env: str | None = None


@dataclass
class GradingSettings:
    """Grading policy."""

    max_attempts: int = 2


@dataclass
class DatabaseSettings:
    """SQLite location."""

    path: str = "db/remaimber.db"


@dataclass
class ServerSettings:
    """HTTP server bind address."""

    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "info"
    json_logs: bool = False


@dataclass
class AppConfig:
    """Application-wide configuration."""

    llm: LLMSettings = field(default_factory=LLMSettings)
    grading: GradingSettings = field(default_factory=GradingSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    server: ServerSettings = field(default_factory=ServerSettings)


# Module-level cache
_cached_config: AppConfig | None = None


def _section(data: dict[str, Any], name: str, cls: type) -> Any:
    """Build a settings dataclass from a YAML section, ignoring unknown keys."""
    raw = data.get(name) or {}
    known = {k: v for k, v in raw.items() if k in cls.__dataclass_fields__}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        logger.warning("unknown_config_keys", section=name, keys=unknown)
    return cls(**known)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay REMAIMBER_* environment variables onto raw config data."""
    for var, (section, key, cast) in ENV_OVERRIDES.items():
        value = os.environ.get(var)
        if value is None or value == "":
            continue
        data[section] = data.get(section) or {}
        try:
            data[section][key] = cast(value)
        except ValueError:
            logger.warning("invalid_env_override", variable=var, value=value)
    return data


def parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    return AppConfig(
        llm=_section(data, "llm", LLMSettings),
        grading=_section(data, "grading", GradingSettings),
        database=_section(data, "database", DatabaseSettings),
        server=_section(data, "server", ServerSettings),
    )


def load_app_config(path: Path | None = None, force_reload: bool = False) -> AppConfig:
    """Load application config.

    Args:
        path: Explicit YAML file; defaults to $REMAIMBER_CONFIG or CONFIG_FILE.
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload and path is None:
        return _cached_config

    if path is None:
        env_path = os.environ.get(CONFIG_ENV)
        path = Path(env_path) if env_path else CONFIG_FILE

    data: dict[str, Any] = {}
    if path.exists():
        logger.debug("loading_app_config", source=str(path))
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config", looked_at=str(path))

    _cached_config = parse_config(_apply_env_overrides(data))
    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache."""
    global _cached_config
    _cached_config = None
