"""Application configuration loading and validation.

Settings come from environment variables.  A TOML file named by
``DZT_CONFIG_FILE`` may provide defaults under a ``[travel]`` table; the
environment always wins over the file.

Flight-provider credentials (``AMADEUS_CLIENT_ID`` / ``AMADEUS_CLIENT_SECRET``)
are optional: without them the flight endpoints serve local airport data and
sample offers instead of failing.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_AMADEUS_BASE_URL = "https://test.api.amadeus.com"
DEFAULT_DB_TRANSPORT_BASE_URL = "https://v6.db.transport.rest"
DEFAULT_MOTIS_BASE_URL = "https://europe.motis-project.de/api/v1"
DEFAULT_CORS_ORIGINS: tuple[str, ...] = ("http://localhost:4321",)

_LOG_FORMATS = ("text", "json")


class ConfigError(Exception):
    """Raised when configuration is missing, malformed, or invalid."""


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"


@dataclass
class Settings:
    """Resolved runtime settings for the API process."""

    amadeus_client_id: str | None = None
    amadeus_client_secret: str | None = None
    amadeus_base_url: str = DEFAULT_AMADEUS_BASE_URL
    db_transport_base_url: str = DEFAULT_DB_TRANSPORT_BASE_URL
    motis_base_url: str = DEFAULT_MOTIS_BASE_URL
    station_cache_ttl: float = 60.0
    cache_max_entries: int | None = None
    http_timeout: float = 20.0
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def amadeus_configured(self) -> bool:
        """True when both flight-provider credentials are present."""
        return bool(self.amadeus_client_id and self.amadeus_client_secret)


# (env var, settings attribute, parser)
_ENV_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("AMADEUS_CLIENT_ID", "amadeus_client_id", "str"),
    ("AMADEUS_CLIENT_SECRET", "amadeus_client_secret", "str"),
    ("AMADEUS_BASE_URL", "amadeus_base_url", "url"),
    ("DB_TRANSPORT_BASE_URL", "db_transport_base_url", "url"),
    ("MOTIS_BASE_URL", "motis_base_url", "url"),
    ("DZT_STATION_CACHE_TTL", "station_cache_ttl", "positive_float"),
    ("DZT_CACHE_MAX_ENTRIES", "cache_max_entries", "positive_int"),
    ("DZT_HTTP_TIMEOUT", "http_timeout", "positive_float"),
    ("DZT_CORS_ORIGINS", "cors_origins", "list"),
)


def _parse_value(name: str, raw: Any, kind: str) -> Any:
    if kind == "str":
        value = str(raw).strip()
        return value or None
    if kind == "url":
        value = str(raw).strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ConfigError(f"{name} must be an http(s) URL, got {raw!r}")
        return value
    if kind == "positive_float":
        try:
            value = float(raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
        if value <= 0:
            raise ConfigError(f"{name} must be positive, got {raw!r}")
        return value
    if kind == "positive_int":
        try:
            value = int(raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
        if value < 1:
            raise ConfigError(f"{name} must be >= 1, got {raw!r}")
        return value
    if kind == "list":
        items = raw if isinstance(raw, list) else str(raw).split(",")
        return [str(item).strip() for item in items if str(item).strip()]
    raise ConfigError(f"Unsupported config kind for {name}: {kind}")


def _load_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    section = data.get("travel", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[travel] in {path} must be a table")
    return section


def load_settings(
    env: dict[str, str] | None = None,
    config_file: Path | None = None,
) -> Settings:
    """Build :class:`Settings` from the environment and an optional TOML file.

    Parameters
    ----------
    env:
        Environment mapping.  Defaults to ``os.environ``.
    config_file:
        TOML file with a ``[travel]`` table.  Falls back to ``DZT_CONFIG_FILE``.

    Raises
    ------
    ConfigError
        If any value is malformed or the config file cannot be read.
    """
    if env is None:
        env = dict(os.environ)

    if config_file is None and env.get("DZT_CONFIG_FILE"):
        config_file = Path(env["DZT_CONFIG_FILE"])
    file_values = _load_file(config_file) if config_file is not None else {}

    settings = Settings()
    for env_name, attr, kind in _ENV_FIELDS:
        if attr in file_values:
            setattr(settings, attr, _parse_value(f"{attr} (file)", file_values[attr], kind))
        raw = env.get(env_name)
        if raw is not None and raw != "":
            setattr(settings, attr, _parse_value(env_name, raw, kind))

    log_section = file_values.get("logging", {})
    if not isinstance(log_section, dict):
        raise ConfigError("[travel.logging] must be a table")
    level = env.get("DZT_LOG_LEVEL") or log_section.get("level", "INFO")
    fmt = env.get("DZT_LOG_FORMAT") or log_section.get("format", "text")
    if fmt not in _LOG_FORMATS:
        raise ConfigError(f"log format must be one of {_LOG_FORMATS}, got {fmt!r}")
    settings.logging = LoggingConfig(level=str(level).upper(), format=fmt)

    return settings
