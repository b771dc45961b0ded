"""Configuration management that reads from `config/settings.toml`."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import re
import tomllib
from typing import Any


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "settings.toml"
CONFIG_ENV_VAR = "TASKAPI_CONFIG"


class SettingsError(RuntimeError):
    """Raised when configuration cannot be loaded."""


def get_config_path() -> Path:
    """Return the settings file location.

    The whole file may be redirected with ``TASKAPI_CONFIG``; individual
    values are never read from the environment.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return DEFAULT_CONFIG_PATH


def _load_config_file(path: Path) -> dict[str, Any]:
    """Load TOML configuration from disk."""
    if not path.exists():
        raise SettingsError(
            f"Configuration file '{path}' is missing. "
            "Copy 'config/settings.toml' and adjust it for your deployment, "
            f"or point {CONFIG_ENV_VAR} at an existing file."
        )
    with path.open("rb") as fp:
        return tomllib.load(fp)


def _require_section(raw: dict[str, Any], section: str, path: Path) -> dict[str, Any]:
    if section not in raw or not isinstance(raw[section], dict):
        raise SettingsError(f"Section '[{section}]' is missing in '{path}'.")
    return raw[section]


def _require_value(section: dict[str, Any], key: str, *, section_name: str, path: Path) -> Any:
    if key not in section:
        raise SettingsError(f"Missing key '{section_name}.{key}' in '{path}'.")
    return section[key]


def _extract_settings(raw: dict[str, Any], path: Path) -> dict[str, Any]:
    """Map nested TOML structure into flat settings attributes."""
    database = _require_section(raw, "database", path)
    security = _require_section(raw, "security", path)
    server = _require_section(raw, "server", path)
    cors = _require_section(raw, "cors", path)
    github = _require_section(raw, "github", path)
    # Logging section is optional, defaults to ./logs
    logging_section = raw.get("logging", {})

    return {
        "database_url": _require_value(database, "url", section_name="database", path=path),
        "secret_key": _require_value(security, "secret_key", section_name="security", path=path),
        "session_cookie": security.get("session_cookie", "taskapi_session"),
        "session_max_age": int(security.get("session_max_age", 14 * 24 * 60 * 60)),
        "host": _require_value(server, "host", section_name="server", path=path),
        "port": int(_require_value(server, "port", section_name="server", path=path)),
        "debug": bool(_require_value(server, "debug", section_name="server", path=path)),
        "cors_origins": _require_value(cors, "origins", section_name="cors", path=path),
        "github_client_id": _require_value(github, "client_id", section_name="github", path=path),
        "github_client_secret": _require_value(github, "client_secret", section_name="github", path=path),
        "github_callback_url": _require_value(github, "callback_url", section_name="github", path=path),
        "log_dir": logging_section.get("dir"),
    }


@dataclass(slots=True)
class Settings:
    """Application settings loaded from a config file."""

    database_url: str
    secret_key: str
    session_cookie: str
    session_max_age: int
    host: str
    port: int
    debug: bool
    cors_origins: list[str]
    github_client_id: str
    github_client_secret: str
    github_callback_url: str
    log_dir: str | None

    @property
    def cors_origins_list(self) -> list[str]:
        """Return exact CORS origins (wildcard patterns are excluded)."""
        return [origin for origin in self.cors_origins if "*" not in origin]

    @property
    def cors_origin_regex(self) -> str | None:
        """Combine wildcard origins (e.g. "https://*.example.com") into one regex."""
        patterns = [
            re.escape(origin).replace(r"\*", r".*")
            for origin in self.cors_origins
            if "*" in origin
        ]
        if not patterns:
            return None
        return "|".join(f"(?:{pattern})" for pattern in patterns)

    @property
    def log_path(self) -> Path | None:
        return Path(self.log_dir) if self.log_dir else None


_settings: Settings | None = None


def load_settings(path: Path) -> Settings:
    """Load settings from an explicit file."""
    raw = _load_config_file(path)
    return Settings(**_extract_settings(raw, path))


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = load_settings(get_config_path())
    return _settings
