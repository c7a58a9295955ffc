"""Configuration management for the user store service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_database_path


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the database and the HTTP listener."""

    database_path: Path
    busy_timeout: float = 5.0
    host: str = "127.0.0.1"
    port: int = 3000

    @staticmethod
    def from_dict(data: Dict[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""
        unknown = set(data) - {"database_path", "busy_timeout", "host", "port"}
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        raw_path = data.get("database_path")
        if raw_path:
            candidate = Path(str(raw_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            database_path = candidate.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        return Settings(
            database_path=database_path,
            busy_timeout=_parse_timeout(data.get("busy_timeout", 5.0)),
            host=str(data.get("host", "127.0.0.1")),
            port=_parse_port(data.get("port", 3000)),
        )


def _parse_timeout(value: object) -> float:
    try:
        timeout = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"busy_timeout must be a number, got {value!r}") from exc
    if timeout < 0:
        raise ValueError("busy_timeout must not be negative")
    return timeout


def _parse_port(value: object) -> int:
    try:
        port = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"port must be an integer, got {value!r}") from exc
    if not 1 <= port <= 65535:
        raise ValueError("port must be between 1 and 65535")
    return port


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "userstore.yaml").resolve(strict=False)
    return candidate


def apply_env_overrides(settings: Settings, environ: Mapping[str, str]) -> Settings:
    """Return ``settings`` with ``USERSTORE_*`` environment variables applied."""
    overrides: Dict[str, object] = {}
    if environ.get("USERSTORE_DB_PATH"):
        overrides["database_path"] = resolve_database_path(environ["USERSTORE_DB_PATH"])
    if environ.get("USERSTORE_BUSY_TIMEOUT"):
        overrides["busy_timeout"] = _parse_timeout(environ["USERSTORE_BUSY_TIMEOUT"])
    if environ.get("USERSTORE_HOST"):
        overrides["host"] = environ["USERSTORE_HOST"].strip()
    if environ.get("USERSTORE_PORT"):
        overrides["port"] = _parse_port(environ["USERSTORE_PORT"])
    return replace(settings, **overrides) if overrides else settings


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides.

    A missing file is not an error; the defaults are used instead.
    """
    env = os.environ if environ is None else environ
    path = config_path if config_path is not None else resolve_config_path(env.get("USERSTORE_CONFIG"))

    raw: Dict[str, object] = {}
    if path.is_file():
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        raw = loaded

    settings = Settings.from_dict(raw, base_path=path.parent)
    return apply_env_overrides(settings, env)


__all__ = ["Settings", "apply_env_overrides", "load_settings", "resolve_config_path"]
