"""Configuration loading for the alumni portal service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .passwords import DEFAULT_ROUNDS

ENV_PREFIX = "ALUMNI_"

STORAGE_BACKENDS = ("sqlite", "json")
SAMESITE_POLICIES = ("lax", "strict", "none")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the SQLite database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (_project_root() / "data" / "alumni.sqlite3").resolve(strict=False)


def resolve_data_dir(env_value: Optional[str]) -> Path:
    """Resolve the directory holding the JSON record files."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (_project_root() / "data" / "records").resolve(strict=False)


def _parse_bool(name: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean value, got {value!r}")


def _parse_positive_int(name: str, value: object) -> int:
    try:
        number = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc
    if number <= 0:
        raise ValueError(f"{name} must be greater than zero")
    return number


def _parse_positive_float(name: str, value: object) -> float:
    try:
        number = float(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc
    if number <= 0:
        raise ValueError(f"{name} must be greater than zero")
    return number


def _parse_choice(name: str, value: object, choices: tuple[str, ...]) -> str:
    lowered = str(value).strip().lower()
    if lowered not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return lowered


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the portal."""

    storage_backend: str = "sqlite"
    database_path: Path = field(default_factory=lambda: resolve_database_path(None))
    data_dir: Path = field(default_factory=lambda: resolve_data_dir(None))
    session_ttl: timedelta = timedelta(hours=1)
    secure_cookies: bool = True
    same_site: str = "lax"
    hash_rounds: int = DEFAULT_ROUNDS
    storage_timeout: float = 5.0

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw key/value data.

        Keys use the lower-case setting names, e.g. ``storage_backend`` or
        ``session_ttl`` (seconds). Relative paths resolve against ``base_path``.
        """

        unknown = set(data) - _SETTING_KEYS
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        defaults = Settings()

        def _path(key: str, fallback: Path) -> Path:
            raw = data.get(key)
            if not raw:
                return fallback
            candidate = Path(str(raw)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            return candidate.resolve(strict=False)

        return Settings(
            storage_backend=_parse_choice(
                "storage_backend", data.get("storage_backend", defaults.storage_backend), STORAGE_BACKENDS
            ),
            database_path=_path("database_path", defaults.database_path),
            data_dir=_path("data_dir", defaults.data_dir),
            session_ttl=timedelta(
                seconds=_parse_positive_int(
                    "session_ttl", data.get("session_ttl", int(defaults.session_ttl.total_seconds()))
                )
            ),
            secure_cookies=_parse_bool("secure_cookies", data.get("secure_cookies", defaults.secure_cookies)),
            same_site=_parse_choice("same_site", data.get("same_site", defaults.same_site), SAMESITE_POLICIES),
            hash_rounds=_parse_positive_int("hash_rounds", data.get("hash_rounds", defaults.hash_rounds)),
            storage_timeout=_parse_positive_float(
                "storage_timeout", data.get("storage_timeout", defaults.storage_timeout)
            ),
        )


_SETTING_KEYS = {
    "storage_backend",
    "database_path",
    "data_dir",
    "session_ttl",
    "secure_cookies",
    "same_site",
    "hash_rounds",
    "storage_timeout",
}

_ENV_KEYS: Dict[str, str] = {
    "STORAGE_BACKEND": "storage_backend",
    "DB_PATH": "database_path",
    "DATA_DIR": "data_dir",
    "SESSION_TTL": "session_ttl",
    "SESSION_SECURE": "secure_cookies",
    "SESSION_SAMESITE": "same_site",
    "HASH_ROUNDS": "hash_rounds",
    "STORAGE_TIMEOUT": "storage_timeout",
}


def load_config_file(config_path: Path) -> Dict[str, object]:
    """Load raw settings from a YAML file."""

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return raw


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build settings from an optional YAML file overlaid with ``ALUMNI_*`` variables."""

    env = os.environ if environ is None else environ

    raw: Dict[str, object] = {}
    base_path: Path | None = None
    config_file = env.get(f"{ENV_PREFIX}CONFIG")
    if config_file:
        config_path = Path(config_file).expanduser().resolve(strict=False)
        raw.update(load_config_file(config_path))
        base_path = config_path.parent

    for suffix, key in _ENV_KEYS.items():
        value = env.get(f"{ENV_PREFIX}{suffix}")
        if value is None or not value.strip():
            continue
        if key in {"database_path", "data_dir"}:
            raw[key] = str(Path(value).expanduser().resolve(strict=False))
        else:
            raw[key] = value

    return Settings.from_dict(raw, base_path=base_path)


__all__ = [
    "ENV_PREFIX",
    "Settings",
    "load_config_file",
    "load_settings",
    "resolve_data_dir",
    "resolve_database_path",
]
