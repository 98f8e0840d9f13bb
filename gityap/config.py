"""
Runtime configuration.

Settings are read from the process environment (after ``load_env`` has
pulled in ``.env``); CLI flags override individual fields.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigError

DEFAULT_API_URL = "https://api.github.com"
STORE_KINDS = ("sql", "memory")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, selected once at start."""
    github_token: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    database_path: Path = Path("data/gityap.db")
    store: str = "sql"
    channels_path: Path = Path("data/channels.json")
    timeout: float = 60.0
    http_timeout: float = 15.0
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    def override(self, **changes) -> "Settings":
        """Return a copy with the non-None values in ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read from (default: os.environ)

    Returns:
        Settings instance

    Raises:
        ConfigError: On malformed values
    """
    env = os.environ if env is None else env

    store = (env.get("GITYAP_STORE") or "sql").strip().lower()
    if store not in STORE_KINDS:
        raise ConfigError(f"GITYAP_STORE must be one of {', '.join(STORE_KINDS)}, got {store!r}")

    return Settings(
        github_token=(env.get("GITHUB_TOKEN") or "").strip() or None,
        api_url=(env.get("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/"),
        database_path=Path(env.get("GITYAP_DATABASE") or "data/gityap.db"),
        store=store,
        channels_path=Path(env.get("GITYAP_CHANNELS") or "data/channels.json"),
        timeout=_float(env, "GITYAP_TIMEOUT", 60.0),
        http_timeout=_float(env, "GITYAP_HTTP_TIMEOUT", 15.0),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        log_dir=Path(env.get("GITYAP_LOG_DIR") or "logs"),
    )
