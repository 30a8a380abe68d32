"""Runtime configuration sourced from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Literal, Optional

from salesdesk.errors import ConfigurationError

logger = logging.getLogger(__name__)

StorageBackend = Literal["sql", "supabase", "baserow"]

SUPPORTED_BACKENDS = ("sql", "supabase", "baserow")

DEFAULT_ADMIN_EMAIL = "admin@example.com"
DEFAULT_ADMIN_PASSWORD = "Admin@123"

_POSTGRES_VARS = ("POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_HOST", "POSTGRES_PORT", "POSTGRES_DB")


@dataclass(frozen=True)
class Settings:
    storage_backend: StorageBackend = "sql"
    database_url: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    baserow_api_url: Optional[str] = None
    baserow_api_key: Optional[str] = None
    baserow_schema_file: Optional[str] = None
    session_secret: str = ""
    session_ttl_hours: int = 24
    bootstrap_admin_email: str = DEFAULT_ADMIN_EMAIL
    bootstrap_admin_password: str = DEFAULT_ADMIN_PASSWORD
    http_timeout_seconds: float = 10.0
    log_level: str = "INFO"

    @property
    def uses_default_admin_password(self) -> bool:
        return self.bootstrap_admin_password == DEFAULT_ADMIN_PASSWORD


def _database_url(env: Dict[str, str], missing: list) -> Optional[str]:
    if env.get("DATABASE_URL"):
        return env["DATABASE_URL"]
    absent = [name for name in _POSTGRES_VARS if not env.get(name)]
    if absent:
        missing.append("DATABASE_URL (or " + ", ".join(absent) + ")")
        return None
    return "postgresql://{}:{}@{}:{}/{}".format(*(env[name] for name in _POSTGRES_VARS))


def _int(env: Dict[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _float(env: Dict[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def load_settings(env: Optional[Dict[str, str]] = None) -> Settings:
    """Build Settings from ``env`` (defaults to ``os.environ``).

    Raises:
        ConfigurationError: listing every variable the selected backend needs
        but did not receive.
    """
    env = dict(os.environ if env is None else env)
    backend = (env.get("STORAGE_BACKEND") or "sql").strip().lower()
    if backend not in SUPPORTED_BACKENDS:
        raise ConfigurationError(
            f"Unsupported STORAGE_BACKEND '{backend}'. Expected one of: {', '.join(SUPPORTED_BACKENDS)}"
        )

    missing: list = []
    values = {}
    if backend == "sql":
        values["database_url"] = _database_url(env, missing)
    elif backend == "supabase":
        for name in ("SUPABASE_URL", "SUPABASE_SERVICE_KEY"):
            if not env.get(name):
                missing.append(name)
        values["supabase_url"] = env.get("SUPABASE_URL")
        values["supabase_service_key"] = env.get("SUPABASE_SERVICE_KEY")
    else:
        for name in ("BASEROW_API_URL", "BASEROW_API_KEY", "BASEROW_SCHEMA_FILE"):
            if not env.get(name):
                missing.append(name)
        values["baserow_api_url"] = env.get("BASEROW_API_URL")
        values["baserow_api_key"] = env.get("BASEROW_API_KEY")
        values["baserow_schema_file"] = env.get("BASEROW_SCHEMA_FILE")

    if not env.get("SESSION_SECRET"):
        missing.append("SESSION_SECRET")

    if missing:
        raise ConfigurationError(
            f"Missing required configuration for '{backend}' backend: {', '.join(missing)}"
        )

    return Settings(
        storage_backend=backend,  # type: ignore[arg-type]
        session_secret=env["SESSION_SECRET"],
        session_ttl_hours=_int(env, "SESSION_TTL_HOURS", 24),
        bootstrap_admin_email=env.get("BOOTSTRAP_ADMIN_EMAIL") or DEFAULT_ADMIN_EMAIL,
        bootstrap_admin_password=env.get("BOOTSTRAP_ADMIN_PASSWORD") or DEFAULT_ADMIN_PASSWORD,
        http_timeout_seconds=_float(env, "HTTP_TIMEOUT_SECONDS", 10.0),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        **values,
    )


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return the cached settings sourced from the environment."""
    return load_settings()


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()
