from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'database'
    - DATABASE_URL: SQLAlchemy URL for the database backend. Default 'sqlite:///./data/records.db'
    - DB_POOL_SIZE: maximum number of pooled database connections (default: 10)
    - DB_POOL_TIMEOUT: seconds to wait for a pooled connection before failing (default: 5)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: stdlib logging level name (default: INFO)
    - LOG_FORMAT: 'console' (default) or 'json'
    """

    persistence_backend: str = "memory"
    database_url: str = "sqlite:///./data/records.db"
    db_pool_size: int = 10
    db_pool_timeout: float = 5.0
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    log_format: str = "console"


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int, minimum: int = 1) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "database"}:
        # Fallback to memory if unsupported
        backend = "memory"

    log_format = _get_env("LOG_FORMAT", "console").strip().lower()
    if log_format not in {"console", "json"}:
        log_format = "console"

    return Settings(
        persistence_backend=backend,
        database_url=_get_env("DATABASE_URL", "sqlite:///./data/records.db").strip(),
        db_pool_size=_parse_int(_get_env("DB_POOL_SIZE", "10"), 10),
        db_pool_timeout=_parse_float(_get_env("DB_POOL_TIMEOUT", "5"), 5.0),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        log_format=log_format,
    )
