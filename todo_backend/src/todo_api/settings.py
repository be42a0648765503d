from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'mongo'
    - MONGODB_URI: MongoDB connection string. Default 'mongodb://localhost:27017'
    - MONGODB_DB: database name. Default 'todo_app'
    - JWT_SECRET: secret used to sign access tokens
    - JWT_EXPIRES_IN: token lifetime in seconds (default: 7 days)
    - BCRYPT_ROUNDS: bcrypt cost factor, 4..31 (default: 10)
    - MAX_PAGE_LIMIT: largest page size served by list endpoints (default: 100)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level (default: INFO)
    - HOST / PORT: bind address for the development server
    """

    persistence_backend: str
    mongodb_uri: str
    mongodb_db: str
    jwt_secret: str
    jwt_expires_in: int
    bcrypt_rounds: int
    max_page_limit: int
    cors_allow_origins: List[str]
    log_level: str
    host: str
    port: int


DEFAULT_JWT_SECRET = "change-me"


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return default


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
    if backend not in {"memory", "mongo"}:
        backend = "memory"

    rounds = _parse_int(_get_env("BCRYPT_ROUNDS", "10"), 10)
    # bcrypt only accepts cost factors in this range
    rounds = min(max(rounds, 4), 31)

    return Settings(
        persistence_backend=backend,
        mongodb_uri=_get_env("MONGODB_URI", "mongodb://localhost:27017").strip(),
        mongodb_db=_get_env("MONGODB_DB", "todo_app").strip(),
        jwt_secret=_get_env("JWT_SECRET", DEFAULT_JWT_SECRET),
        jwt_expires_in=max(_parse_int(_get_env("JWT_EXPIRES_IN", "604800"), 604800), 1),
        bcrypt_rounds=rounds,
        max_page_limit=max(_parse_int(_get_env("MAX_PAGE_LIMIT", "100"), 100), 1),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_int(_get_env("PORT", "5000"), 5000),
    )
