from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List

from dotenv import find_dotenv, load_dotenv

DEFAULT_PORT = 5000
DEFAULT_DATABASE_URL = "./data/tasks.db"

_BACKENDS = {"memory", "sqlite"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PORT: listening port (default 5000)
    - HOST: listening interface (default '0.0.0.0')
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - DATABASE_URL: store connection string. For sqlite either a file path or
      'sqlite:///path/to/file.db'. Default './data/tasks.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: console log level (default 'INFO')
    """

    port: int
    host: str
    persistence_backend: str
    database_url: str
    cors_allow_origins: List[str]
    log_level: str

    @property
    def sqlite_db_path(self) -> str:
        """Filesystem path of the sqlite database derived from DATABASE_URL."""
        url = self.database_url
        for prefix in ("sqlite:///", "sqlite://"):
            if url.startswith(prefix):
                return url[len(prefix):] or DEFAULT_DATABASE_URL
        return url


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value.strip() == "":
        return default
    return value


def _parse_port(value: str, default: int = DEFAULT_PORT) -> int:
    try:
        port = int(value.strip())
    except ValueError:
        return default
    if not (0 < port < 65536):
        return default
    return port


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
    """Return application settings loaded from environment variables (and .env)."""
    load_dotenv(find_dotenv(usecwd=True), override=False)

    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in _BACKENDS:
        backend = "memory"

    return Settings(
        port=_parse_port(_get_env("PORT", str(DEFAULT_PORT))),
        host=_get_env("HOST", "0.0.0.0").strip(),
        persistence_backend=backend,
        database_url=_get_env("DATABASE_URL", DEFAULT_DATABASE_URL).strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
