"""Process configuration.

Values come from the environment, with a local ``.env`` file loaded first
when present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _default_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    host = os.getenv("DB_HOST")
    if not host:
        return "sqlite:///./taskboard.db"
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASS", "")
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "taskboard")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./taskboard.db"
    host: str = "0.0.0.0"
    port: int = 3000
    pool_size: int = 5
    pool_timeout: float = 30.0
    statement_timeout_ms: int = 5000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=_default_database_url(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
            pool_timeout=float(os.getenv("DB_POOL_TIMEOUT", "30")),
            statement_timeout_ms=int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
