"""Configuration loading for the GWR building metadata sync."""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv

from .models import (DEFAULT_BATCH_SIZE, DEFAULT_DB_CONNECT_TIMEOUT,
                     DEFAULT_SEARCH_BACKOFF_FACTOR, DEFAULT_SEARCH_BACKOFF_MAX,
                     DEFAULT_SEARCH_MAX_RETRIES, DEFAULT_SEARCH_PATH,
                     DEFAULT_SEARCH_TIMEOUT, DEFAULT_SEARCH_URL,
                     DEFAULT_SOURCE_PATH, DatabaseConfig, SearchConfig,
                     SourceConfig, SyncConfig)

TRUTHY = {"1", "true", "yes", "on"}


def _int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    # Compose from the individual POSTGRES_* vars when no full URL is given.
    db = os.getenv("POSTGRES_DB", "buildingdata")
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"


def _source_url() -> str:
    url = os.getenv("GWR_SOURCE_URL")
    if url:
        return url
    path = os.getenv("GWR_SOURCE_PATH", DEFAULT_SOURCE_PATH)
    # The registry export is opened read-only; it is never written to.
    return f"sqlite+aiosqlite:///file:{path}?mode=ro&uri=true"


def load_config() -> SyncConfig:
    """Load sync configuration from the environment (and a ``.env`` file)."""
    load_dotenv()

    database = DatabaseConfig(
        url=_database_url(),
        connect_timeout=_float(
            os.getenv("DATABASE_CONNECT_TIMEOUT"), DEFAULT_DB_CONNECT_TIMEOUT
        ),
        apply_schema=os.getenv("DATABASE_APPLY_SCHEMA", "false").strip().lower()
        in TRUTHY,
    )
    search = SearchConfig(
        url=os.getenv("ADDRESS_SEARCH_URL", DEFAULT_SEARCH_URL).rstrip("/"),
        path=os.getenv("ADDRESS_SEARCH_PATH", DEFAULT_SEARCH_PATH).lstrip("/"),
        timeout=_float(os.getenv("ADDRESS_SEARCH_TIMEOUT"), DEFAULT_SEARCH_TIMEOUT),
        max_retries=max(
            0, _int(os.getenv("ADDRESS_SEARCH_MAX_RETRIES"), DEFAULT_SEARCH_MAX_RETRIES)
        ),
        backoff_factor=_float(
            os.getenv("ADDRESS_SEARCH_BACKOFF_FACTOR"), DEFAULT_SEARCH_BACKOFF_FACTOR
        ),
        backoff_max=_float(
            os.getenv("ADDRESS_SEARCH_BACKOFF_MAX"), DEFAULT_SEARCH_BACKOFF_MAX
        ),
    )
    return SyncConfig(
        database=database,
        source=SourceConfig(url=_source_url()),
        search=search,
        batch_size=max(1, _int(os.getenv("BATCH_SIZE"), DEFAULT_BATCH_SIZE)),
    )
