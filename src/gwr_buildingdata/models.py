from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BATCH_SIZE = 1000
DEFAULT_DB_CONNECT_TIMEOUT = 60.0
DEFAULT_SOURCE_PATH = "data/gwr/data.sqlite"
DEFAULT_SEARCH_URL = "http://localhost:8000"
DEFAULT_SEARCH_PATH = "address-search/find"
DEFAULT_SEARCH_TIMEOUT = 15.0
DEFAULT_SEARCH_MAX_RETRIES = 2
DEFAULT_SEARCH_BACKOFF_FACTOR = 0.5
DEFAULT_SEARCH_BACKOFF_MAX = 8.0


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    connect_timeout: float = DEFAULT_DB_CONNECT_TIMEOUT
    apply_schema: bool = False


@dataclass(frozen=True)
class SourceConfig:
    url: str


@dataclass(frozen=True)
class SearchConfig:
    url: str
    path: str = DEFAULT_SEARCH_PATH
    timeout: float = DEFAULT_SEARCH_TIMEOUT
    max_retries: int = DEFAULT_SEARCH_MAX_RETRIES
    backoff_factor: float = DEFAULT_SEARCH_BACKOFF_FACTOR
    backoff_max: float = DEFAULT_SEARCH_BACKOFF_MAX


@dataclass(frozen=True)
class SyncConfig:
    database: DatabaseConfig
    source: SourceConfig
    search: SearchConfig
    batch_size: int = DEFAULT_BATCH_SIZE
