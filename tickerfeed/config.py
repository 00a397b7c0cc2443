from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

from tickerfeed.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_HISTORY_CACHE_KEY,
    DEFAULT_HISTORY_CACHE_TTL,
    DEFAULT_PER_PAGE,
)

# Load .env before reading settings
load_dotenv()


class Settings(BaseSettings):
    """Runtime configuration, read from the environment (or a .env file)."""

    database_url: str = Field("sqlite:///./tickerfeed.db", alias="DATABASE_URL")
    storage_root: str = Field("./storage", alias="STORAGE_ROOT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    chunk_size: int = Field(DEFAULT_CHUNK_SIZE, gt=0, alias="CHUNK_SIZE")
    per_page: int = Field(DEFAULT_PER_PAGE, gt=0, alias="PER_PAGE")

    # The history cache key is intentionally not derived from the filters.
    history_cache_key: str = Field(DEFAULT_HISTORY_CACHE_KEY, alias="HISTORY_CACHE_KEY")
    history_cache_ttl: int = Field(DEFAULT_HISTORY_CACHE_TTL, ge=0, alias="HISTORY_CACHE_TTL")

    # Off by default: the same file may be ingested any number of times.
    reject_duplicate_uploads: bool = Field(False, alias="REJECT_DUPLICATE_UPLOADS")

    model_config = {"populate_by_name": True, "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()


DATABASE_URL = get_settings().database_url
