"""Application settings loaded from environment variables.

Defines all environment-driven configuration used by the price search.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration model for the application."""

    # Store workers
    AMAZON_WORKER_URL: str = "https://shopping-worker.ehabmalaeb2.workers.dev"
    NOON_WORKER_URL: str = "https://noon-worker.ehabmalaeb2.workers.dev"
    SHARAF_WORKER_URL: str = "https://sharaf-worker.ehabmalaeb2.workers.dev"
    DEFAULT_CURRENCY: str = "AED"

    # Fetch policy
    SEARCH_TIMEOUT_SECONDS: float = 15.0
    DETAIL_TIMEOUT_SECONDS: float = 30.0
    MAX_RETRIES: int = 1
    RETRY_BASE_DELAY_SECONDS: float = 0.5
    SHARAF_CONCURRENCY: int = 4
    SHARAF_MAX_LINKS: int = 8

    # Title grouping
    GROUPING_MIN_SHARED_TOKENS: int = 2
    GROUPING_MAX_TOKENS: int = 6
    GROUPING_STOPWORDS: List[str] = [
        "uae",
        "ksa",
        "version",
        "international",
        "middle",
        "east",
        "official",
        "original",
        "new",
        "latest",
        "with",
        "and",
        "the",
        "for",
    ]

    # API parameters
    ROOT_PATH_BACKEND: str = ""
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
