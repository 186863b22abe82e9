"""Configuration management via environment variables and .env file."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DIRECTORY_BASE_URL = "https://dev.swfinstitute.org"
DIRECTORY_LISTING_URL = f"{DIRECTORY_BASE_URL}/profiles/wealth-manager/europe"
PERPLEXITY_BASE_URL = "https://api.perplexity.ai"


def default_concurrency() -> int:
    """Small worker budget: at most 4, fewer on small machines."""
    return min(4, os.cpu_count() or 2)


class Config(BaseModel):
    """Application configuration loaded from environment."""

    # Answer API (Perplexity, OpenAI-compatible endpoint)
    perplexity_api_key: str = ""
    answer_model: str = "sonar-pro"
    answer_base_url: str = PERPLEXITY_BASE_URL
    answer_timeout: int = 120

    # Directory site
    directory_listing_url: str = DIRECTORY_LISTING_URL
    directory_base_url: str = DIRECTORY_BASE_URL

    # Politeness: minimum seconds between successive calls per collaborator
    directory_delay: float = 1.0
    answer_delay: float = 0.0

    # Transport
    request_timeout: int = 30

    # Concurrency
    concurrency: int = Field(default_factory=default_concurrency)

    # Response cache (transport layer)
    cache_ttl_seconds: int = 3600
    cache_db_path: str = ".enrichment_cache.db"

    # Input
    max_input_rows: int = 10000

    # Web server
    web_host: str = "0.0.0.0"
    web_port: int = 8000


def load_config() -> Config:
    """Load configuration from .env file and environment variables.

    Environment variables override .env values. The API key is optional at
    load time; commands that call the answer API check for it themselves.
    """
    load_dotenv()

    return Config(
        perplexity_api_key=os.getenv("PERPLEXITY_API_KEY", ""),
        answer_model=os.getenv("ANSWER_MODEL", "sonar-pro"),
        answer_base_url=os.getenv("ANSWER_BASE_URL", PERPLEXITY_BASE_URL),
        answer_timeout=int(os.getenv("ANSWER_TIMEOUT", "120")),
        directory_listing_url=os.getenv("DIRECTORY_LISTING_URL", DIRECTORY_LISTING_URL),
        directory_base_url=os.getenv("DIRECTORY_BASE_URL", DIRECTORY_BASE_URL),
        directory_delay=float(os.getenv("DIRECTORY_DELAY", "1.0")),
        answer_delay=float(os.getenv("ANSWER_DELAY", "0.0")),
        request_timeout=int(os.getenv("REQUEST_TIMEOUT", "30")),
        concurrency=int(os.getenv("CONCURRENCY", str(default_concurrency()))),
        cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "3600")),
        cache_db_path=os.getenv("CACHE_DB_PATH", ".enrichment_cache.db"),
        max_input_rows=int(os.getenv("MAX_INPUT_ROWS", "10000")),
        web_host=os.getenv("WEB_HOST", "0.0.0.0"),
        web_port=int(os.getenv("WEB_PORT", "8000")),
    )
