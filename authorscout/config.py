"""Configuration management for authorscout using Pydantic Settings."""

from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_KEYWORDS = [
    "vibe coding",
    "indie hacker",
    "solopreneur",
    "solo founder",
    "bootstrapped startup",
    "side project",
    "build in public",
    "solo developer",
    "indie developer",
    "maker",
]

DEFAULT_TAGS = [
    "indie-hackers",
    "solopreneurship",
    "bootstrapping",
    "side-project",
    "startup-lessons",
    "founders",
    "saas",
    "makers",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Target site
    base_url: str = Field(
        default="https://hackernoon.com",
        description="Root URL of the crawled site",
    )
    keywords: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_KEYWORDS),
        description="Keyword vocabulary for search sources and relevance matching",
    )
    tags: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_TAGS),
        description="Tag vocabulary for tag listing sources and relevance matching",
    )

    # Browser settings
    headless: bool = Field(
        default=True,
        description="Run Chromium in headless mode",
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
        description="User agent presented to the crawled site",
    )
    navigation_timeout_ms: int = Field(
        default=25000,
        description="Page navigation timeout in milliseconds",
    )

    # Politeness
    request_delay_seconds: float = Field(
        default=1.2,
        description="Mandatory pause after every article or profile fetch",
    )
    source_delay_seconds: float = Field(
        default=1.5,
        description="Mandatory pause after every source listing fetch",
    )
    scroll_delay_seconds: float = Field(
        default=0.5,
        description="Pause between progressive-load scroll steps",
    )

    # Retry policy
    max_retries: int = Field(
        default=2,
        description="Retry attempts per fetch before the unit is skipped",
    )
    retry_initial_delay_seconds: float = Field(
        default=2.0,
        description="Initial backoff delay in seconds",
    )
    rate_limit_multiplier: float = Field(
        default=5.0,
        description="Backoff multiplier applied when the site answers 429",
    )

    # Crawl shape
    sample_article_cap: int = Field(
        default=3,
        description="Maximum sample articles retained per author",
    )
    sitemaps_to_check: int = Field(
        default=10,
        description="Number of sub-sitemaps enumerated per run",
    )
    max_articles_per_sitemap: int = Field(
        default=150,
        description="Maximum new references taken from one sub-sitemap",
    )

    # Persistence
    state_file: Path = Field(
        default=Path("~/.authorscout/state.json"),
        validate_default=True,
        description="Path to the JSON crawl state file",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    environment: str = Field(
        default="development",
        description="Environment (development or production)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AUTHORSCOUT_",
        case_sensitive=False,
    )

    @field_validator("keywords", "tags", mode="before")
    @classmethod
    def parse_vocabulary(cls, v: str | list[str]) -> list[str]:
        """Parse a vocabulary from comma-separated string or list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) base URL and drop any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid base_url: {v}. Must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a standard logging level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(
                f"Invalid log_level: {v}. Allowed values: {', '.join(sorted(allowed_levels))}"
            )
        return v.upper()

    @field_validator("state_file")
    @classmethod
    def expand_state_file(cls, v: Path) -> Path:
        """Expand ~ in the state file path."""
        return v.expanduser()


# Global settings instance
settings = Settings()
