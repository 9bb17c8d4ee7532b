"""Crawl configuration - pure data consumed by every crawl component."""

from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlparse

from authorscout.config import DEFAULT_KEYWORDS, DEFAULT_TAGS, Settings
from authorscout.core.crawl.models import SourceType

DEFAULT_IGNORED_WEBSITE_DOMAINS = (
    "facebook",
    "youtube",
    "instagram",
    "medium",
    "proofofusefulness",
)


class SitemapSelection(str, Enum):
    """Which sub-sitemaps of the index are enumerated."""

    NEWEST = "newest"
    OLDEST = "oldest"


@dataclass
class RetryConfig:
    """Configuration for fetch retry logic."""

    source_max_retries: int = 2
    page_max_retries: int = 1
    initial_delay_seconds: float = 2.0
    backoff_factor: float = 2.0
    rate_limit_multiplier: float = 5.0


@dataclass
class CrawlConfig:
    """Complete crawl configuration."""

    base_url: str = "https://hackernoon.com"
    keywords: list[str] = field(default_factory=lambda: list(DEFAULT_KEYWORDS))
    tags: list[str] = field(default_factory=lambda: list(DEFAULT_TAGS))

    include_search: bool = True
    include_tags: bool = True
    include_sitemaps: bool = True

    sitemap_index_path: str = "/sitemap.xml"
    sitemaps_to_check: int = 10
    sitemap_selection: SitemapSelection = SitemapSelection.NEWEST

    max_refs_per_search: int = 8
    max_refs_per_tag: int = 10
    max_refs_per_sitemap: int = 150

    search_scroll_steps: int = 3
    tag_scroll_steps: int = 4

    sample_article_cap: int = 3
    ignored_website_domains: tuple[str, ...] = DEFAULT_IGNORED_WEBSITE_DOMAINS

    request_delay_seconds: float = 1.2
    source_delay_seconds: float = 1.5
    retry: RetryConfig = field(default_factory=RetryConfig)

    def __post_init__(self):
        """Normalize the base URL."""
        self.base_url = self.base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "CrawlConfig":
        """Build a crawl configuration from application settings."""
        return cls(
            base_url=settings.base_url,
            keywords=list(settings.keywords),
            tags=list(settings.tags),
            sitemaps_to_check=settings.sitemaps_to_check,
            max_refs_per_sitemap=settings.max_articles_per_sitemap,
            sample_article_cap=settings.sample_article_cap,
            request_delay_seconds=settings.request_delay_seconds,
            source_delay_seconds=settings.source_delay_seconds,
            retry=RetryConfig(
                source_max_retries=settings.max_retries,
                initial_delay_seconds=settings.retry_initial_delay_seconds,
                rate_limit_multiplier=settings.rate_limit_multiplier,
            ),
        )

    @property
    def host(self) -> str:
        """Host of the crawled site."""
        return urlparse(self.base_url).netloc.lower()

    @property
    def self_token(self) -> str:
        """Bare site name used to reject links back to the crawled site.

        ``https://www.hackernoon.com`` yields ``hackernoon``.
        """
        host = self.host.removeprefix("www.")
        return host.split(".")[0]

    @property
    def sitemap_index_url(self) -> str:
        return f"{self.base_url}{self.sitemap_index_path}"

    def max_refs_for(self, source_type: SourceType) -> int:
        """Per-source reference cap."""
        return {
            SourceType.SEARCH: self.max_refs_per_search,
            SourceType.TAG: self.max_refs_per_tag,
            SourceType.SITEMAP: self.max_refs_per_sitemap,
        }[source_type]

    def scroll_steps_for(self, source_type: SourceType) -> int:
        """Progressive-load depth for a source listing page."""
        return {
            SourceType.SEARCH: self.search_scroll_steps,
            SourceType.TAG: self.tag_scroll_steps,
            SourceType.SITEMAP: 0,
        }[source_type]
