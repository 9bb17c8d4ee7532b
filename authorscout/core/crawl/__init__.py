"""Incremental author crawl module for authorscout.

This module provides resumable author discovery including:
- Frontier collection from keyword search, tag listings and sitemaps
- Author extraction from article pages with per-source relevance
- Fill-only merging of repeated author observations
- Profile enrichment with external identity links
- Exportable crawl state so repeated runs only add new work
"""

from authorscout.core.crawl.content_extractor import ContentExtractor
from authorscout.core.crawl.crawl_config import CrawlConfig, RetryConfig, SitemapSelection
from authorscout.core.crawl.enricher import ProfileEnricher
from authorscout.core.crawl.finalizer import ResultFinalizer, ScrapeResult, ScrapeStats
from authorscout.core.crawl.frontier import FrontierCollector
from authorscout.core.crawl.merger import AuthorMerger
from authorscout.core.crawl.models import (
    Author,
    ContentRef,
    CrawlPhase,
    ExtractionResult,
    Progress,
    SampleArticle,
    SourceDescriptor,
    SourceType,
)
from authorscout.core.crawl.orchestrator import CrawlOrchestrator
from authorscout.core.crawl.page_source import PageSource, PlaywrightPageSource
from authorscout.core.crawl.state import CrawlSnapshot, CrawlState
from authorscout.core.crawl.state_store import (
    InMemoryStateStore,
    JsonFileStateStore,
    RunLock,
    StateStore,
)

__all__ = [
    "Author",
    "AuthorMerger",
    "ContentExtractor",
    "ContentRef",
    "CrawlConfig",
    "CrawlOrchestrator",
    "CrawlPhase",
    "CrawlSnapshot",
    "CrawlState",
    "ExtractionResult",
    "FrontierCollector",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "PageSource",
    "PlaywrightPageSource",
    "ProfileEnricher",
    "Progress",
    "ResultFinalizer",
    "RetryConfig",
    "RunLock",
    "SampleArticle",
    "ScrapeResult",
    "ScrapeStats",
    "SitemapSelection",
    "SourceDescriptor",
    "SourceType",
    "StateStore",
]
