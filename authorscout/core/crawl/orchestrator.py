"""Crawl orchestrator - coordinates all crawl components for one run."""

import asyncio
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from authorscout.core.crawl.content_extractor import ContentExtractor, RelevancePredicate
from authorscout.core.crawl.crawl_config import CrawlConfig
from authorscout.core.crawl.enricher import ProfileEnricher
from authorscout.core.crawl.finalizer import ResultFinalizer, ScrapeResult
from authorscout.core.crawl.frontier import FrontierCollector
from authorscout.core.crawl.merger import AuthorMerger
from authorscout.core.crawl.models import (
    CrawlPhase,
    Progress,
    RunMetrics,
    RunRecord,
    SourceDescriptor,
    SourceType,
)
from authorscout.core.crawl.page_source import PageSource, PlaywrightPageSource
from authorscout.core.crawl.state import CrawlState
from authorscout.core.crawl.state_store import InMemoryStateStore, StateStore
from authorscout.utils.logging import crawl_context

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[Progress], None]


class CrawlOrchestrator:
    """Coordinate one crawl run.

    Orchestrates all crawl components:
    - Frontier collection (search, tag and sitemap sources)
    - Content extraction and author merging, per source
    - Profile enrichment of authors not yet enriched
    - Result finalization

    The state is saved through the store when the run ends, including
    when it ends with an exception.
    """

    def __init__(
        self,
        config: CrawlConfig | None = None,
        store: StateStore | None = None,
        page_source: PageSource | None = None,
        relevance: dict[SourceType, RelevancePredicate] | None = None,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Crawl configuration
            store: Snapshot persistence (in-memory when None)
            page_source: Page source (headless Chromium when None)
            relevance: Per-source-type relevance predicate overrides
        """
        self.config = config or CrawlConfig()
        self.store = store or InMemoryStateStore()
        self.page_source = page_source or PlaywrightPageSource()
        self.relevance = relevance
        self.finalizer = ResultFinalizer()
        self.state: CrawlState | None = None

    def load_state(self, reset: bool = False) -> CrawlState:
        """Load the stored state (or start fresh when reset is requested)."""
        if reset:
            self.store.clear()
            logger.info("crawl_state_reset_requested")
        return CrawlState.from_snapshot(
            self.store.load(), sample_cap=self.config.sample_article_cap
        )

    async def run(
        self, reset: bool = False, on_progress: ProgressCallback | None = None
    ) -> ScrapeResult:
        """
        Run a full crawl.

        Args:
            reset: Discard stored state before starting
            on_progress: Called with a Progress value as the run advances

        Returns:
            ScrapeResult over the accumulated state

        Raises:
            BrowserInitializationError: If the page source cannot be started
        """
        with crawl_context(run_id=uuid.uuid4().hex[:8]):
            return await self._run(reset, on_progress)

    async def _run(self, reset: bool, on_progress: ProgressCallback | None) -> ScrapeResult:
        state = self.load_state(reset=reset)
        self.state = state
        started = time.monotonic()
        authors_at_start = len(state.authors)
        articles_collected = 0

        collector = FrontierCollector(state, self.config, self.page_source)
        extractor = ContentExtractor(state, self.config, self.page_source, self.relevance)
        merger = AuthorMerger(state)
        enricher = ProfileEnricher(state, self.config, self.page_source)

        logger.info(
            "crawl_started",
            authors=authors_at_start,
            processed_urls=len(state.processed_urls),
            reset=reset,
        )

        try:
            await self.page_source.start()
            try:
                sources = collector.listing_sources()
                if self.config.include_sitemaps:
                    sources.extend(await collector.discover_sitemap_sources())
                    await asyncio.sleep(self.config.source_delay_seconds)

                for index, source in enumerate(sources, start=1):
                    self._emit(
                        on_progress,
                        Progress(CrawlPhase.COLLECTING, index, len(sources), source.value),
                    )
                    articles_collected += await self._process_source(
                        source, collector, extractor, merger, on_progress
                    )

                pending = enricher.pending()
                for index, author in enumerate(pending, start=1):
                    self._emit(
                        on_progress,
                        Progress(CrawlPhase.PROFILES, index, len(pending), author.handle),
                    )
                    try:
                        await enricher.enrich(author)
                    except Exception as e:
                        logger.error(
                            "profile_failed", handle=author.handle, error=str(e), exc_info=True
                        )
                    await asyncio.sleep(self.config.request_delay_seconds)
            finally:
                await self.page_source.close()
        finally:
            self.store.save(state.export())

        metrics = RunMetrics(
            authors_at_start=authors_at_start,
            articles_collected=articles_collected,
            processing_time_ms=int((time.monotonic() - started) * 1000),
        )
        result = self.finalizer.finalize(state, metrics)
        self.store.record_run(
            RunRecord(
                finished_at=datetime.now(timezone.utc),
                new_authors=result.stats.new_authors_this_run,
                total_authors=result.stats.total_authors,
                articles_processed=result.stats.articles_processed,
            )
        )
        self._emit(on_progress, Progress(CrawlPhase.DONE, 1, 1, "complete"))

        logger.info(
            "crawl_complete",
            total_authors=result.stats.total_authors,
            new_authors=result.stats.new_authors_this_run,
            articles=articles_collected,
            processing_ms=metrics.processing_time_ms,
        )
        return result

    async def _process_source(
        self,
        source: SourceDescriptor,
        collector: FrontierCollector,
        extractor: ContentExtractor,
        merger: AuthorMerger,
        on_progress: ProgressCallback | None,
    ) -> int:
        """Collect one source and extract every new reference it yields."""
        try:
            refs = await collector.collect(source)
        except Exception as e:
            logger.error(
                "source_failed",
                source_type=source.source_type.value,
                source=source.value,
                error=str(e),
                exc_info=True,
            )
            refs = []
        await asyncio.sleep(self.config.source_delay_seconds)

        for index, ref in enumerate(refs, start=1):
            self._emit(
                on_progress, Progress(CrawlPhase.EXTRACTING, index, len(refs), ref.url)
            )
            try:
                result = await extractor.extract(ref)
                if result is not None:
                    merger.merge(result)
            except Exception as e:
                logger.error("content_failed", url=ref.url, error=str(e), exc_info=True)
            await asyncio.sleep(self.config.request_delay_seconds)

        logger.info(
            "source_processed",
            source_type=source.source_type.value,
            source=source.value,
            references=len(refs),
        )
        return len(refs)

    @staticmethod
    def _emit(callback: ProgressCallback | None, progress: Progress) -> None:
        if callback is not None:
            callback(progress)
