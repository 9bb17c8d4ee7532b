"""Result finalizer - project crawl state into output records and statistics."""

import json

from pydantic import BaseModel

from authorscout.core.crawl.models import Author, RunMetrics, SampleArticle
from authorscout.core.crawl.state import CrawlState

MIN_NAME_LENGTH = 2


class AuthorRecord(BaseModel):
    """Finalized author as handed to consumers."""

    handle: str
    name: str
    profile_url: str
    bio: str | None = None
    twitter: str | None = None
    linkedin: str | None = None
    github: str | None = None
    website: str | None = None
    matched_keywords: list[str]
    sample_articles: list[SampleArticle]
    article_count: int = 0


class ScrapeStats(BaseModel):
    """Summary counts recomputed on every finalize call."""

    total_authors: int
    with_twitter: int
    with_linkedin: int
    with_github: int
    with_website: int
    with_bio: int
    new_authors_this_run: int
    articles_processed: int
    total_urls_processed: int
    total_profiles_processed: int
    processing_time_ms: int


class ScrapeResult(BaseModel):
    """Authors plus statistics for one finalize call."""

    authors: list[AuthorRecord]
    stats: ScrapeStats

    def to_json(self) -> str:
        """Stable JSON rendering: identical state yields identical bytes."""
        return json.dumps(
            self.model_dump(mode="json"),
            sort_keys=True,
            ensure_ascii=False,
            separators=(",", ":"),
        )


class ResultFinalizer:
    """Pure read of a CrawlState into a ScrapeResult."""

    def finalize(self, state: CrawlState, metrics: RunMetrics | None = None) -> ScrapeResult:
        """
        Build output records and statistics.

        Args:
            state: Crawl state to read (not mutated)
            metrics: Measurements of the run that produced the state

        Returns:
            ScrapeResult with authors ordered by handle
        """
        metrics = metrics or RunMetrics(authors_at_start=len(state.authors))
        authors = [
            self._to_record(state.authors[handle], len(state.author_articles.get(handle, [])))
            for handle in sorted(state.authors)
        ]

        stats = ScrapeStats(
            total_authors=len(authors),
            with_twitter=sum(1 for a in authors if a.twitter),
            with_linkedin=sum(1 for a in authors if a.linkedin),
            with_github=sum(1 for a in authors if a.github),
            with_website=sum(1 for a in authors if a.website),
            with_bio=sum(1 for a in authors if a.bio),
            new_authors_this_run=max(0, len(authors) - metrics.authors_at_start),
            articles_processed=metrics.articles_collected,
            total_urls_processed=len(state.processed_urls),
            total_profiles_processed=len(state.processed_profiles),
            processing_time_ms=metrics.processing_time_ms,
        )
        return ScrapeResult(authors=authors, stats=stats)

    @staticmethod
    def _to_record(author: Author, article_count: int) -> AuthorRecord:
        name = author.name if len(author.name or "") >= MIN_NAME_LENGTH else author.handle
        return AuthorRecord(
            handle=author.handle,
            name=name,
            profile_url=author.profile_url,
            bio=author.bio,
            twitter=author.twitter,
            linkedin=author.linkedin,
            github=author.github,
            website=author.website,
            matched_keywords=sorted(author.matched_keywords),
            sample_articles=[a.model_copy() for a in author.sample_articles],
            article_count=article_count,
        )
