"""Crawl state - the exportable record of prior crawl progress."""

from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError

from authorscout.core.crawl.merge_policy import fold_author
from authorscout.core.crawl.models import Author, SampleArticle
from authorscout.utils.exceptions import StateError

logger = structlog.get_logger(__name__)

SNAPSHOT_VERSION = 1


class CrawlSnapshot(BaseModel):
    """Serializable, order-independent view of a CrawlState."""

    version: int = SNAPSHOT_VERSION
    seen_slugs: list[str] = Field(default_factory=list)
    processed_urls: list[str] = Field(default_factory=list)
    processed_profiles: list[str] = Field(default_factory=list)
    authors: dict[str, Author] = Field(default_factory=dict)
    author_articles: dict[str, list[SampleArticle]] = Field(default_factory=dict)


class CrawlState:
    """
    Shared crawl progress threaded through every crawl component.

    Three progress marks are kept apart:
    - seen_slugs: slugs already placed on the frontier
    - processed_urls: content pages already extracted (or attempted)
    - processed_profiles: author profiles already enriched (or attempted)

    Marks are committed immediately and never removed except by reset().
    """

    def __init__(self, sample_cap: int = 3) -> None:
        """
        Initialize an empty crawl state.

        Args:
            sample_cap: Maximum sample articles kept per author
        """
        if sample_cap < 1:
            raise ValueError("sample_cap must be at least 1")
        self.sample_cap = sample_cap
        self.seen_slugs: set[str] = set()
        self.processed_urls: set[str] = set()
        self.processed_profiles: set[str] = set()
        self.authors: dict[str, Author] = {}
        self.author_articles: dict[str, list[SampleArticle]] = {}

    @classmethod
    def from_snapshot(
        cls, snapshot: CrawlSnapshot | dict[str, Any] | None, sample_cap: int = 3
    ) -> "CrawlState":
        """Build a state seeded from a prior snapshot (or empty when None)."""
        state = cls(sample_cap=sample_cap)
        if snapshot is not None:
            state.import_snapshot(snapshot)
        return state

    def mark_seen(self, slug: str) -> bool:
        """Record a slug as collected. Returns False if it was already seen."""
        if slug in self.seen_slugs:
            return False
        self.seen_slugs.add(slug)
        return True

    def mark_processed(self, url: str) -> bool:
        """Record a content URL as attempted. Returns False if it was already processed."""
        if url in self.processed_urls:
            return False
        self.processed_urls.add(url)
        return True

    def mark_profile_processed(self, profile_url: str) -> bool:
        """Record a profile URL as attempted. Returns False if it was already processed."""
        if profile_url in self.processed_profiles:
            return False
        self.processed_profiles.add(profile_url)
        return True

    def record_article(self, handle: str, article: SampleArticle) -> bool:
        """Add an article to the full per-author list, skipping known URLs."""
        articles = self.author_articles.setdefault(handle, [])
        if any(existing.url == article.url for existing in articles):
            return False
        articles.append(article)
        return True

    def pending_profiles(self) -> list[Author]:
        """Authors whose profile page has not been attempted yet."""
        return [
            author
            for author in self.authors.values()
            if author.profile_url not in self.processed_profiles
        ]

    def import_snapshot(self, snapshot: CrawlSnapshot | dict[str, Any]) -> None:
        """
        Union a prior snapshot into this state.

        Nothing already held is dropped or overwritten destructively:
        sets are unioned and authors are folded with the fill-only policy.

        Raises:
            StateError: If the snapshot does not validate
        """
        if not isinstance(snapshot, CrawlSnapshot):
            try:
                snapshot = CrawlSnapshot.model_validate(snapshot)
            except ValidationError as e:
                raise StateError(f"Invalid crawl state snapshot: {e}") from e

        if snapshot.version != SNAPSHOT_VERSION:
            raise StateError(
                f"Unsupported snapshot version {snapshot.version} "
                f"(expected {SNAPSHOT_VERSION})"
            )

        self.seen_slugs.update(snapshot.seen_slugs)
        self.processed_urls.update(snapshot.processed_urls)
        self.processed_profiles.update(snapshot.processed_profiles)

        for handle, incoming in snapshot.authors.items():
            incoming = incoming.model_copy(deep=True)
            if handle in self.authors:
                fold_author(self.authors[handle], incoming, self.sample_cap)
            else:
                incoming.sample_articles = incoming.sample_articles[: self.sample_cap]
                self.authors[handle] = incoming

        for handle, articles in snapshot.author_articles.items():
            for article in articles:
                self.record_article(handle, article.model_copy())

        logger.info(
            "crawl_state_imported",
            authors=len(self.authors),
            seen_slugs=len(self.seen_slugs),
            processed_urls=len(self.processed_urls),
            processed_profiles=len(self.processed_profiles),
        )

    def export(self) -> CrawlSnapshot:
        """Export a complete, order-independent snapshot."""
        return CrawlSnapshot(
            seen_slugs=sorted(self.seen_slugs),
            processed_urls=sorted(self.processed_urls),
            processed_profiles=sorted(self.processed_profiles),
            authors={
                handle: self.authors[handle].model_copy(deep=True)
                for handle in sorted(self.authors)
            },
            author_articles={
                handle: [a.model_copy() for a in self.author_articles[handle]]
                for handle in sorted(self.author_articles)
            },
        )

    def export_dict(self) -> dict[str, Any]:
        """Export the snapshot as JSON-compatible data."""
        return self.export().model_dump(mode="json")

    def reset(self) -> None:
        """Forget all progress and authors."""
        self.seen_slugs.clear()
        self.processed_urls.clear()
        self.processed_profiles.clear()
        self.authors.clear()
        self.author_articles.clear()
        logger.info("crawl_state_reset")
