"""Author merger - fold extraction results into the canonical author map."""

import structlog

from authorscout.core.crawl.merge_policy import (
    append_sample,
    apply_fill_once,
    clean_name,
    upgrade_name,
)
from authorscout.core.crawl.models import Author, ExtractionResult, SampleArticle
from authorscout.core.crawl.state import CrawlState

logger = structlog.get_logger(__name__)


class AuthorMerger:
    """Create-on-first-sight, fill-only merge of authors keyed by handle."""

    def __init__(self, state: CrawlState) -> None:
        self.state = state

    def merge(self, result: ExtractionResult) -> bool:
        """
        Fold one extraction result into the crawl state.

        Args:
            result: Author observation derived from one content page

        Returns:
            True if a new author record was created
        """
        article = SampleArticle(
            title=result.title or result.ref.title,
            url=result.ref.url,
            keyword=result.keyword,
        )
        self.state.record_article(result.handle, article)

        author = self.state.authors.get(result.handle)
        if author is None:
            author = Author(
                handle=result.handle,
                name=clean_name(result.name),
                profile_url=result.profile_url,
                matched_keywords=set(result.matched_keywords),
                sample_articles=[article],
            )
            apply_fill_once(author, bio=result.bio, website=result.website)
            self.state.authors[result.handle] = author
            logger.info(
                "author_created",
                handle=result.handle,
                keywords=sorted(author.matched_keywords),
            )
            return True

        author.matched_keywords |= set(result.matched_keywords)
        author.name = upgrade_name(author.name, result.name)
        apply_fill_once(author, bio=result.bio, website=result.website)
        append_sample(author.sample_articles, article, self.state.sample_cap)

        logger.debug(
            "author_merged",
            handle=result.handle,
            keywords=sorted(author.matched_keywords),
            samples=len(author.sample_articles),
        )
        return False
