"""Content extraction - derive an author and topical relevance from an article page."""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

import structlog
from bs4 import BeautifulSoup

from authorscout.core.crawl.crawl_config import CrawlConfig
from authorscout.core.crawl.models import ContentRef, ExtractionResult, SourceType
from authorscout.core.crawl.page_source import PageSource, fetch_with_retry
from authorscout.core.crawl.state import CrawlState
from authorscout.utils.exceptions import FetchError, ParseError

logger = structlog.get_logger(__name__)

PROFILE_PATH_PREFIX = "/u/"
MIN_HANDLE_LENGTH = 2
MAX_HANDLE_LENGTH = 50


@dataclass
class AuthorFacts:
    """Author identity as found on a page."""

    handle: str
    name: str = ""
    bio: str | None = None
    website: str | None = None


@dataclass
class PageFacts:
    """Everything the extractor reads from one article page."""

    title: str = ""
    excerpt: str = ""
    tags: list[str] = field(default_factory=list)
    author: AuthorFacts | None = None


RelevancePredicate = Callable[[ContentRef, PageFacts, CrawlConfig], list[str]]


def implicit_relevance(ref: ContentRef, page: PageFacts, config: CrawlConfig) -> list[str]:
    """Relevance implied by the source: the triggering keyword or tag."""
    return [ref.provenance]


def vocabulary_relevance(ref: ContentRef, page: PageFacts, config: CrawlConfig) -> list[str]:
    """Relevance by matching the page against the keyword and tag vocabularies."""
    return match_vocabulary(page, config.keywords, config.tags)


DEFAULT_RELEVANCE: dict[SourceType, RelevancePredicate] = {
    SourceType.SEARCH: implicit_relevance,
    SourceType.TAG: implicit_relevance,
    SourceType.SITEMAP: vocabulary_relevance,
}


def match_vocabulary(page: PageFacts, keywords: list[str], tags: list[str]) -> list[str]:
    """
    Case-insensitive substring match of title, excerpt and tag slugs.

    Tags also match in their spaced form ("side-project" matches "side project").

    Returns:
        Matched vocabulary entries in vocabulary order
    """
    haystack = " ".join([page.title, page.excerpt, *page.tags]).lower()
    matched = []
    seen: set[str] = set()
    for term in [*keywords, *tags]:
        needle = term.lower()
        if needle in seen:
            continue
        seen.add(needle)
        if needle in haystack or needle.replace("-", " ") in haystack:
            matched.append(term)
    return matched


def handle_from_href(href: str, host: str) -> str | None:
    """Return the author handle from a /u/<handle> link, if the link is one."""
    parsed = urlparse(href)
    if parsed.netloc and parsed.netloc.lower().removeprefix("www.") != host.removeprefix("www."):
        return None
    path = parsed.path
    if not path.startswith(PROFILE_PATH_PREFIX):
        return None
    handle = path[len(PROFILE_PATH_PREFIX):].split("/")[0]
    if MIN_HANDLE_LENGTH <= len(handle) < MAX_HANDLE_LENGTH:
        return handle
    return None


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _tag_slugs(raw: Any) -> list[str]:
    if isinstance(raw, str):
        return [t.strip() for t in raw.split(",") if t.strip()]
    if not isinstance(raw, list):
        return []
    slugs = []
    for item in raw:
        if isinstance(item, str):
            slugs.append(item)
        elif isinstance(item, dict):
            slug = item.get("slug") or item.get("name")
            if isinstance(slug, str):
                slugs.append(slug)
    return slugs


class ContentExtractor:
    """Fetch one content reference and derive its author.

    Author identity comes from embedded page data when present
    (__NEXT_DATA__, then JSON-LD), otherwise from the first author
    profile link in document order.
    """

    def __init__(
        self,
        state: CrawlState,
        config: CrawlConfig | None = None,
        page_source: PageSource | None = None,
        relevance: dict[SourceType, RelevancePredicate] | None = None,
    ):
        """
        Initialize the extractor.

        Args:
            state: Crawl state receiving processed URL marks
            config: Crawl configuration
            page_source: Page source used to fetch article pages
            relevance: Per-source-type relevance predicates (defaults to
                implicit for search/tag and vocabulary match for sitemap)
        """
        self.state = state
        self.config = config or CrawlConfig()
        self.page_source = page_source
        self.relevance = {**DEFAULT_RELEVANCE, **(relevance or {})}

    async def extract(self, ref: ContentRef) -> ExtractionResult | None:
        """
        Process one content reference, at most once per crawl state.

        The URL is marked processed before fetching, so failures are not retried
        on later calls.

        Returns:
            ExtractionResult, or None when already processed, unfetchable,
            authorless or irrelevant
        """
        if not self.state.mark_processed(ref.url):
            logger.debug("content_already_processed", url=ref.url)
            return None

        if self.page_source is None:
            raise RuntimeError("ContentExtractor has no page source")

        try:
            html = await fetch_with_retry(
                self.page_source,
                ref.url,
                self.config.retry,
                max_retries=self.config.retry.page_max_retries,
            )
        except FetchError as e:
            logger.warning("content_fetch_failed", url=ref.url, error=str(e))
            return None

        return self.extract_from_markup(ref, html)

    def extract_from_markup(self, ref: ContentRef, html: str) -> ExtractionResult | None:
        """Derive author and relevance from already fetched article markup."""
        try:
            page = self.read_page(html)
        except ParseError as e:
            logger.info("content_no_author", url=ref.url, reason=str(e))
            return None

        author = page.author
        if author is None:
            return None

        predicate = self.relevance.get(ref.source_type, implicit_relevance)
        matched = predicate(ref, page, self.config)
        if not matched:
            logger.info("content_not_relevant", url=ref.url, title=page.title)
            return None

        return ExtractionResult(
            ref=ref,
            handle=author.handle,
            name=author.name or author.handle,
            profile_url=f"{self.config.base_url}{PROFILE_PATH_PREFIX}{author.handle}",
            title=page.title or ref.title,
            matched_keywords=matched,
            bio=author.bio,
            website=author.website,
        )

    def read_page(self, html: str) -> PageFacts:
        """
        Read title, excerpt, tags and author from an article page.

        Raises:
            ParseError: If no author handle can be derived
        """
        soup = BeautifulSoup(html, "html.parser")

        page = self._read_next_data(soup) or self._read_json_ld(soup) or PageFacts()

        if not page.title:
            h1 = soup.find("h1")
            if h1:
                page.title = h1.get_text(" ", strip=True)

        if not page.excerpt:
            meta_desc = soup.find("meta", attrs={"name": "description"})
            if meta_desc:
                page.excerpt = _as_text(meta_desc.get("content"))

        if not page.tags:
            for anchor in soup.find_all("a", href=True):
                path = urlparse(anchor["href"]).path
                if path.startswith("/tagged/"):
                    tag = path[len("/tagged/"):].strip("/")
                    if tag and tag not in page.tags:
                        page.tags.append(tag)

        if page.author is None:
            page.author = self._first_profile_link(soup)

        if page.author is None:
            raise ParseError("no author profile link found")

        return page

    def _first_profile_link(self, soup: BeautifulSoup) -> AuthorFacts | None:
        for anchor in soup.find_all("a", href=True):
            handle = handle_from_href(anchor["href"], self.config.host)
            if handle:
                return AuthorFacts(handle=handle, name=anchor.get_text(" ", strip=True))
        return None

    def _read_next_data(self, soup: BeautifulSoup) -> PageFacts | None:
        """Read the Next.js page payload, if the page embeds one."""
        script = soup.find("script", id="__NEXT_DATA__")
        if not script or not script.string:
            return None
        try:
            payload = json.loads(script.string)
        except json.JSONDecodeError as e:
            logger.debug("next_data_invalid", error=str(e))
            return None

        data = payload
        for key in ("props", "pageProps", "data"):
            if not isinstance(data, dict):
                return None
            data = data.get(key)
        if not isinstance(data, dict):
            return None

        page = PageFacts(
            title=_as_text(data.get("title")),
            excerpt=_as_text(data.get("excerpt")),
            tags=_tag_slugs(data.get("tags")),
        )
        profile = data.get("profile")
        if isinstance(profile, dict):
            handle = _as_text(profile.get("handle"))
            if MIN_HANDLE_LENGTH <= len(handle) < MAX_HANDLE_LENGTH:
                page.author = AuthorFacts(
                    handle=handle,
                    name=_as_text(profile.get("displayName")),
                    bio=_as_text(profile.get("bio")) or None,
                    website=_as_text(profile.get("website")) or None,
                )
        return page

    def _read_json_ld(self, soup: BeautifulSoup) -> PageFacts | None:
        """Read an Article JSON-LD block, if the page embeds one."""
        for script in soup.find_all("script", type="application/ld+json"):
            if not script.string:
                continue
            try:
                payload = json.loads(script.string)
            except json.JSONDecodeError as e:
                logger.debug("json_ld_invalid", error=str(e))
                continue

            for item in payload if isinstance(payload, list) else [payload]:
                if not isinstance(item, dict) or "author" not in item:
                    continue
                page = PageFacts(
                    title=_as_text(item.get("headline")),
                    excerpt=_as_text(item.get("description")),
                    tags=_tag_slugs(item.get("keywords")),
                )
                authors = item["author"]
                author = authors[0] if isinstance(authors, list) and authors else authors
                if isinstance(author, dict):
                    handle = handle_from_href(_as_text(author.get("url")), self.config.host)
                    if handle:
                        page.author = AuthorFacts(
                            handle=handle,
                            name=_as_text(author.get("name")),
                            bio=_as_text(author.get("description")) or None,
                        )
                return page
        return None
