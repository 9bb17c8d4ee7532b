"""Frontier collector - turn source listings into new content references."""

import re
from dataclasses import dataclass
from urllib.parse import urlparse

import structlog
from bs4 import BeautifulSoup

from authorscout.core.crawl.crawl_config import CrawlConfig
from authorscout.core.crawl.models import ContentRef, SourceDescriptor, SourceType
from authorscout.core.crawl.page_source import PageSource, fetch_with_retry
from authorscout.core.crawl.sitemap import (
    parse_sitemap_index,
    parse_urlset,
    select_sitemaps,
)
from authorscout.core.crawl.state import CrawlState
from authorscout.utils.exceptions import FetchError

logger = structlog.get_logger(__name__)

EXCLUDED_PATH_PREFIXES = (
    "/u/",
    "/tagged/",
    "/search",
    "/signup",
    "/login",
    "/company/",
    "/write",
)

MIN_HREF_LENGTH = 30
MIN_TITLE_LENGTH = 15
MAX_TITLE_LENGTH = 250

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ArticleLink:
    """An article-shaped anchor found on a listing page."""

    slug: str
    title: str


def slug_from_path(path: str) -> str | None:
    """
    Apply the article path heuristic to a root-relative path.

    Returns:
        The slug when the path is a single hyphenated segment outside the
        excluded sections, else None
    """
    if not path.startswith("/") or len(path) < MIN_HREF_LENGTH:
        return None
    if any(prefix in path for prefix in EXCLUDED_PATH_PREFIXES):
        return None
    if "-" not in path:
        return None

    parts = [part for part in path.split("/") if part]
    if len(parts) != 1:
        return None
    return parts[0]


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def extract_article_links(html: str) -> list[ArticleLink]:
    """
    Find article anchors on a listing page, in document order.

    The title is the anchor text, or the first h1-h4 of the nearest
    enclosing div/article/li when that heading is longer.
    """
    soup = BeautifulSoup(html, "html.parser")
    links: list[ArticleLink] = []
    seen: set[str] = set()

    for anchor in soup.find_all("a", href=True):
        href = anchor.get("href") or ""
        slug = slug_from_path(href.split("?")[0].split("#")[0])
        if not slug or slug in seen:
            continue
        seen.add(slug)

        title = anchor.get_text(" ", strip=True)
        parent = anchor.find_parent(["div", "article", "li"])
        if parent:
            heading = parent.find(["h1", "h2", "h3", "h4"])
            if heading:
                heading_text = heading.get_text(" ", strip=True)
                if len(heading_text) > len(title):
                    title = heading_text

        title = _collapse(title)
        if MIN_TITLE_LENGTH <= len(title) <= MAX_TITLE_LENGTH:
            links.append(ArticleLink(slug=slug, title=title))

    return links


class FrontierCollector:
    """Collect deduplicated content references from search, tag and sitemap sources."""

    def __init__(
        self,
        state: CrawlState,
        config: CrawlConfig | None = None,
        page_source: PageSource | None = None,
    ):
        """Initialize the collector with crawl state, configuration and page source."""
        self.state = state
        self.config = config or CrawlConfig()
        self.page_source = page_source

    def listing_sources(self) -> list[SourceDescriptor]:
        """Search and tag sources enabled in the configuration, in order."""
        sources = []
        if self.config.include_search:
            sources.extend(
                SourceDescriptor.search(keyword, self.config.base_url)
                for keyword in self.config.keywords
            )
        if self.config.include_tags:
            sources.extend(
                SourceDescriptor.tag(tag, self.config.base_url) for tag in self.config.tags
            )
        return sources

    async def discover_sitemap_sources(self) -> list[SourceDescriptor]:
        """Fetch the sitemap index and pick the sub-sitemaps to enumerate."""
        if not self.config.include_sitemaps:
            return []

        index_url = self.config.sitemap_index_url
        try:
            content = await self._fetch(index_url, scroll_steps=0, raw=True)
        except FetchError as e:
            logger.warning("sitemap_index_fetch_failed", url=index_url, error=str(e))
            return []

        sitemap_urls = parse_sitemap_index(content)
        selected = select_sitemaps(
            sitemap_urls, self.config.sitemaps_to_check, self.config.sitemap_selection
        )
        logger.info(
            "sitemap_index_parsed",
            available=len(sitemap_urls),
            selected=len(selected),
            policy=self.config.sitemap_selection.value,
        )
        return [SourceDescriptor.sitemap(url) for url in selected]

    async def collect(self, source: SourceDescriptor) -> list[ContentRef]:
        """
        Fetch a source and return its new content references.

        A source that cannot be fetched yields an empty list.
        """
        is_sitemap = source.source_type is SourceType.SITEMAP
        try:
            content = await self._fetch(
                source.url,
                scroll_steps=self.config.scroll_steps_for(source.source_type),
                raw=is_sitemap,
            )
        except FetchError as e:
            logger.warning(
                "source_fetch_failed",
                source_type=source.source_type.value,
                source=source.value,
                error=str(e),
            )
            return []

        if is_sitemap:
            return self.collect_from_sitemap(source, content)
        return self.collect_from_markup(source, content)

    def collect_from_markup(self, source: SourceDescriptor, html: str) -> list[ContentRef]:
        """Collect references from an already fetched search or tag listing."""
        refs = [
            self._make_ref(link.slug, link.title, source)
            for link in extract_article_links(html)
        ]
        return self.filter_new(refs, self.config.max_refs_for(source.source_type))

    def collect_from_sitemap(self, source: SourceDescriptor, content: str) -> list[ContentRef]:
        """Collect references from an already fetched sub-sitemap."""
        site_host = self.config.host.removeprefix("www.")
        refs = []
        for url in parse_urlset(content):
            parsed = urlparse(url)
            if parsed.netloc.lower().removeprefix("www.") != site_host:
                continue
            slug = slug_from_path(parsed.path)
            if slug:
                refs.append(self._make_ref(slug, "", source))
        return self.filter_new(refs, self.config.max_refs_for(source.source_type))

    def filter_new(self, refs: list[ContentRef], limit: int | None = None) -> list[ContentRef]:
        """
        Drop references already seen or processed and commit the survivors.

        Every surviving slug is marked seen before returning. References
        past ``limit`` are left unmarked so a later run can collect them.
        """
        fresh: list[ContentRef] = []
        batch_slugs: set[str] = set()

        for ref in refs:
            if ref.slug in batch_slugs:
                continue
            batch_slugs.add(ref.slug)
            if ref.slug in self.state.seen_slugs or ref.url in self.state.processed_urls:
                continue
            if limit is not None and len(fresh) >= limit:
                break
            fresh.append(ref)

        for ref in fresh:
            self.state.mark_seen(ref.slug)

        logger.info("frontier_filtered", candidates=len(refs), new=len(fresh))
        return fresh

    def _make_ref(self, slug: str, title: str, source: SourceDescriptor) -> ContentRef:
        return ContentRef(
            slug=slug,
            url=f"{self.config.base_url}/{slug}",
            title=title,
            provenance=source.value,
            source_type=source.source_type,
        )

    async def _fetch(self, url: str, scroll_steps: int, raw: bool) -> str:
        if self.page_source is None:
            raise RuntimeError("FrontierCollector has no page source")
        return await fetch_with_retry(
            self.page_source,
            url,
            self.config.retry,
            max_retries=self.config.retry.source_max_retries,
            scroll_steps=scroll_steps,
            raw=raw,
        )
