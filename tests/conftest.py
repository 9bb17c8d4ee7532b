"""Pytest configuration and fixtures."""

import json
import os
from collections.abc import Generator

import pytest
import structlog

from authorscout.config import Settings
from authorscout.core.crawl.crawl_config import CrawlConfig, RetryConfig
from authorscout.core.crawl.models import ContentRef, SourceType
from authorscout.core.crawl.state import CrawlState
from authorscout.utils.exceptions import FetchError

BASE_URL = "https://hackernoon.com"


class FakePageSource:
    """In-memory page source serving canned markup by URL."""

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages = dict(pages or {})
        self.errors: dict[str, list[Exception]] = {}
        self.calls: list[str] = []
        self.started = False
        self.closed = False

    def fail(self, url: str, *errors: Exception) -> None:
        """Raise the given errors, one per fetch, before serving the page."""
        self.errors.setdefault(url, []).extend(errors)

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def fetch(self, url: str, scroll_steps: int = 0, raw: bool = False) -> str:
        self.calls.append(url)
        pending = self.errors.get(url)
        if pending:
            raise pending.pop(0)
        if url not in self.pages:
            raise FetchError(f"HTTP 404 for {url}", url=url, status=404)
        return self.pages[url]


class Pages:
    """Builders for the markup the crawler reads."""

    @staticmethod
    def listing(*articles: tuple[str, str]) -> str:
        """Search or tag listing with (slug, title) cards."""
        cards = "".join(
            f'<article><h3>{title}</h3><a href="/{slug}">Read</a></article>'
            for slug, title in articles
        )
        return f"<html><body><nav><a href='/login'>Login</a></nav>{cards}</body></html>"

    @staticmethod
    def article(
        handle: str | None,
        name: str = "",
        title: str = "An Article About Building Things",
        description: str = "",
        tags: tuple[str, ...] = (),
    ) -> str:
        """Rendered article page with an author link and tag links."""
        author = f'<a href="/u/{handle}">{name or handle}</a>' if handle else ""
        tag_links = "".join(f'<a href="/tagged/{t}">#{t}</a>' for t in tags)
        return (
            "<html><head>"
            f'<meta name="description" content="{description}">'
            "</head><body>"
            f"<h1>{title}</h1>{author}{tag_links}"
            "</body></html>"
        )

    @staticmethod
    def next_data_article(data: dict) -> str:
        """Article page embedding a Next.js payload."""
        payload = json.dumps({"props": {"pageProps": {"data": data}}})
        return (
            "<html><body><h1>Rendered Title</h1>"
            '<a href="/u/someone-else">Someone Else</a>'
            f'<script id="__NEXT_DATA__" type="application/json">{payload}</script>'
            "</body></html>"
        )

    @staticmethod
    def profile(name: str = "", bio: str = "", links: tuple[str, ...] = ()) -> str:
        """Author profile page with outbound links in the given order."""
        anchors = "".join(f'<a href="{href}">link</a>' for href in links)
        return (
            "<html><head>"
            f'<meta name="description" content="{bio}">'
            f"</head><body><h1>{name}</h1>{anchors}</body></html>"
        )

    @staticmethod
    def sitemap_index(*urls: str) -> str:
        entries = "".join(f"<sitemap><loc>{u}</loc></sitemap>" for u in urls)
        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            f"{entries}</sitemapindex>"
        )

    @staticmethod
    def urlset(*urls: str) -> str:
        entries = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            f"{entries}</urlset>"
        )


@pytest.fixture
def pages() -> type[Pages]:
    """Markup builders."""
    return Pages


@pytest.fixture
def fake_source() -> FakePageSource:
    """Empty fake page source; tests register pages on it."""
    return FakePageSource()


@pytest.fixture
def crawl_config() -> CrawlConfig:
    """Crawl configuration with no delays and a single retry."""
    return CrawlConfig(
        base_url=BASE_URL,
        keywords=["indie hacker", "maker"],
        tags=["side-project"],
        include_sitemaps=False,
        request_delay_seconds=0,
        source_delay_seconds=0,
        retry=RetryConfig(
            source_max_retries=1,
            page_max_retries=1,
            initial_delay_seconds=0,
            backoff_factor=1,
        ),
    )


@pytest.fixture
def state() -> CrawlState:
    """Empty crawl state with the default sample cap."""
    return CrawlState(sample_cap=3)


@pytest.fixture
def make_ref():
    """Factory for content references."""

    def _make(
        slug: str,
        provenance: str = "indie hacker",
        source_type: SourceType = SourceType.SEARCH,
        title: str = "",
    ) -> ContentRef:
        return ContentRef(
            slug=slug,
            url=f"{BASE_URL}/{slug}",
            title=title or slug.replace("-", " ").title(),
            provenance=provenance,
            source_type=source_type,
        )

    return _make


@pytest.fixture
def test_settings(tmp_path) -> Generator[Settings, None, None]:
    """
    Provide test configuration with overrides.

    Yields:
        Settings instance for testing
    """
    original_env = os.environ.copy()

    os.environ["AUTHORSCOUT_STATE_FILE"] = str(tmp_path / "state.json")
    os.environ["AUTHORSCOUT_LOG_LEVEL"] = "debug"
    os.environ["AUTHORSCOUT_KEYWORDS"] = "indie hacker, maker"

    settings = Settings(_env_file=None)

    yield settings

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo logging configuration done by a test (CLI runs bind temporary streams)."""
    yield
    structlog.reset_defaults()
