"""Page source - fetch rendered markup for crawl components."""

import asyncio
from typing import Protocol

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from authorscout.core.crawl.crawl_config import RetryConfig
from authorscout.utils.exceptions import (
    BrowserInitializationError,
    FetchError,
    RateLimitedError,
)
from authorscout.utils.retry import retry_with_exponential_backoff

logger = structlog.get_logger(__name__)

SCROLL_STEP_PX = 800


class PageSource(Protocol):
    """Capability that turns a URL into markup."""

    async def start(self) -> None: ...

    async def close(self) -> None: ...

    async def fetch(self, url: str, scroll_steps: int = 0, raw: bool = False) -> str:
        """
        Fetch a URL.

        Args:
            url: Page to load
            scroll_steps: Progressive-load scroll steps before reading the DOM
            raw: Return the response body as served instead of the rendered DOM

        Raises:
            FetchError: On timeout, network error or non-success status
            RateLimitedError: When the site answers with 429
        """
        ...


class PlaywrightPageSource:
    """Headless Chromium page source with a single reused page."""

    def __init__(
        self,
        headless: bool = True,
        user_agent: str | None = None,
        viewport_width: int = 1280,
        viewport_height: int = 800,
        timeout_ms: int = 25000,
        scroll_delay_seconds: float = 0.5,
    ):
        """
        Initialize the page source.

        Args:
            headless: Run browser in headless mode
            user_agent: User agent string (Playwright default when None)
            viewport_width: Browser viewport width in pixels
            viewport_height: Browser viewport height in pixels
            timeout_ms: Navigation timeout in milliseconds
            scroll_delay_seconds: Pause between scroll steps
        """
        self.headless = headless
        self.user_agent = user_agent
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.timeout_ms = timeout_ms
        self.scroll_delay_seconds = scroll_delay_seconds
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self.page: Page | None = None
        self._playwright: Playwright | None = None

    async def start(self) -> None:
        """
        Launch browser and open a page.

        Raises:
            BrowserInitializationError: If Chromium cannot be started
        """
        try:
            self._playwright = await async_playwright().start()
            self.browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=[
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-dev-shm-usage",
                    "--disable-gpu",
                ],
            )
            await self._open_page()
        except PlaywrightError as e:
            await self.close()
            raise BrowserInitializationError(f"Failed to launch browser: {e}") from e

        logger.info("page_source_started", headless=self.headless)

    async def _open_page(self) -> None:
        if not self.browser:
            raise RuntimeError("Browser not launched. Call start() first.")
        self.context = await self.browser.new_context(
            viewport={"width": self.viewport_width, "height": self.viewport_height},
            user_agent=self.user_agent,
        )
        self.page = await self.context.new_page()

    async def _reopen_page(self) -> None:
        """Replace a page that was closed or detached underneath us."""
        logger.warning("page_source_reopening_page")
        try:
            if self.context:
                await self.context.close()
        except PlaywrightError as e:
            logger.debug("page_source_context_close_failed", error=str(e))
        self.context = None
        self.page = None
        await self._open_page()

    async def close(self) -> None:
        """Close browser and cleanup resources."""
        if self.context:
            await self.context.close()
            self.context = None
            self.page = None
        if self.browser:
            await self.browser.close()
            self.browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def __aenter__(self) -> "PlaywrightPageSource":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(
        self, exc_type: object, exc_val: object, exc_tb: object
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def fetch(self, url: str, scroll_steps: int = 0, raw: bool = False) -> str:
        """Navigate to a URL and return its markup."""
        if not self.page:
            raise RuntimeError("Page source not started. Call start() first.")

        try:
            response = await self.page.goto(
                url, wait_until="networkidle", timeout=self.timeout_ms
            )
        except PlaywrightTimeoutError as e:
            raise FetchError(f"Timed out loading {url}", url=url) from e
        except PlaywrightError as e:
            await self._recover(e)
            raise FetchError(f"Failed to load {url}: {e}", url=url) from e

        if response is None:
            raise FetchError(f"No response for {url}", url=url)
        if response.status == 429:
            raise RateLimitedError(f"Rate limited on {url}", url=url, status=429)
        if response.status >= 400:
            raise FetchError(
                f"HTTP {response.status} for {url}", url=url, status=response.status
            )

        try:
            if raw:
                return await response.text()

            for _ in range(scroll_steps):
                await self.page.evaluate(f"window.scrollBy(0, {SCROLL_STEP_PX})")
                await asyncio.sleep(self.scroll_delay_seconds)

            return await self.page.content()
        except PlaywrightError as e:
            await self._recover(e)
            raise FetchError(f"Failed to read {url}: {e}", url=url) from e

    async def _recover(self, error: PlaywrightError) -> None:
        message = str(error)
        if "closed" in message or "detached" in message:
            await self._reopen_page()


async def fetch_with_retry(
    source: PageSource,
    url: str,
    retry: RetryConfig,
    max_retries: int,
    scroll_steps: int = 0,
    raw: bool = False,
) -> str:
    """
    Fetch through a page source with bounded retries and backoff.

    Raises:
        FetchError: Once retries are exhausted
    """
    return await retry_with_exponential_backoff(
        source.fetch,
        url,
        scroll_steps=scroll_steps,
        raw=raw,
        max_retries=max_retries,
        initial_delay=retry.initial_delay_seconds,
        backoff_factor=retry.backoff_factor,
        rate_limit_multiplier=retry.rate_limit_multiplier,
        retry_on_exceptions=(FetchError,),
    )
