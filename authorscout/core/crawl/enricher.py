"""Profile enrichment - fill external identity links from author profile pages."""

from dataclasses import dataclass
from urllib.parse import urlparse

import structlog
from bs4 import BeautifulSoup

from authorscout.core.crawl.crawl_config import CrawlConfig
from authorscout.core.crawl.merge_policy import apply_fill_once, upgrade_name
from authorscout.core.crawl.models import Author
from authorscout.core.crawl.page_source import PageSource, fetch_with_retry
from authorscout.core.crawl.state import CrawlState
from authorscout.utils.exceptions import FetchError

logger = structlog.get_logger(__name__)

PLATFORM_DOMAINS = {
    "twitter": ("twitter.com", "x.com"),
    "linkedin": ("linkedin.com",),
    "github": ("github.com",),
}


@dataclass
class ProfileFacts:
    """Identity data read from one profile page."""

    name: str = ""
    bio: str | None = None
    twitter: str | None = None
    linkedin: str | None = None
    github: str | None = None
    website: str | None = None


def _on_domain(host: str, domains: tuple[str, ...]) -> bool:
    host = host.removeprefix("www.")
    return any(host == domain or host.endswith("." + domain) for domain in domains)


def scan_profile(
    html: str, self_token: str, ignored_domains: tuple[str, ...] = ()
) -> ProfileFacts:
    """
    Read name, bio and outbound identity links from a profile page.

    Links are scanned in document order and the first match per field wins.
    Platform links pointing back at the crawled site are rejected. The
    website is the first absolute link off every platform, self and
    ignored domain.

    Args:
        html: Profile page markup
        self_token: Bare name of the crawled site (e.g. "hackernoon")
        ignored_domains: Host fragments never taken as a personal website
    """
    soup = BeautifulSoup(html, "html.parser")
    facts = ProfileFacts()

    h1 = soup.find("h1")
    if h1:
        facts.name = h1.get_text(" ", strip=True)

    meta_desc = soup.find("meta", attrs={"name": "description"})
    if meta_desc and meta_desc.get("content"):
        facts.bio = " ".join(meta_desc["content"].split()) or None

    all_platforms = tuple(d for domains in PLATFORM_DOMAINS.values() for d in domains)

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href.lower().startswith(("http://", "https://")):
            continue
        host = urlparse(href).netloc.lower()

        for field_name, domains in PLATFORM_DOMAINS.items():
            if getattr(facts, field_name):
                continue
            if _on_domain(host, domains) and self_token not in href.lower():
                setattr(facts, field_name, href)

        if (
            not facts.website
            and not _on_domain(host, all_platforms)
            and self_token not in host
            and not any(fragment in host for fragment in ignored_domains)
        ):
            facts.website = href

    return facts


class ProfileEnricher:
    """Fetch each not-yet-enriched author's profile page once."""

    def __init__(
        self,
        state: CrawlState,
        config: CrawlConfig | None = None,
        page_source: PageSource | None = None,
    ):
        """Initialize the enricher with crawl state, configuration and page source."""
        self.state = state
        self.config = config or CrawlConfig()
        self.page_source = page_source

    def pending(self) -> list[Author]:
        """Authors still waiting for enrichment."""
        return self.state.pending_profiles()

    async def enrich(self, author: Author) -> bool:
        """
        Enrich one author from their profile page.

        The profile URL is marked processed before fetching; a failed fetch
        is not retried by later runs.

        Returns:
            True if the profile page was fetched and applied
        """
        if not self.state.mark_profile_processed(author.profile_url):
            logger.debug("profile_already_processed", handle=author.handle)
            return False

        if self.page_source is None:
            raise RuntimeError("ProfileEnricher has no page source")

        try:
            html = await fetch_with_retry(
                self.page_source,
                author.profile_url,
                self.config.retry,
                max_retries=self.config.retry.page_max_retries,
            )
        except FetchError as e:
            logger.warning("profile_fetch_failed", handle=author.handle, error=str(e))
            return False

        self.apply(author, html)
        return True

    def apply(self, author: Author, html: str) -> list[str]:
        """Apply profile markup to an author. Returns the names of fields that changed."""
        facts = scan_profile(html, self.config.self_token, self.config.ignored_website_domains)

        changed = apply_fill_once(
            author,
            bio=facts.bio,
            twitter=facts.twitter,
            linkedin=facts.linkedin,
            github=facts.github,
            website=facts.website,
        )
        upgraded = upgrade_name(author.name, facts.name)
        if upgraded != author.name:
            author.name = upgraded
            changed.append("name")

        logger.info("profile_enriched", handle=author.handle, fields=changed)
        return changed
