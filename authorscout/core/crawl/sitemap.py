"""Sitemap parsing - sitemap index and urlset documents."""

import xml.etree.ElementTree as ET

import structlog
from bs4 import BeautifulSoup

from authorscout.core.crawl.crawl_config import SitemapSelection

logger = structlog.get_logger(__name__)

NAMESPACES = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9"}


def _find_locs(content: str, parent: str) -> list[str]:
    """Return <loc> values under <parent> elements, in document order."""
    try:
        root = ET.fromstring(content.strip())
    except ET.ParseError as e:
        # Browsers may hand back the XML wrapped in a viewer page.
        logger.debug("sitemap_xml_parse_failed", error=str(e))
        soup = BeautifulSoup(content, "html.parser")
        return [
            loc.get_text(strip=True)
            for node in soup.find_all(parent)
            for loc in node.find_all("loc", limit=1)
            if loc.get_text(strip=True)
        ]

    elements = root.findall(f".//sm:{parent}/sm:loc", NAMESPACES) or root.findall(
        f".//{parent}/loc"
    )
    return [elem.text.strip() for elem in elements if elem.text and elem.text.strip()]


def parse_sitemap_index(content: str) -> list[str]:
    """Extract sub-sitemap URLs from a sitemap index."""
    return _find_locs(content, "sitemap")


def parse_urlset(content: str) -> list[str]:
    """Extract page URLs from a regular sitemap."""
    return _find_locs(content, "url")


def select_sitemaps(
    sitemap_urls: list[str], count: int, policy: SitemapSelection
) -> list[str]:
    """
    Pick which sub-sitemaps to enumerate.

    Args:
        sitemap_urls: Sub-sitemaps in index order
        count: How many to keep
        policy: NEWEST takes the last entries of the index, OLDEST the first

    Returns:
        Selected sitemap URLs, newest first for NEWEST
    """
    if count <= 0:
        return []
    if policy is SitemapSelection.OLDEST:
        return sitemap_urls[:count]
    return list(reversed(sitemap_urls[-count:]))
