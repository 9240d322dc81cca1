"""Page fetching and visible-text extraction."""

import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from salsa_finder.models.config import SalsaFinderConfig

logger = logging.getLogger(__name__)

NOISE_TAGS = ["script", "style", "noscript", "iframe", "nav", "footer", "header", "aside"]
NOISE_SELECTORS = ".advertisement, .ad, .ads, .cookie, .cookie-banner, .popup, .modal"

CONTENT_SELECTORS = (
    "main",
    "[role=main]",
    ".main-content",
    ".content",
    ".event-content",
    ".event-details",
    ".event-info",
    "article",
    ".post-content",
    ".entry-content",
)


def html_to_text(html: str) -> str:
    """Visible text of the main content area, whitespace collapsed."""
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(NOISE_TAGS):
        tag.decompose()
    for element in soup.select(NOISE_SELECTORS):
        element.decompose()

    root = None
    for selector in CONTENT_SELECTORS:
        root = soup.select_one(selector)
        if root is not None:
            break
    if root is None:
        root = soup.body or soup

    return " ".join(root.get_text(separator=" ").split())


class ContentExtractor:
    """Fetches a page and reduces it to bounded plain text."""

    def __init__(self, config: SalsaFinderConfig, http_client: httpx.AsyncClient):
        self.http_client = http_client
        self.user_agent = config.user_agent
        self.timeout = config.fetch_timeout_seconds
        self.max_chars = config.max_content_chars

    async def extract(self, url: str) -> Optional[str]:
        """Fetch ``url`` and return its main text.

        Returns:
            Text truncated to ``max_content_chars`` plus ``...``, or None when
            the fetch fails or the page has no text
        """
        try:
            response = await self.http_client.get(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Error fetching {url}: {e}")
            return None

        text = html_to_text(response.text)
        if not text:
            return None

        if len(text) > self.max_chars:
            text = text[:self.max_chars] + "..."
        return text
