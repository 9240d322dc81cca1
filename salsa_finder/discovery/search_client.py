"""Google Custom Search client."""

import asyncio
import logging
import time
from typing import Any, List

import httpx

from salsa_finder.exceptions import SearchProviderError
from salsa_finder.models.config import SalsaFinderConfig
from salsa_finder.models.messages import SearchResult

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"


class GoogleSearchClient:
    """Search-results provider backed by the Custom Search JSON API."""

    def __init__(self, config: SalsaFinderConfig, http_client: httpx.AsyncClient,
                 initial_delay: float = 1.0):
        self.api_key = config.google_api_key
        self.cse_id = config.google_cse_id
        self.user_agent = config.user_agent
        self.max_retries = config.search_max_retries
        self.results_count = config.search_results_count
        self.timeout = config.fetch_timeout_seconds
        self.initial_delay = initial_delay
        self.http_client = http_client

    async def search(self, query: str) -> List[SearchResult]:
        """Search with retry logic.

        Rate limiting (429) and server errors (5xx) are retried with
        exponential backoff; other failures are not.

        Args:
            query: Search query

        Returns:
            Results in provider order

        Raises:
            SearchProviderError: If the provider is unconfigured or keeps failing
        """
        if not self.api_key or not self.cse_id:
            raise SearchProviderError("Google search is not configured (GOOGLE_API_KEY / GOOGLE_CSE_ID)")

        params = {
            "q": query,
            "key": self.api_key,
            "cx": self.cse_id,
            "num": self.results_count,
            "hl": "de",
        }

        start_time = time.time()
        logger.info(f"[SEARCH] Starting search query: {query}")

        delay = self.initial_delay
        last_error = None

        for attempt in range(self.max_retries):
            try:
                response = await self.http_client.get(
                    GOOGLE_SEARCH_URL,
                    params=params,
                    headers={"User-Agent": self.user_agent},
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                last_error = SearchProviderError(f"Search request failed: {e}")
                logger.warning(f"[SEARCH] Transport error on attempt {attempt + 1}: {e}")
            else:
                if response.status_code == 429 or response.status_code >= 500:
                    last_error = SearchProviderError(
                        f"Search provider answered {response.status_code}", response.status_code
                    )
                    logger.warning(f"[SEARCH] HTTP {response.status_code} on attempt {attempt + 1}/{self.max_retries}")
                elif not response.is_success:
                    raise SearchProviderError(
                        f"Search provider answered {response.status_code}: {response.text[:200]}",
                        response.status_code,
                    )
                else:
                    try:
                        results = self._parse(response.json())
                    except ValueError as e:
                        raise SearchProviderError(f"Invalid search response: {e}") from e
                    duration = time.time() - start_time
                    logger.info(f"[SEARCH] Completed in {duration:.2f} seconds with {len(results)} results")
                    return results

            if attempt < self.max_retries - 1:
                await asyncio.sleep(delay)
                delay *= 2  # Exponential backoff

        logger.error(f"[SEARCH] All {self.max_retries} attempts failed: {last_error}")
        raise last_error

    @staticmethod
    def _parse(data: Any) -> List[SearchResult]:
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        items = data.get("items") or []
        if not isinstance(items, list):
            raise ValueError(f"expected 'items' to be a list, got {type(items).__name__}")

        results = []
        for item in items:
            if not isinstance(item, dict):
                continue
            link, snippet = item.get("link"), item.get("snippet")
            if isinstance(link, str) and link:
                results.append(SearchResult(url=link, snippet=snippet if isinstance(snippet, str) else ""))
        return results
