"""Per-URL gate: recency window and robots.txt compliance."""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit
from urllib.robotparser import RobotFileParser

import httpx
import redis.asyncio as redis

from salsa_finder.database.repositories.event_repository import EventRepository
from salsa_finder.database.repositories.scraped_url_repository import ScrapedUrlRepository
from salsa_finder.models.config import SalsaFinderConfig

logger = logging.getLogger(__name__)

REASON_RECENT = "recent"
REASON_ROBOTS = "robots_blocked"


@dataclass(frozen=True)
class GateDecision:
    """Whether a search result may be fetched, and why not."""

    allowed: bool
    reason: Optional[str] = None


class RobotsPolicy:
    """Evaluates robots.txt for the crawler's user agent.

    A robots.txt that cannot be fetched, or answers non-2xx, allows everything.
    Fetched bodies are cached in Redis when a client is given.
    """

    def __init__(self, config: SalsaFinderConfig, http_client: httpx.AsyncClient,
                 redis_client: Optional[redis.Redis] = None):
        self.user_agent = config.user_agent
        self.timeout = config.robots_timeout_seconds
        self.cache_ttl = config.robots_cache_ttl_seconds
        self.http_client = http_client
        self.redis_client = redis_client

    @staticmethod
    def _origin(url: str) -> str:
        parts = urlsplit(url)
        return f"{parts.scheme}://{parts.netloc}"

    async def _cached_body(self, origin: str) -> Optional[str]:
        if not self.redis_client:
            return None
        try:
            return await self.redis_client.get(f"robots:{origin}")
        except Exception as e:
            logger.warning(f"Robots cache read failed for {origin}: {e}")
            return None

    async def _store_body(self, origin: str, body: str) -> None:
        if not self.redis_client or not self.cache_ttl:
            return
        try:
            await self.redis_client.set(f"robots:{origin}", body, ex=self.cache_ttl)
        except Exception as e:
            logger.warning(f"Robots cache write failed for {origin}: {e}")

    async def _fetch_body(self, origin: str) -> Optional[str]:
        robots_url = f"{origin}/robots.txt"
        try:
            response = await self.http_client.get(
                robots_url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.info(f"Could not fetch {robots_url}, allowing: {e}")
            return None

        if not response.is_success:
            logger.info(f"{robots_url} answered {response.status_code}, allowing")
            return None
        return response.text

    async def is_allowed(self, url: str) -> bool:
        """Check whether the user agent may fetch ``url``."""
        origin = self._origin(url)

        body = await self._cached_body(origin)
        if body is None:
            body = await self._fetch_body(origin)
            if body is None:
                return True
            await self._store_body(origin, body)

        parser = RobotFileParser()
        parser.parse(body.splitlines())
        return parser.can_fetch(self.user_agent, url)


class ResultGate:
    """Decides whether a search result URL is processed in this run."""

    def __init__(self, config: SalsaFinderConfig, event_repository: EventRepository,
                 scraped_url_repository: ScrapedUrlRepository, robots: RobotsPolicy):
        self.recency_window_days = config.recency_window_days
        self.event_repository = event_repository
        self.scraped_url_repository = scraped_url_repository
        self.robots = robots

    async def is_recent(self, url: str) -> bool:
        """True if the URL was collected within the recency window."""
        if self.recency_window_days <= 0:
            return False
        if await self.event_repository.has_recent_from_source(url, self.recency_window_days):
            return True
        return await self.scraped_url_repository.was_scraped_recently(url, self.recency_window_days)

    async def check(self, url: str) -> GateDecision:
        if await self.is_recent(url):
            return GateDecision(allowed=False, reason=REASON_RECENT)
        if not await self.robots.is_allowed(url):
            return GateDecision(allowed=False, reason=REASON_ROBOTS)
        return GateDecision(allowed=True)
