"""Discovery run orchestration: search, gate, fetch, extract, normalize, persist."""

import asyncio
import datetime as dt
from typing import Awaitable, Callable, List, Optional

import httpx
import structlog

from salsa_finder.agents.event_extractor import EventExtractorAgent
from salsa_finder.database.connections import DatabaseManager
from salsa_finder.database.repositories.event_repository import EventRepository
from salsa_finder.database.repositories.scraped_url_repository import ScrapedUrlRepository
from salsa_finder.discovery.content_extractor import ContentExtractor
from salsa_finder.discovery.normalizer import EventNormalizer
from salsa_finder.discovery.persistence import EventPersister
from salsa_finder.discovery.query_builder import build_search_query
from salsa_finder.discovery.relevance import is_relevant_content
from salsa_finder.discovery.result_gate import REASON_RECENT, ResultGate, RobotsPolicy
from salsa_finder.discovery.search_client import GoogleSearchClient
from salsa_finder.exceptions import SearchProviderError
from salsa_finder.models.config import SalsaFinderConfig
from salsa_finder.models.event import NormalizedEvent
from salsa_finder.models.messages import RunSummary


logger = structlog.get_logger(__name__)


class DiscoveryService:
    """Runs one sequential discovery pass for a city.

    URLs are processed one at a time with a politeness delay between page
    fetches. Per-URL and per-event problems become steps in the returned
    summary; only a search provider failure ends the run early.
    """

    def __init__(
        self,
        config: SalsaFinderConfig,
        search_client: GoogleSearchClient,
        result_gate: ResultGate,
        content_extractor: ContentExtractor,
        extractor: EventExtractorAgent,
        normalizer: EventNormalizer,
        persister: EventPersister,
        scraped_urls: ScrapedUrlRepository,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.search_client = search_client
        self.result_gate = result_gate
        self.content_extractor = content_extractor
        self.extractor = extractor
        self.normalizer = normalizer
        self.persister = persister
        self.scraped_urls = scraped_urls
        self._sleep = sleep
        self.logger = logger.bind(component="discovery_service")

    @classmethod
    def from_config(cls, config: SalsaFinderConfig, db_manager: DatabaseManager,
                    http_client: httpx.AsyncClient) -> "DiscoveryService":
        """Wire the default collaborators around an initialized database manager."""
        event_repository = EventRepository(db_manager)
        scraped_urls = ScrapedUrlRepository(db_manager)
        redis_client = db_manager.get_redis_client() if db_manager.redis_enabled else None

        return cls(
            config=config,
            search_client=GoogleSearchClient(config, http_client),
            result_gate=ResultGate(
                config,
                event_repository,
                scraped_urls,
                RobotsPolicy(config, http_client, redis_client),
            ),
            content_extractor=ContentExtractor(config, http_client),
            extractor=EventExtractorAgent(config),
            normalizer=EventNormalizer(config),
            persister=EventPersister(event_repository),
            scraped_urls=scraped_urls,
        )

    async def run_discovery(
        self,
        city: str,
        date: Optional[dt.date] = None,
        weekday: Optional[str] = None,
        styles: Optional[List[str]] = None,
        today: Optional[dt.date] = None,
    ) -> RunSummary:
        """
        Discover and store events for a city.

        Args:
            city: City to search in
            date: Target date; also the fallback date for undated events
            weekday: German weekday name for the query
            styles: Preferred dance styles, the first one is searched for
            today: Clock override

        Returns:
            Run summary with the step trace and counts
        """
        city = city.strip()
        today = today or dt.date.today()
        query = build_search_query(city, date=date, weekday=weekday, styles=styles)
        summary = RunSummary(city=city, query=query)
        summary.add_step("google_query", query)

        self.logger.info("Discovery run started", city=city,
                         date=date.isoformat() if date else None, query=query)

        try:
            results = await self.search_client.search(query)
        except SearchProviderError as e:
            summary.error = e.message
            summary.add_step("search_error", e.message)
            self.logger.error("Search provider failed", city=city, query=query, error=e.message)
            return summary

        if not results:
            summary.add_step("no_results", "No search results found")
            summary.add_step("complete", "Successfully inserted 0 new events")
            return summary

        summary.add_step("google_results", f"Search returned {len(results)} results")

        collected: List[NormalizedEvent] = []
        fetched = 0

        for position, result in enumerate(results, start=1):
            url = result.url
            summary.add_step("processing_url", f"{position}/{len(results)}: {url}")

            try:
                decision = await self.result_gate.check(url)
                if not decision.allowed:
                    if decision.reason == REASON_RECENT:
                        summary.add_step("skip_recent", f"Skipped: {url}")
                    else:
                        summary.add_step("robots_blocked", f"Blocked: {url}")
                    continue

                if fetched:
                    await self._sleep(self.config.request_delay_seconds)
                fetched += 1

                content = await self.content_extractor.extract(url)
                if not content:
                    summary.add_step("scrape_failed", f"Failed: {url}")
                    await self._record_scrape(url, success=False, event_count=0)
                    continue

                if self.config.relevance_filter_enabled and not is_relevant_content(content):
                    summary.add_step("not_relevant", f"Not relevant: {url}")
                    await self._record_scrape(url, success=True, event_count=0)
                    continue

                candidates = await self.extractor.extract(content, url, city, date or today)
                await self._record_scrape(url, success=True, event_count=len(candidates))

                if not candidates:
                    summary.add_step("no_events", f"No events: {url}")
                    continue

                summary.extracted += len(candidates)
                summary.add_step("events_extracted", f"{len(candidates)} events from {url}")
                collected.extend(self.normalizer.normalize(
                    candidates, url, city, search_date=date, today=today, summary=summary
                ))

            except Exception as e:
                self.logger.exception("Unexpected error processing URL", url=url)
                summary.add_step("url_error", f"{url}: {e}")

        summary.add_step("total_extracted", f"Total events extracted: {summary.extracted}")

        await self.persister.persist(collected, summary)

        summary.add_step("complete", f"Successfully inserted {summary.inserted} new events")
        self.logger.info("Discovery run finished", city=city, extracted=summary.extracted,
                         inserted=summary.inserted, skipped=summary.skipped, errored=summary.errored)
        return summary

    async def _record_scrape(self, url: str, success: bool, event_count: int) -> None:
        try:
            await self.scraped_urls.record_scrape(url, success, event_count)
        except Exception as e:
            self.logger.warning("Could not record scraped URL", url=url, error=str(e))
