"""Repository for the scraped-URL recency cache."""

import datetime as dt
from typing import Any, Dict, Optional
import asyncpg
import structlog
from pydantic import BaseModel

from salsa_finder.database.repositories.base import BaseRepository
from salsa_finder.database.connections import DatabaseManager


logger = structlog.get_logger(__name__)


class ScrapedUrl(BaseModel):
    """Last scrape outcome for a URL; not a source of truth for events."""

    url: str
    success: bool = False
    event_count: int = 0
    last_scraped: Optional[dt.datetime] = None


class ScrapedUrlRepository(BaseRepository[ScrapedUrl]):
    """Repository tracking when each URL was last fetched."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize scraped URL repository."""
        super().__init__(db_manager, "scraped_urls")
        self.logger = logger.bind(component="scraped_url_repository")

    def _row_to_model(self, row: asyncpg.Record) -> ScrapedUrl:
        """Convert database row to ScrapedUrl model."""
        return ScrapedUrl(
            url=row['url'],
            success=row['success'],
            event_count=row['event_count'],
            last_scraped=row['last_scraped']
        )

    def _model_to_dict(self, model: ScrapedUrl) -> Dict[str, Any]:
        """Convert ScrapedUrl model to dictionary for database storage."""
        return {
            'url': model.url,
            'success': model.success,
            'event_count': model.event_count,
            'last_scraped': model.last_scraped
        }

    async def record_scrape(self, url: str, success: bool, event_count: int) -> None:
        """
        Upsert the outcome of fetching a URL.

        Args:
            url: The fetched URL
            success: Whether content was retrieved and processed
            event_count: Number of candidates extracted from the page
        """
        try:
            async with self.db_manager.get_postgres_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO scraped_urls (url, success, event_count, last_scraped)
                    VALUES ($1, $2, $3, NOW())
                    ON CONFLICT (url) DO UPDATE
                    SET success = EXCLUDED.success,
                        event_count = EXCLUDED.event_count,
                        last_scraped = EXCLUDED.last_scraped
                    """,
                    url, success, event_count
                )
        except Exception as e:
            self.logger.error("Error recording scraped URL", url=url, error=str(e))
            raise

    async def was_scraped_recently(self, url: str, window_days: int) -> bool:
        """
        Check whether the URL was fetched successfully within the recency window.

        Args:
            url: URL to check
            window_days: Size of the recency window in days

        Returns:
            True if a successful fetch newer than the window exists
        """
        try:
            async with self.db_manager.get_postgres_connection() as conn:
                result = await conn.fetchval(
                    "SELECT 1 FROM scraped_urls WHERE url = $1 AND success "
                    "AND last_scraped > NOW() - make_interval(days => $2)",
                    url, window_days
                )
                return result is not None
        except Exception as e:
            self.logger.error("Error checking scraped URL", url=url, error=str(e))
            raise
