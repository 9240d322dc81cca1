"""Event repository for managing event data."""

import datetime as dt
from typing import Any, Dict, List, Optional
import asyncpg
import structlog

from salsa_finder.database.repositories.base import BaseRepository
from salsa_finder.database.connections import DatabaseManager
from salsa_finder.models.event import Event


logger = structlog.get_logger(__name__)


class EventRepository(BaseRepository[Event]):
    """Repository for managing event data in PostgreSQL."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize event repository."""
        super().__init__(db_manager, "events")
        self.logger = logger.bind(component="event_repository")

    def _row_to_model(self, row: asyncpg.Record) -> Event:
        """Convert database row to Event model."""
        return Event(
            id=row['id'],
            title=row['title'],
            date=row['date'],
            time=row['time'],
            venue_name=row['venue_name'],
            address=row['address'],
            city=row['city'],
            source=row['source'],
            dance_styles=row['dance_styles'] or [],
            venue_type=row['venue_type'],
            description=row['description'],
            workshop_date=row['workshop_date'],
            workshop_time=row['workshop_time'],
            party_date=row['party_date'],
            party_time=row['party_time'],
            workshops=row['workshops'] or [],
            party=row['party'],
            recurrence=row['recurrence'],
            recurring_pattern=row['recurring_pattern'],
            trusted=row['trusted'],
            scraped_at=row['scraped_at'],
            original_event_id=row['original_event_id']
        )

    def _model_to_dict(self, model: Event) -> Dict[str, Any]:
        """Convert Event model to dictionary for database storage."""
        return {
            'title': model.title,
            'date': model.date,
            'time': model.time,
            'venue_name': model.venue_name,
            'address': model.address,
            'city': model.city,
            'source': model.source,
            'dance_styles': list(model.dance_styles),
            'venue_type': model.venue_type.value,
            'description': model.description,
            'workshop_date': model.workshop_date,
            'workshop_time': model.workshop_time,
            'party_date': model.party_date,
            'party_time': model.party_time,
            'workshops': [workshop.model_dump() for workshop in model.workshops],
            'party': model.party.model_dump() if model.party else None,
            'recurrence': model.recurrence,
            'recurring_pattern': model.recurring_pattern,
            'trusted': model.trusted,
            'scraped_at': model.scraped_at,
            'original_event_id': model.original_event_id
        }

    async def find_duplicate(self, source: str, date: dt.date, title: str) -> Optional[Event]:
        """
        Find an existing event with the same (source, date, title) key.

        Args:
            source: Source URL or label
            date: Event date
            title: Event title, compared exactly

        Returns:
            The stored event if one exists, None otherwise
        """
        try:
            async with self.db_manager.get_postgres_connection() as conn:
                query = """
                    SELECT * FROM events
                    WHERE source = $1 AND date = $2 AND title = $3
                    ORDER BY id ASC
                    LIMIT 1
                """
                row = await conn.fetchrow(query, source, date, title)

                if row:
                    return self._row_to_model(row)
                return None

        except Exception as e:
            self.logger.error("Error checking for duplicate event",
                            source=source, date=date.isoformat(), title=title, error=str(e))
            raise

    async def has_recent_from_source(self, source: str, window_days: int) -> bool:
        """
        Check whether an event from this source was collected within the window.

        Args:
            source: Source URL
            window_days: Size of the recency window in days

        Returns:
            True if at least one such event exists
        """
        try:
            async with self.db_manager.get_postgres_connection() as conn:
                query = """
                    SELECT 1 FROM events
                    WHERE source = $1 AND scraped_at > NOW() - make_interval(days => $2)
                    LIMIT 1
                """
                result = await conn.fetchval(query, source, window_days)
                return result is not None

        except Exception as e:
            self.logger.error("Error checking recent events for source",
                            source=source, error=str(e))
            raise

    async def link_to_primary(self, event_ids: List[int], primary_id: int) -> int:
        """
        Point a set of series siblings at their primary record.

        Args:
            event_ids: Ids of the non-primary siblings
            primary_id: Id of the primary record

        Returns:
            Number of rows updated
        """
        ids = [event_id for event_id in event_ids if event_id != primary_id]
        if not ids:
            return 0

        try:
            async with self.db_manager.get_postgres_connection() as conn:
                result = await conn.execute(
                    "UPDATE events SET original_event_id = $1 WHERE id = ANY($2::int[])",
                    primary_id, ids
                )
                updated = int(result.split()[-1])  # "UPDATE n"

                self.logger.info("Linked series siblings to primary",
                               primary_id=primary_id, sibling_ids=ids, updated=updated)
                return updated

        except Exception as e:
            self.logger.error("Error linking series siblings",
                            primary_id=primary_id, sibling_ids=ids, error=str(e))
            raise

    async def search_by_city(self, city: str, date: Optional[dt.date] = None,
                             limit: int = 1000) -> List[Event]:
        """
        Find events in a city, optionally on one date.

        Args:
            city: City name, compared case-insensitively
            date: Optional event date filter
            limit: Maximum number of events

        Returns:
            Events ordered by date
        """
        where_clause = "LOWER(city) = LOWER($1)"
        params: List[Any] = [city.strip()]

        if date:
            where_clause += " AND date = $2"
            params.append(date)

        events = await self.find_by_criteria(
            where_clause,
            params,
            order_by="date ASC, time ASC NULLS LAST",
            limit=limit
        )

        self.logger.info("Event search completed",
                       city=city, date=date.isoformat() if date else None,
                       results_count=len(events))
        return events

    async def find_series(self, event_id: int) -> Optional[List[Event]]:
        """
        Find every dated instance of the series an event belongs to.

        Args:
            event_id: Id of any member of the series

        Returns:
            Series members ordered by date, or None if the event does not exist
        """
        event = await self.find_by_id(event_id)
        if event is None:
            return None

        return await self.find_by_criteria(
            "id = $1 OR original_event_id = $1",
            [event.series_root_id],
            order_by="date ASC"
        )
