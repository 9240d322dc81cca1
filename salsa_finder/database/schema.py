"""Idempotent schema creation for the events, votes and scrape-cache tables."""

import structlog

from salsa_finder.database.connections import DatabaseManager


logger = structlog.get_logger(__name__)


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS events (
        id SERIAL PRIMARY KEY,
        title TEXT NOT NULL,
        date DATE NOT NULL,
        time TEXT,
        venue_name TEXT,
        address TEXT NOT NULL DEFAULT 'Location TBD',
        city TEXT,
        source TEXT NOT NULL,
        dance_styles JSONB NOT NULL DEFAULT '[]'::jsonb,
        venue_type TEXT NOT NULL DEFAULT 'Unspecified'
            CHECK (venue_type IN ('Indoor', 'Outdoor', 'Unspecified')),
        description TEXT,
        workshop_date DATE,
        workshop_time TEXT,
        party_date DATE,
        party_time TEXT,
        workshops JSONB NOT NULL DEFAULT '[]'::jsonb,
        party JSONB,
        recurrence TEXT,
        recurring_pattern TEXT,
        trusted BOOLEAN NOT NULL DEFAULT FALSE,
        scraped_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        original_event_id INTEGER REFERENCES events(id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_events_dedup ON events (source, date, title)",
    "CREATE INDEX IF NOT EXISTS idx_events_city_date ON events (LOWER(city), date)",
    "CREATE INDEX IF NOT EXISTS idx_events_original ON events (original_event_id)",
    """
    CREATE TABLE IF NOT EXISTS votes (
        id SERIAL PRIMARY KEY,
        event_id INTEGER NOT NULL REFERENCES events(id),
        type TEXT NOT NULL CHECK (type IN ('exists', 'notexists')),
        voted_at TIMESTAMPTZ NOT NULL,
        user_id TEXT NOT NULL,
        UNIQUE (event_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS venue_votes (
        id SERIAL PRIMARY KEY,
        event_id INTEGER NOT NULL REFERENCES events(id),
        type TEXT NOT NULL CHECK (type IN ('indoor', 'outdoor')),
        voted_at TIMESTAMPTZ NOT NULL,
        user_id TEXT NOT NULL,
        UNIQUE (event_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scraped_urls (
        id SERIAL PRIMARY KEY,
        url TEXT NOT NULL UNIQUE,
        success BOOLEAN NOT NULL DEFAULT FALSE,
        event_count INTEGER NOT NULL DEFAULT 0,
        last_scraped TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
)


async def initialize_schema(db_manager: DatabaseManager) -> None:
    """Create all tables and indexes if they do not exist yet."""
    async with db_manager.get_postgres_transaction() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)

    logger.info("Database schema initialized", tables=["events", "votes", "venue_votes", "scraped_urls"])
