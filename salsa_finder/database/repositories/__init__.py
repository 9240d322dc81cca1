"""Database repositories for data access layer."""

from .base import BaseRepository
from .event_repository import EventRepository
from .scraped_url_repository import ScrapedUrl, ScrapedUrlRepository
from .vote_repository import EXISTENCE_VOTES, VENUE_VOTES, VoteKind, VoteRepository

__all__ = [
    "BaseRepository",
    "EventRepository",
    "ScrapedUrl",
    "ScrapedUrlRepository",
    "VoteKind",
    "VoteRepository",
    "EXISTENCE_VOTES",
    "VENUE_VOTES",
]
