"""Database package for Salsa Finder."""

from .connections import DatabaseManager
from .schema import initialize_schema
from .repositories import EventRepository, ScrapedUrlRepository, VoteRepository

__all__ = [
    "DatabaseManager",
    "initialize_schema",
    "EventRepository",
    "ScrapedUrlRepository",
    "VoteRepository",
]
