"""Salsa Finder: discovery, deduplication and crowd votes for Latin dance events."""

__version__ = "1.0.0"
