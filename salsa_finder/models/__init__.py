"""Data models for Salsa Finder."""
