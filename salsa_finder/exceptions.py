"""Exceptions raised by Salsa Finder components."""


class SalsaFinderError(Exception):
    """Base class for application errors."""


class SearchProviderError(SalsaFinderError):
    """Raised when the search-results provider cannot deliver results.

    This is fatal for the discovery run that issued the query.
    """

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class InvalidVoteTypeError(SalsaFinderError, ValueError):
    """Raised when a vote type is not part of the vote kind's enumeration."""

    def __init__(self, vote_type: str, allowed):
        self.vote_type = vote_type
        self.allowed = tuple(allowed)
        super().__init__(f"Invalid vote type {vote_type!r}, expected one of {', '.join(self.allowed)}")
