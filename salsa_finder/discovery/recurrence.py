"""Recurrence tag handling."""

import datetime as dt
from typing import Optional

from salsa_finder.models.candidate import RECURRENCE_PATTERN_RE, WEEKDAYS


def base_recurrence(pattern: Optional[str]) -> Optional[str]:
    """Strip the weekday qualifier: ``weekly_friday`` -> ``weekly``.

    Unknown tags give None.
    """
    if not pattern:
        return None
    match = RECURRENCE_PATTERN_RE.match(pattern.strip().lower())
    return match.group("base") if match else None


def pattern_weekday(pattern: Optional[str]) -> Optional[int]:
    """Weekday index (Monday = 0) named by a qualified pattern, else None."""
    if not pattern:
        return None
    match = RECURRENCE_PATTERN_RE.match(pattern.strip().lower())
    if not match or not match.group("weekday"):
        return None
    return WEEKDAYS.index(match.group("weekday"))


def calculate_next_occurrence(pattern: str, reference: dt.date,
                              today: Optional[dt.date] = None) -> Optional[dt.date]:
    """Next date on the pattern's weekday strictly after max(today, reference).

    A base already on the target weekday rolls forward a full week.

    Returns:
        The resolved date, or None if the pattern names no weekday
    """
    weekday = pattern_weekday(pattern)
    if weekday is None:
        return None

    base = max(today or dt.date.today(), reference)
    days_ahead = (weekday - base.weekday()) % 7 or 7
    return base + dt.timedelta(days=days_ahead)
