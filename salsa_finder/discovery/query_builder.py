"""Search query construction."""

import datetime as dt
from typing import Iterable, Optional

GERMAN_WEEKDAYS = ("Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag")

DEFAULT_STYLE = "Salsa"
TOPIC_TERM = "Veranstaltung"
DOMAIN_SCOPE = "site:.de"


def german_weekday(date: dt.date) -> str:
    """German name of the weekday of ``date``."""
    return GERMAN_WEEKDAYS[date.weekday()]


def build_search_query(
    city: str,
    date: Optional[dt.date] = None,
    weekday: Optional[str] = None,
    styles: Optional[Iterable[str]] = None,
) -> str:
    """Build the search query for one discovery run.

    Only the first preferred style is used to keep the query short.

    Example:
        >>> build_search_query("Berlin", weekday="Dienstag")
        'Salsa Veranstaltung Dienstag Berlin site:.de'
    """
    style = next((s.strip() for s in styles or [] if s and s.strip()), DEFAULT_STYLE)

    if weekday and weekday.strip():
        day = weekday.strip()
    elif date is not None:
        day = german_weekday(date)
    else:
        day = ""

    parts = [style, TOPIC_TERM, day, (city or "").strip(), DOMAIN_SCOPE]
    return " ".join(" ".join(part.split()) for part in parts if part and part.strip())
