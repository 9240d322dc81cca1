"""Turns validated candidates into dated, persistable events."""

import datetime as dt
import logging
import re
from typing import List, Optional

from salsa_finder.discovery.recurrence import base_recurrence, calculate_next_occurrence
from salsa_finder.models.candidate import EventCandidate
from salsa_finder.models.config import SalsaFinderConfig
from salsa_finder.models.event import DEFAULT_ADDRESS, NormalizedEvent
from salsa_finder.models.messages import RunSummary

logger = logging.getLogger(__name__)

KNOWN_CITIES = (
    "Berlin", "Hamburg", "München", "Köln", "Frankfurt am Main", "Frankfurt",
    "Stuttgart", "Düsseldorf", "Leipzig", "Dortmund", "Essen", "Bremen",
    "Dresden", "Hannover", "Nürnberg", "Duisburg", "Bochum", "Wuppertal",
    "Bielefeld", "Bonn", "Münster", "Mannheim", "Karlsruhe", "Augsburg",
    "Wiesbaden", "Mönchengladbach", "Gelsenkirchen", "Aachen", "Braunschweig",
    "Kiel", "Chemnitz", "Halle", "Magdeburg", "Freiburg", "Krefeld", "Mainz",
    "Lübeck", "Erfurt", "Oberhausen", "Rostock", "Kassel", "Hagen", "Potsdam",
    "Saarbrücken", "Hamm", "Ludwigshafen", "Oldenburg", "Osnabrück",
    "Leverkusen", "Heidelberg", "Darmstadt", "Solingen", "Regensburg",
    "Würzburg", "Ulm", "Heilbronn", "Göttingen", "Wolfsburg", "Ingolstadt",
    "Pforzheim", "Offenbach", "Fürth", "Reutlingen", "Bremerhaven", "Koblenz",
    "Trier", "Jena", "Erlangen", "Konstanz",
)

CITY_ALIASES = {
    "munich": "München",
    "muenchen": "München",
    "cologne": "Köln",
    "koeln": "Köln",
    "nuremberg": "Nürnberg",
    "nuernberg": "Nürnberg",
    "duesseldorf": "Düsseldorf",
    "hanover": "Hannover",
    "frankfurt a.m.": "Frankfurt am Main",
    "frankfurt/main": "Frankfurt am Main",
    "muenster": "Münster",
}

_CITY_NAMES = {city.lower(): city for city in KNOWN_CITIES}
_CITY_NAMES.update(CITY_ALIASES)
# Longest names first so "Frankfurt am Main" beats "Frankfurt" at the same position
_CITY_RE = re.compile(
    r"(?<!\w)(" + "|".join(re.escape(name) for name in sorted(_CITY_NAMES, key=len, reverse=True)) + r")(?!\w)",
    re.IGNORECASE,
)


def derive_city(address: Optional[str], fallback: str) -> str:
    """First known city named in the address, else the fallback."""
    if address:
        match = _CITY_RE.search(address)
        if match:
            return _CITY_NAMES[match.group(1).lower()]
    return fallback.strip()


class EventNormalizer:
    """Resolves dates, derives fields and expands multi-date candidates."""

    def __init__(self, config: SalsaFinderConfig):
        self.min_event_year = config.min_event_year

    def resolve_date(self, candidate: EventCandidate, search_date: Optional[dt.date],
                     today: dt.date) -> dt.date:
        if candidate.date is not None:
            return candidate.date

        if candidate.recurring_pattern:
            reference = search_date or today
            next_date = calculate_next_occurrence(candidate.recurring_pattern, reference, today=today)
            if next_date is not None:
                return next_date

        return search_date or today

    def normalize(
        self,
        candidates: List[EventCandidate],
        source_url: str,
        search_city: str,
        search_date: Optional[dt.date] = None,
        today: Optional[dt.date] = None,
        summary: Optional[RunSummary] = None,
    ) -> List[NormalizedEvent]:
        """Normalize the candidates extracted from one page.

        Args:
            candidates: Validated candidates in page order
            source_url: URL the candidates were extracted from
            search_city: City of the discovery run
            search_date: Date of the discovery run, if any
            today: Clock override
            summary: Run summary receiving ``rejected`` steps

        Returns:
            Events in candidate order; copies of one candidate share a
            ``group_key`` and are sorted by date with the earliest primary
        """
        today = today or dt.date.today()
        normalized: List[NormalizedEvent] = []

        for index, candidate in enumerate(candidates):
            if candidate.multiple_dates:
                dates = sorted({d for d in candidate.multiple_dates if d.year >= self.min_event_year})
            else:
                resolved = self.resolve_date(candidate, search_date, today)
                dates = [resolved] if resolved.year >= self.min_event_year else []

            if not dates:
                logger.info(f"Rejected '{candidate.title}' from {source_url}: date before {self.min_event_year}")
                if summary is not None:
                    summary.add_step("rejected", f"{candidate.title}: date before {self.min_event_year}")
                continue

            base = self._base_event(candidate, source_url, search_city, f"{source_url}#{index}")
            for position, date in enumerate(dates):
                normalized.append(base.model_copy(update={"date": date, "is_primary": position == 0}))

        return normalized

    def _base_event(self, candidate: EventCandidate, source_url: str, search_city: str,
                    group_key: str) -> NormalizedEvent:
        return NormalizedEvent(
            title=candidate.title,
            date=candidate.date or dt.date.min,
            time=candidate.time,
            venue_name=candidate.venue_name,
            address=candidate.venue_address or DEFAULT_ADDRESS,
            city=derive_city(candidate.venue_address, search_city),
            source=source_url,
            dance_styles=list(candidate.dance_styles),
            venue_type=candidate.venue_type,
            description=candidate.description,
            workshop_date=candidate.workshop_date,
            workshop_time=candidate.workshop_time,
            party_date=candidate.party_date,
            party_time=candidate.party_time,
            workshops=list(candidate.workshops),
            party=candidate.party,
            recurrence=candidate.recurrence,
            recurring_pattern=base_recurrence(candidate.recurring_pattern),
            recurrence_rule=candidate.recurring_pattern,
            group_key=group_key,
        )
