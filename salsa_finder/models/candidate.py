"""Validation and coercion of raw oracle output into typed event candidates.

The extraction oracle answers with loosely structured JSON: fields go missing,
dates come back as "null" or in day-first notation, enumerations are invented.
Nothing in a raw item is trusted; every field is coerced here or dropped, and
an item that cannot produce a title is rejected.
"""

import datetime as dt
import logging
import re
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from salsa_finder.models.event import DANCE_STYLES, PartyFloor, PartyInfo, VenueType, Workshop

logger = logging.getLogger(__name__)

NULL_LITERALS = {"", "null", "undefined", "none", "n/a", "nan"}

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
BASE_RECURRENCES = ("weekly", "biweekly", "monthly")

RECURRENCE_PATTERN_RE = re.compile(
    r"^(?P<base>weekly|biweekly|monthly)(?:_(?P<weekday>" + "|".join(WEEKDAYS) + r"))?$"
)

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
_DAY_FIRST_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{2}|\d{4})$")
_TIME_RE = re.compile(r"(\d{1,2})[:.](\d{2})\s*(am|pm)?", re.IGNORECASE)
_HOUR_ONLY_RE = re.compile(r"(\d{1,2})\s*(uhr|h|am|pm)\b", re.IGNORECASE)

_STYLE_LOOKUP = {style.lower(): style for style in DANCE_STYLES}
_STYLE_LOOKUP.update({
    "chacha": "Cha Cha",
    "cha-cha": "Cha Cha",
    "chachacha": "Cha-Cha-Cha",
    "lindyhop": "Lindy Hop",
    "wcs": "West Coast Swing",
    "disco fox": "Discofox",
    "forro": "Forró",
    "walzer": "Waltz",
    "rueda de casino": "Rueda",
})

OUTDOOR_HINTS = (
    "open air", "draußen", "outdoor", "garten", "terrasse", "bei gutem wetter",
    "innenhof", "park", "strand",
)
INDOOR_HINTS = (
    "indoor", "drinnen", "saal", "club", "bar", "restaurant", "studio", "tanzschule",
)


def is_null_literal(value: Any) -> bool:
    """True for None and the string placeholders the oracle uses for "no value"."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip().lower() in NULL_LITERALS


def parse_date(value: Any) -> Optional[dt.date]:
    """Parse ISO or day-first (DD.MM.YYYY) dates; anything else is None."""
    if is_null_literal(value):
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        match = _ISO_DATE_RE.match(text)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return dt.date(year, month, day)

        match = _DAY_FIRST_RE.match(text)
        if match:
            day, month, year = match.groups()
            year = int(year)
            if year < 100:
                year += 2000
            return dt.date(year, int(month), int(day))
    except ValueError:
        return None

    return None


def parse_time(value: Any) -> Optional[str]:
    """Normalize "20:00", "ab 19.30", "21 Uhr" or "8:30 pm" to HH:MM."""
    if is_null_literal(value) or not isinstance(value, str):
        return None

    hour = minute = None
    suffix = None
    match = _TIME_RE.search(value)
    if match:
        hour, minute, suffix = int(match.group(1)), int(match.group(2)), match.group(3)
    else:
        match = _HOUR_ONLY_RE.search(value)
        if match:
            hour, minute, suffix = int(match.group(1)), 0, match.group(2)

    if hour is None:
        return None

    if suffix and suffix.lower() == "pm" and hour < 12:
        hour += 12
    elif suffix and suffix.lower() == "am" and hour == 12:
        hour = 0

    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def normalize_dance_style(value: Any) -> Optional[str]:
    """Map a style name onto the allowed enumeration."""
    if not isinstance(value, str):
        return None
    return _STYLE_LOOKUP.get(value.strip().lower())


def normalize_recurrence_pattern(value: Any) -> Optional[str]:
    """Lowercase and validate a recurrence tag such as ``weekly_friday``."""
    if is_null_literal(value) or not isinstance(value, str):
        return None
    tag = re.sub(r"[\s\-]+", "_", value.strip().lower())
    if RECURRENCE_PATTERN_RE.match(tag):
        return tag
    return None


def detect_venue_type(description: Optional[str]) -> VenueType:
    """Guess the venue type from free text; outdoor hints win."""
    if not description:
        return VenueType.UNSPECIFIED

    text = description.lower()
    if any(hint in text for hint in OUTDOOR_HINTS):
        return VenueType.OUTDOOR
    if any(re.search(rf"\b{re.escape(hint)}\b", text) for hint in INDOOR_HINTS):
        return VenueType.INDOOR
    return VenueType.UNSPECIFIED


class EventCandidate(BaseModel):
    """A validated event guess produced from one raw oracle item."""

    title: str
    dance_styles: List[str] = Field(default_factory=list)
    date: Optional[dt.date] = None
    time: Optional[str] = None
    venue_name: Optional[str] = None
    venue_address: Optional[str] = None
    venue_type: VenueType = VenueType.UNSPECIFIED
    description: Optional[str] = None
    workshop_date: Optional[dt.date] = None
    workshop_time: Optional[str] = None
    party_date: Optional[dt.date] = None
    party_time: Optional[str] = None
    workshops: List[Workshop] = Field(default_factory=list)
    party: Optional[PartyInfo] = None
    recurrence: Optional[str] = None
    recurring_pattern: Optional[str] = None
    multiple_dates: List[dt.date] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _drop_null_literals(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError("event candidate must be a JSON object")
        return {key: value for key, value in data.items() if not is_null_literal(value)}

    @field_validator("title", mode="before")
    @classmethod
    def _clean_title(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("title is required")
        return " ".join(value.split())[:200]

    @field_validator("venue_name", "venue_address", "description", "recurrence", mode="before")
    @classmethod
    def _clean_text(cls, value: Any) -> Optional[str]:
        if isinstance(value, (int, float)):
            value = str(value)
        if not isinstance(value, str):
            return None
        value = " ".join(value.split())
        return value or None

    @field_validator("dance_styles", mode="before")
    @classmethod
    def _clean_styles(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = re.split(r"[,/]", value)
        if not isinstance(value, list):
            value = []

        styles = []
        for item in value:
            style = normalize_dance_style(item)
            if style and style not in styles:
                styles.append(style)
        return styles or ["Salsa"]

    @field_validator("date", "workshop_date", "party_date", mode="before")
    @classmethod
    def _clean_date(cls, value: Any) -> Optional[dt.date]:
        return parse_date(value)

    @field_validator("time", "workshop_time", "party_time", mode="before")
    @classmethod
    def _clean_time(cls, value: Any) -> Optional[str]:
        return parse_time(value)

    @field_validator("venue_type", mode="before")
    @classmethod
    def _clean_venue_type(cls, value: Any) -> VenueType:
        if isinstance(value, str):
            for venue_type in VenueType:
                if value.strip().lower() == venue_type.value.lower():
                    return venue_type
        return VenueType.UNSPECIFIED

    @field_validator("workshops", mode="before")
    @classmethod
    def _clean_workshops(cls, value: Any) -> List[Workshop]:
        if not isinstance(value, list):
            return []

        workshops = []
        for item in value:
            if not isinstance(item, dict):
                continue
            instructors = item.get("instructors")
            if isinstance(instructors, str):
                instructors = [name.strip() for name in instructors.split(",") if name.strip()]
            elif not isinstance(instructors, list):
                instructors = []
            style, level = item.get("style"), item.get("level")
            try:
                workshops.append(Workshop(
                    style=normalize_dance_style(style) or (style if isinstance(style, str) else None),
                    level=level if isinstance(level, str) else None,
                    start=parse_time(item.get("start")),
                    end=parse_time(item.get("end")),
                    instructors=[str(name) for name in instructors],
                ))
            except ValidationError:
                continue
        return workshops

    @field_validator("party", mode="before")
    @classmethod
    def _clean_party(cls, value: Any) -> Optional[PartyInfo]:
        if not isinstance(value, dict) or not value:
            return None

        raw_floors = value.get("floors")
        if not isinstance(raw_floors, list):
            raw_floors = []

        floors = []
        for floor in raw_floors:
            if isinstance(floor, dict) and not is_null_literal(floor.get("floor")):
                distribution = floor.get("distribution")
                floors.append(PartyFloor(
                    floor=str(floor["floor"]),
                    distribution=distribution if isinstance(distribution, str) else None,
                ))

        party = PartyInfo(start=parse_time(value.get("start")), end=parse_time(value.get("end")), floors=floors)
        if party.start is None and party.end is None and not party.floors:
            return None
        return party

    @field_validator("recurring_pattern", mode="before")
    @classmethod
    def _clean_pattern(cls, value: Any) -> Optional[str]:
        return normalize_recurrence_pattern(value)

    @field_validator("multiple_dates", mode="before")
    @classmethod
    def _clean_multiple_dates(cls, value: Any) -> List[dt.date]:
        if not isinstance(value, list):
            return []
        return [parsed for parsed in (parse_date(item) for item in value) if parsed is not None]

    @model_validator(mode="after")
    def _apply_defaults(self) -> "EventCandidate":
        if not self.dance_styles:
            self.dance_styles = ["Salsa"]
        if self.venue_type == VenueType.UNSPECIFIED:
            self.venue_type = detect_venue_type(self.description)
        return self


def coerce_candidate(raw: Any) -> Optional[EventCandidate]:
    """Validate one raw oracle item; None means the item is rejected."""
    try:
        return EventCandidate.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Rejected malformed event candidate: {e.error_count()} validation error(s)")
        return None
    except Exception as e:
        logger.warning(f"Rejected malformed event candidate: {type(e).__name__}: {e}")
        return None
