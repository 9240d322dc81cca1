"""Event-related data models."""

import datetime as dt
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


DANCE_STYLES = (
    "Salsa", "Bachata", "Kizomba", "Zouk", "Merengue", "Cha Cha", "Mambo",
    "Reggaeton", "Son", "Rueda", "Timba", "Cumbia", "Tango", "Milonga", "Vals",
    "Swing", "Lindy Hop", "West Coast Swing", "East Coast Swing", "Jive",
    "Boogie Woogie", "Blues", "Forró", "Samba", "Bolero", "Discofox", "Hustle",
    "Paso Doble", "Quickstep", "Foxtrot", "Waltz", "Rumba", "Cha-Cha-Cha",
)

DEFAULT_ADDRESS = "Location TBD"


class VenueType(str, Enum):
    """Where the event takes place."""

    INDOOR = "Indoor"
    OUTDOOR = "Outdoor"
    UNSPECIFIED = "Unspecified"


class Workshop(BaseModel):
    """A workshop slot announced alongside a party."""

    style: Optional[str] = None
    level: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    instructors: List[str] = Field(default_factory=list)


class PartyFloor(BaseModel):
    """A dance floor and its music mix, e.g. "60% Salsa, 40% Bachata"."""

    floor: str
    distribution: Optional[str] = None


class PartyInfo(BaseModel):
    """Structure of the party part of an event."""

    start: Optional[str] = None
    end: Optional[str] = None
    floors: List[PartyFloor] = Field(default_factory=list)


class Event(BaseModel):
    """Event model matching the events table schema."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    title: str
    date: dt.date
    time: Optional[str] = None
    venue_name: Optional[str] = None
    address: str = DEFAULT_ADDRESS
    city: Optional[str] = None
    source: str
    dance_styles: List[str] = Field(default_factory=list)
    venue_type: VenueType = VenueType.UNSPECIFIED
    description: Optional[str] = None
    workshop_date: Optional[dt.date] = None
    workshop_time: Optional[str] = None
    party_date: Optional[dt.date] = None
    party_time: Optional[str] = None
    workshops: List[Workshop] = Field(default_factory=list)
    party: Optional[PartyInfo] = None
    recurrence: Optional[str] = None
    recurring_pattern: Optional[str] = Field(None, description="Base recurrence tag: weekly, biweekly or monthly")
    trusted: bool = False
    scraped_at: Optional[dt.datetime] = None
    original_event_id: Optional[int] = None

    @property
    def series_root_id(self) -> Optional[int]:
        """Id of the primary record this event belongs to."""
        return self.original_event_id or self.id


class NormalizedEvent(Event):
    """An event ready for dedup and persistence.

    ``group_key`` ties together the records expanded from one extracted
    candidate; exactly one of them carries ``is_primary``.
    """

    group_key: str
    is_primary: bool = True
    recurrence_rule: Optional[str] = Field(None, description="Weekday-qualified pattern such as weekly_friday")

    def to_event(self) -> Event:
        """Strip the pipeline-only fields."""
        return Event(**self.model_dump(exclude={"group_key", "is_primary", "recurrence_rule"}))
