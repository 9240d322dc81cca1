"""Tests for oracle output validation and coercion."""

import datetime as dt

import pytest

from salsa_finder.models.candidate import (
    EventCandidate,
    coerce_candidate,
    detect_venue_type,
    normalize_recurrence_pattern,
    parse_date,
    parse_time,
)
from salsa_finder.models.event import VenueType


class TestParsers:
    """Test scalar parsers."""

    @pytest.mark.parametrize("value,expected", [
        ("2025-07-10", dt.date(2025, 7, 10)),
        ("20.08.2025", dt.date(2025, 8, 20)),
        ("2025-07-10T20:00:00", dt.date(2025, 7, 10)),
        ("null", None),
        ("undefined", None),
        ("31.02.2025", None),
        (None, None),
        (12, None),
    ])
    def test_parse_date(self, value, expected):
        assert parse_date(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("20:00", "20:00"),
        ("9:30", "09:30"),
        ("ab 19 Uhr", "19:00"),
        ("8:15 pm", "20:15"),
        ("null", None),
        ("abends", None),
    ])
    def test_parse_time(self, value, expected):
        assert parse_time(value) == expected

    def test_recurrence_pattern_lowercased(self):
        assert normalize_recurrence_pattern("Weekly_Friday") == "weekly_friday"
        assert normalize_recurrence_pattern("biweekly") == "biweekly"

    def test_unknown_recurrence_pattern(self):
        assert normalize_recurrence_pattern("every_full_moon") is None
        assert normalize_recurrence_pattern("null") is None

    def test_detect_venue_type(self):
        assert detect_venue_type("Open Air im Park") == VenueType.OUTDOOR
        assert detect_venue_type("Salsa im Club") == VenueType.INDOOR
        assert detect_venue_type("Salsa") == VenueType.UNSPECIFIED
        assert detect_venue_type(None) == VenueType.UNSPECIFIED


class TestCoerceCandidate:
    """Test coerce_candidate."""

    def test_minimal_item(self):
        candidate = coerce_candidate({"title": "Salsa Night"})

        assert isinstance(candidate, EventCandidate)
        assert candidate.title == "Salsa Night"
        assert candidate.dance_styles == ["Salsa"]
        assert candidate.date is None
        assert candidate.venue_type == VenueType.UNSPECIFIED

    @pytest.mark.parametrize("raw", [
        {},
        {"title": ""},
        {"title": "   "},
        {"title": None},
        {"title": "null"},
        ["not", "an", "object"],
        "Salsa Night",
        None,
    ])
    def test_rejected(self, raw):
        assert coerce_candidate(raw) is None

    def test_full_item(self):
        candidate = coerce_candidate({
            "title": "  Bachata   Sensual Night ",
            "dance_styles": ["bachata", "Polka", "Salsa", "salsa"],
            "date": "12.07.2025",
            "time": "21 Uhr",
            "venue_name": "Club X",
            "venue_address": "Venloer Str. 1031, 50829 Köln",
            "venue_type": "indoor",
            "workshops": [
                {"style": "Bachata", "level": "Beginner", "start": "19:00", "end": "20:00"},
                "garbage",
            ],
            "party": {"start": "21:00", "floors": [{"floor": "1", "distribution": "70% Bachata"}]},
            "recurring_pattern": "WEEKLY_SATURDAY",
            "multiple_dates": ["2025-07-12", "nonsense", "19.07.2025"],
        })

        assert candidate.title == "Bachata Sensual Night"
        assert candidate.dance_styles == ["Bachata", "Salsa"]
        assert candidate.date == dt.date(2025, 7, 12)
        assert candidate.time == "21:00"
        assert candidate.venue_type == VenueType.INDOOR
        assert len(candidate.workshops) == 1
        assert candidate.workshops[0].start == "19:00"
        assert candidate.party.floors[0].distribution == "70% Bachata"
        assert candidate.recurring_pattern == "weekly_saturday"
        assert candidate.multiple_dates == [dt.date(2025, 7, 12), dt.date(2025, 7, 19)]

    def test_null_literals_dropped(self):
        candidate = coerce_candidate({
            "title": "Salsa Night",
            "date": "null",
            "time": "undefined",
            "venue_name": "none",
        })

        assert candidate.date is None
        assert candidate.time is None
        assert candidate.venue_name is None

    def test_wrong_types_coerced(self):
        candidate = coerce_candidate({
            "title": "Salsa Night",
            "dance_styles": "Salsa, Kizomba",
            "workshops": "none planned",
            "party": [],
            "multiple_dates": "2025-07-12",
        })

        assert candidate.dance_styles == ["Salsa", "Kizomba"]
        assert candidate.workshops == []
        assert candidate.party is None
        assert candidate.multiple_dates == []

    def test_unknown_venue_type_inferred_from_description(self):
        candidate = coerce_candidate({
            "title": "Salsa am Strand",
            "venue_type": "beach",
            "description": "Bei gutem Wetter tanzen wir draußen",
        })
        assert candidate.venue_type == VenueType.OUTDOOR

    @pytest.mark.parametrize("party, workshops", [
        ({"start": "21:00", "floors": 5}, [{"style": "Salsa", "instructors": 7}]),
        ({"start": "21:00", "floors": True}, [{"style": "Salsa", "instructors": {"name": "Ana"}}]),
        ({"start": "21:00", "floors": "Salsa floor"}, [3, "Bachata", {"style": "Salsa", "start": 20}]),
        ({"start": "21:00", "floors": [1, {"floor": None}]}, {"style": "Salsa"}),
    ])
    def test_malformed_nested_fields(self, party, workshops):
        candidate = coerce_candidate({"title": "Salsa Night", "party": party, "workshops": workshops})

        assert candidate.title == "Salsa Night"
        assert candidate.party.start == "21:00"
        assert candidate.party.floors == []
        assert all(workshop.instructors == [] for workshop in candidate.workshops)
