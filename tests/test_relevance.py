"""Tests for the relevance filter."""

import pytest

from salsa_finder.discovery.relevance import is_relevant_content


@pytest.mark.parametrize("text", [
    "Salsa Party jeden Freitag im Club",
    "Tanzveranstaltung mit Bachata und Kizomba",
    "Workshop mit anschließender Party ab 21 Uhr",
    "Milonga am Sonntag",
])
def test_relevant(text):
    assert is_relevant_content(text)


@pytest.mark.parametrize("text", [
    "Salsa Kurs für Anfänger, jetzt Probestunde buchen",
    "Unterricht in Bachata",
    "Unsere Öffnungszeiten und Preise",
    "",
])
def test_not_relevant(text):
    assert not is_relevant_content(text)


def test_party_term_outside_window_does_not_count():
    text = "Salsa Kurs" + " " + "x" * 80 + " Party"
    assert not is_relevant_content(text)


def test_every_course_mention_needs_party_context():
    text = "Workshop und Party am Samstag. " + "y" * 80 + " Außerdem Unterricht dienstags"
    assert not is_relevant_content(text)
