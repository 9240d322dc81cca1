"""Cheap keyword filter applied before calling the extraction oracle."""

COURSE_TERMS = (
    "probestunde", "unterricht", "kurs", "workshop", "lesson", "class",
    "privatstunde", "einzelstunde", "gruppenstunde",
)

PARTY_TERMS = ("party", "social", "milonga", "practica", "ball", "veranstaltung")

DANCE_TERMS = (
    "social dance", "party", "open floor", "milonga", "salsa", "bachata",
    "kizomba", "tango", "swing", "veranstaltung", "event", "tanzparty",
    "social dancing", "dance party", "tanzveranstaltung",
)

PROXIMITY_WINDOW = 40


def _has_party_context(text: str, start: int, end: int) -> bool:
    window = text[max(0, start - PROXIMITY_WINDOW):end + PROXIMITY_WINDOW]
    return any(term in window for term in PARTY_TERMS)


def is_relevant_content(text: str) -> bool:
    """Decide whether page text may describe a dance party.

    Every occurrence of course vocabulary needs a party term within
    ``PROXIMITY_WINDOW`` characters, otherwise the page is rejected. A page
    passing that check is accepted when it mentions dance or party terms.
    False negatives are acceptable.
    """
    if not text:
        return False

    lowered = text.lower()

    for term in COURSE_TERMS:
        position = lowered.find(term)
        while position != -1:
            if not _has_party_context(lowered, position, position + len(term)):
                return False
            position = lowered.find(term, position + 1)

    return any(term in lowered for term in DANCE_TERMS)
