"""Event extractor agent: turns page text into validated event candidates."""

import datetime as dt
import json
import logging
import re
from typing import Any, List, Optional

from openai import AsyncOpenAI

from salsa_finder.agents.base import BaseAgent
from salsa_finder.models.candidate import EventCandidate, coerce_candidate
from salsa_finder.models.config import SalsaFinderConfig
from salsa_finder.models.event import DANCE_STYLES

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

EXTRACTION_PROMPT = """Extract Latin dance event information (salsa, bachata, kizomba) from this German webpage content.
Only extract actual dance parties or socials. Skip pure courses or workshops unless a party follows them.

DATE RULES:
- German dates are day-first: DD.MM.YYYY (first number = day, second = month). 20.08.2025 = 2025-08-20.
- Month names: Januar=01, Februar=02, März=03, April=04, Mai=05, Juni=06, Juli=07, August=08,
  September=09, Oktober=10, November=11, Dezember=12.
- Write every date as YYYY-MM-DD.
- If no date is found: use null for recurring events, otherwise use {fallback_date}.

TIME RULES:
- Only extract times found in the content (e.g. "20:00", "ab 19 Uhr"), written as HH:MM.
- If no time is found use null. Never guess a default time.

RECURRENCE:
- recurring_pattern must be one of: weekly_<day>, biweekly, biweekly_<day>, monthly, monthly_<day>, or null.
  <day> is an English weekday in lowercase (monday ... sunday).
- "jeden Freitag" -> "weekly_friday", "alle zwei Wochen"/"zweiwöchentlich" -> "biweekly",
  "monatlich"/"jeden ersten Samstag" -> "monthly" or "monthly_saturday".
- Put the original wording into "recurrence".

MULTIPLE DATES:
- If the event lists several specific dates, put all of them into multiple_dates.

DANCE STYLES must come from this list: {styles}

VENUE TYPE is one of Indoor, Outdoor, Unspecified.
"Open Air", "draußen", "Garten", "Terrasse", "Innenhof", "Park", "Strand", "bei gutem Wetter" = Outdoor.
Clubs, bars, studios = Indoor. Unclear = Unspecified.

Return ONLY a JSON object with this exact structure, no markdown:
{{
  "events": [
    {{
      "title": "Event Title",
      "dance_styles": ["Salsa", "Bachata"],
      "date": "YYYY-MM-DD" or null,
      "time": "HH:MM" or null,
      "venue_name": "Venue Name" or null,
      "venue_address": "Street, Postcode City" or null,
      "venue_type": "Indoor" or "Outdoor" or "Unspecified",
      "description": "Brief description",
      "workshop_date": "YYYY-MM-DD" or null,
      "workshop_time": "HH:MM" or null,
      "party_date": "YYYY-MM-DD" or null,
      "party_time": "HH:MM" or null,
      "workshops": [{{"style": "Salsa", "level": "Beginner", "start": "HH:MM", "end": "HH:MM", "instructors": []}}],
      "party": {{"start": "HH:MM", "end": "HH:MM" or null, "floors": [{{"floor": "1", "distribution": "60% Salsa, 40% Bachata"}}]}} or null,
      "recurrence": "original recurrence wording" or null,
      "recurring_pattern": "weekly_friday" or null,
      "multiple_dates": ["YYYY-MM-DD"] or []
    }}
  ]
}}
If there are no events return {{"events": []}}.

Search parameters:
- City: {city}
- Date: {fallback_date}
- URL: {url}

Webpage content:
{content}
"""


def extract_json_object(text: str) -> Optional[Any]:
    """Parse the first balanced ``{...}`` object found in free text.

    Code fences are stripped first. Braces inside JSON strings are ignored.

    Returns:
        The decoded object, or None if no parseable object exists
    """
    if not text:
        return None

    text = _FENCE_RE.sub("", text)
    start = text.find("{")

    while start != -1:
        depth = 0
        in_string = False
        escaped = False

        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    try:
                        return json.loads(text[start:index + 1])
                    except json.JSONDecodeError:
                        break

        start = text.find("{", start + 1)

    return None


class EventExtractorAgent(BaseAgent):
    """Agent that asks the extraction oracle for events on a page."""

    def __init__(self, config: SalsaFinderConfig, client: Optional[AsyncOpenAI] = None):
        """Initialize the event extractor agent.

        Args:
            config: The application configuration
            client: Optional preconfigured OpenAI client
        """
        super().__init__(
            name="EventExtractor",
            config=config.extractor_config,
            api_config=config.get_api_config(),
            client=client,
        )

    def build_prompt(self, content: str, url: str, city: str, fallback_date: dt.date) -> str:
        return EXTRACTION_PROMPT.format(
            styles=", ".join(DANCE_STYLES),
            fallback_date=fallback_date.isoformat(),
            city=city,
            url=url,
            content=content,
        )

    async def extract(self, content: str, url: str, city: str,
                      fallback_date: dt.date) -> List[EventCandidate]:
        """Extract validated event candidates from page text.

        Oracle failures and unparseable answers yield an empty list; nothing
        is raised to the caller.

        Args:
            content: Visible page text
            url: Page URL
            city: City searched for
            fallback_date: Date used for non-recurring events without a date

        Returns:
            Candidates that passed validation
        """
        messages = self._create_prompt(self.build_prompt(content, url, city, fallback_date))

        try:
            response = await self._call_llm(messages)
        except Exception as e:
            logger.error(f"Extraction oracle failed for {url}: {e}")
            return []

        data = extract_json_object(self._response_text(response))
        if not isinstance(data, dict) or not isinstance(data.get("events"), list):
            logger.warning(f"No events object in oracle answer for {url}")
            return []

        candidates = []
        for raw in data["events"]:
            candidate = coerce_candidate(raw)
            if candidate is not None:
                candidates.append(candidate)

        logger.info(f"Extracted {len(candidates)} of {len(data['events'])} raw events from {url}")
        return candidates
