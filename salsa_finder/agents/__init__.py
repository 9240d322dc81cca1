"""Agent implementations for Salsa Finder."""

from salsa_finder.agents.base import BaseAgent
from salsa_finder.agents.event_extractor import EventExtractorAgent, extract_json_object

__all__ = ["BaseAgent", "EventExtractorAgent", "extract_json_object"]
