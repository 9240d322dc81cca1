"""Duplicate suppression, insertion and series linkage."""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional
import structlog

from salsa_finder.database.repositories.event_repository import EventRepository
from salsa_finder.models.event import NormalizedEvent
from salsa_finder.models.messages import RunSummary


logger = structlog.get_logger(__name__)


@dataclass
class _Outcome:
    event: NormalizedEvent
    inserted_id: Optional[int] = None
    existing_root_id: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.inserted_id is not None or self.existing_root_id is not None

    @property
    def series_id(self) -> Optional[int]:
        return self.inserted_id if self.inserted_id is not None else self.existing_root_id


class EventPersister:
    """Writes normalized events and links multi-date series.

    Insertion runs first for every event of the run; afterwards each
    multi-date group is linked to its primary with one update. A failure on
    one event is recorded and does not stop the others.
    """

    def __init__(self, event_repository: EventRepository):
        self.event_repository = event_repository
        self.logger = logger.bind(component="event_persister")

    async def persist(self, events: List[NormalizedEvent], summary: RunSummary) -> RunSummary:
        groups: Dict[str, List[_Outcome]] = OrderedDict()

        for event in events:
            outcome = await self._store(event, summary)
            groups.setdefault(event.group_key, []).append(outcome)

        for group_key, outcomes in groups.items():
            await self._link_group(group_key, outcomes, summary)

        self.logger.info("Persisted discovery results", city=summary.city,
                         inserted=summary.inserted, skipped=summary.skipped, errored=summary.errored)
        return summary

    async def _store(self, event: NormalizedEvent, summary: RunSummary) -> _Outcome:
        outcome = _Outcome(event=event)
        try:
            existing = await self.event_repository.find_duplicate(event.source, event.date, event.title)
            if existing is not None:
                outcome.existing_root_id = existing.series_root_id
                summary.skipped += 1
                summary.add_step("skip_duplicate", f"{event.title} ({event.date.isoformat()})")
                return outcome

            created = await self.event_repository.create(event.to_event())
            outcome.inserted_id = created.id
            summary.inserted += 1
            summary.add_step("db_inserted", f"{event.title} ({event.date.isoformat()})")

        except Exception as e:
            summary.errored += 1
            summary.add_step("db_insert_error", f"{event.title}: {e}")
            self.logger.error("Failed to store event", title=event.title,
                              date=event.date.isoformat(), source=event.source, error=str(e))
        return outcome

    async def _link_group(self, group_key: str, outcomes: List[_Outcome], summary: RunSummary) -> None:
        if len(outcomes) < 2:
            return

        primary = next((o for o in outcomes if o.event.is_primary and o.succeeded), None)
        if primary is None:
            primary = next((o for o in outcomes if o.succeeded), None)
        if primary is None:
            return

        primary_id = primary.series_id
        sibling_ids = [
            o.inserted_id for o in outcomes
            if o is not primary and o.inserted_id is not None and o.inserted_id != primary_id
        ]
        if not sibling_ids:
            return

        try:
            await self.event_repository.link_to_primary(sibling_ids, primary_id)
        except Exception as e:
            summary.errored += 1
            summary.add_step("link_error", f"{primary.event.title}: {e}")
            self.logger.error("Failed to link series", group_key=group_key,
                              primary_id=primary_id, sibling_ids=sibling_ids, error=str(e))
