"""Crowd-sourced existence and venue-type votes."""

import datetime as dt
from typing import Callable, Dict, List, Optional
import structlog

from salsa_finder.database.connections import DatabaseManager
from salsa_finder.database.repositories.vote_repository import (
    EXISTENCE_VOTES,
    VENUE_VOTES,
    VoteKind,
    VoteRepository,
)
from salsa_finder.exceptions import InvalidVoteTypeError
from salsa_finder.models.messages import ExistenceVoteCounts, VenueVoteCounts, VoteRecord


logger = structlog.get_logger(__name__)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def week_bounds(now: dt.datetime) -> tuple:
    """Return the ISO week containing ``now`` as [Monday 00:00 UTC, next Monday 00:00 UTC)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt.timezone.utc)
    now = now.astimezone(dt.timezone.utc)
    monday = (now - dt.timedelta(days=now.weekday())).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return monday, monday + dt.timedelta(days=7)


class VoteService:
    """Toggle votes and report tallies for both vote kinds."""

    def __init__(self, db_manager: DatabaseManager,
                 now: Optional[Callable[[], dt.datetime]] = None):
        """
        Initialize vote service.

        Args:
            db_manager: Database manager instance
            now: Clock override, returns an aware UTC datetime
        """
        self.db_manager = db_manager
        self._now = now or _utcnow
        self.existence_votes = VoteRepository(db_manager, EXISTENCE_VOTES)
        self.venue_votes = VoteRepository(db_manager, VENUE_VOTES)
        self.logger = logger.bind(component="vote_service")

    async def cast_existence_vote(self, event_id: int, vote_type: str,
                                  user_id: str) -> ExistenceVoteCounts:
        """Cast, retract or switch a user's exists/notexists vote."""
        counts = await self._cast(self.existence_votes, event_id, vote_type, user_id)
        return ExistenceVoteCounts(
            exists=counts["all"]["exists"],
            notexists=counts["all"]["notexists"],
            week_exists=counts["week"]["exists"],
            week_not_exists=counts["week"]["notexists"],
        )

    async def cast_venue_vote(self, event_id: int, vote_type: str,
                              user_id: str) -> VenueVoteCounts:
        """Cast, retract or switch a user's indoor/outdoor vote."""
        counts = await self._cast(self.venue_votes, event_id, vote_type, user_id)
        return VenueVoteCounts(
            indoor=counts["all"]["indoor"],
            outdoor=counts["all"]["outdoor"],
            week_indoor=counts["week"]["indoor"],
            week_outdoor=counts["week"]["outdoor"],
        )

    async def list_votes(self, event_id: int) -> List[VoteRecord]:
        return await self.existence_votes.list_for_event(event_id)

    async def list_venue_votes(self, event_id: int) -> List[VoteRecord]:
        return await self.venue_votes.list_for_event(event_id)

    async def _cast(self, repository: VoteRepository, event_id: int, vote_type: str,
                    user_id: str) -> Dict[str, Dict[str, int]]:
        """
        Apply one vote action and recount inside a single transaction.

        No existing vote inserts one, the same type removes it and a different
        type replaces it. Any failure rolls the transaction back and propagates.

        Returns:
            ``{"all": {...}, "week": {...}}`` with zero-filled per-type counts
        """
        kind: VoteKind = repository.kind
        if vote_type not in kind.types:
            raise InvalidVoteTypeError(vote_type, kind.types)

        now = self._now()
        week_start, week_end = week_bounds(now)

        async with self.db_manager.get_postgres_transaction() as conn:
            existing = await repository.find_user_vote(conn, event_id, user_id)

            if existing is None:
                await repository.insert_vote(conn, event_id, vote_type, user_id, now)
                action = "inserted"
            elif existing['type'] == vote_type:
                await repository.delete_vote(conn, existing['id'])
                action = "retracted"
            else:
                await repository.update_vote(conn, existing['id'], vote_type, now)
                action = "switched"

            all_time = await repository.count_by_type(conn, event_id)
            this_week = await repository.count_by_type(conn, event_id, week_start, week_end)

        self.logger.info("Vote applied", kind=kind.name, event_id=event_id,
                         user_id=user_id, vote_type=vote_type, action=action)
        return {"all": all_time, "week": this_week}
