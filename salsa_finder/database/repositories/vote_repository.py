"""Vote repositories for existence votes and venue-type votes."""

import datetime as dt
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import asyncpg
import structlog

from salsa_finder.database.repositories.base import BaseRepository
from salsa_finder.database.connections import DatabaseManager
from salsa_finder.models.messages import VoteRecord


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VoteKind:
    """A vote namespace: its own table and its own pair of vote types."""

    name: str
    table: str
    types: Tuple[str, str]


EXISTENCE_VOTES = VoteKind(name="existence", table="votes", types=("exists", "notexists"))
VENUE_VOTES = VoteKind(name="venue", table="venue_votes", types=("indoor", "outdoor"))


class VoteRepository(BaseRepository[VoteRecord]):
    """Per-(event, user) vote rows of one vote kind.

    The mutating methods take the caller's connection so that lookup, write
    and recount run inside one transaction.
    """

    def __init__(self, db_manager: DatabaseManager, kind: VoteKind):
        """Initialize vote repository for a vote kind."""
        super().__init__(db_manager, kind.table)
        self.kind = kind
        self.logger = logger.bind(component=f"{kind.table}_repository")

    def _row_to_model(self, row: asyncpg.Record) -> VoteRecord:
        """Convert database row to VoteRecord model."""
        return VoteRecord(
            id=row['id'],
            event_id=row['event_id'],
            type=row['type'],
            voted_at=row['voted_at'],
            user_id=row['user_id']
        )

    def _model_to_dict(self, model: VoteRecord) -> Dict[str, Any]:
        """Convert VoteRecord model to dictionary for database storage."""
        return {
            'event_id': model.event_id,
            'type': model.type,
            'voted_at': model.voted_at,
            'user_id': model.user_id
        }

    async def find_user_vote(self, conn: asyncpg.Connection, event_id: int,
                             user_id: str) -> Optional[asyncpg.Record]:
        """Fetch and lock the user's current vote on an event."""
        return await conn.fetchrow(
            f"SELECT id, type FROM {self.table_name} WHERE event_id = $1 AND user_id = $2 FOR UPDATE",
            event_id, user_id
        )

    async def insert_vote(self, conn: asyncpg.Connection, event_id: int, vote_type: str,
                          user_id: str, voted_at: dt.datetime) -> None:
        data = self._model_to_dict(
            VoteRecord(id=0, event_id=event_id, type=vote_type, voted_at=voted_at, user_id=user_id)
        )
        columns = list(data.keys())
        placeholders = [f"${i+1}" for i in range(len(columns))]
        await conn.execute(
            f"INSERT INTO {self.table_name} ({', '.join(columns)}) VALUES ({', '.join(placeholders)})",
            *data.values()
        )

    async def delete_vote(self, conn: asyncpg.Connection, vote_id: int) -> None:
        await conn.execute(f"DELETE FROM {self.table_name} WHERE id = $1", vote_id)

    async def update_vote(self, conn: asyncpg.Connection, vote_id: int, vote_type: str,
                          voted_at: dt.datetime) -> None:
        await conn.execute(
            f"UPDATE {self.table_name} SET type = $1, voted_at = $2 WHERE id = $3",
            vote_type, voted_at, vote_id
        )

    async def count_by_type(self, conn: asyncpg.Connection, event_id: int,
                            start: Optional[dt.datetime] = None,
                            end: Optional[dt.datetime] = None) -> Dict[str, int]:
        """
        Count vote rows per type, optionally within [start, end).

        Returns:
            Mapping of every vote type of this kind to its count, zero-filled
        """
        if start is not None and end is not None:
            rows = await conn.fetch(
                f"""
                SELECT type, COUNT(*) AS count FROM {self.table_name}
                WHERE event_id = $1 AND voted_at >= $2 AND voted_at < $3
                GROUP BY type
                """,
                event_id, start, end
            )
        else:
            rows = await conn.fetch(
                f"SELECT type, COUNT(*) AS count FROM {self.table_name} WHERE event_id = $1 GROUP BY type",
                event_id
            )

        counts = {vote_type: 0 for vote_type in self.kind.types}
        for row in rows:
            if row['type'] in counts:
                counts[row['type']] = int(row['count'])
        return counts

    async def list_for_event(self, event_id: int) -> List[VoteRecord]:
        """All votes of this kind for one event."""
        return await self.find_by_criteria("event_id = $1", [event_id], order_by="voted_at ASC")
