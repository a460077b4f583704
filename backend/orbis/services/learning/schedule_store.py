"""
Schedule Entry Stores

Persistence collaborators for SpacedRepService. Every store is keyed by
item_id and performs single-item upserts; entries are independent, so no
cross-entry transactions are required.

Implementations:
- InMemoryScheduleStore: process-local dict (tests, demos)
- SqlScheduleStore: async SQLAlchemy session over the schedule_entries table

Usage:
    store = SqlScheduleStore(db_session)
    await store.upsert(entry)
    entry = await store.get("two-sum")
"""

import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orbis.db.models_learning import ScheduleRecord
from orbis.models.learning import ScheduleEntry

logger = logging.getLogger(__name__)


class ScheduleStore(Protocol):
    """Narrow interface the scheduling service needs from storage."""

    async def get(self, item_id: str) -> Optional[ScheduleEntry]: ...

    async def upsert(self, entry: ScheduleEntry) -> None: ...

    async def list_all(self) -> list[ScheduleEntry]: ...


class InMemoryScheduleStore:
    """Dict-backed store. Entries are copied in and out."""

    def __init__(self, entries: Optional[list[ScheduleEntry]] = None):
        self._entries: dict[str, ScheduleEntry] = {}
        for entry in entries or []:
            self._entries[entry.item_id] = entry.model_copy(deep=True)

    async def get(self, item_id: str) -> Optional[ScheduleEntry]:
        entry = self._entries.get(item_id)
        return entry.model_copy(deep=True) if entry else None

    async def upsert(self, entry: ScheduleEntry) -> None:
        self._entries[entry.item_id] = entry.model_copy(deep=True)

    async def list_all(self) -> list[ScheduleEntry]:
        return [entry.model_copy(deep=True) for entry in self._entries.values()]


class SqlScheduleStore:
    """
    Store backed by the schedule_entries table.

    Each upsert commits immediately, matching the single-item write model
    of the scheduling service.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the store.

        Args:
            db: Async database session
        """
        self.db = db

    async def get(self, item_id: str) -> Optional[ScheduleEntry]:
        """Get an entry by item ID."""
        record = await self.db.get(ScheduleRecord, item_id)

        if record is None:
            return None

        return ScheduleEntry.from_db_record(record)

    async def upsert(self, entry: ScheduleEntry) -> None:
        """Insert or update the row for entry.item_id and commit."""
        record = await self.db.get(ScheduleRecord, entry.item_id)

        if record is None:
            record = ScheduleRecord(item_id=entry.item_id)
            self.db.add(record)

        record.next_due_at = entry.next_due_at
        record.last_rating = entry.last_rating
        # New list so the JSON column is flagged dirty
        record.rating_history = list(entry.rating_history)
        record.leech_count = entry.leech_count
        record.snoozed_until = entry.snoozed_until
        record.created_at = entry.created_at
        record.updated_at = entry.updated_at

        await self.db.commit()
        logger.debug(f"Persisted schedule entry {entry.item_id}")

    async def list_all(self) -> list[ScheduleEntry]:
        """List all entries ordered by due date (oldest first)."""
        result = await self.db.execute(
            select(ScheduleRecord).order_by(ScheduleRecord.next_due_at.asc())
        )
        return [ScheduleEntry.from_db_record(r) for r in result.scalars().all()]
