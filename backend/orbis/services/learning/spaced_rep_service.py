"""
Spaced Repetition Service

Service layer that connects the star-rating scheduling engine with a
schedule store. Handles rating, snoozing and the daily due list.

Usage:
    from orbis.services.learning import SpacedRepService

    service = SpacedRepService(store)

    # Record a rating
    entry = await service.rate("two-sum", 3)

    # Today's review list
    due = await service.due_today(DailyCap(min=3, max=5))
"""

import logging
from datetime import datetime
from typing import Optional

from orbis.config import settings
from orbis.models.learning import DailyCap, ScheduleEntry, ScheduleEntryResponse
from orbis.services.learning.schedule_store import ScheduleStore
from orbis.services.learning.scheduling import (
    apply_rating,
    format_time_until_due,
    is_due,
    select_due,
    snooze,
)

logger = logging.getLogger(__name__)


class ScheduleEntryNotFoundError(LookupError):
    """Raised when an operation needs an entry that was never rated."""

    def __init__(self, item_id: str):
        super().__init__(f"No schedule entry for item {item_id}")
        self.item_id = item_id


class SpacedRepService:
    """
    Caller-facing scheduling API.

    Provides:
    - Rating with immediate persistence
    - Seven-day snooze
    - Daily due selection under an intake cap
    - Human readable due labels
    """

    def __init__(
        self,
        store: ScheduleStore,
        history_limit: Optional[int] = None,
        snooze_days: Optional[int] = None,
    ):
        """
        Initialize the spaced repetition service.

        Args:
            store: Schedule entry store
            history_limit: Ratings kept per item
                (defaults to settings.SCHEDULE_HISTORY_LIMIT)
            snooze_days: Snooze length in days
                (defaults to settings.SCHEDULE_SNOOZE_DAYS)
        """
        self.store = store
        self.history_limit = history_limit or settings.SCHEDULE_HISTORY_LIMIT
        self.snooze_days = snooze_days or settings.SCHEDULE_SNOOZE_DAYS

    async def rate(
        self,
        item_id: str,
        rating: int,
        now: Optional[datetime] = None,
    ) -> ScheduleEntry:
        """
        Record a rating for an item and persist the new schedule.

        Args:
            item_id: Practice item identifier
            rating: Star rating 1-5 (validate before calling)
            now: Reference time (default: current UTC time)

        Returns:
            The updated schedule entry

        Raises:
            InvalidRatingError: If rating is outside 1-5
        """
        existing = await self.store.get(item_id)
        entry = apply_rating(
            existing, item_id, rating, now=now, history_limit=self.history_limit
        )
        await self.store.upsert(entry)

        logger.info(
            f"Rated item {item_id}: {entry.last_rating}★, next due "
            f"{entry.next_due_at.isoformat()} (leech_count={entry.leech_count})"
        )
        return entry

    async def snooze_item(
        self,
        item_id: str,
        now: Optional[datetime] = None,
    ) -> ScheduleEntry:
        """
        Snooze an item and persist it.

        Raises:
            ScheduleEntryNotFoundError: If the item has never been rated
        """
        existing = await self.store.get(item_id)
        if existing is None:
            raise ScheduleEntryNotFoundError(item_id)

        entry = snooze(existing, now=now, days=self.snooze_days)
        await self.store.upsert(entry)

        logger.info(f"Snoozed item {item_id} until {entry.snoozed_until.isoformat()}")
        return entry

    async def due_today(
        self,
        cap: Optional[DailyCap] = None,
        now: Optional[datetime] = None,
    ) -> list[ScheduleEntry]:
        """Get today's review items, oldest-overdue first, capped at cap.max."""
        entries = await self.store.list_all()
        return select_due(entries, cap or DailyCap.from_settings(), now=now)

    async def count_due(self, now: Optional[datetime] = None) -> int:
        """Count all due items, ignoring the daily cap."""
        entries = await self.store.list_all()
        return sum(1 for entry in entries if is_due(entry, now))

    async def get_entry(self, item_id: str) -> Optional[ScheduleEntry]:
        """Get the schedule entry for an item."""
        return await self.store.get(item_id)

    async def list_entries(self) -> list[ScheduleEntry]:
        """List all schedule entries."""
        return await self.store.list_all()

    @staticmethod
    def time_until_due(entry: ScheduleEntry, now: Optional[datetime] = None) -> str:
        """Format the time until an entry is due."""
        return format_time_until_due(entry.next_due_at, now=now)

    async def time_until_due_for(
        self,
        item_id: str,
        now: Optional[datetime] = None,
    ) -> str:
        """Format the time until an item is due, or "Not scheduled"."""
        entry = await self.store.get(item_id)
        if entry is None:
            return "Not scheduled"
        return self.time_until_due(entry, now=now)

    def to_response(
        self,
        entry: ScheduleEntry,
        now: Optional[datetime] = None,
    ) -> ScheduleEntryResponse:
        """Convert a schedule entry to its API response."""
        return ScheduleEntryResponse(
            **entry.model_dump(),
            is_leech=entry.leech_count > 0,
            time_until_due=self.time_until_due(entry, now=now),
        )
