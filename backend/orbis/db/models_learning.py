"""
SQLAlchemy Database Models for the Learning System

Tables:
- schedule_entries: Star-rating spaced repetition schedule, one row per item

ARCHITECTURE NOTE:
    This file contains SQLALCHEMY models for database persistence.
    There is a corresponding Pydantic file: orbis/models/learning.py

    Data flows: Service Layer → Pydantic → SQLAlchemy → Database
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from orbis.db.base import Base


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class ScheduleRecord(Base):
    """
    Schedule state for a practice item.

    Attributes:
        item_id: Practice item identifier (primary key).
        next_due_at: When the item is next due for review.
        last_rating: Most recent 1-5 star rating.
        rating_history: JSON array of trailing ratings, oldest first.
        leech_count: Consecutive leech ratings.
        snoozed_until: Hidden from due selection until this time.
        created_at: First rating time.
        updated_at: Last rating or snooze time.
    """

    __tablename__ = "schedule_entries"

    item_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    # Scheduling
    next_due_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True, default=_utc_now
    )
    last_rating: Mapped[int] = mapped_column(Integer)
    rating_history: Mapped[list] = mapped_column(JSON, default=list)
    leech_count: Mapped[int] = mapped_column(Integer, default=0)
    snoozed_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
