"""
Star-Rating Spaced Repetition Scheduling Engine

Pure functions that turn a 1-5 star rating into the next review date,
flag chronic failures ("leeches") and pick which due items to surface
under a daily intake cap. Nothing here performs I/O; persistence belongs
to the caller (see SpacedRepService).

Rating table (offsets from the rating time):
    1★ Bombed       → 1d, 3d, 7d trail (position = trailing 1★ streak)
    2★ Meh          → 1.5d
    3★ Slow         → 4d
    4★ Comfortable  → 14d
    5★ Confident    → 30d

Leech detection and trail position are evaluated against the *prior*
history, i.e. without the rating being submitted. A first-ever 1★ is
therefore never a leech.

Usage:
    from orbis.services.learning.scheduling import apply_rating, select_due

    entry = apply_rating(None, "two-sum", 1)
    due = select_due(entries, DailyCap(min=3, max=5))
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from orbis.config import settings
from orbis.enums.learning import Rating
from orbis.models.learning import DailyCap, ScheduleEntry

logger = logging.getLogger(__name__)

# Fixed offsets for ratings 2-5, in days
RATING_OFFSET_DAYS: dict[int, float] = {
    Rating.MEH.value: 1.5,
    Rating.SLOW.value: 4,
    Rating.COMFORTABLE.value: 14,
    Rating.CONFIDENT.value: 30,
}

# 1★ re-test trail, indexed by the number of trailing 1★ ratings (capped)
LEECH_TRAIL_DAYS: tuple[float, ...] = (1, 3, 7)

# How many prior ratings are inspected for leech detection
LEECH_WINDOW = 2


class InvalidRatingError(ValueError):
    """Raised when a rating is outside 1-5. Callers must validate first."""

    def __init__(self, rating):
        super().__init__(f"Invalid rating: {rating}. Must be 1-5.")
        self.rating = rating


@dataclass
class SchedulingResult:
    """Outcome of scheduling one rating event."""

    next_due_at: datetime
    is_leech: bool
    should_show_mini_lesson: bool
    days_until_due: float


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _trailing_ones(history: Sequence[int]) -> int:
    """Count consecutive 1★ ratings at the end of history."""
    count = 0
    for rating in reversed(history):
        if rating != Rating.BOMBED:
            break
        count += 1
    return count


def compute_next_due(
    rating: int,
    prior_history: Sequence[int] = (),
    now: Optional[datetime] = None,
) -> SchedulingResult:
    """
    Calculate the next due date for a rating.

    Args:
        rating: Star rating 1-5 for the attempt being recorded
        prior_history: Ratings before this one, oldest first
        now: Reference time (default: current UTC time)

    Returns:
        SchedulingResult with the due date and leech flags

    Raises:
        InvalidRatingError: If rating is not an integer in 1-5
    """
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidRatingError(rating)

    now = now or _utc_now()
    is_leech = False

    if rating == Rating.BOMBED:
        # Either of the last two prior attempts also bombed
        is_leech = Rating.BOMBED in list(prior_history)[-LEECH_WINDOW:]
        position = min(_trailing_ones(prior_history), len(LEECH_TRAIL_DAYS) - 1)
        days_until_due = LEECH_TRAIL_DAYS[position]
    else:
        days_until_due = RATING_OFFSET_DAYS[int(rating)]

    return SchedulingResult(
        next_due_at=now + timedelta(days=days_until_due),
        is_leech=is_leech,
        should_show_mini_lesson=is_leech,
        days_until_due=days_until_due,
    )


def apply_rating(
    entry: Optional[ScheduleEntry],
    item_id: str,
    rating: int,
    now: Optional[datetime] = None,
    history_limit: Optional[int] = None,
) -> ScheduleEntry:
    """
    Record a rating and return the updated schedule entry.

    The rating is appended to the bounded history, the next due date is
    computed from the history without it, any snooze is cleared and the
    leech counter is bumped or reset.

    Args:
        entry: Existing entry, or None for an item rated for the first time
        item_id: Practice item identifier
        rating: Star rating 1-5
        now: Reference time (default: current UTC time)
        history_limit: Ratings kept (default: settings.SCHEDULE_HISTORY_LIMIT)

    Returns:
        New ScheduleEntry; the input entry is not modified

    Raises:
        InvalidRatingError: If rating is not an integer in 1-5
    """
    now = now or _utc_now()
    limit = history_limit or settings.SCHEDULE_HISTORY_LIMIT

    prior = list(entry.rating_history) if entry else []
    result = compute_next_due(rating, prior, now=now)
    history = (prior + [int(rating)])[-limit:]

    prior_leech_count = entry.leech_count if entry else 0

    updated = ScheduleEntry(
        item_id=item_id,
        next_due_at=result.next_due_at,
        last_rating=int(rating),
        rating_history=history,
        leech_count=prior_leech_count + 1 if result.is_leech else 0,
        snoozed_until=None,
        created_at=entry.created_at if entry else now,
        updated_at=now,
    )

    logger.debug(
        f"Rated {item_id}: {int(rating)}★ -> due in {result.days_until_due}d "
        f"(leech={result.is_leech}, leech_count={updated.leech_count})"
    )
    return updated


def snooze(
    entry: ScheduleEntry,
    now: Optional[datetime] = None,
    days: Optional[int] = None,
) -> ScheduleEntry:
    """Hide an entry from due selection for SCHEDULE_SNOOZE_DAYS (7 by default)."""
    now = now or _utc_now()
    days = days or settings.SCHEDULE_SNOOZE_DAYS
    return entry.model_copy(
        update={"snoozed_until": now + timedelta(days=days), "updated_at": now}
    )


def is_due(entry: ScheduleEntry, now: Optional[datetime] = None) -> bool:
    """Check whether an entry is due and not snoozed."""
    now = now or _utc_now()

    if entry.snoozed_until is not None and now < entry.snoozed_until:
        return False

    return now >= entry.next_due_at


def select_due(
    entries: Iterable[ScheduleEntry],
    cap: Optional[DailyCap] = None,
    now: Optional[datetime] = None,
) -> list[ScheduleEntry]:
    """
    Pick today's review items.

    Due entries are ordered oldest-overdue first and truncated to cap.max.
    cap.min does not pad the selection.

    Args:
        entries: Candidate schedule entries
        cap: Daily intake cap (default: configured cap)
        now: Reference time (default: current UTC time)

    Returns:
        At most cap.max due entries sorted by next_due_at ascending
    """
    cap = cap or DailyCap.from_settings()
    now = now or _utc_now()

    due = sorted(
        (entry for entry in entries if is_due(entry, now)),
        key=lambda entry: entry.next_due_at,
    )
    return due[: cap.max]


def format_time_until_due(next_due_at: datetime, now: Optional[datetime] = None) -> str:
    """
    Format the time until an item is due.

    Returns "Due now", "Due tomorrow", "Due in Nd" below 30 days and
    "Due in Nw" from 30 days on. Partial days round up.
    """
    now = now or _utc_now()
    diff_days = (next_due_at - now).total_seconds() / 86400
    days = math.ceil(diff_days)

    if days <= 0:
        return "Due now"
    if days == 1:
        return "Due tomorrow"
    if days < 30:
        return f"Due in {days}d"
    return f"Due in {round(days / 7)}w"
