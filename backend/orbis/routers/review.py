"""
Review API Router

Endpoints for the star-rating spaced repetition schedule.

Endpoints:
- GET /api/review/due - Get today's review items under the daily cap
- POST /api/review/rate - Record a star rating for an item
- POST /api/review/items/{item_id}/snooze - Hide an item for a week
- GET /api/review/items/{item_id} - Get an item's schedule
- GET /api/review/items - List every scheduled item
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from orbis.db.base import get_db
from orbis.middleware.error_handling import NotFoundError, ValidationError
from orbis.models.learning import (
    DailyCap,
    DueItemsResponse,
    RateItemRequest,
    ScheduleEntryResponse,
)
from orbis.services.learning import (
    ScheduleEntryNotFoundError,
    ScheduleStore,
    SpacedRepService,
    SqlScheduleStore,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/review", tags=["review"])


# ===========================================
# Dependency Injection
# ===========================================


async def get_schedule_store(
    db: AsyncSession = Depends(get_db),
) -> ScheduleStore:
    """Get the database-backed schedule store."""
    return SqlScheduleStore(db)


async def get_spaced_rep_service(
    store: ScheduleStore = Depends(get_schedule_store),
) -> SpacedRepService:
    """Get spaced repetition service."""
    return SpacedRepService(store)


# ===========================================
# Review Endpoints
# ===========================================


@router.get("/due", response_model=DueItemsResponse)
async def get_due_items(
    cap_min: Optional[int] = Query(None, ge=0, description="Target minimum per day"),
    cap_max: Optional[int] = Query(None, ge=0, description="Maximum items to return"),
    service: SpacedRepService = Depends(get_spaced_rep_service),
) -> DueItemsResponse:
    """
    Get today's review items.

    Items are ordered oldest-overdue first and truncated to cap_max.
    Snoozed items are excluded until their snooze elapses.
    """
    default_cap = DailyCap.from_settings()
    try:
        cap = DailyCap(
            min=cap_min if cap_min is not None else default_cap.min,
            max=cap_max if cap_max is not None else default_cap.max,
        )
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid daily cap: {e.errors()[0]['msg']}",
            details={"cap_min": cap_min, "cap_max": cap_max},
        )

    items = await service.due_today(cap)
    total_due = await service.count_due()

    return DueItemsResponse(
        items=[service.to_response(entry) for entry in items],
        total_due=total_due,
        cap=cap,
    )


@router.post("/rate", response_model=ScheduleEntryResponse)
async def rate_item(
    request: RateItemRequest,
    service: SpacedRepService = Depends(get_spaced_rep_service),
) -> ScheduleEntryResponse:
    """
    Record a 1-5 star rating.

    The next due date follows the fixed rating table; repeated 1★ ratings
    walk the 1/3/7 day trail and flag the item as a leech.
    """
    entry = await service.rate(request.item_id, int(request.rating))
    return service.to_response(entry)


@router.post("/items/{item_id}/snooze", response_model=ScheduleEntryResponse)
async def snooze_item(
    item_id: str,
    service: SpacedRepService = Depends(get_spaced_rep_service),
) -> ScheduleEntryResponse:
    """Hide an item from the due list for seven days."""
    try:
        entry = await service.snooze_item(item_id)
    except ScheduleEntryNotFoundError as e:
        raise NotFoundError(str(e), details={"item_id": item_id})

    return service.to_response(entry)


@router.get("/items/{item_id}", response_model=ScheduleEntryResponse)
async def get_item(
    item_id: str,
    service: SpacedRepService = Depends(get_spaced_rep_service),
) -> ScheduleEntryResponse:
    """Get the schedule of a single item."""
    entry = await service.get_entry(item_id)

    if entry is None:
        raise HTTPException(status_code=404, detail="Item not scheduled")

    return service.to_response(entry)


@router.get("/items", response_model=list[ScheduleEntryResponse])
async def list_items(
    service: SpacedRepService = Depends(get_spaced_rep_service),
) -> list[ScheduleEntryResponse]:
    """List every scheduled item, soonest due first."""
    entries = await service.list_entries()
    return [service.to_response(entry) for entry in entries]
