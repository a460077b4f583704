"""
Learning System API Models (Pydantic)

Request/response schemas for the practice loop:
- Spaced repetition schedule entries and daily intake caps
- Code execution requests, test results and harness outcomes

ARCHITECTURE NOTE:
    This file contains PYDANTIC models for API validation.
    There is a corresponding SQLAlchemy file: orbis/db/models_learning.py

    Data flows: API Request → Pydantic → Service → Store → Database

API Contract:
    Request models use StrictRequest (extra="forbid") to reject unknown fields.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, model_validator

from orbis.config import settings
from orbis.enums.learning import ConsoleChannel, OutcomeKind, Rating, HarnessState
from orbis.models.base import StrictRequest, StrictResponse

if TYPE_CHECKING:
    from orbis.db.models_learning import ScheduleRecord


# ===========================================
# Spaced Repetition Schedule Models
# ===========================================


class ScheduleEntry(BaseModel):
    """
    Scheduling state of one practice item.

    The rating history is a bounded trailing log (oldest first). next_due_at is
    always derived from the latest rating by the scheduling engine; snoozed_until
    hides the item from due selection until it elapses and is cleared by the
    next rating.
    """

    model_config = ConfigDict(from_attributes=True)

    item_id: str = Field(..., description="Practice item identifier")
    next_due_at: datetime = Field(..., description="When the item is due again")
    last_rating: int = Field(..., ge=1, le=5, description="Most recent rating")
    rating_history: list[int] = Field(
        default_factory=list, description="Trailing ratings, oldest first"
    )
    leech_count: int = Field(0, ge=0, description="Consecutive leech ratings")
    snoozed_until: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_record(cls, record: ScheduleRecord) -> ScheduleEntry:
        """
        Create a ScheduleEntry from a database ScheduleRecord.

        Args:
            record: SQLAlchemy ScheduleRecord loaded from the database

        Returns:
            ScheduleEntry with data from the database record
        """
        return cls(
            item_id=record.item_id,
            next_due_at=record.next_due_at,
            last_rating=record.last_rating,
            rating_history=list(record.rating_history or []),
            leech_count=record.leech_count or 0,
            snoozed_until=record.snoozed_until,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class DailyCap(BaseModel):
    """
    Daily review intake cap.

    Only `max` limits selection. `min` is accepted for callers that display a
    target range; selection never pads up to it.
    """

    min: int = Field(3, ge=0, description="Target minimum (not enforced)")
    max: int = Field(5, ge=0, description="Maximum items surfaced per day")

    @model_validator(mode="after")
    def _check_bounds(self) -> DailyCap:
        if self.min > self.max:
            raise ValueError(f"cap min ({self.min}) exceeds max ({self.max})")
        return self

    @classmethod
    def from_settings(cls) -> DailyCap:
        """Build the configured default cap."""
        return cls(min=settings.REVIEW_DAILY_CAP_MIN, max=settings.REVIEW_DAILY_CAP_MAX)


class RateItemRequest(StrictRequest):
    """Request to record a star rating for a practice item."""

    item_id: str = Field(..., min_length=1, description="Practice item to rate")
    rating: Rating = Field(..., description="Self-assessment rating (1-5)")


class ScheduleEntryResponse(StrictResponse):
    """Schedule entry with display helpers for the review screen."""

    item_id: str
    next_due_at: datetime
    last_rating: int
    rating_history: list[int] = Field(default_factory=list)
    leech_count: int = 0
    snoozed_until: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    is_leech: bool = Field(False, description="Latest rating registered as a leech")
    time_until_due: str = Field(..., description="Human readable due label")


class DueItemsResponse(StrictResponse):
    """Items surfaced for today's review, oldest-overdue first."""

    items: list[ScheduleEntryResponse]
    total_due: int = Field(..., description="Due items before applying the cap")
    cap: DailyCap


# ===========================================
# Code Execution Models
# ===========================================


class CodeTestCase(BaseModel):
    """One test case: positional arguments and the expected return value."""

    input: list[Any] = Field(default_factory=list, description="Positional arguments")
    expected: Any = Field(None, description="Expected return value")
    description: Optional[str] = None


class ExecutionRequest(StrictRequest):
    """
    Request to run a candidate solution against test cases.

    When entry_point is omitted the runtime falls back to the configured
    solution names, then to the last top-level function in the source.
    """

    code: str = Field(..., description="Source text of the candidate solution")
    tests: list[CodeTestCase] = Field(default_factory=list)
    timeout_ms: int = Field(
        default_factory=lambda: settings.SANDBOX_TIMEOUT_MS,
        gt=0,
        description="Wall-clock budget for the whole run",
    )
    entry_point: Optional[str] = Field(
        None, description="Name of the function to call for each test"
    )


class ConsoleEntry(BaseModel):
    """A console call captured from submitted code."""

    channel: ConsoleChannel = ConsoleChannel.LOG
    args: list[str] = Field(default_factory=list)


class CodeTestResult(BaseModel):
    """Result of a single test case."""

    index: int
    passed: bool
    input: list[Any] = Field(default_factory=list)
    expected: Any = None
    actual: Any = None
    execution_time_ms: float = 0.0
    error: Optional[str] = None


class ExecutionResult(BaseModel):
    """
    Aggregate result of one run.

    success is False only for setup failures (syntax error, missing entry
    point); individual test failures are reported in test_results.
    """

    success: bool
    error: Optional[str] = None
    console_output: list[ConsoleEntry] = Field(default_factory=list)
    test_results: list[CodeTestResult] = Field(default_factory=list)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.test_results if r.passed)


class HarnessOutcome(BaseModel):
    """
    Outcome of a harness run request.

    Every failure mode of the harness is represented here rather than raised,
    so callers can render it without crashing the session.
    """

    kind: OutcomeKind
    message: Optional[str] = None
    result: Optional[ExecutionResult] = None

    @classmethod
    def completed(cls, result: ExecutionResult) -> HarnessOutcome:
        return cls(kind=OutcomeKind.COMPLETED, result=result)

    @classmethod
    def failed(cls, message: str) -> HarnessOutcome:
        return cls(kind=OutcomeKind.FAILED, message=message)

    @classmethod
    def timed_out(cls, message: str = "Code execution timed out") -> HarnessOutcome:
        return cls(kind=OutcomeKind.TIMED_OUT, message=message)

    @classmethod
    def stopped(cls, message: str = "Execution stopped") -> HarnessOutcome:
        return cls(kind=OutcomeKind.STOPPED, message=message)

    @classmethod
    def busy(cls, message: str = "Code is already running") -> HarnessOutcome:
        return cls(kind=OutcomeKind.BUSY, message=message)

    def to_result(self) -> ExecutionResult:
        """
        Render the outcome as an ExecutionResult.

        Non-completed outcomes become a failed run whose error carries the
        outcome message.
        """
        if self.result is not None:
            return self.result
        return ExecutionResult(success=False, error=self.message)


class HarnessStatusResponse(StrictResponse):
    """Current harness state."""

    state: HarnessState
    runtime_alive: bool
