"""
Learning System Services

Services for the star-rating spaced repetition schedule and the
isolated code execution harness.

Modules:
- scheduling: Pure scheduling engine (ratings, leeches, due selection)
- schedule_store: In-memory and SQL schedule entry stores
- spaced_rep_service: Caller-facing scheduling API
- equality: Structural comparison of test results
- code_sandbox: Runtime that executes submissions in the child process
- execution_harness: Runtime process lifecycle and run/stop/busy protocol

Usage:
    from orbis.services.learning import (
        SpacedRepService,
        InMemoryScheduleStore,
        get_execution_harness,
    )
"""

from orbis.services.learning.scheduling import (
    InvalidRatingError,
    SchedulingResult,
    apply_rating,
    compute_next_due,
    format_time_until_due,
    is_due,
    select_due,
    snooze,
)
from orbis.services.learning.schedule_store import (
    InMemoryScheduleStore,
    ScheduleStore,
    SqlScheduleStore,
)
from orbis.services.learning.spaced_rep_service import (
    ScheduleEntryNotFoundError,
    SpacedRepService,
)
from orbis.services.learning.equality import values_equal
from orbis.services.learning.code_sandbox import SandboxRuntime
from orbis.services.learning.execution_harness import (
    ExecutionHarness,
    get_execution_harness,
)

__all__ = [
    # Scheduling engine
    "InvalidRatingError",
    "SchedulingResult",
    "apply_rating",
    "compute_next_due",
    "format_time_until_due",
    "is_due",
    "select_due",
    "snooze",
    # Stores
    "ScheduleStore",
    "InMemoryScheduleStore",
    "SqlScheduleStore",
    # Services
    "SpacedRepService",
    "ScheduleEntryNotFoundError",
    # Execution
    "values_equal",
    "SandboxRuntime",
    "ExecutionHarness",
    "get_execution_harness",
]
