"""
Practice API Router

Endpoints for running candidate solutions in the execution harness.

Endpoints:
- POST /api/practice/run - Run code against test cases
- POST /api/practice/stop - Stop the run in flight
- POST /api/practice/reset - Replace the runtime process
- GET /api/practice/status - Harness state
"""

import logging

from fastapi import APIRouter, Depends

from orbis.models.learning import (
    ExecutionRequest,
    HarnessOutcome,
    HarnessStatusResponse,
)
from orbis.services.learning import ExecutionHarness, get_execution_harness

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/practice", tags=["practice"])


# ===========================================
# Dependency Injection
# ===========================================


async def get_harness() -> ExecutionHarness:
    """Get the execution harness singleton."""
    return get_execution_harness()


# ===========================================
# Execution Endpoints
# ===========================================


@router.post("/run", response_model=HarnessOutcome)
async def run_code(
    request: ExecutionRequest,
    harness: ExecutionHarness = Depends(get_harness),
) -> HarnessOutcome:
    """
    Run a candidate solution against its test cases.

    Always answers 200; busy, timeout, stop and setup failures are reported
    in the outcome kind and message.
    """
    outcome = await harness.run(request)

    if outcome.result is not None:
        logger.info(
            f"Practice run {outcome.kind.value}: "
            f"{outcome.result.passed_count}/{len(outcome.result.test_results)} passed"
        )
    else:
        logger.info(f"Practice run {outcome.kind.value}: {outcome.message}")

    return outcome


@router.post("/stop", response_model=HarnessStatusResponse)
async def stop_run(
    harness: ExecutionHarness = Depends(get_harness),
) -> HarnessStatusResponse:
    """
    Stop the run in flight, if any.

    Code that is already executing keeps running in the runtime; use
    /reset to reclaim it.
    """
    harness.stop()
    return HarnessStatusResponse(state=harness.state, runtime_alive=harness.runtime_alive)


@router.post("/reset", response_model=HarnessStatusResponse)
async def reset_runtime(
    harness: ExecutionHarness = Depends(get_harness),
) -> HarnessStatusResponse:
    """Kill the runtime process and start a fresh one."""
    harness.initialize()
    return HarnessStatusResponse(state=harness.state, runtime_alive=harness.runtime_alive)


@router.get("/status", response_model=HarnessStatusResponse)
async def get_status(
    harness: ExecutionHarness = Depends(get_harness),
) -> HarnessStatusResponse:
    """Get the harness state."""
    return HarnessStatusResponse(state=harness.state, runtime_alive=harness.runtime_alive)
