"""
Health Check Endpoints

Provides health check endpoints for monitoring and orchestration.

Endpoints:
- GET /api/health - Basic health check
- GET /api/health/detailed - Detailed health with dependency checks
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from orbis.config import settings
from orbis.db.base import get_db
from orbis.routers.practice import get_harness
from orbis.services.learning import ExecutionHarness

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health_check():
    """
    Basic health check.

    Returns a simple status response indicating the API is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
    }


@router.get("/detailed")
async def detailed_health_check(
    db: AsyncSession = Depends(get_db),
    harness: ExecutionHarness = Depends(get_harness),
):
    """
    Detailed health check with dependency status.

    Checks:
    - PostgreSQL database
    - Sandbox runtime process
    """
    health = {"status": "healthy", "service": settings.APP_NAME, "dependencies": {}}

    # Check PostgreSQL
    try:
        await db.execute(text("SELECT 1"))
        health["dependencies"]["postgres"] = {"status": "healthy"}
    except Exception as e:
        health["dependencies"]["postgres"] = {"status": "unhealthy", "error": str(e)}
        health["status"] = "degraded"

    # Check sandbox runtime
    if harness.runtime_alive:
        health["dependencies"]["sandbox_runtime"] = {
            "status": "healthy",
            "state": harness.state.value,
        }
    else:
        health["dependencies"]["sandbox_runtime"] = {
            "status": "unhealthy",
            "error": "Runtime process not running",
        }
        health["status"] = "degraded"

    return health
