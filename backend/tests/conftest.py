"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across the unit tests.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from dotenv import load_dotenv

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env file from project root BEFORE any fixtures run
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try backend directory
    _backend_env = Path(__file__).parent.parent / ".env"
    if _backend_env.exists():
        load_dotenv(_backend_env)

from orbis.models.learning import ScheduleEntry  # noqa: E402
from orbis.services.learning.schedule_store import InMemoryScheduleStore  # noqa: E402


# ============================================================================
# Environment Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """
    Set up test environment variables before any tests run.

    This ensures tests run with predictable configuration, overriding
    any values from .env files to ensure test isolation.
    """
    original_env = os.environ.copy()

    test_env = {
        "POSTGRES_HOST": os.environ.get("POSTGRES_HOST", "localhost"),
        "POSTGRES_PORT": os.environ.get("POSTGRES_PORT", "5432"),
        "POSTGRES_USER": os.environ.get("POSTGRES_TEST_USER", "testuser"),
        "POSTGRES_PASSWORD": os.environ.get("POSTGRES_TEST_PASSWORD", "testpass"),
        "POSTGRES_DB": os.environ.get("POSTGRES_TEST_DB", "testdb"),
        "DEBUG": "true",
    }
    os.environ.update(test_env)

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Sample Configuration Data
# ============================================================================


@pytest.fixture
def sample_yaml_config() -> dict[str, Any]:
    """
    Provide a sample YAML configuration for testing.

    This matches the structure of config/default.yaml.
    """
    return {
        "app": {
            "name": "Test Orbis",
            "debug": True,
        },
        "database": {
            "pool_size": 3,
            "max_overflow": 5,
            "pool_timeout": 10,
        },
    }


# ============================================================================
# Schedule Fixtures
# ============================================================================


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for deterministic scheduling tests."""
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_entry(now: datetime):
    """
    Factory for ScheduleEntry objects.

    Usage:
        entry = make_entry("two-sum", due_in_days=-2, history=[1, 3])
    """

    def _make(
        item_id: str = "two-sum",
        due_in_days: float = 0,
        history: list[int] = None,
        leech_count: int = 0,
        snoozed_until: datetime = None,
    ) -> ScheduleEntry:
        history = list(history) if history else [3]
        return ScheduleEntry(
            item_id=item_id,
            next_due_at=now + timedelta(days=due_in_days),
            last_rating=history[-1],
            rating_history=history,
            leech_count=leech_count,
            snoozed_until=snoozed_until,
            created_at=now - timedelta(days=30),
            updated_at=now - timedelta(days=1),
        )

    return _make


@pytest.fixture
def memory_store() -> InMemoryScheduleStore:
    """Empty in-memory schedule store."""
    return InMemoryScheduleStore()


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_db_session() -> MagicMock:
    """
    Create a mock database session for unit testing.
    """
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.add = MagicMock()
    mock.execute = AsyncMock()
    mock.commit = AsyncMock()
    mock.rollback = AsyncMock()
    mock.close = AsyncMock()
    return mock
