"""
Unit tests for the Practice and Health API endpoints.

The execution harness and database session are replaced with mocks through
FastAPI dependency overrides; no runtime process is started.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from orbis.db.base import get_db
from orbis.enums.learning import HarnessState
from orbis.main import app
from orbis.models.learning import CodeTestResult, ExecutionResult, HarnessOutcome
from orbis.routers.practice import get_harness

RUN_BODY = {
    "code": "def solution(x):\n    return x\n",
    "tests": [{"input": [1], "expected": 1}],
    "timeout_ms": 1000,
}


@pytest.fixture
def fake_harness() -> MagicMock:
    harness = MagicMock()
    harness.state = HarnessState.IDLE
    harness.runtime_alive = True
    harness.run = AsyncMock(
        return_value=HarnessOutcome.completed(
            ExecutionResult(
                success=True,
                test_results=[
                    CodeTestResult(index=0, passed=True, input=[1], expected=1, actual=1)
                ],
            )
        )
    )
    return harness


@pytest.fixture
def client(fake_harness):
    """Test client with the harness overridden."""
    app.dependency_overrides[get_harness] = lambda: fake_harness
    yield TestClient(app)
    app.dependency_overrides.pop(get_harness, None)


# =============================================================================
# Practice endpoints
# =============================================================================


class TestRunEndpoint:
    """POST /api/practice/run"""

    def test_run_returns_outcome(self, client, fake_harness):
        response = client.post("/api/practice/run", json=RUN_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["kind"] == "completed"
        assert data["result"]["test_results"][0]["passed"] is True

        request = fake_harness.run.await_args[0][0]
        assert request.timeout_ms == 1000
        assert request.tests[0].input == [1]

    def test_busy_is_not_an_http_error(self, client, fake_harness):
        fake_harness.run.return_value = HarnessOutcome.busy()

        response = client.post("/api/practice/run", json=RUN_BODY)

        assert response.status_code == 200
        assert response.json()["kind"] == "busy"
        assert response.json()["message"] == "Code is already running"

    def test_timeout_outcome(self, client, fake_harness):
        fake_harness.run.return_value = HarnessOutcome.timed_out()

        data = client.post("/api/practice/run", json=RUN_BODY).json()

        assert data["kind"] == "timed_out"
        assert data["result"] is None

    def test_default_timeout(self, client, fake_harness):
        client.post("/api/practice/run", json={"code": "def solution(): pass"})

        request = fake_harness.run.await_args[0][0]
        assert request.timeout_ms == 5000
        assert request.tests == []

    @pytest.mark.parametrize(
        "body",
        [
            {"tests": []},
            {**RUN_BODY, "timeout_ms": 0},
            {**RUN_BODY, "language": "python"},
        ],
    )
    def test_invalid_requests(self, client, fake_harness, body):
        response = client.post("/api/practice/run", json=body)

        assert response.status_code == 422
        fake_harness.run.assert_not_called()


class TestControlEndpoints:
    """Stop, reset and status."""

    def test_stop(self, client, fake_harness):
        response = client.post("/api/practice/stop")

        assert response.status_code == 200
        assert response.json() == {"state": "idle", "runtime_alive": True}
        fake_harness.stop.assert_called_once()

    def test_reset(self, client, fake_harness):
        response = client.post("/api/practice/reset")

        assert response.status_code == 200
        fake_harness.initialize.assert_called_once()

    def test_status(self, client, fake_harness):
        fake_harness.state = HarnessState.RUNNING

        response = client.get("/api/practice/status")

        assert response.json() == {"state": "running", "runtime_alive": True}


# =============================================================================
# Health endpoints
# =============================================================================


class TestHealthEndpoints:
    """GET /api/health and /api/health/detailed"""

    @pytest.fixture
    def health_client(self, client, mock_db_session):
        async def override_db():
            yield mock_db_session

        app.dependency_overrides[get_db] = override_db
        yield client
        app.dependency_overrides.pop(get_db, None)

    def test_basic_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_detailed_health(self, health_client):
        data = health_client.get("/api/health/detailed").json()

        assert data["status"] == "healthy"
        assert data["dependencies"]["postgres"]["status"] == "healthy"
        assert data["dependencies"]["sandbox_runtime"]["state"] == "idle"

    def test_detailed_health_degraded(self, health_client, mock_db_session, fake_harness):
        mock_db_session.execute = AsyncMock(side_effect=ConnectionError("db down"))
        fake_harness.runtime_alive = False

        data = health_client.get("/api/health/detailed").json()

        assert data["status"] == "degraded"
        assert data["dependencies"]["postgres"]["error"] == "db down"
        assert data["dependencies"]["sandbox_runtime"]["status"] == "unhealthy"
