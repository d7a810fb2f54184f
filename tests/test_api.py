"""
Tests for the FastAPI application.

The orchestrator dependency is overridden, so no model or database is needed.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from programgen.api.main import app
from programgen.api.routes.programs import get_orchestrator
from programgen.exceptions import (
    GenerationTimeoutError,
    PersistenceError,
    PipelineStageError,
)
from programgen.plan_schemas import OrchestrationResult, TokenUsage, ValidationIssue, ValidationResult

REQUEST_BODY = {
    "intake": {
        "client_id": "client-1",
        "goals": ["muscle_gain"],
        "duration_weeks": 4,
        "sessions_per_week": 3,
    },
    "requested_by": "coach-1",
}


@pytest.fixture
def orchestrator():
    fake = AsyncMock()
    app.dependency_overrides[get_orchestrator] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def client(orchestrator):
    # Lifespan is not entered, so no real client or database is built
    return TestClient(app)


def _result(validation: ValidationResult, retries: int = 0) -> OrchestrationResult:
    return OrchestrationResult(
        program_id="prog-123",
        validation=validation,
        token_usage=TokenUsage(agent1=100, agent2=200, agent3=300, agent4=150),
        duration_ms=4200,
        retries=retries,
    )


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "program-generator-api"}


def test_root(client):
    assert client.get("/").json()["health"] == "/health"


def test_generate_success(client, orchestrator):
    orchestrator.generate.return_value = _result(ValidationResult(passed=True, summary="ok"))

    response = client.post("/api/programs/generate", json=REQUEST_BODY)

    assert response.status_code == 200
    body = response.json()
    assert body["program_id"] == "prog-123"
    assert body["passed"] is True
    assert body["needs_review"] is False
    assert body["validation"]["pass"] is True
    assert body["token_usage"]["total"] == 750
    assert body["retries"] == 0

    intake, requested_by = orchestrator.generate.await_args.args
    assert intake.client_id == "client-1"
    assert intake.goals == ["muscle_gain"]
    assert requested_by == "coach-1"


def test_generate_saved_with_blocking_issues(client, orchestrator):
    validation = ValidationResult(
        passed=False,
        issues=[ValidationIssue(type="error", category="duplicate_exercise", message="Squat twice on day 1")],
    )
    orchestrator.generate.return_value = _result(validation, retries=1)

    body = client.post("/api/programs/generate", json=REQUEST_BODY).json()

    assert body["passed"] is False
    assert body["needs_review"] is True
    assert body["retries"] == 1
    assert body["validation"]["issues"][0]["category"] == "duplicate_exercise"


def test_invalid_request_rejected(client, orchestrator):
    body = {"intake": {**REQUEST_BODY["intake"], "duration_weeks": 0}, "requested_by": "coach-1"}

    response = client.post("/api/programs/generate", json=body)

    assert response.status_code == 422
    orchestrator.generate.assert_not_awaited()


def test_missing_requested_by_rejected(client):
    response = client.post("/api/programs/generate", json={"intake": REQUEST_BODY["intake"]})

    assert response.status_code == 422


def test_stage_failure_maps_to_502(client, orchestrator):
    orchestrator.generate.side_effect = PipelineStageError("select", "Model returned no tool call")

    response = client.post("/api/programs/generate", json=REQUEST_BODY)

    assert response.status_code == 502
    assert response.json() == {
        "error": "PipelineStageError",
        "message": "Model returned no tool call",
        "stage": "select",
    }


def test_timeout_maps_to_504(client, orchestrator):
    orchestrator.generate.side_effect = GenerationTimeoutError(120, stage="architect")

    response = client.post("/api/programs/generate", json=REQUEST_BODY)

    assert response.status_code == 504
    body = response.json()
    assert body["error"] == "GenerationTimeoutError"
    assert body["stage"] == "architect"


def test_persistence_failure_maps_to_500(client, orchestrator):
    orchestrator.generate.side_effect = PersistenceError("Failed to save program")

    response = client.post("/api/programs/generate", json=REQUEST_BODY)

    assert response.status_code == 500
    assert response.json()["stage"] == "persist"
