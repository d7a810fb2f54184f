"""
Shared fixtures for the program generator tests.

The model client is replaced by ScriptedModelClient, which hands back
queued structured outputs per output model, so pipeline tests never touch
the network.
"""

import json
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import pytest

from programgen.config import Settings
from programgen.database import SqlProgramRepository
from programgen.exercise_context import compress_exercises
from programgen.llm_client import AgentCallResult
from programgen.plan_schemas import (
    AssignedExercise,
    ExerciseAssignment,
    ProfileAnalysis,
    ProgramSkeleton,
    ValidationResult,
)
from programgen.schemas import CatalogExercise, ClientProfile, IntakeRequest

FIXTURES = Path(__file__).parent / "fixtures"

TOKENS_PER_CALL = 100

# Day 1 is lower body, day 4 upper body
DAY_SLOTS = {
    1: [
        ("primary_compound", "squat", ["quadriceps", "glutes"], 3, "8-10", 120),
        ("secondary_compound", "hinge", ["hamstrings", "glutes"], 3, "10-12", 90),
        ("isolation", "isometric", ["core"], 2, "30s", 60),
    ],
    4: [
        ("primary_compound", "push", ["chest", "triceps"], 3, "8-10", 120),
        ("secondary_compound", "pull", ["lats", "biceps"], 3, "8-10", 90),
        ("isolation", "pull", ["biceps"], 2, "12-15", 60),
    ],
}

# Slot position -> exercise the selector picks in the happy path
DEFAULT_PICKS = {
    (1, 1): ("ex-001", "Back Squat"),
    (1, 2): ("ex-004", "Romanian Deadlift"),
    (1, 3): ("ex-007", "Plank"),
    (4, 1): ("ex-009", "Barbell Bench Press"),
    (4, 2): ("ex-012", "Pull-Up"),
    (4, 3): ("ex-014", "Dumbbell Biceps Curl"),
}


class ScriptedModelClient:
    """
    Stands in for ModelClient.call_structured.

    Each output model has a queue of responses. A response can be a model
    instance, an exception to raise, or a callable taking the user message.
    """

    def __init__(self, responses: Dict[type, list]):
        self.responses = {model: list(items) for model, items in responses.items()}
        self.calls: List[tuple] = []

    async def call_structured(self, system_prompt, user_message, output_model, **kwargs):
        self.calls.append((output_model.__name__, user_message, kwargs))
        queue = self.responses.get(output_model)
        if not queue:
            raise AssertionError(f"No scripted response left for {output_model.__name__}")
        item = queue[0] if len(queue) == 1 else queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item) and not hasattr(item, "model_dump"):
            item = item(user_message)
        return AgentCallResult(content=item, tokens_used=TOKENS_PER_CALL)

    def calls_for(self, model_name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == model_name]


# ============================================================================
# Settings
# ============================================================================

@pytest.fixture
def settings():
    """Settings with no backoff delay and an in-memory database."""
    return Settings(
        ANTHROPIC_API_KEY="test-key",
        RETRY_BASE_DELAY_SECONDS=0,
        DATABASE_URL="sqlite:///:memory:",
        GENERATION_TIMEOUT_SECONDS=5,
    )


# ============================================================================
# Catalog and client
# ============================================================================

@pytest.fixture
def catalog() -> List[CatalogExercise]:
    """Load the exercise catalog fixture (21 active, 1 inactive)."""
    with open(FIXTURES / "exercise_catalog.json") as f:
        data = json.load(f)
    return [CatalogExercise(**item) for item in data]


@pytest.fixture
def compressed_catalog(catalog):
    return compress_exercises(catalog)


@pytest.fixture
def client_equipment() -> List[str]:
    return ["Barbell", "Dumbbells", "bench", "pull up bar", "squat rack"]


@pytest.fixture
def profile(client_equipment) -> ClientProfile:
    return ClientProfile(
        client_id="client-1",
        display_name="Sam Lee",
        goals=["muscle_gain"],
        birth_year=1992,
        experience_level="intermediate",
        training_years=3,
        injuries=[],
        available_equipment=client_equipment,
        preferred_training_days=[1, 4],
    )


@pytest.fixture
def intake() -> IntakeRequest:
    return IntakeRequest(
        client_id="client-1",
        goals=["muscle_gain"],
        duration_weeks=2,
        sessions_per_week=2,
        session_minutes=60,
    )


# ============================================================================
# Stage outputs
# ============================================================================

@pytest.fixture
def analysis() -> ProfileAnalysis:
    return ProfileAnalysis(
        recommended_split="upper_lower",
        recommended_periodization="linear",
        volume_targets=[
            {"muscle_group": "quadriceps", "sets_per_week": 3, "priority": "high"},
            {"muscle_group": "chest", "sets_per_week": 3, "priority": "medium"},
        ],
        exercise_constraints=[],
        session_structure={
            "warm_up_minutes": 8,
            "main_work_minutes": 45,
            "cool_down_minutes": 7,
            "total_exercises": 3,
            "compound_count": 2,
            "isolation_count": 1,
        },
        training_age_category="intermediate",
        notes="Solid base; prioritize progressive overload on compounds.",
    )


@pytest.fixture
def make_skeleton() -> Callable[..., ProgramSkeleton]:
    """Factory for a 2-day-per-week skeleton with slot ids like 'w1d4s2'."""

    def _make(weeks: int = 2, rpe_by_week: Optional[Sequence[float]] = None) -> ProgramSkeleton:
        week_list = []
        for w in range(1, weeks + 1):
            rpe = rpe_by_week[w - 1] if rpe_by_week else 6 + w
            days = []
            for day, slots in DAY_SLOTS.items():
                days.append(
                    {
                        "day_of_week": day,
                        "label": "Lower Body" if day == 1 else "Upper Body",
                        "focus": "legs and core" if day == 1 else "chest, back, arms",
                        "slots": [
                            {
                                "slot_id": f"w{w}d{day}s{i}",
                                "role": role,
                                "movement_pattern": pattern,
                                "target_muscles": muscles,
                                "sets": sets,
                                "reps": reps,
                                "rest_seconds": rest,
                                "rpe_target": rpe,
                            }
                            for i, (role, pattern, muscles, sets, reps, rest) in enumerate(slots, start=1)
                        ],
                    }
                )
            week_list.append(
                {"week_number": w, "phase": "Accumulation", "intensity_modifier": "moderate", "days": days}
            )
        return ProgramSkeleton(
            weeks=week_list,
            split_type="upper_lower",
            periodization="linear",
            total_sessions=weeks * len(DAY_SLOTS),
            notes="Two full sessions per week.",
        )

    return _make


@pytest.fixture
def skeleton(make_skeleton) -> ProgramSkeleton:
    return make_skeleton()


@pytest.fixture
def make_assignment() -> Callable[..., ExerciseAssignment]:
    """Factory assigning DEFAULT_PICKS to every slot, with per-slot overrides."""

    def _make(skeleton: ProgramSkeleton, overrides: Optional[Dict[str, tuple]] = None) -> ExerciseAssignment:
        overrides = overrides or {}
        assignments = []
        for week in skeleton.weeks:
            for day in week.days:
                for position, slot in enumerate(day.slots, start=1):
                    exercise_id, name = overrides.get(slot.slot_id, DEFAULT_PICKS[(day.day_of_week, position)])
                    assignments.append(AssignedExercise(slot_id=slot.slot_id, exercise_id=exercise_id, exercise_name=name))
        return ExerciseAssignment(assignments=assignments)

    return _make


@pytest.fixture
def assignment(skeleton, make_assignment) -> ExerciseAssignment:
    return make_assignment(skeleton)


@pytest.fixture
def passing_review() -> ValidationResult:
    return ValidationResult(passed=True, issues=[], summary="Program is well balanced.")


# ============================================================================
# Repository
# ============================================================================

@pytest.fixture
def repository(catalog, profile) -> SqlProgramRepository:
    """In-memory SQLite repository seeded with the catalog and one client."""
    repo = SqlProgramRepository.from_url("sqlite:///:memory:")
    repo.add_exercises(catalog)
    repo.save_client_profile(profile)
    return repo


@pytest.fixture
def scripted_client():
    """The ScriptedModelClient class, for tests that script their own responses."""
    return ScriptedModelClient
