"""
Tests for Pydantic schema validation.

Ensures that schemas properly validate data and enforce constraints.
"""

import pytest
from pydantic import ValidationError

from programgen.plan_schemas import (
    ExerciseAssignment,
    ProgramSkeleton,
    SessionPlan,
    TokenUsage,
    ValidationResult,
)
from programgen.schemas import (
    CatalogExercise,
    ClientProfile,
    ExperienceLevel,
    IntakeRequest,
    SplitType,
)


# Intake Request Tests

def test_intake_minimal():
    """Only client, goals, duration and frequency are required."""
    intake = IntakeRequest(client_id="c1", goals=["endurance"], duration_weeks=8, sessions_per_week=3)

    assert intake.split_type is None
    assert intake.equipment_override is None
    assert intake.effective_session_minutes == 60


def test_intake_parses_overrides():
    intake = IntakeRequest(
        client_id="c1",
        goals=["muscle_gain"],
        duration_weeks=8,
        sessions_per_week=4,
        session_minutes=45,
        split_type="upper_lower",
    )

    assert intake.split_type == SplitType.UPPER_LOWER
    assert intake.effective_session_minutes == 45


@pytest.mark.parametrize(
    "field, value",
    [
        ("duration_weeks", 0),
        ("duration_weeks", 53),
        ("sessions_per_week", 0),
        ("sessions_per_week", 8),
        ("session_minutes", 10),
        ("split_type", "bro_split"),
    ],
)
def test_intake_rejects_out_of_range(field, value):
    data = {"client_id": "c1", "goals": ["muscle_gain"], "duration_weeks": 8, "sessions_per_week": 3}
    data[field] = value

    with pytest.raises(ValidationError):
        IntakeRequest(**data)


def test_intake_requires_goals():
    with pytest.raises(ValidationError):
        IntakeRequest(client_id="c1", goals=[], duration_weeks=8, sessions_per_week=3)


def test_intake_rejects_blank_goal():
    with pytest.raises(ValidationError, match="empty"):
        IntakeRequest(client_id="c1", goals=["muscle_gain", "  "], duration_weeks=8, sessions_per_week=3)


def test_intake_is_immutable(intake):
    with pytest.raises(ValidationError):
        intake.duration_weeks = 12


# Client Profile Tests

def test_profile_all_optional():
    profile = ClientProfile(client_id="c1")

    assert profile.experience_level is None
    assert profile.available_equipment == []
    assert profile.age() is None


def test_profile_age_and_day_names(profile):
    assert profile.experience_level == ExperienceLevel.INTERMEDIATE
    assert profile.age(current_year=2025) == 33
    assert profile.preferred_day_names() == ["Mon", "Thu"]


def test_profile_rejects_invalid_day():
    with pytest.raises(ValidationError):
        ClientProfile(client_id="c1", preferred_training_days=[0, 3])


# Catalog Tests

def test_catalog_fixture_loads(catalog):
    assert len(catalog) == 22
    assert sum(1 for ex in catalog if ex.is_active) == 21


def test_catalog_rejects_unknown_difficulty():
    with pytest.raises(ValidationError):
        CatalogExercise(id="x", name="Mystery Lift", difficulty="impossible")


# Skeleton Tests

def test_skeleton_slot_index(skeleton):
    index = skeleton.slot_index()

    assert len(index) == 12
    week, day, order, slot = index["w2d4s3"]
    assert (week, day, order) == (2, 4, 2)
    assert slot.target_muscles == ["biceps"]


def test_skeleton_rejects_duplicate_slot_ids(skeleton):
    data = skeleton.model_dump()
    data["weeks"][1]["days"][0]["slots"][0]["slot_id"] = "w1d1s1"

    with pytest.raises(ValidationError, match="Duplicate slot_id"):
        ProgramSkeleton(**data)


def test_skeleton_rejects_bad_rpe(skeleton):
    data = skeleton.model_dump()
    data["weeks"][0]["days"][0]["slots"][0]["rpe_target"] = 11

    with pytest.raises(ValidationError):
        ProgramSkeleton(**data)


# Assignment Tests

def test_assignment_requires_entries():
    with pytest.raises(ValidationError):
        ExerciseAssignment(assignments=[])


def test_session_plan_to_assignments(skeleton):
    slot = skeleton.weeks[0].days[0].slots[0]
    plan = SessionPlan(
        label="Lower Body",
        focus="legs",
        slots=[{**slot.model_dump(), "exercise_id": "ex-001", "exercise_name": "Back Squat", "notes": "brace"}],
    )

    assignments = plan.to_assignments()

    assert len(assignments) == 1
    assert assignments[0].slot_id == "w1d1s1"
    assert assignments[0].exercise_id == "ex-001"
    assert assignments[0].notes == "brace"


# Validation / Token Tests

def test_validation_result_uses_pass_alias():
    result = ValidationResult.model_validate(
        {
            "pass": False,
            "issues": [
                {"type": "error", "category": "duplicate_exercise", "message": "dup"},
                {"type": "warning", "category": "volume_issue", "message": "low"},
            ],
        }
    )

    assert result.passed is False
    assert result.has_errors is True
    assert len(result.errors) == 1
    assert len(result.warnings) == 1
    assert result.model_dump(by_alias=True)["pass"] is False


def test_validation_issue_type_restricted():
    with pytest.raises(ValidationError):
        ValidationResult.model_validate(
            {"pass": True, "issues": [{"type": "info", "category": "x", "message": "y"}]}
        )


def test_token_usage_total():
    usage = TokenUsage(agent1=10, agent2=20, agent3=30, agent4=40)

    assert usage.total == 100
    assert usage.model_dump()["total"] == 100
