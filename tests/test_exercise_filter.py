"""
Tests for the deterministic exercise scorer and pre-filter.

Test scenarios:
1. Difficulty points: exact +10, one step +5, two steps 0
2. A squat slot ranks a matching squat strictly above a hinge
3. Candidate set is bounded to [15, 40] or falls back to the full catalog
4. Same inputs always give the same ordered candidates
"""

import pytest

from programgen.exercise_filter import (
    MAX_CANDIDATES,
    MIN_CANDIDATES,
    collect_slot_groups,
    difficulty_distance,
    jaccard,
    resolve_target_difficulty,
    score_and_filter_exercises,
    score_exercise_for_slot,
    score_exercises,
)
from programgen.plan_schemas import ExerciseSlot, TrainingAge
from programgen.schemas import CompressedExercise


def _exercise(id="ex", **overrides) -> CompressedExercise:
    data = {
        "id": id,
        "name": f"Exercise {id}",
        "difficulty": "beginner",
        "movement_pattern": None,
        "primary_muscles": [],
        "secondary_muscles": [],
        "equipment_required": [],
        "is_bodyweight": False,
        "is_compound": False,
    }
    data.update(overrides)
    return CompressedExercise(**data)


def _slot(**overrides) -> ExerciseSlot:
    data = {
        "slot_id": "w1d1s1",
        "role": "primary_compound",
        "movement_pattern": "squat",
        "target_muscles": ["quadriceps", "glutes"],
        "sets": 3,
        "reps": "8-10",
        "rest_seconds": 120,
    }
    data.update(overrides)
    return ExerciseSlot(**data)


# Helpers

def test_jaccard():
    assert jaccard(["Quadriceps", "glutes"], ["quadriceps", "GLUTES"]) == 1.0
    assert jaccard(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)
    assert jaccard([], []) == 0.0
    assert jaccard(["a"], []) == 0.0


def test_difficulty_distance():
    assert difficulty_distance("beginner", "beginner") == 0
    assert difficulty_distance("intermediate", "advanced") == 1
    assert difficulty_distance("beginner", "advanced") == 2
    assert difficulty_distance("elite", "beginner") == 2


@pytest.mark.parametrize(
    "training_age, expected",
    [
        (TrainingAge.NOVICE, "beginner"),
        (TrainingAge.INTERMEDIATE, "intermediate"),
        (TrainingAge.ADVANCED, "advanced"),
        (TrainingAge.ELITE, "advanced"),
    ],
)
def test_resolve_target_difficulty(training_age, expected):
    assert resolve_target_difficulty(training_age) == expected


# Scoring

@pytest.mark.parametrize(
    "exercise_difficulty, target, points",
    [
        ("intermediate", "intermediate", 10),
        ("intermediate", "advanced", 5),
        ("beginner", "advanced", 0),
    ],
)
def test_difficulty_points(exercise_difficulty, target, points):
    # No pattern, no muscles, no role fit; only equipment (20) and difficulty count
    exercise = _exercise(difficulty=exercise_difficulty)
    assert score_exercise_for_slot(exercise, _slot(), [], target) == 20 + points


def test_squat_beats_hinge_for_squat_slot():
    slot = _slot()
    squat = _exercise(
        "squat",
        movement_pattern="squat",
        primary_muscles=["quadriceps", "glutes"],
        is_bodyweight=True,
        is_compound=True,
    )
    hinge = _exercise(
        "hinge",
        movement_pattern="hinge",
        primary_muscles=["hamstrings", "glutes"],
        is_bodyweight=True,
        is_compound=True,
    )

    squat_score = score_exercise_for_slot(squat, slot, [], "beginner")
    hinge_score = score_exercise_for_slot(hinge, slot, [], "beginner")

    assert squat_score > hinge_score
    assert hinge_score == 0 + 10 + 20 + 10 + 5


def test_perfect_fit_capped_at_100():
    exercise = _exercise(
        movement_pattern="squat",
        primary_muscles=["quadriceps", "glutes"],
        is_bodyweight=True,
        is_compound=True,
    )
    assert score_exercise_for_slot(exercise, _slot(), [], "beginner") == 100


def test_related_pattern_scores_half():
    slot = _slot(movement_pattern="hinge", target_muscles=["hamstrings"], role="accessory")
    pull = _exercise(movement_pattern="pull")
    push = _exercise(movement_pattern="push")

    assert score_exercise_for_slot(pull, slot, [], "advanced") - score_exercise_for_slot(push, slot, [], "advanced") == 20


def test_muscle_overlap_rounds_half_up():
    # Jaccard 1/4 -> 7.5 points -> 8
    exercise = _exercise(primary_muscles=["quadriceps"], secondary_muscles=["calves", "core"])
    slot = _slot(target_muscles=["quadriceps", "glutes"])
    assert score_exercise_for_slot(exercise, slot, [], "advanced") == 8 + 20


def test_equipment_points():
    slot = _slot()
    barbell = _exercise(equipment_required=["Barbell"])
    kettlebell = _exercise(equipment_required=["kettlebell"])
    bodyweight = _exercise(equipment_required=["pull_up_bar"], is_bodyweight=True)

    assert score_exercise_for_slot(barbell, slot, ["barbell"], "advanced") == 20
    assert score_exercise_for_slot(kettlebell, slot, ["barbell"], "advanced") == 0
    assert score_exercise_for_slot(bodyweight, slot, [], "advanced") == 20


def test_similar_machine_earns_no_equipment_points():
    slot = _slot()
    calf_raise = _exercise(equipment_required=["calf_machine"])

    assert score_exercise_for_slot(calf_raise, slot, ["cable machine"], "advanced") == 0
    assert score_exercise_for_slot(calf_raise, slot, ["Calf Machine"], "advanced") == 20


def test_role_bonus_exclusive():
    compound_slot = _slot(role="secondary_compound")
    isolation_slot = _slot(role="isolation")
    compound = _exercise(is_compound=True)
    isolation = _exercise(is_compound=False)

    assert score_exercise_for_slot(compound, compound_slot, [], "advanced") == 25
    assert score_exercise_for_slot(isolation, compound_slot, [], "advanced") == 20
    assert score_exercise_for_slot(isolation, isolation_slot, [], "advanced") == 25
    assert score_exercise_for_slot(compound, isolation_slot, [], "advanced") == 20


def test_scores_within_bounds(compressed_catalog, skeleton, client_equipment, analysis):
    for item in score_exercises(compressed_catalog, skeleton, client_equipment, analysis):
        assert 0 <= item.score <= 100


# Grouping and filtering

def test_slot_groups_deduplicated(skeleton):
    groups = collect_slot_groups(skeleton)

    assert len(list(skeleton.iter_slots())) == 12
    assert len(groups) == 6
    assert groups[0].slot_id == "w1d1s1"


def test_best_group_score_wins(compressed_catalog, skeleton, client_equipment, analysis):
    ranked = score_exercises(compressed_catalog, skeleton, client_equipment, analysis)
    by_id = {item.exercise.id: item.score for item in ranked}

    # Back squat: exact pattern, half muscle overlap (secondaries count), equipment, difficulty, role
    assert by_id["ex-001"] == 40 + 15 + 20 + 10 + 5
    # Bench press scores through the push slot, not the squat slot
    assert by_id["ex-009"] == 40 + 20 + 20 + 10 + 5
    # Leg press needs a machine the client lacks
    assert by_id["ex-016"] == 40 + 30 + 0 + 5 + 5


def test_filter_keeps_small_catalog_whole(compressed_catalog, skeleton, client_equipment, analysis):
    candidates = score_and_filter_exercises(compressed_catalog, skeleton, client_equipment, analysis)

    # 21 active exercises: between the bounds, so every one survives, ranked
    assert len(candidates) == len(compressed_catalog)
    # Bodyweight squat is the first perfect fit in catalog order
    assert candidates[0].id == "ex-003"


def test_safety_valve_returns_full_catalog(compressed_catalog, skeleton, client_equipment, analysis):
    candidates = score_and_filter_exercises(
        compressed_catalog, skeleton, client_equipment, analysis, max_candidates=10
    )
    assert candidates == compressed_catalog


def test_tiny_catalog_returned_unchanged(compressed_catalog, skeleton, client_equipment, analysis):
    tiny = compressed_catalog[:5]
    assert score_and_filter_exercises(tiny, skeleton, client_equipment, analysis) == tiny


def test_large_catalog_capped(compressed_catalog, skeleton, client_equipment, analysis):
    large = [
        ex.model_copy(update={"id": f"{ex.id}-{copy}"})
        for copy in range(3)
        for ex in compressed_catalog
    ]
    candidates = score_and_filter_exercises(large, skeleton, client_equipment, analysis)

    assert len(candidates) == MAX_CANDIDATES
    assert MIN_CANDIDATES <= len(candidates) <= MAX_CANDIDATES


def test_ties_keep_catalog_order(skeleton, analysis):
    twins = [_exercise(f"twin-{i}", movement_pattern="squat", primary_muscles=["quadriceps"]) for i in range(20)]
    candidates = score_and_filter_exercises(twins, skeleton, [], analysis)
    assert [ex.id for ex in candidates] == [f"twin-{i}" for i in range(20)]


def test_filter_is_deterministic(compressed_catalog, skeleton, client_equipment, analysis):
    first = score_and_filter_exercises(compressed_catalog, skeleton, client_equipment, analysis)
    second = score_and_filter_exercises(list(compressed_catalog), skeleton, list(client_equipment), analysis)
    assert [ex.id for ex in first] == [ex.id for ex in second]
