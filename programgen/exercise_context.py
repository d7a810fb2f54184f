"""
Compact catalog representations for model prompts.

The full catalog record carries descriptions, instructions, media URLs and
timestamps the selector never needs. Compressing drops them, which cuts the
library's prompt footprint by more than half.
"""

import json
from typing import Iterable, List, Union

from programgen.plan_schemas import ExerciseSlot
from programgen.schemas import CatalogExercise, CompressedExercise


def compress_exercise(exercise: CatalogExercise) -> CompressedExercise:
    """Keep only the fields exercise selection needs."""
    return CompressedExercise(
        id=exercise.id,
        name=exercise.name,
        category=list(exercise.category),
        difficulty=exercise.difficulty,
        muscle_group=exercise.muscle_group,
        movement_pattern=exercise.movement_pattern,
        primary_muscles=list(exercise.primary_muscles),
        secondary_muscles=list(exercise.secondary_muscles),
        force_type=exercise.force_type,
        laterality=exercise.laterality,
        equipment_required=list(exercise.equipment_required),
        is_bodyweight=exercise.is_bodyweight,
        is_compound=exercise.is_compound,
    )


def compress_exercises(exercises: Iterable[CatalogExercise]) -> List[CompressedExercise]:
    """
    Compress active catalog records, preserving catalog order.

    Args:
        exercises: Catalog records

    Returns:
        Compressed exercises; inactive records are dropped
    """
    return [compress_exercise(ex) for ex in exercises if ex.is_active]


def format_exercise_library(exercises: List[CompressedExercise]) -> str:
    """Serialize compressed exercises as compact JSON for a prompt."""
    return json.dumps(
        [ex.model_dump(mode="json") for ex in exercises],
        separators=(",", ":"),
    )


def exercise_to_text(exercise: Union[CatalogExercise, CompressedExercise]) -> str:
    """
    Render an exercise as one pipe-separated line.

    Example:
        "Goblet Squat | strength | beginner | squat | legs | primary: quadriceps, glutes
        | secondary: core | compound | dumbbell"
    """
    parts = [
        exercise.name,
        ", ".join(c.value for c in exercise.category),
        exercise.difficulty.value,
        exercise.movement_pattern.value if exercise.movement_pattern else "",
        exercise.muscle_group or "",
        f"primary: {', '.join(exercise.primary_muscles)}",
        f"secondary: {', '.join(exercise.secondary_muscles)}",
        "compound" if exercise.is_compound else "isolation",
        "bodyweight" if exercise.is_bodyweight else "",
        ", ".join(exercise.equipment_required),
    ]
    return " | ".join(p for p in parts if p)


def slot_to_text(slot: ExerciseSlot) -> str:
    """Render a slot as "<role> <pattern> targeting <muscles>"."""
    return (
        f"{slot.role.value} {slot.movement_pattern.value} "
        f"targeting {', '.join(slot.target_muscles)}"
    )
