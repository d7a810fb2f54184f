"""
Deterministic pre-filter that narrows the exercise catalog before selection.

Every distinct slot requirement in the skeleton is scored against every
catalog exercise on a 0-100 scale:

    movement pattern   40 exact, 20 related
    muscle overlap     up to 30 (Jaccard of exercise vs. target muscles)
    equipment          20 if the client can perform it
    difficulty         10 exact, 5 one level apart
    role fit           5 compound-for-compound or isolation-for-isolation

The components can add up to 105; the total is capped at 100.
An exercise keeps its best score across all slot groups. The top 40 go to
the selector; if that leaves fewer than 15, the whole catalog goes instead.

No randomness and no I/O: the same inputs always give the same ordered
candidate set.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from programgen.equipment import normalize_equipment, normalize_equipment_set
from programgen.plan_schemas import ExerciseSlot, ProfileAnalysis, ProgramSkeleton, SlotRole, TrainingAge
from programgen.schemas import CompressedExercise, ExerciseDifficulty, MovementPattern

MIN_CANDIDATES = 15
MAX_CANDIDATES = 40

PATTERN_EXACT_POINTS = 40
PATTERN_RELATED_POINTS = 20
MUSCLE_OVERLAP_POINTS = 30
EQUIPMENT_POINTS = 20
DIFFICULTY_EXACT_POINTS = 10
DIFFICULTY_ADJACENT_POINTS = 5
ROLE_FIT_POINTS = 5
MAX_SCORE = 100

# Slot pattern -> exercise patterns that still train it reasonably well
RELATED_PATTERNS: Dict[MovementPattern, Tuple[MovementPattern, ...]] = {
    MovementPattern.PUSH: (MovementPattern.ISOMETRIC,),
    MovementPattern.PULL: (MovementPattern.ISOMETRIC,),
    MovementPattern.SQUAT: (MovementPattern.LUNGE, MovementPattern.ISOMETRIC),
    MovementPattern.HINGE: (MovementPattern.PULL, MovementPattern.ISOMETRIC),
    MovementPattern.LUNGE: (MovementPattern.SQUAT,),
    MovementPattern.CARRY: (MovementPattern.ISOMETRIC,),
    MovementPattern.ROTATION: (MovementPattern.ISOMETRIC,),
    MovementPattern.ISOMETRIC: (
        MovementPattern.PUSH,
        MovementPattern.PULL,
        MovementPattern.SQUAT,
        MovementPattern.HINGE,
    ),
    MovementPattern.LOCOMOTION: (MovementPattern.CARRY,),
}

DIFFICULTY_ORDER = ("beginner", "intermediate", "advanced")
UNKNOWN_DIFFICULTY_DISTANCE = 2

COMPOUND_ROLES = (SlotRole.PRIMARY_COMPOUND, SlotRole.SECONDARY_COMPOUND)
ISOLATION_ROLES = (SlotRole.ISOLATION, SlotRole.ACCESSORY)


@dataclass(frozen=True)
class ScoredExercise:
    exercise: CompressedExercise
    score: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _value(item) -> str:
    return item.value if hasattr(item, "value") else str(item)


def jaccard(a: Sequence[str], b: Sequence[str]) -> float:
    """
    Case-insensitive Jaccard similarity of two string lists.

    Two empty lists score 0, not 1.
    """
    set_a = {s.lower() for s in a}
    set_b = {s.lower() for s in b}
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def difficulty_distance(a: str, b: str) -> int:
    """Steps between two difficulty levels; unknown levels count as 2."""
    a, b = _value(a), _value(b)
    if a not in DIFFICULTY_ORDER or b not in DIFFICULTY_ORDER:
        return UNKNOWN_DIFFICULTY_DISTANCE
    return abs(DIFFICULTY_ORDER.index(a) - DIFFICULTY_ORDER.index(b))


def resolve_target_difficulty(training_age: TrainingAge) -> str:
    """Map the analyzer's training age onto the catalog's difficulty scale."""
    if training_age == TrainingAge.NOVICE:
        return ExerciseDifficulty.BEGINNER.value
    if training_age == TrainingAge.ELITE:
        return ExerciseDifficulty.ADVANCED.value
    return _value(training_age)


def _pattern_points(exercise: CompressedExercise, slot: ExerciseSlot) -> int:
    if exercise.movement_pattern is None:
        return 0
    if exercise.movement_pattern == slot.movement_pattern:
        return PATTERN_EXACT_POINTS
    if exercise.movement_pattern in RELATED_PATTERNS.get(slot.movement_pattern, ()):
        return PATTERN_RELATED_POINTS
    return 0


def _equipment_points(exercise: CompressedExercise, available: Set[str]) -> int:
    if exercise.is_bodyweight or not exercise.equipment_required:
        return EQUIPMENT_POINTS
    if all(normalize_equipment(eq) in available for eq in exercise.equipment_required):
        return EQUIPMENT_POINTS
    return 0


def _difficulty_points(exercise: CompressedExercise, target: str) -> int:
    distance = difficulty_distance(exercise.difficulty, target)
    if distance == 0:
        return DIFFICULTY_EXACT_POINTS
    if distance == 1:
        return DIFFICULTY_ADJACENT_POINTS
    return 0


def _role_points(exercise: CompressedExercise, slot: ExerciseSlot) -> int:
    if slot.role in COMPOUND_ROLES and exercise.is_compound:
        return ROLE_FIT_POINTS
    if slot.role in ISOLATION_ROLES and not exercise.is_compound:
        return ROLE_FIT_POINTS
    return 0


def score_exercise_for_slot(
    exercise: CompressedExercise,
    slot: ExerciseSlot,
    equipment: Iterable[str],
    difficulty: str,
) -> int:
    """
    Score how well one exercise fits one slot.

    Args:
        exercise: Compressed catalog exercise
        slot: Slot (or slot group representative) to fit
        equipment: Equipment the client has
        difficulty: Target catalog difficulty ('beginner'/'intermediate'/'advanced')

    Returns:
        Integer score in [0, 100]
    """
    available = equipment if isinstance(equipment, (set, frozenset)) else normalize_equipment_set(equipment)
    muscles = list(exercise.primary_muscles) + list(exercise.secondary_muscles)

    score = _pattern_points(exercise, slot)
    score += _round_half_up(jaccard(muscles, slot.target_muscles) * MUSCLE_OVERLAP_POINTS)
    score += _equipment_points(exercise, available)
    score += _difficulty_points(exercise, difficulty)
    score += _role_points(exercise, slot)
    return min(score, MAX_SCORE)


def slot_group_key(slot: ExerciseSlot) -> Tuple[str, Tuple[str, ...]]:
    """Slots with the same pattern and muscle set are scored once."""
    return (slot.movement_pattern.value, tuple(sorted(slot.target_muscles)))


def collect_slot_groups(skeleton: ProgramSkeleton) -> List[ExerciseSlot]:
    """
    Distinct slot requirements in skeleton order.

    The first slot seen for each (pattern, sorted muscles) key represents
    the group.
    """
    groups: Dict[Tuple[str, Tuple[str, ...]], ExerciseSlot] = {}
    for slot in skeleton.iter_slots():
        groups.setdefault(slot_group_key(slot), slot)
    return list(groups.values())


def score_exercises(
    exercises: Sequence[CompressedExercise],
    skeleton: ProgramSkeleton,
    equipment: Iterable[str],
    analysis: ProfileAnalysis,
) -> List[ScoredExercise]:
    """
    Best score of every exercise across all slot groups, highest first.

    Ties keep catalog order.
    """
    difficulty = resolve_target_difficulty(analysis.training_age_category)
    available = normalize_equipment_set(equipment)
    groups = collect_slot_groups(skeleton)

    scored = []
    for exercise in exercises:
        best = 0
        for slot in groups:
            best = max(best, score_exercise_for_slot(exercise, slot, available, difficulty))
        scored.append(ScoredExercise(exercise=exercise, score=best))

    return sorted(scored, key=lambda s: -s.score)


def score_and_filter_exercises(
    exercises: Sequence[CompressedExercise],
    skeleton: ProgramSkeleton,
    equipment: Iterable[str],
    analysis: ProfileAnalysis,
    max_candidates: int = MAX_CANDIDATES,
    min_candidates: int = MIN_CANDIDATES,
) -> List[CompressedExercise]:
    """
    Narrow the catalog to the candidates most relevant to the skeleton.

    Args:
        exercises: Compressed active catalog
        skeleton: Program skeleton whose slots drive the scoring
        equipment: Equipment the client has
        analysis: Profile analysis (training age sets target difficulty)
        max_candidates: Upper bound on the candidate set
        min_candidates: Below this the full catalog is returned instead

    Returns:
        Top-scoring exercises, or the full catalog unchanged if too few remain
    """
    ranked = score_exercises(exercises, skeleton, equipment, analysis)
    filtered = [s.exercise for s in ranked[: min(max_candidates, len(ranked))]]
    if len(filtered) < min_candidates:
        return list(exercises)
    return filtered
