"""
Procedural integrity checks for an assembled program.

The Plan Validator agent reviews a program for coaching quality, but the
rules that must never be wrong (slots covered, exercises real, equipment
available, constraints respected) are checked here in code. Both results are
merged before the orchestrator decides whether to retry.

All checks run even when an earlier one fails, so a retry gets the complete
list of problems to fix.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from programgen.equipment import normalize_equipment, normalize_equipment_set
from programgen.plan_schemas import (
    ConstraintType,
    ExerciseAssignment,
    ExerciseSlot,
    IssueType,
    ProfileAnalysis,
    ProgramSkeleton,
    SlotRole,
    ValidationIssue,
    ValidationResult,
)
from programgen.schemas import CompressedExercise, ExerciseDifficulty

logger = logging.getLogger(__name__)

VOLUME_TOLERANCE = 0.30
MAX_WEEKLY_RPE_JUMP = 2.0

BEGINNER_LEVELS = ("beginner", "novice")
NON_WORKING_ROLES = (SlotRole.WARM_UP, SlotRole.COOL_DOWN)


class PlanIntegrityChecker:
    """
    Checks a skeleton plus assignment against the catalog and the client.

    Error categories block the program (and trigger a pipeline retry):
    unknown_slot, missing_slot, missing_exercise, equipment_violation,
    injury_conflict, duplicate_exercise.

    Warning categories are advisory: difficulty_mismatch, volume_issue,
    load_progression.
    """

    def __init__(
        self,
        catalog: Sequence[CompressedExercise],
        available_equipment: Iterable[str],
        experience_level: Optional[str] = None,
    ):
        """
        Initialize the checker.

        Args:
            catalog: Active exercises (compressed); anything else counts as missing
            available_equipment: Client equipment (raw names, normalized here)
            experience_level: Client experience level (default: beginner)
        """
        self.catalog: Dict[str, CompressedExercise] = {ex.id: ex for ex in catalog}
        self.available_equipment: Set[str] = normalize_equipment_set(available_equipment)
        self.experience_level = (experience_level or "beginner").lower()

    def check(
        self,
        skeleton: ProgramSkeleton,
        assignment: ExerciseAssignment,
        analysis: ProfileAnalysis,
    ) -> ValidationResult:
        """
        Run every check and build a validation result.

        Args:
            skeleton: Program skeleton
            assignment: Slot -> exercise mapping to check
            analysis: Profile analysis (constraints and volume targets)

        Returns:
            ValidationResult; passed is False when any error issue exists
        """
        slot_index = skeleton.slot_index()
        issues: List[ValidationIssue] = []

        issues.extend(self._check_slot_coverage(slot_index, assignment))

        seen_per_day: Dict[Tuple[int, int], Set[str]] = defaultdict(set)
        for assigned in assignment.assignments:
            exercise = self.catalog.get(assigned.exercise_id)
            if exercise is None:
                issues.append(
                    _error(
                        "missing_exercise",
                        f"Exercise '{assigned.exercise_name}' ({assigned.exercise_id}) is not in the active library",
                        assigned.slot_id,
                    )
                )
                continue

            issues.extend(self._check_equipment(exercise, assigned.slot_id))
            issues.extend(self._check_constraints(exercise, analysis, assigned.slot_id))
            issues.extend(self._check_difficulty(exercise, assigned.slot_id))

            location = slot_index.get(assigned.slot_id)
            if location is not None:
                day_key = (location[0], location[1])
                if assigned.exercise_id in seen_per_day[day_key]:
                    issues.append(
                        _error(
                            "duplicate_exercise",
                            f"'{exercise.name}' is used more than once in week {day_key[0]}, day {day_key[1]}",
                            assigned.slot_id,
                        )
                    )
                seen_per_day[day_key].add(assigned.exercise_id)

        issues.extend(self._check_volume(skeleton, analysis))
        issues.extend(self._check_load_progression(skeleton))

        errors = [i for i in issues if i.type == IssueType.ERROR]
        warnings = [i for i in issues if i.type == IssueType.WARNING]
        logger.debug("Integrity checks: %d errors, %d warnings", len(errors), len(warnings))
        summary = (
            "All integrity checks passed."
            if not issues
            else f"{len(errors)} error(s) and {len(warnings)} warning(s) found by integrity checks."
        )
        return ValidationResult(passed=not errors, issues=issues, summary=summary)

    def _check_slot_coverage(
        self,
        slot_index: Dict[str, Tuple[int, int, int, ExerciseSlot]],
        assignment: ExerciseAssignment,
    ) -> List[ValidationIssue]:
        issues = []
        assigned_ids = set()
        for assigned in assignment.assignments:
            assigned_ids.add(assigned.slot_id)
            if assigned.slot_id not in slot_index:
                issues.append(
                    _error(
                        "unknown_slot",
                        f"Assignment references slot '{assigned.slot_id}' which is not in the skeleton",
                        assigned.slot_id,
                    )
                )
        for slot_id in slot_index:
            if slot_id not in assigned_ids:
                issues.append(_error("missing_slot", f"Slot '{slot_id}' has no exercise assigned", slot_id))
        return issues

    def _check_equipment(self, exercise: CompressedExercise, slot_id: str) -> List[ValidationIssue]:
        # Bodyweight work and unknown client equipment are never flagged
        if exercise.is_bodyweight or not self.available_equipment:
            return []
        missing = [
            eq for eq in exercise.equipment_required
            if normalize_equipment(eq) not in self.available_equipment
        ]
        if not missing:
            return []
        return [
            _error(
                "equipment_violation",
                f"'{exercise.name}' requires {', '.join(missing)} which the client does not have",
                slot_id,
            )
        ]

    def _check_constraints(
        self, exercise: CompressedExercise, analysis: ProfileAnalysis, slot_id: str
    ) -> List[ValidationIssue]:
        issues = []
        pattern = exercise.movement_pattern.value if exercise.movement_pattern else None
        primary = {m.lower() for m in exercise.primary_muscles}
        equipment = {normalize_equipment(eq) for eq in exercise.equipment_required}

        for constraint in analysis.exercise_constraints:
            value = constraint.value.strip().lower()
            conflict = False
            if constraint.type == ConstraintType.AVOID_MOVEMENT:
                conflict = pattern == value
            elif constraint.type == ConstraintType.AVOID_MUSCLE:
                conflict = value in primary
            elif constraint.type == ConstraintType.AVOID_EQUIPMENT:
                conflict = normalize_equipment(value) in equipment

            if conflict:
                issues.append(
                    _error(
                        "injury_conflict",
                        f"'{exercise.name}' conflicts with constraint {constraint.type.value}={constraint.value} "
                        f"({constraint.reason})",
                        slot_id,
                    )
                )
        return issues

    def _check_difficulty(self, exercise: CompressedExercise, slot_id: str) -> List[ValidationIssue]:
        if self.experience_level in BEGINNER_LEVELS and exercise.difficulty == ExerciseDifficulty.ADVANCED:
            return [
                _warning(
                    "difficulty_mismatch",
                    f"'{exercise.name}' is an advanced exercise for a {self.experience_level} client",
                    slot_id,
                )
            ]
        return []

    def _check_volume(self, skeleton: ProgramSkeleton, analysis: ProfileAnalysis) -> List[ValidationIssue]:
        """Compare week-1 working sets per target muscle group against the analysis."""
        first_week = min(skeleton.weeks, key=lambda w: w.week_number)
        working_slots = [
            slot for day in first_week.days for slot in day.slots
            if slot.role not in NON_WORKING_ROLES
        ]

        issues = []
        for target in analysis.volume_targets:
            if target.sets_per_week <= 0:
                continue
            group = _muscle_key(target.muscle_group)
            actual = sum(
                slot.sets for slot in working_slots
                if any(_muscles_match(group, _muscle_key(m)) for m in slot.target_muscles)
            )
            low = target.sets_per_week * (1 - VOLUME_TOLERANCE)
            high = target.sets_per_week * (1 + VOLUME_TOLERANCE)
            if actual < low or actual > high:
                issues.append(
                    _warning(
                        "volume_issue",
                        f"{target.muscle_group}: {actual} weekly sets in week {first_week.week_number} "
                        f"vs. target {target.sets_per_week:g}",
                    )
                )
        return issues

    def _check_load_progression(self, skeleton: ProgramSkeleton) -> List[ValidationIssue]:
        """Flag week-to-week jumps in peak RPE larger than the allowed step."""
        peaks = []
        for week in sorted(skeleton.weeks, key=lambda w: w.week_number):
            rpes = [slot.rpe_target for day in week.days for slot in day.slots if slot.rpe_target is not None]
            if rpes:
                peaks.append((week.week_number, max(rpes)))

        issues = []
        for (prev_week, prev_rpe), (week, rpe) in zip(peaks, peaks[1:]):
            if rpe - prev_rpe > MAX_WEEKLY_RPE_JUMP:
                issues.append(
                    _warning(
                        "load_progression",
                        f"Peak RPE jumps from {prev_rpe:g} in week {prev_week} to {rpe:g} in week {week}",
                    )
                )
        return issues


def merge_validation_results(procedural: ValidationResult, reviewed: Optional[ValidationResult]) -> ValidationResult:
    """
    Combine the integrity checks with the Plan Validator agent's review.

    Agent issues that repeat a procedural finding for the same slot and
    category are dropped. The merged result passes only when there are no
    errors and the agent itself passed the program. A warnings-only failure
    from the agent stays failed but never counts as blocking.

    Args:
        procedural: Result of PlanIntegrityChecker.check
        reviewed: Plan Validator agent result, if the agent ran

    Returns:
        Merged ValidationResult
    """
    if reviewed is None:
        return procedural

    issues = list(procedural.issues)
    seen = {(i.category, i.slot_ref) for i in issues if i.slot_ref}
    for issue in reviewed.issues:
        if issue.slot_ref and (issue.category, issue.slot_ref) in seen:
            continue
        issues.append(issue)

    has_errors = any(i.type == IssueType.ERROR for i in issues)
    summary = " ".join(s for s in (reviewed.summary, procedural.summary) if s)
    return ValidationResult(passed=reviewed.passed and not has_errors, issues=issues, summary=summary)


def _muscle_key(name: str) -> str:
    return name.strip().lower().replace("_", " ")


def _muscles_match(group: str, muscle: str) -> bool:
    return group == muscle or group in muscle or muscle in group


def _error(category: str, message: str, slot_ref: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(type=IssueType.ERROR, category=category, message=message, slot_ref=slot_ref)


def _warning(category: str, message: str, slot_ref: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(type=IssueType.WARNING, category=category, message=message, slot_ref=slot_ref)
