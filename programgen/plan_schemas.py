"""
Pydantic models for pipeline stage outputs.

Each agent in the pipeline produces one of these:
- ProfileAnalysis: volume targets, constraints and session structure for a client
- ProgramSkeleton: every week, day and exercise slot, with no exercises chosen
- ExerciseAssignment / SessionPlan: the slot -> exercise mapping
- ValidationResult: blocking errors and advisory warnings for the assembled program

The numeric and length bounds declared here are the authoritative rules.
Backends that can't express them in a structured-output schema get them as
prompt text instead (see schema_profile.py), and model_validate re-checks
them once the call returns.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from programgen.schemas import (
    MovementPattern,
    Periodization,
    ProgramCategory,
    ProgramDifficulty,
    SplitType,
)


# ============================================================================
# Enumerations
# ============================================================================

class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConstraintType(str, Enum):
    """Kind of restriction the analyzer places on exercise choice."""
    AVOID_MOVEMENT = "avoid_movement"
    AVOID_EQUIPMENT = "avoid_equipment"
    AVOID_MUSCLE = "avoid_muscle"
    LIMIT_LOAD = "limit_load"
    REQUIRE_UNILATERAL = "require_unilateral"


class TrainingAge(str, Enum):
    """Analyzer's judgement of how trained the client really is."""
    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ELITE = "elite"


class SlotRole(str, Enum):
    """Position of a slot within a session."""
    WARM_UP = "warm_up"
    PRIMARY_COMPOUND = "primary_compound"
    SECONDARY_COMPOUND = "secondary_compound"
    ACCESSORY = "accessory"
    ISOLATION = "isolation"
    COOL_DOWN = "cool_down"


class Technique(str, Enum):
    """Set structure used for a slot."""
    STRAIGHT_SET = "straight_set"
    SUPERSET = "superset"
    DROPSET = "dropset"
    GIANT_SET = "giant_set"
    CIRCUIT = "circuit"
    REST_PAUSE = "rest_pause"
    AMRAP = "amrap"


class IssueType(str, Enum):
    """Error issues block the program; warnings are advisory."""
    ERROR = "error"
    WARNING = "warning"


# ============================================================================
# Agent 1: Profile Analysis
# ============================================================================

class VolumeTarget(BaseModel):
    """Weekly working-set target for one muscle group."""
    muscle_group: str
    sets_per_week: float = Field(..., ge=0, le=40, description="Total weekly sets for this muscle group")
    priority: Priority


class ExerciseConstraint(BaseModel):
    """A restriction on exercise choice, usually derived from injuries."""
    type: ConstraintType
    value: str = Field(..., description="Movement pattern, equipment or muscle the constraint names")
    reason: str


class SessionStructure(BaseModel):
    warm_up_minutes: float = Field(..., ge=0, le=60)
    main_work_minutes: float = Field(..., ge=0, le=180)
    cool_down_minutes: float = Field(..., ge=0, le=60)
    total_exercises: int = Field(..., ge=1, le=20)
    compound_count: int = Field(..., ge=0, le=20)
    isolation_count: int = Field(..., ge=0, le=20)


class ProfileAnalysis(BaseModel):
    """Profile Analyzer output: how this client should train."""
    recommended_split: SplitType
    recommended_periodization: Periodization
    volume_targets: List[VolumeTarget] = Field(..., min_length=1)
    exercise_constraints: List[ExerciseConstraint] = Field(default_factory=list)
    session_structure: SessionStructure
    training_age_category: TrainingAge
    notes: str = ""


# ============================================================================
# Agent 2: Program Skeleton
# ============================================================================

class ExerciseSlot(BaseModel):
    """A planned exercise placeholder, not yet bound to a catalog exercise."""
    slot_id: str = Field(..., min_length=1, description="Unique across the program, e.g. 'w1d1s1'")
    role: SlotRole
    movement_pattern: MovementPattern
    target_muscles: List[str] = Field(..., min_length=1)
    sets: int = Field(..., ge=1, le=10)
    reps: str = Field(..., min_length=1, description="Rep prescription, e.g. '8-12' or '30s'")
    rest_seconds: int = Field(..., ge=0, le=600)
    rpe_target: Optional[float] = Field(default=None, ge=1, le=10)
    tempo: Optional[str] = Field(default=None, description="Eccentric-pause-concentric-pause, e.g. '3-1-2-0'")
    group_tag: Optional[str] = Field(default=None, description="Shared tag for supersets and circuits")
    technique: Technique = Technique.STRAIGHT_SET


class ProgramDay(BaseModel):
    day_of_week: int = Field(..., ge=1, le=7, description="1=Monday .. 7=Sunday")
    label: str
    focus: str
    slots: List[ExerciseSlot] = Field(..., min_length=1)


class ProgramWeek(BaseModel):
    week_number: int = Field(..., ge=1)
    phase: str
    intensity_modifier: str
    days: List[ProgramDay] = Field(..., min_length=1)


class ProgramSkeleton(BaseModel):
    """Program Architect output: the full week/day/slot structure."""
    weeks: List[ProgramWeek] = Field(..., min_length=1)
    split_type: SplitType
    periodization: Periodization
    total_sessions: int = Field(..., ge=1)
    notes: str = ""

    @model_validator(mode="after")
    def slot_ids_unique(self) -> "ProgramSkeleton":
        """Every slot_id must be unique across the whole program."""
        seen = set()
        for slot in self.iter_slots():
            if slot.slot_id in seen:
                raise ValueError(f"Duplicate slot_id in skeleton: {slot.slot_id}")
            seen.add(slot.slot_id)
        return self

    def iter_slots(self):
        for week in self.weeks:
            for day in week.days:
                yield from day.slots

    def slot_index(self) -> Dict[str, Tuple[int, int, int, ExerciseSlot]]:
        """
        Map slot_id to its location and definition.

        Returns:
            Dict of slot_id -> (week_number, day_of_week, order_index, slot)
        """
        index: Dict[str, Tuple[int, int, int, ExerciseSlot]] = {}
        for week in self.weeks:
            for day in week.days:
                for order_index, slot in enumerate(day.slots):
                    index[slot.slot_id] = (week.week_number, day.day_of_week, order_index, slot)
        return index


class SessionContext(BaseModel):
    """Where one session sits in the program, before any slots exist."""
    week_number: int = Field(..., ge=1)
    day_of_week: int = Field(..., ge=1, le=7)
    phase: str
    intensity_modifier: str
    label: str
    focus: str
    slot_prefix: str = Field(..., description="Prefix for this session's slot ids, e.g. 'w1d3'")


# ============================================================================
# Agent 3: Exercise Assignment
# ============================================================================

class AssignedExercise(BaseModel):
    slot_id: str
    exercise_id: str
    exercise_name: str
    notes: Optional[str] = None


class ExerciseAssignment(BaseModel):
    """Exercise Selector output for the whole program."""
    assignments: List[AssignedExercise] = Field(..., min_length=1)
    substitution_notes: List[str] = Field(default_factory=list)


class SessionSlot(ExerciseSlot):
    """A slot with its exercise chosen, used by per-session selection."""
    exercise_id: str
    exercise_name: str
    notes: Optional[str] = None


class SessionPlan(BaseModel):
    """Exercise Selector output for a single session."""
    label: str
    focus: str
    slots: List[SessionSlot] = Field(..., min_length=1)

    def to_assignments(self) -> List[AssignedExercise]:
        return [
            AssignedExercise(
                slot_id=slot.slot_id,
                exercise_id=slot.exercise_id,
                exercise_name=slot.exercise_name,
                notes=slot.notes,
            )
            for slot in self.slots
        ]


# ============================================================================
# Agent 4: Validation
# ============================================================================

class ValidationIssue(BaseModel):
    type: IssueType
    category: str = Field(..., description="e.g. 'equipment_violation', 'duplicate_exercise'")
    message: str
    slot_ref: Optional[str] = Field(default=None, description="slot_id the issue refers to")


class ValidationResult(BaseModel):
    """
    Plan Validator output.

    ``passed`` is serialized as ``pass``.
    """

    model_config = ConfigDict(populate_by_name=True)

    passed: bool = Field(..., alias="pass")
    issues: List[ValidationIssue] = Field(default_factory=list)
    summary: str = ""

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.type == IssueType.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.type == IssueType.WARNING]

    @property
    def has_errors(self) -> bool:
        return any(i.type == IssueType.ERROR for i in self.issues)


# ============================================================================
# Orchestration
# ============================================================================

class TokenUsage(BaseModel):
    """Tokens (input + output) spent per agent."""
    agent1: int = 0
    agent2: int = 0
    agent3: int = 0
    agent4: int = 0

    @computed_field
    @property
    def total(self) -> int:
        return self.agent1 + self.agent2 + self.agent3 + self.agent4


class OrchestrationResult(BaseModel):
    """What a caller gets back from one generation run."""

    program_id: str
    validation: ValidationResult
    token_usage: TokenUsage
    duration_ms: int = Field(..., ge=0)
    retries: int = Field(..., ge=0, description="Pipeline-level restarts, not per-call retries")


class ProgramDraft(BaseModel):
    """Program-level fields handed to persistence alongside its exercise lines."""

    name: str
    description: str
    category: ProgramCategory
    difficulty: ProgramDifficulty
    duration_weeks: int = Field(..., ge=1)
    sessions_per_week: int = Field(..., ge=1, le=7)
    split_type: SplitType
    periodization: Periodization
    created_by: str
    ai_generation_params: Dict[str, Any] = Field(default_factory=dict)


class FlattenedProgramExercise(BaseModel):
    """One concrete exercise line on one training day, ready to persist."""

    exercise_id: str
    week_number: int = Field(..., ge=1)
    day_of_week: int = Field(..., ge=1, le=7)
    order_index: int = Field(..., ge=0)
    sets: int
    reps: str
    rest_seconds: int
    rpe_target: Optional[float] = None
    tempo: Optional[str] = None
    group_tag: Optional[str] = None
    technique: Technique = Technique.STRAIGHT_SET
    notes: Optional[str] = None
