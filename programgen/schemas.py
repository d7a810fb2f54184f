"""
Pydantic models for generation inputs and the exercise catalog.

This module defines the core data structures for:
- Shared enumerations: splits, periodization, movement patterns, exercise metadata
- Intake Requests: what a coach asks the pipeline to build
- Client Profiles: questionnaire answers used to personalise the program
- Catalog Exercises: full records and the compressed form sent to the models
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Enumerations
# ============================================================================

class SplitType(str, Enum):
    """How training days divide the body or movement patterns."""
    FULL_BODY = "full_body"
    UPPER_LOWER = "upper_lower"
    PUSH_PULL_LEGS = "push_pull_legs"
    PUSH_PULL = "push_pull"
    BODY_PART = "body_part"
    MOVEMENT_PATTERN = "movement_pattern"
    CUSTOM = "custom"


class Periodization(str, Enum):
    """How load and volume change week to week."""
    LINEAR = "linear"
    UNDULATING = "undulating"
    BLOCK = "block"
    REVERSE_LINEAR = "reverse_linear"
    NONE = "none"


class MovementPattern(str, Enum):
    """Fundamental movement pattern of an exercise or slot."""
    PUSH = "push"
    PULL = "pull"
    SQUAT = "squat"
    HINGE = "hinge"
    LUNGE = "lunge"
    CARRY = "carry"
    ROTATION = "rotation"
    ISOMETRIC = "isometric"
    LOCOMOTION = "locomotion"


class ExerciseCategory(str, Enum):
    """Broad training modality of a catalog exercise."""
    STRENGTH = "strength"
    CARDIO = "cardio"
    FLEXIBILITY = "flexibility"
    PLYOMETRIC = "plyometric"
    SPORT_SPECIFIC = "sport_specific"
    RECOVERY = "recovery"


class ExerciseDifficulty(str, Enum):
    """Catalog difficulty grading."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ForceType(str, Enum):
    PUSH = "push"
    PULL = "pull"
    STATIC = "static"
    DYNAMIC = "dynamic"


class Laterality(str, Enum):
    BILATERAL = "bilateral"
    UNILATERAL = "unilateral"
    ALTERNATING = "alternating"


class ExperienceLevel(str, Enum):
    """Client's self-reported training experience."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ELITE = "elite"


class ProgramCategory(str, Enum):
    """Category stored on the persisted program."""
    STRENGTH = "strength"
    CONDITIONING = "conditioning"
    SPORT_SPECIFIC = "sport_specific"
    RECOVERY = "recovery"
    NUTRITION = "nutrition"
    HYBRID = "hybrid"


class ProgramDifficulty(str, Enum):
    """Difficulty stored on the persisted program."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ELITE = "elite"


# ============================================================================
# Intake Request
# ============================================================================

DEFAULT_SESSION_MINUTES = 60


class IntakeRequest(BaseModel):
    """
    A coach's request to generate a program for one client.

    Immutable once built: every stage reads it, none may change it.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1, description="Client the program is for")
    goals: List[str] = Field(
        ...,
        min_length=1,
        description="Training goals (e.g., 'muscle_gain', 'weight_loss', 'endurance')",
    )
    duration_weeks: int = Field(..., ge=1, le=52, description="Program length in weeks")
    sessions_per_week: int = Field(..., ge=1, le=7, description="Training sessions per week")
    session_minutes: Optional[int] = Field(
        default=None, ge=15, le=180, description="Target session length in minutes"
    )
    split_type: Optional[SplitType] = Field(
        default=None, description="Overrides the recommended split when set"
    )
    periodization: Optional[Periodization] = Field(
        default=None, description="Overrides the recommended periodization when set"
    )
    additional_instructions: Optional[str] = Field(
        default=None, max_length=2000, description="Free-text instructions from the coach"
    )
    equipment_override: Optional[List[str]] = Field(
        default=None, description="Equipment list used instead of the client's profile"
    )

    @field_validator("goals")
    @classmethod
    def goals_not_blank(cls, v: List[str]) -> List[str]:
        """Reject empty goal strings."""
        cleaned = [g.strip() for g in v]
        if any(not g for g in cleaned):
            raise ValueError("goals must not contain empty values")
        return cleaned

    @property
    def effective_session_minutes(self) -> int:
        return self.session_minutes or DEFAULT_SESSION_MINUTES


# ============================================================================
# Client Profile
# ============================================================================

DAY_NAMES = ["", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class ClientProfile(BaseModel):
    """
    Questionnaire answers for a client.

    Every field is optional: a missing profile or a half-filled questionnaire
    still produces a program, the analyzer falls back to general defaults.
    """

    client_id: str = Field(..., description="Client identifier")
    display_name: Optional[str] = Field(default=None, description="Name used in program titles")
    goals: List[str] = Field(default_factory=list)
    sport: Optional[str] = None
    gender: Optional[str] = None
    birth_year: Optional[int] = Field(default=None, ge=1900, le=2100)
    height_cm: Optional[float] = Field(default=None, gt=0)
    weight_kg: Optional[float] = Field(default=None, gt=0)

    experience_level: Optional[ExperienceLevel] = None
    training_years: Optional[float] = Field(default=None, ge=0)
    movement_confidence: Optional[str] = None
    training_background: Optional[str] = None

    injuries: List[str] = Field(default_factory=list)
    injury_details: Optional[str] = None

    available_equipment: List[str] = Field(default_factory=list)
    preferred_session_minutes: Optional[int] = Field(default=None, ge=15, le=180)
    preferred_training_days: List[int] = Field(
        default_factory=list, description="Preferred days, 1=Monday .. 7=Sunday"
    )
    preferred_techniques: List[str] = Field(default_factory=list)
    time_efficiency_preference: Optional[str] = None

    sleep_hours: Optional[str] = None
    stress_level: Optional[str] = None
    occupation_activity_level: Optional[str] = None

    exercise_likes: Optional[str] = None
    exercise_dislikes: Optional[str] = None
    additional_notes: Optional[str] = None

    @field_validator("preferred_training_days")
    @classmethod
    def days_in_week(cls, v: List[int]) -> List[int]:
        if any(d < 1 or d > 7 for d in v):
            raise ValueError("preferred_training_days must be between 1 and 7")
        return v

    def age(self, current_year: Optional[int] = None) -> Optional[int]:
        """Approximate age from birth year."""
        if self.birth_year is None:
            return None
        year = current_year or datetime.now().year
        return year - self.birth_year

    def preferred_day_names(self) -> List[str]:
        return [DAY_NAMES[d] for d in self.preferred_training_days]


# ============================================================================
# Exercise Catalog
# ============================================================================

class CatalogExercise(BaseModel):
    """A full exercise record as stored in the catalog."""

    id: str = Field(..., description="Catalog identifier")
    name: str = Field(..., description="Display name")
    description: Optional[str] = None
    instructions: Optional[str] = None
    category: List[ExerciseCategory] = Field(default_factory=list)
    difficulty: ExerciseDifficulty = ExerciseDifficulty.BEGINNER
    muscle_group: Optional[str] = Field(default=None, description="Primary region, e.g. 'legs'")
    movement_pattern: Optional[MovementPattern] = None
    primary_muscles: List[str] = Field(default_factory=list)
    secondary_muscles: List[str] = Field(default_factory=list)
    force_type: Optional[ForceType] = None
    laterality: Optional[Laterality] = None
    equipment_required: List[str] = Field(default_factory=list)
    is_bodyweight: bool = False
    is_compound: bool = False
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CompressedExercise(BaseModel):
    """
    The catalog fields the selection stage needs, and nothing else.

    Keeps prompts small: descriptions, media and timestamps are dropped.
    """

    id: str
    name: str
    category: List[ExerciseCategory] = Field(default_factory=list)
    difficulty: ExerciseDifficulty = ExerciseDifficulty.BEGINNER
    muscle_group: Optional[str] = None
    movement_pattern: Optional[MovementPattern] = None
    primary_muscles: List[str] = Field(default_factory=list)
    secondary_muscles: List[str] = Field(default_factory=list)
    force_type: Optional[ForceType] = None
    laterality: Optional[Laterality] = None
    equipment_required: List[str] = Field(default_factory=list)
    is_bodyweight: bool = False
    is_compound: bool = False
