"""
Program generation orchestrator.

Runs the pipeline as an explicit state machine:

    ANALYZE -> ARCHITECT -> FILTER -> SELECT -> VALIDATE -> PERSIST
                   ^                                |
                   +------ RETRY (error issues) ----+

A validation with error issues sends the run back to ARCHITECT, at most
MAX_PIPELINE_RETRIES times. Warnings never trigger a retry. Once retries are
exhausted the last attempt is persisted anyway and its failing validation is
returned, so an administrator can correct the program by hand.

Generation stages run under a wall-clock limit. Hitting it cancels the
in-flight model calls and nothing is persisted.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from programgen.agents import (
    ExerciseSelector,
    PlanValidator,
    ProfileAnalyzer,
    ProgramArchitect,
    build_constraints_context,
    build_selector_message,
)
from programgen.config import Settings
from programgen.database import ProgramRepository
from programgen.exceptions import (
    GenerationTimeoutError,
    PersistenceError,
    PipelineStageError,
    ProgramGenerationError,
)
from programgen.exercise_context import compress_exercises
from programgen.exercise_filter import score_and_filter_exercises
from programgen.llm_client import ModelClient
from programgen.plan_schemas import (
    AssignedExercise,
    ExerciseAssignment,
    FlattenedProgramExercise,
    OrchestrationResult,
    ProfileAnalysis,
    ProgramDraft,
    ProgramSkeleton,
    SessionContext,
    TokenUsage,
    ValidationIssue,
    ValidationResult,
)
from programgen.planner import SessionLayoutPlanner
from programgen.prompts import EXERCISE_SELECTOR_PROMPT
from programgen.schemas import (
    ClientProfile,
    CompressedExercise,
    IntakeRequest,
    ProgramCategory,
    ProgramDifficulty,
)
from programgen.token_budget import check_token_budget
from programgen.validator import PlanIntegrityChecker, merge_validation_results

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    ANALYZE = "analyze"
    ARCHITECT = "architect"
    FILTER = "filter"
    SELECT = "select"
    VALIDATE = "validate"
    PERSIST = "persist"


def derive_program_category(goals: Sequence[str]) -> ProgramCategory:
    """Pick the stored program category from the client's goals."""
    goal_set = {g.lower() for g in goals}

    if "muscle_gain" in goal_set and "endurance" in goal_set:
        return ProgramCategory.HYBRID
    if "muscle_gain" in goal_set or "weight_loss" in goal_set:
        return ProgramCategory.STRENGTH
    if "endurance" in goal_set:
        return ProgramCategory.CONDITIONING
    if "sport_specific" in goal_set:
        return ProgramCategory.SPORT_SPECIFIC
    if "flexibility" in goal_set:
        return ProgramCategory.RECOVERY
    if "general_health" in goal_set:
        return ProgramCategory.HYBRID
    return ProgramCategory.STRENGTH


def map_difficulty(experience_level: Optional[str]) -> ProgramDifficulty:
    """Program difficulty from experience level; unknown levels are beginner."""
    try:
        return ProgramDifficulty(experience_level)
    except ValueError:
        return ProgramDifficulty.BEGINNER


@dataclass
class GenerationRun:
    """Mutable state of one generate() call. Never shared between calls."""

    intake: IntakeRequest
    requested_by: str
    stage: Stage = Stage.ANALYZE
    retries: int = 0
    tokens: TokenUsage = field(default_factory=TokenUsage)
    profile: Optional[ClientProfile] = None
    equipment: List[str] = field(default_factory=list)
    analysis: Optional[ProfileAnalysis] = None
    layout: List[SessionContext] = field(default_factory=list)
    catalog: Optional[List[CompressedExercise]] = None
    candidates: List[CompressedExercise] = field(default_factory=list)
    skeleton: Optional[ProgramSkeleton] = None
    assignment: Optional[ExerciseAssignment] = None
    validation: Optional[ValidationResult] = None
    feedback: List[ValidationIssue] = field(default_factory=list)

    @property
    def experience_level(self) -> str:
        if self.profile and self.profile.experience_level:
            return self.profile.experience_level.value
        return "beginner"

    @property
    def client_name(self) -> str:
        if self.profile and self.profile.display_name:
            return self.profile.display_name
        return "Client"


class ProgramOrchestrator:
    """
    Turns an intake request into a persisted, validated program.

    One orchestrator can serve concurrent generate() calls: all per-run
    state lives in a GenerationRun, and the model client and repository are
    shared by reference.
    """

    def __init__(
        self,
        client: ModelClient,
        repository: ProgramRepository,
        settings: Settings,
    ):
        """
        Initialize the orchestrator.

        Args:
            client: Shared model client
            repository: Storage for catalog, profiles, programs and logs
            settings: Retry bounds, budgets and timeout
        """
        self.repository = repository
        self.settings = settings
        self.analyzer = ProfileAnalyzer(client, settings)
        self.architect = ProgramArchitect(client, settings)
        self.selector = ExerciseSelector(client, settings)
        self.plan_validator = PlanValidator(client, settings)

    async def generate(self, intake: IntakeRequest, requested_by: str) -> OrchestrationResult:
        """
        Generate and persist a program.

        Args:
            intake: The generation request
            requested_by: User who asked for the program

        Returns:
            OrchestrationResult with the program id, final validation,
            token usage, duration and pipeline retry count

        Raises:
            GenerationTimeoutError: If generation exceeds the wall-clock limit
            PipelineStageError: If a stage fails (names the stage)
            PersistenceError: If the generation log or the program can't be saved
        """
        started = time.monotonic()
        run = GenerationRun(intake=intake, requested_by=requested_by)
        try:
            log_id = await self.repository.create_generation_log(
                client_id=intake.client_id,
                requested_by=requested_by,
                input_params=intake.model_dump(mode="json"),
                model_used=f"{self.settings.MODEL_FAST}+{self.settings.MODEL_STANDARD}",
            )
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to create generation log: {e}") from e

        try:
            try:
                await asyncio.wait_for(self._run_stages(run), timeout=self.settings.GENERATION_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                raise GenerationTimeoutError(self.settings.GENERATION_TIMEOUT_SECONDS, stage=run.stage.value) from None

            run.stage = Stage.PERSIST
            program_id = await self._persist(run)
        except ProgramGenerationError as e:
            e.token_usage = run.tokens
            await self._fail_log(log_id, run, started, str(e))
            raise

        duration_ms = _elapsed_ms(started)
        validation = run.validation
        await self._complete_log(log_id, run, program_id, duration_ms)
        logger.info(
            "Program %s generated in %dms (%d tokens, %d retries, pass=%s)",
            program_id,
            duration_ms,
            run.tokens.total,
            run.retries,
            validation.passed,
        )

        return OrchestrationResult(
            program_id=program_id,
            validation=validation,
            token_usage=run.tokens,
            duration_ms=duration_ms,
            retries=run.retries,
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _run_stages(self, run: GenerationRun) -> None:
        """Drive the run from ANALYZE until it is ready to persist."""
        handlers = {
            Stage.ANALYZE: self._analyze,
            Stage.ARCHITECT: self._architect,
            Stage.FILTER: self._filter,
            Stage.SELECT: self._select,
            Stage.VALIDATE: self._validate,
        }

        while run.stage != Stage.PERSIST:
            stage = run.stage
            stage_started = time.monotonic()
            try:
                next_stage = await handlers[stage](run)
            except ProgramGenerationError as e:
                _charge_failed_call(run, stage, e)
                if isinstance(e, PipelineStageError):
                    raise
                raise PipelineStageError(stage.value, e.message) from e
            except Exception as e:
                _charge_failed_call(run, stage, e)
                raise PipelineStageError(stage.value, str(e) or type(e).__name__) from e
            logger.info("Stage %s finished in %dms", stage.value, _elapsed_ms(stage_started))
            run.stage = next_stage

    async def _analyze(self, run: GenerationRun) -> Stage:
        intake = run.intake
        run.profile = await self.repository.get_client_profile(intake.client_id)
        if intake.equipment_override is not None:
            run.equipment = list(intake.equipment_override)
        else:
            run.equipment = await self.repository.get_available_equipment(intake.client_id)

        result = await self.analyzer.run(intake, run.profile)
        run.tokens.agent1 += result.tokens_used

        overrides = {}
        if intake.split_type:
            overrides["recommended_split"] = intake.split_type
        if intake.periodization:
            overrides["recommended_periodization"] = intake.periodization
        run.analysis = result.content.model_copy(update=overrides)

        preferred_days = run.profile.preferred_training_days if run.profile else None
        run.layout = SessionLayoutPlanner(run.analysis, intake).plan(preferred_days)
        return Stage.ARCHITECT

    async def _architect(self, run: GenerationRun) -> Stage:
        result = await self.architect.run(run.intake, run.analysis, run.layout, run.feedback)
        run.tokens.agent2 += result.tokens_used
        run.skeleton = result.content
        return Stage.FILTER

    async def _filter(self, run: GenerationRun) -> Stage:
        if run.catalog is None:
            run.catalog = compress_exercises(await self.repository.get_active_exercises())
        run.candidates = score_and_filter_exercises(run.catalog, run.skeleton, run.equipment, run.analysis)
        logger.info("Exercise library: %d active -> %d candidates", len(run.catalog), len(run.candidates))
        return Stage.SELECT

    async def _select(self, run: GenerationRun) -> Stage:
        constraints = build_constraints_context(run.analysis, run.equipment, run.experience_level)
        budget = check_token_budget(
            EXERCISE_SELECTOR_PROMPT,
            build_selector_message(run.skeleton, constraints, run.candidates, run.feedback),
            self.settings.SELECTOR_INPUT_TOKEN_BUDGET,
        )

        if budget.fits:
            logger.info("Selecting exercises in one call (~%d input tokens)", budget.estimated)
            result = await self.selector.run_whole(run.skeleton, constraints, run.candidates, run.feedback)
        else:
            logger.info(
                "Selector input ~%d tokens exceeds budget by %d; selecting per session",
                budget.estimated,
                budget.overage,
            )
            result = await self.selector.run_per_session(run.skeleton, constraints, run.candidates, run.feedback)

        run.tokens.agent3 += result.tokens_used
        run.assignment = result.content
        return Stage.VALIDATE

    async def _validate(self, run: GenerationRun) -> Stage:
        checker = PlanIntegrityChecker(run.catalog, run.equipment, run.experience_level)
        procedural = checker.check(run.skeleton, run.assignment, run.analysis)

        review = await self.plan_validator.run(
            run.skeleton, run.assignment, run.analysis, run.equipment, run.experience_level
        )
        run.tokens.agent4 += review.tokens_used
        run.validation = merge_validation_results(procedural, review.content)

        errors = run.validation.errors
        if not run.validation.passed and errors:
            if run.retries < self.settings.MAX_PIPELINE_RETRIES:
                run.retries += 1
                run.feedback = errors
                logger.warning(
                    "Validation failed with %d error(s); restarting from architect (retry %d/%d): %s",
                    len(errors),
                    run.retries,
                    self.settings.MAX_PIPELINE_RETRIES,
                    "; ".join(i.message for i in errors),
                )
                return Stage.ARCHITECT
            logger.warning(
                "Validation still failing after %d retries; persisting for manual review", run.retries
            )
        elif run.validation.warnings:
            logger.info(
                "Validation finished with %d warning(s), pass=%s",
                len(run.validation.warnings),
                run.validation.passed,
            )

        return Stage.PERSIST

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _persist(self, run: GenerationRun) -> str:
        lines = flatten_program(run.skeleton, run.assignment, {ex.id for ex in run.catalog})
        draft = self._build_draft(run)
        program_id = await self.repository.create_program_with_exercises(draft, lines)
        logger.info("Program %s saved with %d exercise lines", program_id, len(lines))
        return program_id

    def _build_draft(self, run: GenerationRun) -> ProgramDraft:
        intake = run.intake
        analysis = run.analysis
        validation = run.validation
        category = derive_program_category(intake.goals)
        goals_label = ", ".join(g.replace("_", " ") for g in intake.goals)

        return ProgramDraft(
            name=f"AI: {goals_label} for {run.client_name}",
            description=(
                f"AI-generated {intake.duration_weeks}-week {category.value} program "
                f"targeting {goals_label}. {run.skeleton.notes}"
            ).strip(),
            category=category,
            difficulty=map_difficulty(run.experience_level),
            duration_weeks=intake.duration_weeks,
            sessions_per_week=intake.sessions_per_week,
            split_type=run.skeleton.split_type,
            periodization=run.skeleton.periodization,
            created_by=run.requested_by,
            ai_generation_params={
                "request": intake.model_dump(mode="json"),
                "analysis_summary": {
                    "split": analysis.recommended_split.value,
                    "periodization": analysis.recommended_periodization.value,
                    "training_age": analysis.training_age_category.value,
                    "constraints_count": len(analysis.exercise_constraints),
                },
                "validation": {
                    "pass": validation.passed,
                    "warnings": len(validation.warnings),
                    "errors": len(validation.errors),
                },
                "token_usage": run.tokens.model_dump(),
                "retries": run.retries,
            },
        )

    async def _complete_log(self, log_id: str, run: GenerationRun, program_id: str, duration_ms: int) -> None:
        validation = run.validation
        try:
            await self.repository.update_generation_log(
                log_id,
                program_id=program_id,
                status="completed",
                tokens_used=run.tokens.total,
                duration_ms=duration_ms,
                output_summary={
                    "program_id": program_id,
                    "exercises_assigned": len(run.assignment.assignments),
                    "validation_pass": validation.passed,
                    "errors": len(validation.errors),
                    "warnings": len(validation.warnings),
                    "retries": run.retries,
                },
            )
        except Exception:
            logger.exception("Failed to update generation log %s", log_id)

    async def _fail_log(self, log_id: str, run: GenerationRun, started: float, message: str) -> None:
        try:
            await self.repository.update_generation_log(
                log_id,
                status="failed",
                error_message=message,
                tokens_used=run.tokens.total,
                duration_ms=_elapsed_ms(started),
            )
        except Exception:
            logger.exception("Failed to update generation log %s", log_id)
        logger.error("Program generation failed at stage %s: %s", run.stage.value, message)


_STAGE_TOKEN_FIELDS = {
    Stage.ANALYZE: "agent1",
    Stage.ARCHITECT: "agent2",
    Stage.SELECT: "agent3",
    Stage.VALIDATE: "agent4",
}


def _charge_failed_call(run: GenerationRun, stage: Stage, error: Exception) -> None:
    """Add tokens billed by a call that failed to the stage's agent."""
    tokens_used = getattr(error, "tokens_used", 0) or 0
    field_name = _STAGE_TOKEN_FIELDS.get(stage)
    if tokens_used and field_name:
        setattr(run.tokens, field_name, getattr(run.tokens, field_name) + tokens_used)


def flatten_program(
    skeleton: ProgramSkeleton,
    assignment: ExerciseAssignment,
    active_exercise_ids: Optional[set] = None,
) -> List[FlattenedProgramExercise]:
    """
    Turn skeleton + assignment into concrete per-day exercise lines.

    Assignments for slots the skeleton doesn't contain, exercises outside
    the active catalog, and repeat assignments of an already-filled slot
    are rejected and logged.

    Args:
        skeleton: Program skeleton (slot locations and prescriptions)
        assignment: Slot -> exercise mapping
        active_exercise_ids: Ids allowed in the program (None = no check)

    Returns:
        Lines ordered by week, day and slot order
    """
    slot_index = skeleton.slot_index()
    filled: Dict[str, AssignedExercise] = {}

    for assigned in assignment.assignments:
        if assigned.slot_id not in slot_index:
            logger.warning("Slot %s not found in skeleton; skipping assignment", assigned.slot_id)
            continue
        if active_exercise_ids is not None and assigned.exercise_id not in active_exercise_ids:
            logger.warning(
                "Exercise %s for slot %s is not in the active catalog; skipping",
                assigned.exercise_id,
                assigned.slot_id,
            )
            continue
        if assigned.slot_id in filled:
            logger.warning("Slot %s assigned more than once; keeping the first", assigned.slot_id)
            continue
        filled[assigned.slot_id] = assigned

    lines = []
    for slot_id, assigned in filled.items():
        week_number, day_of_week, order_index, slot = slot_index[slot_id]
        lines.append(
            FlattenedProgramExercise(
                exercise_id=assigned.exercise_id,
                week_number=week_number,
                day_of_week=day_of_week,
                order_index=order_index,
                sets=slot.sets,
                reps=slot.reps,
                rest_seconds=slot.rest_seconds,
                rpe_target=slot.rpe_target,
                tempo=slot.tempo,
                group_tag=slot.group_tag,
                technique=slot.technique,
                notes=assigned.notes,
            )
        )
    return sorted(lines, key=lambda l: (l.week_number, l.day_of_week, l.order_index))


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
