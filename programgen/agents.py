"""
The four pipeline agents.

Each agent binds a system prompt, a user-message builder and an output model
to the shared ModelClient. Agents hold no per-run state, so one instance can
serve concurrent generations.
"""

import asyncio
import json
import logging
from typing import Any, List, Optional, Sequence

from programgen.config import Settings
from programgen.exercise_context import format_exercise_library
from programgen.llm_client import AgentCallResult, ModelClient, ModelTier
from programgen.plan_schemas import (
    AssignedExercise,
    ExerciseAssignment,
    ProfileAnalysis,
    ProgramDay,
    ProgramSkeleton,
    ProgramWeek,
    SessionContext,
    SessionPlan,
    ValidationIssue,
    ValidationResult,
)
from programgen.planner import format_session_layout
from programgen.prompts import (
    EXERCISE_SELECTOR_PROMPT,
    PLAN_VALIDATOR_PROMPT,
    PROFILE_ANALYZER_PROMPT,
    PROGRAM_ARCHITECT_PROMPT,
)
from programgen.schemas import ClientProfile, CompressedExercise, IntakeRequest

logger = logging.getLogger(__name__)


# ============================================================================
# Message builders
# ============================================================================

def _dump(value: Any) -> str:
    if hasattr(value, "model_dump"):
        value = value.model_dump(mode="json", by_alias=True)
    return json.dumps(value, separators=(",", ":"), default=str)


def build_profile_context(profile: Optional[ClientProfile]) -> str:
    """Serialize the client profile (or a no-profile note) for the analyzer."""
    if profile is None:
        return _dump({"note": "No profile found. Use defaults for a general fitness client."})
    data = profile.model_dump(mode="json", exclude={"client_id", "display_name"}, exclude_none=True)
    age = profile.age()
    if age is not None:
        data["age"] = age
    if profile.preferred_training_days:
        data["preferred_day_names"] = profile.preferred_day_names()
    return _dump(data)


def build_feedback_section(issues: Sequence[ValidationIssue]) -> str:
    """Describe the blocking issues of a failed attempt so the next one can fix them."""
    if not issues:
        return ""
    return (
        "\n\nPREVIOUS ATTEMPT FAILED VALIDATION. Issues to fix:\n"
        f"{_dump([i.model_dump(mode='json', exclude_none=True) for i in issues])}\n\n"
        "Fix ALL of these errors in this attempt."
    )


def build_analyzer_message(intake: IntakeRequest, profile: Optional[ClientProfile]) -> str:
    lines = [
        "Client Profile:",
        build_profile_context(profile),
        "",
        "Training Request:",
        f"- Goals: {', '.join(intake.goals)}",
        f"- Duration: {intake.duration_weeks} weeks",
        f"- Sessions per week: {intake.sessions_per_week}",
        f"- Session length: {intake.effective_session_minutes} minutes",
    ]
    if intake.split_type:
        lines.append(f"- Requested split type: {intake.split_type.value}")
    if intake.periodization:
        lines.append(f"- Requested periodization: {intake.periodization.value}")
    if intake.equipment_override:
        lines.append(f"- Equipment override: {', '.join(intake.equipment_override)}")
    if intake.additional_instructions:
        lines.append(f"- Additional instructions: {intake.additional_instructions}")
    return "\n".join(lines)


def build_architect_message(
    intake: IntakeRequest,
    analysis: ProfileAnalysis,
    layout: Sequence[SessionContext],
    feedback: Sequence[ValidationIssue] = (),
) -> str:
    lines = [
        "Profile Analysis:",
        _dump(analysis),
        "",
        "Training Parameters:",
        f"- Duration: {intake.duration_weeks} weeks",
        f"- Sessions per week: {intake.sessions_per_week}",
        f"- Session length: {intake.effective_session_minutes} minutes",
        f"- Split type: {analysis.recommended_split.value}",
        f"- Periodization: {analysis.recommended_periodization.value}",
        f"- Goals: {', '.join(intake.goals)}",
    ]
    if intake.additional_instructions:
        lines.append(f"- Additional instructions: {intake.additional_instructions}")
    if layout:
        lines += ["", "Session layout (one line per session):", format_session_layout(layout)]
    return "\n".join(lines) + build_feedback_section(feedback)


def build_constraints_context(
    analysis: ProfileAnalysis,
    equipment: Sequence[str],
    experience_level: Optional[str],
) -> str:
    return _dump(
        {
            "exercise_constraints": [c.model_dump(mode="json") for c in analysis.exercise_constraints],
            "available_equipment": list(equipment),
            "client_difficulty": experience_level or "beginner",
        }
    )


def build_selector_message(
    skeleton: ProgramSkeleton,
    constraints_context: str,
    candidates: Sequence[CompressedExercise],
    feedback: Sequence[ValidationIssue] = (),
) -> str:
    return (
        f"Program Skeleton:\n{_dump(skeleton)}\n\n"
        f"Constraints:\n{constraints_context}\n\n"
        f"Exercise Library ({len(candidates)} exercises, pre-filtered for relevance):\n"
        f"{format_exercise_library(list(candidates))}"
        f"{build_feedback_section(feedback)}"
    )


def build_session_message(
    week: ProgramWeek,
    day: ProgramDay,
    constraints_context: str,
    candidates: Sequence[CompressedExercise],
    feedback: Sequence[ValidationIssue] = (),
) -> str:
    slot_ids = {slot.slot_id for slot in day.slots}
    relevant = [i for i in feedback if i.slot_ref is None or i.slot_ref in slot_ids]
    return (
        f"Week {week.week_number} ({week.phase}, intensity {week.intensity_modifier}), "
        f"day_of_week {day.day_of_week}.\n"
        f"Session:\n{_dump(day)}\n\n"
        f"Constraints:\n{constraints_context}\n\n"
        f"Exercise Library ({len(candidates)} exercises, pre-filtered for relevance):\n"
        f"{format_exercise_library(list(candidates))}\n\n"
        "Return this session with every slot copied unchanged plus exercise_id, exercise_name and notes."
        f"{build_feedback_section(relevant)}"
    )


def build_validator_message(
    skeleton: ProgramSkeleton,
    assignment: ExerciseAssignment,
    analysis: ProfileAnalysis,
    equipment: Sequence[str],
    experience_level: Optional[str],
) -> str:
    return (
        f"Program Skeleton:\n{_dump(skeleton)}\n\n"
        f"Exercise Assignments:\n{_dump(assignment)}\n\n"
        f"Volume Targets:\n{_dump([t.model_dump(mode='json') for t in analysis.volume_targets])}\n\n"
        f"Constraints:\n{build_constraints_context(analysis, equipment, experience_level)}"
    )


# ============================================================================
# Agents
# ============================================================================

class ProfileAnalyzer:
    """Agent 1: intake + profile -> ProfileAnalysis (fast tier)."""

    def __init__(self, client: ModelClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def run(self, intake: IntakeRequest, profile: Optional[ClientProfile]) -> AgentCallResult[ProfileAnalysis]:
        return await self.client.call_structured(
            PROFILE_ANALYZER_PROMPT,
            build_analyzer_message(intake, profile),
            ProfileAnalysis,
            tier=ModelTier.FAST,
            cache_system_prompt=True,
        )


class ProgramArchitect:
    """Agent 2: analysis + parameters -> ProgramSkeleton."""

    def __init__(self, client: ModelClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def run(
        self,
        intake: IntakeRequest,
        analysis: ProfileAnalysis,
        layout: Sequence[SessionContext] = (),
        feedback: Sequence[ValidationIssue] = (),
    ) -> AgentCallResult[ProgramSkeleton]:
        return await self.client.call_structured(
            PROGRAM_ARCHITECT_PROMPT,
            build_architect_message(intake, analysis, layout, feedback),
            ProgramSkeleton,
            max_tokens=self.settings.LARGE_MAX_OUTPUT_TOKENS,
            cache_system_prompt=True,
        )


class ExerciseSelector:
    """
    Agent 3: skeleton + candidates -> ExerciseAssignment.

    Runs as one call for the whole program, or as one call per session when
    the whole program would not fit the input budget. Per-session calls run
    concurrently under a semaphore and are joined into a single assignment.
    """

    def __init__(self, client: ModelClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def run_whole(
        self,
        skeleton: ProgramSkeleton,
        constraints_context: str,
        candidates: Sequence[CompressedExercise],
        feedback: Sequence[ValidationIssue] = (),
    ) -> AgentCallResult[ExerciseAssignment]:
        return await self.client.call_structured(
            EXERCISE_SELECTOR_PROMPT,
            build_selector_message(skeleton, constraints_context, candidates, feedback),
            ExerciseAssignment,
            max_tokens=self.settings.LARGE_MAX_OUTPUT_TOKENS,
            cache_system_prompt=True,
        )

    async def run_per_session(
        self,
        skeleton: ProgramSkeleton,
        constraints_context: str,
        candidates: Sequence[CompressedExercise],
        feedback: Sequence[ValidationIssue] = (),
    ) -> AgentCallResult[ExerciseAssignment]:
        semaphore = asyncio.Semaphore(self.settings.SESSION_SELECTION_CONCURRENCY)

        async def _select(week: ProgramWeek, day: ProgramDay) -> AgentCallResult[SessionPlan]:
            async with semaphore:
                return await self.client.call_structured(
                    EXERCISE_SELECTOR_PROMPT,
                    build_session_message(week, day, constraints_context, candidates, feedback),
                    SessionPlan,
                    cache_system_prompt=True,
                )

        tasks = [
            asyncio.ensure_future(_select(week, day))
            for week in skeleton.weeks
            for day in week.days
        ]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException as e:
            for task in tasks:
                task.cancel()
            if isinstance(e, Exception):
                # Sessions that finished before the failure were still billed
                finished = sum(
                    task.result().tokens_used
                    for task in tasks
                    if task.done() and not task.cancelled() and task.exception() is None
                )
                e.tokens_used = getattr(e, "tokens_used", 0) + finished
            raise

        assignments: List[AssignedExercise] = []
        for result in results:
            assignments.extend(result.content.to_assignments())
        logger.info("Per-session selection finished: %d sessions, %d assignments", len(results), len(assignments))

        return AgentCallResult(
            content=ExerciseAssignment(assignments=assignments, substitution_notes=[]),
            tokens_used=sum(r.tokens_used for r in results),
        )


class PlanValidator:
    """Agent 4: assembled program -> ValidationResult (coaching review)."""

    def __init__(self, client: ModelClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def run(
        self,
        skeleton: ProgramSkeleton,
        assignment: ExerciseAssignment,
        analysis: ProfileAnalysis,
        equipment: Sequence[str],
        experience_level: Optional[str],
    ) -> AgentCallResult[ValidationResult]:
        return await self.client.call_structured(
            PLAN_VALIDATOR_PROMPT,
            build_validator_message(skeleton, assignment, analysis, equipment, experience_level),
            ValidationResult,
            cache_system_prompt=True,
        )

