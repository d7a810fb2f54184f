"""
Session layout planner.

Lays out the calendar of a program before any exercise slot exists:
- Which days of the week train (client preference or a default spread)
- What each day focuses on, given the split
- Which phase and intensity each week sits in, given the periodization

The layout is handed to the Program Architect as a starting frame, so its
day labels, slot id prefixes and deload placement are consistent between
runs.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from programgen.plan_schemas import ProfileAnalysis, SessionContext
from programgen.schemas import IntakeRequest, Periodization, SplitType

logger = logging.getLogger(__name__)

# A final deload week is added to programs at least this long
DELOAD_MIN_WEEKS = 6

DEFAULT_DAY_SPREADS: Dict[int, List[int]] = {
    1: [1],                      # Mon
    2: [1, 4],                   # Mon, Thu
    3: [1, 3, 5],                # Mon, Wed, Fri
    4: [1, 2, 4, 5],             # Mon, Tue, Thu, Fri
    5: [1, 2, 3, 5, 6],          # Mon-Wed, Fri, Sat
    6: [1, 2, 3, 4, 5, 6],       # Mon-Sat
    7: [1, 2, 3, 4, 5, 6, 7],
}

DayTemplate = Tuple[str, str]

_FULL_BODY: List[DayTemplate] = [
    ("Full Body A", "push emphasis (chest, shoulders, triceps) with lower body compounds"),
    ("Full Body B", "pull emphasis (back, biceps) with lower body compounds"),
    ("Full Body C", "lower body emphasis (quads, hamstrings, glutes) with upper accessories"),
    ("Full Body D", "balanced full body with core and stability work"),
]

_UPPER_LOWER: List[DayTemplate] = [
    ("Upper Body A", "chest, shoulders, triceps emphasis"),
    ("Lower Body A", "quad-dominant (squats, leg press, lunges)"),
    ("Upper Body B", "back, biceps, rear delts emphasis"),
    ("Lower Body B", "hip-dominant (deadlifts, hip thrusts, hamstrings)"),
    ("Upper Body C", "balanced push/pull with arm isolation"),
    ("Lower Body C", "unilateral focus and posterior chain"),
]

_PUSH_PULL_LEGS: List[DayTemplate] = [
    ("Push A", "chest emphasis, shoulders, triceps"),
    ("Pull A", "back width (lats), biceps"),
    ("Legs A", "quad-dominant, calves"),
    ("Push B", "shoulder emphasis, chest, triceps"),
    ("Pull B", "back thickness (traps, rhomboids), biceps"),
    ("Legs B", "hip-dominant, hamstrings, glutes"),
]

_PUSH_PULL: List[DayTemplate] = [
    ("Push A + Quads", "chest emphasis, shoulders, triceps, quads"),
    ("Pull A + Hams", "back emphasis, biceps, hamstrings, glutes"),
    ("Push B + Shoulders", "shoulder emphasis, chest, triceps, quads"),
    ("Pull B + Posterior", "back thickness, biceps, glutes, hamstrings"),
]

_BODY_PART: List[DayTemplate] = [
    ("Chest", "chest, front delts"),
    ("Back", "lats, traps, rhomboids"),
    ("Shoulders", "all delt heads, traps"),
    ("Arms", "biceps, triceps, forearms"),
    ("Quads & Calves", "quadriceps, calves"),
    ("Hamstrings & Glutes", "hamstrings, glutes, posterior chain"),
]

_MOVEMENT_PATTERN: List[DayTemplate] = [
    ("Push Day", "horizontal and vertical push patterns"),
    ("Pull Day", "horizontal and vertical pull patterns"),
    ("Squat & Lunge", "knee-dominant patterns (squats, lunges)"),
    ("Hinge & Carry", "hip-dominant patterns (deadlifts, carries)"),
    ("Power & Rotation", "explosive and rotational patterns"),
    ("Mixed Patterns", "balanced combination of all patterns"),
]


class SessionLayoutPlanner:
    """
    Builds the week/day frame of a program from split and periodization.

    Sessions beyond the number of templates a split defines reuse the
    templates in order, so every requested session gets a label.
    """

    def __init__(self, analysis: ProfileAnalysis, intake: IntakeRequest):
        """
        Initialize the planner.

        Args:
            analysis: Profile analysis (split and periodization already resolved)
            intake: The generation request (duration and sessions per week)
        """
        self.analysis = analysis
        self.intake = intake

    def plan(self, preferred_days: Optional[Sequence[int]] = None) -> List[SessionContext]:
        """
        Lay out every session of the program.

        Args:
            preferred_days: Client's preferred training days (1=Mon..7=Sun)

        Returns:
            SessionContext per session, ordered by week then day
        """
        sessions_per_week = self.intake.sessions_per_week
        templates = self._get_day_templates(self.analysis.recommended_split, sessions_per_week)
        phases = self._get_week_phases(self.analysis.recommended_periodization, self.intake.duration_weeks)
        days = self._get_day_numbers(sessions_per_week, preferred_days)

        sessions: List[SessionContext] = []
        for week_number, phase, intensity in phases:
            for (label, focus), day in zip(templates, days):
                sessions.append(
                    SessionContext(
                        week_number=week_number,
                        day_of_week=day,
                        phase=phase,
                        intensity_modifier=intensity,
                        label=label,
                        focus=focus,
                        slot_prefix=f"w{week_number}d{day}",
                    )
                )

        logger.debug(
            "Laid out %d sessions (%s, %s, days=%s)",
            len(sessions),
            self.analysis.recommended_split.value,
            self.analysis.recommended_periodization.value,
            days,
        )
        return sessions

    def _get_day_templates(self, split: SplitType, n: int) -> List[DayTemplate]:
        """
        Day labels and focus for a split.

        Small session counts get condensed templates that still cover the
        whole body each week.
        """
        if split == SplitType.UPPER_LOWER:
            if n <= 2:
                templates = [
                    ("Upper Body", "chest, back, shoulders, arms"),
                    ("Lower Body", "quads, hamstrings, glutes, calves"),
                ]
            elif n == 3:
                templates = [
                    ("Upper Body A", "chest, shoulders, triceps emphasis"),
                    ("Lower Body", "quads, hamstrings, glutes, calves"),
                    ("Upper Body B", "back, biceps, rear delts emphasis"),
                ]
            else:
                templates = _UPPER_LOWER
        elif split == SplitType.PUSH_PULL_LEGS:
            if n <= 3:
                templates = [
                    ("Push", "chest, shoulders, triceps"),
                    ("Pull", "back, biceps, rear delts"),
                    ("Legs", "quads, hamstrings, glutes, calves"),
                ]
            elif n == 4:
                templates = [
                    ("Push", "chest, shoulders, triceps"),
                    ("Pull", "back, biceps, rear delts"),
                    ("Legs", "quads, hamstrings, glutes, calves"),
                    ("Upper Power", "heavy compound push and pull"),
                ]
            else:
                templates = _PUSH_PULL_LEGS
        elif split == SplitType.PUSH_PULL:
            if n <= 2:
                templates = [
                    ("Push + Quads", "chest, shoulders, triceps, quads"),
                    ("Pull + Hams", "back, biceps, hamstrings, glutes"),
                ]
            else:
                templates = _PUSH_PULL
        elif split == SplitType.BODY_PART:
            if n <= 3:
                templates = [
                    ("Chest & Triceps", "chest, triceps"),
                    ("Back & Biceps", "back, biceps, rear delts"),
                    ("Legs & Shoulders", "quads, hamstrings, glutes, shoulders"),
                ]
            elif n == 4:
                templates = [
                    ("Chest", "chest, front delts"),
                    ("Back", "back, rear delts"),
                    ("Shoulders & Arms", "shoulders, biceps, triceps"),
                    ("Legs", "quads, hamstrings, glutes, calves"),
                ]
            elif n == 5:
                templates = _BODY_PART[:4] + [("Legs", "quads, hamstrings, glutes, calves")]
            else:
                templates = _BODY_PART
        elif split == SplitType.MOVEMENT_PATTERN:
            templates = _MOVEMENT_PATTERN
        else:
            # full_body and custom
            templates = _FULL_BODY

        return [templates[i % len(templates)] for i in range(n)]

    def _get_week_phases(self, periodization: Periodization, duration_weeks: int) -> List[Tuple[int, str, str]]:
        """
        Phase name and intensity modifier for every week.

        Returns:
            List of (week_number, phase, intensity_modifier)
        """
        phases = []
        block_size = max(2, duration_weeks // 3)
        undulating = ["moderate", "high", "moderate-high"]

        for week in range(1, duration_weeks + 1):
            progress = week / duration_weeks

            if duration_weeks >= DELOAD_MIN_WEEKS and week == duration_weeks:
                phases.append((week, "Deload", "low"))
            elif periodization == Periodization.LINEAR:
                if progress <= 0.4:
                    phases.append((week, "Accumulation", "moderate"))
                elif progress <= 0.75:
                    phases.append((week, "Intensification", "high"))
                else:
                    phases.append((week, "Peak", "very high"))
            elif periodization == Periodization.UNDULATING:
                phases.append((week, "Undulating", undulating[(week - 1) % len(undulating)]))
            elif periodization == Periodization.BLOCK:
                if week <= block_size:
                    phases.append((week, "Hypertrophy", "moderate"))
                elif week <= block_size * 2:
                    phases.append((week, "Strength", "high"))
                else:
                    phases.append((week, "Power / Peaking", "very high"))
            elif periodization == Periodization.REVERSE_LINEAR:
                if progress <= 0.4:
                    phases.append((week, "Strength", "high"))
                elif progress <= 0.75:
                    phases.append((week, "Hypertrophy", "moderate"))
                else:
                    phases.append((week, "Endurance", "moderate-low"))
            else:
                phases.append((week, "General Training", "moderate"))

        return phases

    def _get_day_numbers(self, sessions_per_week: int, preferred_days: Optional[Sequence[int]]) -> List[int]:
        """Use the client's preferred days only when they match the session count."""
        if preferred_days and len(preferred_days) == sessions_per_week:
            return sorted(preferred_days)
        return DEFAULT_DAY_SPREADS.get(sessions_per_week, DEFAULT_DAY_SPREADS[3])


def format_session_layout(sessions: Sequence[SessionContext]) -> str:
    """Render a session layout as one line per session for a prompt."""
    lines = []
    for s in sessions:
        lines.append(
            f"Week {s.week_number} ({s.phase}, intensity {s.intensity_modifier}) | "
            f"day_of_week {s.day_of_week} | {s.label}: {s.focus} | slot ids {s.slot_prefix}s1, {s.slot_prefix}s2, ..."
        )
    return "\n".join(lines)
