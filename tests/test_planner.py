"""
Tests for the session layout planner.

Test scenarios:
1. Default day spreads and preferred training days
2. Split templates cycle when sessions outnumber templates
3. Periodization phases, including the final deload week
"""

import pytest

from programgen.planner import DELOAD_MIN_WEEKS, SessionLayoutPlanner, format_session_layout
from programgen.schemas import IntakeRequest, Periodization, SplitType


def _intake(weeks=4, sessions=3, **overrides) -> IntakeRequest:
    return IntakeRequest(client_id="client-1", goals=["muscle_gain"], duration_weeks=weeks, sessions_per_week=sessions, **overrides)


def _analysis(analysis, split="full_body", periodization="linear"):
    return analysis.model_copy(update={"recommended_split": SplitType(split), "recommended_periodization": Periodization(periodization)})


def test_one_session_per_training_day(analysis):
    sessions = SessionLayoutPlanner(_analysis(analysis), _intake(weeks=4, sessions=3)).plan()

    assert len(sessions) == 12
    assert [s.day_of_week for s in sessions[:3]] == [1, 3, 5]
    assert [s.slot_prefix for s in sessions[:3]] == ["w1d1", "w1d3", "w1d5"]
    assert sessions[-1].week_number == 4


def test_preferred_days_used_when_count_matches(analysis):
    planner = SessionLayoutPlanner(_analysis(analysis), _intake(sessions=2))

    assert [s.day_of_week for s in planner.plan([6, 2])[:2]] == [2, 6]
    # Three preferred days for two sessions: fall back to the default spread
    assert [s.day_of_week for s in planner.plan([1, 2, 3])[:2]] == [1, 4]


def test_upper_lower_two_sessions(analysis):
    sessions = SessionLayoutPlanner(_analysis(analysis, split="upper_lower"), _intake(weeks=1, sessions=2)).plan()
    assert [s.label for s in sessions] == ["Upper Body", "Lower Body"]


def test_templates_cycle_for_many_sessions(analysis):
    sessions = SessionLayoutPlanner(_analysis(analysis, split="full_body"), _intake(weeks=1, sessions=6)).plan()

    labels = [s.label for s in sessions]
    assert labels == ["Full Body A", "Full Body B", "Full Body C", "Full Body D", "Full Body A", "Full Body B"]


def test_linear_phases(analysis):
    sessions = SessionLayoutPlanner(_analysis(analysis), _intake(weeks=4, sessions=1)).plan()

    assert [(s.phase, s.intensity_modifier) for s in sessions] == [
        ("Accumulation", "moderate"),
        ("Intensification", "high"),
        ("Intensification", "high"),
        ("Peak", "very high"),
    ]


def test_deload_final_week_for_long_programs(analysis):
    sessions = SessionLayoutPlanner(_analysis(analysis), _intake(weeks=DELOAD_MIN_WEEKS, sessions=1)).plan()

    assert sessions[-1].phase == "Deload"
    assert sessions[-1].intensity_modifier == "low"
    assert all(s.phase != "Deload" for s in sessions[:-1])


def test_no_deload_for_short_programs(analysis):
    sessions = SessionLayoutPlanner(_analysis(analysis), _intake(weeks=DELOAD_MIN_WEEKS - 1, sessions=1)).plan()
    assert all(s.phase != "Deload" for s in sessions)


@pytest.mark.parametrize(
    "periodization, first_phase",
    [
        ("undulating", "Undulating"),
        ("block", "Hypertrophy"),
        ("reverse_linear", "Strength"),
        ("none", "General Training"),
    ],
)
def test_periodization_first_phase(analysis, periodization, first_phase):
    sessions = SessionLayoutPlanner(_analysis(analysis, periodization=periodization), _intake(weeks=3, sessions=1)).plan()
    assert sessions[0].phase == first_phase


def test_format_layout(analysis):
    sessions = SessionLayoutPlanner(_analysis(analysis, split="upper_lower"), _intake(weeks=1, sessions=2)).plan()
    text = format_session_layout(sessions)

    lines = text.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("Week 1 (Peak, intensity very high) | day_of_week 1 | Upper Body:")
    assert lines[1].endswith("slot ids w1d4s1, w1d4s2, ...")
