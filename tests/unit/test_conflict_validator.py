"""
Unit tests for plan set validation.
"""

from datetime import date, datetime

from studyplan.models.commitment import FixedCommitment
from studyplan.models.enums import PlanConflictKind, SessionStatus
from studyplan.models.study_plan import StudyPlan, StudySession, UserSettings
from studyplan.services.conflict_validator import find_plan_conflict, has_plan_conflicts

TUESDAY = date(2025, 3, 11)
NOW = datetime(2025, 3, 10, 5, 0)


def make_session(task_id: str, start_time: str, end_time: str, hours: float, **overrides) -> StudySession:
    return StudySession(
        task_id=task_id,
        start_time=start_time,
        end_time=end_time,
        allocated_hours=hours,
        **overrides,
    )


def make_plan(*sessions: StudySession) -> list[StudyPlan]:
    return [StudyPlan.for_date(TUESDAY, list(sessions), 6)]


def test_valid_plan_has_no_conflict():
    plans = make_plan(make_session("a", "06:00", "07:00", 1), make_session("b", "07:00", "08:00", 1))
    assert find_plan_conflict(plans, UserSettings(), [], NOW) is None
    assert not has_plan_conflicts(plans, UserSettings(), [], NOW)


def test_overlapping_sessions():
    plans = make_plan(make_session("a", "06:00", "07:00", 1), make_session("b", "06:30", "07:30", 1))
    conflict = find_plan_conflict(plans, UserSettings(), [], NOW)
    assert conflict.kind == PlanConflictKind.SESSION_OVERLAP
    assert conflict.task_ids == ["a", "b"]


def test_skipped_sessions_are_ignored():
    plans = make_plan(
        make_session("a", "06:00", "07:00", 1),
        make_session("b", "06:30", "07:30", 1, status=SessionStatus.SKIPPED),
    )
    assert find_plan_conflict(plans, UserSettings(), [], NOW) is None


def test_daily_capacity_exceeded():
    settings = UserSettings(daily_available_hours=1)
    plans = make_plan(make_session("a", "06:00", "06:45", 0.75), make_session("b", "07:00", "07:45", 0.75))
    conflict = find_plan_conflict(plans, settings, [], NOW)
    assert conflict.kind == PlanConflictKind.DAILY_CAPACITY


def test_redistributed_sessions_are_exempt_from_capacity():
    settings = UserSettings(daily_available_hours=1)
    plans = make_plan(
        make_session("a", "06:00", "07:00", 1),
        make_session("b", "07:00", "07:45", 0.75, original_time="09:00", original_date=date(2025, 3, 7)),
    )
    assert find_plan_conflict(plans, settings, [], NOW) is None


def test_session_too_short():
    plans = make_plan(make_session("a", "06:00", "06:10", 10 / 60))
    conflict = find_plan_conflict(plans, UserSettings(), [], NOW)
    assert conflict.kind == PlanConflictKind.SESSION_LENGTH


def test_session_overlapping_commitment():
    commitment = FixedCommitment(
        id="c1",
        title="Work shift",
        start_time="09:00",
        end_time="10:00",
        days_of_week=[2],
    )
    plans = make_plan(make_session("a", "09:30", "10:30", 1))
    conflict = find_plan_conflict(plans, UserSettings(), [commitment], NOW)
    assert conflict.kind == PlanConflictKind.COMMITMENT_OVERLAP
    assert conflict.date == TUESDAY
