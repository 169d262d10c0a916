"""
Unit tests for RedistributionService.
"""

from datetime import date, datetime

from studyplan.models.enums import RedistributionIssueCode, SessionStatus
from studyplan.models.study_plan import StudyPlan, StudySession, UserSettings
from studyplan.models.task import Task
from studyplan.services.redistribution_service import (
    RedistributionService,
    cleanup_orphaned_sessions,
    redistribute_missed_sessions,
    session_priority,
)
from studyplan.services.session_status import classify_session_status

MONDAY = date(2025, 3, 10)
TUESDAY = date(2025, 3, 11)
WEDNESDAY = date(2025, 3, 12)
NOW = datetime(2025, 3, 11, 8, 0)


def make_task(task_id: str, deadline: date, importance: bool = False) -> Task:
    return Task(
        id=task_id,
        title=f"Task {task_id}",
        deadline=deadline,
        importance=importance,
        estimated_hours=4,
    )


def make_session(task_id: str, start_time: str, end_time: str, hours: float, **overrides) -> StudySession:
    return StudySession(
        task_id=task_id,
        start_time=start_time,
        end_time=end_time,
        allocated_hours=hours,
        **overrides,
    )


def test_missed_session_moves_to_today():
    missed = make_session("a", "09:00", "10:00", 1)
    plans = [StudyPlan.for_date(MONDAY, [missed], 6)]
    assert classify_session_status(missed, MONDAY, NOW) == SessionStatus.MISSED

    result = redistribute_missed_sessions(plans, UserSettings(), [], [make_task("a", date(2025, 3, 14))], NOW)

    assert result.feedback.success
    assert not result.rolled_back
    assert result.feedback.successfully_moved == 1
    assert result.feedback.remaining_missed == 0
    assert [plan.date for plan in result.updated_plans] == [TUESDAY]

    moved = result.updated_plans[0].planned_tasks[0]
    assert moved.original_date == MONDAY
    assert moved.original_time == "09:00"
    assert moved.start_time == "08:00"
    assert moved.end_time == "09:00"
    assert moved.rescheduled_at == NOW


def test_preflight_refuses_when_time_is_insufficient():
    settings = UserSettings(daily_available_hours=3, work_days=[2])
    plans = [
        StudyPlan.for_date(
            TUESDAY,
            [
                make_session("a", "06:00", "11:00", 5),
                make_session("b", "12:00", "17:00", 5),
            ],
            3,
        )
    ]
    now = datetime(2025, 3, 12, 8, 0)

    result = redistribute_missed_sessions(plans, settings, [], [], now)

    assert result.updated_plans is plans
    assert not result.feedback.success
    assert result.feedback.total_missed == 2
    codes = [issue.code for issue in result.feedback.issues]
    assert RedistributionIssueCode.INSUFFICIENT_TIME in codes
    assert any("Insufficient available time" in issue.message for issue in result.feedback.issues)


def test_preflight_reports_no_missed_sessions():
    result = redistribute_missed_sessions([], UserSettings(), [], [], NOW)

    assert not result.feedback.success
    assert [issue.code for issue in result.feedback.issues] == [RedistributionIssueCode.NO_MISSED_SESSIONS]


def test_preflight_reports_no_work_days():
    plans = [StudyPlan.for_date(MONDAY, [make_session("a", "09:00", "10:00", 1)], 6)]
    result = redistribute_missed_sessions(plans, UserSettings(work_days=[]), [], [], NOW)

    codes = [issue.code for issue in result.feedback.issues]
    assert RedistributionIssueCode.NO_WORK_DAYS in codes
    assert result.updated_plans is plans


def test_urgent_deadline_does_not_block():
    plans = [StudyPlan.for_date(MONDAY, [make_session("a", "09:00", "10:00", 1)], 6)]
    tasks = [make_task("a", WEDNESDAY)]

    result = redistribute_missed_sessions(plans, UserSettings(), [], tasks, NOW)

    assert result.feedback.success
    assert [issue.code for issue in result.feedback.issues] == [RedistributionIssueCode.URGENT_DEADLINE]


def test_rolls_back_when_result_fails_validation():
    missed = make_session("a", "09:00", "10:00", 1)
    plans = [
        StudyPlan.for_date(MONDAY, [missed], 6),
        StudyPlan.for_date(
            WEDNESDAY,
            [
                make_session("b", "06:00", "07:00", 1),
                make_session("c", "06:30", "07:30", 1),
            ],
            6,
        ),
    ]

    result = redistribute_missed_sessions(plans, UserSettings(), [], [], NOW)

    assert result.rolled_back
    assert result.updated_plans is plans
    assert result.moved_sessions == []
    assert result.failed_sessions == [missed]
    assert result.feedback.conflicts_detected


def test_failed_move_when_no_slot_in_search_window():
    plans = [StudyPlan.for_date(MONDAY, [make_session("a", "09:00", "10:00", 1)], 6)]
    service = RedistributionService(search_days=0, lookahead_days=0)
    late = datetime(2025, 3, 11, 22, 30)

    result = service.redistribute_missed_sessions(plans, UserSettings(), [], [], late)

    assert result.moved_sessions == []
    assert len(result.failed_sessions) == 1
    assert result.feedback.remaining_missed == 1
    assert not result.feedback.success


def test_session_priority():
    today = TUESDAY
    assert session_priority(make_task("a", date(2025, 3, 16), importance=True), today) == 1095
    assert session_priority(make_task("b", date(2025, 3, 10)), today) == 2000
    assert session_priority(None, today) == 0


def test_higher_priority_task_moves_first():
    plans = [
        StudyPlan.for_date(
            MONDAY,
            [
                make_session("low", "09:00", "10:00", 1),
                make_session("high", "10:00", "11:00", 1),
            ],
            6,
        )
    ]
    tasks = [make_task("low", date(2025, 3, 20)), make_task("high", date(2025, 3, 20), importance=True)]

    result = redistribute_missed_sessions(plans, UserSettings(), [], tasks, NOW)

    assert [s.task_id for s in result.moved_sessions] == ["high", "low"]
    assert result.moved_sessions[0].start_time == "08:00"


def test_moved_session_keeps_its_slot_next_to_untimed_session():
    plans = [
        StudyPlan.for_date(MONDAY, [make_session("a", "09:00", "10:00", 1)], 6),
        StudyPlan.for_date(TUESDAY, [make_session("a", "", "", 1, session_number=2)], 6),
    ]

    result = redistribute_missed_sessions(plans, UserSettings(), [], [make_task("a", date(2025, 3, 14))], NOW)

    assert result.feedback.success
    assert [(s.start_time, s.end_time) for s in result.moved_sessions] == [("08:00", "09:00")]
    tuesday = result.updated_plans[0]
    assert tuesday.date == TUESDAY
    moved = [s for s in tuesday.planned_tasks if s.original_date == MONDAY]
    assert len(moved) == 1
    assert (moved[0].start_time, moved[0].end_time) == ("08:00", "09:00")
    assert sum(s.allocated_hours for s in tuesday.planned_tasks) == 2


def test_cleanup_drops_moved_session_left_on_original_date():
    moved = make_session(
        "a", "08:00", "09:00", 1, original_date=MONDAY, original_time="09:00", rescheduled_at=NOW
    )
    leftover = moved.model_copy(update={"start_time": "09:00", "end_time": "10:00"})
    other = make_session("b", "11:00", "12:00", 1)
    plans = [
        StudyPlan.for_date(MONDAY, [leftover, other], 6),
        StudyPlan.for_date(TUESDAY, [moved], 6),
    ]

    cleaned = cleanup_orphaned_sessions(plans, [moved])

    assert [s.task_id for s in cleaned[0].planned_tasks] == ["b"]
    assert cleaned[1] is plans[1]
