"""
Unit tests for session done/skip handling and task completion.
"""

from datetime import date, datetime

import pytest

from studyplan.core.exceptions import NotFoundError
from studyplan.models.enums import SessionStatus, TaskCompletion, TaskStatus
from studyplan.models.study_plan import StudyPlan, StudySession
from studyplan.models.task import Task
from studyplan.services.session_lifecycle import (
    calculate_total_study_hours,
    evaluate_task_completion,
    filter_skipped_sessions,
    mark_session_done,
    preserve_session_state,
    skip_session,
    undo_session_done,
    unskip_session,
)

MONDAY = date(2025, 3, 10)
TUESDAY = date(2025, 3, 11)
NOW = datetime(2025, 3, 10, 18, 0)


def make_task(task_id: str = "t1", estimated_hours: float = 3) -> Task:
    return Task(id=task_id, title="Reading", deadline=date(2025, 3, 14), estimated_hours=estimated_hours)


def make_session(session_number: int = 1, hours: float = 1, **overrides) -> StudySession:
    return StudySession(
        task_id="t1",
        start_time="09:00",
        end_time="10:00",
        allocated_hours=hours,
        session_number=session_number,
        **overrides,
    )


def two_day_plans() -> list[StudyPlan]:
    return [
        StudyPlan.for_date(MONDAY, [make_session(1, 1.5)], 6),
        StudyPlan.for_date(TUESDAY, [make_session(1, 1)], 6),
    ]


def test_mark_done_with_work_remaining():
    result = mark_session_done(two_day_plans(), [make_task()], MONDAY, "t1", 1, actual_hours=1.25, now=NOW)

    session = result.plans[0].planned_tasks[0]
    assert session.done
    assert session.status == SessionStatus.COMPLETED
    assert session.actual_hours == 1.25
    assert session.completed_at == NOW
    assert result.plans[0].total_study_hours == pytest.approx(1.5)
    assert result.completed_task_ids == []
    assert result.tasks[0].status == TaskStatus.PENDING
    assert result.tasks[0].estimated_hours == pytest.approx(1.75)


def test_last_session_done_completes_task_with_actual_total():
    first = mark_session_done(two_day_plans(), [make_task()], MONDAY, "t1", 1, now=NOW)
    second = skip_session(first.plans, first.tasks, TUESDAY, "t1", 1, now=NOW)

    assert second.completed_task_ids == ["t1"]
    task = second.tasks[0]
    assert task.status == TaskStatus.COMPLETED
    assert task.estimated_hours == pytest.approx(2.5)
    assert task.completed_at == NOW


def test_single_skipped_session_completes_task():
    plans = [StudyPlan.for_date(MONDAY, [make_session()], 6)]

    result = skip_session(plans, [make_task()], MONDAY, "t1", 1, now=NOW)

    assert evaluate_task_completion("t1", result.plans) == TaskCompletion.SKIPPED_ONLY
    assert result.completed_task_ids == ["t1"]
    assert result.tasks[0].status == TaskStatus.COMPLETED
    assert result.tasks[0].estimated_hours == 3


def test_undo_reverts_task_to_pending():
    plans = [StudyPlan.for_date(MONDAY, [make_session()], 6)]
    done = mark_session_done(plans, [make_task()], MONDAY, "t1", 1, now=NOW)
    assert done.tasks[0].status == TaskStatus.COMPLETED

    undone = undo_session_done(done.plans, done.tasks, MONDAY, "t1", 1)

    session = undone.plans[0].planned_tasks[0]
    assert not session.done
    assert session.status == SessionStatus.SCHEDULED
    assert undone.tasks[0].status == TaskStatus.PENDING
    assert undone.tasks[0].completed_at is None


def test_unskip_restores_scheduled_status():
    plans = [StudyPlan.for_date(MONDAY, [make_session(status=SessionStatus.SKIPPED)], 6)]

    result = unskip_session(plans, [make_task()], MONDAY, "t1", 1)

    assert result.plans[0].planned_tasks[0].status == SessionStatus.SCHEDULED
    assert evaluate_task_completion("t1", result.plans) == TaskCompletion.NONE


def test_unknown_session_raises():
    with pytest.raises(NotFoundError):
        mark_session_done(two_day_plans(), [make_task()], MONDAY, "t1", 7, now=NOW)
    with pytest.raises(NotFoundError):
        skip_session(two_day_plans(), [make_task()], date(2025, 3, 20), "t1", 1, now=NOW)


def test_preserve_session_state():
    previous = [
        StudyPlan.for_date(
            MONDAY,
            [
                make_session(1, done=True, status=SessionStatus.COMPLETED, actual_hours=0.9, completed_at=NOW),
            ],
            6,
        ),
        StudyPlan.for_date(TUESDAY, [make_session(1, status=SessionStatus.SKIPPED)], 6),
    ]
    regenerated = [
        StudyPlan.for_date(MONDAY, [make_session(1)], 6),
        StudyPlan.for_date(TUESDAY, [make_session(1)], 6),
        StudyPlan.for_date(date(2025, 3, 12), [make_session(1)], 6),
    ]

    result = preserve_session_state(regenerated, previous)

    monday, tuesday, wednesday = (plan.planned_tasks[0] for plan in result)
    assert monday.done and monday.actual_hours == 0.9
    assert tuesday.status == SessionStatus.SKIPPED
    assert not wednesday.done and wednesday.status == SessionStatus.SCHEDULED


def test_study_hour_helpers():
    sessions = [
        make_session(1, 1, done=True),
        make_session(2, 0.5, status=SessionStatus.SKIPPED),
        make_session(3, 2),
    ]
    plans = [StudyPlan.for_date(MONDAY, sessions, 6)]

    assert calculate_total_study_hours(plans) == pytest.approx(1)
    assert [s.session_number for s in filter_skipped_sessions(sessions)] == [1, 3]


def three_session_plans() -> list[StudyPlan]:
    return [
        StudyPlan.for_date(MONDAY, [make_session(1)], 6),
        StudyPlan.for_date(TUESDAY, [make_session(2)], 6),
        StudyPlan.for_date(date(2025, 3, 12), [make_session(3)], 6),
    ]


def test_done_session_reduces_remaining_hours():
    result = mark_session_done(three_session_plans(), [make_task()], MONDAY, "t1", 1, actual_hours=1, now=NOW)

    assert result.tasks[0].estimated_hours == pytest.approx(2)
    assert result.tasks[0].status == TaskStatus.PENDING
    assert result.completed_task_ids == []

    undone = undo_session_done(result.plans, result.tasks, MONDAY, "t1", 1)

    assert undone.tasks[0].estimated_hours == pytest.approx(3)


def test_done_session_without_actual_hours_uses_allocation():
    result = mark_session_done(three_session_plans(), [make_task()], TUESDAY, "t1", 2, now=NOW)
    assert result.tasks[0].estimated_hours == pytest.approx(2)


def test_task_completes_when_remaining_hours_reach_zero():
    result = mark_session_done(
        three_session_plans(), [make_task(estimated_hours=1)], MONDAY, "t1", 1, actual_hours=1.5, now=NOW
    )

    task = result.tasks[0]
    assert task.estimated_hours == 0
    assert task.status == TaskStatus.COMPLETED
    assert task.completed_at == NOW
    assert result.completed_task_ids == ["t1"]
