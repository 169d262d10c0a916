"""
Plan utility functions.

Helpers shared by the generator, redistribution engine and validator:
session bounds, work-day checks, task ordering and plan-set bookkeeping.
"""

import math
from datetime import date, timedelta
from typing import Iterable, Optional

from studyplan.core.config import get_settings
from studyplan.models.study_plan import StudyPlan, StudySession, UserSettings
from studyplan.models.task import Task
from studyplan.utils.datetime_utils import hours_to_minutes, weekday_index


def min_session_minutes(settings: UserSettings) -> int:
    """Shortest session the engine creates (falls back when unset)."""
    return settings.min_session_length or get_settings().DEFAULT_MIN_SESSION_MINUTES


def max_session_minutes(settings: UserSettings, max_session_hours: Optional[float] = None) -> int:
    """Longest session: min(max session hours, daily capacity)."""
    cap_hours = max_session_hours if max_session_hours is not None else get_settings().MAX_SESSION_HOURS
    return hours_to_minutes(min(cap_hours, settings.daily_available_hours))


def daily_capacity_minutes(settings: UserSettings) -> int:
    return hours_to_minutes(settings.daily_available_hours)


def task_budget_minutes(task: Task) -> int:
    """Whole minutes of a task's estimate (never rounded up past the estimate)."""
    return int(math.floor(round(task.estimated_hours * 60, 6)))


def session_minutes(session: StudySession) -> int:
    return hours_to_minutes(session.allocated_hours)


def is_work_day(day: date, settings: UserSettings) -> bool:
    return weekday_index(day) in settings.work_days


def adjusted_deadline(task: Task, settings: UserSettings) -> date:
    """Deadline shifted earlier by the user's buffer days."""
    return task.deadline - timedelta(days=settings.buffer_days)


def task_priority_key(task: Task) -> tuple:
    """Important first, then earlier deadline."""
    return (not task.importance, task.deadline)


def sort_tasks_by_priority(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=task_priority_key)


def schedulable_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Pending tasks with remaining hours, in priority order."""
    return sort_tasks_by_priority(task for task in tasks if task.is_schedulable)


def sort_sessions_by_task_priority(
    sessions: list[StudySession],
    tasks_by_id: dict[str, Task],
) -> list[StudySession]:
    """Order sessions by their task's priority; unknown tasks go last."""

    def key(session: StudySession):
        task = tasks_by_id.get(session.task_id)
        if task is None:
            return (True, True, date.max)
        return (False, *task_priority_key(task))

    return sorted(sessions, key=key)


def plans_by_date(plans: Iterable[StudyPlan]) -> dict[date, StudyPlan]:
    return {plan.date: plan for plan in plans}


def with_sessions(plan: StudyPlan, sessions: list[StudySession]) -> StudyPlan:
    """Copy of the plan holding the given sessions (progress hours recomputed)."""
    return StudyPlan.for_date(plan.date, sessions, plan.available_hours, plan.is_overloaded)


def prune_empty_plans(plans: Iterable[StudyPlan]) -> list[StudyPlan]:
    """Drop plans without sessions and sort by date."""
    return sorted((plan for plan in plans if plan.planned_tasks), key=lambda plan: plan.date)


def non_skipped(sessions: Iterable[StudySession]) -> list[StudySession]:
    return [session for session in sessions if not session.is_skipped]
