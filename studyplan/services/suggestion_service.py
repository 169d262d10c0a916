"""
Suggestion service.

Unscheduled-work reports after plan generation and priority-based advice
over the task list.
"""

from datetime import date
from typing import Optional

from studyplan.models.enums import SuggestionType, TaskStatus
from studyplan.models.study_plan import PlanSuggestion, SmartSuggestion
from studyplan.models.task import Task
from studyplan.services.plan_utils import task_budget_minutes
from studyplan.utils.datetime_utils import local_now

URGENT_DAYS = 3


def get_unscheduled_minutes_for_tasks(
    tasks: list[Task],
    scheduled_minutes: dict[str, int],
    threshold_minutes: int,
) -> list[PlanSuggestion]:
    """
    Report pending tasks whose unplaced minutes exceed a threshold.

    Args:
        tasks: Tasks considered, in report order
        scheduled_minutes: Minutes placed per task id
        threshold_minutes: Unplaced minutes must be strictly greater than this

    Returns:
        One PlanSuggestion per short task
    """
    suggestions = []
    for task in tasks:
        if task.status != TaskStatus.PENDING:
            continue
        unscheduled = max(0, task_budget_minutes(task) - scheduled_minutes.get(task.id, 0))
        if unscheduled > threshold_minutes:
            suggestions.append(
                PlanSuggestion(
                    task_id=task.id,
                    task_title=task.title,
                    unscheduled_minutes=unscheduled,
                    importance=task.importance,
                    deadline=task.deadline,
                )
            )
    return suggestions


def _days_until(task: Task, today: date) -> int:
    return (task.deadline - today).days


def generate_smart_suggestions(
    tasks: list[Task],
    unscheduled_tasks: Optional[list[Task]] = None,
    today: Optional[date] = None,
) -> list[SmartSuggestion]:
    """
    Build advice grouped by urgency and importance.

    Urgent means the deadline is at most three days away. Overdue and
    urgent groups produce warnings, the rest suggestions, and completed
    tasks a celebration.

    Args:
        tasks: All tasks
        unscheduled_tasks: Tasks the last generation could not fully place
        today: Reference date (defaults to the local date)
    """
    current = today or local_now().date()
    pending = [task for task in tasks if task.status == TaskStatus.PENDING]
    suggestions: list[SmartSuggestion] = []

    overdue = [task for task in pending if task.deadline < current]
    if overdue:
        suggestions.append(
            SmartSuggestion(
                type=SuggestionType.WARNING,
                message=f"You have {len(overdue)} overdue task(s). Consider extending deadlines or increasing study hours.",
                action="Review and update deadlines for overdue tasks.",
            )
        )

    urgent = [task for task in pending if _days_until(task, current) <= URGENT_DAYS]
    urgent_important = [task for task in urgent if task.importance]
    urgent_not_important = [task for task in urgent if not task.importance]
    if urgent_important:
        suggestions.append(
            SmartSuggestion(
                type=SuggestionType.WARNING,
                message=f"You have {len(urgent_important)} important task(s) due within {URGENT_DAYS} days.",
                action="Focus on these tasks first to avoid last-minute stress.",
            )
        )
    if urgent_not_important:
        suggestions.append(
            SmartSuggestion(
                type=SuggestionType.WARNING,
                message=(
                    f"You have {len(urgent_not_important)} urgent but not important task(s) due soon. "
                    "These may not fit in your schedule."
                ),
                action="Consider increasing your daily hour limit, delegating, or rescheduling these tasks.",
            )
        )

    starved = [
        task
        for task in unscheduled_tasks or []
        if task.status == TaskStatus.PENDING and not task.importance and _days_until(task, current) <= URGENT_DAYS
    ]
    if starved:
        suggestions.append(
            SmartSuggestion(
                type=SuggestionType.WARNING,
                message=(
                    "Some low-priority tasks with urgent deadlines could not be scheduled "
                    "because higher-priority urgent tasks are taking precedence."
                ),
                action="Consider increasing your daily available hours, rescheduling, or marking some tasks as more important.",
                task_id=starved[0].id if len(starved) == 1 else None,
            )
        )

    not_urgent = [task for task in pending if _days_until(task, current) > URGENT_DAYS]
    important_not_urgent = [task for task in not_urgent if task.importance]
    neither = [task for task in not_urgent if not task.importance]
    if important_not_urgent:
        suggestions.append(
            SmartSuggestion(
                type=SuggestionType.SUGGESTION,
                message=f"You have {len(important_not_urgent)} important task(s) with more than {URGENT_DAYS} days until deadline.",
                action="Schedule time for these now to avoid last-minute stress.",
            )
        )
    if neither:
        suggestions.append(
            SmartSuggestion(
                type=SuggestionType.SUGGESTION,
                message=f"You have {len(neither)} task(s) that are neither urgent nor important.",
                action="Do these only if you have extra time, or consider dropping them.",
            )
        )

    completed = [task for task in tasks if task.status == TaskStatus.COMPLETED]
    if completed:
        suggestions.append(
            SmartSuggestion(
                type=SuggestionType.CELEBRATION,
                message=f"Great job! You've completed {len(completed)} task(s).",
                action="Keep up the momentum!",
            )
        )

    return suggestions
