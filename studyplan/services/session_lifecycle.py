"""
Session lifecycle service.

Marking sessions done or skipped (and undoing either), followed by a task
completion check against the already-updated plan set.
"""

from datetime import date, datetime
from typing import Optional

from studyplan.core.exceptions import NotFoundError
from studyplan.core.logger import setup_logger
from studyplan.models.enums import SessionStatus, TaskCompletion, TaskStatus
from studyplan.models.study_plan import SessionUpdateResult, StudyPlan, StudySession
from studyplan.models.task import Task
from studyplan.services.plan_utils import with_sessions
from studyplan.utils.datetime_utils import local_now

logger = setup_logger(__name__)


def _sessions_for_task(task_id: str, plans: list[StudyPlan]) -> list[StudySession]:
    return [session for plan in plans for session in plan.planned_tasks if session.task_id == task_id]


def evaluate_task_completion(task_id: str, plans: list[StudyPlan]) -> TaskCompletion:
    """
    Decide whether a task is finished by its sessions.

    Returns:
        SKIPPED_ONLY when the task has exactly one session and it is skipped,
        ALL_SESSIONS_DONE when every session is done or skipped, else NONE
    """
    sessions = _sessions_for_task(task_id, plans)
    if len(sessions) == 1 and sessions[0].is_skipped:
        return TaskCompletion.SKIPPED_ONLY
    if sessions and all(session.done or session.is_skipped for session in sessions):
        return TaskCompletion.ALL_SESSIONS_DONE
    return TaskCompletion.NONE


def _update_session(
    plans: list[StudyPlan],
    plan_date: date,
    task_id: str,
    session_number: int,
    updates: dict,
) -> list[StudyPlan]:
    found = False
    result = []
    for plan in plans:
        if plan.date != plan_date:
            result.append(plan)
            continue
        sessions = []
        for session in plan.planned_tasks:
            if not found and session.task_id == task_id and session.session_number == session_number:
                session = session.model_copy(update=updates)
                found = True
            sessions.append(session)
        result.append(with_sessions(plan, sessions))
    if not found:
        raise NotFoundError(
            f"Session {session_number} of task {task_id} not found on {plan_date}",
            details={"plan_date": plan_date.isoformat(), "task_id": task_id},
        )
    return result


def _complete_tasks(
    task_id: str,
    tasks: list[Task],
    plans: list[StudyPlan],
    now: datetime,
) -> tuple[list[Task], list[str]]:
    completion = evaluate_task_completion(task_id, plans)
    if completion == TaskCompletion.NONE:
        return tasks, []

    updated_tasks = []
    completed = []
    for task in tasks:
        if task.id != task_id or task.status == TaskStatus.COMPLETED:
            updated_tasks.append(task)
            continue
        updates = {"status": TaskStatus.COMPLETED, "completed_at": now}
        if completion == TaskCompletion.ALL_SESSIONS_DONE:
            updates["estimated_hours"] = round(
                sum(s.allocated_hours for s in _sessions_for_task(task_id, plans) if s.done or s.is_skipped),
                4,
            )
        updated_tasks.append(task.model_copy(update=updates))
        completed.append(task_id)
        logger.info(f"Task completed: {task.title} ({completion.value})")
    return updated_tasks, completed


def _find_session(
    plans: list[StudyPlan],
    plan_date: date,
    task_id: str,
    session_number: int,
) -> Optional[StudySession]:
    for plan in plans:
        if plan.date != plan_date:
            continue
        for session in plan.planned_tasks:
            if session.task_id == task_id and session.session_number == session_number:
                return session
    return None


def _spent_hours(session: StudySession) -> float:
    return session.actual_hours if session.actual_hours is not None else session.allocated_hours


def _deduct_hours(
    task_id: str,
    tasks: list[Task],
    hours: float,
    now: datetime,
) -> tuple[list[Task], list[str]]:
    """Reduce a task's remaining hours; the task completes when none are left."""
    updated_tasks = []
    completed = []
    for task in tasks:
        if task.id != task_id or task.status == TaskStatus.COMPLETED:
            updated_tasks.append(task)
            continue
        remaining = max(0.0, round(task.estimated_hours - hours, 4))
        updates = {"estimated_hours": remaining}
        if remaining == 0:
            updates["status"] = TaskStatus.COMPLETED
            updates["completed_at"] = now
            completed.append(task_id)
            logger.info(f"Task completed: {task.title} (no hours remaining)")
        updated_tasks.append(task.model_copy(update=updates))
    return updated_tasks, completed


def mark_session_done(
    plans: list[StudyPlan],
    tasks: list[Task],
    plan_date: date,
    task_id: str,
    session_number: int,
    actual_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> SessionUpdateResult:
    """
    Mark a session done and complete its task when nothing is left.

    The task's remaining hours drop by the hours studied (the session's
    allocation when actual_hours is not tracked). The task completes when
    they reach 0 or when every session is done or skipped.

    Args:
        plans: Current plans
        tasks: Current tasks
        plan_date: Date of the plan holding the session
        task_id: Session task
        session_number: Session number within the task
        actual_hours: Hours actually studied, if tracked
        now: Completion timestamp

    Raises:
        NotFoundError: No such session on plan_date
    """
    current = now or local_now()
    updated_plans = _update_session(
        plans,
        plan_date,
        task_id,
        session_number,
        {
            "done": True,
            "status": SessionStatus.COMPLETED,
            "actual_hours": actual_hours,
            "completed_at": current,
        },
    )
    session = _find_session(updated_plans, plan_date, task_id, session_number)
    updated_tasks, emptied = _deduct_hours(task_id, tasks, _spent_hours(session), current)
    updated_tasks, completed = _complete_tasks(task_id, updated_tasks, updated_plans, current)
    return SessionUpdateResult(
        plans=updated_plans, tasks=updated_tasks, completed_task_ids=emptied + completed
    )


def undo_session_done(
    plans: list[StudyPlan],
    tasks: list[Task],
    plan_date: date,
    task_id: str,
    session_number: int,
) -> SessionUpdateResult:
    """
    Clear a session's completion and give its hours back to the task.

    A completed task reverts to pending with the undone session's hours as
    its remaining work, unless all its sessions are still done or skipped.
    """
    previous = _find_session(plans, plan_date, task_id, session_number)
    updated_plans = _update_session(
        plans,
        plan_date,
        task_id,
        session_number,
        {
            "done": False,
            "status": SessionStatus.SCHEDULED,
            "actual_hours": None,
            "completed_at": None,
        },
    )
    restored = _spent_hours(previous) if previous.done else 0.0
    still_finished = evaluate_task_completion(task_id, updated_plans) == TaskCompletion.ALL_SESSIONS_DONE

    updated_tasks = []
    for task in tasks:
        if task.id != task_id or still_finished:
            updated_tasks.append(task)
        elif task.status == TaskStatus.COMPLETED:
            updated_tasks.append(
                task.model_copy(
                    update={
                        "status": TaskStatus.PENDING,
                        "completed_at": None,
                        "estimated_hours": restored or task.estimated_hours,
                    }
                )
            )
        else:
            updated_tasks.append(
                task.model_copy(update={"estimated_hours": round(task.estimated_hours + restored, 4)})
            )
    return SessionUpdateResult(plans=updated_plans, tasks=updated_tasks)


def skip_session(
    plans: list[StudyPlan],
    tasks: list[Task],
    plan_date: date,
    task_id: str,
    session_number: int,
    now: Optional[datetime] = None,
) -> SessionUpdateResult:
    """Skip a session. Skipped sessions count as handled for completion."""
    current = now or local_now()
    updated_plans = _update_session(
        plans, plan_date, task_id, session_number, {"status": SessionStatus.SKIPPED}
    )
    updated_tasks, completed = _complete_tasks(task_id, tasks, updated_plans, current)
    return SessionUpdateResult(plans=updated_plans, tasks=updated_tasks, completed_task_ids=completed)


def unskip_session(
    plans: list[StudyPlan],
    tasks: list[Task],
    plan_date: date,
    task_id: str,
    session_number: int,
) -> SessionUpdateResult:
    updated_plans = _update_session(
        plans, plan_date, task_id, session_number, {"status": SessionStatus.SCHEDULED}
    )
    return SessionUpdateResult(plans=updated_plans, tasks=tasks)


def preserve_session_state(
    new_plans: list[StudyPlan],
    previous_plans: list[StudyPlan],
) -> list[StudyPlan]:
    """
    Carry done, skipped and rescheduled state onto a regenerated plan set.

    Sessions are matched by (date, task id, session number).
    """
    previous = {
        (plan.date, session.task_id, session.session_number): session
        for plan in previous_plans
        for session in plan.planned_tasks
    }
    result = []
    for plan in new_plans:
        sessions = []
        for session in plan.planned_tasks:
            prev = previous.get((plan.date, session.task_id, session.session_number))
            if prev is None:
                sessions.append(session)
            elif prev.done:
                sessions.append(
                    session.model_copy(
                        update={
                            "done": True,
                            "status": prev.status,
                            "actual_hours": prev.actual_hours,
                            "completed_at": prev.completed_at,
                        }
                    )
                )
            elif prev.is_skipped:
                sessions.append(session.model_copy(update={"status": SessionStatus.SKIPPED}))
            elif prev.has_redistribution_metadata:
                sessions.append(
                    session.model_copy(
                        update={
                            "original_time": prev.original_time,
                            "original_date": prev.original_date,
                            "rescheduled_at": prev.rescheduled_at,
                            "is_manual_override": prev.is_manual_override,
                        }
                    )
                )
            else:
                sessions.append(session)
        result.append(with_sessions(plan, sessions))
    return result


def calculate_total_study_hours(plans: list[StudyPlan]) -> float:
    """Hours of all done sessions across the plan set."""
    return round(sum(s.allocated_hours for plan in plans for s in plan.planned_tasks if s.done), 4)


def filter_skipped_sessions(sessions: list[StudySession]) -> list[StudySession]:
    return [session for session in sessions if not session.is_skipped]
