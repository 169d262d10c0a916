"""
Manual reschedule service.

Free-time accounting for a day, one-off session moves, and replay of
user-made reschedules after a plan is regenerated.
"""

from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from studyplan.core.logger import setup_logger
from studyplan.models.commitment import FixedCommitment
from studyplan.models.enums import SessionStatus
from studyplan.models.study_plan import (
    RescheduleApplication,
    SessionMoveResult,
    StudyPlan,
    StudySession,
    UserReschedule,
    UserSettings,
)
from studyplan.services.commitment_resolver import busy_intervals_for_date
from studyplan.services.plan_utils import daily_capacity_minutes, is_work_day, plans_by_date, with_sessions
from studyplan.services.slot_finder import find_next_available_slot
from studyplan.utils.datetime_utils import local_now, parse_time_to_minutes
from studyplan.utils.intervals import TimeInterval, merge_intervals, subtract_intervals, total_minutes

logger = setup_logger(__name__)


def daily_available_minutes(
    target_date: date,
    settings: UserSettings,
    commitments: list[FixedCommitment],
) -> int:
    """
    Free study-window minutes on a date, capped by daily capacity.

    Non-work days have no available time.
    """
    if not is_work_day(target_date, settings):
        return 0
    window = [TimeInterval(settings.study_window_start_hour * 60, settings.study_window_end_hour * 60)]
    free = subtract_intervals(window, merge_intervals(busy_intervals_for_date(commitments, target_date)))
    return min(total_minutes(free), daily_capacity_minutes(settings))


def _remove_session(sessions: list[StudySession], target: StudySession) -> list[StudySession]:
    """Drop the first session matching the target's task and session number."""
    result = []
    removed = False
    for session in sessions:
        if (
            not removed
            and session.task_id == target.task_id
            and session.session_number == target.session_number
        ):
            removed = True
            continue
        result.append(session)
    return result


def _replace_day(
    plans: list[StudyPlan],
    day: date,
    sessions: list[StudySession],
    available_hours: float,
) -> list[StudyPlan]:
    by_date = plans_by_date(plans)
    if day in by_date:
        by_date[day] = with_sessions(by_date[day], sessions)
    else:
        by_date[day] = StudyPlan.for_date(day, sessions, available_hours)
    return sorted(by_date.values(), key=lambda plan: plan.date)


def move_individual_session(
    plans: list[StudyPlan],
    session: StudySession,
    original_date: date,
    settings: UserSettings,
    commitments: list[FixedCommitment],
    now: Optional[datetime] = None,
) -> SessionMoveResult:
    """
    Move one session to the first open slot today.

    The moved copy records where it came from (original_time/original_date);
    the source session is removed.
    """
    current = now or local_now()
    today = current.date()
    if not is_work_day(today, settings):
        return SessionMoveResult(updated_plans=plans, success=False)

    by_date = plans_by_date(plans)
    today_sessions = list(by_date[today].planned_tasks) if today in by_date else []
    if original_date == today:
        today_sessions = _remove_session(today_sessions, session)

    slot = find_next_available_slot(
        session.allocated_hours,
        today_sessions,
        commitments,
        today,
        settings.study_window_start_hour,
        settings.study_window_end_hour,
        settings.buffer_time_between_sessions,
        not_before_minutes=current.hour * 60 + current.minute,
    )
    if slot is None:
        logger.info(f"No open slot today for task {session.task_id}")
        return SessionMoveResult(updated_plans=plans, success=False)

    moved = session.model_copy(
        update={
            "start_time": slot.start_time,
            "end_time": slot.end_time,
            "original_time": session.start_time,
            "original_date": original_date,
            "rescheduled_at": current,
            "status": SessionStatus.SCHEDULED,
        }
    )

    updated = plans
    if original_date != today and original_date in by_date:
        source = by_date[original_date]
        updated = _replace_day(
            updated, original_date, _remove_session(source.planned_tasks, session), source.available_hours
        )
    updated = _replace_day(updated, today, today_sessions + [moved], settings.daily_available_hours)

    logger.info(f"Moved task {session.task_id} session from {original_date} to {today} {slot.start_time}")
    return SessionMoveResult(
        updated_plans=[plan for plan in updated if plan.planned_tasks],
        success=True,
        new_date=today,
        new_time=slot.start_time,
    )


def create_user_reschedule(
    session: StudySession,
    original_date: date,
    new_date: date,
    new_start_time: str,
    new_end_time: str,
    now: Optional[datetime] = None,
) -> UserReschedule:
    return UserReschedule(
        id=str(uuid4()),
        task_id=session.task_id,
        session_number=session.session_number,
        original_plan_date=original_date,
        original_start_time=session.start_time,
        original_end_time=session.end_time,
        new_plan_date=new_date,
        new_start_time=new_start_time,
        new_end_time=new_end_time,
        rescheduled_at=now or local_now(),
    )


def _is_well_formed(reschedule: UserReschedule) -> bool:
    start = parse_time_to_minutes(reschedule.new_start_time)
    end = parse_time_to_minutes(reschedule.new_end_time)
    return start is not None and end is not None and start < end


def validate_user_reschedules(
    reschedules: list[UserReschedule],
) -> tuple[list[UserReschedule], list[UserReschedule]]:
    """Split reschedules into (valid, obsolete) by basic shape checks."""
    valid = []
    obsolete = []
    for reschedule in reschedules:
        if _is_well_formed(reschedule):
            valid.append(reschedule)
        else:
            obsolete.append(reschedule)
    return valid, obsolete


def apply_user_reschedules(
    plans: list[StudyPlan],
    reschedules: list[UserReschedule],
    available_hours: float = 0,
) -> RescheduleApplication:
    """
    Replay manual reschedules onto a (regenerated) plan set.

    A reschedule whose source session no longer exists is obsolete. Applied
    sessions are marked as manual overrides with status RESCHEDULED.
    """
    updated = list(plans)
    valid: list[UserReschedule] = []
    obsolete: list[UserReschedule] = []

    for reschedule in reschedules:
        by_date = plans_by_date(updated)
        source = by_date.get(reschedule.original_plan_date)
        original = None
        if source is not None:
            original = next(
                (
                    session
                    for session in source.planned_tasks
                    if session.task_id == reschedule.task_id
                    and session.session_number == reschedule.session_number
                ),
                None,
            )
        if original is None or not _is_well_formed(reschedule):
            obsolete.append(reschedule)
            continue

        moved = original.model_copy(
            update={
                "start_time": reschedule.new_start_time,
                "end_time": reschedule.new_end_time,
                "original_time": reschedule.original_start_time,
                "original_date": reschedule.original_plan_date,
                "rescheduled_at": reschedule.rescheduled_at,
                "status": SessionStatus.RESCHEDULED,
                "is_manual_override": True,
            }
        )
        updated = _replace_day(
            updated,
            reschedule.original_plan_date,
            _remove_session(source.planned_tasks, original),
            source.available_hours,
        )
        target = plans_by_date(updated).get(reschedule.new_plan_date)
        target_sessions = list(target.planned_tasks) if target else []
        hours = target.available_hours if target else available_hours or source.available_hours
        updated = _replace_day(updated, reschedule.new_plan_date, target_sessions + [moved], hours)
        valid.append(reschedule)

    return RescheduleApplication(
        updated_plans=[plan for plan in updated if plan.planned_tasks],
        valid=valid,
        obsolete=obsolete,
    )
