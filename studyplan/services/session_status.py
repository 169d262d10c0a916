"""
Session status classification.

Maps a session and its plan date to a display/accounting status based on the
current wall-clock time, completion flags and redistribution metadata.
"""

from datetime import date, datetime
from typing import Optional

from studyplan.models.enums import SessionStatus
from studyplan.models.study_plan import StudySession
from studyplan.utils.datetime_utils import local_now, parse_time_to_minutes


def classify_session_status(
    session: StudySession,
    plan_date: date,
    now: Optional[datetime] = None,
) -> SessionStatus:
    """
    Classify a session on plan_date.

    Decision order (first match wins):
    1. done or stored completed -> COMPLETED
    2. stored skipped -> COMPLETED (callers read session.status to tell them apart)
    3. past date: redistributed -> SCHEDULED, otherwise -> MISSED
    4. has redistribution metadata -> RESCHEDULED
    5. today: before start -> SCHEDULED, within -> IN_PROGRESS, after end -> OVERDUE
    6. future -> SCHEDULED

    Args:
        session: Session to classify
        plan_date: Date of the plan holding the session
        now: Current local time (defaults to the configured timezone's clock)
    """
    current = now or local_now()
    today = current.date()

    if session.done or session.status == SessionStatus.COMPLETED:
        return SessionStatus.COMPLETED

    if session.status == SessionStatus.SKIPPED:
        return SessionStatus.COMPLETED

    if plan_date < today:
        if session.has_redistribution_metadata:
            return SessionStatus.SCHEDULED
        return SessionStatus.MISSED

    if session.has_redistribution_metadata:
        return SessionStatus.RESCHEDULED

    if plan_date == today:
        start = parse_time_to_minutes(session.start_time)
        end = parse_time_to_minutes(session.end_time)
        if start is None or end is None:
            return SessionStatus.SCHEDULED
        now_minutes = current.hour * 60 + current.minute + current.second / 60
        if now_minutes < start:
            return SessionStatus.SCHEDULED
        if now_minutes <= end:
            return SessionStatus.IN_PROGRESS
        return SessionStatus.OVERDUE

    return SessionStatus.SCHEDULED


def is_missed_or_redistributed(
    session: StudySession,
    plan_date: date,
    now: Optional[datetime] = None,
) -> bool:
    """Sessions exempt from regular capacity and length rules."""
    return (
        classify_session_status(session, plan_date, now) == SessionStatus.MISSED
        or session.is_manual_override
        or session.has_redistribution_metadata
    )
