"""
Plan set validation.

Used as the gate for redistribution rollback: the first violation found is
returned and scanning stops.
"""

from datetime import datetime
from typing import Optional

from studyplan.core.logger import setup_logger
from studyplan.models.commitment import FixedCommitment
from studyplan.models.enums import PlanConflictKind
from studyplan.models.study_plan import PlanConflict, StudyPlan, UserSettings
from studyplan.services.commitment_resolver import resolve_commitments_for_date
from studyplan.services.plan_utils import (
    daily_capacity_minutes,
    max_session_minutes,
    min_session_minutes,
    non_skipped,
    session_minutes,
)
from studyplan.services.session_status import is_missed_or_redistributed
from studyplan.services.slot_finder import session_interval
from studyplan.utils.datetime_utils import local_now
from studyplan.utils.intervals import TimeInterval, intervals_overlap

logger = setup_logger(__name__)


def find_plan_conflict(
    plans: list[StudyPlan],
    settings: UserSettings,
    commitments: list[FixedCommitment],
    now: Optional[datetime] = None,
) -> Optional[PlanConflict]:
    """
    Return the first violation in a plan set, or None.

    Per day, skipped sessions ignored:
    (a) two timed sessions overlap
    (b) regular hours exceed the daily capacity
    (c) a regular session is shorter than the minimum or longer than
        min(max session hours, daily capacity)
    (d) a regular timed session overlaps a commitment occurrence

    Regular means not missed, not redistributed and not a manual override.
    """
    current = now or local_now()
    min_minutes = min_session_minutes(settings)
    max_minutes = max_session_minutes(settings)
    capacity = daily_capacity_minutes(settings)

    for plan in sorted(plans, key=lambda p: p.date):
        sessions = non_skipped(plan.planned_tasks)

        timed = [(session, session_interval(session)) for session in sessions]
        timed = [(session, interval) for session, interval in timed if interval is not None]
        for i, (session_a, interval_a) in enumerate(timed):
            for session_b, interval_b in timed[i + 1:]:
                if intervals_overlap(interval_a, interval_b):
                    return _conflict(
                        PlanConflictKind.SESSION_OVERLAP,
                        plan,
                        f"Sessions overlap on {plan.date}: "
                        f"{session_a.start_time}-{session_a.end_time} and "
                        f"{session_b.start_time}-{session_b.end_time}",
                        [session_a.task_id, session_b.task_id],
                    )

        regular = [s for s in sessions if not is_missed_or_redistributed(s, plan.date, current)]
        regular_minutes = sum(session_minutes(s) for s in regular)
        if regular_minutes > capacity:
            return _conflict(
                PlanConflictKind.DAILY_CAPACITY,
                plan,
                f"Daily limit exceeded on {plan.date}: {regular_minutes} > {capacity} minutes",
                [s.task_id for s in regular],
            )

        for session in regular:
            minutes = session_minutes(session)
            if minutes < min_minutes or minutes > max_minutes:
                return _conflict(
                    PlanConflictKind.SESSION_LENGTH,
                    plan,
                    f"Session length {minutes} minutes outside [{min_minutes}, {max_minutes}] on {plan.date}",
                    [session.task_id],
                )

        occurrences = resolve_commitments_for_date(commitments, plan.date)
        for session in regular:
            interval = session_interval(session)
            if interval is None:
                continue
            for occurrence in occurrences:
                if intervals_overlap(interval, TimeInterval(occurrence.start_minutes, occurrence.end_minutes)):
                    return _conflict(
                        PlanConflictKind.COMMITMENT_OVERLAP,
                        plan,
                        f"Session {session.start_time}-{session.end_time} overlaps "
                        f"'{occurrence.title}' on {plan.date}",
                        [session.task_id],
                    )

    return None


def has_plan_conflicts(
    plans: list[StudyPlan],
    settings: UserSettings,
    commitments: list[FixedCommitment],
    now: Optional[datetime] = None,
) -> bool:
    return find_plan_conflict(plans, settings, commitments, now) is not None


def _conflict(
    kind: PlanConflictKind,
    plan: StudyPlan,
    message: str,
    task_ids: list[str],
) -> PlanConflict:
    logger.warning(message)
    return PlanConflict(kind=kind, date=plan.date, message=message, task_ids=task_ids)
