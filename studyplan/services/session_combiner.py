"""
Same-day session combination.

Merges same-task sessions on one date into a single contiguous block.
Skipped and completed sessions are never combined and are kept as-is.
"""

from datetime import date
from typing import Optional

from studyplan.models.commitment import FixedCommitment
from studyplan.models.study_plan import StudyPlan, StudySession, UserSettings
from studyplan.services.commitment_resolver import busy_intervals_for_date
from studyplan.services.plan_utils import (
    max_session_minutes,
    min_session_minutes,
    session_minutes,
    with_sessions,
)
from studyplan.services.slot_finder import session_busy_intervals, session_interval
from studyplan.utils.datetime_utils import format_minutes, minutes_to_hours
from studyplan.utils.intervals import TimeInterval, intervals_overlap


def _is_combinable(session: StudySession) -> bool:
    return not session.is_done_or_skipped


def _merge_group(group: list[StudySession]) -> tuple[StudySession, Optional[TimeInterval]]:
    """Build the merged session and the block it would occupy (None if untimed)."""
    ordered = sorted(group, key=lambda session: session.start_time)
    first = ordered[0]
    total = sum(session_minutes(session) for session in ordered)

    update = {
        "allocated_hours": minutes_to_hours(total),
        "session_number": 1,
        "is_manual_override": any(session.is_manual_override for session in ordered),
    }

    block = None
    intervals = [session_interval(session) for session in ordered]
    if all(interval is not None for interval in intervals):
        start = intervals[0].start_minutes
        block = TimeInterval(start, start + total)
        update["start_time"] = format_minutes(block.start_minutes)
        update["end_time"] = format_minutes(block.end_minutes)
    else:
        update["start_time"] = ""
        update["end_time"] = ""

    if not first.has_redistribution_metadata:
        moved = next((session for session in ordered if session.has_redistribution_metadata), None)
        if moved is not None:
            update["original_time"] = moved.original_time
            update["original_date"] = moved.original_date
            update["rescheduled_at"] = moved.rescheduled_at

    return first.model_copy(update=update), block


def combine_sessions(
    sessions: list[StudySession],
    settings: Optional[UserSettings] = None,
    commitments: Optional[list[FixedCommitment]] = None,
    plan_date: Optional[date] = None,
) -> list[StudySession]:
    """
    Combine same-task sessions of one day.

    Output order: each task's result at its first appearance, then the
    uncombinable (skipped/completed) sessions in their original order. Running
    it twice gives the same result as running it once.

    When settings are given the merge is validated: a merged length outside
    [min session, max session] or a block that would overlap other sessions or
    commitment occurrences keeps the originals separate, and so does a group
    mixing timed and untimed sessions.
    """
    groups: dict[str, list[StudySession]] = {}
    order: list[str] = []
    passthrough: list[StudySession] = []

    for session in sessions:
        if not _is_combinable(session):
            passthrough.append(session)
            continue
        if session.task_id not in groups:
            groups[session.task_id] = []
            order.append(session.task_id)
        groups[session.task_id].append(session)

    combined: list[StudySession] = []
    for task_id in order:
        group = groups[task_id]
        if len(group) == 1:
            combined.append(group[0])
            continue

        merged, block = _merge_group(group)
        if settings is not None and not _merge_is_valid(
            merged, block, group, sessions, settings, commitments or [], plan_date
        ):
            combined.extend(group)
            continue
        combined.append(merged)

    return combined + passthrough


def _merge_is_valid(
    merged: StudySession,
    block: Optional[TimeInterval],
    group: list[StudySession],
    day_sessions: list[StudySession],
    settings: UserSettings,
    commitments: list[FixedCommitment],
    plan_date: Optional[date],
) -> bool:
    total = session_minutes(merged)
    if total < min_session_minutes(settings) or total > max_session_minutes(settings):
        return False
    if block is None:
        # an untimed merge would drop the slots of the timed sessions
        return not any(session_interval(session) is not None for session in group)
    if block.end_minutes > settings.study_window_end_hour * 60:
        return False

    group_ids = {id(session) for session in group}
    others = [session for session in day_sessions if id(session) not in group_ids]
    busy = session_busy_intervals(others)
    if plan_date is not None:
        busy.extend(busy_intervals_for_date(commitments, plan_date))
    return not any(intervals_overlap(block, interval) for interval in busy)


def combine_sessions_on_same_day(plans: list[StudyPlan]) -> list[StudyPlan]:
    """Combine every plan's same-task sessions without length validation."""
    return [with_sessions(plan, combine_sessions(plan.planned_tasks)) for plan in plans]


def combine_sessions_on_same_day_with_validation(
    plans: list[StudyPlan],
    settings: UserSettings,
    commitments: Optional[list[FixedCommitment]] = None,
) -> list[StudyPlan]:
    """Combine sessions only where the merged block stays valid."""
    return [
        with_sessions(
            plan,
            combine_sessions(plan.planned_tasks, settings, commitments or [], plan.date),
        )
        for plan in plans
    ]
