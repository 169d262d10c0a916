"""
First-fit slot search within a day's study window.
"""

import math
from datetime import date
from typing import Optional

from studyplan.models.commitment import FixedCommitment
from studyplan.models.study_plan import StudySession, TimeSlot
from studyplan.services.commitment_resolver import busy_intervals_for_date
from studyplan.utils.datetime_utils import format_minutes, parse_time_to_minutes
from studyplan.utils.intervals import TimeInterval, merge_intervals


def required_minutes_for(hours: float) -> int:
    """Minutes needed for a duration, rounded up to the next whole minute."""
    return int(math.ceil(round(hours * 60, 6)))


def session_interval(session: StudySession) -> Optional[TimeInterval]:
    """Minute interval of a timed session, or None when it has no slot."""
    start = parse_time_to_minutes(session.start_time)
    end = parse_time_to_minutes(session.end_time)
    if start is None or end is None or end <= start:
        return None
    return TimeInterval(start, end)


def session_busy_intervals(sessions: list[StudySession]) -> list[TimeInterval]:
    """Intervals occupied by timed, non-skipped sessions."""
    intervals = []
    for session in sessions:
        if session.is_skipped:
            continue
        interval = session_interval(session)
        if interval is not None:
            intervals.append(interval)
    return intervals


def find_gap(
    required_minutes: int,
    busy: list[TimeInterval],
    window_start_minutes: int,
    window_end_minutes: int,
    buffer_minutes: int = 0,
    not_before_minutes: Optional[int] = None,
) -> Optional[TimeInterval]:
    """
    Walk the merged busy list and return the first gap long enough.

    After each busy interval the cursor moves to its end plus the buffer.
    """
    if required_minutes <= 0:
        return None

    cursor = window_start_minutes
    if not_before_minutes is not None:
        cursor = max(cursor, not_before_minutes)

    for interval in merge_intervals(busy):
        if interval.start_minutes - cursor >= required_minutes:
            return TimeInterval(cursor, cursor + required_minutes)
        cursor = max(cursor, interval.end_minutes + buffer_minutes)

    if window_end_minutes - cursor >= required_minutes:
        return TimeInterval(cursor, cursor + required_minutes)
    return None


def find_next_available_slot(
    required_hours: float,
    existing_sessions: list[StudySession],
    commitments: list[FixedCommitment],
    target_date: date,
    window_start_hour: int,
    window_end_hour: int,
    buffer_minutes: int = 0,
    not_before_minutes: Optional[int] = None,
) -> Optional[TimeSlot]:
    """
    Find the earliest open slot on target_date.

    Busy time is every timed, non-skipped session plus each commitment
    occurrence resolved for the date (deleted occurrences excluded, modified
    occurrences applied).

    Args:
        required_hours: Session duration in hours
        existing_sessions: Sessions already placed that day
        commitments: All fixed commitments
        target_date: Day being scheduled
        window_start_hour: Study window start (hour of day)
        window_end_hour: Study window end (hour of day)
        buffer_minutes: Gap enforced after every busy interval
        not_before_minutes: Earliest allowed start (e.g. "now" for today)

    Returns:
        TimeSlot with "HH:MM" bounds, or None when nothing fits
    """
    busy = session_busy_intervals(existing_sessions)
    busy.extend(busy_intervals_for_date(commitments, target_date))

    gap = find_gap(
        required_minutes_for(required_hours),
        busy,
        window_start_hour * 60,
        window_end_hour * 60,
        buffer_minutes,
        not_before_minutes,
    )
    if gap is None:
        return None
    return TimeSlot(
        start_time=format_minutes(gap.start_minutes),
        end_time=format_minutes(gap.end_minutes),
    )
