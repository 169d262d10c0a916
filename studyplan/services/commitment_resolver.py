"""
Commitment resolution.

Expands fixed commitments into concrete occurrences for a date.
"""

from datetime import date
from typing import Optional

from studyplan.models.commitment import FixedCommitment, ResolvedCommitment
from studyplan.utils.datetime_utils import parse_time_to_minutes, weekday_index
from studyplan.utils.intervals import TimeInterval


def commitment_applies_on(commitment: FixedCommitment, target_date: date) -> bool:
    """Whether the commitment has a (non-deleted) occurrence on target_date."""
    if target_date in commitment.deleted_occurrences:
        return False
    if commitment.recurring:
        return weekday_index(target_date) in commitment.days_of_week
    return target_date in commitment.specific_dates


def resolve_commitment(
    commitment: FixedCommitment,
    target_date: date,
) -> Optional[ResolvedCommitment]:
    """
    Resolve a commitment occurrence for a date.

    A modified occurrence overrides title/start/end/type for that date only;
    unset override fields fall back to the base commitment.

    Returns:
        The occurrence, or None when the commitment does not apply that day
    """
    if not commitment_applies_on(commitment, target_date):
        return None

    title = commitment.title
    start_time = commitment.start_time
    end_time = commitment.end_time
    commitment_type = commitment.type

    override = commitment.modified_occurrences.get(target_date)
    if override is not None:
        title = override.title or title
        start_time = override.start_time or start_time
        end_time = override.end_time or end_time
        commitment_type = override.type or commitment_type

    start_minutes = parse_time_to_minutes(start_time)
    end_minutes = parse_time_to_minutes(end_time)
    if start_minutes is None or end_minutes is None or end_minutes <= start_minutes:
        return None

    return ResolvedCommitment(
        commitment_id=commitment.id,
        title=title,
        date=target_date,
        start_time=start_time,
        end_time=end_time,
        type=commitment_type,
        start_minutes=start_minutes,
        end_minutes=end_minutes,
    )


def resolve_commitments_for_date(
    commitments: list[FixedCommitment],
    target_date: date,
) -> list[ResolvedCommitment]:
    """All occurrences on a date, ordered by start time."""
    resolved = []
    for commitment in commitments:
        occurrence = resolve_commitment(commitment, target_date)
        if occurrence is not None:
            resolved.append(occurrence)
    resolved.sort(key=lambda occurrence: (occurrence.start_minutes, occurrence.end_minutes))
    return resolved


def busy_intervals_for_date(
    commitments: list[FixedCommitment],
    target_date: date,
) -> list[TimeInterval]:
    """Commitment occurrences on a date as minute intervals (buffers included)."""
    return [
        TimeInterval(occurrence.start_minutes, occurrence.end_minutes)
        for occurrence in resolve_commitments_for_date(commitments, target_date)
    ]


def visible_commitments_for_date(
    commitments: list[FixedCommitment],
    target_date: date,
) -> list[ResolvedCommitment]:
    """Occurrences to display: buffer commitments are hidden."""
    return [
        occurrence
        for occurrence in resolve_commitments_for_date(commitments, target_date)
        if occurrence.is_visible
    ]
