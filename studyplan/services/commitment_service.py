"""
Commitment maintenance service.

Conflict classification between commitments, plus add/update/delete and
per-occurrence edits. Every operation returns a new commitment list; inputs
are never mutated.
"""

from datetime import date
from typing import Any, Optional

from studyplan.core.exceptions import NotFoundError, ValidationError
from studyplan.core.logger import setup_logger
from studyplan.models.commitment import (
    CommitmentChange,
    CommitmentConflictResult,
    FixedCommitment,
    OccurrenceOverride,
)
from studyplan.models.enums import CommitmentConflictType
from studyplan.utils.datetime_utils import parse_time_to_minutes, weekday_index
from studyplan.utils.intervals import ranges_overlap

logger = setup_logger(__name__)


def _times_overlap(a: FixedCommitment, b: FixedCommitment) -> bool:
    return ranges_overlap(
        parse_time_to_minutes(a.start_time),
        parse_time_to_minutes(a.end_time),
        parse_time_to_minutes(b.start_time),
        parse_time_to_minutes(b.end_time),
    )


def _pair_conflict(
    candidate: FixedCommitment,
    existing: FixedCommitment,
) -> Optional[CommitmentConflictResult]:
    """Classify the conflict between two commitments, or None."""
    if candidate.recurring and existing.recurring:
        shared_days = set(candidate.days_of_week) & set(existing.days_of_week)
        if shared_days and _times_overlap(candidate, existing):
            return CommitmentConflictResult(
                has_conflict=True,
                conflicting_commitment=existing,
                conflict_type=CommitmentConflictType.STRICT,
            )
        return None

    if not candidate.recurring and not existing.recurring:
        shared_dates = [day for day in candidate.specific_dates if day in existing.specific_dates]
        if shared_dates and _times_overlap(candidate, existing):
            return CommitmentConflictResult(
                has_conflict=True,
                conflicting_commitment=existing,
                conflict_type=CommitmentConflictType.STRICT,
                conflicting_dates=shared_dates,
            )
        return None

    # One-off wins over recurring on the dates where both apply
    recurring, one_off = (candidate, existing) if candidate.recurring else (existing, candidate)
    dates = [day for day in one_off.specific_dates if weekday_index(day) in recurring.days_of_week]
    if dates and _times_overlap(candidate, existing):
        return CommitmentConflictResult(
            has_conflict=True,
            conflicting_commitment=existing,
            conflict_type=CommitmentConflictType.OVERRIDE,
            conflicting_dates=dates,
        )
    return None


def check_commitment_conflicts(
    candidate: FixedCommitment,
    existing: list[FixedCommitment],
    exclude_id: Optional[str] = None,
) -> CommitmentConflictResult:
    """
    Find the first conflict between a candidate and the existing commitments.

    Both recurring with a shared weekday and overlapping times, or both
    one-off with a shared date and overlapping times, is STRICT. A one-off
    date falling on a recurring weekday with overlapping times is OVERRIDE.

    Args:
        candidate: Commitment being added or edited
        existing: Current commitments
        exclude_id: Commitment to skip (the one being edited)

    Returns:
        CommitmentConflictResult, has_conflict False when there is none
    """
    for commitment in existing:
        if exclude_id is not None and commitment.id == exclude_id:
            continue
        conflict = _pair_conflict(candidate, commitment)
        if conflict is not None:
            return conflict
    return CommitmentConflictResult()


def _with_deleted(commitment: FixedCommitment, dates: list[date]) -> FixedCommitment:
    deleted = list(commitment.deleted_occurrences)
    for day in dates:
        if day not in deleted:
            deleted.append(day)
    return commitment.model_copy(update={"deleted_occurrences": deleted})


def _resolve_overrides(
    candidate: FixedCommitment,
    others: list[FixedCommitment],
) -> tuple[Optional[CommitmentConflictResult], FixedCommitment, list[FixedCommitment], list[CommitmentConflictResult]]:
    """
    Apply override resolution of candidate against every other commitment.

    Returns:
        (strict conflict or None, resolved candidate, resolved others, overrides applied)
    """
    resolved_others = []
    overrides = []
    for other in others:
        conflict = _pair_conflict(candidate, other)
        if conflict is None:
            resolved_others.append(other)
            continue
        if conflict.conflict_type == CommitmentConflictType.STRICT:
            return conflict, candidate, others, []
        if candidate.recurring:
            candidate = _with_deleted(candidate, conflict.conflicting_dates)
            resolved_others.append(other)
        else:
            resolved_others.append(_with_deleted(other, conflict.conflicting_dates))
        overrides.append(conflict)
    return None, candidate, resolved_others, overrides


def add_commitment(
    new: FixedCommitment,
    existing: list[FixedCommitment],
) -> CommitmentChange:
    """
    Add a commitment, resolving override conflicts.

    A strict conflict rejects the commitment (applied=False, list unchanged).
    A one-off over an existing recurring commitment suppresses the recurring
    occurrence on those dates; a new recurring commitment instead gets the
    one-off dates in its own deleted_occurrences.
    """
    strict, resolved, others, overrides = _resolve_overrides(new, existing)
    if strict is not None:
        logger.info(f"Commitment '{new.title}' rejected: overlaps '{strict.conflicting_commitment.title}'")
        return CommitmentChange(commitments=list(existing), conflict=strict, applied=False)

    logger.info(f"Added commitment '{new.title}' ({len(overrides)} overrides resolved)")
    return CommitmentChange(
        commitments=others + [resolved],
        conflict=overrides[0] if overrides else CommitmentConflictResult(),
        resolved_overrides=overrides,
    )


def _find_index(commitment_id: str, existing: list[FixedCommitment]) -> int:
    for index, commitment in enumerate(existing):
        if commitment.id == commitment_id:
            return index
    raise NotFoundError(f"Commitment {commitment_id} not found")


def update_commitment(
    commitment_id: str,
    updates: dict[str, Any],
    existing: list[FixedCommitment],
) -> CommitmentChange:
    """
    Apply field updates to a commitment, then resolve conflicts against the rest.

    Raises:
        NotFoundError: Unknown commitment id
        ValidationError: Updates produce an invalid commitment
    """
    index = _find_index(commitment_id, existing)
    current = existing[index]
    try:
        updated = FixedCommitment.model_validate({**current.model_dump(), **updates, "id": commitment_id})
    except ValueError as e:
        raise ValidationError(f"Invalid commitment update: {e}") from e

    others = existing[:index] + existing[index + 1:]
    strict, resolved, resolved_others, overrides = _resolve_overrides(updated, others)
    if strict is not None:
        return CommitmentChange(commitments=list(existing), conflict=strict, applied=False)

    commitments = resolved_others[:index] + [resolved] + resolved_others[index:]
    return CommitmentChange(
        commitments=commitments,
        conflict=overrides[0] if overrides else CommitmentConflictResult(),
        resolved_overrides=overrides,
    )


def delete_commitment(commitment_id: str, existing: list[FixedCommitment]) -> list[FixedCommitment]:
    _find_index(commitment_id, existing)
    return [commitment for commitment in existing if commitment.id != commitment_id]


def delete_occurrence(
    commitment_id: str,
    target_date: date,
    existing: list[FixedCommitment],
) -> list[FixedCommitment]:
    """Suppress a single occurrence of a commitment."""
    index = _find_index(commitment_id, existing)
    result = list(existing)
    result[index] = _with_deleted(existing[index], [target_date])
    return result


def modify_occurrence(
    commitment_id: str,
    target_date: date,
    override: OccurrenceOverride,
    existing: list[FixedCommitment],
) -> list[FixedCommitment]:
    """
    Override title/time/type for one occurrence.

    Fields set in the new override replace those of any previous override
    for the same date; unset fields keep their previous value.

    Raises:
        NotFoundError: Unknown commitment id
        ValidationError: The effective start is not before the effective end
    """
    index = _find_index(commitment_id, existing)
    commitment = existing[index]

    previous = commitment.modified_occurrences.get(target_date, OccurrenceOverride())
    merged = previous.model_copy(update=override.model_dump(exclude_none=True))

    start = parse_time_to_minutes(merged.start_time or commitment.start_time)
    end = parse_time_to_minutes(merged.end_time or commitment.end_time)
    if start is None or end is None or start >= end:
        raise ValidationError(
            f"Invalid occurrence time range on {target_date}",
            details={"start_time": merged.start_time, "end_time": merged.end_time},
        )

    modified = dict(commitment.modified_occurrences)
    modified[target_date] = merged
    result = list(existing)
    result[index] = commitment.model_copy(update={"modified_occurrences": modified})
    return result
