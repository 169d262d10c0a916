"""
Unit tests for commitment conflict checks and maintenance.
"""

from datetime import date, datetime

import pytest

from studyplan.core.exceptions import NotFoundError, ValidationError
from studyplan.models.commitment import FixedCommitment, OccurrenceOverride
from studyplan.models.enums import CommitmentConflictType
from studyplan.models.study_plan import UserSettings
from studyplan.models.task import Task
from studyplan.services import check_commitment_conflicts, generate_plan
from studyplan.services.commitment_resolver import busy_intervals_for_date
from studyplan.services.commitment_service import (
    add_commitment,
    delete_commitment,
    delete_occurrence,
    modify_occurrence,
    update_commitment,
)
from studyplan.utils.intervals import TimeInterval

WEDNESDAY = date(2025, 3, 12)


def make_recurring(commitment_id: str = "rec", days=(1, 3, 5), start="09:00", end="10:00") -> FixedCommitment:
    return FixedCommitment(
        id=commitment_id,
        title=f"Recurring {commitment_id}",
        start_time=start,
        end_time=end,
        recurring=True,
        days_of_week=list(days),
    )


def make_one_off(commitment_id: str = "once", dates=(WEDNESDAY,), start="09:30", end="10:30") -> FixedCommitment:
    return FixedCommitment(
        id=commitment_id,
        title=f"One-off {commitment_id}",
        start_time=start,
        end_time=end,
        recurring=False,
        specific_dates=list(dates),
    )


def test_one_off_over_recurring_is_override():
    conflict = check_commitment_conflicts(make_one_off(), [make_recurring()])

    assert conflict.has_conflict
    assert conflict.conflict_type == CommitmentConflictType.OVERRIDE
    assert conflict.conflicting_dates == [WEDNESDAY]
    assert conflict.conflicting_commitment.id == "rec"


def test_add_one_off_suppresses_recurring_occurrence():
    recurring = make_recurring()
    one_off = make_one_off()

    change = add_commitment(one_off, [recurring])

    assert change.applied
    updated_recurring, added = change.commitments
    assert updated_recurring.deleted_occurrences == [WEDNESDAY]
    assert added.id == "once"
    assert recurring.deleted_occurrences == []
    assert busy_intervals_for_date(change.commitments, WEDNESDAY) == [TimeInterval(570, 630)]


def test_generation_after_override_only_blocks_one_off():
    change = add_commitment(make_one_off(), [make_recurring()])
    task = Task(id="t1", title="Essay", deadline=WEDNESDAY, estimated_hours=0.5)
    settings = UserSettings(study_window_start_hour=9)

    result = generate_plan([task], settings, change.commitments, now=datetime(2025, 3, 12, 7, 0))

    session = result.plans[0].planned_tasks[0]
    assert session.start_time == "09:00"
    assert session.end_time == "09:30"


def test_new_recurring_gets_one_off_dates_deleted():
    change = add_commitment(make_recurring(), [make_one_off()])

    assert change.applied
    one_off, added = change.commitments
    assert one_off.deleted_occurrences == []
    assert added.deleted_occurrences == [WEDNESDAY]


def test_recurring_overlap_is_strict_and_rejected():
    existing = [make_recurring("a", days=(1,))]
    candidate = make_recurring("b", days=(1, 2), start="09:30", end="11:00")

    conflict = check_commitment_conflicts(candidate, existing)
    assert conflict.conflict_type == CommitmentConflictType.STRICT

    change = add_commitment(candidate, existing)
    assert not change.applied
    assert change.commitments == existing


def test_one_off_overlap_is_strict_with_dates():
    conflict = check_commitment_conflicts(make_one_off("b", start="10:00", end="11:00"), [make_one_off("a")])

    assert conflict.conflict_type == CommitmentConflictType.STRICT
    assert conflict.conflicting_dates == [WEDNESDAY]


def test_touching_times_do_not_conflict():
    conflict = check_commitment_conflicts(make_recurring("b", start="10:00", end="11:00"), [make_recurring("a")])
    assert not conflict.has_conflict


def test_exclude_id_skips_the_edited_commitment():
    recurring = make_recurring()
    assert not check_commitment_conflicts(recurring, [recurring], exclude_id="rec").has_conflict


def test_update_commitment():
    existing = [make_recurring("a", days=(1,)), make_recurring("b", days=(2,))]

    change = update_commitment("b", {"title": "Gym"}, existing)
    assert change.applied
    assert [c.title for c in change.commitments] == ["Recurring a", "Gym"]

    rejected = update_commitment("b", {"days_of_week": [1]}, existing)
    assert not rejected.applied
    assert rejected.conflict.conflicting_commitment.id == "a"


def test_update_commitment_errors():
    existing = [make_recurring()]
    with pytest.raises(NotFoundError):
        update_commitment("missing", {"title": "x"}, existing)
    with pytest.raises(ValidationError):
        update_commitment("rec", {"start_time": "11:00"}, existing)


def test_delete_commitment_and_occurrence():
    existing = [make_recurring("a"), make_recurring("b", days=(2,))]

    assert [c.id for c in delete_commitment("a", existing)] == ["b"]
    updated = delete_occurrence("a", WEDNESDAY, existing)
    assert updated[0].deleted_occurrences == [WEDNESDAY]
    assert delete_occurrence("a", WEDNESDAY, updated)[0].deleted_occurrences == [WEDNESDAY]
    with pytest.raises(NotFoundError):
        delete_commitment("missing", existing)


def test_modify_occurrence_merges_partial_overrides():
    existing = [make_recurring()]

    step1 = modify_occurrence("rec", WEDNESDAY, OccurrenceOverride(start_time="09:15"), existing)
    step2 = modify_occurrence("rec", WEDNESDAY, OccurrenceOverride(title="Lab"), step1)

    override = step2[0].modified_occurrences[WEDNESDAY]
    assert override.start_time == "09:15"
    assert override.title == "Lab"
    assert busy_intervals_for_date(step2, WEDNESDAY) == [TimeInterval(555, 600)]


def test_modify_occurrence_rejects_inverted_range():
    with pytest.raises(ValidationError):
        modify_occurrence("rec", WEDNESDAY, OccurrenceOverride(start_time="11:00"), [make_recurring()])
