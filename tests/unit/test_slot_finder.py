"""
Unit tests for slot search and commitment resolution.
"""

from datetime import date

from studyplan.models.commitment import FixedCommitment, OccurrenceOverride
from studyplan.models.enums import CommitmentType, SessionStatus
from studyplan.models.study_plan import StudySession
from studyplan.services.commitment_resolver import (
    busy_intervals_for_date,
    resolve_commitment,
    visible_commitments_for_date,
)
from studyplan.services.slot_finder import find_gap, find_next_available_slot, required_minutes_for
from studyplan.utils.intervals import TimeInterval

MONDAY = date(2025, 3, 10)


def make_commitment(**overrides) -> FixedCommitment:
    data = {
        "id": "c1",
        "title": "Lecture",
        "start_time": "06:00",
        "end_time": "08:00",
        "recurring": True,
        "days_of_week": [1],
    }
    data.update(overrides)
    return FixedCommitment(**data)


def test_find_gap_first_fit():
    busy = [TimeInterval(420, 480)]
    assert find_gap(60, busy, 360, 1380) == TimeInterval(360, 420)
    assert find_gap(90, busy, 360, 1380) == TimeInterval(480, 570)


def test_find_gap_applies_buffer_after_busy_interval():
    busy = [TimeInterval(360, 420)]
    assert find_gap(30, busy, 360, 1380, buffer_minutes=15) == TimeInterval(435, 465)


def test_find_gap_not_before():
    assert find_gap(30, [], 360, 1380, not_before_minutes=600) == TimeInterval(600, 630)


def test_find_gap_returns_none_when_window_full():
    assert find_gap(30, [TimeInterval(360, 1380)], 360, 1380) is None
    assert find_gap(0, [], 360, 1380) is None


def test_required_minutes_rounds_up():
    assert required_minutes_for(0.25) == 15
    assert required_minutes_for(0.3333) == 20
    assert required_minutes_for(1.5) == 90


def test_skipped_sessions_do_not_block():
    skipped = StudySession(
        task_id="t1",
        start_time="06:00",
        end_time="07:00",
        allocated_hours=1,
        status=SessionStatus.SKIPPED,
    )
    slot = find_next_available_slot(1, [skipped], [], MONDAY, 6, 23)
    assert slot.start_time == "06:00"


def test_deleted_occurrence_does_not_block():
    commitment = make_commitment(deleted_occurrences=[MONDAY])
    slot = find_next_available_slot(1, [], [commitment], MONDAY, 6, 23)
    assert slot.start_time == "06:00"
    assert slot.end_time == "07:00"


def test_modified_occurrence_blocks_overridden_times():
    commitment = make_commitment(
        modified_occurrences={MONDAY: OccurrenceOverride(end_time="07:00")},
    )
    occurrence = resolve_commitment(commitment, MONDAY)
    assert occurrence.start_time == "06:00"
    assert occurrence.end_time == "07:00"
    assert occurrence.title == "Lecture"

    slot = find_next_available_slot(0.5, [], [commitment], MONDAY, 6, 23)
    assert slot.start_time == "07:00"


def test_buffer_commitments_block_but_are_hidden():
    buffer = make_commitment(type=CommitmentType.BUFFER)
    assert busy_intervals_for_date([buffer], MONDAY) == [TimeInterval(360, 480)]
    assert visible_commitments_for_date([buffer], MONDAY) == []


def test_one_off_commitment_applies_only_on_its_dates():
    one_off = make_commitment(recurring=False, days_of_week=[], specific_dates=[MONDAY])
    assert resolve_commitment(one_off, MONDAY) is not None
    assert resolve_commitment(one_off, date(2025, 3, 17)) is None
