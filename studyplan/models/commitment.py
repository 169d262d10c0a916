"""
Fixed commitment models.

A commitment is either recurring (by weekday, 0=Sunday) or one-off (by date).
Individual occurrences can be deleted or partially modified.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from studyplan.models.enums import CommitmentConflictType, CommitmentType
from studyplan.utils.datetime_utils import parse_time_to_minutes


def _validate_time_range(start_time: str, end_time: str) -> None:
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    if start is None or end is None:
        raise ValueError("start_time and end_time must be HH:MM")
    if start >= end:
        raise ValueError("start_time must be before end_time")


class OccurrenceOverride(BaseModel):
    """Partial override for a single occurrence. Unset fields fall back to the base."""

    title: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    type: Optional[CommitmentType] = None


class FixedCommitment(BaseModel):
    """A non-study obligation that blocks scheduling."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=500)
    start_time: str = Field(..., description="HH:MM")
    end_time: str = Field(..., description="HH:MM")
    type: CommitmentType = CommitmentType.OTHER
    # Stored records without the field are recurring
    recurring: bool = True
    days_of_week: list[int] = Field(default_factory=list)
    specific_dates: list[date] = Field(default_factory=list)
    deleted_occurrences: list[date] = Field(default_factory=list)
    modified_occurrences: dict[date, OccurrenceOverride] = Field(default_factory=dict)
    location: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def validate_times(self):
        """Validate same-day time range and weekday numbers."""
        _validate_time_range(self.start_time, self.end_time)
        if any(day < 0 or day > 6 for day in self.days_of_week):
            raise ValueError("days_of_week must be between 0 (Sunday) and 6 (Saturday)")
        return self


class ResolvedCommitment(BaseModel):
    """A commitment occurrence on a concrete date, with overrides applied."""

    commitment_id: str
    title: str
    date: date
    start_time: str
    end_time: str
    type: CommitmentType
    start_minutes: int
    end_minutes: int

    @property
    def is_visible(self) -> bool:
        return self.type != CommitmentType.BUFFER


class CommitmentConflictResult(BaseModel):
    """First conflict between a candidate commitment and the existing set."""

    has_conflict: bool = False
    conflicting_commitment: Optional[FixedCommitment] = None
    conflict_type: Optional[CommitmentConflictType] = None
    conflicting_dates: list[date] = Field(default_factory=list)


class CommitmentChange(BaseModel):
    """Result of adding or updating a commitment."""

    commitments: list[FixedCommitment]
    conflict: CommitmentConflictResult = Field(default_factory=CommitmentConflictResult)
    applied: bool = True
    resolved_overrides: list[CommitmentConflictResult] = Field(default_factory=list)
