"""
Request and response bodies for the API.

The engine keeps no storage: every request carries the snapshot it needs.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from studyplan.models import (
    FixedCommitment,
    PlanConflict,
    SessionStatus,
    StudyPlan,
    StudySession,
    Task,
    UserSettings,
)


class PlanSnapshot(BaseModel):
    """Tasks, settings, commitments and current plans."""

    tasks: list[Task] = Field(default_factory=list)
    settings: UserSettings = Field(default_factory=UserSettings)
    commitments: list[FixedCommitment] = Field(default_factory=list)
    plans: list[StudyPlan] = Field(default_factory=list)
    today: Optional[date] = None
    now: Optional[datetime] = None


class PlanValidationResponse(BaseModel):
    valid: bool
    conflict: Optional[PlanConflict] = None


class SessionStatusRequest(BaseModel):
    session: StudySession
    plan_date: date
    now: Optional[datetime] = None


class SessionStatusResponse(BaseModel):
    status: SessionStatus


class SessionActionRequest(BaseModel):
    """Identifies one session inside a plan snapshot."""

    plans: list[StudyPlan]
    tasks: list[Task] = Field(default_factory=list)
    plan_date: date
    task_id: str
    session_number: int = Field(..., ge=1)
    actual_hours: Optional[float] = Field(None, ge=0)
    now: Optional[datetime] = None


class CommitmentCheckRequest(BaseModel):
    candidate: FixedCommitment
    existing: list[FixedCommitment] = Field(default_factory=list)
    exclude_id: Optional[str] = None


class CommitmentAddRequest(BaseModel):
    commitment: FixedCommitment
    existing: list[FixedCommitment] = Field(default_factory=list)


class SuggestionRequest(BaseModel):
    tasks: list[Task] = Field(default_factory=list)
    unscheduled_task_ids: list[str] = Field(default_factory=list)
    today: Optional[date] = None
