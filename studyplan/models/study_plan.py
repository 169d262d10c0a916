"""
Study plan models: sessions, day plans, user settings and engine results.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from studyplan.core.config import get_settings
from studyplan.models.enums import (
    PlanConflictKind,
    RedistributionIssueCode,
    SessionStatus,
    StudyPlanMode,
    SuggestionType,
)
from studyplan.models.task import Task


class StudySession(BaseModel):
    """A contiguous block of study time for one task on one date."""

    task_id: str
    # Empty when no slot was found; the hours still count as allocated
    start_time: str = ""
    end_time: str = ""
    allocated_hours: float = Field(..., ge=0)
    session_number: int = Field(1, ge=1)
    status: SessionStatus = SessionStatus.SCHEDULED
    done: bool = False
    actual_hours: Optional[float] = None
    completed_at: Optional[datetime] = None

    # Set when the session was moved from its generated slot
    original_time: Optional[str] = None
    original_date: Optional[date] = None
    rescheduled_at: Optional[datetime] = None
    is_manual_override: bool = False

    @property
    def has_redistribution_metadata(self) -> bool:
        return self.original_time is not None and self.original_date is not None

    @property
    def is_skipped(self) -> bool:
        return self.status == SessionStatus.SKIPPED

    @property
    def is_done_or_skipped(self) -> bool:
        return self.done or self.status in (SessionStatus.COMPLETED, SessionStatus.SKIPPED)

    @property
    def has_time_slot(self) -> bool:
        return bool(self.start_time) and bool(self.end_time)

    @property
    def is_regular(self) -> bool:
        """Regular sessions are subject to capacity and length rules."""
        return (
            self.status != SessionStatus.MISSED
            and not self.has_redistribution_metadata
            and not self.is_manual_override
        )


class StudyPlan(BaseModel):
    """All sessions scheduled on one calendar date."""

    id: str
    date: date
    planned_tasks: list[StudySession] = Field(default_factory=list)
    # Progress metric: hours of done-or-skipped sessions
    total_study_hours: float = 0
    available_hours: float = 0
    is_overloaded: bool = False

    @classmethod
    def for_date(
        cls,
        day: date,
        sessions: list[StudySession],
        available_hours: float,
        is_overloaded: bool = False,
    ) -> "StudyPlan":
        return cls(
            id=plan_id_for(day),
            date=day,
            planned_tasks=sessions,
            total_study_hours=progress_hours(sessions),
            available_hours=available_hours,
            is_overloaded=is_overloaded,
        )


def plan_id_for(day: date) -> str:
    return f"plan-{day.isoformat()}"


def progress_hours(sessions: list[StudySession]) -> float:
    return round(sum(s.allocated_hours for s in sessions if s.is_done_or_skipped), 4)


class UserSettings(BaseModel):
    """Per-user scheduling preferences."""

    daily_available_hours: float = Field(6, gt=0, le=24)
    work_days: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5, 6])
    buffer_days: int = Field(0, ge=0)
    min_session_length: int = Field(
        default_factory=lambda: get_settings().DEFAULT_MIN_SESSION_MINUTES, ge=0, description="Minutes"
    )
    buffer_time_between_sessions: int = Field(0, ge=0, description="Minutes")
    study_window_start_hour: int = Field(
        default_factory=lambda: get_settings().DEFAULT_STUDY_WINDOW_START_HOUR, ge=0, le=23
    )
    study_window_end_hour: int = Field(
        default_factory=lambda: get_settings().DEFAULT_STUDY_WINDOW_END_HOUR, ge=0, le=23
    )
    study_plan_mode: StudyPlanMode = StudyPlanMode.EVEN

    @model_validator(mode="after")
    def validate_window(self):
        """Study window must be a same-day range."""
        if self.study_window_end_hour <= self.study_window_start_hour:
            raise ValueError("study_window_end_hour must be after study_window_start_hour")
        if any(day < 0 or day > 6 for day in self.work_days):
            raise ValueError("work_days must be between 0 (Sunday) and 6 (Saturday)")
        return self


class TimeSlot(BaseModel):
    start_time: str
    end_time: str


class PlanSuggestion(BaseModel):
    """Unplaced work for a task after generation."""

    task_id: str
    task_title: str
    unscheduled_minutes: int
    importance: bool
    deadline: date


class PlanGenerationResult(BaseModel):
    plans: list[StudyPlan] = Field(default_factory=list)
    suggestions: list[PlanSuggestion] = Field(default_factory=list)


class RedistributionIssue(BaseModel):
    code: RedistributionIssueCode
    message: str


class RedistributionFeedback(BaseModel):
    """Counts and diagnostics for a redistribution run."""

    success: bool
    message: str
    total_missed: int = 0
    successfully_moved: int = 0
    failed_to_move: int = 0
    remaining_missed: int = 0
    conflicts_detected: bool = False
    issues: list[RedistributionIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class RedistributionResult(BaseModel):
    updated_plans: list[StudyPlan]
    moved_sessions: list[StudySession] = Field(default_factory=list)
    failed_sessions: list[StudySession] = Field(default_factory=list)
    feedback: RedistributionFeedback
    rolled_back: bool = False


class PlanConflict(BaseModel):
    """First violation found in a plan set."""

    kind: PlanConflictKind
    date: date
    message: str
    task_ids: list[str] = Field(default_factory=list)


class SmartSuggestion(BaseModel):
    type: SuggestionType
    message: str
    action: Optional[str] = None
    task_id: Optional[str] = None


class UserReschedule(BaseModel):
    """A manual move of a session, replayed after regeneration."""

    id: str
    task_id: str
    session_number: int
    original_plan_date: date
    original_start_time: str
    original_end_time: str
    new_plan_date: date
    new_start_time: str
    new_end_time: str
    rescheduled_at: datetime = Field(default_factory=datetime.now)
    status: str = "active"


class SessionUpdateResult(BaseModel):
    """Plans and tasks after a session lifecycle update."""

    plans: list[StudyPlan]
    tasks: list[Task] = Field(default_factory=list)
    completed_task_ids: list[str] = Field(default_factory=list)


class SessionMoveResult(BaseModel):
    """Result of moving one session to today's first open slot."""

    updated_plans: list[StudyPlan]
    success: bool
    new_date: Optional[date] = None
    new_time: Optional[str] = None


class RescheduleApplication(BaseModel):
    """Manual reschedules replayed onto a plan set."""

    updated_plans: list[StudyPlan]
    valid: list[UserReschedule] = Field(default_factory=list)
    obsolete: list[UserReschedule] = Field(default_factory=list)
