"""Pydantic models (schemas) for the application."""

from studyplan.models.enums import (
    CommitmentConflictType,
    CommitmentType,
    PlanConflictKind,
    RedistributionIssueCode,
    SessionStatus,
    StudyPlanMode,
    SuggestionType,
    TaskCompletion,
    TaskStatus,
)
from studyplan.models.task import Task
from studyplan.models.commitment import (
    CommitmentChange,
    CommitmentConflictResult,
    FixedCommitment,
    OccurrenceOverride,
    ResolvedCommitment,
)
from studyplan.models.study_plan import (
    PlanConflict,
    PlanGenerationResult,
    PlanSuggestion,
    RedistributionFeedback,
    RedistributionIssue,
    RedistributionResult,
    RescheduleApplication,
    SessionMoveResult,
    SessionUpdateResult,
    SmartSuggestion,
    StudyPlan,
    StudySession,
    TimeSlot,
    UserReschedule,
    UserSettings,
)

__all__ = [
    # Enums
    "TaskStatus",
    "SessionStatus",
    "StudyPlanMode",
    "CommitmentType",
    "CommitmentConflictType",
    "PlanConflictKind",
    "RedistributionIssueCode",
    "TaskCompletion",
    "SuggestionType",
    # Task
    "Task",
    # Commitment
    "FixedCommitment",
    "OccurrenceOverride",
    "ResolvedCommitment",
    "CommitmentConflictResult",
    "CommitmentChange",
    # Plan
    "StudySession",
    "StudyPlan",
    "UserSettings",
    "TimeSlot",
    "PlanSuggestion",
    "PlanGenerationResult",
    "RedistributionIssue",
    "RedistributionFeedback",
    "RedistributionResult",
    "PlanConflict",
    "SmartSuggestion",
    "UserReschedule",
    "SessionUpdateResult",
    "SessionMoveResult",
    "RescheduleApplication",
]
