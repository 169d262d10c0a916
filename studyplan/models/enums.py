"""
Enum definitions for the application.

These enums are used across models and provide type-safe status/mode values.
"""

from enum import Enum


class TaskStatus(str, Enum):
    """Task status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SessionStatus(str, Enum):
    """Study session status (stored or classified)."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MISSED = "missed"
    OVERDUE = "overdue"
    RESCHEDULED = "rescheduled"
    SKIPPED = "skipped"


class StudyPlanMode(str, Enum):
    """
    Plan generation strategy.

    EVEN = spread each task's hours across its whole window
    EISENHOWER = greedy deadline/importance-first allocation
    """

    EVEN = "even"
    EISENHOWER = "eisenhower"


class CommitmentType(str, Enum):
    """Fixed commitment category. BUFFER blocks time but is not displayed."""

    CLASS = "class"
    WORK = "work"
    APPOINTMENT = "appointment"
    OTHER = "other"
    BUFFER = "buffer"


class CommitmentConflictType(str, Enum):
    """
    Commitment overlap classification.

    STRICT = same recurrence kind, the new commitment is rejected
    OVERRIDE = one-off over recurring, the recurring occurrence is suppressed
    """

    STRICT = "strict"
    OVERRIDE = "override"


class PlanConflictKind(str, Enum):
    """Kind of violation reported by the plan validator."""

    SESSION_OVERLAP = "session_overlap"
    DAILY_CAPACITY = "daily_capacity"
    SESSION_LENGTH = "session_length"
    COMMITMENT_OVERLAP = "commitment_overlap"


class RedistributionIssueCode(str, Enum):
    """Reasons reported by the redistribution pre-flight check."""

    NO_MISSED_SESSIONS = "no_missed_sessions"
    INSUFFICIENT_TIME = "insufficient_time"
    NO_WORK_DAYS = "no_work_days"
    URGENT_DEADLINE = "urgent_deadline"


class TaskCompletion(str, Enum):
    """Outcome of the task completion check after a session update."""

    NONE = "none"
    ALL_SESSIONS_DONE = "all_sessions_done"
    SKIPPED_ONLY = "skipped_only"


class SuggestionType(str, Enum):
    """Smart suggestion severity."""

    WARNING = "warning"
    SUGGESTION = "suggestion"
    CELEBRATION = "celebration"
