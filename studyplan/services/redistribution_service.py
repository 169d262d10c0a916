"""
Missed-session redistribution service.

Moves sessions whose date passed without completion to the earliest open
slot in the coming days. The whole operation is all-or-nothing: if the
resulting plan set fails validation the input plans are returned unchanged.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from studyplan.core.config import get_settings
from studyplan.core.logger import setup_logger
from studyplan.models.commitment import FixedCommitment
from studyplan.models.enums import RedistributionIssueCode, SessionStatus, TaskStatus
from studyplan.models.study_plan import (
    RedistributionFeedback,
    RedistributionIssue,
    RedistributionResult,
    StudyPlan,
    StudySession,
    UserSettings,
)
from studyplan.models.task import Task
from studyplan.services.commitment_resolver import busy_intervals_for_date
from studyplan.services.conflict_validator import find_plan_conflict
from studyplan.services.plan_utils import is_work_day, prune_empty_plans, session_minutes, with_sessions
from studyplan.services.reschedule_service import daily_available_minutes
from studyplan.services.session_combiner import combine_sessions_on_same_day_with_validation
from studyplan.services.session_status import classify_session_status
from studyplan.services.slot_finder import find_gap, required_minutes_for, session_busy_intervals
from studyplan.utils.datetime_utils import format_hours, format_minutes, local_now

logger = setup_logger(__name__)

IMPORTANCE_BONUS = 1000
PAST_DEADLINE_BONUS = 2000
URGENCY_WINDOW_DAYS = 100


@dataclass
class MissedSession:
    """A missed session with its location and ranking."""

    session: StudySession
    plan_date: date
    index: int
    priority: float


def session_priority(task: Optional[Task], today: date) -> float:
    """
    Rank a missed session by its task.

    importance adds 1000; a passed deadline adds 2000, otherwise closer
    deadlines add up to 100.
    """
    if task is None:
        return 0
    priority = IMPORTANCE_BONUS if task.importance else 0
    days_until_deadline = (task.deadline - today).days
    if days_until_deadline < 0:
        priority += PAST_DEADLINE_BONUS
    else:
        priority += max(0, URGENCY_WINDOW_DAYS - days_until_deadline)
    return priority


def cleanup_orphaned_sessions(plans: list[StudyPlan], moved: list[StudySession]) -> list[StudyPlan]:
    """
    Drop moved sessions that still sit in their original date's plan.

    The redistributed plan set removes each source session by index, so this
    is a guard against duplicated input rather than a normal step.
    """
    moved_keys = {(s.task_id, s.session_number, s.original_date) for s in moved}
    result = []
    for plan in plans:
        kept = [
            session
            for session in plan.planned_tasks
            if not (
                session.has_redistribution_metadata
                and session.status == SessionStatus.SCHEDULED
                and session.original_date == plan.date
                and (session.task_id, session.session_number, session.original_date) in moved_keys
            )
        ]
        if len(kept) != len(plan.planned_tasks):
            logger.info(f"Cleaned up {len(plan.planned_tasks) - len(kept)} orphaned sessions on {plan.date}")
            result.append(with_sessions(plan, kept))
        else:
            result.append(plan)
    return result


class RedistributionService:
    """
    Service for redistributing missed sessions.

    Provides:
    - Pre-flight feasibility check with structured issues
    - Priority-ordered first-fit moves over a bounded horizon
    - Validation with full rollback
    """

    def __init__(
        self,
        search_days: Optional[int] = None,
        lookahead_days: Optional[int] = None,
    ):
        app_settings = get_settings()
        self.search_days = search_days if search_days is not None else app_settings.MISSED_SESSION_SEARCH_DAYS
        self.lookahead_days = (
            lookahead_days if lookahead_days is not None else app_settings.PREFLIGHT_LOOKAHEAD_DAYS
        )

    def find_missed_sessions(
        self,
        plans: list[StudyPlan],
        tasks: list[Task],
        now: datetime,
    ) -> list[MissedSession]:
        tasks_by_id = {task.id: task for task in tasks}
        missed = []
        for plan in plans:
            for index, session in enumerate(plan.planned_tasks):
                if classify_session_status(session, plan.date, now) != SessionStatus.MISSED:
                    continue
                priority = session_priority(tasks_by_id.get(session.task_id), now.date())
                missed.append(MissedSession(session, plan.date, index, priority))
        return missed

    def preflight(
        self,
        missed: list[MissedSession],
        settings: UserSettings,
        commitments: list[FixedCommitment],
        tasks: list[Task],
        today: date,
    ) -> tuple[bool, list[RedistributionIssue], list[str]]:
        """
        Decide whether redistribution can run.

        Blocks on: no missed sessions, missed time above the time available
        over the lookahead window, or no work day with free time in it.
        """
        issues: list[RedistributionIssue] = []
        suggestions: list[str] = []

        if not missed:
            issues.append(
                RedistributionIssue(
                    code=RedistributionIssueCode.NO_MISSED_SESSIONS,
                    message="No missed sessions found",
                )
            )
            return False, issues, suggestions

        blocked = False
        available_minutes = 0
        available_days = 0
        for offset in range(self.lookahead_days + 1):
            day = today + timedelta(days=offset)
            minutes = daily_available_minutes(day, settings, commitments)
            available_minutes += minutes
            if minutes > 0:
                available_days += 1

        missed_minutes = sum(session_minutes(item.session) for item in missed)
        if missed_minutes > available_minutes:
            blocked = True
            issues.append(
                RedistributionIssue(
                    code=RedistributionIssueCode.INSUFFICIENT_TIME,
                    message=(
                        f"Insufficient available time: {missed_minutes / 60:.1f} hours needed, "
                        f"{available_minutes / 60:.1f} hours available"
                    ),
                )
            )
            suggestions.append("Consider increasing daily available hours in settings")
            suggestions.append("Consider adjusting your study window hours")
            suggestions.append("Consider removing some fixed commitments")

        if available_days == 0:
            blocked = True
            issues.append(
                RedistributionIssue(
                    code=RedistributionIssueCode.NO_WORK_DAYS,
                    message=f"No available work days in the next {self.lookahead_days} days",
                )
            )
            suggestions.append("Check your work days settings")

        pending = [task for task in tasks if task.status == TaskStatus.PENDING]
        urgent = [task for task in pending if 0 < (task.deadline - today).days <= 1]
        if urgent:
            issues.append(
                RedistributionIssue(
                    code=RedistributionIssueCode.URGENT_DEADLINE,
                    message=f"{len(urgent)} urgent task(s) with deadline within 1 day",
                )
            )
            suggestions.append("Consider extending deadlines for urgent tasks")

        past_due = [task for task in pending if task.deadline < today]
        if past_due:
            logger.warning(
                f"{len(past_due)} task(s) have deadlines in the past: "
                + ", ".join(f"{task.title} ({task.deadline})" for task in past_due)
            )

        return not blocked, issues, suggestions

    def redistribute_missed_sessions(
        self,
        plans: list[StudyPlan],
        settings: UserSettings,
        commitments: list[FixedCommitment],
        tasks: list[Task],
        now: Optional[datetime] = None,
    ) -> RedistributionResult:
        """
        Move missed sessions forward, all-or-nothing.

        Args:
            plans: Current plan set
            settings: User scheduling preferences
            commitments: Fixed commitments
            tasks: Tasks used for priority ranking
            now: Current local time

        Returns:
            RedistributionResult; on pre-flight refusal or rollback
            updated_plans is the input plan set
        """
        current = now or local_now()
        today = current.date()
        missed = self.find_missed_sessions(plans, tasks, current)

        can_run, issues, suggestions = self.preflight(missed, settings, commitments, tasks, today)
        if not can_run:
            message = "Cannot redistribute missed sessions: " + ", ".join(issue.message for issue in issues)
            logger.info(message)
            return RedistributionResult(
                updated_plans=plans,
                feedback=RedistributionFeedback(
                    success=False,
                    message=message,
                    total_missed=len(missed),
                    remaining_missed=len(missed),
                    issues=issues,
                    suggestions=suggestions,
                ),
            )

        ordered = self._processing_order(missed)
        plans_map = {plan.date: plan for plan in plans}
        insertions: dict[date, list[StudySession]] = defaultdict(list)
        removals: set[tuple[date, int]] = set()
        moved: list[StudySession] = []
        failed: list[StudySession] = []

        for item in ordered:
            placed = self._try_move(item, plans_map, insertions, settings, commitments, current)
            if placed is None:
                logger.info(
                    f"Failed to move session {item.session.task_id} "
                    f"({format_hours(item.session.allocated_hours)}) - no suitable slot"
                )
                failed.append(item.session)
                continue
            target_date, new_session = placed
            insertions[target_date].append(new_session)
            removals.add((item.plan_date, item.index))
            moved.append(new_session)
            logger.info(
                f"Moving session {item.session.task_id} from {item.plan_date} "
                f"to {target_date} {new_session.start_time}"
            )

        candidate = self._build_plan_set(plans, insertions, removals, settings)
        candidate = combine_sessions_on_same_day_with_validation(candidate, settings, commitments)
        candidate = prune_empty_plans(cleanup_orphaned_sessions(candidate, moved))

        conflict = find_plan_conflict(candidate, settings, commitments, current)
        if conflict is not None:
            logger.warning(f"Conflicts detected in redistributed sessions, rolling back: {conflict.message}")
            all_missed = [item.session for item in missed]
            return RedistributionResult(
                updated_plans=plans,
                moved_sessions=[],
                failed_sessions=all_missed,
                rolled_back=True,
                feedback=RedistributionFeedback(
                    success=False,
                    message=(
                        f"Could not redistribute any missed sessions. All {len(all_missed)} "
                        f"sessions have conflicts or no available time slots."
                    ),
                    total_missed=len(missed),
                    failed_to_move=len(all_missed),
                    remaining_missed=len(missed),
                    conflicts_detected=True,
                    issues=issues,
                    suggestions=suggestions,
                ),
            )

        remaining = self._count_remaining_missed(candidate, current)
        logger.info(
            f"Redistribution complete: {len(moved)} moved, {len(failed)} failed, {remaining} remaining missed"
        )
        return RedistributionResult(
            updated_plans=candidate,
            moved_sessions=moved,
            failed_sessions=failed,
            feedback=RedistributionFeedback(
                success=len(moved) > 0,
                message=self._feedback_message(len(moved), len(failed), remaining),
                total_missed=len(missed),
                successfully_moved=len(moved),
                failed_to_move=len(failed),
                remaining_missed=remaining,
                conflicts_detected=len(failed) > 0 and len(moved) == 0,
                issues=issues,
                suggestions=suggestions,
            ),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _processing_order(missed: list[MissedSession]) -> list[MissedSession]:
        """Group by task; groups by their best priority, sessions by priority within."""
        groups: dict[str, list[MissedSession]] = defaultdict(list)
        for item in missed:
            groups[item.session.task_id].append(item)
        ordered_groups = sorted(
            groups.values(),
            key=lambda group: max(item.priority for item in group),
            reverse=True,
        )
        result = []
        for group in ordered_groups:
            result.extend(sorted(group, key=lambda item: item.priority, reverse=True))
        return result

    def _try_move(
        self,
        item: MissedSession,
        plans_map: dict[date, StudyPlan],
        insertions: dict[date, list[StudySession]],
        settings: UserSettings,
        commitments: list[FixedCommitment],
        now: datetime,
    ) -> Optional[tuple[date, StudySession]]:
        """First work day in the search window with a gap long enough."""
        today = now.date()
        required = required_minutes_for(item.session.allocated_hours)

        for offset in range(self.search_days + 1):
            day = today + timedelta(days=offset)
            if not is_work_day(day, settings):
                continue

            existing = list(plans_map[day].planned_tasks) if day in plans_map else []
            busy = session_busy_intervals(existing + insertions.get(day, []))
            busy.extend(busy_intervals_for_date(commitments, day))
            not_before = now.hour * 60 + now.minute if day == today else None
            gap = find_gap(
                required,
                busy,
                settings.study_window_start_hour * 60,
                settings.study_window_end_hour * 60,
                settings.buffer_time_between_sessions,
                not_before,
            )
            if gap is None:
                continue

            new_session = item.session.model_copy(
                update={
                    "start_time": format_minutes(gap.start_minutes),
                    "end_time": format_minutes(gap.end_minutes),
                    "original_time": item.session.start_time,
                    "original_date": item.plan_date,
                    "rescheduled_at": now,
                    "status": SessionStatus.SCHEDULED,
                }
            )
            return day, new_session
        return None

    @staticmethod
    def _build_plan_set(
        plans: list[StudyPlan],
        insertions: dict[date, list[StudySession]],
        removals: set[tuple[date, int]],
        settings: UserSettings,
    ) -> list[StudyPlan]:
        """Construct the new plan set from collected removals and insertions."""
        result = []
        seen = set()
        for plan in plans:
            seen.add(plan.date)
            kept = [
                session
                for index, session in enumerate(plan.planned_tasks)
                if (plan.date, index) not in removals
            ]
            result.append(with_sessions(plan, kept + insertions.get(plan.date, [])))
        for day, sessions in insertions.items():
            if day not in seen:
                result.append(StudyPlan.for_date(day, list(sessions), settings.daily_available_hours))
        return result

    @staticmethod
    def _count_remaining_missed(plans: list[StudyPlan], now: datetime) -> int:
        today = now.date()
        return sum(
            1
            for plan in plans
            if plan.date < today
            for session in plan.planned_tasks
            if classify_session_status(session, plan.date, now) == SessionStatus.MISSED
        )

    @staticmethod
    def _feedback_message(moved: int, failed: int, remaining: int) -> str:
        if moved > 0 and failed == 0 and remaining == 0:
            return f"Successfully redistributed all {moved} missed sessions!"
        if moved > 0:
            return (
                f"Partially successful: moved {moved} sessions, but {failed} could not be "
                f"redistributed and {remaining} remain missed."
            )
        if failed > 0:
            return (
                f"Could not redistribute any missed sessions. All {failed} sessions have "
                f"conflicts or no available time slots."
            )
        if remaining > 0:
            return f"Redistribution completed but {remaining} missed sessions remain."
        return "No missed sessions found to redistribute."


def redistribute_missed_sessions(
    plans: list[StudyPlan],
    settings: UserSettings,
    commitments: list[FixedCommitment],
    tasks: list[Task],
    now: Optional[datetime] = None,
) -> RedistributionResult:
    """Redistribute missed sessions with the default service configuration."""
    return RedistributionService().redistribute_missed_sessions(plans, settings, commitments, tasks, now)
