"""
Plan generation service.

Builds a day-by-day study plan from pending tasks using one of two
strategies:

- even: spread each task across every eligible day, retrying unplaced hours
  in bounded rounds, then assign time slots per day
- eisenhower: a single greedy forward pass in priority order, placing each
  session immediately

All capacity accounting is done in whole minutes.
"""

import math
from collections import defaultdict
from datetime import date, datetime
from typing import Optional

from studyplan.core.config import get_settings
from studyplan.core.logger import setup_logger
from studyplan.models.commitment import FixedCommitment
from studyplan.models.enums import SessionStatus, StudyPlanMode
from studyplan.models.study_plan import (
    PlanGenerationResult,
    StudyPlan,
    StudySession,
    UserSettings,
)
from studyplan.models.task import Task
from studyplan.services.plan_utils import (
    adjusted_deadline,
    daily_capacity_minutes,
    is_work_day,
    max_session_minutes,
    min_session_minutes,
    prune_empty_plans,
    schedulable_tasks,
    session_minutes,
    sort_sessions_by_task_priority,
    task_budget_minutes,
)
from studyplan.services.session_combiner import combine_sessions
from studyplan.services.session_status import classify_session_status
from studyplan.services.slot_finder import find_next_available_slot
from studyplan.services.suggestion_service import get_unscheduled_minutes_for_tasks
from studyplan.utils.datetime_utils import daterange, local_now, minutes_to_hours

logger = setup_logger(__name__)

# Even mode reports any unplaced minute
EVEN_SUGGESTION_THRESHOLD_MINUTES = 0


def optimize_session_lengths(
    total_minutes: int,
    day_count: int,
    min_minutes: int,
    max_minutes: int,
) -> list[int]:
    """
    Split total_minutes into as-even-as-possible session lengths.

    Session count is min(days, total // min) (one per day when that is zero).
    Each length is capped at max_minutes; lengths below min_minutes are
    dropped; any leftover is folded into the first session.
    """
    if total_minutes <= 0 or day_count <= 0:
        return []

    num_sessions = min(day_count, total_minutes // max(min_minutes, 1)) or day_count
    lengths: list[int] = []
    remaining = total_minutes
    for index in range(num_sessions):
        if remaining <= 0:
            break
        length = min(math.ceil(remaining / (num_sessions - index)), max_minutes, remaining)
        if length >= min_minutes:
            lengths.append(length)
            remaining -= length

    if remaining > 0 and lengths:
        lengths[0] += remaining
    return lengths


class _DayAllocations:
    """Mutable allocation state for one generation run."""

    def __init__(
        self,
        days: list[date],
        capacity_minutes: int,
        min_minutes: int,
        max_minutes: int,
        max_rounds: int,
    ):
        self.days = days
        self.remaining = {day: capacity_minutes for day in days}
        self.sessions: dict[date, list[StudySession]] = {day: [] for day in days}
        self.task_day_minutes: dict[tuple[date, str], int] = defaultdict(int)
        self.scheduled: dict[str, int] = defaultdict(int)
        self.min_minutes = min_minutes
        self.max_minutes = max_minutes
        self.max_rounds = max_rounds

    def room(self, task_id: str, day: date) -> int:
        """Minutes a task may still take on a day (capacity and session cap)."""
        return max(0, min(self.remaining[day], self.max_minutes - self.task_day_minutes[(day, task_id)]))

    def place(self, task: Task, day: date, requested: int) -> int:
        amount = min(requested, self.room(task.id, day))
        already = self.task_day_minutes[(day, task.id)]
        floor = 1 if already >= self.min_minutes else self.min_minutes
        if amount < floor:
            return 0

        session_number = sum(1 for s in self.sessions[day] if s.task_id == task.id) + 1
        self.sessions[day].append(
            StudySession(
                task_id=task.id,
                allocated_hours=minutes_to_hours(amount),
                session_number=session_number,
                status=SessionStatus.SCHEDULED,
            )
        )
        self.remaining[day] -= amount
        self.task_day_minutes[(day, task.id)] += amount
        self.scheduled[task.id] += amount
        return amount

    def distribute(self, task: Task, minutes: int, days_for_task: list[date]) -> int:
        """Initial even split over the task's days, then bounded retries."""
        lengths = optimize_session_lengths(minutes, len(days_for_task), self.min_minutes, self.max_minutes)
        placed = 0
        for day, length in zip(days_for_task, lengths):
            placed += self.place(task, day, length)

        unscheduled = minutes - placed
        if unscheduled > 0:
            logger.info(f"Task {task.id} has {unscheduled} unscheduled minutes to redistribute")
            placed += self.redistribute(task, unscheduled, days_for_task)
        return placed

    def redistribute(self, task: Task, minutes: int, days_for_task: list[date]) -> int:
        """Retry unplaced minutes against days with room, recomputing the split each round."""
        remaining = minutes
        placed_total = 0
        for _ in range(self.max_rounds):
            if remaining <= 0:
                break
            open_days = [day for day in days_for_task if self.room(task.id, day) > 0]
            if not open_days:
                break
            lengths = optimize_session_lengths(remaining, len(open_days), self.min_minutes, self.max_minutes)
            placed_round = 0
            for day, length in zip(open_days, lengths):
                placed_round += self.place(task, day, length)
            if placed_round == 0:
                break
            remaining -= placed_round
            placed_total += placed_round

        if remaining > 0:
            logger.info(f"Task {task.id} still has {remaining} unscheduled minutes after redistribution")
        return placed_total

    def shortfall(self, task: Task) -> int:
        return max(0, task_budget_minutes(task) - self.scheduled[task.id])

    def combine(self) -> None:
        for day in self.days:
            self.sessions[day] = combine_sessions(self.sessions[day])


class PlanGeneratorService:
    """
    Service for generating study plans.

    Provides:
    - Even-distribution and eisenhower strategies
    - Suggestions for work that could not be placed
    - Aggressive repacking after a task is deleted
    """

    def __init__(
        self,
        max_session_hours: Optional[float] = None,
        max_redistribution_rounds: Optional[int] = None,
        max_global_passes: Optional[int] = None,
    ):
        app_settings = get_settings()
        self.max_session_hours = (
            max_session_hours if max_session_hours is not None else app_settings.MAX_SESSION_HOURS
        )
        self.max_redistribution_rounds = (
            max_redistribution_rounds
            if max_redistribution_rounds is not None
            else app_settings.MAX_REDISTRIBUTION_ROUNDS
        )
        self.max_global_passes = (
            max_global_passes if max_global_passes is not None else app_settings.MAX_GLOBAL_REDISTRIBUTION_PASSES
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate_plan(
        self,
        tasks: list[Task],
        settings: UserSettings,
        commitments: list[FixedCommitment],
        existing_plans: Optional[list[StudyPlan]] = None,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> PlanGenerationResult:
        """
        Generate a fresh plan set.

        Args:
            tasks: All tasks (only pending ones with hours are scheduled)
            settings: User scheduling preferences
            commitments: Fixed commitments blocking time
            existing_plans: Previous plans, scanned for missed sessions (even mode)
            today: First schedulable date (defaults to now's date)
            now: Current local time used to classify missed sessions

        Returns:
            PlanGenerationResult with non-empty plans and suggestions
        """
        current = now or local_now()
        start = today or current.date()
        pending = schedulable_tasks(tasks)
        if not pending:
            logger.info("No pending tasks to schedule")
            return PlanGenerationResult()

        if settings.study_plan_mode == StudyPlanMode.EISENHOWER:
            return self._generate_eisenhower(pending, settings, commitments, start)
        return self._generate_even(pending, settings, commitments, existing_plans or [], start, current)

    def redistribute_after_task_deletion(
        self,
        tasks: list[Task],
        settings: UserSettings,
        commitments: list[FixedCommitment],
        existing_plans: list[StudyPlan],
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> list[StudyPlan]:
        """
        Repack the remaining tasks after one was deleted.

        existing_plans must already have the deleted task's sessions removed.
        Eisenhower mode regenerates from scratch. Even mode repacks every
        task with up to max_global_passes fill passes; completed and skipped
        sessions are carried over and their (non-skipped) time is deducted
        from the day's capacity.
        """
        current = now or local_now()
        start = today or current.date()
        if settings.study_plan_mode != StudyPlanMode.EVEN:
            return self.generate_plan(tasks, settings, commitments, today=start, now=current).plans

        pending = schedulable_tasks(tasks)
        days = self._build_horizon(pending, settings, start)
        allocations = self._new_allocations(days, settings)

        carried: dict[date, list[StudySession]] = {}
        for plan in existing_plans:
            kept = [session for session in plan.planned_tasks if session.is_done_or_skipped]
            if not kept:
                continue
            carried[plan.date] = kept
            if plan.date in allocations.remaining:
                used = sum(session_minutes(s) for s in kept if not s.is_skipped and s.is_regular)
                allocations.remaining[plan.date] = max(0, allocations.remaining[plan.date] - used)

        for task in pending:
            days_for_task = self._days_for_task(task, days, settings)
            if days_for_task:
                allocations.distribute(task, task_budget_minutes(task), days_for_task)
        allocations.combine()

        for pass_number in range(1, self.max_global_passes + 1):
            short = [task for task in pending if allocations.shortfall(task) > 0]
            if not short:
                break
            placed = 0
            for task in short:
                placed += allocations.redistribute(
                    task,
                    allocations.shortfall(task),
                    self._days_for_task(task, days, settings),
                )
            if placed == 0:
                break
            logger.info(f"Global pass {pass_number} placed {placed} minutes")
            allocations.combine()

        tasks_by_id = {task.id: task for task in tasks}
        plans: list[StudyPlan] = []
        for day in sorted(set(days) | set(carried)):
            kept = carried.get(day, [])
            new_sessions = allocations.sessions.get(day, [])
            timed = self._assign_time_slots(day, new_sessions, tasks_by_id, settings, commitments, kept)
            plans.append(self._day_plan(day, timed + kept, settings))
        return prune_empty_plans(plans)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _generate_even(
        self,
        pending: list[Task],
        settings: UserSettings,
        commitments: list[FixedCommitment],
        existing_plans: list[StudyPlan],
        start: date,
        now: datetime,
    ) -> PlanGenerationResult:
        days = self._build_horizon(pending, settings, start)
        allocations = self._new_allocations(days, settings)

        for task in pending:
            days_for_task = self._days_for_task(task, days, settings)
            if not days_for_task:
                logger.info(f"Task {task.id} has no available days before its deadline")
                continue
            allocations.distribute(task, task_budget_minutes(task), days_for_task)
        allocations.combine()

        short = [task for task in pending if allocations.shortfall(task) > 0]
        if short:
            logger.info(f"Global redistribution: {len(short)} tasks have unscheduled hours")
            for task in short:
                allocations.redistribute(
                    task,
                    allocations.shortfall(task),
                    self._days_for_task(task, days, settings),
                )
            allocations.combine()

        missed_minutes = self._missed_minutes_by_task(existing_plans, pending, now)
        if missed_minutes:
            logger.info(f"Redistributing missed sessions for {len(missed_minutes)} tasks")
            for task in pending:
                minutes = min(missed_minutes.get(task.id, 0), allocations.shortfall(task))
                if minutes <= 0:
                    continue
                allocations.redistribute(task, minutes, self._days_for_task(task, days, settings))
            allocations.combine()

        tasks_by_id = {task.id: task for task in pending}
        plans = [
            self._day_plan(
                day,
                self._assign_time_slots(day, allocations.sessions[day], tasks_by_id, settings, commitments),
                settings,
            )
            for day in days
        ]

        plans = prune_empty_plans(plans)
        suggestions = get_unscheduled_minutes_for_tasks(
            pending, allocations.scheduled, EVEN_SUGGESTION_THRESHOLD_MINUTES
        )
        logger.info(f"Even plan generated: {len(plans)} days, {len(suggestions)} suggestions")
        return PlanGenerationResult(plans=plans, suggestions=suggestions)

    def _generate_eisenhower(
        self,
        pending: list[Task],
        settings: UserSettings,
        commitments: list[FixedCommitment],
        start: date,
    ) -> PlanGenerationResult:
        days = self._build_horizon(pending, settings, start)
        min_minutes = min_session_minutes(settings)
        max_minutes = max_session_minutes(settings, self.max_session_hours)
        scheduled: dict[str, int] = defaultdict(int)
        plans: list[StudyPlan] = []

        for day in days:
            remaining_day = daily_capacity_minutes(settings)
            day_sessions: list[StudySession] = []

            for task in pending:
                if remaining_day <= 0:
                    break
                if day > adjusted_deadline(task, settings):
                    continue
                remaining_task = task_budget_minutes(task) - scheduled[task.id]
                if remaining_task <= 0:
                    continue

                amount = min(remaining_task, remaining_day)
                for chunk in self._split_chunk(amount, max_minutes):
                    if chunk < min_minutes:
                        break
                    slot = find_next_available_slot(
                        minutes_to_hours(chunk),
                        day_sessions,
                        commitments,
                        day,
                        settings.study_window_start_hour,
                        settings.study_window_end_hour,
                        settings.buffer_time_between_sessions,
                    )
                    if slot is None:
                        break
                    session_number = sum(1 for s in day_sessions if s.task_id == task.id) + 1
                    day_sessions.append(
                        StudySession(
                            task_id=task.id,
                            start_time=slot.start_time,
                            end_time=slot.end_time,
                            allocated_hours=minutes_to_hours(chunk),
                            session_number=session_number,
                        )
                    )
                    remaining_day -= chunk
                    scheduled[task.id] += chunk

            plans.append(StudyPlan.for_date(day, day_sessions, settings.daily_available_hours))

        suggestions = get_unscheduled_minutes_for_tasks(pending, scheduled, min_minutes)
        if suggestions:
            logger.warning(
                f"Eisenhower plan left {len(suggestions)} tasks short; lower-priority work may be starved"
            )
        return PlanGenerationResult(plans=prune_empty_plans(plans), suggestions=suggestions)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _new_allocations(self, days: list[date], settings: UserSettings) -> _DayAllocations:
        return _DayAllocations(
            days,
            daily_capacity_minutes(settings),
            min_session_minutes(settings),
            max_session_minutes(settings, self.max_session_hours),
            self.max_redistribution_rounds,
        )

    @staticmethod
    def _day_plan(day: date, sessions: list[StudySession], settings: UserSettings) -> StudyPlan:
        # Overloaded: some allocated work found no slot in the study window
        overloaded = any(not s.has_time_slot and not s.is_done_or_skipped for s in sessions)
        return StudyPlan.for_date(day, sessions, settings.daily_available_hours, is_overloaded=overloaded)

    @staticmethod
    def _build_horizon(pending: list[Task], settings: UserSettings, start: date) -> list[date]:
        """Work days from start through the latest buffer-adjusted deadline."""
        if not pending:
            return []
        deadlines = [adjusted_deadline(task, settings) for task in pending]
        days = {day for day in daterange(start, max(deadlines)) if is_work_day(day, settings)}
        for deadline in deadlines:
            if deadline >= start and is_work_day(deadline, settings):
                days.add(deadline)
        return sorted(days)

    @staticmethod
    def _days_for_task(task: Task, days: list[date], settings: UserSettings) -> list[date]:
        deadline = adjusted_deadline(task, settings)
        return [day for day in days if day <= deadline]

    @staticmethod
    def _split_chunk(amount: int, max_minutes: int) -> list[int]:
        """Split an allocation into consecutive sessions no longer than max_minutes."""
        chunks = []
        while amount > 0:
            chunk = min(amount, max_minutes)
            chunks.append(chunk)
            amount -= chunk
        return chunks

    @staticmethod
    def _missed_minutes_by_task(
        existing_plans: list[StudyPlan],
        pending: list[Task],
        now: datetime,
    ) -> dict[str, int]:
        pending_ids = {task.id for task in pending}
        missed: dict[str, int] = defaultdict(int)
        for plan in existing_plans:
            for session in plan.planned_tasks:
                if session.task_id not in pending_ids:
                    continue
                if classify_session_status(session, plan.date, now) == SessionStatus.MISSED:
                    missed[session.task_id] += session_minutes(session)
        return dict(missed)

    @staticmethod
    def _assign_time_slots(
        day: date,
        sessions: list[StudySession],
        tasks_by_id: dict[str, Task],
        settings: UserSettings,
        commitments: list[FixedCommitment],
        busy_sessions: Optional[list[StudySession]] = None,
    ) -> list[StudySession]:
        """Place sessions in task-priority order; sessions that do not fit get empty times."""
        assigned = list(busy_sessions or [])
        result: list[StudySession] = []
        for session in sort_sessions_by_task_priority(sessions, tasks_by_id):
            if session.is_skipped:
                result.append(session)
                continue
            slot = find_next_available_slot(
                session.allocated_hours,
                assigned,
                commitments,
                day,
                settings.study_window_start_hour,
                settings.study_window_end_hour,
                settings.buffer_time_between_sessions,
            )
            if slot is None:
                logger.info(f"No slot for task {session.task_id} on {day}; leaving it unplaced")
                result.append(session.model_copy(update={"start_time": "", "end_time": ""}))
                continue
            placed = session.model_copy(update={"start_time": slot.start_time, "end_time": slot.end_time})
            assigned.append(placed)
            result.append(placed)
        return result


def generate_plan(
    tasks: list[Task],
    settings: UserSettings,
    commitments: list[FixedCommitment],
    existing_plans: Optional[list[StudyPlan]] = None,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> PlanGenerationResult:
    """Generate a plan set with the default service configuration."""
    return PlanGeneratorService().generate_plan(tasks, settings, commitments, existing_plans, today, now)


def redistribute_after_task_deletion(
    tasks: list[Task],
    settings: UserSettings,
    commitments: list[FixedCommitment],
    existing_plans: list[StudyPlan],
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> list[StudyPlan]:
    """Repack plans after a task deletion with the default service configuration."""
    return PlanGeneratorService().redistribute_after_task_deletion(
        tasks, settings, commitments, existing_plans, today, now
    )
