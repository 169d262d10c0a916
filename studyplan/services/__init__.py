"""Scheduling services."""

from studyplan.services.commitment_service import check_commitment_conflicts
from studyplan.services.plan_generator import generate_plan, redistribute_after_task_deletion
from studyplan.services.redistribution_service import redistribute_missed_sessions
from studyplan.services.session_status import classify_session_status

__all__ = [
    "generate_plan",
    "redistribute_missed_sessions",
    "redistribute_after_task_deletion",
    "check_commitment_conflicts",
    "classify_session_status",
]
