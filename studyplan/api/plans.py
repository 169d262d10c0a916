"""
Plan API endpoints.

Generation, missed-session redistribution, repack after deletion and
validation of a plan snapshot.
"""

from fastapi import APIRouter

from studyplan.api.schemas import PlanSnapshot, PlanValidationResponse
from studyplan.models import PlanGenerationResult, RedistributionResult, StudyPlan
from studyplan.services import generate_plan, redistribute_after_task_deletion, redistribute_missed_sessions
from studyplan.services.conflict_validator import find_plan_conflict
from studyplan.services.session_lifecycle import preserve_session_state

router = APIRouter()


@router.post("/generate", response_model=PlanGenerationResult)
async def generate(payload: PlanSnapshot):
    result = generate_plan(
        payload.tasks,
        payload.settings,
        payload.commitments,
        existing_plans=payload.plans,
        today=payload.today,
        now=payload.now,
    )
    if payload.plans:
        result = result.model_copy(update={"plans": preserve_session_state(result.plans, payload.plans)})
    return result


@router.post("/redistribute", response_model=RedistributionResult)
async def redistribute(payload: PlanSnapshot):
    return redistribute_missed_sessions(
        payload.plans,
        payload.settings,
        payload.commitments,
        payload.tasks,
        now=payload.now,
    )


@router.post("/after-task-deletion", response_model=list[StudyPlan])
async def after_task_deletion(payload: PlanSnapshot):
    return redistribute_after_task_deletion(
        payload.tasks,
        payload.settings,
        payload.commitments,
        payload.plans,
        today=payload.today,
        now=payload.now,
    )


@router.post("/validate", response_model=PlanValidationResponse)
async def validate(payload: PlanSnapshot):
    conflict = find_plan_conflict(payload.plans, payload.settings, payload.commitments, now=payload.now)
    return PlanValidationResponse(valid=conflict is None, conflict=conflict)
