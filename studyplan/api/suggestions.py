"""
Suggestion API endpoints.
"""

from fastapi import APIRouter

from studyplan.api.schemas import SuggestionRequest
from studyplan.models import SmartSuggestion
from studyplan.services.suggestion_service import generate_smart_suggestions

router = APIRouter()


@router.post("", response_model=list[SmartSuggestion])
async def suggestions(payload: SuggestionRequest):
    unscheduled_ids = set(payload.unscheduled_task_ids)
    unscheduled = [task for task in payload.tasks if task.id in unscheduled_ids]
    return generate_smart_suggestions(payload.tasks, unscheduled, today=payload.today)
