"""
Task model definitions.

Tasks carry the remaining work (estimated_hours) the planner tries to place
before the deadline.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from studyplan.models.enums import TaskStatus


class Task(BaseModel):
    """A unit of study work with a deadline."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    deadline: date
    importance: bool = False
    estimated_hours: float = Field(..., ge=0, description="Remaining work in hours")
    status: TaskStatus = TaskStatus.PENDING
    category: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def is_schedulable(self) -> bool:
        return self.status == TaskStatus.PENDING and self.estimated_hours > 0
