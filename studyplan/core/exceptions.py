"""
Custom exceptions for the application.

Expected scheduling outcomes (infeasible tasks, failed moves, rollbacks,
commitment conflicts) are reported as structured results, not raised.
These exceptions cover caller mistakes only.
"""

from typing import Any, Optional


class PlannerError(Exception):
    """Base exception for studyplan."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(PlannerError):
    """Resource not found."""

    pass


class ValidationError(PlannerError):
    """Validation error."""

    pass
