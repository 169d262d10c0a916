"""API routers."""

from studyplan.api import commitments, plans, sessions, suggestions

__all__ = [
    "plans",
    "sessions",
    "commitments",
    "suggestions",
]
