from app.models.applied_response import AppliedResponse
from app.models.base import Base
from app.models.learner_session import LearnerSession

__all__ = [
    "AppliedResponse",
    "Base",
    "LearnerSession",
]
