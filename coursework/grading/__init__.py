"""Assessment scoring, submission handling and instructor grading."""

__all__ = [
    "AttemptsExceeded",
    "Conflict",
    "Forbidden",
    "GradingError",
    "NotFound",
    "ValidationError",
    # modules
    "assessment",
    "export",
    "penalty",
    "scoring",
    "statistics",
    "submission",
    "workflow",
]

from . import assessment, export, penalty, scoring, statistics, submission, workflow
from .errors import AttemptsExceeded, Conflict, Forbidden, GradingError, NotFound, ValidationError
