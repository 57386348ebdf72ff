"""Interview session domain: models, errors, and the lifecycle manager.

The manager lives in :mod:`interview_session.manager` and is imported from
there directly; this package only re-exports the leaf modules.
"""
from .errors import (
    ConflictError,
    EvaluationError,
    GenerationError,
    InterviewError,
    InvalidStateError,
    NotFoundError,
    StaleSessionError,
    StorageError,
    UpstreamError,
    ValidationError,
)
from .models import AggregatedScores, FinalReport, QuestionTurn, RunningAggregates, Session

__all__ = [
    "ConflictError",
    "EvaluationError",
    "GenerationError",
    "InterviewError",
    "InvalidStateError",
    "NotFoundError",
    "StaleSessionError",
    "StorageError",
    "UpstreamError",
    "ValidationError",
    "AggregatedScores",
    "FinalReport",
    "QuestionTurn",
    "RunningAggregates",
    "Session",
]
