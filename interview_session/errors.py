"""Error taxonomy surfaced by the session lifecycle manager."""
from __future__ import annotations

from typing import Any, Dict, Optional


class InterviewError(Exception):
    """Base error carrying a stable machine-readable ``kind``."""

    kind = "internal_error"
    http_status = 500
    retryable = False

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(InterviewError):
    kind = "validation_error"
    http_status = 400


class NotFoundError(InterviewError):
    kind = "not_found"
    http_status = 404


class InvalidStateError(InterviewError):
    kind = "invalid_state"
    http_status = 409


class ConflictError(InterviewError):
    """Raised when a user already holds an IN_PROGRESS session."""

    kind = "conflict"
    http_status = 409

    def __init__(self, message: str, *, active_session_id: Optional[str] = None) -> None:
        details = {"active_session_id": active_session_id} if active_session_id else None
        super().__init__(message, details=details)
        self.active_session_id = active_session_id


class UpstreamError(InterviewError):
    """Question source or evaluator failure; safe to retry with backoff."""

    kind = "upstream_error"
    http_status = 503
    retryable = True


class GenerationError(UpstreamError):
    kind = "generation_error"


class EvaluationError(UpstreamError):
    kind = "evaluation_error"


class StorageError(InterviewError):
    kind = "storage_error"
    http_status = 500


class StaleSessionError(StorageError):
    """Optimistic version check failed: another writer updated the session first."""

    kind = "stale_session"
    http_status = 409
    retryable = True


__all__ = [
    "InterviewError",
    "ValidationError",
    "NotFoundError",
    "InvalidStateError",
    "ConflictError",
    "UpstreamError",
    "GenerationError",
    "EvaluationError",
    "StorageError",
    "StaleSessionError",
]
