"""Pydantic schemas for the interview session API."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel

from agents.types import ExperienceLevel, InterviewMode, VoiceMeta


class StartReq(BaseModel):
    role: str
    experience_level: ExperienceLevel
    mode: InterviewMode = "text"


class AnswerReq(BaseModel):
    session_id: str
    answer_text: str
    voice_meta: Optional[VoiceMeta] = None


class SessionReq(BaseModel):
    session_id: str


class ErrorBody(BaseModel):
    kind: str
    message: str
    retryable: bool = False
    details: Optional[Dict[str, Any]] = None


class Envelope(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[ErrorBody] = None
