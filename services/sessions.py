"""Helpers for bootstrapping and inspecting interview sessions."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from agents.types import ExperienceLevel, GeneratedQuestion, InterviewMode, QuestionPlan
from interview_session.models import Session
from services.scoring import snapshot


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    return uuid.uuid4().hex


def new_session(
    *,
    user_id: str,
    role: str,
    experience_level: ExperienceLevel,
    mode: InterviewMode,
    max_questions: int,
    first_question: GeneratedQuestion,
    plan: Optional[QuestionPlan] = None,
    now: Optional[datetime] = None,
) -> Session:
    """Build an unsaved IN_PROGRESS session with its opening question pending."""

    now = now or utcnow()
    return Session(
        session_id=new_session_id(),
        user_id=user_id,
        role=role,
        experience_level=experience_level,
        mode=mode,
        max_questions=max_questions,
        current_question=first_question,
        current_question_asked_at=now,
        current_plan=plan or QuestionPlan(difficulty=first_question.difficulty),
        created_at=now,
        updated_at=now,
    )


def session_summary(session: Session) -> Dict[str, Any]:
    """Compact listing entry for a user's interview history."""

    scores = snapshot(session.aggregates)
    return {
        "session_id": session.session_id,
        "role": session.role,
        "experience_level": session.experience_level,
        "mode": session.mode,
        "status": session.status,
        "questions_answered": len(session.turns),
        "max_questions": session.max_questions,
        "overall_average": scores.overall_average,
        "hire_band": session.final_report.hire_band if session.final_report else None,
        "created_at": session.created_at,
        "completed_at": session.completed_at,
    }


__all__ = ["utcnow", "new_session_id", "new_session", "session_summary"]
