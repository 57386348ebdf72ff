"""Question source adapter and adaptive follow-up planning."""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ValidationError

from agents.types import (
    DIFFICULTY_ORDER,
    DIMENSIONS,
    Difficulty,
    Evaluation,
    ExperienceLevel,
    GeneratedQuestion,
    HistoryEntry,
    QuestionPlan,
)
from agents.upstream import invoke_model
from config.registry import QUESTION_KEY
from interview_session.errors import GenerationError

ESCALATE_ABOVE = 8.0
DEESCALATE_BELOW = 4.0
CLARIFY_TECHNICAL_BELOW = 5.0
PROBE_DEPTH_BELOW = 6.0


def next_difficulty(current: Difficulty, overall: float) -> Difficulty:
    """Step one level up on a strong answer, one down on a weak one."""

    index = DIFFICULTY_ORDER.index(current)
    if overall > ESCALATE_ABOVE and index < len(DIFFICULTY_ORDER) - 1:
        return DIFFICULTY_ORDER[index + 1]
    if overall < DEESCALATE_BELOW and index > 0:
        return DIFFICULTY_ORDER[index - 1]
    return current


def _weakest_in(evaluation: Evaluation) -> str:
    return min(DIMENSIONS, key=evaluation.score)


def plan_next(latest: Evaluation, current_difficulty: Difficulty, running_weakest: Optional[str]) -> QuestionPlan:
    """Choose difficulty, focus and intent for the question after ``latest``.

    Rules, first match wins: weak technical accuracy asks for clarification,
    shallow answers are probed for depth, a strong answer escalates, and
    otherwise the running weakest dimension is targeted.
    """

    difficulty = next_difficulty(current_difficulty, latest.overall)
    if latest.technical < CLARIFY_TECHNICAL_BELOW:
        return QuestionPlan(difficulty=difficulty, focus_dimension="technical", intent="CLARIFY_TECHNICAL")
    if _weakest_in(latest) == "depth" and latest.depth < PROBE_DEPTH_BELOW:
        return QuestionPlan(difficulty=difficulty, focus_dimension="depth", intent="PROBE_DEPTH")
    focus = running_weakest or _weakest_in(latest)
    if difficulty != current_difficulty and latest.overall > ESCALATE_ABOVE:
        return QuestionPlan(difficulty=difficulty, focus_dimension=focus, intent="ESCALATE_DIFFICULTY")
    return QuestionPlan(difficulty=difficulty, focus_dimension=focus, intent="TARGET_WEAKNESS")


def _as_dict(raw: Any) -> Any:
    return raw.model_dump() if isinstance(raw, BaseModel) else raw


def next_question(
    *,
    role: str,
    experience_level: ExperienceLevel,
    history: List[HistoryEntry],
    plan: QuestionPlan,
    session_id: Optional[str] = None,
) -> GeneratedQuestion:
    """Ask the bound question source for the next question under ``plan``.

    Raises:
        GenerationError: on failure, timeout, or a payload without question/topic/difficulty.
    """

    raw = invoke_model(
        QUESTION_KEY,
        error_cls=GenerationError,
        session_id=session_id,
        role=role,
        experience_level=experience_level,
        history=[entry.model_dump() for entry in history],
        difficulty=plan.difficulty,
        focus_dimension=plan.focus_dimension,
        intent=plan.intent,
    )
    try:
        return GeneratedQuestion.model_validate(_as_dict(raw))
    except ValidationError as exc:
        raise GenerationError("Question source returned an invalid question", details={"errors": exc.error_count()}) from exc


__all__ = ["next_difficulty", "plan_next", "next_question"]
