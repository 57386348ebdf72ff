"""Answer evaluator adapter with boundary validation of the returned scores."""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from agents.types import DIMENSIONS, Evaluation, ExperienceLevel, GeneratedQuestion, HistoryEntry, VoiceMeta
from agents.upstream import invoke_model
from config.registry import EVAL_KEY
from interview_session.errors import EvaluationError

SCORE_MIN = 0.0
SCORE_MAX = 10.0
# Technical accuracy cannot exceed this when the evaluator reports a major error.
MAJOR_ERROR_TECHNICAL_CAP = 4.0

SCORE_FIELDS = DIMENSIONS + ("overall",)
LIST_FIELDS = ("strengths", "weaknesses", "improvements", "major_technical_errors")


def _score(raw: Dict[str, Any], field: str) -> float:
    value = raw.get(field)
    if isinstance(value, bool) or value is None:
        raise EvaluationError(f"Evaluator payload missing numeric '{field}'")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise EvaluationError(f"Evaluator payload has non-numeric '{field}'") from exc
    if math.isnan(number):
        raise EvaluationError(f"Evaluator payload has non-numeric '{field}'")
    return min(max(number, SCORE_MIN), SCORE_MAX)


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def normalize_evaluation(raw: Any) -> Evaluation:
    """Validate an evaluator payload and coerce it into an :class:`Evaluation`.

    Scores are required and clamped into [0, 10]; list fields that are not
    lists become empty.

    Raises:
        EvaluationError: if the payload is not a mapping or a score is missing.
    """

    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        raise EvaluationError("Evaluator returned a non-object payload")

    fields: Dict[str, Any] = {name: _score(raw, name) for name in SCORE_FIELDS}
    for name in LIST_FIELDS:
        fields[name] = _text_list(raw.get(name))
    summary = raw.get("summary")
    fields["summary"] = summary.strip() if isinstance(summary, str) else ""

    if fields["major_technical_errors"]:
        fields["technical"] = min(fields["technical"], MAJOR_ERROR_TECHNICAL_CAP)
    return Evaluation(**fields)


def evaluate_answer(
    *,
    question: GeneratedQuestion,
    answer_text: str,
    voice_meta: Optional[VoiceMeta],
    history: List[HistoryEntry],
    role: str,
    experience_level: ExperienceLevel,
    session_id: Optional[str] = None,
) -> Evaluation:
    """Score one answer through the bound evaluator."""

    raw = invoke_model(
        EVAL_KEY,
        error_cls=EvaluationError,
        session_id=session_id,
        question=question.model_dump(),
        answer_text=answer_text,
        voice_meta=voice_meta.model_dump() if voice_meta else None,
        history=[entry.model_dump() for entry in history],
        role=role,
        experience_level=experience_level,
    )
    return normalize_evaluation(raw)


__all__ = ["normalize_evaluation", "evaluate_answer", "MAJOR_ERROR_TECHNICAL_CAP"]
