from __future__ import annotations  # LLM-backed question source and evaluator bound into the model registry

from textwrap import dedent
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field

from agents.types import DIMENSION_LABELS, Difficulty
from config import AppConfig, EVAL_KEY, QUESTION_KEY, LlmRoute, bind_model, resolve_route
from llm_gateway import HttpClient, runnable as llm_runnable


INTERVIEWER_GUIDANCE = dedent(
    """
    You are a senior technical interviewer running an adaptive interview.
    Ask exactly one question at a time, realistic and professional, sized for the candidate's experience level.
    Junior candidates get foundational questions, Mid candidates implementation detail, Senior candidates architecture and trade-offs.
    Never repeat a previous question; approach weak areas from a new angle.
    """
).strip()

EVALUATOR_GUIDANCE = dedent(
    """
    You are a strict and experienced technical interviewer scoring one answer.
    Score technical, depth, clarity, problem_solving and communication from 0 to 10, plus an overall score.
    5 is an acceptable baseline, 7 is strong, 9 and above is exceptional and rare. Do not inflate scores.
    List any major technical error in major_technical_errors; technical must then be 4 or lower.
    Judge only what the answer says; never assume unstated knowledge.
    """
).strip()

INTENT_HINTS: Dict[str, str] = {
    "CLARIFY_TECHNICAL": "The last answer had technical gaps. Ask a clarifying question on the same topic.",
    "PROBE_DEPTH": "The last answer was shallow. Probe the underlying mechanism, trade-offs and edge cases.",
    "TARGET_WEAKNESS": "Target the candidate's weakest area from a different angle.",
    "ESCALATE_DIFFICULTY": "The candidate is doing well. Ask a harder question.",
}


class QuestionReply(BaseModel):  # LLM-enforced question payload
    question: str
    topic: str
    difficulty: Difficulty


class EvaluationReply(BaseModel):  # LLM-enforced evaluation payload
    technical: float
    depth: float
    clarity: float
    problem_solving: float
    communication: float
    overall: float
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    major_technical_errors: List[str] = Field(default_factory=list)
    summary: str = ""


def _history_block(history: Sequence[Dict[str, Any]], limit: int = 5) -> str:
    if not history:
        return "None (this is the first question)"
    lines = []
    for entry in list(history)[-limit:]:
        lines.append(
            f"Q{entry['question_number']} [{entry['topic']}, {entry['difficulty']}] {entry['question']}"
            f" -> scored {entry['overall']}"
        )
    return "\n".join(lines)


class QuestionSourceAgent:  # Generates the next question under an adaptive plan
    def __init__(self, route: LlmRoute, *, client: Optional[HttpClient] = None) -> None:
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    (
                        "Role: {role}\n"
                        "Experience Level: {experience_level}\n"
                        "Target Difficulty: {difficulty}\n"
                        "Focus Area: {focus}\n"
                        "Guidance: {hint}\n\n"
                        "Previous Questions:\n{history}\n\n"
                        "Return JSON with question, topic and difficulty."
                    ),
                ),
            ]
        )
        self._chain = self._prompt | llm_runnable(route, QuestionReply, client=client)

    def __call__(
        self,
        *,
        role: str,
        experience_level: str,
        history: Sequence[Dict[str, Any]],
        difficulty: str,
        focus_dimension: Optional[str] = None,
        intent: Optional[str] = None,
    ) -> Dict[str, Any]:
        reply: QuestionReply = self._chain.invoke(
            {
                "instructions": INTERVIEWER_GUIDANCE,
                "role": role,
                "experience_level": experience_level,
                "difficulty": difficulty,
                "focus": DIMENSION_LABELS.get(focus_dimension or "", "Foundational knowledge for the role"),
                "hint": INTENT_HINTS.get(intent or "", "Open with a foundational but relevant question."),
                "history": _history_block(history),
            }
        )
        return reply.model_dump()


class AnswerEvaluatorAgent:  # Scores one answer along the five dimensions
    def __init__(self, route: LlmRoute, *, client: Optional[HttpClient] = None) -> None:
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    (
                        "Role: {role}\n"
                        "Experience Level: {experience_level}\n\n"
                        "Question ({topic}, {difficulty}):\n{question}\n\n"
                        "Candidate Answer:\n{answer}\n\n"
                        "{voice}"
                        "Return JSON with the five scores, overall, strengths, weaknesses, improvements, "
                        "major_technical_errors and summary."
                    ),
                ),
            ]
        )
        self._chain = self._prompt | llm_runnable(route, EvaluationReply, client=client)

    def __call__(
        self,
        *,
        question: Dict[str, Any],
        answer_text: str,
        voice_meta: Optional[Dict[str, Any]],
        history: Sequence[Dict[str, Any]],
        role: str,
        experience_level: str,
    ) -> Dict[str, Any]:
        voice = ""
        if voice_meta:
            voice = (
                "Spoken Delivery: {duration_seconds}s, {words_per_minute} wpm, "
                "{filler_word_count} filler words, {pause_count} pauses. "
                "Factor delivery into communication only.\n\n"
            ).format(**voice_meta)
        reply: EvaluationReply = self._chain.invoke(
            {
                "instructions": EVALUATOR_GUIDANCE,
                "role": role,
                "experience_level": experience_level,
                "topic": question.get("topic", ""),
                "difficulty": question.get("difficulty", ""),
                "question": question.get("question", ""),
                "answer": answer_text,
                "voice": voice,
            }
        )
        return reply.model_dump()


def bind_llm_models(cfg: AppConfig, *, client: Optional[HttpClient] = None) -> None:
    """Bind the LLM-backed collaborators for every registry key the config routes."""

    if QUESTION_KEY in cfg.registry:
        bind_model(QUESTION_KEY, QuestionSourceAgent(resolve_route(cfg, QUESTION_KEY), client=client))
    if EVAL_KEY in cfg.registry:
        bind_model(EVAL_KEY, AnswerEvaluatorAgent(resolve_route(cfg, EVAL_KEY), client=client))


__all__ = ["QuestionSourceAgent", "AnswerEvaluatorAgent", "bind_llm_models", "QuestionReply", "EvaluationReply"]
