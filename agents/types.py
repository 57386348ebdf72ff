"""Shared type definitions for the question source and evaluator boundaries."""
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

Difficulty = Literal["easy", "medium", "hard"]
ExperienceLevel = Literal["Junior", "Mid", "Senior"]
InterviewMode = Literal["text", "voice", "hybrid"]
Dimension = Literal["technical", "depth", "clarity", "problem_solving", "communication"]
FollowUpIntent = Literal["CLARIFY_TECHNICAL", "PROBE_DEPTH", "TARGET_WEAKNESS", "ESCALATE_DIFFICULTY"]

# Canonical order; earlier entries win ties.
DIMENSIONS: Tuple[Dimension, ...] = ("technical", "depth", "clarity", "problem_solving", "communication")

DIMENSION_LABELS: Dict[str, str] = {
    "technical": "Technical Accuracy",
    "depth": "Depth of Explanation",
    "clarity": "Clarity",
    "problem_solving": "Problem Solving",
    "communication": "Communication",
}

DIFFICULTY_ORDER: Tuple[Difficulty, ...] = ("easy", "medium", "hard")


class GeneratedQuestion(BaseModel):
    question: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    difficulty: Difficulty

    model_config = {"frozen": True}


class VoiceMeta(BaseModel):
    duration_seconds: float = Field(ge=0)
    filler_word_count: int = Field(default=0, ge=0)
    pause_count: int = Field(default=0, ge=0)
    words_per_minute: float = Field(default=0.0, ge=0)

    model_config = {"frozen": True}


class Evaluation(BaseModel):
    technical: float = Field(ge=0, le=10)
    depth: float = Field(ge=0, le=10)
    clarity: float = Field(ge=0, le=10)
    problem_solving: float = Field(ge=0, le=10)
    communication: float = Field(ge=0, le=10)
    overall: float = Field(ge=0, le=10)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    major_technical_errors: List[str] = Field(default_factory=list)
    summary: str = ""

    model_config = {"frozen": True}

    def score(self, dimension: Dimension) -> float:
        return float(getattr(self, dimension))


class HistoryEntry(BaseModel):
    """Compact view of an answered turn handed to the external collaborators."""

    question_number: int
    question: str
    topic: str
    difficulty: Difficulty
    answer_text: str
    overall: float
    weaknesses: List[str] = Field(default_factory=list)


class QuestionPlan(BaseModel):
    """Target for the next question; the opening question has no focus or intent."""

    difficulty: Difficulty = "medium"
    focus_dimension: Optional[Dimension] = None
    intent: Optional[FollowUpIntent] = None

    model_config = {"frozen": True}
