"""Session domain models persisted by the session store."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, computed_field

from agents.types import (
    Dimension,
    Evaluation,
    ExperienceLevel,
    FollowUpIntent,
    GeneratedQuestion,
    HistoryEntry,
    InterviewMode,
    QuestionPlan,
    VoiceMeta,
)

SessionStatus = Literal["IN_PROGRESS", "COMPLETED", "ABANDONED"]
ConfidenceLevel = Literal["High", "Medium", "Low"]
HireRecommendation = Literal["Yes", "Maybe", "No"]
HireBand = Literal["Strong Hire", "Hire", "Borderline", "No Hire"]

IN_PROGRESS: SessionStatus = "IN_PROGRESS"
COMPLETED: SessionStatus = "COMPLETED"
ABANDONED: SessionStatus = "ABANDONED"

ZERO = Decimal("0")


class QuestionTurn(BaseModel):
    """One answered question; never modified after it is appended."""

    index: int = Field(ge=1)
    question: GeneratedQuestion
    answer_text: str
    voice_meta: Optional[VoiceMeta] = None
    evaluation: Evaluation
    asked_at: datetime
    answered_at: datetime
    focus_dimension: Optional[Dimension] = None
    intent: Optional[FollowUpIntent] = None

    model_config = {"frozen": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def time_taken_seconds(self) -> float:
        return round(max((self.answered_at - self.asked_at).total_seconds(), 0.0), 1)


class RunningAggregates(BaseModel):
    """Exact running sums; averages are derived by ``services.scoring.snapshot``."""

    count: int = Field(default=0, ge=0)
    technical_sum: Decimal = ZERO
    depth_sum: Decimal = ZERO
    clarity_sum: Decimal = ZERO
    problem_solving_sum: Decimal = ZERO
    communication_sum: Decimal = ZERO
    overall_sum: Decimal = ZERO

    model_config = {"frozen": True}

    def total(self, dimension: str) -> Decimal:
        return getattr(self, f"{dimension}_sum")


class AggregatedScores(BaseModel):
    average_technical: float = 0.0
    average_depth: float = 0.0
    average_clarity: float = 0.0
    average_problem_solving: float = 0.0
    average_communication: float = 0.0
    overall_average: float = 0.0
    strongest_dimension: Optional[Dimension] = None
    weakest_dimension: Optional[Dimension] = None
    questions_answered: int = 0

    def average(self, dimension: str) -> float:
        return float(getattr(self, f"average_{dimension}"))


class TimeAnalysis(BaseModel):
    average_time_per_question: float = 0.0
    fastest_answer_time: float = 0.0
    slowest_answer_time: float = 0.0
    time_efficiency_score: float = 0.0
    insights: List[str] = Field(default_factory=list)


class FinalReport(BaseModel):
    average_score: float
    strongest_areas: List[str]
    weakest_areas: List[str]
    confidence_level: ConfidenceLevel
    hire_recommendation: HireRecommendation
    hire_band: HireBand
    improvement_roadmap: List[str]
    next_preparation_focus: List[str]
    questions_answered: int
    time_analysis: TimeAnalysis
    generated_at: datetime

    model_config = {"frozen": True}


class Session(BaseModel):
    session_id: str
    user_id: str
    role: str
    experience_level: ExperienceLevel
    mode: InterviewMode
    status: SessionStatus = IN_PROGRESS
    max_questions: int = Field(ge=1)
    turns: List[QuestionTurn] = Field(default_factory=list)
    aggregates: RunningAggregates = Field(default_factory=RunningAggregates)
    current_question: Optional[GeneratedQuestion] = None
    current_question_asked_at: Optional[datetime] = None
    current_plan: QuestionPlan = Field(default_factory=QuestionPlan)
    final_report: Optional[FinalReport] = None
    version: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    abandoned_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == IN_PROGRESS

    @property
    def question_number(self) -> int:
        """1-based number of the pending question, or of the last answered one."""
        return len(self.turns) + (1 if self.current_question is not None else 0)

    def history(self) -> List[HistoryEntry]:
        return [
            HistoryEntry(
                question_number=turn.index,
                question=turn.question.question,
                topic=turn.question.topic,
                difficulty=turn.question.difficulty,
                answer_text=turn.answer_text,
                overall=turn.evaluation.overall,
                weaknesses=list(turn.evaluation.weaknesses),
            )
            for turn in self.turns
        ]


__all__ = [
    "SessionStatus",
    "ConfidenceLevel",
    "HireRecommendation",
    "HireBand",
    "IN_PROGRESS",
    "COMPLETED",
    "ABANDONED",
    "QuestionTurn",
    "RunningAggregates",
    "AggregatedScores",
    "TimeAnalysis",
    "FinalReport",
    "Session",
]
