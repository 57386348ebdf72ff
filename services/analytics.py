"""Cross-session progress analytics for one user.

A pure fold over the user's COMPLETED sessions, in the order they were
started. Each session contributes its frozen final report and the averages of
its running aggregates, so the figures never drift from what the user was
shown at completion. Completed sessions without a single answered question
carry no evidence and are skipped.
"""
from __future__ import annotations

import statistics
from collections import Counter
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from agents.types import DIMENSIONS, Dimension
from interview_session.models import COMPLETED, AggregatedScores, HireBand, Session
from services.scoring import round1, snapshot

Trend = Literal["Improving", "Declining", "Stable"]

# Recent-half average must move by more than this to count as a trend.
TREND_MARGIN = Decimal("0.3")
TREND_MIN_SESSIONS = 3
LOW_SCORE_BELOW = 5.0

SUGGESTED_FOCUS: Dict[str, str] = {
    "technical": "Review core concepts, data structures, and algorithms for your target role.",
    "depth": "Practice explaining topics in more detail. Dive deeper into the why and the how.",
    "clarity": "Structure your answers better. Use a framework such as STAR for behavioral questions.",
    "problem_solving": "Practice more coding challenges and system design problems.",
    "communication": "Work on articulating your thought process. Practice explaining concepts aloud.",
}
NO_DATA_FOCUS = "Complete more interviews to get insights."


class SessionPoint(BaseModel):
    label: str
    session_id: str
    role: str
    score: float
    hire_band: HireBand
    questions_answered: int
    average_time_per_question: float
    date: datetime


class TimeStats(BaseModel):
    average_time_per_question: float = 0.0
    fastest_answer_time: float = 0.0
    slowest_answer_time: float = 0.0
    time_efficiency_score: float = 0.0


class AnalyticsSummary(BaseModel):
    total_sessions: int = 0
    overall_average: float = 0.0
    highest_score: float = 0.0
    improvement_rate: Optional[int] = None
    trend: Trend = "Stable"
    consistency_score: float = 0.0
    skills: Dict[str, float] = Field(default_factory=lambda: {dim: 0.0 for dim in DIMENSIONS})
    strongest_dimension: Optional[Dimension] = None
    weakest_dimension: Optional[Dimension] = None
    recurring_weak_count: int = 0
    low_score_sessions: int = 0
    suggested_focus: str = NO_DATA_FOCUS
    time_stats: TimeStats = Field(default_factory=TimeStats)
    performance_trend: List[SessionPoint] = Field(default_factory=list)


def _mean(values: Iterable[float]) -> Decimal:
    items = [Decimal(str(value)) for value in values]
    if not items:
        return Decimal("0")
    return sum(items, Decimal("0")) / len(items)


def _most_frequent(dimensions: Sequence[Optional[Dimension]]) -> Optional[Dimension]:
    counts = Counter(dim for dim in dimensions if dim is not None)
    if not counts:
        return None
    # Equal counts resolve in the canonical dimension order.
    return max(DIMENSIONS, key=lambda dim: (counts[dim], -DIMENSIONS.index(dim)))


def improvement_rate(scores: Sequence[float]) -> Optional[int]:
    """Percent change from the first to the latest score, or None without a baseline."""

    if len(scores) < 2 or scores[0] <= 0:
        return None
    first, last = Decimal(str(scores[0])), Decimal(str(scores[-1]))
    return int(((last - first) / first * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def score_trend(scores: Sequence[float]) -> Trend:
    """Compare the recent half of the sessions against the earlier half."""

    if len(scores) < TREND_MIN_SESSIONS:
        return "Stable"
    middle = len(scores) // 2
    earlier, recent = _mean(scores[:middle]), _mean(scores[middle:])
    if recent > earlier + TREND_MARGIN:
        return "Improving"
    if recent < earlier - TREND_MARGIN:
        return "Declining"
    return "Stable"


def consistency(scores: Sequence[float]) -> float:
    """0-10, where 10 means every session scored the same."""

    average = statistics.fmean(scores)
    if average <= 0:
        return 0.0
    variation = statistics.pstdev(scores) / average
    return round1(min(max(1 - variation, 0.0), 1.0) * 10)


def _time_stats(sessions: Sequence[Session]) -> TimeStats:
    analyses = [session.final_report.time_analysis for session in sessions if session.final_report]
    fastest = [item.fastest_answer_time for item in analyses if item.fastest_answer_time > 0]
    slowest = [item.slowest_answer_time for item in analyses if item.slowest_answer_time > 0]
    return TimeStats(
        average_time_per_question=round1(_mean(item.average_time_per_question for item in analyses)),
        fastest_answer_time=min(fastest, default=0.0),
        slowest_answer_time=max(slowest, default=0.0),
        time_efficiency_score=round1(_mean(item.time_efficiency_score for item in analyses)),
    )


def summarize(sessions: Iterable[Session]) -> AnalyticsSummary:
    """Fold a user's sessions (any status, any order) into an :class:`AnalyticsSummary`."""

    completed = sorted(
        (
            session
            for session in sessions
            if session.status == COMPLETED and session.final_report is not None and session.turns
        ),
        key=lambda session: session.created_at,
    )
    if not completed:
        return AnalyticsSummary()

    snapshots: List[AggregatedScores] = [snapshot(session.aggregates) for session in completed]
    scores = [session.final_report.average_score for session in completed]
    weakest = _most_frequent([item.weakest_dimension for item in snapshots])
    recurring = sum(1 for item in snapshots if weakest is not None and item.weakest_dimension == weakest)

    return AnalyticsSummary(
        total_sessions=len(completed),
        overall_average=round1(_mean(scores)),
        highest_score=max(scores),
        improvement_rate=improvement_rate(scores),
        trend=score_trend(scores),
        consistency_score=consistency(scores),
        skills={dim: round1(_mean(item.average(dim) for item in snapshots)) for dim in DIMENSIONS},
        strongest_dimension=_most_frequent([item.strongest_dimension for item in snapshots]),
        weakest_dimension=weakest,
        recurring_weak_count=recurring,
        low_score_sessions=sum(1 for score in scores if score < LOW_SCORE_BELOW),
        suggested_focus=SUGGESTED_FOCUS.get(weakest or "", NO_DATA_FOCUS),
        time_stats=_time_stats(completed),
        performance_trend=[
            SessionPoint(
                label=f"S{position}",
                session_id=session.session_id,
                role=session.role,
                score=session.final_report.average_score,
                hire_band=session.final_report.hire_band,
                questions_answered=session.final_report.questions_answered,
                average_time_per_question=session.final_report.time_analysis.average_time_per_question,
                date=session.created_at,
            )
            for position, session in enumerate(completed, start=1)
        ],
    )


__all__ = [
    "AnalyticsSummary",
    "SessionPoint",
    "TimeStats",
    "summarize",
    "improvement_rate",
    "score_trend",
    "consistency",
]
