"""Final report generation from a completed session's aggregates and turns."""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from agents.types import DIMENSION_LABELS
from config.settings import Settings, settings as default_settings
from interview_session.models import (
    AggregatedScores,
    ConfidenceLevel,
    FinalReport,
    HireBand,
    HireRecommendation,
    QuestionTurn,
    TimeAnalysis,
)
from services.scoring import rank_dimensions, round1

ROADMAP_STEPS: Dict[str, List[str]] = {
    "technical": [
        "Review the core concepts behind each missed question and write a one-paragraph explanation of each from memory.",
        "Verify claims against official documentation before relying on them in an answer.",
    ],
    "depth": [
        "For every answer, explain the underlying mechanism, not only the definition.",
        "Practice naming trade-offs, edge cases, and failure modes for the designs you describe.",
    ],
    "clarity": [
        "Structure answers as context, approach, and outcome before adding detail.",
        "Rehearse answers aloud and trim anything that does not support the main point.",
    ],
    "problem_solving": [
        "Work through problems step by step, stating assumptions before choosing an approach.",
        "Compare at least two candidate solutions and justify the one you pick.",
    ],
    "communication": [
        "Keep answers concise and lead with the conclusion.",
        "Record mock answers and review them for filler words and long pauses.",
    ],
}

PREPARATION_FOCUS: Dict[str, List[str]] = {
    "technical": ["Core fundamentals for the role", "Common pitfalls and misconceptions"],
    "depth": ["Internals of the tools you use daily", "Trade-off analysis and edge cases"],
    "clarity": ["Answer structuring frameworks", "Explaining concepts to a non-expert"],
    "problem_solving": ["Algorithmic and debugging practice", "System design walkthroughs"],
    "communication": ["Mock interviews with timed answers", "Concise technical storytelling"],
}


class ReportPolicy(BaseModel):
    """Calibration points; every comparison is ``>=`` on the rounded overall average."""

    confidence_high: float = 7.5
    confidence_medium: float = 5.0
    hire_yes: float = 7.0
    hire_maybe: float = 5.0
    band_strong_hire: float = 8.5
    band_hire: float = 7.0
    band_borderline: float = 5.0
    roadmap_max_items: int = 5

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "ReportPolicy":
        cfg = cfg or default_settings
        return cls(
            confidence_high=cfg.CONFIDENCE_HIGH,
            confidence_medium=cfg.CONFIDENCE_MEDIUM,
            hire_yes=cfg.HIRE_YES,
            hire_maybe=cfg.HIRE_MAYBE,
            band_strong_hire=cfg.BAND_STRONG_HIRE,
            band_hire=cfg.BAND_HIRE,
            band_borderline=cfg.BAND_BORDERLINE,
            roadmap_max_items=cfg.ROADMAP_MAX_ITEMS,
        )


def confidence_level(average: float, policy: ReportPolicy) -> ConfidenceLevel:
    if average >= policy.confidence_high:
        return "High"
    if average >= policy.confidence_medium:
        return "Medium"
    return "Low"


def hire_recommendation(average: float, policy: ReportPolicy) -> HireRecommendation:
    if average >= policy.hire_yes:
        return "Yes"
    if average >= policy.hire_maybe:
        return "Maybe"
    return "No"


def hire_band(average: float, policy: ReportPolicy) -> HireBand:
    if average >= policy.band_strong_hire:
        return "Strong Hire"
    if average >= policy.band_hire:
        return "Hire"
    if average >= policy.band_borderline:
        return "Borderline"
    return "No Hire"


def _dedupe(items: Sequence[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for item in items:
        text = item.strip()
        key = text.lower()
        if not text or key in seen:
            continue
        seen.add(key)
        result.append(text)
    return result


def improvement_roadmap(weakest: Sequence[str], turns: Sequence[QuestionTurn], limit: int) -> List[str]:
    """Templated steps for the weakest dimensions, then the evaluator's most repeated advice."""

    steps: List[str] = []
    for dim in weakest:
        steps.extend(ROADMAP_STEPS.get(dim, []))
    counts = Counter(
        text.strip() for turn in turns for text in turn.evaluation.improvements if text.strip()
    )
    steps.extend(text for text, _ in counts.most_common())
    return _dedupe(steps)[:limit]


def preparation_focus(weakest: Sequence[str]) -> List[str]:
    focus: List[str] = []
    for dim in weakest:
        focus.extend(PREPARATION_FOCUS.get(dim, []))
    return _dedupe(focus)


def time_analysis(turns: Sequence[QuestionTurn]) -> TimeAnalysis:
    """Pacing metrics; 30-90 seconds per answer is treated as the ideal window."""

    timed = [turn for turn in turns if turn.time_taken_seconds > 0]
    if not timed:
        return TimeAnalysis(insights=["Not enough data to analyze time efficiency."])

    times = [turn.time_taken_seconds for turn in timed]
    average = sum(times) / len(times)
    points = 0
    for seconds in times:
        if 30 <= seconds <= 90:
            points += 10
        elif seconds < 20:
            points += 2
        elif seconds > 180:
            points += 4
        else:
            points += 6
    efficiency = round1(points / len(times))

    insights: List[str] = []
    if average < 25:
        insights.append("You tend to answer very quickly. Make sure each answer has enough depth.")
    if average > 120:
        insights.append("Your answers are long on average. Try to be more concise.")
    if efficiency > 8:
        insights.append("Your pacing is excellent. Most answers fall within the ideal 30-90s window.")
    rushed = [turn for turn in timed if turn.time_taken_seconds < 20 and turn.evaluation.overall < 5]
    if rushed:
        insights.append(f"You rushed through {len(rushed)} questions, which lowered your score.")

    return TimeAnalysis(
        average_time_per_question=round1(average),
        fastest_answer_time=min(times),
        slowest_answer_time=max(times),
        time_efficiency_score=efficiency,
        insights=insights,
    )


def build_report(
    scores: AggregatedScores,
    turns: Sequence[QuestionTurn],
    policy: Optional[ReportPolicy] = None,
    *,
    now: Optional[datetime] = None,
) -> FinalReport:
    """Compute the immutable report for a session entering COMPLETED."""

    policy = policy or ReportPolicy.from_settings()
    average = scores.overall_average
    strongest = rank_dimensions(scores, 2, strongest=True)
    weakest = rank_dimensions(scores, 2, strongest=False)
    return FinalReport(
        average_score=average,
        strongest_areas=[DIMENSION_LABELS[dim] for dim in strongest],
        weakest_areas=[DIMENSION_LABELS[dim] for dim in weakest],
        confidence_level=confidence_level(average, policy),
        hire_recommendation=hire_recommendation(average, policy),
        hire_band=hire_band(average, policy),
        improvement_roadmap=improvement_roadmap(weakest, turns, policy.roadmap_max_items),
        next_preparation_focus=preparation_focus(weakest),
        questions_answered=scores.questions_answered,
        time_analysis=time_analysis(turns),
        generated_at=now or datetime.now(timezone.utc),
    )


__all__ = [
    "ReportPolicy",
    "confidence_level",
    "hire_recommendation",
    "hire_band",
    "improvement_roadmap",
    "preparation_focus",
    "time_analysis",
    "build_report",
]
