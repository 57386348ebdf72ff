"""Score aggregation: a pure fold over evaluations plus display snapshots."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Union

from agents.types import DIMENSIONS, Dimension, Evaluation, ExperienceLevel
from interview_session.models import AggregatedScores, RunningAggregates

ONE_DP = Decimal("0.1")
TWO_DP = Decimal("0.01")

# Role-aware weights per experience level; each map sums to 1.0.
WEIGHT_MAPS: Dict[str, Dict[str, Decimal]] = {
    "Junior": {
        "technical": Decimal("0.30"),
        "clarity": Decimal("0.25"),
        "problem_solving": Decimal("0.20"),
        "depth": Decimal("0.15"),
        "communication": Decimal("0.10"),
    },
    "Mid": {
        "technical": Decimal("0.25"),
        "depth": Decimal("0.25"),
        "problem_solving": Decimal("0.25"),
        "clarity": Decimal("0.15"),
        "communication": Decimal("0.10"),
    },
    "Senior": {
        "depth": Decimal("0.30"),
        "technical": Decimal("0.25"),
        "problem_solving": Decimal("0.25"),
        "clarity": Decimal("0.10"),
        "communication": Decimal("0.10"),
    },
}


def _dec(value: Union[float, int, Decimal]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round1(value: Union[float, int, Decimal]) -> float:
    """Round to one decimal, ties away from zero (2.25 -> 2.3, -2.25 -> -2.3)."""
    return float(_dec(value).quantize(ONE_DP, rounding=ROUND_HALF_UP))


def update(aggregates: RunningAggregates, evaluation: Evaluation) -> RunningAggregates:
    """Fold one evaluation into the running sums and return the new aggregates."""

    changes: Dict[str, object] = {
        f"{dim}_sum": aggregates.total(dim) + _dec(evaluation.score(dim)) for dim in DIMENSIONS
    }
    changes["overall_sum"] = aggregates.overall_sum + _dec(evaluation.overall)
    changes["count"] = aggregates.count + 1
    return aggregates.model_copy(update=changes)


def fold(evaluations: List[Evaluation]) -> RunningAggregates:
    aggregates = RunningAggregates()
    for evaluation in evaluations:
        aggregates = update(aggregates, evaluation)
    return aggregates


def snapshot(aggregates: RunningAggregates) -> AggregatedScores:
    """Derive rounded averages and the strongest/weakest dimensions."""

    if aggregates.count == 0:
        return AggregatedScores()

    count = Decimal(aggregates.count)
    averages = {dim: round1(aggregates.total(dim) / count) for dim in DIMENSIONS}
    ranked_high = _ranked(averages, strongest=True)
    ranked_low = _ranked(averages, strongest=False)
    return AggregatedScores(
        average_technical=averages["technical"],
        average_depth=averages["depth"],
        average_clarity=averages["clarity"],
        average_problem_solving=averages["problem_solving"],
        average_communication=averages["communication"],
        overall_average=round1(aggregates.overall_sum / count),
        strongest_dimension=ranked_high[0],
        weakest_dimension=ranked_low[0],
        questions_answered=aggregates.count,
    )


def _ranked(averages: Dict[str, float], *, strongest: bool) -> List[Dimension]:
    # sorted() is stable, so equal averages keep the canonical dimension order.
    if strongest:
        return sorted(DIMENSIONS, key=lambda dim: -averages[dim])
    return sorted(DIMENSIONS, key=lambda dim: averages[dim])


def rank_dimensions(scores: AggregatedScores, n: int = 2, *, strongest: bool = True) -> List[Dimension]:
    """Top (or bottom) ``n`` dimensions by rounded average."""

    if scores.questions_answered == 0:
        return []
    averages = {dim: scores.average(dim) for dim in DIMENSIONS}
    return _ranked(averages, strongest=strongest)[:n]


def weighted_overall(evaluation: Evaluation, level: ExperienceLevel) -> float:
    """Recompute the overall score with the experience level's weight map."""

    weights = WEIGHT_MAPS[level]
    total = sum((_dec(evaluation.score(dim)) * weights[dim] for dim in DIMENSIONS), Decimal("0"))
    return float(total.quantize(TWO_DP, rounding=ROUND_HALF_UP))


def apply_role_weighting(evaluation: Evaluation, level: ExperienceLevel) -> Evaluation:
    return evaluation.model_copy(update={"overall": weighted_overall(evaluation, level)})


__all__ = [
    "WEIGHT_MAPS",
    "round1",
    "update",
    "fold",
    "snapshot",
    "rank_dimensions",
    "weighted_overall",
    "apply_role_weighting",
]
