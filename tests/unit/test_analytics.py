from datetime import datetime, timedelta, timezone

import pytest

from agents.types import Evaluation, GeneratedQuestion
from interview_session.models import ABANDONED, COMPLETED, IN_PROGRESS, QuestionTurn, Session
from services.analytics import (
    NO_DATA_FOCUS,
    SUGGESTED_FOCUS,
    consistency,
    improvement_rate,
    score_trend,
    summarize,
)
from services.reporting import ReportPolicy, build_report
from services.scoring import fold, snapshot

T0 = datetime(2026, 2, 2, 10, 0, tzinfo=timezone.utc)
DIMS = ("technical", "depth", "clarity", "problem_solving", "communication")


def _session(day, overall, status=COMPLETED, answered=True, **scores):
    created = T0 + timedelta(days=day)
    turns = []
    if answered:
        dims = {dim: overall for dim in DIMS}
        dims.update(scores)
        turns.append(
            QuestionTurn(
                index=1,
                question=GeneratedQuestion(question="Explain caching.", topic="caching", difficulty="medium"),
                answer_text="An answer.",
                evaluation=Evaluation(overall=overall, **dims),
                asked_at=created,
                answered_at=created + timedelta(seconds=60),
            )
        )
    aggregates = fold([turn.evaluation for turn in turns])
    report = None
    if status == COMPLETED:
        report = build_report(snapshot(aggregates), turns, ReportPolicy(), now=created)
    return Session(
        session_id=f"s-{day}",
        user_id="u1",
        role="Backend Engineer",
        experience_level="Mid",
        mode="text",
        status=status,
        max_questions=1,
        turns=turns,
        aggregates=aggregates,
        final_report=report,
        created_at=created,
        updated_at=created,
    )


def test_no_completed_sessions_gives_empty_summary():
    summary = summarize([_session(0, 7, status=IN_PROGRESS), _session(1, 7, status=ABANDONED)])
    assert summary.total_sessions == 0
    assert summary.trend == "Stable"
    assert summary.improvement_rate is None
    assert summary.weakest_dimension is None
    assert summary.suggested_focus == NO_DATA_FOCUS
    assert summary.skills == {dim: 0.0 for dim in DIMS}
    assert summary.performance_trend == []


def test_completed_sessions_without_answers_are_skipped():
    summary = summarize([_session(0, 0, answered=False), _session(1, 6)])
    assert summary.total_sessions == 1
    assert summary.overall_average == 6.0


def test_summary_folds_completed_sessions_in_start_order():
    sessions = [
        _session(2, 8, clarity=6),
        _session(0, 5, depth=3),
        _session(1, 6, depth=4),
        _session(3, 9, status=IN_PROGRESS),
    ]
    summary = summarize(sessions)

    assert summary.total_sessions == 3
    assert [point.session_id for point in summary.performance_trend] == ["s-0", "s-1", "s-2"]
    assert [point.label for point in summary.performance_trend] == ["S1", "S2", "S3"]
    assert [point.score for point in summary.performance_trend] == [5.0, 6.0, 8.0]
    assert summary.overall_average == 6.3
    assert summary.highest_score == 8.0
    assert summary.improvement_rate == 60
    assert summary.trend == "Improving"
    assert summary.skills["technical"] == 6.3
    assert summary.skills["depth"] == 5.0
    assert summary.skills["clarity"] == 5.7
    assert summary.strongest_dimension == "technical"
    assert summary.weakest_dimension == "depth"
    assert summary.recurring_weak_count == 2
    assert summary.suggested_focus == SUGGESTED_FOCUS["depth"]
    assert summary.low_score_sessions == 0
    assert summary.time_stats.average_time_per_question == 60.0
    assert summary.time_stats.fastest_answer_time == 60.0
    assert summary.time_stats.slowest_answer_time == 60.0
    assert summary.time_stats.time_efficiency_score == 10.0


def test_equally_frequent_weak_dimensions_use_canonical_order():
    summary = summarize([_session(0, 6, clarity=2), _session(1, 6, depth=2)])
    assert summary.weakest_dimension == "depth"
    assert summary.recurring_weak_count == 1
    assert summary.low_score_sessions == 0


@pytest.mark.parametrize(
    "scores, expected",
    [
        ([5.0, 7.0], "Stable"),
        ([5.0, 6.0, 8.0], "Improving"),
        ([8.0, 8.0, 6.0, 5.0], "Declining"),
        ([6.0, 6.2, 6.1], "Stable"),
        ([6.0, 6.3, 6.3], "Stable"),
    ],
)
def test_score_trend(scores, expected):
    assert score_trend(scores) == expected


@pytest.mark.parametrize(
    "scores, expected",
    [([5.0], None), ([0.0, 5.0], None), ([4.0, 5.0], 25), ([8.0, 6.0], -25), ([3.0, 4.0], 33)],
)
def test_improvement_rate(scores, expected):
    assert improvement_rate(scores) == expected


def test_consistency_is_ten_for_identical_scores():
    assert consistency([7.0, 7.0, 7.0]) == 10.0
    assert consistency([0.0, 0.0]) == 0.0
    assert 0.0 < consistency([4.0, 8.0]) < 10.0
