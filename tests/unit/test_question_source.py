import threading

import pytest

from agents.question_source import next_difficulty, next_question, plan_next
from agents.types import Evaluation, QuestionPlan
from agents.upstream import invoke_model
from config.registry import QUESTION_KEY, bind_model, unbind_model
from interview_session.errors import GenerationError, UpstreamError


def _ev(overall, **scores):
    dims = {dim: overall for dim in ("technical", "depth", "clarity", "problem_solving", "communication")}
    dims.update(scores)
    return Evaluation(overall=overall, **dims)


@pytest.mark.parametrize(
    "current, overall, expected",
    [
        ("medium", 8.5, "hard"),
        ("hard", 9.5, "hard"),
        ("medium", 3.5, "easy"),
        ("easy", 1.0, "easy"),
        ("medium", 8.0, "medium"),
        ("medium", 4.0, "medium"),
    ],
)
def test_next_difficulty(current, overall, expected):
    assert next_difficulty(current, overall) == expected


def test_low_technical_asks_for_clarification():
    plan = plan_next(_ev(6, technical=4), "medium", "clarity")
    assert plan == QuestionPlan(difficulty="medium", focus_dimension="technical", intent="CLARIFY_TECHNICAL")


def test_shallow_depth_is_probed():
    plan = plan_next(_ev(6, depth=5), "medium", "clarity")
    assert plan.intent == "PROBE_DEPTH"
    assert plan.focus_dimension == "depth"


def test_strong_answer_escalates():
    plan = plan_next(_ev(9), "medium", "communication")
    assert plan.difficulty == "hard"
    assert plan.intent == "ESCALATE_DIFFICULTY"
    assert plan.focus_dimension == "communication"


def test_default_targets_running_weakest_dimension():
    plan = plan_next(_ev(7, clarity=6), "medium", "problem_solving")
    assert plan.intent == "TARGET_WEAKNESS"
    assert plan.focus_dimension == "problem_solving"


def test_next_question_forwards_plan():
    seen = {}

    def source(**kwargs):
        seen.update(kwargs)
        return {"question": "What is a B-tree?", "topic": "indexes", "difficulty": kwargs["difficulty"]}

    bind_model(QUESTION_KEY, source)
    try:
        plan = QuestionPlan(difficulty="hard", focus_dimension="depth", intent="PROBE_DEPTH")
        question = next_question(role="DBA", experience_level="Senior", history=[], plan=plan)
    finally:
        unbind_model(QUESTION_KEY)
    assert question.topic == "indexes"
    assert question.difficulty == "hard"
    assert seen["focus_dimension"] == "depth"
    assert seen["intent"] == "PROBE_DEPTH"
    assert seen["history"] == []


@pytest.mark.parametrize("payload", [{"question": "", "topic": "x", "difficulty": "easy"}, {"question": "Q?"}, None])
def test_invalid_question_payload_raises_generation_error(payload):
    bind_model(QUESTION_KEY, lambda **_: payload)
    try:
        with pytest.raises(GenerationError):
            next_question(role="r", experience_level="Junior", history=[], plan=QuestionPlan())
    finally:
        unbind_model(QUESTION_KEY)


def test_slow_collaborator_times_out_as_retryable_error():
    release = threading.Event()

    def slow(**_):
        release.wait(5)
        return {}

    bind_model("models.slow", slow)
    try:
        with pytest.raises(UpstreamError) as excinfo:
            invoke_model("models.slow", timeout_s=0.05)
    finally:
        release.set()
        unbind_model("models.slow")
    assert excinfo.value.retryable is True
    assert "did not respond" in excinfo.value.message
