from datetime import datetime, timedelta, timezone

import pytest

from interview_session.errors import (
    ConflictError,
    EvaluationError,
    GenerationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from interview_session.manager import SessionLifecycleManager
from storage.events import list_session_events
from tests.fakes import make_eval

T0 = datetime(2026, 2, 2, 10, 0, tzinfo=timezone.utc)


class TickClock:
    def __init__(self, step_seconds: float = 30.0) -> None:
        self.now = T0
        self.step = timedelta(seconds=step_seconds)

    def __call__(self) -> datetime:
        self.now += self.step
        return self.now


@pytest.fixture
def manager():
    return SessionLifecycleManager(max_questions=5, clock=TickClock())


def _start(manager, user_id="u1"):
    return manager.start_interview(user_id, "Backend Engineer", "Mid", "text")


def test_start_returns_first_question(manager, fake_models):
    started = _start(manager)
    assert started["question_number"] == 1
    assert started["max_questions"] == 5
    assert started["question"].question == "Question 1 for Backend Engineer?"
    call = fake_models.questions.calls[0]
    assert call["history"] == []
    assert call["difficulty"] == "medium"
    assert call["focus_dimension"] is None and call["intent"] is None
    session = manager.get_session(started["session_id"])
    assert session.status == "IN_PROGRESS"
    assert session.turns == []
    assert session.current_question == started["question"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"role": " ", "experience_level": "Mid", "mode": "text"},
        {"role": "SRE", "experience_level": "Principal", "mode": "text"},
        {"role": "SRE", "experience_level": "Mid", "mode": "video"},
    ],
)
def test_start_validates_input(manager, fake_models, kwargs):
    with pytest.raises(ValidationError):
        manager.start_interview("u1", **kwargs)
    assert fake_models.questions.calls == []


def test_second_start_conflicts_until_abandoned(manager, fake_models):
    first = _start(manager)
    with pytest.raises(ConflictError) as excinfo:
        _start(manager)
    assert excinfo.value.active_session_id == first["session_id"]
    assert excinfo.value.to_payload()["details"] == {"active_session_id": first["session_id"]}

    manager.abandon_session(first["session_id"])
    second = _start(manager)
    assert second["session_id"] != first["session_id"]


def test_failed_first_question_creates_nothing(manager, fake_models):
    fake_models.questions.fail_on = 1
    with pytest.raises(GenerationError):
        _start(manager)
    assert manager.get_active_session("u1") is None
    assert _start(manager)["question_number"] == 1


def test_five_question_interview_completes_with_report(manager, fake_models):
    fake_models.evaluator.script = [make_eval(score) for score in (6, 8, 7, 7, 7)]
    session_id = _start(manager)["session_id"]

    results = [manager.submit_answer(session_id, f"Answer {n}") for n in range(1, 6)]

    for number, result in enumerate(results[:4], start=1):
        assert result["question_number"] == number
        assert result["status"] == "IN_PROGRESS"
        assert result["next_question"] is not None
        assert result["final_report"] is None
    last = results[-1]
    assert last["next_question"] is None
    assert last["status"] == "COMPLETED"
    assert last["final_report"] is not None
    assert last["final_report"].questions_answered == 5
    assert last["scoring_summary"].overall_average == 7.0
    assert len(fake_models.questions.calls) == 5

    session = manager.get_session(session_id)
    assert [turn.index for turn in session.turns] == [1, 2, 3, 4, 5]
    assert session.current_question is None
    assert session.completed_at is not None
    assert session.final_report == last["final_report"]
    assert manager.get_active_session("u1") is None


def test_history_and_plan_reach_collaborators(manager, fake_models):
    fake_models.evaluator.script = [make_eval(9)]
    session_id = _start(manager)["session_id"]
    manager.submit_answer(session_id, "A strong answer")

    second_call = fake_models.questions.calls[1]
    assert [entry["question_number"] for entry in second_call["history"]] == [1]
    assert second_call["difficulty"] == "hard"
    assert second_call["intent"] == "ESCALATE_DIFFICULTY"
    session = manager.get_session(session_id)
    assert session.current_plan.intent == "ESCALATE_DIFFICULTY"
    assert session.turns[0].time_taken_seconds == 30.0


def test_blank_answer_is_rejected_without_advancing(manager, fake_models):
    session_id = _start(manager)["session_id"]
    for blank in ("", "   \n"):
        with pytest.raises(ValidationError):
            manager.submit_answer(session_id, blank)
    assert manager.get_session(session_id).turns == []
    assert fake_models.evaluator.calls == []


def test_submit_error_precedence(manager, fake_models):
    with pytest.raises(NotFoundError):
        manager.submit_answer("missing", "")
    session_id = _start(manager)["session_id"]
    manager.abandon_session(session_id)
    with pytest.raises(InvalidStateError):
        manager.submit_answer(session_id, "")


def test_evaluator_failure_leaves_session_untouched(manager, fake_models):
    session_id = _start(manager)["session_id"]
    before = manager.get_session(session_id)
    fake_models.evaluator.script = [RuntimeError("evaluator down")]

    with pytest.raises(EvaluationError) as excinfo:
        manager.submit_answer(session_id, "An answer")
    assert excinfo.value.retryable is True
    assert manager.get_session(session_id) == before

    assert manager.submit_answer(session_id, "An answer")["question_number"] == 1


def test_next_question_failure_discards_the_evaluation(manager, fake_models):
    session_id = _start(manager)["session_id"]
    before = manager.get_session(session_id)
    fake_models.questions.fail_on = 2

    with pytest.raises(GenerationError):
        manager.submit_answer(session_id, "An answer")
    after = manager.get_session(session_id)
    assert after == before
    assert after.aggregates.count == 0

    result = manager.submit_answer(session_id, "An answer")
    assert result["question_number"] == 1
    assert manager.get_session(session_id).aggregates.count == 1


def test_complete_is_idempotent(manager, fake_models):
    session_id = _start(manager)["session_id"]
    manager.submit_answer(session_id, "Answer")
    first = manager.complete_interview(session_id)
    second = manager.complete_interview(session_id)
    assert first.model_dump_json() == second.model_dump_json()
    assert first.questions_answered == 1
    with pytest.raises(InvalidStateError):
        manager.submit_answer(session_id, "Late answer")


def test_complete_with_no_answers(manager, fake_models):
    session_id = _start(manager)["session_id"]
    report = manager.complete_interview(session_id)
    assert report.questions_answered == 0
    assert report.average_score == 0.0
    assert (report.confidence_level, report.hire_recommendation, report.hire_band) == ("Low", "No", "No Hire")


def test_abandon_is_idempotent_and_never_downgrades(manager, fake_models):
    session_id = _start(manager)["session_id"]
    first = manager.abandon_session(session_id)
    second = manager.abandon_session(session_id)
    assert first.status == second.status == "ABANDONED"
    assert first.version == second.version
    with pytest.raises(InvalidStateError):
        manager.complete_interview(session_id)

    completed_id = _start(manager)["session_id"]
    manager.complete_interview(completed_id)
    assert manager.abandon_session(completed_id).status == "COMPLETED"


def test_voice_answer_promotes_text_session_to_hybrid(manager, fake_models):
    session_id = _start(manager)["session_id"]
    voice = {"duration_seconds": 42.0, "filler_word_count": 3, "pause_count": 2, "words_per_minute": 130}
    manager.submit_answer(session_id, "Spoken answer", voice)
    session = manager.get_session(session_id)
    assert session.mode == "hybrid"
    assert session.turns[0].voice_meta.filler_word_count == 3
    assert fake_models.evaluator.calls[0]["voice_meta"]["duration_seconds"] == 42.0


def test_invalid_voice_meta_is_a_validation_error(manager, fake_models):
    session_id = _start(manager)["session_id"]
    with pytest.raises(ValidationError):
        manager.submit_answer(session_id, "Answer", {"duration_seconds": -1})


def test_other_users_sessions_are_not_found(manager, fake_models):
    session_id = _start(manager)["session_id"]
    with pytest.raises(NotFoundError):
        manager.get_session(session_id, user_id="intruder")
    with pytest.raises(NotFoundError):
        manager.submit_answer(session_id, "Answer", user_id="intruder")
    with pytest.raises(NotFoundError):
        manager.abandon_session(session_id, user_id="intruder")
    assert manager.get_session(session_id, user_id="u1").status == "IN_PROGRESS"


def test_role_weighted_overall_is_opt_in(fake_models):
    payload = make_eval(5, technical=10, depth=0, clarity=10)
    fake_models.evaluator.script = [dict(payload), dict(payload)]
    plain = SessionLifecycleManager(max_questions=1, clock=TickClock())
    weighted = SessionLifecycleManager(max_questions=1, role_weighted=True, clock=TickClock())

    plain_result = plain.submit_answer(_start(plain, "plain")["session_id"], "Answer")
    weighted_result = weighted.submit_answer(_start(weighted, "weighted")["session_id"], "Answer")
    assert plain_result["evaluation"].overall == 5
    assert weighted_result["evaluation"].overall == 5.75
    assert plain_result["status"] == weighted_result["status"] == "COMPLETED"


def test_list_sessions_and_active_lookup(manager, fake_models):
    old = _start(manager)["session_id"]
    manager.abandon_session(old)
    current = _start(manager)["session_id"]
    assert manager.get_active_session("u1").session_id == current
    assert {s.session_id for s in manager.list_sessions("u1")} == {old, current}
    assert manager.list_sessions("nobody") == []


def test_lifecycle_transitions_are_audited(manager, fake_models):
    session_id = _start(manager)["session_id"]
    manager.submit_answer(session_id, "Answer")
    manager.complete_interview(session_id)
    kinds = [event["kind"] for event in reversed(list_session_events(session_id))]
    assert kinds == ["session_started", "answer_scored", "session_completed"]


def test_max_questions_must_be_positive():
    with pytest.raises(ValueError):
        SessionLifecycleManager(max_questions=0)


def test_max_questions_defaults_to_settings(monkeypatch, fake_models):
    from config.settings import settings

    monkeypatch.setattr(settings, "MAX_QUESTIONS", 2)
    started = SessionLifecycleManager(clock=TickClock()).start_interview("u-default", "Backend Engineer", "Mid")
    assert started["max_questions"] == 2
