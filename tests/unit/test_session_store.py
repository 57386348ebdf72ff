import sqlite3
from datetime import datetime, timezone

import pytest

from agents.types import Evaluation, GeneratedQuestion
from config.settings import settings
from interview_session.errors import ConflictError, StaleSessionError
from interview_session.models import COMPLETED, QuestionTurn
from services.scoring import update
from services.sessions import new_session
from storage.events import SessionEventPayload, list_session_events
from storage.migrate import migrate
from storage.sessions import SqliteSessionStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
QUESTION = GeneratedQuestion(question="What is idempotency?", topic="apis", difficulty="medium")


def _session(user_id="u1"):
    return new_session(
        user_id=user_id,
        role="Backend Engineer",
        experience_level="Mid",
        mode="text",
        max_questions=5,
        first_question=QUESTION,
        now=NOW,
    )


def test_migrate_creates_tables_and_active_index():
    migrate(settings.DB_PATH)
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master")}
    finally:
        conn.close()
    assert {"interview_sessions", "session_events", "ux_interview_sessions_active_user"} <= names


def test_create_and_round_trip_preserves_decimal_sums():
    store = SqliteSessionStore()
    session = _session()
    evaluation = Evaluation(technical=7.1, depth=6.2, clarity=8, problem_solving=7, communication=9, overall=7.3)
    turn = QuestionTurn(
        index=1,
        question=QUESTION,
        answer_text="Same request, same effect.",
        evaluation=evaluation,
        asked_at=NOW,
        answered_at=NOW,
    )
    session = session.model_copy(update={"turns": [turn], "aggregates": update(session.aggregates, evaluation)})
    stored = store.create(session)
    loaded = store.get(stored.session_id)
    assert loaded == stored
    assert loaded.version == 1
    assert str(loaded.aggregates.technical_sum) == "7.1"


def test_second_live_session_for_user_conflicts():
    store = SqliteSessionStore()
    first = store.create(_session())
    with pytest.raises(ConflictError) as excinfo:
        store.create(_session())
    assert excinfo.value.active_session_id == first.session_id
    store.create(_session(user_id="u2"))


def test_update_is_optimistic_on_version():
    store = SqliteSessionStore()
    stored = store.create(_session())
    done = store.update(stored.model_copy(update={"status": COMPLETED}), expected_version=stored.version)
    assert done.version == stored.version + 1
    with pytest.raises(StaleSessionError) as excinfo:
        store.update(stored, expected_version=stored.version)
    assert excinfo.value.to_payload()["kind"] == "stale_session"
    assert excinfo.value.http_status == 409 and excinfo.value.retryable is True
    assert store.get(stored.session_id).status == COMPLETED


def test_completed_sessions_free_the_user_slot():
    store = SqliteSessionStore()
    stored = store.create(_session())
    store.update(stored.model_copy(update={"status": COMPLETED}), expected_version=stored.version)
    assert store.find_active_by_user("u1") is None
    replacement = store.create(_session())
    assert store.find_active_by_user("u1").session_id == replacement.session_id
    assert len(store.list_by_user("u1")) == 2


def test_events_are_written_with_the_session():
    store = SqliteSessionStore()
    session = _session()
    event = SessionEventPayload(
        session_id=session.session_id,
        user_id="u1",
        kind="session_started",
        status="IN_PROGRESS",
        question_number=1,
        metadata={"role": "Backend Engineer"},
    )
    store.create(session, event=event)
    events = list_session_events(session.session_id)
    assert len(events) == 1
    assert events[0]["kind"] == "session_started"
    assert events[0]["metadata"] == {"role": "Backend Engineer"}


def test_failed_create_does_not_write_event():
    store = SqliteSessionStore()
    store.create(_session())
    duplicate = _session()
    event = SessionEventPayload(session_id=duplicate.session_id, user_id="u1", kind="session_started", status="IN_PROGRESS")
    with pytest.raises(ConflictError):
        store.create(duplicate, event=event)
    assert list_session_events(duplicate.session_id) == []


def test_events_are_read_from_the_store_database(tmp_path, fake_models):
    from interview_session.manager import SessionLifecycleManager
    from observability import admin_cli

    other_db = str(tmp_path / "other.db")
    migrate(other_db)
    manager = SessionLifecycleManager(SqliteSessionStore(other_db), max_questions=2)
    session_id = manager.start_interview("u-other", "Backend Engineer", "Mid")["session_id"]

    assert list_session_events(session_id) == []
    events = list_session_events(session_id, db_path=other_db)
    assert [evt["kind"] for evt in events] == ["session_started"]
    assert "session_started" in admin_cli.tail_events(5, session_id, db_path=other_db)[0]
    assert session_id in admin_cli.tail_sessions(5, db_path=other_db)[0]
