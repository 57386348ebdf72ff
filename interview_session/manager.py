"""Session lifecycle manager.

Owns the per-user state machine ``NONE -> IN_PROGRESS -> {COMPLETED, ABANDONED}``.
Every mutating operation loads the session, computes the complete next state
in memory (evaluation, appended turn, folded aggregates, next question or final
report) and persists it in a single versioned write, so a failing collaborator
leaves the stored session exactly as it was.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, get_args

from pydantic import ValidationError as PydanticValidationError

from agents.question_source import next_question, plan_next
from agents.response_evaluator import evaluate_answer
from agents.types import ExperienceLevel, InterviewMode, QuestionPlan, VoiceMeta
from config.settings import settings
from observability import log_event
from services.analytics import AnalyticsSummary, summarize
from services.reporting import ReportPolicy, build_report
from services.scoring import apply_role_weighting, snapshot, update
from services.sessions import new_session, utcnow
from storage.base import SessionStore
from storage.events import SessionEventPayload
from storage.sessions import SqliteSessionStore

from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .locks import KeyedLocks
from .models import ABANDONED, COMPLETED, IN_PROGRESS, FinalReport, QuestionTurn, Session

logger = logging.getLogger(__name__)

EXPERIENCE_LEVELS = get_args(ExperienceLevel)
INTERVIEW_MODES = get_args(InterviewMode)


def _event(session: Session, kind: str, **metadata: Any) -> SessionEventPayload:
    return SessionEventPayload(
        session_id=session.session_id,
        user_id=session.user_id,
        kind=kind,
        status=session.status,
        question_number=session.question_number or None,
        metadata=metadata,
    )


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} must not be blank", details={"field": field})
    return str(value).strip()


class SessionLifecycleManager:
    """Coordinates the store, the question source and the evaluator."""

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        *,
        max_questions: Optional[int] = None,
        report_policy: Optional[ReportPolicy] = None,
        role_weighted: Optional[bool] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if max_questions is not None and max_questions < 1:
            raise ValueError("max_questions must be at least 1")
        self._store: SessionStore = store or SqliteSessionStore()
        self._max_questions = max_questions
        self._report_policy = report_policy
        self._role_weighted = role_weighted
        self._clock = clock
        self._session_locks = KeyedLocks()
        self._user_locks = KeyedLocks()

    @property
    def store(self) -> SessionStore:
        return self._store

    # Settings are read per call so overrides apply without rebuilding the manager.
    def _policy(self) -> ReportPolicy:
        return self._report_policy or ReportPolicy.from_settings(settings)

    def _limit(self) -> int:
        return settings.MAX_QUESTIONS if self._max_questions is None else self._max_questions

    def _weighted(self) -> bool:
        return settings.ROLE_WEIGHTED_OVERALL if self._role_weighted is None else self._role_weighted

    def _load(self, session_id: str, user_id: Optional[str]) -> Session:
        session = self._store.get(session_id)
        # Sessions owned by someone else are indistinguishable from missing ones.
        if session is None or (user_id is not None and session.user_id != user_id):
            raise NotFoundError("Session not found", details={"session_id": session_id})
        return session

    def start_interview(
        self,
        user_id: str,
        role: str,
        experience_level: ExperienceLevel,
        mode: InterviewMode = "text",
    ) -> Dict[str, Any]:
        """Open a new session and return its first question.

        Raises:
            ConflictError: the user already has an IN_PROGRESS session.
            GenerationError: the first question could not be produced; nothing is stored.
        """

        user_id = _require_text(user_id, "user_id")
        role = _require_text(role, "role")
        if experience_level not in EXPERIENCE_LEVELS:
            raise ValidationError(
                f"experience_level must be one of {', '.join(EXPERIENCE_LEVELS)}",
                details={"field": "experience_level"},
            )
        if mode not in INTERVIEW_MODES:
            raise ValidationError(f"mode must be one of {', '.join(INTERVIEW_MODES)}", details={"field": "mode"})

        with self._user_locks.hold(user_id):
            active = self._store.find_active_by_user(user_id)
            if active is not None:
                log_event("start_conflict", active.session_id, user_id=user_id)
                raise ConflictError(
                    "User already has an interview in progress",
                    active_session_id=active.session_id,
                )

            plan = QuestionPlan()
            question = next_question(role=role, experience_level=experience_level, history=[], plan=plan)
            session = new_session(
                user_id=user_id,
                role=role,
                experience_level=experience_level,
                mode=mode,
                max_questions=self._limit(),
                first_question=question,
                now=self._clock(),
            )
            stored = self._store.create(session, event=_event(session, "session_started", role=role))

        log_event(
            "session_started",
            stored.session_id,
            user_id=user_id,
            role=role,
            experience_level=experience_level,
            mode=mode,
        )
        return {
            "session_id": stored.session_id,
            "question": question,
            "question_number": 1,
            "max_questions": stored.max_questions,
        }

    def submit_answer(
        self,
        session_id: str,
        answer_text: str,
        voice_meta: Optional[Any] = None,
        *,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Score the pending question's answer and advance the session.

        Raises:
            NotFoundError, InvalidStateError, ValidationError: checked in that order.
            EvaluationError, GenerationError: collaborator failure; the session is unchanged.
            StaleSessionError: another process saved the session first.
        """

        with self._session_locks.hold(session_id):
            session = self._load(session_id, user_id)
            if not session.is_active or session.current_question is None:
                raise InvalidStateError(
                    f"Session is {session.status} and does not accept answers",
                    details={"status": session.status},
                )
            answer = _require_text(answer_text, "answer_text")
            voice = self._voice_meta(voice_meta)

            evaluation = evaluate_answer(
                question=session.current_question,
                answer_text=answer,
                voice_meta=voice,
                history=session.history(),
                role=session.role,
                experience_level=session.experience_level,
                session_id=session_id,
            )
            if self._weighted():
                evaluation = apply_role_weighting(evaluation, session.experience_level)

            answered_at = self._clock()
            turn = QuestionTurn(
                index=len(session.turns) + 1,
                question=session.current_question,
                answer_text=answer,
                voice_meta=voice,
                evaluation=evaluation,
                asked_at=session.current_question_asked_at or session.updated_at,
                answered_at=answered_at,
                focus_dimension=session.current_plan.focus_dimension,
                intent=session.current_plan.intent,
            )
            aggregates = update(session.aggregates, evaluation)
            scores = snapshot(aggregates)
            changes: Dict[str, Any] = {
                "turns": [*session.turns, turn],
                "aggregates": aggregates,
                "updated_at": answered_at,
            }
            if voice is not None and session.mode == "text":
                changes["mode"] = "hybrid"

            if turn.index >= session.max_questions:
                report = build_report(scores, changes["turns"], self._policy(), now=answered_at)
                changes.update(
                    status=COMPLETED,
                    current_question=None,
                    current_question_asked_at=None,
                    final_report=report,
                    completed_at=answered_at,
                )
                upcoming = None
            else:
                plan = plan_next(evaluation, turn.question.difficulty, scores.weakest_dimension)
                advanced = session.model_copy(update=changes)
                upcoming = next_question(
                    role=session.role,
                    experience_level=session.experience_level,
                    history=advanced.history(),
                    plan=plan,
                    session_id=session_id,
                )
                changes.update(
                    current_question=upcoming,
                    current_question_asked_at=self._clock(),
                    current_plan=plan,
                )

            draft = session.model_copy(update=changes)
            kind = "session_completed" if draft.status == COMPLETED else "answer_scored"
            stored = self._store.update(
                draft,
                expected_version=session.version,
                event=_event(draft, kind, answered=turn.index, overall=evaluation.overall),
            )

        log_event(
            "answer_scored",
            session_id,
            user_id=stored.user_id,
            question_number=turn.index,
            overall=evaluation.overall,
            status=stored.status,
        )
        if stored.status == COMPLETED:
            log_event("session_completed", session_id, user_id=stored.user_id, overall=scores.overall_average)
        return {
            "evaluation": evaluation,
            "next_question": upcoming,
            "scoring_summary": scores,
            "question_number": turn.index,
            "status": stored.status,
            "final_report": stored.final_report,
        }

    @staticmethod
    def _voice_meta(raw: Optional[Any]) -> Optional[VoiceMeta]:
        if raw is None or isinstance(raw, VoiceMeta):
            return raw
        try:
            return VoiceMeta.model_validate(raw)
        except PydanticValidationError as exc:
            raise ValidationError("voice_meta is invalid", details={"field": "voice_meta"}) from exc

    def complete_interview(self, session_id: str, *, user_id: Optional[str] = None) -> FinalReport:
        """Finish the session early or return the report it already has."""

        with self._session_locks.hold(session_id):
            session = self._load(session_id, user_id)
            if session.status == COMPLETED and session.final_report is not None:
                return session.final_report
            if session.status == ABANDONED:
                raise InvalidStateError("Abandoned sessions cannot be completed", details={"status": ABANDONED})

            now = self._clock()
            report = build_report(snapshot(session.aggregates), session.turns, self._policy(), now=now)
            draft = session.model_copy(
                update={
                    "status": COMPLETED,
                    "current_question": None,
                    "current_question_asked_at": None,
                    "final_report": report,
                    "completed_at": now,
                    "updated_at": now,
                }
            )
            stored = self._store.update(
                draft,
                expected_version=session.version,
                event=_event(draft, "session_completed", answered=len(draft.turns), early=True),
            )

        log_event(
            "session_completed",
            session_id,
            user_id=stored.user_id,
            question_number=len(stored.turns),
            overall=report.average_score,
        )
        return report

    def abandon_session(self, session_id: str, *, user_id: Optional[str] = None) -> Session:
        """Release the user's slot; terminal sessions are returned unchanged."""

        with self._session_locks.hold(session_id):
            session = self._load(session_id, user_id)
            if session.status != IN_PROGRESS:
                return session

            now = self._clock()
            draft = session.model_copy(
                update={
                    "status": ABANDONED,
                    "current_question": None,
                    "current_question_asked_at": None,
                    "abandoned_at": now,
                    "updated_at": now,
                }
            )
            stored = self._store.update(
                draft,
                expected_version=session.version,
                event=_event(draft, "session_abandoned", answered=len(draft.turns)),
            )

        log_event("session_abandoned", session_id, user_id=stored.user_id, question_number=len(stored.turns))
        return stored

    def get_active_session(self, user_id: str) -> Optional[Session]:
        return self._store.find_active_by_user(_require_text(user_id, "user_id"))

    def get_session(self, session_id: str, *, user_id: Optional[str] = None) -> Session:
        return self._load(session_id, user_id)

    def list_sessions(self, user_id: str, *, limit: int = 50) -> List[Session]:
        """The user's sessions, newest first."""
        return self._store.list_by_user(_require_text(user_id, "user_id"), limit=limit)

    def user_analytics(self, user_id: str, *, limit: int = 200) -> AnalyticsSummary:
        """Progress across the user's completed sessions (the latest ``limit`` sessions are read)."""
        return summarize(self._store.list_by_user(_require_text(user_id, "user_id"), limit=limit))


__all__ = ["SessionLifecycleManager"]
