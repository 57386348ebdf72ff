"""FastAPI routes for interview session control."""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.schemas import AnswerReq, Envelope, SessionReq, StartReq
from interview_session.errors import InterviewError, ValidationError
from interview_session.manager import SessionLifecycleManager
from interview_session.models import Session
from services.scoring import snapshot
from services.sessions import session_summary
from session_reports import generate_session_report_pdf


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/interview")

_MANAGER: Optional[SessionLifecycleManager] = None


def get_manager() -> SessionLifecycleManager:
    global _MANAGER
    if _MANAGER is None:
        _MANAGER = SessionLifecycleManager()
    return _MANAGER


def current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    if x_user_id is None or not x_user_id.strip():
        raise ValidationError("X-User-Id header is required", details={"field": "X-User-Id"})
    return x_user_id.strip()


def ok(data: Any) -> Envelope:
    return Envelope(success=True, data=jsonable_encoder(data))


def _error_response(status_code: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "data": None, "error": body})


def install_error_handlers(app: FastAPI) -> None:
    """Translate domain and request-validation errors into the response envelope."""

    @app.exception_handler(InterviewError)
    async def _interview_error(_: Request, exc: InterviewError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("%s: %s", exc.kind, exc.message, exc_info=exc)
        elif exc.retryable:
            logger.warning("%s: %s", exc.kind, exc.message)
        return _error_response(exc.http_status, exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(_: Request, exc: RequestValidationError) -> JSONResponse:
        problems = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        body = ValidationError("Request body is invalid", details={"errors": problems}).to_payload()
        return _error_response(400, body)


def _session_detail(session: Session) -> Dict[str, Any]:
    data = session.model_dump(mode="json")
    data["question_number"] = session.question_number
    data["scoring_summary"] = snapshot(session.aggregates).model_dump(mode="json")
    return data


def _safe_slug(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower())
    return re.sub(r"-+", "-", slug).strip("-")


@router.post("/start", response_model=Envelope)
def start(
    req: StartReq,
    user_id: str = Depends(current_user),
    manager: SessionLifecycleManager = Depends(get_manager),
) -> Envelope:
    return ok(manager.start_interview(user_id, req.role, req.experience_level, req.mode))


@router.post("/answer", response_model=Envelope)
def answer(
    req: AnswerReq,
    user_id: str = Depends(current_user),
    manager: SessionLifecycleManager = Depends(get_manager),
) -> Envelope:
    return ok(manager.submit_answer(req.session_id, req.answer_text, req.voice_meta, user_id=user_id))


@router.post("/complete", response_model=Envelope)
def complete(
    req: SessionReq,
    user_id: str = Depends(current_user),
    manager: SessionLifecycleManager = Depends(get_manager),
) -> Envelope:
    report = manager.complete_interview(req.session_id, user_id=user_id)
    return ok({"session_id": req.session_id, "status": "COMPLETED", "final_report": report})


@router.post("/abandon", response_model=Envelope)
def abandon(
    req: SessionReq,
    user_id: str = Depends(current_user),
    manager: SessionLifecycleManager = Depends(get_manager),
) -> Envelope:
    session = manager.abandon_session(req.session_id, user_id=user_id)
    return ok({"session_id": session.session_id, "status": session.status})


@router.get("/active", response_model=Envelope)
def active(
    user_id: str = Depends(current_user),
    manager: SessionLifecycleManager = Depends(get_manager),
) -> Envelope:
    session = manager.get_active_session(user_id)
    if session is None:
        return ok(
            {
                "has_active_session": False,
                "session_id": None,
                "question_number": None,
                "max_questions": None,
                "role": None,
                "current_question": None,
            }
        )
    return ok(
        {
            "has_active_session": True,
            "session_id": session.session_id,
            "question_number": session.question_number,
            "max_questions": session.max_questions,
            "role": session.role,
            "current_question": session.current_question,
        }
    )


@router.get("/history", response_model=Envelope)
def history(
    limit: int = 50,
    user_id: str = Depends(current_user),
    manager: SessionLifecycleManager = Depends(get_manager),
) -> Envelope:
    sessions: List[Session] = manager.list_sessions(user_id, limit=max(1, min(limit, 200)))
    return ok([session_summary(session) for session in sessions])


@router.get("/analytics", response_model=Envelope)
def analytics(
    user_id: str = Depends(current_user),
    manager: SessionLifecycleManager = Depends(get_manager),
) -> Envelope:
    return ok(manager.user_analytics(user_id))


@router.get("/{session_id}", response_model=Envelope)
def fetch(
    session_id: str,
    user_id: str = Depends(current_user),
    manager: SessionLifecycleManager = Depends(get_manager),
) -> Envelope:
    return ok(_session_detail(manager.get_session(session_id, user_id=user_id)))


@router.get("/{session_id}/report.pdf")
def fetch_report_pdf(
    session_id: str,
    user_id: str = Depends(current_user),
    manager: SessionLifecycleManager = Depends(get_manager),
) -> Response:
    session = manager.get_session(session_id, user_id=user_id)
    payload = generate_session_report_pdf(session)
    filename = f"{_safe_slug(session.role) or 'interview'}-{session.session_id}.pdf"
    headers = {"Content-Disposition": f"attachment; filename=\"{filename}\""}
    return Response(content=payload, media_type="application/pdf", headers=headers)
