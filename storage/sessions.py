"""SQLite-backed session store.

Each session is one row: indexed columns for the lookups the manager needs,
plus the full :class:`Session` serialized into ``payload_json``. Writes are
guarded by an optimistic ``version`` column and the partial unique index on
live sessions per user.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional

from interview_session.errors import ConflictError, StaleSessionError, StorageError
from interview_session.models import IN_PROGRESS, Session

from .events import SessionEventPayload, write_session_event
from .sqlite import get_conn

logger = logging.getLogger(__name__)

ACTIVE_INDEX = "ux_interview_sessions_active_user"


def _row_to_session(row: sqlite3.Row) -> Session:
    session = Session.model_validate_json(row["payload_json"])
    # The column is authoritative; the payload is written before the bump.
    return session.model_copy(update={"version": int(row["version"])})


def _is_active_user_violation(exc: sqlite3.IntegrityError) -> bool:
    message = str(exc)
    return ACTIVE_INDEX in message or "interview_sessions.user_id" in message


class SqliteSessionStore:
    """Durable :class:`~storage.base.SessionStore` on the configured SQLite file."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path

    def create(self, session: Session, *, event: Optional[SessionEventPayload] = None) -> Session:
        stored = session.model_copy(update={"version": 1})
        try:
            with get_conn(self.db_path) as conn:
                conn.execute(
                    """INSERT INTO interview_sessions
                       (session_id, user_id, status, role, experience_level, mode,
                        max_questions, turn_count, version, payload_json, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        stored.session_id,
                        stored.user_id,
                        stored.status,
                        stored.role,
                        stored.experience_level,
                        stored.mode,
                        stored.max_questions,
                        len(stored.turns),
                        stored.version,
                        stored.model_dump_json(),
                        stored.created_at.isoformat(),
                        stored.updated_at.isoformat(),
                    ),
                )
                if event is not None:
                    write_session_event(conn, event)
        except sqlite3.IntegrityError as exc:
            if stored.status == IN_PROGRESS and _is_active_user_violation(exc):
                active = self.find_active_by_user(stored.user_id)
                raise ConflictError(
                    "User already has an interview in progress",
                    active_session_id=active.session_id if active else None,
                ) from exc
            logger.error("session insert rejected for %s: %s", stored.session_id, exc)
            raise StorageError("Could not create session") from exc
        except sqlite3.Error as exc:
            logger.error("session insert failed for %s: %s", stored.session_id, exc)
            raise StorageError("Could not create session") from exc
        return stored

    def get(self, session_id: str) -> Optional[Session]:
        try:
            with get_conn(self.db_path) as conn:
                row = conn.execute(
                    "SELECT payload_json, version FROM interview_sessions WHERE session_id = ?",
                    (session_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError("Could not load session") from exc
        return _row_to_session(row) if row else None

    def update(
        self,
        session: Session,
        *,
        expected_version: int,
        event: Optional[SessionEventPayload] = None,
    ) -> Session:
        stored = session.model_copy(update={"version": expected_version + 1})
        try:
            with get_conn(self.db_path) as conn:
                cur = conn.execute(
                    """UPDATE interview_sessions
                       SET status = ?, turn_count = ?, version = ?, payload_json = ?, updated_at = ?
                       WHERE session_id = ? AND version = ?""",
                    (
                        stored.status,
                        len(stored.turns),
                        stored.version,
                        stored.model_dump_json(),
                        stored.updated_at.isoformat(),
                        stored.session_id,
                        expected_version,
                    ),
                )
                if cur.rowcount != 1:
                    raise StaleSessionError(
                        "Session was modified concurrently",
                        details={"session_id": stored.session_id},
                    )
                if event is not None:
                    write_session_event(conn, event)
        except sqlite3.Error as exc:
            logger.error("session update failed for %s: %s", stored.session_id, exc)
            raise StorageError("Could not save session") from exc
        return stored

    def find_active_by_user(self, user_id: str) -> Optional[Session]:
        try:
            with get_conn(self.db_path) as conn:
                row = conn.execute(
                    "SELECT payload_json, version FROM interview_sessions WHERE user_id = ? AND status = ?",
                    (user_id, IN_PROGRESS),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError("Could not look up active session") from exc
        return _row_to_session(row) if row else None

    def list_by_user(self, user_id: str, *, limit: int = 50) -> List[Session]:
        try:
            with get_conn(self.db_path) as conn:
                rows = conn.execute(
                    """SELECT payload_json, version FROM interview_sessions
                       WHERE user_id = ? ORDER BY created_at DESC LIMIT ?""",
                    (user_id, limit),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError("Could not list sessions") from exc
        return [_row_to_session(row) for row in rows]


__all__ = ["SqliteSessionStore"]
