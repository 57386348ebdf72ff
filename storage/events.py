"""Audit trail of session lifecycle transitions."""
from __future__ import annotations

import datetime as dt
import json
import sqlite3
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn


class SessionEventPayload(BaseModel):
    session_id: str
    user_id: str
    kind: str
    status: str
    question_number: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


def write_session_event(conn: sqlite3.Connection, event: SessionEventPayload) -> int:
    """Insert ``event`` on an open connection so it shares the caller's transaction."""

    timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
    cur = conn.execute(
        """INSERT INTO session_events
           (timestamp, session_id, user_id, kind, status, question_number, metadata)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (
            timestamp,
            event.session_id,
            event.user_id,
            event.kind,
            event.status,
            event.question_number,
            json.dumps(event.metadata),
        ),
    )
    return int(cur.lastrowid)


def list_session_events(
    session_id: Optional[str] = None, *, limit: int = 100, db_path: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Most recent events first, optionally for one session.

    ``db_path`` defaults to ``settings.DB_PATH``; pass the store's own path when it
    was opened on another file.
    """

    query = "SELECT timestamp, session_id, user_id, kind, status, question_number, metadata FROM session_events"
    params: tuple = ()
    if session_id is not None:
        query += " WHERE session_id = ?"
        params = (session_id,)
    query += " ORDER BY id DESC LIMIT ?"
    with get_conn(db_path) as conn:
        rows = conn.execute(query, params + (limit,)).fetchall()
    return [
        {
            "timestamp": row["timestamp"],
            "session_id": row["session_id"],
            "user_id": row["user_id"],
            "kind": row["kind"],
            "status": row["status"],
            "question_number": row["question_number"],
            "metadata": json.loads(row["metadata"]) if row["metadata"] else {},
        }
        for row in rows
    ]


__all__ = ["SessionEventPayload", "write_session_event", "list_session_events"]
