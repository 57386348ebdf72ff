"""Lightweight CLI helpers for inspecting interview sessions and their audit trail."""
from __future__ import annotations

import argparse
import sqlite3
from typing import List, Optional

from config.settings import settings
from storage.events import list_session_events


def tail_sessions(limit: int = 20, status: Optional[str] = None, db_path: Optional[str] = None) -> List[str]:
    conn = sqlite3.connect(db_path or settings.DB_PATH)
    try:
        query = """
            SELECT updated_at, session_id, user_id, status, role, experience_level, turn_count, max_questions
            FROM interview_sessions
        """
        params: tuple = ()
        if status:
            query += " WHERE status = ?"
            params = (status,)
        query += " ORDER BY updated_at DESC LIMIT ?"
        cursor = conn.cursor()
        cursor.execute(query, params + (limit,))
        lines = []
        for row in cursor.fetchall():
            ts, session_id, user_id, row_status, role, level, turns, max_questions = row
            lines.append(f"[{ts}] {session_id} user={user_id} {row_status} {role} ({level}) {turns}/{max_questions}")
        return lines
    finally:
        conn.close()


def tail_events(limit: int = 20, session_id: Optional[str] = None, db_path: Optional[str] = None) -> List[str]:
    return [
        f"[{evt['timestamp']}] {evt['session_id']} user={evt['user_id']} {evt['kind']} -> {evt['status']}"
        f" q={evt['question_number']} meta={evt['metadata']}"
        for evt in list_session_events(session_id, limit=limit, db_path=db_path)
    ]


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Inspect interview sessions")
    parser.add_argument("--db", help="SQLite file to read (defaults to DB_PATH)")
    parser.add_argument("--tail-sessions", type=int, help="Show the most recently updated sessions")
    parser.add_argument("--status", choices=["IN_PROGRESS", "COMPLETED", "ABANDONED"], help="Filter sessions by status")
    parser.add_argument("--tail-events", type=int, help="Show the latest lifecycle events")
    parser.add_argument("--session", help="Restrict events to one session id")
    args = parser.parse_args(argv)

    if args.tail_sessions:
        for line in tail_sessions(args.tail_sessions, args.status, db_path=args.db):
            print(line)
    if args.tail_events:
        for line in tail_events(args.tail_events, args.session, db_path=args.db):
            print(line)


if __name__ == "__main__":
    main()
