"""Repository contract consumed by the session lifecycle manager."""
from __future__ import annotations

from typing import List, Optional, Protocol

from interview_session.models import Session

from .events import SessionEventPayload


class SessionStore(Protocol):
    """Durable record of one session per id, transactional per session."""

    def create(self, session: Session, *, event: Optional[SessionEventPayload] = None) -> Session:
        """Insert a new session; raises ``ConflictError`` if the user already has a live one."""
        ...

    def get(self, session_id: str) -> Optional[Session]: ...

    def update(
        self,
        session: Session,
        *,
        expected_version: int,
        event: Optional[SessionEventPayload] = None,
    ) -> Session:
        """Replace the stored session if its version still equals ``expected_version``.

        Raises ``StaleSessionError`` otherwise. The returned copy carries the bumped version.
        """
        ...

    def find_active_by_user(self, user_id: str) -> Optional[Session]: ...

    def list_by_user(self, user_id: str, *, limit: int = 50) -> List[Session]: ...
