"""Read access to stored coding sessions."""

from collections.abc import Sequence
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from devlog.models.session import CodingSession, SessionContent
from devlog.schemas.summary import Subject, SubjectKind


class SessionStore:
    """Queries the session tables for the summary pipeline."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def list_day_sessions(self, subject: Subject, summary_date: date) -> list[CodingSession]:
        """Get a subject's sessions for one day, oldest first."""
        if subject.kind == SubjectKind.USER:
            subject_filter = CodingSession.user_id == subject.id
        else:
            subject_filter = CodingSession.guest_id == subject.id
        return (
            self.db.query(CodingSession)
            .filter(subject_filter, CodingSession.session_date == summary_date)
            .order_by(CodingSession.start_timestamp.asc())
            .all()
        )

    def list_messages(self, session_ids: Sequence[str]) -> dict[str, Any]:
        """Get stored message collections keyed by session id."""
        if not session_ids:
            return {}
        contents = (
            self.db.query(SessionContent)
            .filter(SessionContent.session_id.in_(list(session_ids)))
            .all()
        )
        return {content.session_id: content.messages for content in contents}
