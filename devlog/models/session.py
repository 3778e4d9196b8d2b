"""Coding session models.

A ``CodingSession`` is one uploaded AI-coding-tool session, scoped to the
calendar day it started on. Its raw message list lives in ``SessionContent``.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devlog.database import Base


class CodingSession(Base):
    """Metadata for a single coding-tool session."""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    guest_id: Mapped[str | None] = mapped_column(ForeignKey("guests.id"), nullable=True)
    project_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tool_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    session_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    end_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    prompt_count: Mapped[int] = mapped_column(Integer, default=0)

    content: Mapped["SessionContent | None"] = relationship(
        back_populates="session", cascade="all, delete-orphan", uselist=False
    )

    __table_args__ = (
        Index("idx_sessions_user_date", "user_id", "session_date"),
        Index("idx_sessions_guest_date", "guest_id", "session_date"),
    )

    def __repr__(self) -> str:
        return f"<CodingSession(id={self.id}, project='{self.project_name}', date={self.session_date})>"


class SessionContent(Base):
    """Stored message collection for a session."""

    __tablename__ = "session_contents"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    # {"messages": [{"type": "user", "content": "..."}, ...]}
    messages: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    message_count: Mapped[int] = mapped_column(Integer, default=0)

    session: Mapped[CodingSession] = relationship(back_populates="content")
