"""Daily summary model for caching generated work summaries."""

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from devlog.database import Base


class DailySummary(Base):
    """Generated work summary for one subject and one calendar day.

    Rows are never updated in place. Regeneration deletes the existing row
    and inserts a new one, so ``created_at`` always reflects the generation
    that produced the content.
    """

    __tablename__ = "daily_summaries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    guest_id: Mapped[str | None] = mapped_column(ForeignKey("guests.id"), nullable=True)
    summary_date: Mapped[date] = mapped_column("date", Date, nullable=False)

    summary: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    work_categories: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    project_todos: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    quality_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    quality_score_explanation: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    raw_text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Non-fatal validation output kept so a cache hit reproduces the original outcome
    validation_errors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    validation_warnings: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (guest_id IS NULL)", name="ck_daily_summaries_one_subject"
        ),
        Index("idx_daily_summaries_user_date", "user_id", "date", unique=True),
        Index("idx_daily_summaries_guest_date", "guest_id", "date", unique=True),
    )

    def __repr__(self) -> str:
        subject = self.user_id or self.guest_id
        return f"<DailySummary(id={self.id}, subject={subject}, date={self.summary_date})>"
