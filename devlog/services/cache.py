"""Persistent cache of generated daily summaries."""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from devlog.exceptions import CacheWriteError
from devlog.models.summary import DailySummary
from devlog.schemas.summary import (
    ProjectTodos,
    Subject,
    SubjectKind,
    SummaryRecord,
    ValidationOutcome,
    WorkCategories,
)

logger = logging.getLogger(__name__)


class SummaryCache:
    """Store mapping (subject, date) to at most one SummaryRecord."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _subject_column(self, subject: Subject):
        if subject.kind == SubjectKind.USER:
            return DailySummary.user_id
        return DailySummary.guest_id

    def _query(self, subject: Subject, summary_date: date):
        return self.db.query(DailySummary).filter(
            self._subject_column(subject) == subject.id,
            DailySummary.summary_date == summary_date,
        )

    def _to_record(self, row: DailySummary, subject: Subject) -> SummaryRecord:
        return SummaryRecord(
            subject=subject,
            date=row.summary_date,
            summary=row.summary or {},
            work_categories=WorkCategories.model_validate(row.work_categories or {}),
            project_todos={
                key: ProjectTodos.model_validate(value)
                for key, value in (row.project_todos or {}).items()
            },
            quality_score=row.quality_score,
            quality_score_explanation=row.quality_score_explanation,
            raw_text=row.raw_text,
            created_at=row.created_at,
        )

    def get(self, subject: Subject, summary_date: date) -> SummaryRecord | None:
        """Return the cached record, or None on a miss."""
        row = self._query(subject, summary_date).first()
        if row is None:
            return None
        return self._to_record(row, subject)

    def get_outcome(self, subject: Subject, summary_date: date) -> ValidationOutcome | None:
        """Return the cached record with its stored validation output."""
        row = self._query(subject, summary_date).first()
        if row is None:
            return None
        record = self._to_record(row, subject)
        errors = list(row.validation_errors or [])
        return ValidationOutcome(
            record=record,
            parse_success=bool(record.summary) and not errors,
            errors=errors,
            warnings=list(row.validation_warnings or []),
            cached=True,
        )

    def exists(self, subject: Subject, summary_date: date) -> bool:
        return self.db.query(self._query(subject, summary_date).exists()).scalar()

    def existing_dates(self, subject: Subject, dates: Iterable[date]) -> set[date]:
        """Return which of ``dates`` already have a cached record."""
        dates = list(dates)
        if not dates:
            return set()
        rows = (
            self.db.query(DailySummary.summary_date)
            .filter(
                self._subject_column(subject) == subject.id,
                DailySummary.summary_date.in_(dates),
            )
            .all()
        )
        return {row[0] for row in rows}

    def put(self, outcome: ValidationOutcome) -> SummaryRecord:
        """Replace the cached record for the outcome's subject and date.

        Deletes any existing row and inserts a new one with a fresh
        ``created_at``; fields from a previous generation are never merged.

        Raises:
            CacheWriteError: if the store rejects the delete or insert.
        """
        record = outcome.record
        subject = record.subject
        try:
            deleted = self._query(subject, record.date).delete(synchronize_session=False)
            row = DailySummary(
                user_id=subject.id if subject.kind == SubjectKind.USER else None,
                guest_id=subject.id if subject.kind == SubjectKind.GUEST else None,
                summary_date=record.date,
                summary=record.summary,
                work_categories=record.work_categories.model_dump(mode="json"),
                project_todos={
                    key: value.model_dump(mode="json")
                    for key, value in record.project_todos.items()
                },
                quality_score=record.quality_score,
                quality_score_explanation=record.quality_score_explanation,
                raw_text=record.raw_text,
                validation_errors=list(outcome.errors),
                validation_warnings=list(outcome.warnings),
                created_at=datetime.now(timezone.utc),
            )
            self.db.add(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store summary for {subject.key} on {record.date}: {e}")
            raise CacheWriteError(f"Failed to store summary: {e}") from e

        self.db.refresh(row)
        if deleted:
            logger.info(f"Replaced summary for {subject.key} on {record.date} (ID: {row.id})")
        else:
            logger.info(f"Saved summary for {subject.key} on {record.date} (ID: {row.id})")
        return self._to_record(row, subject)
