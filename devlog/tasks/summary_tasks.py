"""Celery tasks for generating daily work summaries."""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone

from devlog.celery_app import app as celery_app
from devlog.database import SessionLocal
from devlog.models.session import CodingSession
from devlog.schemas.summary import Subject, SubjectKind
from devlog.services.cache import SummaryCache
from devlog.services.llm import GenerationClient
from devlog.services.locks import KeyedLock
from devlog.services.sessions import SessionStore
from devlog.services.summary import SummaryService

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run an async coroutine in a sync context."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _build_service(db) -> SummaryService:
    # Each task runs on its own event loop, so it gets its own lock map.
    # Keys are not shared with the API process or other workers; a concurrent
    # request for the same day can still call the model, and the unique
    # (subject, date) index keeps a single row.
    return SummaryService(
        cache=SummaryCache(db),
        sessions=SessionStore(db),
        client=GenerationClient(),
        locks=KeyedLock(),
    )


def subjects_with_sessions(db, summary_date: date) -> list[Subject]:
    """Find every user and guest with at least one session on a day."""
    rows = (
        db.query(CodingSession.user_id, CodingSession.guest_id)
        .filter(CodingSession.session_date == summary_date)
        .distinct()
        .all()
    )
    subjects = []
    for user_id, guest_id in rows:
        if user_id:
            subjects.append(Subject(kind=SubjectKind.USER, id=user_id))
        elif guest_id:
            subjects.append(Subject(kind=SubjectKind.GUEST, id=guest_id))
    return sorted(set(subjects), key=lambda s: s.key)


@celery_app.task(name="summary_tasks.generate_previous_day_summaries")
def generate_previous_day_summaries() -> dict:
    """Generate yesterday's summary for every subject with activity.

    Subjects are processed one at a time; a failure for one subject is
    logged and does not stop the others.
    """
    summary_date = datetime.now(timezone.utc).date() - timedelta(days=1)
    logger.info(f"Starting summary generation for {summary_date}")
    db = SessionLocal()
    generated = 0
    failed = 0
    try:
        service = _build_service(db)
        subjects = subjects_with_sessions(db, summary_date)
        logger.info(f"Found {len(subjects)} subjects with sessions on {summary_date}")

        for subject in subjects:
            try:
                result = run_async(service.generate_range(subject, summary_date, summary_date))
                generated += result.total_generated
                failed += len(result.failed_dates)
            except Exception as e:
                logger.error(f"Failed to generate summary for {subject.key}: {e}")
                failed += 1
                continue

        logger.info(f"Completed summary generation for {summary_date}")
        return {"date": summary_date.isoformat(), "generated": generated, "failed": failed}
    finally:
        db.close()


@celery_app.task(name="summary_tasks.generate_summary_range_for_subject")
def generate_summary_range_for_subject(
    subject_kind: str,
    subject_id: str,
    start_date: str,
    end_date: str,
    force_regenerate: bool = False,
) -> dict:
    """Generate summaries for one subject across an inclusive date range.

    Args:
        subject_kind: "user" or "guest"
        subject_id: ID of the user or guest
        start_date: First day, YYYY-MM-DD
        end_date: Last day, YYYY-MM-DD
        force_regenerate: Replace existing summaries
    """
    subject = Subject(kind=SubjectKind(subject_kind), id=subject_id)
    db = SessionLocal()
    try:
        service = _build_service(db)
        result = run_async(
            service.generate_range(
                subject,
                date.fromisoformat(start_date),
                date.fromisoformat(end_date),
                force_regenerate=force_regenerate,
            )
        )
        return result.model_dump(mode="json")
    finally:
        db.close()
