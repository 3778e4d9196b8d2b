"""Daily summary API endpoints."""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from devlog.database import get_db
from devlog.exceptions import GenerationError
from devlog.models.guest import Guest as GuestModel
from devlog.models.user import User as UserModel
from devlog.schemas.summary import (
    GenerateRangeRequest,
    GenerateSummaryRequest,
    RangeResult,
    Subject,
    SubjectKind,
    ValidationOutcome,
)
from devlog.services.cache import SummaryCache
from devlog.services.llm import GenerationClient, get_generation_client
from devlog.services.locks import get_summary_locks
from devlog.services.sessions import SessionStore
from devlog.services.summary import SummaryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/summaries", tags=["summaries"])


def get_summary_service(
    db: Session = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
) -> SummaryService:
    """Build a SummaryService bound to the request's database session."""
    return SummaryService(
        cache=SummaryCache(db),
        sessions=SessionStore(db),
        client=client,
        locks=get_summary_locks(),
    )


def _resolve_subject(db: Session, subject_id: str, subject_kind: SubjectKind) -> Subject:
    """Build a Subject, raising 404 if the user or guest does not exist."""
    model = UserModel if subject_kind == SubjectKind.USER else GuestModel
    if db.query(model).filter(model.id == subject_id).first() is None:
        raise HTTPException(status_code=404, detail=f"{subject_kind.value.capitalize()} not found")
    return Subject(kind=subject_kind, id=subject_id)


@router.post("/generate", response_model=ValidationOutcome)
async def generate_summary(
    request: GenerateSummaryRequest,
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
) -> ValidationOutcome:
    """Get the summary for a day, generating it if it is not cached.

    When ``project_texts`` is supplied the stored sessions are not read,
    which allows previewing a summary for data that has not been saved.
    """
    subject = _resolve_subject(db, request.subject_id, request.subject_kind)
    try:
        return await service.get_or_generate(
            subject,
            request.date,
            project_texts=request.project_texts,
            force_regenerate=request.force_regenerate,
        )
    except GenerationError as e:
        logger.error(f"Summary generation failed for {subject.key} on {request.date}: {e}")
        raise HTTPException(status_code=502, detail=f"Summary generation failed: {e}")


@router.post("/generate-range", response_model=RangeResult)
async def generate_summary_range(
    request: GenerateRangeRequest,
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
) -> RangeResult:
    """Generate missing summaries for every day in an inclusive range."""
    subject = _resolve_subject(db, request.subject_id, request.subject_kind)
    try:
        return await service.generate_range(
            subject,
            request.start_date,
            request.end_date,
            force_regenerate=request.force_regenerate,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{summary_date}", response_model=ValidationOutcome)
def get_summary(
    summary_date: date,
    subject_id: str = Query(..., description="User or guest ID"),
    subject_kind: SubjectKind = Query(SubjectKind.USER, description="Kind of subject"),
    db: Session = Depends(get_db),
) -> ValidationOutcome:
    """Get the cached summary for a day without generating one."""
    subject = _resolve_subject(db, subject_id, subject_kind)
    outcome = SummaryCache(db).get_outcome(subject, summary_date)
    if outcome is None:
        raise HTTPException(status_code=404, detail="Summary not found")
    return outcome
