"""Daily work-summary generation service.

Generates structured summaries of a subject's AI-coding activity for one
calendar day and caches them so the model runs at most once per
(subject, date) unless regeneration is forced.
"""

import asyncio
import logging
from collections.abc import Sequence
from datetime import date, timedelta
from enum import Enum

from devlog.config import get_app_config
from devlog.exceptions import CacheWriteError, GenerationError
from devlog.schemas.summary import (
    ProjectText,
    RangeResult,
    Subject,
    SummaryRecord,
    ValidationOutcome,
)
from devlog.services.cache import SummaryCache
from devlog.services.extraction import extract_project_texts, get_prompt_stats
from devlog.services.llm import GenerationClient
from devlog.services.locks import KeyedLock, get_summary_locks
from devlog.services.parser import validate_summary_response
from devlog.services.prompt import build_summary_prompt
from devlog.services.sessions import SessionStore

logger = logging.getLogger(__name__)

NO_ACTIVITY_EXPLANATION = "No AI coding activity was recorded on this day."


class GenerationStatus(str, Enum):
    """How a get-or-generate call was resolved."""

    CACHED = "cached"
    GENERATED = "generated"
    NO_ACTIVITY = "no_activity"
    NOT_STORED = "not_stored"


def no_activity_outcome(subject: Subject, summary_date: date) -> ValidationOutcome:
    """Fixed outcome for a day without any summarizable messages."""
    record = SummaryRecord(
        subject=subject,
        date=summary_date,
        quality_score_explanation=NO_ACTIVITY_EXPLANATION,
    )
    return ValidationOutcome(record=record, parse_success=True)


class SummaryService:
    """Service for generating and caching daily work summaries."""

    def __init__(
        self,
        cache: SummaryCache,
        sessions: SessionStore,
        client: GenerationClient,
        locks: KeyedLock | None = None,
        max_prompt_chars: int | None = None,
        generation_timeout: float | None = None,
        max_range_days: int | None = None,
    ) -> None:
        config = get_app_config().summary
        self.cache = cache
        self.sessions = sessions
        self.client = client
        self.locks = locks or get_summary_locks()
        self.max_prompt_chars = (
            max_prompt_chars if max_prompt_chars is not None else config["max_prompt_chars"]
        )
        self.generation_timeout = (
            generation_timeout
            if generation_timeout is not None
            else config["generation_timeout_seconds"]
        )
        self.max_range_days = (
            max_range_days if max_range_days is not None else config["max_range_days"]
        )

    def extract(self, subject: Subject, summary_date: date) -> list[ProjectText]:
        """Collect a subject's user messages for a day, grouped by project."""
        sessions = self.sessions.list_day_sessions(subject, summary_date)
        if not sessions:
            return []
        messages = self.sessions.list_messages([s.id for s in sessions])
        return extract_project_texts(sessions, messages)

    async def get_or_generate(
        self,
        subject: Subject,
        summary_date: date,
        project_texts: Sequence[ProjectText] | None = None,
        force_regenerate: bool = False,
    ) -> ValidationOutcome:
        """Return the cached summary for a day, generating it on a miss.

        Args:
            subject: User or guest the summary belongs to
            summary_date: Calendar day to summarize
            project_texts: Pre-extracted texts; skips reading stored sessions
            force_regenerate: Ignore and replace any cached summary

        Raises:
            GenerationError: if the model call fails or times out
        """
        outcome, _ = await self._get_or_generate(
            subject, summary_date, project_texts, force_regenerate
        )
        return outcome

    async def _get_or_generate(
        self,
        subject: Subject,
        summary_date: date,
        project_texts: Sequence[ProjectText] | None,
        force_regenerate: bool,
    ) -> tuple[ValidationOutcome, GenerationStatus]:
        if not force_regenerate:
            cached = self.cache.get_outcome(subject, summary_date)
            if cached is not None:
                return cached, GenerationStatus.CACHED

        async with self.locks.hold((subject.key, summary_date)):
            # Another request may have generated this day while we waited
            if not force_regenerate:
                cached = self.cache.get_outcome(subject, summary_date)
                if cached is not None:
                    logger.info(f"Summary for {subject.key} on {summary_date} generated concurrently")
                    return cached, GenerationStatus.CACHED

            return await self._generate(subject, summary_date, project_texts)

    async def _generate(
        self,
        subject: Subject,
        summary_date: date,
        project_texts: Sequence[ProjectText] | None,
    ) -> tuple[ValidationOutcome, GenerationStatus]:
        if project_texts is None:
            project_texts = self.extract(subject, summary_date)
        if not project_texts:
            logger.info(f"No activity for {subject.key} on {summary_date}, skipping generation")
            return no_activity_outcome(subject, summary_date), GenerationStatus.NO_ACTIVITY

        prompt = build_summary_prompt(summary_date, project_texts, self.max_prompt_chars)
        stats = get_prompt_stats(prompt, project_texts)
        logger.info(
            f"Generating summary for {subject.key} on {summary_date}: "
            f"{stats.project_count} projects, {stats.total_messages} prompts, "
            f"{stats.prompt_length} prompt chars"
        )

        raw_text = await self._call_model(prompt)
        outcome = validate_summary_response(raw_text, subject, summary_date)

        if not outcome.decoded:
            logger.error(f"Discarding undecodable summary for {subject.key} on {summary_date}")
            return outcome, GenerationStatus.NOT_STORED

        try:
            stored = self.cache.put(outcome)
        except CacheWriteError as e:
            return (
                outcome.model_copy(
                    update={"warnings": [*outcome.warnings, f"summary was not saved: {e}"]}
                ),
                GenerationStatus.NOT_STORED,
            )

        return outcome.model_copy(update={"record": stored}), GenerationStatus.GENERATED

    async def _call_model(self, prompt: str) -> str:
        try:
            return await asyncio.wait_for(
                self.client.generate(prompt), timeout=self.generation_timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Generation timed out after {self.generation_timeout}s")
            raise GenerationError(
                f"Generation timed out after {self.generation_timeout} seconds"
            ) from e

    async def generate_range(
        self,
        subject: Subject,
        start_date: date,
        end_date: date,
        force_regenerate: bool = False,
    ) -> RangeResult:
        """Generate summaries for every day in an inclusive date range.

        Days run one after another so a single batch never has more than
        one paid generation in flight. Days that already have a summary are
        skipped unless forcing; a failing day is recorded and the batch
        continues.

        Raises:
            ValueError: if the range is inverted or longer than allowed
        """
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        day_count = (end_date - start_date).days + 1
        if day_count > self.max_range_days:
            raise ValueError(f"Date range may span at most {self.max_range_days} days")

        dates = [start_date + timedelta(days=offset) for offset in range(day_count)]
        existing = set() if force_regenerate else self.cache.existing_dates(subject, dates)
        result = RangeResult()

        for summary_date in dates:
            if summary_date in existing:
                result.skipped_dates.append(summary_date)
                continue

            try:
                _, status = await self._get_or_generate(
                    subject, summary_date, None, force_regenerate
                )
            except Exception as e:
                logger.error(f"Failed to generate summary for {subject.key} on {summary_date}: {e}")
                result.failed_dates.append(summary_date)
                result.skipped_dates.append(summary_date)
                continue

            if status == GenerationStatus.GENERATED:
                result.generated_dates.append(summary_date)
            elif status == GenerationStatus.NOT_STORED:
                result.failed_dates.append(summary_date)
                result.skipped_dates.append(summary_date)
            else:
                result.skipped_dates.append(summary_date)

        logger.info(
            f"Range {start_date}..{end_date} for {subject.key}: "
            f"{len(result.generated_dates)} generated, {len(result.skipped_dates)} skipped"
        )
        return result
