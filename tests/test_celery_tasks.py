"""Tests for Celery tasks."""

from datetime import date, datetime, time, timedelta, timezone
from unittest.mock import patch

from conftest import StubGenerationClient
from devlog.schemas.summary import Subject, SubjectKind
from devlog.tasks import summary_tasks
from devlog.tasks.summary_tasks import subjects_with_sessions

DAY = date(2026, 3, 14)


class TestSubjectsWithSessions:
    """Tests for finding subjects to summarize."""

    def test_finds_users_and_guests(self, db_session, user, guest, add_session):
        """Test that both users and guests with sessions are returned once."""
        user_subject = Subject(kind=SubjectKind.USER, id=user.id)
        guest_subject = Subject(kind=SubjectKind.GUEST, id=guest.id)
        add_session(user_subject, DAY)
        add_session(user_subject, DAY, project_name="web-app", start=time(14, 0))
        add_session(guest_subject, DAY)

        subjects = subjects_with_sessions(db_session, DAY)

        assert len(subjects) == 2
        assert set(subjects) == {user_subject, guest_subject}

    def test_ignores_other_days(self, db_session, subject, add_session):
        """Test that sessions on other days are not considered."""
        add_session(subject, date(2026, 3, 13))

        assert subjects_with_sessions(db_session, DAY) == []


class TestRangeTask:
    """Tests for the range generation task."""

    def test_range_task_returns_json_result(self, db_session, subject, add_session, make_service):
        """Test that the task runs the service and serializes the partition."""
        add_session(subject, DAY)
        client = StubGenerationClient()

        with (
            patch.object(summary_tasks, "SessionLocal", return_value=db_session),
            patch.object(summary_tasks, "_build_service", return_value=make_service(client)),
            patch.object(db_session, "close"),
        ):
            result = summary_tasks.generate_summary_range_for_subject(
                "user", subject.id, "2026-03-13", "2026-03-14"
            )

        assert result["generated_dates"] == ["2026-03-14"]
        assert result["skipped_dates"] == ["2026-03-13"]
        assert result["total_generated"] == 1
        assert client.calls == 1


class TestNightlyTask:
    """Tests for the previous-day summary task."""

    def _run(self, db_session, service):
        with (
            patch.object(summary_tasks, "SessionLocal", return_value=db_session),
            patch.object(summary_tasks, "_build_service", return_value=service),
            patch.object(db_session, "close"),
        ):
            return summary_tasks.generate_previous_day_summaries()

    def test_counts_only_stored_summaries(
        self, db_session, user, guest, add_session, make_service
    ):
        """Test that days without user text are not counted as generated."""
        yesterday = datetime.now(timezone.utc).date() - timedelta(days=1)
        add_session(Subject(kind=SubjectKind.USER, id=user.id), yesterday)
        add_session(
            Subject(kind=SubjectKind.GUEST, id=guest.id),
            yesterday,
            messages=[{"type": "assistant", "content": "hello"}],
        )
        client = StubGenerationClient()

        result = self._run(db_session, make_service(client))

        assert result["date"] == yesterday.isoformat()
        assert result["generated"] == 1
        assert result["failed"] == 0
        assert client.calls == 1

    def test_undecodable_response_counts_as_failed(
        self, db_session, subject, add_session, make_service
    ):
        """Test that a summary that could not be stored is reported as failed."""
        yesterday = datetime.now(timezone.utc).date() - timedelta(days=1)
        add_session(subject, yesterday)
        client = StubGenerationClient(response="Sorry, I cannot help with that.")

        result = self._run(db_session, make_service(client))

        assert result["generated"] == 0
        assert result["failed"] == 1


class TestCeleryTaskImports:
    """Test that Celery tasks can be imported."""

    def test_import_summary_tasks(self):
        """Test summary task imports."""
        from devlog.tasks.summary_tasks import (
            generate_previous_day_summaries,
            generate_summary_range_for_subject,
        )

        assert generate_previous_day_summaries is not None
        assert generate_summary_range_for_subject is not None

    def test_celery_app_configuration(self):
        """Test Celery app is configured correctly."""
        from devlog.celery_app import app

        assert app.conf.task_serializer == "json"
        assert app.conf.result_serializer == "json"
        assert "generate-previous-day-summaries" in app.conf.beat_schedule
