"""Tests for the summary cache."""

import json
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from conftest import make_payload
from devlog.exceptions import CacheWriteError
from devlog.models.summary import DailySummary
from devlog.schemas.summary import Subject, SubjectKind
from devlog.services.cache import SummaryCache
from devlog.services.parser import validate_summary_response

DAY = date(2026, 3, 14)


def outcome_for(subject, day=DAY, **overrides):
    return validate_summary_response(json.dumps(make_payload(**overrides)), subject, day)


def test_get_returns_none_on_miss(db_session, subject):
    cache = SummaryCache(db_session)

    assert cache.get(subject, DAY) is None
    assert cache.get_outcome(subject, DAY) is None
    assert cache.exists(subject, DAY) is False


def test_put_then_get(db_session, subject):
    cache = SummaryCache(db_session)
    outcome = outcome_for(subject)

    stored = cache.put(outcome)

    assert cache.exists(subject, DAY) is True
    assert cache.get(subject, DAY) == stored
    assert stored.summary == outcome.record.summary
    assert stored.work_categories == outcome.record.work_categories
    assert stored.project_todos == outcome.record.project_todos


def test_get_outcome_marks_cached(db_session, subject):
    cache = SummaryCache(db_session)
    cache.put(outcome_for(subject))

    cached = cache.get_outcome(subject, DAY)

    assert cached.cached is True
    assert cached.parse_success is True


def test_stored_errors_survive_round_trip(db_session, subject):
    cache = SummaryCache(db_session)
    outcome = outcome_for(subject, quality_score="n/a")
    assert outcome.errors

    cache.put(outcome)
    cached = cache.get_outcome(subject, DAY)

    assert cached.errors == outcome.errors
    assert cached.parse_success is False


def test_put_replaces_existing_record(db_session, subject):
    cache = SummaryCache(db_session)
    first = cache.put(outcome_for(subject, summary={"a": "first"}))

    second = cache.put(
        outcome_for(subject, summary={"b": "second"}, project_todos={})
    )

    rows = db_session.query(DailySummary).all()
    assert len(rows) == 1
    assert second.summary == {"b": "second"}
    assert second.project_todos == {}
    assert second.created_at >= first.created_at


def test_subjects_are_isolated(db_session, subject, guest):
    cache = SummaryCache(db_session)
    guest_subject = Subject(kind=SubjectKind.GUEST, id=guest.id)
    cache.put(outcome_for(subject))

    assert cache.get(guest_subject, DAY) is None

    cache.put(outcome_for(guest_subject, summary={"g": "guest work"}))

    assert cache.get(subject, DAY).summary != cache.get(guest_subject, DAY).summary
    row = db_session.query(DailySummary).filter(DailySummary.guest_id == guest.id).one()
    assert row.user_id is None


def test_existing_dates(db_session, subject):
    cache = SummaryCache(db_session)
    cache.put(outcome_for(subject, day=date(2026, 3, 10)))
    cache.put(outcome_for(subject, day=date(2026, 3, 12)))

    existing = cache.existing_dates(
        subject, [date(2026, 3, 10), date(2026, 3, 11), date(2026, 3, 12)]
    )

    assert existing == {date(2026, 3, 10), date(2026, 3, 12)}
    assert cache.existing_dates(subject, []) == set()


def test_write_failure_raises_and_rolls_back(db_session, subject):
    cache = SummaryCache(db_session)
    cache.put(outcome_for(subject, summary={"a": "kept"}))

    with patch.object(
        db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk full"))
    ):
        with pytest.raises(CacheWriteError):
            cache.put(outcome_for(subject, summary={"b": "lost"}))

    assert cache.get(subject, DAY).summary == {"a": "kept"}
