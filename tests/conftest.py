"""Pytest configuration and fixtures."""

import asyncio
import json
import os
from collections.abc import Callable, Generator
from datetime import date, datetime, time, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"

from devlog import models  # noqa: E402,F401
from devlog.database import Base, get_db  # noqa: E402
from devlog.main import app  # noqa: E402
from devlog.models.guest import Guest  # noqa: E402
from devlog.models.session import CodingSession, SessionContent  # noqa: E402
from devlog.models.user import User  # noqa: E402
from devlog.schemas.summary import Subject, SubjectKind  # noqa: E402
from devlog.services.cache import SummaryCache  # noqa: E402
from devlog.services.llm import get_generation_client  # noqa: E402
from devlog.services.locks import KeyedLock  # noqa: E402
from devlog.services.sessions import SessionStore  # noqa: E402
from devlog.services.summary import SummaryService  # noqa: E402


def make_payload(**overrides: Any) -> dict[str, Any]:
    """A well-formed model response payload."""
    payload = {
        "summary": {
            "billing-api": "Implemented invoice export and fixed tax rounding.",
        },
        "work_categories": {
            "planning": {"minutes": 15, "percentage": 10, "description": "Export flow"},
            "frontend": {"minutes": 0, "percentage": 0, "description": None},
            "backend": {"minutes": 90, "percentage": 60, "description": "Invoice export"},
            "qa": {"minutes": 30, "percentage": 20, "description": "Rounding tests"},
            "devops": {"minutes": 0, "percentage": 0, "description": None},
            "research": {"minutes": 15, "percentage": 10, "description": "CSV libraries"},
            "other": {"minutes": 0, "percentage": 0, "description": None},
        },
        "project_todos": {
            "billing-api": {
                "project_id": None,
                "project_name": "billing-api",
                "todos": [
                    {"text": "Implement invoice CSV export", "category": "backend"},
                    {"text": "Add tax rounding tests", "category": "qa"},
                ],
            }
        },
        "quality_score": 0.8,
        "quality_score_explanation": "Clear goals, few acceptance criteria.",
    }
    payload.update(overrides)
    return payload


class StubGenerationClient:
    """Generation client double that counts calls."""

    model = "stub-model"

    def __init__(
        self,
        response: str | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
        fail_on_calls: set[int] | None = None,
    ) -> None:
        self.response = response if response is not None else json.dumps(make_payload())
        self.delay = delay
        self.error = error
        self.fail_on_calls = fail_on_calls or set()
        self.calls = 0
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None and (not self.fail_on_calls or self.calls in self.fail_on_calls):
            raise self.error
        return self.response

    async def health_check(self) -> bool:
        return True


@pytest.fixture
def engine():
    """Create an in-memory test database engine."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    """Create a new database session for a test."""
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def stub_client() -> StubGenerationClient:
    return StubGenerationClient()


@pytest.fixture
def user(db_session: Session) -> User:
    user = User(username="dev-user", full_name="Dev User")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def guest(db_session: Session) -> Guest:
    guest = Guest(display_name="Visitor")
    db_session.add(guest)
    db_session.commit()
    return guest


@pytest.fixture
def subject(user: User) -> Subject:
    return Subject(kind=SubjectKind.USER, id=user.id)


@pytest.fixture
def add_session(db_session: Session) -> Callable[..., CodingSession]:
    """Factory that stores a coding session with its messages."""

    def _add_session(
        subject: Subject,
        session_date: date,
        project_name: str | None = "billing-api",
        messages: list[dict[str, Any]] | None = None,
        start: time = time(9, 0),
    ) -> CodingSession:
        if messages is None:
            messages = [
                {"type": "user", "content": "Add a CSV export endpoint for invoices"},
                {"type": "assistant", "content": "Sure, here is the endpoint."},
            ]
        session = CodingSession(
            user_id=subject.id if subject.kind == SubjectKind.USER else None,
            guest_id=subject.id if subject.kind == SubjectKind.GUEST else None,
            project_name=project_name,
            session_date=session_date,
            start_timestamp=datetime.combine(session_date, start, tzinfo=timezone.utc),
        )
        session.content = SessionContent(
            messages={"messages": messages}, message_count=len(messages)
        )
        db_session.add(session)
        db_session.commit()
        return session

    return _add_session


@pytest.fixture
def make_service(db_session: Session) -> Callable[..., SummaryService]:
    """Factory for a SummaryService backed by the test database."""

    def _make_service(client: StubGenerationClient, **kwargs: Any) -> SummaryService:
        return SummaryService(
            cache=SummaryCache(db_session),
            sessions=SessionStore(db_session),
            client=client,
            locks=KeyedLock(),
            **kwargs,
        )

    return _make_service


@pytest.fixture
def client(
    db_session: Session, stub_client: StubGenerationClient
) -> Generator[TestClient, None, None]:
    """Create a test client with database and model overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generation_client] = lambda: stub_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
