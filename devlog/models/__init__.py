"""SQLAlchemy ORM models."""

from devlog.models.guest import Guest
from devlog.models.session import CodingSession, SessionContent
from devlog.models.summary import DailySummary
from devlog.models.user import User

__all__ = [
    "CodingSession",
    "DailySummary",
    "Guest",
    "SessionContent",
    "User",
]
