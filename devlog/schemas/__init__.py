"""Pydantic schemas for request/response validation."""

from devlog.schemas.summary import (
    WORK_CATEGORIES,
    CategoryAllocation,
    GenerateRangeRequest,
    GenerateSummaryRequest,
    ProjectText,
    ProjectTodos,
    RangeResult,
    Subject,
    SubjectKind,
    SummaryRecord,
    TodoItem,
    ValidationOutcome,
    WorkCategories,
)

__all__ = [
    "WORK_CATEGORIES",
    "CategoryAllocation",
    "GenerateRangeRequest",
    "GenerateSummaryRequest",
    "ProjectText",
    "ProjectTodos",
    "RangeResult",
    "Subject",
    "SubjectKind",
    "SummaryRecord",
    "TodoItem",
    "ValidationOutcome",
    "WorkCategories",
]
