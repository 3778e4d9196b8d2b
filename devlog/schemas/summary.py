"""Daily summary schemas."""

from datetime import date as date_type
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

WORK_CATEGORIES: tuple[str, ...] = (
    "planning",
    "frontend",
    "backend",
    "qa",
    "devops",
    "research",
    "other",
)

MAX_SUMMARY_CHARS = 500
MAX_EXPLANATION_CHARS = 300


class SubjectKind(str, Enum):
    """Kind of identity a summary belongs to."""

    USER = "user"
    GUEST = "guest"


class Subject(BaseModel):
    """Registered user or guest whose activity is summarized."""

    model_config = ConfigDict(frozen=True)

    kind: SubjectKind
    id: str = Field(min_length=1)

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.id}"


class ProjectText(BaseModel):
    """User-authored text for one project on one day."""

    project_name: str
    user_text: str


class CategoryAllocation(BaseModel):
    """Time spent in one work category."""

    minutes: int = Field(default=0, ge=0)
    percentage: float = Field(default=0.0, ge=0, le=100)
    description: str | None = None


class WorkCategories(BaseModel):
    """Allocation across the seven fixed work categories."""

    planning: CategoryAllocation = Field(default_factory=CategoryAllocation)
    frontend: CategoryAllocation = Field(default_factory=CategoryAllocation)
    backend: CategoryAllocation = Field(default_factory=CategoryAllocation)
    qa: CategoryAllocation = Field(default_factory=CategoryAllocation)
    devops: CategoryAllocation = Field(default_factory=CategoryAllocation)
    research: CategoryAllocation = Field(default_factory=CategoryAllocation)
    other: CategoryAllocation = Field(default_factory=CategoryAllocation)

    def total_percentage(self) -> float:
        return sum(getattr(self, name).percentage for name in WORK_CATEGORIES)


class TodoItem(BaseModel):
    """A single completed or follow-up work item."""

    text: str = Field(min_length=1)
    category: str = "other"

    @model_validator(mode="after")
    def _known_category(self) -> "TodoItem":
        if self.category not in WORK_CATEGORIES:
            self.category = "other"
        return self


class ProjectTodos(BaseModel):
    """To-do items for one project."""

    project_id: str | None = None
    project_name: str
    todos: list[TodoItem] = Field(default_factory=list)


class SummaryRecord(BaseModel):
    """Structured daily work summary for a subject."""

    subject: Subject
    date: date_type
    summary: dict[str, str] = Field(default_factory=dict)
    work_categories: WorkCategories = Field(default_factory=WorkCategories)
    project_todos: dict[str, ProjectTodos] = Field(default_factory=dict)
    quality_score: float = Field(default=0.0, ge=0, le=1)
    quality_score_explanation: str = Field(default="", max_length=MAX_EXPLANATION_CHARS)
    raw_text: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ValidationOutcome(BaseModel):
    """Result of turning a model response into a SummaryRecord.

    Always carries a record. ``errors`` lists field problems that were
    repaired or dropped; ``warnings`` lists notices that do not affect
    ``parse_success``. ``decoded`` is False only when the response could
    not be decoded at all.
    """

    record: SummaryRecord
    parse_success: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    decoded: bool = True
    cached: bool = False


class GenerateSummaryRequest(BaseModel):
    """Request body for generating one day's summary."""

    subject_id: str
    subject_kind: SubjectKind = SubjectKind.USER
    date: date_type
    project_texts: list[ProjectText] | None = None
    force_regenerate: bool = False


class GenerateRangeRequest(BaseModel):
    """Request body for generating summaries across a date range."""

    subject_id: str
    subject_kind: SubjectKind = SubjectKind.USER
    start_date: date_type
    end_date: date_type
    force_regenerate: bool = False


class RangeResult(BaseModel):
    """Partition of a date range after batch generation."""

    generated_dates: list[date_type] = Field(default_factory=list)
    skipped_dates: list[date_type] = Field(default_factory=list)
    failed_dates: list[date_type] = Field(default_factory=list)

    @computed_field
    @property
    def total_generated(self) -> int:
        return len(self.generated_dates)
