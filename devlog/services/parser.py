"""Validation and normalization of model output into SummaryRecords.

The model is asked for a fixed JSON shape but routinely drifts from it:
fenced code blocks, a single summary string instead of a per-project map,
to-do lists emitted as bare string arrays, 0-100 quality scores. Every field
is checked independently so one bad field never discards the rest; problems
are collected as error strings on the returned ValidationOutcome.

Responses in the retired markdown checklist format are still accepted
through ``parse_legacy_markdown``.
"""

import json
import logging
import math
import re
from datetime import date
from typing import Any

from devlog.exceptions import DecodeError
from devlog.schemas.summary import (
    MAX_EXPLANATION_CHARS,
    MAX_SUMMARY_CHARS,
    WORK_CATEGORIES,
    CategoryAllocation,
    ProjectTodos,
    Subject,
    SummaryRecord,
    TodoItem,
    ValidationOutcome,
    WorkCategories,
)

logger = logging.getLogger(__name__)

EXPECTED_FIELDS = (
    "summary",
    "work_categories",
    "project_todos",
    "quality_score",
    "quality_score_explanation",
)
PERCENTAGE_TOLERANCE = 1.0
LEGACY_SUMMARY_KEY = "daily"

_FENCE_RE = re.compile(r"```[a-zA-Z]*\s*\n?(.*?)\n?\s*```", re.DOTALL)
_LEGACY_HEADING_RE = re.compile(r"^#{1,3}\s", re.MULTILINE)
_LEGACY_SUMMARY_RE = re.compile(
    r"^##\s+[^\n]*summary[^\n]*\n(.*?)(?=^##\s|\Z)", re.DOTALL | re.MULTILINE | re.IGNORECASE
)
_LEGACY_PROJECT_RE = re.compile(
    r"^###\s+Project:\s*([^\n]+)\n(.*?)(?=^###\s+Project:|^##\s|\Z)",
    re.DOTALL | re.MULTILINE | re.IGNORECASE,
)
_LEGACY_TASK_RE = re.compile(r"^\s*[-*]\s+\[[ xX]\]\s+(.+?)\s*$", re.MULTILINE)
_LEGACY_TASK_META_RE = re.compile(r"^(.+?)\s*\([^)]*\)$")


def extract_payload(raw_text: str) -> str:
    """Strip an optional fenced code block around the response."""
    text = raw_text.strip()
    if text.startswith("{"):
        return text
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def is_legacy_markdown(payload: str) -> bool:
    """Detect the retired markdown checklist format."""
    return not payload.startswith("{") and bool(_LEGACY_HEADING_RE.match(payload))


def decode_payload(payload: str) -> dict[str, Any]:
    """Decode the payload as a JSON object.

    Falls back to the span between the first ``{`` and the last ``}`` when
    the model wrapped the object in prose.

    Raises:
        DecodeError: if no JSON object can be decoded.
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        start, end = payload.find("{"), payload.rfind("}")
        if start == -1 or end <= start:
            raise DecodeError(f"Response is not valid JSON: {e}") from e
        try:
            data = json.loads(payload[start : end + 1])
        except json.JSONDecodeError as inner:
            raise DecodeError(f"Response is not valid JSON: {inner}") from inner

    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got {_type_name(data)}")
    return data


def _type_name(value: Any) -> str:
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if value is None:
        return "null"
    return type(value).__name__


def _as_number(value: Any, field: str, warnings: list[str]) -> float | None:
    """Coerce a JSON value to a finite float, or None if it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            return None
        warnings.append(f"{field}: numeric value given as string")
    else:
        return None
    return number if math.isfinite(number) else None


def _slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "unknown"


def empty_record(subject: Subject, summary_date: date, raw_text: str = "") -> SummaryRecord:
    """Default record used when nothing usable could be decoded."""
    return SummaryRecord(subject=subject, date=summary_date, raw_text=raw_text)


def _validate_summary(value: Any, errors: list[str]) -> dict[str, str]:
    if not isinstance(value, dict):
        errors.append(f"summary: expected an object keyed by project, got {_type_name(value)}")
        return {}

    summary: dict[str, str] = {}
    for key, text in value.items():
        if not isinstance(text, str):
            errors.append(f"summary['{key}']: expected a string, got {_type_name(text)}")
            continue
        text = text.strip()
        if text:
            summary[str(key)] = text[:MAX_SUMMARY_CHARS]
    return summary


def _validate_category(
    name: str, value: Any, errors: list[str], warnings: list[str]
) -> CategoryAllocation:
    if value is None:
        return CategoryAllocation()
    if not isinstance(value, dict):
        errors.append(f"work_categories['{name}']: expected an object, got {_type_name(value)}")
        return CategoryAllocation()

    minutes = 0
    if "minutes" in value:
        number = _as_number(value["minutes"], f"work_categories['{name}'].minutes", warnings)
        if number is None:
            errors.append(f"work_categories['{name}'].minutes: expected a number")
        else:
            minutes = max(0, round(number))

    percentage = 0.0
    if "percentage" in value:
        number = _as_number(
            value["percentage"], f"work_categories['{name}'].percentage", warnings
        )
        if number is None:
            errors.append(f"work_categories['{name}'].percentage: expected a number")
        else:
            percentage = min(100.0, max(0.0, number))

    description = value.get("description")
    if description is not None and not isinstance(description, str):
        errors.append(f"work_categories['{name}'].description: expected a string or null")
        description = None

    return CategoryAllocation(minutes=minutes, percentage=percentage, description=description)


def _validate_work_categories(
    value: Any, errors: list[str], warnings: list[str]
) -> WorkCategories:
    if not isinstance(value, dict):
        errors.append(f"work_categories: expected an object, got {_type_name(value)}")
        return WorkCategories()

    unknown = sorted(str(k) for k in value if k not in WORK_CATEGORIES)
    if unknown:
        warnings.append(f"work_categories: ignored unknown categories {', '.join(unknown)}")

    categories = WorkCategories(
        **{
            name: _validate_category(name, value.get(name), errors, warnings)
            for name in WORK_CATEGORIES
        }
    )

    total = categories.total_percentage()
    if abs(total - 100.0) > PERCENTAGE_TOLERANCE:
        warnings.append(f"work_categories: percentages sum to {total:g}, expected 100")
    return categories


def _validate_todo(key: str, index: int, value: Any, errors: list[str]) -> TodoItem | None:
    if not isinstance(value, dict):
        errors.append(
            f"project_todos['{key}'].todos[{index}]: expected an object, got {_type_name(value)}"
        )
        return None

    text = value.get("text")
    if not isinstance(text, str) or not text.strip():
        errors.append(f"project_todos['{key}'].todos[{index}]: missing text")
        return None

    category = value.get("category")
    if isinstance(category, str):
        category = category.strip().lower()
    if category not in WORK_CATEGORIES:
        category = "other"
    return TodoItem(text=text.strip(), category=category)


def _validate_project_todos(value: Any, errors: list[str]) -> dict[str, ProjectTodos]:
    if not isinstance(value, dict):
        errors.append(f"project_todos: expected an object, got {_type_name(value)}")
        return {}

    project_todos: dict[str, ProjectTodos] = {}
    for key, entry in value.items():
        key = str(key)
        if not isinstance(entry, dict):
            errors.append(
                f"project_todos['{key}']: expected an object with a todos array, "
                f"got {_type_name(entry)}"
            )
            continue

        todos = entry.get("todos")
        if not isinstance(todos, list):
            errors.append(f"project_todos['{key}'].todos: expected an array, got {_type_name(todos)}")
            continue

        items = [_validate_todo(key, i, todo, errors) for i, todo in enumerate(todos)]

        project_id = entry.get("project_id")
        if project_id is not None:
            project_id = str(project_id)
        project_name = entry.get("project_name")
        if not isinstance(project_name, str) or not project_name.strip():
            project_name = key

        project_todos[key] = ProjectTodos(
            project_id=project_id,
            project_name=project_name.strip(),
            todos=[item for item in items if item is not None],
        )
    return project_todos


def _validate_quality_score(value: Any, errors: list[str], warnings: list[str]) -> float:
    number = _as_number(value, "quality_score", warnings)
    if number is None:
        errors.append(f"quality_score: expected a number, got {_type_name(value)}")
        return 0.0
    if number > 1.0:
        warnings.append(f"quality_score: {number:g} is out of range, clamped to 1.0")
    return min(1.0, max(0.0, number))


def _validate_explanation(value: Any, errors: list[str]) -> str:
    if not isinstance(value, str):
        errors.append(f"quality_score_explanation: expected a string, got {_type_name(value)}")
        return ""
    return value.strip()[:MAX_EXPLANATION_CHARS]


def normalize_payload(
    data: dict[str, Any], subject: Subject, summary_date: date, raw_text: str
) -> ValidationOutcome:
    """Validate a decoded JSON object field by field."""
    errors: list[str] = []
    warnings: list[str] = []

    extra = sorted(str(k) for k in data if k not in EXPECTED_FIELDS)
    if extra:
        warnings.append(f"ignored unexpected fields: {', '.join(extra)}")

    record = SummaryRecord(
        subject=subject,
        date=summary_date,
        summary=_validate_summary(data.get("summary"), errors),
        work_categories=_validate_work_categories(data.get("work_categories"), errors, warnings),
        project_todos=_validate_project_todos(data.get("project_todos"), errors),
        quality_score=_validate_quality_score(data.get("quality_score"), errors, warnings),
        quality_score_explanation=_validate_explanation(
            data.get("quality_score_explanation"), errors
        ),
        raw_text=raw_text,
    )
    return ValidationOutcome(
        record=record,
        parse_success=bool(record.summary) and not errors,
        errors=errors,
        warnings=warnings,
    )


def parse_legacy_markdown(
    payload: str, subject: Subject, summary_date: date, raw_text: str
) -> ValidationOutcome:
    """Parse the retired markdown checklist format.

    Only the daily summary and the per-project checklists survive the
    conversion. Legacy task categories were free text and are mapped to
    ``other``; category allocation and quality score were never part of
    that format and stay at their defaults.
    """
    logger.warning("Model responded in the legacy markdown format")
    errors: list[str] = []

    summary: dict[str, str] = {}
    match = _LEGACY_SUMMARY_RE.search(payload)
    if match:
        text = re.sub(r"[\[\]]", "", match.group(1)).strip()
        if text:
            summary[LEGACY_SUMMARY_KEY] = text[:MAX_SUMMARY_CHARS]
    else:
        errors.append("summary: no summary section found in markdown response")

    project_todos: dict[str, ProjectTodos] = {}
    for project_match in _LEGACY_PROJECT_RE.finditer(payload):
        project_name = project_match.group(1).strip() or "unknown"
        todos = []
        for task_match in _LEGACY_TASK_RE.finditer(project_match.group(2)):
            text = task_match.group(1)
            meta = _LEGACY_TASK_META_RE.match(text)
            if meta:
                text = meta.group(1)
            text = re.sub(r"[\[\]]", "", text).strip()
            if text:
                todos.append(TodoItem(text=text, category="other"))
        if todos:
            project_todos[_slugify(project_name)] = ProjectTodos(
                project_name=project_name, todos=todos
            )

    record = SummaryRecord(
        subject=subject,
        date=summary_date,
        summary=summary,
        project_todos=project_todos,
        raw_text=raw_text,
    )
    # A heading with neither a summary nor a checklist is not a legacy summary
    return ValidationOutcome(
        record=record,
        parse_success=bool(summary) and not errors,
        errors=errors,
        warnings=["response used the legacy markdown format"],
        decoded=bool(summary or project_todos),
    )


def validate_summary_response(
    raw_text: str, subject: Subject, summary_date: date
) -> ValidationOutcome:
    """Turn raw model output into a ValidationOutcome.

    Never raises for malformed output. When the payload cannot be decoded
    at all, the outcome carries a default record, ``parse_success=False``
    and the decode error.
    """
    payload = extract_payload(raw_text)

    if is_legacy_markdown(payload):
        return parse_legacy_markdown(payload, subject, summary_date, raw_text)

    try:
        data = decode_payload(payload)
    except DecodeError as e:
        logger.warning(f"Failed to decode summary response: {e}")
        return ValidationOutcome(
            record=empty_record(subject, summary_date, raw_text),
            parse_success=False,
            errors=[str(e)],
            decoded=False,
        )

    outcome = normalize_payload(data, subject, summary_date, raw_text)
    if outcome.errors:
        logger.warning(
            f"Summary response for {subject.key} on {summary_date} had "
            f"{len(outcome.errors)} field errors"
        )
    return outcome
