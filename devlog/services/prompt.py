"""Prompt construction for daily work-summary generation."""

import json
from collections.abc import Sequence
from datetime import date

from devlog.schemas.summary import WORK_CATEGORIES, ProjectText
from devlog.services.extraction import count_prompts

MAX_PROMPT_CHARS = 150_000
TRUNCATION_MARKER = "\n\n... (text truncated)"

SYSTEM_MESSAGE = """You are a strict JSON API that analyzes developer work sessions.

Rules:
1. Respond with exactly these 5 fields: summary, work_categories, project_todos, quality_score, quality_score_explanation
2. Never add other fields (date, projects, features, apis, ...)
3. Respond with a single JSON object only. No markdown, no commentary.

Responses that add fields or break the format are rejected."""

_EXAMPLE = {
    "summary": {
        "billing-api": "Implemented invoice export endpoints and fixed a rounding bug in tax totals.",
        "web-dashboard": "Reworked the usage chart layout and added loading states.",
    },
    "work_categories": {
        "planning": {"minutes": 20, "percentage": 10, "description": "Sketched the export flow"},
        "frontend": {"minutes": 60, "percentage": 30, "description": "Usage chart layout"},
        "backend": {"minutes": 80, "percentage": 40, "description": "Invoice export endpoints"},
        "qa": {"minutes": 20, "percentage": 10, "description": "Tests for tax rounding"},
        "devops": {"minutes": 0, "percentage": 0, "description": None},
        "research": {"minutes": 20, "percentage": 10, "description": "Compared CSV libraries"},
        "other": {"minutes": 0, "percentage": 0, "description": None},
    },
    "project_todos": {
        "billing-api": {
            "project_id": None,
            "project_name": "billing-api",
            "todos": [
                {"text": "Implement invoice CSV export endpoint", "category": "backend"},
                {"text": "Fix rounding in tax totals", "category": "backend"},
                {"text": "Add regression tests for tax rounding", "category": "qa"},
            ],
        },
        "web-dashboard": {
            "project_id": None,
            "project_name": "web-dashboard",
            "todos": [
                {"text": "Rework usage chart layout", "category": "frontend"},
            ],
        },
    },
    "quality_score": 0.78,
    "quality_score_explanation": "Prompts stated goals clearly but rarely included expected behaviour or acceptance criteria.",
}

_CATEGORY_LINES = {
    "planning": "requirements, design, task breakdown",
    "frontend": "UI, components, styling, client-side state",
    "backend": "APIs, services, databases, business logic",
    "qa": "tests, debugging, verification",
    "devops": "build, deployment, CI/CD, infrastructure, environment setup",
    "research": "reading docs, comparing options, learning",
    "other": "anything that fits none of the above",
}


def _render_contract() -> str:
    categories = "\n".join(
        f"  - {name}: {_CATEGORY_LINES[name]}" for name in WORK_CATEGORIES
    )
    example = json.dumps(_EXAMPLE, indent=2, ensure_ascii=False)
    return f"""Analyze the developer's messages below and respond with ONE JSON object that has exactly these 5 fields:

1. "summary": object. Keys are project names, values are a summary of that project's work (at most 500 characters each).
2. "work_categories": object with exactly these 7 keys, each {{"minutes": integer >= 0, "percentage": number 0-100, "description": string or null}}:
{categories}
   The percentages must add up to 100.
3. "project_todos": object. Keys are project names, values are {{"project_id": string or null, "project_name": string, "todos": [{{"text": string, "category": one of the 7 category names}}]}}.
4. "quality_score": number between 0.0 and 1.0 rating how clear and well-formed the developer's prompts were.
5. "quality_score_explanation": string of at most 300 characters explaining the score.

Correct example:
{example}

Incorrect shapes that will be rejected:
- "summary": "one string for the whole day"            (must be an object keyed by project)
- "project_todos": {{"billing-api": ["todo 1", "todo 2"]}}  (each project must be an object with a "todos" array)
- "project_todos": [ ... ]                              (must be an object, not an array)
- "quality_score": 88                                   (must be between 0.0 and 1.0)
- "work_categories": {{"coding": ...}}                    (only the 7 category names above)
"""


SUMMARY_CONTRACT = _render_contract()


def _render_project(project: ProjectText) -> str:
    return (
        f"## Project: {project.project_name}\n"
        f"{count_prompts(project.user_text)} prompts, {len(project.user_text)} characters\n"
        f"\n"
        f"{project.user_text}\n"
    )


def render_data_section(summary_date: date, project_texts: Sequence[ProjectText]) -> str:
    """Render the per-project message data for a day."""
    header = (
        f"Below are all messages the developer wrote on {summary_date.isoformat()}, "
        f"grouped by project.\n\n"
    )
    return header + "\n".join(_render_project(p) for p in project_texts)


def build_summary_prompt(
    summary_date: date,
    project_texts: Sequence[ProjectText],
    max_chars: int = MAX_PROMPT_CHARS,
) -> str:
    """Build the analysis prompt for one day of project texts.

    The output-format contract always comes first and is never cut. When
    the full prompt would exceed ``max_chars`` the data section is cut at
    a fixed offset and a truncation marker appended, so the same input
    always yields the same prompt.
    """
    data = render_data_section(summary_date, project_texts)
    prompt = f"{SUMMARY_CONTRACT}\n{data}"
    if len(prompt) <= max_chars:
        return prompt

    budget = max(0, max_chars - len(SUMMARY_CONTRACT) - 1 - len(TRUNCATION_MARKER))
    return f"{SUMMARY_CONTRACT}\n{data[:budget]}{TRUNCATION_MARKER}"
