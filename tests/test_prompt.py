"""Tests for summary prompt construction."""

from datetime import date

from devlog.schemas.summary import WORK_CATEGORIES, ProjectText
from devlog.services.prompt import (
    SUMMARY_CONTRACT,
    TRUNCATION_MARKER,
    build_summary_prompt,
)

DAY = date(2026, 3, 14)


def test_prompt_contains_contract_and_project_data():
    """Test the prompt carries the schema contract and every project."""
    texts = [
        ProjectText(project_name="billing-api", user_text="fix rounding\n\nadd export"),
        ProjectText(project_name="web-dashboard", user_text="tweak chart"),
    ]

    prompt = build_summary_prompt(DAY, texts)

    assert prompt.startswith(SUMMARY_CONTRACT)
    assert "2026-03-14" in prompt
    assert "## Project: billing-api" in prompt
    assert "2 prompts, 24 characters" in prompt
    assert "## Project: web-dashboard" in prompt
    assert "tweak chart" in prompt
    assert TRUNCATION_MARKER not in prompt


def test_contract_names_all_fields_and_categories():
    """Test the contract enumerates the output fields and categories."""
    for field in (
        "summary",
        "work_categories",
        "project_todos",
        "quality_score",
        "quality_score_explanation",
    ):
        assert f'"{field}"' in SUMMARY_CONTRACT
    for name in WORK_CATEGORIES:
        assert f"  - {name}:" in SUMMARY_CONTRACT
    assert "Incorrect shapes" in SUMMARY_CONTRACT


def test_long_prompt_is_truncated_to_limit():
    """Test that oversized input is cut and marked."""
    texts = [ProjectText(project_name="big", user_text="x" * 200_000)]

    prompt = build_summary_prompt(DAY, texts)

    assert len(prompt) <= 150_000
    assert prompt.endswith(TRUNCATION_MARKER)
    assert prompt.startswith(SUMMARY_CONTRACT)


def test_truncation_is_deterministic():
    """Test that the same input is always cut at the same offset."""
    texts = [ProjectText(project_name="big", user_text="abc" * 10_000)]

    first = build_summary_prompt(DAY, texts, max_chars=len(SUMMARY_CONTRACT) + 500)
    second = build_summary_prompt(DAY, texts, max_chars=len(SUMMARY_CONTRACT) + 500)

    assert first == second
    assert len(first) == len(SUMMARY_CONTRACT) + 500


def test_prompt_at_limit_is_not_truncated():
    texts = [ProjectText(project_name="p", user_text="hello")]
    full = build_summary_prompt(DAY, texts)

    assert build_summary_prompt(DAY, texts, max_chars=len(full)) == full
