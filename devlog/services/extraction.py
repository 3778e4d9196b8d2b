"""Extraction of summarizable user text from stored session messages."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from devlog.schemas.summary import ProjectText

UNKNOWN_PROJECT = "unknown"
MESSAGE_SEPARATOR = "\n\n"


class SessionLike(Protocol):
    """Anything with a session id and an optional project name."""

    id: str
    project_name: str | None


@dataclass(frozen=True)
class PromptStats:
    """Size information about a rendered prompt and its source texts."""

    prompt_length: int
    project_count: int
    total_messages: int
    total_characters: int


def _message_list(collection: Any) -> list[Any]:
    """Unwrap a stored message collection.

    Collections are stored either as a bare list of messages or wrapped as
    ``{"messages": [...]}``.
    """
    if isinstance(collection, Mapping):
        collection = collection.get("messages")
    if isinstance(collection, list):
        return collection
    return []


def _is_user_message(message: Any) -> bool:
    if not isinstance(message, Mapping):
        return False
    author = message.get("type") or message.get("role")
    return author == "user"


def _user_texts(collection: Any) -> list[str]:
    """Return plain-string contents of user-authored messages, in order.

    Messages whose content is structured (tool calls, tool results, content
    blocks) are skipped.
    """
    return [
        message["content"]
        for message in _message_list(collection)
        if _is_user_message(message) and isinstance(message.get("content"), str)
    ]


def extract_project_texts(
    sessions: Sequence[SessionLike],
    messages_by_session: Mapping[str, Any],
) -> list[ProjectText]:
    """Group a day's user messages by project.

    Args:
        sessions: Day-scoped sessions in chronological order
        messages_by_session: Message collection for each session id

    Returns:
        One ProjectText per project with any user text, in the order each
        project first appears.
    """
    groups: dict[str, list[str]] = {}

    for session in sessions:
        project_name = session.project_name or UNKNOWN_PROJECT
        texts = groups.setdefault(project_name, [])
        texts.extend(_user_texts(messages_by_session.get(session.id)))

    return [
        ProjectText(project_name=name, user_text=MESSAGE_SEPARATOR.join(texts))
        for name, texts in groups.items()
        if texts
    ]


def count_prompts(user_text: str) -> int:
    """Count non-blank prompts in a joined project text."""
    return sum(1 for chunk in user_text.split(MESSAGE_SEPARATOR) if chunk.strip())


def get_prompt_stats(prompt: str, project_texts: Iterable[ProjectText]) -> PromptStats:
    """Compute size statistics for a prompt and the texts it was built from."""
    project_texts = list(project_texts)
    return PromptStats(
        prompt_length=len(prompt),
        project_count=len(project_texts),
        total_messages=sum(count_prompts(p.user_text) for p in project_texts),
        total_characters=sum(len(p.user_text) for p in project_texts),
    )
