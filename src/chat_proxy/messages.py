"""Chat message shapes, validation and provider formatting."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, NotRequired, Sequence, TypedDict

Role = Literal["system", "developer", "user", "assistant", "tool"]


class Message(TypedDict):
    """A single chat message as composed by the browser."""

    role: Role
    content: str | None

    # UI-side metadata, stored but never sent upstream
    id: NotRequired[str]
    timestamp: NotRequired[str]


class ProviderMessage(TypedDict):
    role: str
    content: str


def _is_message(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    if "role" not in item or "content" not in item:
        return False
    content = item["content"]
    return isinstance(item["role"], str) and (content is None or isinstance(content, str))


def is_valid_message_array(data: Any) -> bool:
    """Return True if ``data`` is a non-empty list of role/content objects.

    Each element must be a dict holding a string ``role`` and a ``content``
    that is a string or None. Anything else (including an empty list) is
    rejected. Never raises.
    """
    return isinstance(data, list) and len(data) > 0 and all(_is_message(m) for m in data)


def format_messages(messages: Sequence[Message]) -> List[ProviderMessage]:
    """Strip UI fields and coerce null content to an empty string, keeping order."""
    return [
        {"role": m["role"], "content": m["content"] if m["content"] is not None else ""}
        for m in messages
    ]


def build_completion_request(messages: Sequence[Message]) -> Dict[str, Any]:
    # Streaming is the only supported mode.
    return {"messages": format_messages(messages), "stream": True}
