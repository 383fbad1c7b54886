"""Streaming chat-completion proxy."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi.responses import StreamingResponse
from starlette.responses import Response

from .errors import error_response, handle_error
from .messages import build_completion_request, is_valid_message_array

logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


@dataclass(frozen=True)
class ChatEnvironment:
    """AI client and search collection, validated once at startup."""

    ai: Any
    search_id: str


def build_environment(ai: Any, search_id: Any) -> Optional[ChatEnvironment]:
    """Return a usable environment, or None when either binding is unusable."""
    if ai is None or not callable(getattr(ai, "get", None)):
        logger.warning("AI client is not configured; /api/chat will answer 500")
        return None
    if not isinstance(search_id, str) or not search_id:
        logger.warning("AI search id is not configured; /api/chat will answer 500")
        return None
    return ChatEnvironment(ai=ai, search_id=search_id)


async def complete_chat(body: bytes, env: Optional[ChatEnvironment]) -> Response:
    """Validate ``body`` and stream the AI service's answer back verbatim."""
    try:
        if env is None:
            return error_response("Server configuration error", 500)

        try:
            messages = json.loads(body)
        except (ValueError, RecursionError):
            return error_response("Invalid request body", 400)

        if not is_valid_message_array(messages):
            return error_response("Messages must be a non-empty array of valid message objects", 400)

        payload = build_completion_request(messages)
        logger.debug("Forwarding %d messages to AI search %s", len(messages), env.search_id)
        stream = await env.ai.get(env.search_id).chat_completions(payload)

        if stream is None:
            return error_response("No response from AI service", 502)

        return StreamingResponse(stream, headers=STREAM_HEADERS)
    except Exception as exc:
        return handle_error(exc)
