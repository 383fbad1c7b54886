"""Error types and the mapping of failures to JSON error responses."""
from __future__ import annotations

import asyncio
import json
import logging

import httpx
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

TIMEOUT_ERRORS = (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def handle_error(exc: BaseException) -> JSONResponse:
    """Map a failure raised while proxying a chat request to a JSON response.

    Timeouts become 504 and late JSON syntax errors 400. Everything else is
    logged here and reported as a bare 500 with no detail.
    """
    if isinstance(exc, TIMEOUT_ERRORS):
        return error_response("Request timeout", 504)
    if isinstance(exc, json.JSONDecodeError):
        return error_response("Invalid request body", 400)

    logger.error("Chat API error: %s", exc)
    logger.debug("Chat API error details", exc_info=exc)
    return error_response("Internal server error", 500)


# -----------------------------
# History errors
# -----------------------------
class HistoryError(Exception):
    """Raised by the history actions; rendered as ``{"error": str(exc)}``."""

    status_code = 500


class ChatRoomUnavailableError(HistoryError):
    def __init__(self, message: str = "chatroom not available") -> None:
        super().__init__(message)


class InvalidRequestError(HistoryError):
    status_code = 400

    def __init__(self, message: str = "invalid request") -> None:
        super().__init__(message)


class StorageError(HistoryError):
    """The chat room refused or failed a write."""
