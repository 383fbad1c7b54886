"""Page load and form actions over the per-identity chat room.

Errors are raised outward as :class:`~chat_proxy.errors.HistoryError` and
rendered by the application's exception handler.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from starlette.requests import Request

from .errors import ChatRoomUnavailableError, InvalidRequestError
from .identity import IdentityResolver
from .storage import ChatRoom, save_batch

logger = logging.getLogger(__name__)


class HistoryFacade:
    def __init__(self, room: Optional[ChatRoom], resolver: IdentityResolver) -> None:
        self.room = room
        self.resolver = resolver

    def _require_room(self) -> ChatRoom:
        if self.room is None:
            raise ChatRoomUnavailableError()
        return self.room

    def load(self, request: Request) -> Dict[str, Any]:
        """Return the caller's identity and stored messages for page render."""
        room = self._require_room()
        ip = self.resolver(request)
        return {"ip": ip, "savedMessages": room.get_messages(ip)}

    def save_messages(self, messages: Optional[str], ip: Optional[str]) -> Dict[str, Any]:
        """Persist a JSON-encoded list of messages under ``ip``, in order.

        Input is fully checked before the first write, so a bad request
        never leaves partial state behind.
        """
        if not messages or not ip:
            raise InvalidRequestError()
        try:
            parsed = json.loads(messages)
        except (ValueError, RecursionError):
            raise InvalidRequestError("invalid request: messages is not valid JSON")
        if not isinstance(parsed, list) or not all(isinstance(m, dict) for m in parsed):
            raise InvalidRequestError("invalid request: messages must be an array of objects")

        room = self._require_room()
        saved = save_batch(room, ip, parsed)
        logger.debug("Saved %d messages for %s", saved, ip)
        return {"success": True}

    def delete_history(self, ip: Optional[str]) -> Dict[str, Any]:
        room = self._require_room()
        if not ip:
            raise InvalidRequestError()
        room.clear_messages(ip)
        return {"success": True}
