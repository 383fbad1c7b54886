"""FastAPI application: chat history actions and the streaming chat proxy."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Form, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

from .ai import AISearchClient
from .config import Settings, load_settings
from .errors import HistoryError, error_response, handle_error
from .history import HistoryFacade
from .identity import HeaderIdentityResolver, IdentityResolver
from .proxy import build_environment, complete_chat
from .storage import ChatRoom, DiskChatRoom

logger = logging.getLogger(__name__)


def _make_ai(settings: Settings) -> Optional[AISearchClient]:
    ai_cfg = settings.ai
    if not ai_cfg.base_url:
        return None
    return AISearchClient(ai_cfg.base_url, api_token=ai_cfg.api_token, timeout=ai_cfg.timeout)


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    ai: Any = None,
    chat_room: Optional[ChatRoom] = None,
    identity_resolver: Optional[IdentityResolver] = None,
    search_id: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or load_settings(config_path)

    # Services
    owned_ai = None
    if ai is None:
        ai = owned_ai = _make_ai(settings)
    env = build_environment(ai, search_id if search_id is not None else settings.ai.search_id)
    if chat_room is None and settings.storage.data_dir:
        chat_room = DiskChatRoom(settings.storage.data_dir)
    resolver = identity_resolver or HeaderIdentityResolver(
        settings.identity.header, settings.identity.fallback
    )
    history = HistoryFacade(chat_room, resolver)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if owned_ai is not None:
            await owned_ai.aclose()

    app = FastAPI(title="Chat Proxy", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(HistoryError)
    async def history_error(request: Request, exc: HistoryError) -> JSONResponse:
        logger.info("History action failed (%d): %s", exc.status_code, exc)
        return error_response(str(exc), exc.status_code)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "ai_configured": env is not None,
            "chatroom_configured": chat_room is not None,
        }

    @app.get("/")
    def load(request: Request) -> Dict[str, Any]:
        return history.load(request)

    @app.post("/saveMessages")
    def save_messages(
        messages: Optional[str] = Form(default=None),
        ip: Optional[str] = Form(default=None),
    ) -> Dict[str, Any]:
        return history.save_messages(messages, ip)

    @app.post("/deleteHistory")
    def delete_history(ip: Optional[str] = Form(default=None)) -> Dict[str, Any]:
        return history.delete_history(ip)

    @app.post("/api/chat")
    async def chat(request: Request) -> Response:
        try:
            body = await request.body()
        except Exception as exc:
            return handle_error(exc)
        return await complete_chat(body, env)

    return app
