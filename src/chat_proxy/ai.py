"""Async client for a hosted AI search chat-completions endpoint.

The client never interprets the provider's stream frames. A completion is
returned as an async iterator of raw bytes that pulls from the upstream
connection only as fast as the caller consumes it; the upstream response is
closed once that iterator is exhausted, fails, or is closed early (e.g. the
downstream HTTP client disconnected).
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "chat-proxy/0.1"


async def _forward(response: httpx.Response, first: bytes, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    try:
        yield first
        async for chunk in chunks:
            if chunk:
                yield chunk
    finally:
        await response.aclose()


class AISearchInstance:
    """Handle on one search collection, as returned by :meth:`AISearchClient.get`."""

    def __init__(self, client: httpx.AsyncClient, search_id: str) -> None:
        self._client = client
        self.search_id = search_id

    async def chat_completions(self, body: Dict[str, Any]) -> Optional[AsyncIterator[bytes]]:
        """POST ``body`` and return the streamed response body.

        Returns None when the upstream answers successfully but sends no
        bytes at all. HTTP error statuses raise ``httpx.HTTPStatusError``.
        """
        request = self._client.build_request("POST", f"{self.search_id}/chat/completions", json=body)
        response = await self._client.send(request, stream=True)
        try:
            response.raise_for_status()
            chunks = response.aiter_bytes()
            first = b""
            async for chunk in chunks:
                if chunk:
                    first = chunk
                    break
        except BaseException:
            await response.aclose()
            raise

        if not first:
            logger.warning("AI search %s returned an empty body", self.search_id)
            await response.aclose()
            return None
        return _forward(response, first, chunks)


class AISearchClient:
    """Thin wrapper around a pooled :class:`httpx.AsyncClient`."""

    def __init__(
        self,
        base_url: str,
        *,
        api_token: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"User-Agent": USER_AGENT, "Accept": "text/event-stream"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        # Trailing slash so relative paths append to the base path.
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)),
            transport=transport,
        )

    def get(self, search_id: str) -> AISearchInstance:
        return AISearchInstance(self._client, search_id)

    async def aclose(self) -> None:
        await self._client.aclose()
