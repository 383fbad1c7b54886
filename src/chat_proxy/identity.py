"""Client identity resolution for partitioning chat history."""
from __future__ import annotations

from typing import Protocol

from starlette.requests import Request


class IdentityResolver(Protocol):
    def __call__(self, request: Request) -> str: ...


class HeaderIdentityResolver:
    """Read the identity from a request header, e.g. the edge's client IP.

    The header is trusted as sent, so it can be spoofed by any caller that
    reaches the app directly.
    """

    def __init__(self, header: str = "cf-connecting-ip", fallback: str = "default") -> None:
        self.header = header
        self.fallback = fallback

    def __call__(self, request: Request) -> str:
        value = request.headers.get(self.header)
        return self.fallback if value is None else value
