"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from chat_proxy.config import Settings  # noqa: E402


FRAMES = [
    b'data: {"id":"c1","type":"text","score":0.9,"text":"snippet"}\n\n',
    b'data: {"id":"x","object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":"Hi"}}]}\n\n',
    b"data: [DONE]\n\n",
]


class FakeSearch:
    """Stands in for one AI search collection; records the request body."""

    def __init__(self, owner: "FakeAI") -> None:
        self.owner = owner

    async def chat_completions(self, body: Dict[str, Any]) -> Optional[AsyncIterator[bytes]]:
        self.owner.bodies.append(body)
        if self.owner.error is not None:
            raise self.owner.error
        if self.owner.frames is None:
            return None

        async def gen() -> AsyncIterator[bytes]:
            for frame in self.owner.frames:
                yield frame

        return gen()


class FakeAI:
    def __init__(self, frames: Optional[List[bytes]] = FRAMES, error: Optional[BaseException] = None) -> None:
        self.frames = frames
        self.error = error
        self.bodies: List[Dict[str, Any]] = []
        self.search_ids: List[str] = []

    def get(self, search_id: str) -> FakeSearch:
        self.search_ids.append(search_id)
        return FakeSearch(self)


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(scope="function")
def tmp_data_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for chat room files during tests."""
    d = tmp_path / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


@pytest.fixture(scope="function")
def settings(tmp_data_dir: Path) -> Settings:
    return Settings.model_validate({"storage": {"data_dir": str(tmp_data_dir)}})


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    import os

    for var in list(os.environ):
        if var == "CHAT_PROXY_CONFIG" or var.startswith("CHAT_PROXY__"):
            monkeypatch.delenv(var, raising=False)
    yield
