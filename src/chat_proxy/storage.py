"""Chat-room storage keyed by client identity (thread-safe, atomic)."""
from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence

from .errors import StorageError

logger = logging.getLogger(__name__)


class ChatRoom(Protocol):
    """Storage actor interface consumed by the history actions."""

    def get_messages(self, identity: str) -> List[Dict[str, Any]]: ...

    def save_message(self, identity: str, message: Dict[str, Any]) -> bool: ...

    def clear_messages(self, identity: str) -> None: ...

    def delete_message(self, identity: str, message_id: str) -> None: ...


# -----------------------------
# Helpers
# -----------------------------
def _safe_identity(name: str) -> str:
    # Readable prefix plus a digest so distinct identities never share a file.
    readable = re.sub(r"[^\w.\-@]+", "_", name.strip() or "default")[:64]
    digest = hashlib.sha1(name.encode("utf-8")).hexdigest()[:12]
    return f"{readable}-{digest}"


def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", encoding="utf-8", delete=False, dir=str(path.parent)) as tmp:
        tmp.write(text)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_name = tmp.name
    os.replace(tmp_name, path)


def save_batch(room: ChatRoom, identity: str, messages: Sequence[Dict[str, Any]]) -> int:
    """Persist ``messages`` one at a time, in order.

    Fail-fast with no rollback: the first rejected or failing write stops the
    batch and messages saved before it stay saved.
    """
    for index, message in enumerate(messages):
        if not room.save_message(identity, message):
            raise StorageError(f"chatroom rejected message {index} of {len(messages)}")
    return len(messages)


# -----------------------------
# DiskChatRoom
# -----------------------------
class DiskChatRoom:
    """JSON-file chat room, one ``list[dict]`` file per identity.

    Writes are serialized by an in-process lock, so one server process at a
    time may own ``data_dir``.

    Layout:
        data_dir/
          <identity>-<digest>.json
    """

    def __init__(self, data_dir: str) -> None:
        self.root = Path(data_dir)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _json_path(self, identity: str) -> Path:
        return self.root / f"{_safe_identity(identity)}.json"

    def _write(self, identity: str, messages: List[Dict[str, Any]]) -> None:
        _atomic_write_text(self._json_path(identity), json.dumps(messages, ensure_ascii=False, indent=2))

    def get_messages(self, identity: str) -> List[Dict[str, Any]]:
        path = self._json_path(identity)
        with self._lock:
            if not path.exists():
                return []
            try:
                with path.open("r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError):
                data = None
            if isinstance(data, list):
                return data
            # Corrupted: keep a copy aside and start fresh.
            bad = path.with_suffix(".corrupt.json")
            logger.warning("Corrupted chat room file %s moved to %s", path, bad)
            os.replace(path, bad)
            return []

    def save_message(self, identity: str, message: Dict[str, Any]) -> bool:
        if not isinstance(message, dict):
            raise TypeError("message must be a dict")
        with self._lock:
            history = self.get_messages(identity)
            history.append(message)
            self._write(identity, history)
        return True

    def clear_messages(self, identity: str) -> None:
        with self._lock:
            self._json_path(identity).unlink(missing_ok=True)

    def delete_message(self, identity: str, message_id: str) -> None:
        with self._lock:
            history = self.get_messages(identity)
            kept = [m for m in history if m.get("id") != message_id]
            if len(kept) != len(history):
                self._write(identity, kept)
