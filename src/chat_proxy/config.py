"""Typed settings for the chat proxy.

:meth:`Settings.load` reads one YAML file, chosen by explicit path, then the
``CHAT_PROXY_CONFIG`` environment variable, then ``config/default.yaml``.
Variables prefixed ``CHAT_PROXY__`` are layered on top, with ``__`` separating
sections (e.g. CHAT_PROXY__AI__SEARCH_ID=my-collection). Env values stay
strings; pydantic coerces them to the declared field types.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ENV_PREFIX = "CHAT_PROXY__"
DEFAULT_CONFIG_PATH = "config/default.yaml"


# -----------------------------
# Typed settings
# -----------------------------
class ServerSettings(BaseModel):
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class AISettings(BaseModel):
    """Hosted chat-completion service."""

    base_url: Optional[str] = Field(default=None, description="Root URL of the AI search instances.")
    api_token: Optional[str] = Field(default=None, description="Bearer token sent upstream.")
    search_id: Optional[str] = Field(default=None, description="Search collection identifier.")
    timeout: float = Field(default=60.0, gt=0.0, description="Upstream timeout in seconds.")


class StorageSettings(BaseModel):
    data_dir: str = "data/chatrooms"


class IdentitySettings(BaseModel):
    header: str = "cf-connecting-ip"
    fallback: str = "default"


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    ai: AISettings = Field(default_factory=AISettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    identity: IdentitySettings = Field(default_factory=IdentitySettings)
    log_level: str = "INFO"

    @classmethod
    def config_path(cls, path: str | None = None) -> Path:
        """Explicit path, else ``$CHAT_PROXY_CONFIG``, else the shipped default."""
        return Path(path or os.environ.get("CHAT_PROXY_CONFIG") or DEFAULT_CONFIG_PATH)

    @classmethod
    def load(cls, path: str | None = None) -> "Settings":
        """Build settings from the YAML file layered under ``CHAT_PROXY__`` env vars."""
        layers = _merge(_read_yaml(cls.config_path(path)), _env_layer(os.environ))
        return cls.model_validate(layers)


# -----------------------------
# Sources
# -----------------------------
def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found at %s. Using defaults.", path)
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise RuntimeError(f"Failed to parse config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"Invalid config format in {path}, expected a mapping.")
    return data


def _env_layer(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Nest ``CHAT_PROXY__AI__SEARCH_ID=x`` as ``{"ai": {"search_id": "x"}}``."""
    layer: Dict[str, Any] = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        *sections, leaf = key[len(ENV_PREFIX):].lower().split("__")
        node = layer
        for section in sections:
            if not isinstance(node.get(section), dict):
                node[section] = {}
            node = node[section]
        node[leaf] = value
    return layer


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def load_settings(path: str | None = None) -> Settings:
    """Load and validate settings once; raises on invalid values."""
    return Settings.load(path)
