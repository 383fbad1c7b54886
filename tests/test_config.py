from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from chat_proxy.config import Settings, load_settings


def test_missing_file_uses_defaults(tmp_path: Path, clean_env):
    settings = load_settings(str(tmp_path / "absent.yaml"))
    assert settings.ai.search_id is None
    assert settings.identity.header == "cf-connecting-ip"
    assert settings.storage.data_dir == "data/chatrooms"


def test_yaml_and_env_overrides(tmp_path: Path, clean_env, monkeypatch: pytest.MonkeyPatch):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("ai:\n  base_url: https://ai.example/instances\n  timeout: 30\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_PROXY__AI__SEARCH_ID", "docs")
    monkeypatch.setenv("CHAT_PROXY__AI__TIMEOUT", "12.5")
    monkeypatch.setenv("CHAT_PROXY__IDENTITY__FALLBACK", "anon")

    settings = load_settings(str(cfg))
    assert settings.ai.base_url == "https://ai.example/instances"
    assert settings.ai.search_id == "docs"
    assert settings.ai.timeout == 12.5
    assert settings.identity.fallback == "anon"


def test_config_path_from_env(tmp_path: Path, clean_env, monkeypatch: pytest.MonkeyPatch):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("log_level: DEBUG\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_PROXY_CONFIG", str(cfg))
    assert Settings.config_path() == cfg
    assert load_settings().log_level == "DEBUG"


def test_non_mapping_config_is_rejected(tmp_path: Path, clean_env):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_settings(str(cfg))


def test_invalid_values_fail_at_startup(tmp_path: Path, clean_env, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CHAT_PROXY__AI__TIMEOUT", "soon")
    with pytest.raises(ValidationError):
        load_settings(str(tmp_path / "absent.yaml"))


def test_shipped_default_config_loads(project_root: Path, clean_env):
    settings = load_settings(str(project_root / "config" / "default.yaml"))
    assert settings.ai.base_url is None
    assert settings.server.cors_origins == ["*"]


def test_env_layer_merges_into_yaml_sections(tmp_path: Path, clean_env, monkeypatch: pytest.MonkeyPatch):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("identity:\n  header: x-real-ip\n  fallback: anon\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_PROXY__IDENTITY__FALLBACK", "guest")
    settings = load_settings(str(cfg))
    # Sibling keys from the file survive the override.
    assert settings.identity.header == "x-real-ip"
    assert settings.identity.fallback == "guest"


def test_empty_config_file_uses_defaults(tmp_path: Path, clean_env):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("", encoding="utf-8")
    assert load_settings(str(cfg)).log_level == "INFO"
