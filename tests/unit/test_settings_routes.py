from __future__ import annotations

import json
from pathlib import Path

import pytest

from config import STAGE_KEYS, AppConfig, Settings, load_config, resolve_routes
from flow_manager.coordinator import Coordinator, build_coordinator


ROOT = Path(__file__).resolve().parents[2]


def test_settings_defaults() -> None:
    settings = Settings()
    assert settings.MAX_QUESTIONS == 8
    assert settings.SHORT_ANSWER_WORDS == 50
    assert settings.CHATTY_ANSWER_WORDS == 250
    assert settings.HISTORY_WINDOW == 4
    assert settings.SESSION_STORE == "memory"


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("MAX_QUESTIONS", "5")
    monkeypatch.setenv("SESSION_STORE", "file")
    settings = Settings()
    assert settings.MAX_QUESTIONS == 5
    assert settings.SESSION_STORE == "file"


def test_shipped_config_resolves_every_stage() -> None:
    routes = resolve_routes(load_config(ROOT / "app_config.json"))
    assert set(routes) == set(STAGE_KEYS)


def test_missing_registry_entry_raises() -> None:
    cfg = AppConfig(llm_routes={}, registry={})
    with pytest.raises(KeyError):
        resolve_routes(cfg)


def test_missing_route_raises(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"llm_routes": {}, "registry": {key: "absent" for key in STAGE_KEYS}}), encoding="utf-8")
    with pytest.raises(KeyError):
        resolve_routes(load_config(path))


def test_build_coordinator_from_config(tmp_path) -> None:
    settings = Settings(SESSION_STORE="file", CHECKPOINT_DIR=str(tmp_path / "checkpoints"))
    coordinator = build_coordinator(settings, config_path=ROOT / "app_config.json")
    assert isinstance(coordinator, Coordinator)
    assert coordinator.session_ids() == []
