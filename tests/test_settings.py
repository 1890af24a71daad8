"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from draftline.services.settings import Settings, SettingsError, SettingsStore


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch) -> None:
    import os

    for name in list(os.environ):
        if name.startswith("DRAFTLINE_"):
            monkeypatch.delenv(name, raising=False)


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")

    assert store.load() == Settings()


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    store = SettingsStore(path)
    original = Settings(
        focus_mode=True,
        style_check=False,
        coalesce_window=0.5,
        history_limit=None,
        suggestion_radius=250,
        rules_path="~/rules.yaml",
    )

    saved_path = store.save(original)

    assert saved_path == path
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert store.load() == original


def test_unknown_keys_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"focus_mode": True, "theme": "dark"}), encoding="utf-8")

    assert SettingsStore(path).load() == Settings(focus_mode=True)


def test_invalid_json_falls_back_to_defaults(tmp_path: Path, caplog) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{broken", encoding="utf-8")

    with caplog.at_level("WARNING"):
        settings = SettingsStore(path).load()

    assert settings == Settings()
    assert "not valid JSON" in caplog.text


def test_non_object_payload_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert SettingsStore(path).load() == Settings()


def test_cli_overrides_apply_on_top_of_file(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    store.save(Settings(focus_mode=False, suggestion_delay=0.3))

    settings = store.load(overrides={"focus_mode": True, "unknown": 1, "rules_path": None})

    assert settings == replace(Settings(), focus_mode=True)


def test_environment_overrides_win(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("DRAFTLINE_FOCUS_MODE", "yes")
    monkeypatch.setenv("DRAFTLINE_STYLE_CHECK", "off")
    monkeypatch.setenv("DRAFTLINE_SUGGESTION_RADIUS", "120")
    monkeypatch.setenv("DRAFTLINE_PERSIST_DELAY", "1.5")
    monkeypatch.setenv("DRAFTLINE_RULES_PATH", "/tmp/rules.yaml")

    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"focus_mode": False})

    assert settings.focus_mode is True
    assert settings.style_check is False
    assert settings.suggestion_radius == 120
    assert settings.persist_delay == 1.5
    assert settings.rules_path == "/tmp/rules.yaml"


def test_invalid_numeric_environment_override_is_ignored(tmp_path: Path, monkeypatch, caplog) -> None:
    monkeypatch.setenv("DRAFTLINE_HISTORY_LIMIT", "lots")
    monkeypatch.setenv("DRAFTLINE_COALESCE_WINDOW", "soon")

    with caplog.at_level("WARNING"):
        settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings.history_limit == Settings().history_limit
    assert settings.coalesce_window == Settings().coalesce_window
    assert "DRAFTLINE_HISTORY_LIMIT" in caplog.text


def test_cli_none_clears_optional_field(tmp_path: Path) -> None:
    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"history_limit": None})

    assert settings.history_limit is None


@pytest.mark.parametrize(
    "changes",
    [{"history_limit": 0}, {"suggestion_radius": -5}, {"persist_delay": -1.0}],
)
def test_validate_rejects_values_the_editor_cannot_use(changes) -> None:
    with pytest.raises(SettingsError):
        replace(Settings(), **changes).validate()


def test_validate_accepts_defaults_and_unlimited_history() -> None:
    assert Settings().validate() == Settings()
    assert Settings(history_limit=None).validate().history_limit is None


def test_toggled_flips_view_settings_only() -> None:
    settings = Settings()

    assert settings.toggled("show_preview").show_preview is True
    assert settings.toggled("style_check").style_check is False
    with pytest.raises(SettingsError):
        settings.toggled("history_limit")


def test_save_view_toggles_keeps_other_stored_values(tmp_path: Path, monkeypatch) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    store.save(Settings(coalesce_window=2.0))
    monkeypatch.setenv("DRAFTLINE_SUGGESTION_RADIUS", "9")

    store.save_view_toggles(store.load().toggled("typewriter_mode"))

    payload = json.loads(store.path.read_text(encoding="utf-8"))
    assert payload["typewriter_mode"] is True
    assert payload["coalesce_window"] == 2.0
    assert payload["suggestion_radius"] == 500
