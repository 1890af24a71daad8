"""Settings dataclass and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

__all__ = ["Settings", "SettingsError", "SettingsStore", "SETTINGS_DIR", "VIEW_TOGGLES"]

LOGGER = logging.getLogger(__name__)
SETTINGS_DIR = Path.home() / ".draftline"
_DEFAULT_SETTINGS_PATH = SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}

# Boolean fields the editor window lets the writer flip at runtime.
VIEW_TOGGLES = ("focus_mode", "typewriter_mode", "style_check", "highlight_pasted_text", "show_preview")


class SettingsError(ValueError):
    """Raised when a settings value cannot drive the editor."""


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    focus_mode: bool = False
    typewriter_mode: bool = False
    style_check: bool = True
    highlight_pasted_text: bool = True
    show_preview: bool = False
    coalesce_window: float = 1.0
    history_limit: int | None = 1_000
    suggestion_radius: int = 500
    suggestion_delay: float = 0.3
    persist_delay: float = 0.25
    rules_path: str | None = None
    documents_path: str | None = None
    debug_logging: bool = False

    def validate(self) -> Settings:
        """Return ``self`` or raise :class:`SettingsError` naming the first bad field."""

        if self.history_limit is not None and self.history_limit < 1:
            raise SettingsError("history_limit must be at least 1 (or none for unlimited)")
        if self.suggestion_radius < 0:
            raise SettingsError("suggestion_radius must not be negative")
        for name in ("coalesce_window", "suggestion_delay", "persist_delay"):
            if getattr(self, name) < 0:
                raise SettingsError(f"{name} must not be negative")
        return self

    def toggled(self, name: str) -> Settings:
        """Copy with the boolean view setting ``name`` flipped."""

        if name not in VIEW_TOGGLES:
            raise SettingsError(f"'{name}' is not a view toggle")
        return replace(self, **{name: not getattr(self, name)})


def _env_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _env_int(value: str) -> int:
    return int(value, 10)


# Environment variable -> (settings field, parser). Unparseable values are skipped.
_ENV_OVERRIDES: Mapping[str, tuple[str, Callable[[str], Any]]] = {
    "DRAFTLINE_RULES_PATH": ("rules_path", str),
    "DRAFTLINE_DOCUMENTS_PATH": ("documents_path", str),
    "DRAFTLINE_FOCUS_MODE": ("focus_mode", _env_bool),
    "DRAFTLINE_TYPEWRITER_MODE": ("typewriter_mode", _env_bool),
    "DRAFTLINE_STYLE_CHECK": ("style_check", _env_bool),
    "DRAFTLINE_HIGHLIGHT_PASTED": ("highlight_pasted_text", _env_bool),
    "DRAFTLINE_SHOW_PREVIEW": ("show_preview", _env_bool),
    "DRAFTLINE_DEBUG_LOGGING": ("debug_logging", _env_bool),
    "DRAFTLINE_COALESCE_WINDOW": ("coalesce_window", float),
    "DRAFTLINE_SUGGESTION_DELAY": ("suggestion_delay", float),
    "DRAFTLINE_PERSIST_DELAY": ("persist_delay", float),
    "DRAFTLINE_SUGGESTION_RADIUS": ("suggestion_radius", _env_int),
    "DRAFTLINE_HISTORY_LIMIT": ("history_limit", _env_int),
}


class SettingsStore:
    """Reads and writes :class:`Settings` as a versioned JSON object."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Stored settings, then CLI ``overrides``, then ``DRAFTLINE_*`` variables."""

        settings = self._from_payload(self._read_payload())
        if overrides:
            settings = _merge(settings, overrides, source="CLI")
        return _merge(settings, _environment_overrides(), source="environment")

    def save(self, settings: Settings) -> Path:
        """Write ``settings`` through a temporary file so readers never see half a file."""

        payload: Dict[str, Any] = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def save_view_toggles(self, settings: Settings) -> Path:
        """Persist only the view toggles of ``settings`` over what is stored.

        Values that came from ``--set`` or the environment for other fields
        stay out of the file.
        """

        stored = self._from_payload(self._read_payload())
        toggles = {name: getattr(settings, name) for name in VIEW_TOGGLES}
        return self.save(replace(stored, **toggles))

    def _from_payload(self, payload: Mapping[str, Any]) -> Settings:
        known = {field.name for field in fields(Settings)}
        data = {key: value for key, value in payload.items() if key in known}
        try:
            return Settings(**data)
        except TypeError as exc:
            LOGGER.warning("Settings file %s held unexpected data: %s", self._path, exc)
            return Settings()

    def _read_payload(self) -> Dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return data


def _environment_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_name, (field_name, parse) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        try:
            overrides[field_name] = parse(raw)
        except ValueError:
            LOGGER.warning("Ignoring environment override %s=%r", env_name, raw)
    return overrides


def _merge(settings: Settings, overrides: Mapping[str, Any], *, source: str) -> Settings:
    known = {field.name for field in fields(Settings)}
    changes = {key: value for key, value in overrides.items() if key in known}
    if not changes:
        return settings
    LOGGER.debug("Applying %s settings overrides: %s", source, sorted(changes))
    return replace(settings, **changes)
