"""Application bootstrap helpers for the draftline editor."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, cast, get_args, get_origin, get_type_hints

from .editor.document_model import DocumentState
from .editor.syntax.annotator import annotate, find_suggestion
from .editor.syntax.rules import RuleConfigError, StyleRule, rule_set
from .services.document_store import DocumentStore, PersistenceReporter
from .services.settings import Settings, SettingsError, SettingsStore
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def configure_logging(debug: bool = False, *, force: bool = False, console: bool = True) -> None:
    """Configure logging for the application."""

    level = logging_utils.resolve_level(debug)
    logging_utils.setup_logging(level, force=force, console=console)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except (OSError, TypeError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def create_qapp() -> QtRuntime:
    """Create a qasync-powered QApplication instance."""

    from PySide6.QtWidgets import QApplication
    from qasync import QEventLoop

    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    app = cast(Any, QApplication.instance() or QApplication(sys.argv[:1]))
    app.setApplicationName("Draftline")
    app.setApplicationDisplayName("Draftline")

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)  # type: ignore[attr-defined]
    _install_qt_message_handler()
    return QtRuntime(app=app, loop=loop)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``draftline`` console script."""

    args = _build_parser().parse_args(argv)
    debug = args.debug or _env_flag("DRAFTLINE_DEBUG", default=False)
    configure_logging(debug, console=args.command == "edit")

    settings_path = args.settings_path or os.environ.get("DRAFTLINE_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)
    try:
        settings.validate()
    except (SettingsError, TypeError) as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return 2
    if settings.debug_logging and not debug:
        configure_logging(True, force=True, console=args.command == "edit")

    if args.command == "settings":
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return 0

    try:
        rules = rule_set(settings.rules_path)
    except RuleConfigError as exc:
        print(f"Invalid rule configuration: {exc}", file=sys.stderr)
        return 2

    path = Path(args.file).expanduser()
    try:
        text = path.read_text(encoding="utf-8") if path.exists() or args.command == "check" else ""
    except OSError as exc:
        print(f"Unable to read {path}: {exc}", file=sys.stderr)
        return 1

    if args.command == "check":
        return _run_check(text, rules, settings, caret=args.caret)
    return _run_editor(path, text, rules, settings, settings_store)


def _run_check(
    text: str,
    rules: Sequence[StyleRule],
    settings: Settings,
    *,
    caret: int | None,
    stream: TextIO | None = None,
) -> int:
    """Print the style annotations for ``text`` and, optionally, the caret suggestion."""

    destination = stream or sys.stdout
    matches = annotate(text, rules)
    for match in matches:
        line = text.count("\n", 0, match.start) + 1
        destination.write(f"{line}:{match.start}-{match.end}\t{match.rule.id}\t{match.text_in(text)}\n")
    if caret is not None:
        suggestion = find_suggestion(text, caret, rules, radius=settings.suggestion_radius)
        if suggestion is None:
            destination.write(f"No suggestion at offset {caret}.\n")
        else:
            rule = suggestion.rule
            destination.write(f'Suggestion at {caret}: {rule.label} "{suggestion.text}" - {rule.description}\n')
    _LOGGER.debug("Style check reported %s match(es)", len(matches))
    return 0


def _run_editor(
    path: Path,
    text: str,
    rules: Sequence[StyleRule],
    settings: Settings,
    settings_store: SettingsStore,
) -> int:
    from PySide6.QtWidgets import QMessageBox

    from .editor.editor_widget import EditorWidget
    from .editor.session import EditingSession

    runtime = create_qapp()
    store = DocumentStore(Path(settings.documents_path).expanduser() if settings.documents_path else None)
    document = _document_for_file(store, path, text)

    widget_holder: list[Any] = []

    def _notify(message: str) -> None:
        parent = widget_holder[0] if widget_holder else None
        QMessageBox.warning(parent, "Draftline", message)

    session = EditingSession(
        document,
        settings=settings,
        rules=rules,
        store=store,
        reporter=PersistenceReporter(_notify),
        loop=runtime.loop,
    )
    session.add_settings_listener(lambda updated: _persist_view_toggles(settings_store, updated))
    widget = EditorWidget(session)
    widget_holder.append(widget)
    widget.setWindowTitle(f"{document.title} - Draftline")
    widget.resize(900, 700)
    widget.show()

    loop = runtime.loop
    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        session.flush()
        session.close()
        _save_text(path, session.text)
        _drain_event_loop(loop)
        loop.close()
    return 0


def _document_for_file(store: DocumentStore, path: Path, text: str) -> DocumentState:
    """Reuse stored pasted ranges for ``path`` while the stored text still matches the file."""

    document_id = str(path.resolve())
    stored = store.load_document(document_id)
    if stored is not None and stored.text == text:
        stored.title = path.name
        return stored
    if stored is not None:
        _LOGGER.info("%s changed outside draftline; pasted ranges were discarded", path)
    return DocumentState(text=text, document_id=document_id, title=path.name)


def _persist_view_toggles(store: SettingsStore, settings: Settings) -> None:
    try:
        store.save_view_toggles(settings)
    except OSError as exc:
        _LOGGER.error("Failed to save settings to %s: %s", store.path, exc)


def _save_text(path: Path, text: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(text, encoding="utf-8")
        tmp_path.replace(path)
    except OSError as exc:
        _LOGGER.error("Failed to save %s: %s", path, exc)
        return
    _LOGGER.debug("Saved %s (%s chars)", path, len(text))


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks before the loop is closed."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current_task = None
        with contextlib.suppress(RuntimeError):
            current_task = asyncio.current_task(loop=loop)
        tasks = [task for task in asyncio.all_tasks(loop) if not task.done() and task is not current_task]
        if tasks:
            _LOGGER.debug("Canceling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:  # pragma: no cover - loop already stopped by Qt
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


def _install_qt_message_handler() -> None:
    """Redirect Qt warnings to the Python logging stack."""

    from PySide6.QtCore import QtMsgType, qInstallMessageHandler

    level_map = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def _handler(mode, context, message):  # type: ignore[no-untyped-def]
        del context
        logging.getLogger("PySide6").log(level_map.get(mode, logging.INFO), message)

    qInstallMessageHandler(_handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="draftline",
        description="Distraction-free writing with paste tracking and style hints.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--settings",
        dest="settings_path",
        metavar="PATH",
        help="Override the default ~/.draftline/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Print style annotations for a file.")
    check.add_argument("file", metavar="FILE")
    check.add_argument("--caret", type=int, default=None, help="Also print the suggestion at this offset.")

    edit = commands.add_parser("edit", help="Open a file in the editor window.")
    edit.add_argument("file", metavar="FILE")

    commands.add_parser("settings", help="Print the effective settings and exit.")
    return parser


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if normalized.lower() in {"none", "null"} and _is_optional(annotation):
        return None
    if target is str:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    if get_origin(annotation) is None:
        return annotation
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    return args[0] if args else annotation


def _is_optional(annotation: Any) -> bool:
    return type(None) in get_args(annotation)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": sorted(name for name in os.environ if name.startswith("DRAFTLINE_")),
    }
    json.dump({"settings": asdict(settings), "meta": metadata}, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":  # pragma: no cover - manual launch
    raise SystemExit(main())
