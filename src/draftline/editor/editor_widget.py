"""Qt presentation layer bound to an :class:`EditingSession`.

The widget keeps no editing logic of its own: every keystroke, paste,
selection move and undo/redo gesture is forwarded to the session, and the
session's state is painted back with ``ExtraSelection`` overlays.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QColor, QKeySequence, QTextCharFormat, QTextCursor
from PySide6.QtWidgets import (
    QLabel,
    QPlainTextEdit,
    QSplitter,
    QTextBrowser,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from ..core.ranges import TextRange
from ..services.settings import Settings
from .document_model import DocumentState
from .rendering import RenderSegment
from .session import ChangeSource, EditingSession
from .syntax.annotator import Suggestion
from .syntax.markdown import MarkdownPreview

__all__ = ["EditorWidget", "SessionTextEdit", "STYLE_COLORS"]

LOGGER = logging.getLogger(__name__)

STYLE_COLORS: Mapping[str, tuple[int, int, int]] = {
    "style-passive": (34, 197, 94),
    "style-weak-verb": (168, 85, 247),
    "style-adverb": (59, 130, 246),
    "style-filler": (234, 179, 8),
    "style-nominalization": (236, 72, 153),
    "style-complex": (239, 68, 68),
    "style-cliche": (249, 115, 22),
}
_DEFAULT_STYLE_COLOR = (120, 120, 120)
_PASTED_BACKGROUND = (255, 243, 196)
_DIMMED_FOREGROUND = (160, 160, 160)
_NATIVE_HISTORY_ACTIONS = {"edit-undo", "edit-redo"}
_VIEW_ACTIONS: Mapping[str, tuple[str, str]] = {
    "focus_mode": ("Focus Mode", "Ctrl+Shift+F"),
    "typewriter_mode": ("Typewriter Mode", "Ctrl+Shift+T"),
    "style_check": ("Style Check", "Ctrl+Shift+K"),
    "highlight_pasted_text": ("Highlight Pasted Text", "Ctrl+Shift+H"),
    "show_preview": ("Markdown Preview", "Ctrl+Shift+P"),
}


class SessionTextEdit(QPlainTextEdit):
    """Plain text editor whose edits are interpreted by an :class:`EditingSession`."""

    def __init__(self, session: EditingSession, parent: Any | None = None) -> None:
        super().__init__(parent)
        self._session = session
        self._syncing = False
        # History lives in the session; Qt's own stack would desync pasted ranges.
        self.setUndoRedoEnabled(False)
        self._load_from_session()
        self.textChanged.connect(self._handle_text_changed)  # type: ignore[attr-defined]
        self.cursorPositionChanged.connect(self._handle_selection_changed)  # type: ignore[attr-defined]
        self.selectionChanged.connect(self._handle_selection_changed)  # type: ignore[attr-defined]
        session.add_state_listener(self._handle_session_state)

    @property
    def session(self) -> EditingSession:
        return self._session

    # ------------------------------------------------------------------
    # Qt overrides
    # ------------------------------------------------------------------
    def keyPressEvent(self, event: Any) -> None:  # noqa: N802 - Qt override
        if event.matches(QKeySequence.StandardKey.Undo):
            self._session.undo()
            event.accept()
            return
        if event.matches(QKeySequence.StandardKey.Redo):
            self._session.redo()
            event.accept()
            return
        super().keyPressEvent(event)

    def contextMenuEvent(self, event: Any) -> None:  # noqa: N802 - Qt override
        menu = self.createStandardContextMenu()
        for action in list(menu.actions()):
            if action.objectName() in _NATIVE_HISTORY_ACTIONS:
                menu.removeAction(action)
        first = menu.actions()[0] if menu.actions() else None
        undo_action = QAction("&Undo", menu)
        undo_action.setEnabled(self._session.history.can_undo)
        undo_action.triggered.connect(lambda: self._session.undo())  # type: ignore[attr-defined]
        redo_action = QAction("&Redo", menu)
        redo_action.setEnabled(self._session.history.can_redo)
        redo_action.triggered.connect(lambda: self._session.redo())  # type: ignore[attr-defined]
        menu.insertActions(first, [undo_action, redo_action])
        if first is not None:
            menu.insertSeparator(first)
        menu.exec(event.globalPos())
        menu.deleteLater()

    def insertFromMimeData(self, source: Any) -> None:  # noqa: N802 - Qt override
        text = source.text() if source is not None and source.hasText() else ""
        if not text:
            super().insertFromMimeData(source)
            return
        pasted = text.replace("\r\n", "\n").replace("\r", "\n")
        cursor = self.textCursor()
        self._session.on_paste_event(pasted, cursor.selectionStart(), cursor.selectionEnd())

    # ------------------------------------------------------------------
    # Qt -> session
    # ------------------------------------------------------------------
    def _handle_text_changed(self) -> None:
        if self._syncing:
            return
        cursor = self.textCursor()
        self._session.on_raw_change(self.toPlainText(), cursor.position())

    def _handle_selection_changed(self) -> None:
        if self._syncing:
            return
        if self.toPlainText() != self._session.text:
            # Text change still in flight; the raw change handler owns this update.
            return
        cursor = self.textCursor()
        self._session.on_selection_change(cursor.selectionStart(), cursor.selectionEnd())

    # ------------------------------------------------------------------
    # Session -> Qt
    # ------------------------------------------------------------------
    def _handle_session_state(self, document: DocumentState, source: ChangeSource) -> None:
        if source in (ChangeSource.HISTORY, ChangeSource.PASTE, ChangeSource.LOAD):
            self._write_text(document.text, document.selection)

    def _load_from_session(self) -> None:
        self._write_text(self._session.text, self._session.selection)

    def _write_text(self, text: str, selection: TextRange) -> None:
        self._syncing = True
        try:
            if self.toPlainText() != text:
                self.setPlainText(text)
            self._select(selection)
        finally:
            self._syncing = False

    def _select(self, selection: TextRange) -> None:
        cursor = self.textCursor()
        cursor.setPosition(selection.start)
        cursor.setPosition(selection.end, QTextCursor.MoveMode.KeepAnchor)
        self.setTextCursor(cursor)


class EditorWidget(QWidget):
    """Editor surface with the caret suggestion panel and an optional Markdown preview."""

    def __init__(self, session: EditingSession, parent: Any | None = None) -> None:
        super().__init__(parent)
        self._session = session
        self._editor = SessionTextEdit(session, self)
        self._suggestion_label = QLabel(self)
        self._suggestion_label.setObjectName("suggestionPanel")
        self._suggestion_label.setWordWrap(True)
        self._suggestion_label.setTextFormat(Qt.TextFormat.PlainText)
        self._suggestion_label.hide()

        self._preview = QTextBrowser(self)
        self._preview.setObjectName("markdownPreview")
        self._preview.setOpenExternalLinks(True)
        self._preview_cache: MarkdownPreview | None = None

        self._splitter = QSplitter(Qt.Orientation.Horizontal, self)
        self._splitter.addWidget(self._editor)
        self._splitter.addWidget(self._preview)
        self._splitter.setStretchFactor(0, 1)
        self._splitter.setStretchFactor(1, 1)

        layout = QVBoxLayout(self)
        layout.addWidget(self._suggestion_label)
        layout.addWidget(self._splitter)

        self._view_actions: dict[str, QAction] = {}
        for name, (label, shortcut) in _VIEW_ACTIONS.items():
            action = QAction(label, self)
            action.setObjectName(name)
            action.setCheckable(True)
            action.setShortcut(QKeySequence(shortcut))
            action.setShortcutContext(Qt.ShortcutContext.WidgetWithChildrenShortcut)
            action.triggered.connect(lambda _checked=False, key=name: self.toggle_setting(key))  # type: ignore[attr-defined]
            self.addAction(action)
            self._view_actions[name] = action

        session.add_state_listener(self._handle_state)
        session.add_suggestion_listener(self._handle_suggestion)
        session.add_settings_listener(self._apply_settings)
        self._editor.cursorPositionChanged.connect(self._handle_cursor_moved)  # type: ignore[attr-defined]
        self._apply_settings(session.settings)

    @property
    def editor(self) -> SessionTextEdit:
        return self._editor

    @property
    def session(self) -> EditingSession:
        return self._session

    @property
    def preview(self) -> QTextBrowser:
        return self._preview

    @property
    def preview_visible(self) -> bool:
        return not self._preview.isHidden()

    @property
    def suggestion_text(self) -> str:
        return "" if self._suggestion_label.isHidden() else self._suggestion_label.text()

    def view_action(self, name: str) -> QAction:
        return self._view_actions[name]

    def toggle_setting(self, name: str) -> Settings:
        """Flip one of the view toggles; the session notifies every settings listener."""

        updated = self._session.settings.toggled(name)
        self._session.update_settings(updated)
        return updated

    def clear_paste_highlight(self) -> bool:
        """Clear the pasted tag under the current selection."""

        cursor = self._editor.textCursor()
        return self._session.request_clear_tag(cursor.selectionStart(), cursor.selectionEnd())

    def refresh_overlays(self) -> None:
        selections: list[Any] = []
        for line in self._session.render_lines():
            if not line.focused:
                selections.append(self._dimmed_selection(line.start, line.end))
            for segment in line.segments:
                overlay = self._segment_selection(segment)
                if overlay is not None:
                    selections.append(overlay)
        self._editor.setExtraSelections(selections)

    def closeEvent(self, event: Any) -> None:  # noqa: N802 - Qt override
        self._session.flush()
        self._session.close()
        super().closeEvent(event)

    def _apply_settings(self, settings: Settings) -> None:
        for name, action in self._view_actions.items():
            action.setChecked(bool(getattr(settings, name)))
        self._editor.setCenterOnScroll(settings.typewriter_mode)
        if settings.typewriter_mode:
            self._editor.centerCursor()
        self._preview.setVisible(settings.show_preview)
        self._refresh_preview()
        self.refresh_overlays()

    def _refresh_preview(self) -> None:
        if not self._session.settings.show_preview:
            return
        preview = self._session.render_preview()
        if self._preview_cache is not None and preview.html == self._preview_cache.html:
            return
        self._preview_cache = preview
        self._preview.setHtml(preview.html)

    def _handle_cursor_moved(self) -> None:
        if self._session.settings.typewriter_mode:
            self._editor.centerCursor()
        self.refresh_overlays()

    def _handle_state(self, document: DocumentState, source: ChangeSource) -> None:
        del document
        LOGGER.debug("Repainting after %s change", source.value)
        self._refresh_preview()
        self.refresh_overlays()

    def _handle_suggestion(self, suggestion: Suggestion | None) -> None:
        if suggestion is None:
            self._suggestion_label.clear()
            self._suggestion_label.hide()
            return
        rule = suggestion.rule
        self._suggestion_label.setText(f'{rule.label.upper()}\n"{suggestion.text}"\n{rule.description}')
        self._suggestion_label.show()

    def _segment_selection(self, segment: RenderSegment) -> Any | None:
        if segment.kind == "plain":
            return None
        fmt = QTextCharFormat()
        if segment.kind == "pasted":
            fmt.setBackground(QColor(*_PASTED_BACKGROUND))
        else:
            tag = segment.rule.style_tag if segment.rule is not None else ""
            fmt.setUnderlineStyle(QTextCharFormat.UnderlineStyle.SingleUnderline)
            fmt.setUnderlineColor(QColor(*STYLE_COLORS.get(tag, _DEFAULT_STYLE_COLOR)))
        return self._extra_selection(segment.start, segment.end, fmt)

    def _dimmed_selection(self, start: int, end: int) -> Any:
        fmt = QTextCharFormat()
        fmt.setForeground(QColor(*_DIMMED_FOREGROUND))
        return self._extra_selection(start, end, fmt)

    def _extra_selection(self, start: int, end: int, fmt: Any) -> Any:
        selection = QTextEdit.ExtraSelection()
        cursor = self._editor.textCursor()
        cursor.setPosition(start)
        cursor.setPosition(end, QTextCursor.MoveMode.KeepAnchor)
        selection.cursor = cursor
        selection.format = fmt
        return selection
