"""Editor widget tests covering the Qt adapter in headless mode."""

from __future__ import annotations

import pytest

pytest.importorskip("PySide6")

from PySide6.QtCore import QMimeData, Qt  # noqa: E402
from PySide6.QtGui import QTextCursor  # noqa: E402

from draftline.core.ranges import PastedRange, TextRange  # noqa: E402
from draftline.editor.document_model import DocumentState  # noqa: E402
from draftline.editor.editor_widget import EditorWidget  # noqa: E402
from draftline.editor.session import EditingSession  # noqa: E402
from draftline.services.settings import Settings  # noqa: E402


@pytest.fixture
def widget(qtbot):
    session = EditingSession(DocumentState(text="hello", selection=TextRange(5, 5)))
    editor_widget = EditorWidget(session)
    qtbot.addWidget(editor_widget)
    yield editor_widget
    session.close()


def _move_caret(widget: EditorWidget, start: int, end: int | None = None) -> None:
    editor = widget.editor
    cursor = editor.textCursor()
    cursor.setPosition(start)
    if end is not None:
        cursor.setPosition(end, QTextCursor.MoveMode.KeepAnchor)
    editor.setTextCursor(cursor)


def _paste(widget: EditorWidget, text: str) -> None:
    mime = QMimeData()
    mime.setText(text)
    widget.editor.insertFromMimeData(mime)


def test_widget_loads_session_text_and_selection(widget: EditorWidget) -> None:
    assert widget.editor.toPlainText() == "hello"
    assert widget.editor.textCursor().position() == 5
    assert widget.editor.isUndoRedoEnabled() is False


def test_typing_routes_through_session(widget: EditorWidget) -> None:
    _move_caret(widget, 5)

    widget.editor.insertPlainText("!")

    assert widget.session.text == "hello!"
    assert widget.session.selection == TextRange(6, 6)


def test_paste_is_tagged_and_mirrored(widget: EditorWidget) -> None:
    _move_caret(widget, 5)

    _paste(widget, " world")

    assert widget.session.text == "hello world"
    assert widget.editor.toPlainText() == "hello world"
    assert widget.session.get_pasted_spans() == (PastedRange(5, 11),)
    assert widget.editor.textCursor().position() == 11


def test_paste_normalises_line_endings(widget: EditorWidget) -> None:
    _move_caret(widget, 5)

    _paste(widget, "\r\nline\r\n")

    assert widget.session.text == "hello\nline\n"
    assert widget.editor.toPlainText() == widget.session.text


def test_typing_inside_paste_splits_highlight(widget: EditorWidget) -> None:
    _move_caret(widget, 5)
    _paste(widget, " world")
    _move_caret(widget, 8)

    widget.editor.insertPlainText("X")

    assert widget.session.text == "hello woXrld"
    assert widget.session.get_pasted_spans() == (PastedRange(5, 8), PastedRange(9, 12))


def test_undo_shortcut_uses_session_history(widget: EditorWidget, qtbot) -> None:
    _move_caret(widget, 5)
    _paste(widget, " world")

    qtbot.keyClick(widget.editor, Qt.Key.Key_Z, Qt.KeyboardModifier.ControlModifier)

    assert widget.session.text == "hello"
    assert widget.editor.toPlainText() == "hello"
    assert widget.session.get_pasted_spans() == ()

    widget.session.redo()
    assert widget.editor.toPlainText() == "hello world"
    assert widget.editor.textCursor().position() == 11


def test_pasted_text_gets_an_overlay(widget: EditorWidget) -> None:
    assert widget.editor.extraSelections() == []

    _move_caret(widget, 5)
    _paste(widget, " world")

    assert len(widget.editor.extraSelections()) == 1


def test_clear_paste_highlight_uses_editor_selection(widget: EditorWidget) -> None:
    _move_caret(widget, 5)
    _paste(widget, " world")
    _move_caret(widget, 5, 11)

    assert widget.clear_paste_highlight() is True
    assert widget.session.get_pasted_spans() == ()
    assert widget.editor.extraSelections() == []


def test_selection_moves_update_session(widget: EditorWidget) -> None:
    _move_caret(widget, 1, 4)

    assert widget.session.selection == TextRange(1, 4)


def test_suggestion_panel_follows_session(qtbot) -> None:
    session = EditingSession(DocumentState(text="It was thrown.", selection=TextRange(4, 4)))
    editor_widget = EditorWidget(session)
    qtbot.addWidget(editor_widget)

    session.flush()
    assert "PASSIVE VOICE" in editor_widget.suggestion_text
    assert '"was thrown"' in editor_widget.suggestion_text

    _move_caret(editor_widget, 0, 3)
    assert editor_widget.suggestion_text == ""
    session.close()


def test_focus_mode_dims_other_paragraphs(qtbot) -> None:
    session = EditingSession(
        DocumentState(text="first\nsecond\nthird", selection=TextRange(8, 8)),
        settings=Settings(focus_mode=True, style_check=False),
    )
    editor_widget = EditorWidget(session)
    qtbot.addWidget(editor_widget)

    assert len(editor_widget.editor.extraSelections()) == 2
    session.close()


def test_preview_pane_follows_setting_and_text(qtbot) -> None:
    session = EditingSession(DocumentState(text="# Title", selection=TextRange(7, 7)))
    editor_widget = EditorWidget(session)
    qtbot.addWidget(editor_widget)
    assert editor_widget.preview_visible is False

    editor_widget.view_action("show_preview").trigger()

    assert session.settings.show_preview is True
    assert editor_widget.view_action("show_preview").isChecked()
    assert editor_widget.preview_visible is True
    assert "Title" in editor_widget.preview.toPlainText()

    editor_widget.editor.insertPlainText(" Two")
    assert "Title Two" in editor_widget.preview.toPlainText()

    editor_widget.toggle_setting("show_preview")
    assert editor_widget.preview_visible is False
    session.close()


def test_typewriter_mode_centers_on_scroll(qtbot) -> None:
    session = EditingSession(
        DocumentState(text="line\n" * 50, selection=TextRange(0, 0)),
        settings=Settings(typewriter_mode=True),
    )
    editor_widget = EditorWidget(session)
    qtbot.addWidget(editor_widget)

    assert editor_widget.editor.centerOnScroll() is True

    editor_widget.toggle_setting("typewriter_mode")
    assert editor_widget.editor.centerOnScroll() is False
    session.close()


def test_toggle_notifies_settings_listeners(widget: EditorWidget) -> None:
    seen: list[Settings] = []
    widget.session.add_settings_listener(seen.append)

    widget.toggle_setting("focus_mode")

    assert [settings.focus_mode for settings in seen] == [True]
