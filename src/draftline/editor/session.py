"""Editing session tying together paste tracking, history and style hints.

The session is the only stateful piece of the editor core. UI adapters feed it
raw observations (full text plus caret, paste events, selection moves, undo
and redo requests) and read back render-ready state. Everything runs on one
thread; deferred work (the caret suggestion scan and persistence writes) is
debounced through :class:`~draftline.editor.scheduling.DeferredAction`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol, Sequence

from ..core.ranges import PastedRange, TextRange
from ..services.document_store import DocumentStore, PersistenceReporter
from ..services.settings import Settings
from .document_model import DocumentState
from .edit_inference import EditDelta, infer_edit
from .history import EditHistory, HistoryEntry
from .paragraphs import focused_paragraph_span
from .pasted_ranges import (
    apply_edit,
    apply_paste_replacement,
    clear_tag,
    normalize_ranges,
    overlaps_selection,
)
from .rendering import RenderLine, build_render_lines
from .scheduling import DeferredAction
from .syntax.annotator import Match, Suggestion, annotate, find_suggestion
from .syntax.markdown import MarkdownPreview, render_preview
from .syntax.rules import StyleRule, rule_set

__all__ = ["ChangeSource", "EditingSession", "SettingsListener", "StateListener", "SuggestionListener"]

LOGGER = logging.getLogger(__name__)


class ChangeSource(str, Enum):
    """Origin of a state change; only user-driven sources are recorded in history."""

    USER_EDIT = "user_edit"
    PASTE = "paste"
    CLEAR_TAG = "clear_tag"
    HISTORY = "history"
    LOAD = "load"

    @property
    def records_history(self) -> bool:
        return self not in (ChangeSource.HISTORY, ChangeSource.LOAD)


class StateListener(Protocol):
    """Callback fired after every applied state change."""

    def __call__(self, document: DocumentState, source: ChangeSource) -> None:
        ...


class SuggestionListener(Protocol):
    """Callback fired when the caret suggestion changes."""

    def __call__(self, suggestion: Suggestion | None) -> None:
        ...


class SettingsListener(Protocol):
    """Callback fired after the session switches to new settings."""

    def __call__(self, settings: Settings) -> None:
        ...


@dataclass(slots=True, frozen=True)
class _Baseline:
    """Text and selection as they were immediately before the next edit."""

    text: str
    selection: TextRange


class EditingSession:
    """Owns one document's text, pasted ranges, selection and undo history."""

    def __init__(
        self,
        document: DocumentState | None = None,
        *,
        settings: Settings | None = None,
        rules: Sequence[StyleRule] | None = None,
        store: DocumentStore | None = None,
        reporter: PersistenceReporter | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or Settings()
        self._rules: tuple[StyleRule, ...] = (
            tuple(rules) if rules is not None else rule_set(self._settings.rules_path)
        )
        self._store = store
        self._reporter = reporter or PersistenceReporter()
        self._history = EditHistory(
            coalesce_window=self._settings.coalesce_window,
            max_entries=self._settings.history_limit,
            clock=clock,
        )
        self._state_listeners: list[StateListener] = []
        self._suggestion_listeners: list[SuggestionListener] = []
        self._settings_listeners: list[SettingsListener] = []
        self._active_suggestion: Suggestion | None = None
        self._last_edit: EditDelta | None = None
        self._closed = False
        self._suggestion_action = DeferredAction(
            self._run_suggestion_scan,
            self._settings.suggestion_delay,
            loop=loop,
            name="suggestion scan",
        )
        self._persist_action = DeferredAction(
            self._persist_now,
            self._settings.persist_delay,
            loop=loop,
            name="persistence",
        )
        self._document = DocumentState()
        self._baseline = _Baseline(text="", selection=TextRange(0, 0))
        self.load_document(document or DocumentState())

    @classmethod
    def open(cls, store: DocumentStore, document_id: str, **kwargs) -> EditingSession:
        """Start a session on the stored document ``document_id`` (empty when missing)."""

        document = store.load_document(document_id) or DocumentState(document_id=document_id)
        return cls(document, store=store, **kwargs)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def document(self) -> DocumentState:
        return self._document

    @property
    def text(self) -> str:
        return self._document.text

    @property
    def selection(self) -> TextRange:
        return self._document.selection

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def rules(self) -> tuple[StyleRule, ...]:
        return self._rules

    @property
    def history(self) -> EditHistory:
        return self._history

    @property
    def last_edit(self) -> EditDelta | None:
        """Most recent inferred edit, mostly useful for diagnostics."""

        return self._last_edit

    @property
    def closed(self) -> bool:
        return self._closed

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def add_suggestion_listener(self, listener: SuggestionListener) -> None:
        self._suggestion_listeners.append(listener)

    def add_settings_listener(self, listener: SettingsListener) -> None:
        self._settings_listeners.append(listener)

    # ------------------------------------------------------------------
    # Inputs from the UI layer
    # ------------------------------------------------------------------
    def load_document(self, document: DocumentState) -> None:
        """Replace the session document and restart history from it."""

        self._suggestion_action.cancel()
        self._persist_action.cancel()
        self._document = document
        ranges = normalize_ranges(document.pasted_ranges, len(document.text))
        selection = document.selection.clamp(upper=len(document.text))
        self._apply_state(document.text, ranges, selection, source=ChangeSource.LOAD)
        self._history.reset(self._history_entry())

    def on_raw_change(self, new_text: str, new_caret: int) -> EditDelta | None:
        """Handle a text change reported only as the final text and caret."""

        if self._closed:
            LOGGER.debug("Ignoring raw change on a closed session")
            return None
        caret = max(0, min(int(new_caret), len(new_text)))
        baseline = self._baseline
        edit = infer_edit(baseline.selection, baseline.text, new_text, caret)
        if edit.is_noop and new_text == baseline.text:
            self.on_selection_change(caret, caret)
            return None
        self._last_edit = edit
        ranges = self._document.pasted_ranges
        if ranges:
            ranges = apply_edit(ranges, edit)
        self._apply_state(new_text, ranges, TextRange.caret(caret), source=ChangeSource.USER_EDIT)
        return edit

    def on_paste_event(self, pasted_text: str, sel_start: int, sel_end: int) -> TextRange | None:
        """Replace ``[sel_start, sel_end)`` with ``pasted_text`` and tag it as pasted.

        Returns the span now covered by the pasted text.
        """

        if self._closed or not pasted_text:
            return None
        text = self._document.text
        target = TextRange(sel_start, sel_end).clamp(upper=len(text))
        new_text = text[: target.start] + pasted_text + text[target.end :]
        ranges = apply_paste_replacement(
            self._document.pasted_ranges, target.start, target.end, len(pasted_text)
        )
        self._last_edit = EditDelta(target.start, target.length, len(pasted_text))
        caret = target.start + len(pasted_text)
        self._apply_state(new_text, ranges, TextRange.caret(caret), source=ChangeSource.PASTE)
        return TextRange(target.start, caret)

    def on_selection_change(self, sel_start: int, sel_end: int) -> None:
        """Move the selection baseline used to interpret the next raw change."""

        if self._closed:
            return
        selection = TextRange(sel_start, sel_end).clamp(upper=len(self._document.text))
        self._document.selection = selection
        self._baseline = _Baseline(text=self._document.text, selection=selection)
        self._refresh_suggestion()

    def request_clear_tag(self, sel_start: int, sel_end: int) -> bool:
        """Drop the pasted tag under the given span; ``True`` when anything changed."""

        if self._closed:
            return False
        current = self._document.pasted_ranges
        updated = clear_tag(current, sel_start, sel_end)
        if updated == current:
            return False
        self._apply_state(
            self._document.text, updated, self._document.selection, source=ChangeSource.CLEAR_TAG
        )
        return True

    def undo(self) -> bool:
        entry = self._history.undo()
        if entry is None:
            return False
        self._apply_state(entry.text, entry.pasted_ranges, entry.selection, source=ChangeSource.HISTORY)
        return True

    def redo(self) -> bool:
        entry = self._history.redo()
        if entry is None:
            return False
        self._apply_state(entry.text, entry.pasted_ranges, entry.selection, source=ChangeSource.HISTORY)
        return True

    def update_settings(self, settings: Settings) -> None:
        """Switch view settings mid-session.

        History limits and debounce delays keep the values the session was
        opened with.
        """

        if settings == self._settings:
            return
        self._settings = settings
        LOGGER.debug("Session settings updated")
        for listener in list(self._settings_listeners):
            listener(settings)
        self._refresh_suggestion()

    # ------------------------------------------------------------------
    # Render-time queries
    # ------------------------------------------------------------------
    def get_annotated_spans(self, text: str | None = None) -> list[Match]:
        return annotate(self._document.text if text is None else text, self._rules)

    def get_pasted_spans(self) -> tuple[PastedRange, ...]:
        return self._document.pasted_ranges

    def get_active_suggestion(self) -> Suggestion | None:
        return self._active_suggestion

    def get_focused_paragraph_span(self, caret: int | None = None) -> TextRange:
        offset = self._document.selection.start if caret is None else caret
        return focused_paragraph_span(self._document.text, offset)

    def can_clear_tag(self, sel_start: int, sel_end: int) -> bool:
        """Whether the selection touches pasted text (drives the clear affordance)."""

        return overlaps_selection(self._document.pasted_ranges, sel_start, sel_end)

    def render_lines(self) -> list[RenderLine]:
        settings = self._settings
        return build_render_lines(
            self._document.text,
            self._document.pasted_ranges,
            self._rules,
            caret=self._document.selection.start,
            focus_mode=settings.focus_mode,
            style_check=settings.style_check,
            highlight_pasted=settings.highlight_pasted_text,
        )

    def render_preview(self) -> MarkdownPreview:
        return render_preview(self._document.text)

    # ------------------------------------------------------------------
    # Deferred work
    # ------------------------------------------------------------------
    def flush(self) -> None:
        """Run any pending suggestion scan and persistence write now."""

        self._suggestion_action.flush()
        self._persist_action.flush()

    def close(self) -> None:
        """Tear the session down, cancelling deferred work that has not run yet."""

        if self._closed:
            return
        self._closed = True
        self._suggestion_action.close()
        self._persist_action.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _apply_state(
        self,
        text: str,
        pasted_ranges: tuple[PastedRange, ...],
        selection: TextRange,
        *,
        source: ChangeSource,
    ) -> None:
        selection = selection.clamp(upper=len(text))
        self._document.update(text, pasted_ranges, selection)
        self._baseline = _Baseline(text=text, selection=selection)
        if source.records_history:
            coalesced = self._history.record(self._history_entry())
            LOGGER.debug(
                "Recorded %s change (coalesced=%s, cursor=%d)", source.value, coalesced, self._history.cursor
            )
        for listener in list(self._state_listeners):
            listener(self._document, source)
        if source is not ChangeSource.LOAD and self._store is not None:
            self._persist_action.schedule()
        self._refresh_suggestion()

    def _history_entry(self) -> HistoryEntry:
        document = self._document
        return HistoryEntry(text=document.text, pasted_ranges=document.pasted_ranges, selection=document.selection)

    def _refresh_suggestion(self) -> None:
        if not self._settings.style_check or not self._document.selection.is_caret:
            self._suggestion_action.cancel()
            self._set_suggestion(None)
            return
        self._suggestion_action.schedule()

    def _run_suggestion_scan(self) -> None:
        selection = self._document.selection
        if not self._settings.style_check or not selection.is_caret:
            self._set_suggestion(None)
            return
        suggestion = find_suggestion(
            self._document.text,
            selection.start,
            self._rules,
            radius=self._settings.suggestion_radius,
            selection=selection,
        )
        self._set_suggestion(suggestion)

    def _set_suggestion(self, suggestion: Suggestion | None) -> None:
        if suggestion == self._active_suggestion:
            return
        self._active_suggestion = suggestion
        for listener in list(self._suggestion_listeners):
            listener(suggestion)

    def _persist_now(self) -> None:
        if self._store is None:
            return
        self._reporter.report(self._store.write(self._document))
