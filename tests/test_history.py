"""Tests for the undo/redo ledger."""

from __future__ import annotations

import pytest

from draftline.core.ranges import PastedRange, TextRange
from draftline.editor.history import EditHistory, HistoryEntry


def _entry(text: str, caret: int | None = None) -> HistoryEntry:
    offset = len(text) if caret is None else caret
    return HistoryEntry(text=text, selection=TextRange(offset, offset))


def test_rapid_single_character_edits_coalesce_into_one_step(clock) -> None:
    history = EditHistory(clock=clock)
    history.reset(_entry("draft"))

    for text in ("draft ", "draft a", "draft ab", "draft abc", "draft abcd"):
        clock.advance(0.2)
        history.record(_entry(text))

    assert len(history) == 2
    restored = history.undo()
    assert restored == _entry("draft")
    assert restored.selection == TextRange(5, 5)
    assert not history.can_undo


def test_edits_outside_window_are_separate_steps(clock) -> None:
    history = EditHistory(clock=clock)
    history.reset(_entry(""))

    history.record(_entry("a"))
    clock.advance(1.5)
    history.record(_entry("ab"))

    assert len(history) == 3


def test_large_changes_are_never_coalesced(clock) -> None:
    history = EditHistory(clock=clock)
    history.reset(_entry("x"))

    history.record(_entry("xy"))
    clock.advance(0.1)
    coalesced = history.record(_entry("xy pasted text"))

    assert coalesced is False
    assert len(history) == 3


def test_first_edit_after_reset_keeps_seed_reachable(clock) -> None:
    history = EditHistory(clock=clock)
    history.reset(_entry("seed"))

    assert history.record(_entry("seeds")) is False
    assert history.undo() == _entry("seed")


def test_undo_and_redo_walk_the_stack(clock) -> None:
    history = EditHistory(clock=clock)
    history.reset(_entry("one"))
    clock.advance(2)
    history.record(_entry("one two"))
    clock.advance(2)
    history.record(_entry("one two three"))

    assert history.undo().text == "one two"
    assert history.undo().text == "one"
    assert history.undo() is None
    assert history.redo().text == "one two"
    assert history.redo().text == "one two three"
    assert history.redo() is None


def test_recording_after_undo_discards_redo_branch(clock) -> None:
    history = EditHistory(clock=clock)
    history.reset(_entry("a"))
    for text in ("a bb", "a bb cc", "a bb cc dd"):
        clock.advance(2)
        history.record(_entry(text))
    history.undo()
    history.undo()

    clock.advance(2)
    history.record(_entry("a bb!"))

    assert not history.can_redo
    assert [entry.text for entry in history.entries] == ["a", "a bb", "a bb!"]


def test_recording_right_after_undo_does_not_overwrite_entry(clock) -> None:
    history = EditHistory(clock=clock)
    history.reset(_entry("ab"))
    history.record(_entry("abc"))
    history.undo()

    clock.advance(0.1)
    assert history.record(_entry("abd")) is False
    assert [entry.text for entry in history.entries] == ["ab", "abd"]


def test_entries_snapshot_pasted_ranges(clock) -> None:
    history = EditHistory(clock=clock)
    ranges = (PastedRange(0, 3),)
    history.reset(HistoryEntry(text="abc", pasted_ranges=ranges, selection=TextRange(0, 3)))

    assert history.current.pasted_ranges == ranges
    assert history.current.selection == TextRange(0, 3)


def test_max_entries_trims_oldest(clock) -> None:
    history = EditHistory(clock=clock, max_entries=3)
    history.reset(_entry(""))
    for text in ("one", "one two", "one two three", "one two three four"):
        clock.advance(2)
        history.record(_entry(text))

    assert [entry.text for entry in history.entries] == ["one two", "one two three", "one two three four"]
    assert history.cursor == 2


def test_max_entries_must_be_positive() -> None:
    with pytest.raises(ValueError):
        EditHistory(max_entries=0)


def test_empty_history_has_nothing_to_undo() -> None:
    history = EditHistory()

    assert history.current is None
    assert history.cursor == -1
    assert history.undo() is None
    assert history.redo() is None
