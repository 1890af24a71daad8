"""Reconstruct structural edits from before/after text observations.

Text widgets only report the final buffer and caret after a keystroke, so the
edit that produced them has to be re-derived every time from the selection
and text captured immediately before the change.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.ranges import TextRange

__all__ = ["EditDelta", "infer_edit"]


@dataclass(slots=True, frozen=True)
class EditDelta:
    """Single replacement: ``deleted_length`` chars at ``change_start`` became ``inserted_length`` chars."""

    change_start: int
    deleted_length: int
    inserted_length: int

    @property
    def is_noop(self) -> bool:
        return self.deleted_length == 0 and self.inserted_length == 0

    @property
    def length_delta(self) -> int:
        return self.inserted_length - self.deleted_length


def infer_edit(
    previous_selection: TextRange,
    previous_text: str,
    new_text: str,
    new_caret: int,
) -> EditDelta:
    """Return the edit that best explains ``previous_text`` becoming ``new_text``.

    The previous selection is assumed to have been replaced by whatever was
    typed. When the text shrank by more than the selection covered (a bare
    Backspace or Delete with a collapsed caret) the change is read as a pure
    deletion that starts at the new caret if it moved left of the old
    selection start, otherwise at the old selection start.
    """

    prev_start, prev_end = previous_selection.start, previous_selection.end
    deleted = prev_end - prev_start
    inserted = len(new_text) - (len(previous_text) - deleted)
    if inserted >= 0:
        return EditDelta(change_start=prev_start, deleted_length=deleted, inserted_length=inserted)

    change_start = new_caret if new_caret < prev_start else prev_start
    return EditDelta(change_start=change_start, deleted_length=-inserted, inserted_length=0)
