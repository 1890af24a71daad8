"""Undo/redo ledger over document snapshots with burst coalescing."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from ..core.ranges import PastedRange, TextRange

__all__ = ["DEFAULT_COALESCE_WINDOW", "EditHistory", "HistoryEntry"]

LOGGER = logging.getLogger(__name__)

DEFAULT_COALESCE_WINDOW = 1.0


@dataclass(slots=True, frozen=True)
class HistoryEntry:
    """Detached snapshot of text, pasted ranges and selection."""

    text: str
    pasted_ranges: tuple[PastedRange, ...] = ()
    selection: TextRange = TextRange(0, 0)


class EditHistory:
    """Stack of :class:`HistoryEntry` objects plus a cursor (``-1`` when empty).

    Consecutive records made within ``coalesce_window`` seconds whose text
    lengths differ by at most one character overwrite the tip instead of
    pushing, so a typing burst undoes as a single step. Recording after an
    undo discards the redo branch.
    """

    def __init__(
        self,
        *,
        coalesce_window: float = DEFAULT_COALESCE_WINDOW,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive when provided")
        self._coalesce_window = max(0.0, float(coalesce_window))
        self._max_entries = max_entries
        self._clock = clock
        self._entries: list[HistoryEntry] = []
        self._cursor = -1
        self._last_record_at: float | None = None

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def current(self) -> HistoryEntry | None:
        if self._cursor < 0:
            return None
        return self._entries[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def reset(self, entry: HistoryEntry | None = None) -> None:
        """Drop all history, optionally seeding it with ``entry``.

        The seed never absorbs the first real edit, so it always stays
        reachable through undo.
        """

        self._entries = [] if entry is None else [entry]
        self._cursor = len(self._entries) - 1
        self._last_record_at = None

    def record(self, entry: HistoryEntry) -> bool:
        """Store ``entry``; return ``True`` when it replaced the tip in place."""

        now = self._clock()
        at_tip = self._cursor == len(self._entries) - 1
        previous = self.current
        if (
            at_tip
            and previous is not None
            and self._last_record_at is not None
            and now - self._last_record_at < self._coalesce_window
            and abs(len(entry.text) - len(previous.text)) <= 1
        ):
            self._entries[self._cursor] = entry
            self._last_record_at = now
            return True

        if not at_tip:
            discarded = len(self._entries) - self._cursor - 1
            del self._entries[self._cursor + 1 :]
            LOGGER.debug("Discarded %d redo entries", discarded)
        self._entries.append(entry)
        self._cursor += 1
        self._trim()
        self._last_record_at = now
        return False

    def undo(self) -> HistoryEntry | None:
        """Step back one entry and return it, or ``None`` at the oldest entry."""

        if self._cursor <= 0:
            return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> HistoryEntry | None:
        """Step forward one entry and return it, or ``None`` at the tip."""

        if self._cursor >= len(self._entries) - 1:
            return None
        self._cursor += 1
        return self._entries[self._cursor]

    def _trim(self) -> None:
        if self._max_entries is None:
            return
        overflow = len(self._entries) - self._max_entries
        if overflow > 0:
            del self._entries[:overflow]
            self._cursor -= overflow
