"""Dataclasses representing a document and its persisted snapshot."""

from __future__ import annotations

import math
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from ..core.ranges import PastedRange, TextRange
from .pasted_ranges import ranges_from_payload, ranges_to_payload

__all__ = ["DocumentState", "WORDS_PER_MINUTE"]

WORDS_PER_MINUTE = 200
_WORD_SPLIT = re.compile(r"\s+")


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


@dataclass(slots=True)
class DocumentState:
    """Text plus the pasted ranges persisted alongside it."""

    text: str = ""
    pasted_ranges: tuple[PastedRange, ...] = ()
    selection: TextRange = field(default_factory=lambda: TextRange(0, 0))
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    title: str = "Untitled"
    updated_at: datetime = field(default_factory=_utcnow)

    def update(self, text: str, pasted_ranges: tuple[PastedRange, ...], selection: TextRange) -> None:
        self.text = text
        self.pasted_ranges = pasted_ranges
        self.selection = selection
        self.updated_at = _utcnow()

    def snapshot(self) -> Dict[str, Any]:
        """Return the JSON-serialisable ``{text, pastedRanges}`` payload."""

        return {
            "text": self.text,
            "pastedRanges": ranges_to_payload(self.pasted_ranges),
        }

    @classmethod
    def from_snapshot(cls, payload: Mapping[str, Any], *, document_id: str | None = None) -> DocumentState:
        """Rebuild a document from persisted data, repairing malformed ranges."""

        text = payload.get("text")
        if not isinstance(text, str):
            text = ""
        ranges = ranges_from_payload(payload.get("pastedRanges"), len(text))
        state = cls(text=text, pasted_ranges=ranges)
        if document_id:
            state.document_id = document_id
        title = payload.get("title")
        if isinstance(title, str) and title.strip():
            state.title = title.strip()
        return state

    @property
    def word_count(self) -> int:
        stripped = self.text.strip()
        if not stripped:
            return 0
        return len(_WORD_SPLIT.split(stripped))

    @property
    def reading_minutes(self) -> int:
        return math.ceil(self.word_count / WORDS_PER_MINUTE)
