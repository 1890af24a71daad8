"""Paragraph helpers used by focus mode rendering."""

from __future__ import annotations

from typing import Iterator

from ..core.ranges import TextRange

__all__ = ["focused_paragraph_span", "iter_paragraphs"]


def focused_paragraph_span(text: str, caret: int) -> TextRange:
    """Return the ``[start, end)`` span of the line holding ``caret``.

    ``start`` sits one past the closest newline before the caret (0 when there
    is none) and ``end`` on the closest newline at or after it (``len(text)``
    when there is none).
    """

    caret = max(0, min(int(caret), len(text)))
    start = text.rfind("\n", 0, caret) + 1
    end = text.find("\n", caret)
    if end == -1:
        end = len(text)
    return TextRange(start, end)


def iter_paragraphs(text: str) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` for every newline-separated paragraph, empty ones included."""

    cursor = 0
    for line in text.split("\n"):
        yield cursor, cursor + len(line)
        cursor += len(line) + 1
