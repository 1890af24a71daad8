"""Structured helpers for representing text spans."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator


def _coerce_offset(value: Any, owner: str, label: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{owner} {label} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{owner} {label} must be an integer") from exc
    return number


@dataclass(slots=True, frozen=True)
class TextRange:
    """Selection or caret position using absolute character offsets."""

    start: int
    end: int

    def __post_init__(self) -> None:
        start = max(0, _coerce_offset(self.start, "TextRange", "start"))
        end = max(0, _coerce_offset(self.end, "TextRange", "end"))
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def __iter__(self) -> Iterator[int]:
        yield self.start
        yield self.end

    @property
    def length(self) -> int:
        """Return the width of the range."""

        return self.end - self.start

    @property
    def is_caret(self) -> bool:
        """Return ``True`` when the range collapses to a caret."""

        return self.start == self.end

    def to_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)

    def clamp(self, *, lower: int = 0, upper: int | None = None) -> TextRange:
        """Clamp the range to ``[lower, upper]`` bounds."""

        start = max(lower, self.start)
        end = max(lower, self.end)
        if upper is not None:
            start = min(start, upper)
            end = min(end, upper)
        return TextRange(start=start, end=end)

    @classmethod
    def caret(cls, offset: int) -> TextRange:
        return cls(offset, offset)


@dataclass(slots=True, frozen=True, order=True)
class PastedRange:
    """Half-open ``[start, end)`` span of text that arrived through a paste.

    Instances are only ever built through :func:`make_range`, which refuses
    empty or inverted spans; the interval helpers rely on ``start < end``.
    """

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def intersects(self, start: int, end: int) -> bool:
        return self.start < end and self.end > start

    def shifted(self, delta: int) -> PastedRange:
        return PastedRange(self.start + delta, self.end + delta)

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}


def make_range(start: int, end: int) -> PastedRange | None:
    """Return a :class:`PastedRange` or ``None`` when ``end <= start``."""

    if end <= start or start < 0:
        return None
    return PastedRange(int(start), int(end))


__all__ = ["PastedRange", "TextRange", "make_range"]
