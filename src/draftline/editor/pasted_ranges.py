"""Interval bookkeeping for text that entered the document through a paste.

Every helper takes the current range collection and returns a fresh, sorted
tuple of disjoint :class:`~draftline.core.ranges.PastedRange` objects. Ranges
are never merged by an edit: each input range maps to at most one output range
(two when an insertion splits it). Any range that an edit would shrink to
``end <= start`` is discarded instead of being emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Iterable

from ..core.ranges import PastedRange, make_range
from .edit_inference import EditDelta

__all__ = [
    "RangeSet",
    "apply_deletion",
    "apply_edit",
    "apply_insertion",
    "apply_paste_replacement",
    "clear_tag",
    "is_position_pasted",
    "normalize_ranges",
    "overlaps_selection",
    "ranges_from_payload",
    "ranges_to_payload",
]

LOGGER = logging.getLogger(__name__)

RangeSet = tuple[PastedRange, ...]


def apply_deletion(ranges: Iterable[PastedRange], delete_start: int, delete_length: int) -> RangeSet:
    """Remove ``delete_length`` characters at ``delete_start`` from every range."""

    if delete_length <= 0:
        return _finalize(ranges)
    delete_end = delete_start + delete_length

    def map_point(point: int) -> int:
        if point <= delete_start:
            return point
        if point >= delete_end:
            return point - delete_length
        return delete_start

    result: list[PastedRange] = []
    for item in ranges:
        if item.end <= delete_start:
            result.append(item)
            continue
        if item.start >= delete_end:
            result.append(item.shifted(-delete_length))
            continue
        overlap = min(item.end, delete_end) - max(item.start, delete_start)
        if overlap >= item.length:
            continue
        clipped = make_range(map_point(item.start), map_point(item.end))
        if clipped is None:
            LOGGER.debug("Dropping collapsed range %s after deletion at %s", item, delete_start)
            continue
        result.append(clipped)
    return _finalize(result)


def apply_insertion(ranges: Iterable[PastedRange], insert_start: int, insert_length: int) -> RangeSet:
    """Shift ranges for ``insert_length`` new characters at ``insert_start``.

    Text typed strictly inside a pasted range splits it; text typed at a
    range's left edge pushes the whole range right without joining it.
    """

    if insert_length <= 0:
        return _finalize(ranges)
    result: list[PastedRange] = []
    for item in ranges:
        if insert_start >= item.end:
            result.append(item)
        elif insert_start <= item.start:
            result.append(item.shifted(insert_length))
        else:
            for piece in (
                make_range(item.start, insert_start),
                make_range(insert_start + insert_length, item.end + insert_length),
            ):
                if piece is not None:
                    result.append(piece)
    return _finalize(result)


def apply_edit(ranges: Iterable[PastedRange], edit: EditDelta) -> RangeSet:
    """Apply an inferred edit: its deletion first, then its insertion."""

    updated = apply_deletion(ranges, edit.change_start, edit.deleted_length)
    return apply_insertion(updated, edit.change_start, edit.inserted_length)


def apply_paste_replacement(
    ranges: Iterable[PastedRange],
    sel_start: int,
    sel_end: int,
    pasted_length: int,
) -> RangeSet:
    """Replace ``[sel_start, sel_end)`` with ``pasted_length`` pasted characters."""

    if sel_end < sel_start:
        sel_start, sel_end = sel_end, sel_start
    updated = apply_deletion(ranges, sel_start, sel_end - sel_start)
    updated = apply_insertion(updated, sel_start, pasted_length)
    fresh = make_range(sel_start, sel_start + pasted_length)
    if fresh is None:
        return updated
    return _finalize((*updated, fresh))


def clear_tag(ranges: Iterable[PastedRange], clear_start: int, clear_end: int) -> RangeSet:
    """Drop the pasted tag from ``[clear_start, clear_end)`` without moving text."""

    if clear_end < clear_start:
        clear_start, clear_end = clear_end, clear_start
    if clear_end == clear_start:
        return _finalize(ranges)
    result: list[PastedRange] = []
    for item in ranges:
        if not item.intersects(clear_start, clear_end):
            result.append(item)
            continue
        for piece in (
            make_range(item.start, clear_start) if item.start < clear_start else None,
            make_range(clear_end, item.end) if item.end > clear_end else None,
        ):
            if piece is not None:
                result.append(piece)
    return _finalize(result)


def is_position_pasted(position: int, ranges: Iterable[PastedRange]) -> bool:
    return any(item.contains(position) for item in ranges)


def overlaps_selection(ranges: Iterable[PastedRange], start: int, end: int) -> bool:
    """Return ``True`` when a non-empty selection touches any pasted text."""

    if end < start:
        start, end = end, start
    if start == end:
        return False
    return any(max(item.start, start) < min(item.end, end) for item in ranges)


def normalize_ranges(values: Iterable[Any] | None, text_length: int | None = None) -> RangeSet:
    """Coerce untrusted range payloads into a valid range set.

    Accepts :class:`PastedRange` objects, ``{"start", "end"}`` mappings and
    two-item sequences. Entries are clamped to ``[0, text_length]``, empty or
    unreadable entries are dropped and strictly overlapping entries merged.
    """

    if not values:
        return ()
    candidates: list[PastedRange] = []
    for value in values:
        bounds = _read_bounds(value)
        if bounds is None:
            LOGGER.debug("Ignoring unreadable pasted range payload: %r", value)
            continue
        start, end = bounds
        start = max(0, start)
        if text_length is not None:
            start = min(start, text_length)
            end = min(end, text_length)
        item = make_range(start, end)
        if item is not None:
            candidates.append(item)
    candidates.sort()
    merged: list[PastedRange] = []
    for item in candidates:
        if merged and item.start < merged[-1].end:
            previous = merged.pop()
            merged.append(PastedRange(previous.start, max(previous.end, item.end)))
        else:
            merged.append(item)
    return tuple(merged)


def ranges_to_payload(ranges: Iterable[PastedRange]) -> list[dict[str, int]]:
    return [item.to_dict() for item in ranges]


def ranges_from_payload(payload: Any, text_length: int | None = None) -> RangeSet:
    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        return ()
    return normalize_ranges(payload, text_length)


def _read_bounds(value: Any) -> tuple[int, int] | None:
    if isinstance(value, PastedRange):
        return value.start, value.end
    if isinstance(value, Mapping):
        start, end = value.get("start"), value.get("end")
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 2:
        start, end = value[0], value[1]
    else:
        return None
    if isinstance(start, bool) or isinstance(end, bool):
        return None
    try:
        return int(start), int(end)
    except (TypeError, ValueError):
        return None


def _finalize(ranges: Iterable[PastedRange]) -> RangeSet:
    return tuple(sorted(item for item in ranges if item.end > item.start))
