"""Line/segment model combining pasted, style and focus layers for painting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, Sequence

from ..core.ranges import PastedRange
from .paragraphs import focused_paragraph_span, iter_paragraphs
from .syntax.annotator import annotate
from .syntax.rules import StyleRule

__all__ = ["RenderLine", "RenderSegment", "SegmentKind", "build_render_lines"]

SegmentKind = Literal["plain", "pasted", "style"]


@dataclass(slots=True, frozen=True)
class RenderSegment:
    start: int
    end: int
    kind: SegmentKind
    rule: StyleRule | None = None


@dataclass(slots=True)
class RenderLine:
    """One newline-separated paragraph and the segments painted over it."""

    start: int
    end: int
    focused: bool = True
    segments: list[RenderSegment] = field(default_factory=list)


def build_render_lines(
    text: str,
    pasted_ranges: Sequence[PastedRange],
    rules: Sequence[StyleRule],
    *,
    caret: int = 0,
    focus_mode: bool = False,
    style_check: bool = True,
    highlight_pasted: bool = True,
) -> list[RenderLine]:
    """Split ``text`` into paragraphs and classify every character run.

    Pasted runs are painted as pasted when highlighting is on; every other run
    is style checked on its own, so a style match never straddles the edge of
    pasted text. Outside focus mode all lines are focused.
    """

    focus = focused_paragraph_span(text, caret) if focus_mode and text else None
    lines: list[RenderLine] = []
    for start, end in iter_paragraphs(text):
        focused = focus is None or focus.start <= start <= focus.end
        line = RenderLine(start=start, end=end, focused=focused)
        for run_start, run_end, pasted in _pasted_runs(start, end, pasted_ranges):
            if pasted and highlight_pasted:
                line.segments.append(RenderSegment(run_start, run_end, "pasted"))
            elif style_check:
                line.segments.extend(_style_segments(text, run_start, run_end, rules))
            else:
                line.segments.append(RenderSegment(run_start, run_end, "plain"))
        lines.append(line)
    return lines


def _pasted_runs(
    start: int,
    end: int,
    pasted_ranges: Iterable[PastedRange],
) -> list[tuple[int, int, bool]]:
    runs: list[tuple[int, int, bool]] = []

    def push(run_start: int, run_end: int, pasted: bool) -> None:
        if run_end <= run_start:
            return
        if runs and runs[-1][2] == pasted and runs[-1][1] == run_start:
            runs[-1] = (runs[-1][0], run_end, pasted)
        else:
            runs.append((run_start, run_end, pasted))

    cursor = start
    for item in pasted_ranges:
        if item.end <= start or item.start >= end:
            continue
        clipped_start = max(item.start, start)
        clipped_end = min(item.end, end)
        push(cursor, clipped_start, False)
        push(clipped_start, clipped_end, True)
        cursor = clipped_end
    push(cursor, end, False)
    return runs


def _style_segments(
    text: str,
    start: int,
    end: int,
    rules: Sequence[StyleRule],
) -> list[RenderSegment]:
    segments: list[RenderSegment] = []
    cursor = start
    for match in annotate(text[start:end], rules):
        match_start, match_end = start + match.start, start + match.end
        if match_start > cursor:
            segments.append(RenderSegment(cursor, match_start, "plain"))
        segments.append(RenderSegment(match_start, match_end, "style", match.rule))
        cursor = match_end
    if cursor < end:
        segments.append(RenderSegment(cursor, end, "plain"))
    return segments
