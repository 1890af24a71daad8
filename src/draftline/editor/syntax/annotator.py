"""Priority-based overlap resolution for style annotations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from ...core.ranges import TextRange
from .rules import StyleRule

__all__ = [
    "DEFAULT_SUGGESTION_RADIUS",
    "Match",
    "Suggestion",
    "annotate",
    "collect_matches",
    "find_suggestion",
]

DEFAULT_SUGGESTION_RADIUS = 500


@dataclass(slots=True, frozen=True)
class Match:
    """A rule hit over ``[start, end)``; produced per scan and never stored."""

    start: int
    end: int
    rule: StyleRule

    def overlaps(self, other: Match) -> bool:
        return self.start < other.end and self.end > other.start

    def text_in(self, text: str) -> str:
        return text[self.start : self.end]


@dataclass(slots=True, frozen=True)
class Suggestion:
    """Best rule hit under the caret, as shown in the side panel."""

    match: Match
    text: str

    @property
    def rule(self) -> StyleRule:
        return self.match.rule


def collect_matches(text: str, rules: Iterable[StyleRule], *, offset: int = 0) -> list[Match]:
    """Run every rule over ``text``; overlapping hits are all kept."""

    matches: list[Match] = []
    if not text:
        return matches
    for rule in rules:
        for start, end in rule.matcher.scan(text):
            matches.append(Match(start + offset, end + offset, rule))
    return matches


def annotate(text: str, rules: Sequence[StyleRule]) -> list[Match]:
    """Return non-overlapping matches over ``text`` ordered by start offset.

    Candidates are accepted greedily by priority (highest first, earliest
    start breaking ties); a candidate touching any accepted span by even one
    character is rejected whatever its length.
    """

    candidates = collect_matches(text, rules)
    candidates.sort(key=lambda item: (-item.rule.priority, item.start))
    accepted: list[Match] = []
    for candidate in candidates:
        if any(candidate.overlaps(existing) for existing in accepted):
            continue
        accepted.append(candidate)
    accepted.sort(key=lambda item: item.start)
    return accepted


def find_suggestion(
    text: str,
    caret: int,
    rules: Sequence[StyleRule],
    *,
    radius: int = DEFAULT_SUGGESTION_RADIUS,
    selection: TextRange | None = None,
) -> Suggestion | None:
    """Return the highest-priority match covering ``caret`` inside a scan window.

    Only ``[caret - radius, caret + radius)`` is scanned. Nothing is reported
    while ``selection`` spans actual text.
    """

    if selection is not None and not selection.is_caret:
        return None
    caret = max(0, min(caret, len(text)))
    window_start = max(0, caret - radius)
    window_end = min(len(text), caret + radius)
    covering = [
        match
        for match in collect_matches(text[window_start:window_end], rules, offset=window_start)
        if match.start <= caret <= match.end
    ]
    if not covering:
        return None
    covering.sort(key=lambda item: -item.rule.priority)
    best = covering[0]
    return Suggestion(match=best, text=best.text_in(text))
