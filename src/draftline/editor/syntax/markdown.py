"""Markdown preview helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from markdown_it import MarkdownIt

__all__ = ["MAX_PREVIEW_CHARS", "MarkdownPreview", "normalize_nested_lists", "render_preview"]

MAX_PREVIEW_CHARS = 20_000
_TRUNCATION_NOTICE = "\n\n> _Preview truncated for performance._\n"
_HEADING_PATTERN = re.compile(r"^(?P<level>#{1,6})\s+(?P<title>.+?)\s*$", re.MULTILINE)
_WORD_PATTERN = re.compile(r"\b[\w'-]+\b")
_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
_FENCE = re.compile(r"^\s*```")
_ORDERED_ITEM = re.compile(r"^\d+\.\s+")
_BULLET_ITEM = re.compile(r"^[-*+]\s+")
_ANY_LIST_LINE = re.compile(r"^\s*(\d+\.|[-*+])\s+")
_NESTED_INDENT = "    "


@dataclass(slots=True)
class MarkdownPreview:
    """Container holding rendered HTML preview content and metadata."""

    html: str
    metadata: Dict[str, Any]


def normalize_nested_lists(markdown: str) -> str:
    """Indent bullet blocks that follow an ordered item so they nest under it.

    ``2. Parent`` followed by ``- Child`` lines (blank lines allowed between)
    renders the bullets as children of item 2 instead of closing the ordered
    list. Fenced code blocks are left untouched.
    """

    out: list[str] = []
    in_fence = False
    after_ordered_item = False
    nesting = False

    for line in re.split(r"\r?\n", markdown):
        if _FENCE.match(line):
            in_fence = not in_fence
            nesting = False
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue

        stripped = line.strip()
        if nesting and _ORDERED_ITEM.match(line):
            nesting = False
            after_ordered_item = True
            out.append(line)
            continue
        if not nesting and _BULLET_ITEM.match(line) and after_ordered_item:
            nesting = True

        if nesting:
            top_level = bool(line) and not line[0].isspace()
            if not stripped:
                out.append("")
            elif top_level:
                out.append(_NESTED_INDENT + line)
            else:
                out.append(line)
            if stripped and top_level and not _ANY_LIST_LINE.match(line):
                nesting = False
                after_ordered_item = False
            continue

        if stripped:
            after_ordered_item = bool(_ORDERED_ITEM.match(line))
        out.append(line)

    return "\n".join(out)


def render_preview(text: str, *, max_chars: Optional[int] = MAX_PREVIEW_CHARS) -> MarkdownPreview:
    """Render Markdown ``text`` into HTML with ``markdown-it-py``."""

    raw_text = text or ""
    body, truncated = _maybe_truncate(normalize_nested_lists(raw_text), max_chars)
    html_body = _build_renderer().render(body)
    metadata = {
        "length": len(raw_text),
        "headings": _extract_headings(raw_text),
        "stats": _calculate_stats(raw_text),
        "truncated": truncated,
    }
    return MarkdownPreview(html=f'<div class="dl-markdown-preview">{html_body}</div>', metadata=metadata)


def _maybe_truncate(text: str, max_chars: Optional[int]) -> Tuple[str, bool]:
    if max_chars is None or len(text) <= max_chars:
        return text, False
    truncated = text[:max_chars]
    last_newline = truncated.rfind("\n")
    if last_newline != -1 and last_newline > max_chars * 0.5:
        truncated = truncated[:last_newline]
    return truncated.rstrip() + _TRUNCATION_NOTICE, True


_MARKDOWN_RENDERER: Optional[MarkdownIt] = None


def _build_renderer() -> MarkdownIt:
    global _MARKDOWN_RENDERER
    if _MARKDOWN_RENDERER is None:
        renderer = MarkdownIt("commonmark", {"html": False, "typographer": True})
        renderer.enable("table")
        renderer.enable("strikethrough")
        _MARKDOWN_RENDERER = renderer
    return _MARKDOWN_RENDERER


def _extract_headings(text: str) -> list[Dict[str, Any]]:
    headings: list[Dict[str, Any]] = []
    for match in _HEADING_PATTERN.finditer(text):
        title = match.group("title").strip()
        if not title:
            continue
        headings.append({"level": len(match.group("level")), "text": title, "anchor": _slugify(title)})
    return headings


def _slugify(value: str) -> str:
    slug = _SLUG_PATTERN.sub("-", value.lower()).strip("-")
    return slug or "section"


def _calculate_stats(text: str) -> Dict[str, Any]:
    word_count = len(_WORD_PATTERN.findall(text))
    return {
        "word_count": word_count,
        "char_count": len(text),
        "line_count": 0 if not text else text.count("\n") + 1,
        "reading_time_minutes": round(word_count / 200, 2) if word_count else 0.0,
    }
