"""Tests for the Markdown preview helpers."""

from __future__ import annotations

from draftline.editor.syntax.markdown import normalize_nested_lists, render_preview


def test_bullets_after_ordered_item_are_nested() -> None:
    source = "1. One\n2. Two\n- child\n- child two\n3. Three"

    assert normalize_nested_lists(source) == "1. One\n2. Two\n    - child\n    - child two\n3. Three"


def test_blank_lines_between_parent_and_bullets_are_kept() -> None:
    source = "1. Parent\n\n- child"

    assert normalize_nested_lists(source) == "1. Parent\n\n    - child"


def test_paragraph_ends_nesting() -> None:
    source = "1. Parent\n- child\nPlain text\n- loose"

    assert normalize_nested_lists(source) == "1. Parent\n    - child\n    Plain text\n- loose"


def test_fenced_code_is_left_alone() -> None:
    source = "1. Parent\n```\n- not a list\n```"

    assert normalize_nested_lists(source) == source


def test_plain_bullet_lists_are_untouched() -> None:
    source = "- a\n- b"

    assert normalize_nested_lists(source) == source


def test_render_preview_produces_html_and_metadata() -> None:
    preview = render_preview("# Title\n\nSome **bold** words here.\n\n## Part Two\n")

    assert preview.html.startswith('<div class="dl-markdown-preview">')
    assert "<h1>Title</h1>" in preview.html
    assert "<strong>bold</strong>" in preview.html
    assert preview.metadata["headings"] == [
        {"level": 1, "text": "Title", "anchor": "title"},
        {"level": 2, "text": "Part Two", "anchor": "part-two"},
    ]
    assert preview.metadata["stats"]["word_count"] == 7
    assert preview.metadata["truncated"] is False


def test_render_preview_escapes_raw_html() -> None:
    preview = render_preview("<script>alert(1)</script>")

    assert "<script>" not in preview.html
    assert "&lt;script&gt;" in preview.html


def test_render_preview_nests_lists() -> None:
    preview = render_preview("1. Parent\n- child")

    assert "<ol>" in preview.html
    assert preview.html.index("<ul>") > preview.html.index("<ol>")
    assert preview.html.index("<ul>") < preview.html.index("</ol>")


def test_render_preview_truncates_long_documents() -> None:
    text = "\n".join(f"line {index}" for index in range(200))

    preview = render_preview(text, max_chars=100)

    assert preview.metadata["truncated"] is True
    assert "Preview truncated" in preview.html
    assert preview.metadata["length"] == len(text)


def test_empty_preview() -> None:
    preview = render_preview("")

    assert preview.metadata["stats"] == {
        "word_count": 0,
        "char_count": 0,
        "line_count": 0,
        "reading_time_minutes": 0.0,
    }
