"""Tests for style rule tables."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from draftline.editor.syntax.rules import (
    DEFAULT_RULES,
    Matcher,
    RegexMatcher,
    RuleConfigError,
    load_rule_file,
    parse_rules,
    rule_set,
)


def test_default_rules_carry_expected_priorities() -> None:
    priorities = {rule.id: rule.priority for rule in DEFAULT_RULES}

    assert priorities == {
        "passive": 10,
        "weak-verb": 5,
        "adverb": 6,
        "filler": 7,
        "nominalization": 4,
        "complex": 6,
        "cliche": 8,
    }
    assert all(rule.style_tag == f"style-{rule.id}" for rule in DEFAULT_RULES)


def test_regex_matcher_is_case_insensitive_and_skips_empty_hits() -> None:
    matcher = RegexMatcher(r"\bjust\b|x*")

    assert isinstance(matcher, Matcher)
    assert list(matcher.scan("Just do it, JUST")) == [(0, 4), (12, 16)]


def test_rule_set_defaults_to_builtin_table() -> None:
    assert rule_set() is DEFAULT_RULES


def test_load_rule_file_reads_yaml(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text(
        "rules:\n"
        "  - id: hedge\n"
        "    label: Hedge\n"
        "    description: Commit to the claim.\n"
        "    pattern: '\\b(perhaps|maybe)\\b'\n"
        "    priority: 3\n"
        "  - id: shout\n"
        "    pattern: '[A-Z]{4,}'\n"
        "    priority: 2\n"
        "    flags: [ascii]\n"
        "    replacement: calm\n",
        encoding="utf-8",
    )

    rules = load_rule_file(path)

    assert [rule.id for rule in rules] == ["hedge", "shout"]
    hedge, shout = rules
    assert hedge.label == "Hedge"
    assert list(hedge.matcher.scan("Maybe so")) == [(0, 5)]
    assert shout.label == "shout"
    assert shout.style_tag == "style-shout"
    assert shout.replacement == "calm"
    assert list(shout.matcher.scan("loud LOUD")) == [(5, 9)]


def test_rule_set_caches_loaded_tables(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text("- {id: a, pattern: 'a+', priority: 1}\n", encoding="utf-8")

    first = rule_set(str(path))

    assert rule_set(str(path)) is first
    assert first[0].id == "a"


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"rules": "nope"}, "expected a list"),
        ([{"id": "a", "pattern": "x"}], "missing required keys"),
        ([{"id": "a", "pattern": "x", "priority": "high"}], "priority must be an integer"),
        ([{"id": "a", "pattern": "(", "priority": 1}], "invalid pattern"),
        ([{"id": "a", "pattern": "x", "priority": 1, "flags": ["loud"]}], "unknown regex flag"),
        (
            [{"id": "a", "pattern": "x", "priority": 1}, {"id": "a", "pattern": "y", "priority": 2}],
            "duplicate rule id",
        ),
        (["not a mapping"], "must be mappings"),
    ],
)
def test_parse_rules_rejects_bad_entries(payload, message: str) -> None:
    with pytest.raises(RuleConfigError, match=re.escape(message)):
        parse_rules(payload)


def test_load_rule_file_wraps_io_and_yaml_errors(tmp_path: Path) -> None:
    with pytest.raises(RuleConfigError, match="Unable to read"):
        load_rule_file(tmp_path / "missing.yaml")

    broken = tmp_path / "broken.yaml"
    broken.write_text("rules: [\n", encoding="utf-8")
    with pytest.raises(RuleConfigError, match="not valid YAML"):
        load_rule_file(broken)
