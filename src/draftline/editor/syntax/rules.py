"""Style rule definitions and the process-wide rule table."""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

__all__ = [
    "DEFAULT_RULES",
    "Matcher",
    "RegexMatcher",
    "RuleConfigError",
    "StyleRule",
    "load_rule_file",
    "parse_rules",
    "rule_set",
]

LOGGER = logging.getLogger(__name__)

_DEFAULT_FLAGS = re.IGNORECASE | re.ASCII
_FLAG_NAMES: Mapping[str, re.RegexFlag] = {
    "ignorecase": re.IGNORECASE,
    "ascii": re.ASCII,
    "multiline": re.MULTILINE,
    "dotall": re.DOTALL,
    "verbose": re.VERBOSE,
}


class RuleConfigError(ValueError):
    """Raised when a rule table cannot be parsed into :class:`StyleRule` objects."""


@runtime_checkable
class Matcher(Protocol):
    """Anything able to report ``(start, end)`` spans of interest in ``text``."""

    def scan(self, text: str) -> Iterator[tuple[int, int]]:
        ...


@dataclass(slots=True, frozen=True)
class RegexMatcher:
    """Matcher backed by a compiled regular expression."""

    pattern: str
    flags: int = _DEFAULT_FLAGS
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", re.compile(self.pattern, self.flags))

    def scan(self, text: str) -> Iterator[tuple[int, int]]:
        for match in self._compiled.finditer(text):
            start, end = match.span()
            if end > start:
                yield start, end


@dataclass(slots=True, frozen=True)
class StyleRule:
    """One heuristic style check. Higher ``priority`` wins overlaps."""

    id: str
    label: str
    description: str
    priority: int
    matcher: Matcher
    style_tag: str
    replacement: str | None = None


def _rule(
    rule_id: str,
    label: str,
    description: str,
    priority: int,
    pattern: str,
) -> StyleRule:
    return StyleRule(
        id=rule_id,
        label=label,
        description=description,
        priority=priority,
        matcher=RegexMatcher(pattern),
        style_tag=f"style-{rule_id}",
    )


# Surface-level patterns, not a grammar.
DEFAULT_RULES: tuple[StyleRule, ...] = (
    _rule(
        "passive",
        "Passive Voice",
        "Passive voice often makes sentences wordy and vague. Use the active voice.",
        10,
        r"\b(am|are|is|was|were|be|been|being)\s+(\w+ed|drawn|shown|taken|thrown|eaten|written|seen|done|gone)\b",
    ),
    _rule(
        "weak-verb",
        "Weak Verb",
        "Weak verbs (be-verbs) describe state, not action. Try a stronger verb.",
        5,
        r"\b(is|are|was|were|be|been|being)\b",
    ),
    _rule(
        "adverb",
        "Adverb",
        'Adverbs can be a sign of weak verbs. "She ran quickly" -> "She sprinted".',
        6,
        r"\b\w{2,}ly\b",
    ),
    _rule(
        "filler",
        "Filler Word",
        "Filler words add clutter without meaning.",
        7,
        r"\b(just|very|really|literally|basically|actually|virtually|totally|essentially|absolute|obviously)\b",
    ),
    _rule(
        "nominalization",
        "Hidden Verb",
        'Often shows up as a light verb + noun phrase (e.g., "make a decision" -> "decide"). '
        "This check is a heuristic, not a dictionary.",
        4,
        r"\b(?:make|makes|made|making|take|takes|took|taking|give|gives|gave|giving|have|has|had|having"
        r"|do|does|did|doing|perform|performs|performed|performing|conduct|conducts|conducted|conducting)\b"
        r"(?:[ \t]+(?:an?|the))?[ \t]+(?:\w+[ \t]+){0,2}\w+(?:tion|sion|ment|ance|ence)s?\b",
    ),
    _rule(
        "complex",
        "Complex Word",
        "Don't use a $10 word when a $1 word will do.",
        6,
        r"\b(utilize|facilitate|implement|endeavor|subsequently|accordingly|commence|approximately|ascertain)\b",
    ),
    _rule(
        "cliche",
        "Cliché",
        "Clichés are tired phrases. Be original.",
        8,
        r"\b(at the end of the day|avoid like the plague|better late than never|bite the bullet|break the ice)\b",
    ),
)


def parse_rules(payload: Any, *, source: str = "<rules>") -> tuple[StyleRule, ...]:
    """Build rules from a ``{"rules": [...]}`` mapping or a bare list of entries."""

    entries = payload.get("rules") if isinstance(payload, Mapping) else payload
    if not isinstance(entries, list):
        raise RuleConfigError(f"{source}: expected a list of rules")
    rules: list[StyleRule] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        rule = _parse_entry(entry, label=f"{source}[{index}]")
        if rule.id in seen:
            raise RuleConfigError(f"{source}[{index}]: duplicate rule id {rule.id!r}")
        seen.add(rule.id)
        rules.append(rule)
    return tuple(rules)


def load_rule_file(path: Path | str) -> tuple[StyleRule, ...]:
    """Load a YAML rule table from ``path``."""

    target = Path(path).expanduser()
    parser = YAML(typ="safe")
    try:
        payload = parser.load(target.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuleConfigError(f"Unable to read rule file {target}: {exc}") from exc
    except YAMLError as exc:
        raise RuleConfigError(f"Rule file {target} is not valid YAML: {exc}") from exc
    rules = parse_rules(payload, source=str(target))
    LOGGER.debug("Loaded %d style rules from %s", len(rules), target)
    return rules


@functools.lru_cache(maxsize=None)
def rule_set(path: str | None = None) -> tuple[StyleRule, ...]:
    """Return the shared read-only rule table, loading it on first use."""

    if path is None:
        return DEFAULT_RULES
    return load_rule_file(path)


def _parse_entry(entry: Any, *, label: str) -> StyleRule:
    if not isinstance(entry, Mapping):
        raise RuleConfigError(f"{label}: rule entries must be mappings")
    missing = [key for key in ("id", "pattern", "priority") if entry.get(key) in (None, "")]
    if missing:
        raise RuleConfigError(f"{label}: missing required keys {missing}")
    rule_id = str(entry["id"]).strip()
    priority = entry["priority"]
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise RuleConfigError(f"{label}: priority must be an integer")
    try:
        matcher = RegexMatcher(str(entry["pattern"]), _parse_flags(entry.get("flags"), label))
    except re.error as exc:
        raise RuleConfigError(f"{label}: invalid pattern for rule {rule_id!r}: {exc}") from exc
    replacement = entry.get("replacement")
    return StyleRule(
        id=rule_id,
        label=str(entry.get("label") or rule_id),
        description=str(entry.get("description") or ""),
        priority=priority,
        matcher=matcher,
        style_tag=str(entry.get("style_tag") or f"style-{rule_id}"),
        replacement=None if replacement is None else str(replacement),
    )


def _parse_flags(value: Any, label: str) -> int:
    if value is None:
        return _DEFAULT_FLAGS
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise RuleConfigError(f"{label}: flags must be a list of names")
    flags = 0
    for name in value:
        flag = _FLAG_NAMES.get(str(name).strip().lower())
        if flag is None:
            raise RuleConfigError(f"{label}: unknown regex flag {name!r}")
        flags |= flag
    return flags
