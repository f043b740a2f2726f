"""Rule-based forbidden-term matching.

Purpose:
    Parse the `forbidden` configuration value into immutable rules and decide,
    per prompt term, whether the term is allowed, must be stripped, or must abort
    the whole request.

Rule syntax:
    - Rules are separated by `,`, `，` or newlines.
    - A trailing `!` marks a strict rule (`nsfw!`).
    - Matching is case-insensitive; punctuation is treated as whitespace.

Matching model:
    - Strict: the pattern occurs as a whole-word sequence inside the term.
      A strict hit rejects the request.
    - Loose: the pattern occurs anywhere inside the term (substring).
      A loose hit drops only that term.

Reload model:
    `ForbiddenRuleSet.reload` builds the complete new tuple first and then swaps
    a single reference, so concurrent readers observe either the old or the new
    list, never a partial one.

Bypass risk:
    Lexical checks can be bypassed by misspellings or unsupported scripts.
"""

import re
from dataclasses import dataclass
from typing import Iterable

_SEPARATOR = re.compile(r"\s*(?:[,，]|\n)\s*")
_NON_WORD = re.compile(r"[\W_]+")


def normalize_term(term: str) -> str:
    """Lower-case a term and collapse punctuation/underscores to single spaces."""
    return _NON_WORD.sub(" ", term.lower()).strip()


@dataclass(frozen=True)
class ForbiddenRule:
    pattern: str
    strict: bool = False

    def matches(self, term: str) -> bool:
        """Return whether this rule applies to a prompt term."""
        normalized = normalize_term(term)
        if not normalized or not self.pattern:
            return False
        if self.strict:
            return f" {self.pattern} " in f" {normalized} "
        return self.pattern in normalized


def parse_forbidden(source: str | None) -> tuple[ForbiddenRule, ...]:
    """Parse a configuration string into forbidden rules.

    Args:
        source: Raw `forbidden` config value; `None`/empty yields no rules.

    Returns:
        Tuple of rules in declaration order. Blank entries are skipped.
    """
    if not source:
        return ()

    rules = []
    for chunk in _SEPARATOR.split(source.strip()):
        strict = chunk.endswith("!")
        if strict:
            chunk = chunk[:-1]
        pattern = normalize_term(chunk)
        if pattern:
            rules.append(ForbiddenRule(pattern, strict))
    return tuple(rules)


class ForbiddenRuleSet:
    """Reloadable holder for the active forbidden rules."""

    def __init__(self, source: str | None = None):
        self._rules: tuple[ForbiddenRule, ...] = parse_forbidden(source)

    @property
    def rules(self) -> tuple[ForbiddenRule, ...]:
        return self._rules

    def reload(self, source: str | None) -> None:
        """Replace the active rules wholesale."""
        self._rules = parse_forbidden(source)

    def __iter__(self):
        return iter(self._rules)

    def __len__(self):
        return len(self._rules)


def strict_hit(rules: Iterable[ForbiddenRule], term: str) -> ForbiddenRule | None:
    """Return the first strict rule matching `term`, if any."""
    for rule in rules:
        if rule.strict and rule.matches(term):
            return rule
    return None


def loose_hit(rules: Iterable[ForbiddenRule], term: str) -> ForbiddenRule | None:
    """Return the first non-strict rule matching `term`, if any."""
    for rule in rules:
        if not rule.strict and rule.matches(term):
            return rule
    return None
