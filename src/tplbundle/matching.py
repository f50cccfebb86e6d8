"""Match rules that classify template source paths.

A configured pattern may be a literal path, a glob, a compiled regular
expression (or ``{regex = "..."}`` table in TOML), a predicate callable, or a
list mixing any of these. Every shape is normalized once at construction into
one of the rule variants below so that matching never has to inspect types.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from tplbundle.config import ConfigurationError
from tplbundle.paths import normalize_separators

PathPredicate = Callable[[str], bool]

_GLOB_CHARS = frozenset("*?[]{}")


@dataclass(slots=True, frozen=True)
class LiteralRule:
    """Matches one exact path."""

    value: str

    def matches(self, path: str) -> bool:
        return normalize_separators(path) == normalize_separators(self.value)


@dataclass(slots=True, frozen=True)
class GlobRule:
    """Matches a glob where ``*`` stays within a segment and ``**`` spans segments."""

    pattern: str
    compiled: re.Pattern[str]

    @classmethod
    def from_pattern(cls, pattern: str) -> GlobRule:
        return cls(pattern=pattern, compiled=glob_to_regex(normalize_separators(pattern)))

    def matches(self, path: str) -> bool:
        return self.compiled.fullmatch(normalize_separators(path)) is not None


@dataclass(slots=True, frozen=True)
class RegexRule:
    """Matches when the expression is found anywhere in the path."""

    compiled: re.Pattern[str]

    def matches(self, path: str) -> bool:
        return self.compiled.search(normalize_separators(path)) is not None


@dataclass(slots=True, frozen=True)
class PredicateRule:
    """Delegates to a user supplied callable."""

    predicate: PathPredicate

    def matches(self, path: str) -> bool:
        return bool(self.predicate(path))


MatchRule = LiteralRule | GlobRule | RegexRule | PredicateRule


class PatternMatcher:
    """True for a path when at least one normalized rule matches it."""

    __slots__ = ("_rules",)

    def __init__(self, rules: tuple[MatchRule, ...]) -> None:
        self._rules = rules

    @property
    def rules(self) -> tuple[MatchRule, ...]:
        return self._rules

    def matches(self, path: str) -> bool:
        return any(rule.matches(path) for rule in self._rules)

    def __call__(self, path: str) -> bool:
        return self.matches(path)


def build_matcher(value: object, field: str) -> PatternMatcher:
    """Normalize one pattern or a list of patterns into a PatternMatcher."""
    rules: list[MatchRule] = []
    _collect_rules(value, field, rules)
    return PatternMatcher(tuple(rules))


def build_rule(value: object, field: str) -> MatchRule:
    """Normalize one non-list pattern value into a rule variant."""
    if isinstance(value, str):
        if not value:
            raise ConfigurationError(f"Config field '{field}' contains an empty pattern.")
        if any(char in _GLOB_CHARS for char in value):
            try:
                return GlobRule.from_pattern(value)
            except re.error as exc:
                raise ConfigurationError(
                    f"Config field '{field}' has an invalid glob {value!r}: {exc}"
                ) from exc
        return LiteralRule(value)
    if isinstance(value, re.Pattern):
        return RegexRule(value)
    if isinstance(value, Mapping):
        expression = value.get("regex")
        if len(value) != 1 or not isinstance(expression, str):
            raise ConfigurationError(
                f"Config field '{field}' tables must have exactly one 'regex' string."
            )
        try:
            return RegexRule(re.compile(expression))
        except re.error as exc:
            raise ConfigurationError(
                f"Config field '{field}' has an invalid regex {expression!r}: {exc}"
            ) from exc
    if callable(value):
        return PredicateRule(value)
    raise ConfigurationError(
        f"Config field '{field}' must be a string, regex, predicate, or list of these."
    )


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a slash-separated glob into an anchored regular expression."""
    parts: list[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "*":
            if pattern.startswith("**", index):
                index += 2
                if index < length and pattern[index] == "/":
                    index += 1
                    parts.append("(?:.*/)?")
                else:
                    parts.append(".*")
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            end = pattern.find("]", index + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[index + 1 : end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body}]")
                index = end + 1
                continue
        elif char == "{":
            end = pattern.find("}", index + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                options = pattern[index + 1 : end].split(",")
                parts.append("(?:" + "|".join(re.escape(option) for option in options) + ")")
                index = end + 1
                continue
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts), flags=re.DOTALL)


def _collect_rules(value: object, field: str, rules: list[MatchRule]) -> None:
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _collect_rules(item, f"{field}[{index}]", rules)
        return
    rules.append(build_rule(value, field))
