"""Value matchers shared by attribute and style rules.

Every matcher exposes ``accepts(value) -> bool`` so rule resolution never
needs to know which kind it holds.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .errors import ConstructionError

Predicate = Callable[[str], bool]


@dataclass(frozen=True, slots=True)
class RegexMatcher:
    # Unanchored search; anchor the pattern to require a full match.
    pattern: re.Pattern[str]

    def accepts(self, value: str) -> bool:
        return self.pattern.search(value) is not None


@dataclass(frozen=True, slots=True)
class PredicateMatcher:
    predicate: Predicate

    def accepts(self, value: str) -> bool:
        return bool(self.predicate(value))


@dataclass(frozen=True, slots=True)
class EnumMatcher:
    values: frozenset[str]

    def accepts(self, value: str) -> bool:
        return value.lower() in self.values


Matcher = RegexMatcher | PredicateMatcher | EnumMatcher


def compile_pattern(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    """Compile a caller-supplied pattern, failing fast on bad input."""
    if isinstance(pattern, re.Pattern):
        return pattern
    if isinstance(pattern, str):
        try:
            return re.compile(pattern)
        except re.error as exc:
            raise ConstructionError(f"invalid regular expression {pattern!r}: {exc}", pattern) from exc
    raise TypeError(f"expected a string or compiled pattern, got {type(pattern).__name__}")


def regex_matcher(pattern: str | re.Pattern[str]) -> RegexMatcher:
    return RegexMatcher(compile_pattern(pattern))


def predicate_matcher(predicate: Predicate) -> PredicateMatcher:
    if not callable(predicate):
        raise TypeError(f"expected a callable, got {type(predicate).__name__}")
    return PredicateMatcher(predicate)


def enum_matcher(values: Iterable[str]) -> EnumMatcher:
    return EnumMatcher(frozenset(value.lower() for value in values))
