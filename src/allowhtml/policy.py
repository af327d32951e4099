"""Policy construction: the allowlist of elements, attributes, styles and URLs.

A Policy is built once with the chainable methods below and then used,
read-only, for any number of sanitize calls (from any number of threads).
Mutating a policy after it has been used to sanitize is not supported.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING
from urllib.parse import SplitResult

from .errors import ConstructionError
from .helpers import PolicyHelpers
from .matchers import Matcher, Predicate, compile_pattern, enum_matcher, predicate_matcher, regex_matcher
from .sanitize import sanitize, sanitize_bytes, sanitize_reader, sanitize_reader_to_writer

if TYPE_CHECKING:
    from .tokenizer import TokenizerOpts

UrlPredicate = Callable[[SplitResult], bool]
PatternLike = str | re.Pattern[str]

SANDBOX_ALLOW_DOWNLOADS = "allow-downloads"
SANDBOX_ALLOW_DOWNLOADS_WITHOUT_USER_ACTIVATION = "allow-downloads-without-user-activation"
SANDBOX_ALLOW_FORMS = "allow-forms"
SANDBOX_ALLOW_MODALS = "allow-modals"
SANDBOX_ALLOW_ORIENTATION_LOCK = "allow-orientation-lock"
SANDBOX_ALLOW_POINTER_LOCK = "allow-pointer-lock"
SANDBOX_ALLOW_POPUPS = "allow-popups"
SANDBOX_ALLOW_POPUPS_TO_ESCAPE_SANDBOX = "allow-popups-to-escape-sandbox"
SANDBOX_ALLOW_PRESENTATION = "allow-presentation"
SANDBOX_ALLOW_SAME_ORIGIN = "allow-same-origin"
SANDBOX_ALLOW_SCRIPTS = "allow-scripts"
SANDBOX_ALLOW_STORAGE_ACCESS_BY_USER_ACTIVATION = "allow-storage-access-by-user-activation"
SANDBOX_ALLOW_TOP_NAVIGATION = "allow-top-navigation"
SANDBOX_ALLOW_TOP_NAVIGATION_BY_USER_ACTIVATION = "allow-top-navigation-by-user-activation"

SANDBOX_TOKENS: frozenset[str] = frozenset(
    [
        SANDBOX_ALLOW_DOWNLOADS,
        SANDBOX_ALLOW_DOWNLOADS_WITHOUT_USER_ACTIVATION,
        SANDBOX_ALLOW_FORMS,
        SANDBOX_ALLOW_MODALS,
        SANDBOX_ALLOW_ORIENTATION_LOCK,
        SANDBOX_ALLOW_POINTER_LOCK,
        SANDBOX_ALLOW_POPUPS,
        SANDBOX_ALLOW_POPUPS_TO_ESCAPE_SANDBOX,
        SANDBOX_ALLOW_PRESENTATION,
        SANDBOX_ALLOW_SAME_ORIGIN,
        SANDBOX_ALLOW_SCRIPTS,
        SANDBOX_ALLOW_STORAGE_ACCESS_BY_USER_ACTIVATION,
        SANDBOX_ALLOW_TOP_NAVIGATION,
        SANDBOX_ALLOW_TOP_NAVIGATION_BY_USER_ACTIVATION,
    ]
)

# Elements that mean something even when every attribute was stripped.
# <bdo> is absent on purpose: without "dir" it is pointless.
DEFAULT_ELEMENTS_WITHOUT_ATTRS: frozenset[str] = frozenset(
    """
    abbr acronym address article aside audio b bdi big blockquote body br
    button canvas caption center cite code col colgroup datalist dd del
    details dfn dialog div dl dt em fieldset figcaption figure footer h1 h2
    h3 h4 h5 h6 head header hgroup hr html i ins kbd li main mark meter nav
    ol optgroup option output p picture pre progress q rb rp rt rtc ruby s
    samp section select small span strike strong style sub summary sup svg
    table tbody td textarea tfoot th thead time tr tt u ul var video wbr
    """.split()
)

# Elements removed together with their content unless explicitly allowed
DEFAULT_SKIP_CONTENT: frozenset[str] = frozenset(
    ["frame", "frameset", "iframe", "noembed", "noframes", "noscript", "nostyle", "object", "script", "style", "title"]
)


def _pattern_key(pattern: re.Pattern[str]) -> tuple[str, int]:
    return (pattern.pattern, pattern.flags)


def _lower_all(names: Iterable[str]) -> list[str]:
    return [name.lower() for name in names]


@dataclass(frozen=True, slots=True)
class AttributeRule:
    """Keep an attribute (or style property), optionally only for matching values."""

    matcher: Matcher | None = None

    def accepts(self, value: str) -> bool:
        return self.matcher is None or self.matcher.accepts(value)


@dataclass(slots=True)
class PatternRule:
    """Rules for every element whose name matches pattern."""

    pattern: re.Pattern[str]
    rules: dict[str, AttributeRule] = field(default_factory=dict)

    def matches(self, element: str) -> bool:
        return self.pattern.search(element) is not None


class AttrPolicyBuilder:
    """Returned by ``Policy.allow_attrs``; pick a matcher, then a scope."""

    __slots__ = ("_matcher", "_names", "_policy")

    def __init__(self, policy: Policy, names: Iterable[str]) -> None:
        self._policy = policy
        self._names = _lower_all(names)
        self._matcher: Matcher | None = None

    def matching(self, pattern: PatternLike) -> AttrPolicyBuilder:
        self._matcher = regex_matcher(pattern)
        return self

    def matching_handler(self, predicate: Predicate) -> AttrPolicyBuilder:
        self._matcher = predicate_matcher(predicate)
        return self

    def on_elements(self, *elements: str) -> Policy:
        policy = self._policy
        for element in _lower_all(elements):
            rules = policy.element_attrs.setdefault(element, {})
            for name in self._names:
                rules[name] = AttributeRule(self._matcher)
        return policy

    def on_elements_matching(self, pattern: PatternLike) -> Policy:
        policy = self._policy
        rule = policy._pattern_rule(policy.pattern_attrs, pattern)
        for name in self._names:
            rule.rules[name] = AttributeRule(self._matcher)
        return policy

    def globally(self) -> Policy:
        policy = self._policy
        for name in self._names:
            policy.global_attrs[name] = AttributeRule(self._matcher)
        return policy


class StylePolicyBuilder:
    """Returned by ``Policy.allow_styles``; pick a matcher, then a scope."""

    __slots__ = ("_matcher", "_names", "_policy")

    def __init__(self, policy: Policy, names: Iterable[str]) -> None:
        self._policy = policy
        self._names = _lower_all(names)
        self._matcher: Matcher | None = None

    def matching(self, pattern: PatternLike) -> StylePolicyBuilder:
        self._matcher = regex_matcher(pattern)
        return self

    def matching_enum(self, *values: str) -> StylePolicyBuilder:
        self._matcher = enum_matcher(values)
        return self

    def matching_handler(self, predicate: Predicate) -> StylePolicyBuilder:
        self._matcher = predicate_matcher(predicate)
        return self

    def on_elements(self, *elements: str) -> Policy:
        policy = self._policy
        for element in _lower_all(elements):
            rules = policy.element_styles.setdefault(element, {})
            for name in self._names:
                rules[name] = AttributeRule(self._matcher)
        return policy

    def on_elements_matching(self, pattern: PatternLike) -> Policy:
        policy = self._policy
        rule = policy._pattern_rule(policy.pattern_styles, pattern)
        for name in self._names:
            rule.rules[name] = AttributeRule(self._matcher)
        return policy

    def globally(self) -> Policy:
        policy = self._policy
        for name in self._names:
            policy.global_styles[name] = AttributeRule(self._matcher)
        return policy


class NoAttrsBuilder:
    """Returned by ``Policy.allow_no_attrs``."""

    __slots__ = ("_policy",)

    def __init__(self, policy: Policy) -> None:
        self._policy = policy

    def on_elements(self, *elements: str) -> Policy:
        policy = self._policy
        for element in _lower_all(elements):
            policy.elements_without_attrs.add(element)
            policy.element_attrs.setdefault(element, {})
        return policy

    def on_elements_matching(self, pattern: PatternLike) -> Policy:
        policy = self._policy
        compiled = compile_pattern(pattern)
        policy.no_attr_patterns[_pattern_key(compiled)] = compiled
        policy._pattern_rule(policy.pattern_attrs, compiled)
        return policy


class Policy(PolicyHelpers):
    """An allowlist. A new Policy allows nothing: every tag is stripped."""

    __slots__ = (
        "add_space_on_strip",
        "add_target_blank",
        "allow_comments_flag",
        "allow_data_attrs",
        "allow_doc_type_flag",
        "allow_relative",
        "allow_unsafe_flag",
        "element_attrs",
        "element_styles",
        "elements_without_attrs",
        "global_attrs",
        "global_styles",
        "no_attr_patterns",
        "parseable_urls",
        "pattern_attrs",
        "pattern_styles",
        "require_cross_origin",
        "require_nofollow",
        "require_nofollow_fully_qualified",
        "require_noreferrer",
        "require_noreferrer_fully_qualified",
        "sandbox_tokens",
        "skip_content",
        "strict",
        "url_scheme_patterns",
        "url_schemes",
    )

    def __init__(self) -> None:
        # element -> attr -> rule; presence of the element key allows it
        self.element_attrs: dict[str, dict[str, AttributeRule]] = {}
        # Registration order matters: the first matching pattern wins
        self.pattern_attrs: dict[tuple[str, int], PatternRule] = {}
        self.global_attrs: dict[str, AttributeRule] = {}
        self.element_styles: dict[str, dict[str, AttributeRule]] = {}
        self.pattern_styles: dict[tuple[str, int], PatternRule] = {}
        self.global_styles: dict[str, AttributeRule] = {}
        self.elements_without_attrs: set[str] = set(DEFAULT_ELEMENTS_WITHOUT_ATTRS)
        self.no_attr_patterns: dict[tuple[str, int], re.Pattern[str]] = {}
        self.skip_content: set[str] = set(DEFAULT_SKIP_CONTENT)
        self.url_schemes: dict[str, UrlPredicate | None] = {}
        self.url_scheme_patterns: list[re.Pattern[str]] = []
        self.sandbox_tokens: tuple[str, ...] | None = None

        self.parseable_urls = False
        self.allow_relative = False
        self.require_nofollow = False
        self.require_nofollow_fully_qualified = False
        self.require_noreferrer = False
        self.require_noreferrer_fully_qualified = False
        self.add_target_blank = False
        self.require_cross_origin = False
        self.allow_comments_flag = False
        self.allow_doc_type_flag = False
        self.add_space_on_strip = False
        self.allow_unsafe_flag = False
        self.allow_data_attrs = False
        self.strict = False

    def _pattern_rule(self, registry: dict[tuple[str, int], PatternRule], pattern: PatternLike) -> PatternRule:
        compiled = compile_pattern(pattern)
        key = _pattern_key(compiled)
        rule = registry.get(key)
        if rule is None:
            rule = registry[key] = PatternRule(compiled)
        return rule

    # Elements

    def allow_elements(self, *names: str) -> Policy:
        for name in _lower_all(names):
            self.element_attrs.setdefault(name, {})
        return self

    def allow_elements_matching(self, pattern: PatternLike) -> Policy:
        self._pattern_rule(self.pattern_attrs, pattern)
        return self

    def allow_no_attrs(self) -> NoAttrsBuilder:
        return NoAttrsBuilder(self)

    def skip_elements_content(self, *names: str) -> Policy:
        self.skip_content.update(_lower_all(names))
        return self

    def allow_elements_content(self, *names: str) -> Policy:
        """Keep the text inside these elements even when the tags are stripped."""
        self.skip_content.difference_update(_lower_all(names))
        return self

    # Attributes and styles

    def allow_attrs(self, *names: str) -> AttrPolicyBuilder:
        return AttrPolicyBuilder(self, names)

    def allow_styles(self, *names: str) -> StylePolicyBuilder:
        return StylePolicyBuilder(self, names)

    def allow_data_attributes(self) -> Policy:
        self.allow_data_attrs = True
        return self

    # URLs

    def allow_url_schemes(self, *schemes: str) -> Policy:
        self.parseable_urls = True
        for scheme in _lower_all(schemes):
            self.url_schemes[scheme] = None
        return self

    def allow_url_scheme_with_custom_policy(self, scheme: str, predicate: UrlPredicate) -> Policy:
        if not callable(predicate):
            raise TypeError(f"expected a callable, got {type(predicate).__name__}")
        self.parseable_urls = True
        self.url_schemes[scheme.lower()] = predicate
        return self

    def allow_url_schemes_matching(self, pattern: PatternLike) -> Policy:
        self.parseable_urls = True
        compiled = compile_pattern(pattern)
        if all(_pattern_key(existing) != _pattern_key(compiled) for existing in self.url_scheme_patterns):
            self.url_scheme_patterns.append(compiled)
        return self

    def require_parseable_urls(self, require: bool = True) -> Policy:
        self.parseable_urls = require
        return self

    def allow_relative_urls(self, allow: bool = True) -> Policy:
        self.allow_relative = allow
        if allow:
            self.parseable_urls = True
        return self

    # Link safety

    def require_nofollow_on_links(self, require: bool = True) -> Policy:
        self.require_nofollow = require
        return self

    def require_nofollow_on_fully_qualified_links(self, require: bool = True) -> Policy:
        self.require_nofollow_fully_qualified = require
        return self

    def require_noreferrer_on_links(self, require: bool = True) -> Policy:
        self.require_noreferrer = require
        return self

    def require_noreferrer_on_fully_qualified_links(self, require: bool = True) -> Policy:
        self.require_noreferrer_fully_qualified = require
        return self

    def add_target_blank_to_fully_qualified_links(self, add: bool = True) -> Policy:
        self.add_target_blank = add
        return self

    def require_cross_origin_anonymous(self, require: bool = True) -> Policy:
        self.require_cross_origin = require
        return self

    def require_sandbox_on_iframe(self, *tokens: str) -> Policy:
        """Force a sandbox attribute on iframes, keeping only the given tokens."""
        ordered: list[str] = []
        for token in _lower_all(tokens):
            if token not in SANDBOX_TOKENS:
                raise ConstructionError(f"unknown sandbox token {token!r}", token)
            if token not in ordered:
                ordered.append(token)
        self.sandbox_tokens = tuple(ordered)
        return self

    # Everything else

    def allow_comments(self) -> Policy:
        self.allow_comments_flag = True
        return self

    def allow_doc_type(self, allow: bool = True) -> Policy:
        self.allow_doc_type_flag = allow
        return self

    def add_space_when_stripping_tag(self, add: bool = True) -> Policy:
        self.add_space_on_strip = add
        return self

    def allow_unsafe(self, allow: bool = True) -> Policy:
        """Permit script and style elements (and their raw content) if otherwise allowed."""
        self.allow_unsafe_flag = allow
        return self

    def strict_empty_input(self, strict: bool = True) -> Policy:
        """Raise EmptyInputError for blank input instead of returning ''."""
        self.strict = strict
        return self

    # Lookups used while sanitizing

    def is_element_allowed(self, element: str) -> bool:
        if element in self.element_attrs:
            return True
        return any(rule.matches(element) for rule in self.pattern_attrs.values())

    def allows_no_attrs(self, element: str) -> bool:
        if element in self.elements_without_attrs:
            return True
        return any(pattern.search(element) for pattern in self.no_attr_patterns.values())

    def attr_rule(self, element: str, attr: str) -> AttributeRule | None:
        """Resolve the rule for attr on element: exact element, then pattern, then global."""
        return self._resolve(self.element_attrs, self.pattern_attrs, self.global_attrs, element, attr)

    def style_rule(self, element: str, prop: str) -> AttributeRule | None:
        return self._resolve(self.element_styles, self.pattern_styles, self.global_styles, element, prop)

    def has_style_rules(self, element: str) -> bool:
        if self.global_styles or self.element_styles.get(element):
            return True
        return any(rule.rules and rule.matches(element) for rule in self.pattern_styles.values())

    @staticmethod
    def _resolve(exact, patterns, global_rules, element, name):
        rules = exact.get(element)
        if rules and name in rules:
            return rules[name]
        for rule in patterns.values():
            if name in rule.rules and rule.matches(element):
                return rule.rules[name]
        return global_rules.get(name)

    # Sanitizing

    def sanitize(self, text: str, *, debug: bool = False) -> str:
        return sanitize(text, self, debug=debug)

    def sanitize_bytes(self, data: bytes, *, debug: bool = False) -> bytes:
        return sanitize_bytes(data, self, debug=debug)

    def sanitize_reader(self, reader: IO, *, debug: bool = False, tokenizer_opts: TokenizerOpts | None = None) -> str:
        return sanitize_reader(reader, self, debug=debug, tokenizer_opts=tokenizer_opts)

    def sanitize_reader_to_writer(
        self,
        reader: IO,
        writer: IO,
        *,
        debug: bool = False,
        tokenizer_opts: TokenizerOpts | None = None,
    ) -> None:
        sanitize_reader_to_writer(reader, writer, self, debug=debug, tokenizer_opts=tokenizer_opts)
