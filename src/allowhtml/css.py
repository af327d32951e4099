"""Inline style handling: declaration splitting and per-property filtering."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .policy import Policy

# Stripped from a property name before it is looked up
VENDOR_PREFIXES = (
    "-webkit-",
    "-moz-",
    "-ms-",
    "-o-",
    "mso-",
    "-xv-",
    "-atsc-",
    "-wap-",
    "-khtml-",
    "prince-",
    "-ah-",
    "-hp-",
    "-ro-",
    "-rim-",
    "-tc-",
)

_UNSAFE_STYLE_VALUE = re.compile(
    r"[\\<>\x00-\x1f\x7f]|expression\s*\(|url\s*\(|image-set\s*\(|javascript\s*:|vbscript\s*:"
    r"|-moz-binding|behavior|@import",
    re.IGNORECASE,
)


def split_declarations(raw: str) -> list[tuple[str, str]]:
    """Split an inline style value into (property, value) pairs.

    Semicolons inside quotes or parentheses do not end a declaration.
    Properties are lowercased; both parts are whitespace-trimmed. Pieces with
    no colon or an empty property are skipped.
    """
    pieces: list[str] = []
    start = 0
    depth = 0
    quote = None
    i = 0
    length = len(raw)
    while i < length:
        ch = raw[i]
        if ch == "\\":
            i += 2
            continue
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            if depth:
                depth -= 1
        elif ch == ";" and depth == 0:
            pieces.append(raw[start:i])
            start = i + 1
        i += 1
    pieces.append(raw[start:])

    declarations = []
    for piece in pieces:
        prop, sep, value = piece.partition(":")
        if not sep:
            continue
        prop = prop.strip().lower()
        value = value.strip().rstrip(";").strip()
        if prop:
            declarations.append((prop, value))
    return declarations


def strip_vendor_prefix(prop: str) -> str:
    for prefix in VENDOR_PREFIXES:
        if prop.startswith(prefix):
            return prop[len(prefix) :]
    return prop


def is_safe_style_value(value: str) -> bool:
    """Fallback check for style rules registered without a matcher."""
    return _UNSAFE_STYLE_VALUE.search(value) is None


def filter_style(element: str, raw: str, policy: Policy) -> str:
    """Return the declarations of raw that policy allows on element.

    Survivors keep their order and are joined as ``prop: value`` with
    ``"; "``. An empty string means no declaration survived.
    """
    clean = []
    for prop, value in split_declarations(raw):
        rule = policy.style_rule(element, strip_vendor_prefix(prop))
        if rule is None or not value:
            continue
        candidate = value.lower()
        if rule.matcher is None:
            accepted = is_safe_style_value(candidate)
        else:
            accepted = rule.matcher.accepts(candidate)
        if accepted:
            clean.append(f"{prop}: {value}")
    return "; ".join(clean)
