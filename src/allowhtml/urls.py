"""URL validation for URL-bearing attributes."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING
from urllib.parse import SplitResult, urlsplit, urlunsplit

if TYPE_CHECKING:
    from .policy import Policy

# (element, attribute) pairs whose values are URLs
URL_ATTRIBUTES: frozenset[tuple[str, str]] = frozenset(
    [("a", "href"), ("area", "href"), ("base", "href"), ("link", "href")]
    + [(name, "cite") for name in ("blockquote", "del", "ins", "q")]
    + [(name, "src") for name in ("audio", "embed", "iframe", "img", "script", "source", "track", "video")]
)

_WHITESPACE = (" ", "\t", "\n")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_BAD_PERCENT_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_DATA_URI_BASE64_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)


def is_url_attribute(element: str, attr: str) -> bool:
    return (element, attr) in URL_ATTRIBUTES


def parse_url(raw: str) -> SplitResult | None:
    """Split a URL into components, or return None if it does not parse."""
    if _CONTROL_CHARS.search(raw) or _BAD_PERCENT_ESCAPE.search(raw):
        return None
    try:
        parsed = urlsplit(raw)
        # Raises for a non-numeric or out of range port
        parsed.port  # noqa: B018
    except ValueError:
        return None
    return parsed


def is_fully_qualified(raw: str) -> bool:
    """True when the URL names a host, e.g. ``https://x.com/`` or ``//x.com``."""
    parsed = parse_url(raw.strip())
    return parsed is not None and parsed.netloc != ""


def validate_url(raw: str, policy: Policy) -> str | None:
    """Return the re-serialized URL if the policy accepts it, else None."""
    url = raw.strip()
    if any(char in url for char in _WHITESPACE):
        if not url.lower().startswith("data:"):
            return None
        prefix = _DATA_URI_BASE64_PREFIX.match(url)
        if prefix is not None:
            payload = url[prefix.end() :].replace("\r", "").replace("\n", "")
            url = prefix.group() + payload

    parsed = parse_url(url)
    if parsed is None:
        return None

    if parsed.scheme:
        if parsed.scheme in policy.url_schemes:
            predicate = policy.url_schemes[parsed.scheme]
            if predicate is None or predicate(parsed):
                return urlunsplit(parsed)
            return None
        for pattern in policy.url_scheme_patterns:
            if pattern.search(parsed.scheme):
                return urlunsplit(parsed)
        return None

    if policy.allow_relative:
        cleaned = urlunsplit(parsed)
        if cleaned:
            return cleaned
    return None
