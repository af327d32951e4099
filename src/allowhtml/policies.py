"""Ready-made policies. Each call returns a new Policy that may be extended."""

from __future__ import annotations

from .helpers import DIRECTION, ISO8601, NUMBER, PARAGRAPH, SPACE_SEPARATED_TOKENS
from .policy import Policy


def strict_policy() -> Policy:
    """Strip every element and attribute, keeping only (escaped) text."""
    return Policy()


def strip_tags_policy() -> Policy:
    """Remove all markup; words separated only by tags stay apart."""
    return Policy().add_space_when_stripping_tag(True)


def ugc_policy() -> Policy:
    """Rich formatting suitable for user generated content.

    Links, images, lists and tables are allowed; anything that can run
    script, embed other documents or alter the page layout is not.
    """
    p = Policy()

    p.allow_standard_attributes()
    p.allow_standard_urls()

    # Sections
    p.allow_elements("article", "aside", "figure", "section", "summary", "hgroup")
    p.allow_attrs("open").matching(r"(?i)^(|open)$").on_elements("details")
    p.allow_elements("h1", "h2", "h3", "h4", "h5", "h6")

    # Grouping
    p.allow_attrs("cite").on_elements("blockquote")
    p.allow_elements("br", "div", "hr", "p", "span", "wbr")

    # Links and image maps
    p.allow_attrs("href").on_elements("a")
    p.allow_attrs("name").matching(r"^[\w\-]+$").on_elements("map")
    p.allow_attrs("alt").matching(PARAGRAPH).on_elements("area")
    p.allow_attrs("coords").matching(r"^([0-9]+,)+[0-9]+$").on_elements("area")
    p.allow_attrs("href").on_elements("area")
    p.allow_attrs("rel").matching(SPACE_SEPARATED_TOKENS).on_elements("area")
    p.allow_attrs("shape").matching(r"(?i)^(default|circle|rect|poly)$").on_elements("area")
    p.allow_attrs("usemap").matching(r"(?i)^#[\w\-]+$").on_elements("img")
    p.allow_images()

    # Phrasing
    p.allow_elements(
        "abbr", "acronym", "cite", "code", "dfn", "em", "figcaption", "mark", "s", "samp", "strong", "sub", "sup", "var"
    )
    p.allow_attrs("cite").on_elements("q")
    p.allow_attrs("datetime").matching(ISO8601).on_elements("time")
    p.allow_elements("b", "i", "pre", "small", "strike", "tt", "u")
    p.allow_attrs("dir").matching(DIRECTION).on_elements("bdi", "bdo")
    p.allow_elements("rp", "rt", "ruby")

    # Edits
    p.allow_attrs("cite").matching(PARAGRAPH).on_elements("del", "ins")
    p.allow_attrs("datetime").matching(ISO8601).on_elements("del", "ins")

    p.allow_lists()
    p.allow_tables()

    # Forms are not allowed, apart from elements that only present data
    p.allow_attrs("value", "min", "max", "low", "high", "optimum").matching(NUMBER).on_elements("meter")
    p.allow_attrs("value", "max").matching(NUMBER).on_elements("progress")
    return p
