"""Shared value patterns and convenience builders for common policy shapes."""

from __future__ import annotations

import base64
import binascii
import re
from urllib.parse import SplitResult

from .entities import decode_entities_in_text

# Patterns usable with ``.matching()``. All are anchored.
CELL_ALIGN = re.compile(r"(?i)^(center|justify|left|right|char)$")
CELL_VERTICAL_ALIGN = re.compile(r"(?i)^(baseline|bottom|middle|top)$")
DIRECTION = re.compile(r"(?i)^(auto|rtl|ltr)$")
IMAGE_ALIGN = re.compile(r"(?i)^(left|right|top|texttop|middle|absmiddle|baseline|bottom|absbottom)$")
INTEGER = re.compile(r"^[0-9]+$")
# Adapted from http://www.pelagodesign.com/blog/2009/05/20/iso-8601-date-validation-that-doesnt-suck/
ISO8601 = re.compile(
    r"^([\+-]?\d{4}(?!\d{2}\b))"
    r"((-?)((0[1-9]|1[0-2])(\3([12]\d|0[1-9]|3[01]))?|W([0-4]\d|5[0-2])(-?[1-7])?"
    r"|(00[1-9]|0[1-9]\d|[12]\d{2}|3([0-5]\d|6[1-6])))"
    r"([T\s]((([01]\d|2[0-3])((:?)[0-5]\d)?|24\:?00)([\.,]\d+(?!:))?)?"
    r"(\17[0-5]\d([\.,]\d+)?)?([zZ]|([\+-])([01]\d|2[0-3]):?([0-5]\d)?)?)?)?$"
)
LIST_TYPE = re.compile(r"^(circle|disc|square|a|A|i|I|1)$")
NAME = re.compile(r"^[a-zA-Z0-9\-_\$]+$")
NUMBER = re.compile(r"^[-+]?[0-9]*\.?[0-9]+([eE][-+]?[0-9]+)?$")
NUMBER_OR_PERCENT = re.compile(r"^[0-9]+%?$")
# Letters, digits and light punctuation
PARAGRAPH = re.compile(r"^[\w\s\-',\[\]!\./\\\(\)]*$")
SPACE_SEPARATED_TOKENS = re.compile(r"^[\s\w\-]+$")

LANGUAGE = re.compile(r"^[a-zA-Z]{2,20}$")
ID = re.compile(r"^[a-zA-Z0-9\:\-_\.]+$")
TABLE_SCOPE = re.compile(r"(?i)^(row|col)(group)?$")

_DATA_URI_IMAGE_PREFIX = re.compile(r"^image/(gif|jpeg|png|svg\+xml|webp);base64,", re.IGNORECASE)


def is_data_uri_image(url: SplitResult) -> bool:
    """Accept ``data:`` URLs holding a base64 encoded raster or SVG image."""
    if url.query or url.fragment:
        return False
    prefix = _DATA_URI_IMAGE_PREFIX.match(url.path)
    if prefix is None:
        return False
    try:
        base64.b64decode(url.path[prefix.end() :], validate=True)
    except binascii.Error:
        return False
    return True


_WHITESPACE_RUN = re.compile(r"[\t\n\f\r ]+")
_SNIP_BREAKS = " .-!?"


def clean_non_utf8(data):
    """Drop invalid UTF-8 sequences from bytes, or lone surrogates from a str."""
    if isinstance(data, str):
        return data.encode("utf-8", errors="ignore").decode("utf-8")
    return data.decode("utf-8", errors="ignore")


def snip_text(text, length):
    """Shorten plain text to at most length characters for previews.

    Whitespace runs collapse to one space and character references are
    decoded first. Longer text is cut at the last space or punctuation mark
    that fits, or hard at length when there is none.
    """
    text = decode_entities_in_text(_WHITESPACE_RUN.sub(" ", text.strip()))
    if len(text) <= length:
        return text
    text = text[:length]
    cut = max(text.rfind(char) for char in _SNIP_BREAKS)
    if cut != -1:
        return text[:cut]
    return clean_non_utf8(text)


class PolicyHelpers:
    """Builders for frequently needed policy fragments, mixed into Policy."""

    __slots__ = ()

    def allow_standard_urls(self):
        """Parseable http, https, mailto and relative URLs, with rel="nofollow"."""
        self.require_parseable_urls(True)
        self.allow_relative_urls(True)
        self.allow_url_schemes("mailto", "http", "https")
        self.require_nofollow_on_links(True)
        return self

    def allow_standard_attributes(self):
        """dir, lang, id and title on every allowed element."""
        self.allow_attrs("dir").matching(DIRECTION).globally()
        self.allow_attrs("lang").matching(LANGUAGE).globally()
        # id can collide with ids used by the embedding page
        self.allow_attrs("id").matching(ID).globally()
        self.allow_attrs("title").matching(PARAGRAPH).globally()
        return self

    def allow_images(self):
        self.allow_attrs("align").matching(IMAGE_ALIGN).on_elements("img")
        self.allow_attrs("alt").matching(PARAGRAPH).on_elements("img")
        self.allow_attrs("height", "width").matching(NUMBER_OR_PERCENT).on_elements("img")
        self.allow_standard_urls()
        self.allow_attrs("src").on_elements("img")
        return self

    def allow_data_uri_images(self):
        """Allow base64 encoded images in data: URLs (gif, jpeg, png, svg, webp)."""
        self.allow_url_scheme_with_custom_policy("data", is_data_uri_image)
        return self

    def allow_lists(self):
        self.allow_attrs("type").matching(LIST_TYPE).on_elements("ol", "ul")
        self.allow_attrs("type").matching(LIST_TYPE).on_elements("li")
        self.allow_attrs("value").matching(INTEGER).on_elements("li")
        self.allow_elements("dl", "dt", "dd")
        return self

    def allow_tables(self):
        self.allow_attrs("height", "width").matching(NUMBER_OR_PERCENT).on_elements("table")
        self.allow_attrs("summary").matching(PARAGRAPH).on_elements("table")
        self.allow_elements("caption", "table")

        self.allow_attrs("align").matching(CELL_ALIGN).on_elements("col", "colgroup")
        self.allow_attrs("height", "width").matching(NUMBER_OR_PERCENT).on_elements("col", "colgroup")
        self.allow_attrs("span").matching(INTEGER).on_elements("colgroup", "col")
        self.allow_attrs("valign").matching(CELL_VERTICAL_ALIGN).on_elements("col", "colgroup")

        self.allow_attrs("align").matching(CELL_ALIGN).on_elements("thead", "tr")
        self.allow_attrs("valign").matching(CELL_VERTICAL_ALIGN).on_elements("thead", "tr")

        self.allow_attrs("abbr").matching(PARAGRAPH).on_elements("td", "th")
        self.allow_attrs("align").matching(CELL_ALIGN).on_elements("td", "th")
        self.allow_attrs("colspan", "rowspan").matching(INTEGER).on_elements("td", "th")
        self.allow_attrs("headers").matching(SPACE_SEPARATED_TOKENS).on_elements("td", "th")
        self.allow_attrs("height", "width").matching(NUMBER_OR_PERCENT).on_elements("td", "th")
        self.allow_attrs("scope").matching(TABLE_SCOPE).on_elements("td", "th")
        self.allow_attrs("valign").matching(CELL_VERTICAL_ALIGN).on_elements("td", "th")
        self.allow_attrs("nowrap").matching(r"(?i)^(|nowrap)$").on_elements("td", "th")

        self.allow_attrs("align").matching(CELL_ALIGN).on_elements("tbody", "tfoot")
        self.allow_attrs("valign").matching(CELL_VERTICAL_ALIGN).on_elements("tbody", "tfoot")
        return self

    def allow_styling(self):
        """class attributes everywhere (inline style is configured with allow_styles)."""
        self.allow_attrs("class").matching(SPACE_SEPARATED_TOKENS).globally()
        return self
