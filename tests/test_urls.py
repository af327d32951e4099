from __future__ import annotations

import unittest

from allowhtml import Policy
from allowhtml.urls import is_fully_qualified, is_url_attribute, parse_url, validate_url


class TestValidateUrl(unittest.TestCase):
    def setUp(self) -> None:
        self.policy = Policy().allow_url_schemes("http", "https", "mailto").allow_relative_urls()

    def test_absolute_urls(self) -> None:
        assert validate_url("https://example.com/a?b=c#d", self.policy) == "https://example.com/a?b=c#d"
        assert validate_url("mailto:someone@example.com", self.policy) == "mailto:someone@example.com"

    def test_surrounding_whitespace_is_trimmed(self) -> None:
        assert validate_url("  https://example.com/ \n", self.policy) == "https://example.com/"

    def test_inner_whitespace_is_rejected(self) -> None:
        assert validate_url("java\tscript:alert(1)", self.policy) is None
        assert validate_url("https://exa mple.com/", self.policy) is None
        assert validate_url("https://example.com/\nx", self.policy) is None

    def test_unlisted_scheme_is_rejected(self) -> None:
        assert validate_url("javascript:alert(1)", self.policy) is None
        assert validate_url("JavaScript:alert(1)", self.policy) is None
        assert validate_url("ftp://example.com/", self.policy) is None

    def test_scheme_lookup_is_case_insensitive(self) -> None:
        assert validate_url("HTTPS://example.com/", self.policy) == "https://example.com/"

    def test_relative_urls(self) -> None:
        assert validate_url("/relative/path?x=1", self.policy) == "/relative/path?x=1"
        assert validate_url("page.html#top", self.policy) == "page.html#top"
        assert validate_url("//cdn.example.com/x.js", self.policy) == "//cdn.example.com/x.js"

    def test_relative_urls_need_permission(self) -> None:
        p = Policy().allow_url_schemes("https")
        assert validate_url("/x", p) is None

    def test_empty_relative_url_is_rejected(self) -> None:
        assert validate_url("#", self.policy) is None
        assert validate_url("", self.policy) is None

    def test_unparseable_urls(self) -> None:
        assert validate_url("http://example.com:99999/", self.policy) is None
        assert validate_url("http://example.com:port/", self.policy) is None
        assert validate_url("http://[::1/", self.policy) is None
        assert validate_url("http://example.com/%zz", self.policy) is None
        assert validate_url("http://exa\x01mple.com/", self.policy) is None

    def test_valid_percent_escapes(self) -> None:
        assert validate_url("/a%20b", self.policy) == "/a%20b"

    def test_custom_scheme_predicate(self) -> None:
        p = Policy().allow_url_scheme_with_custom_policy("https", lambda url: url.hostname == "example.com")
        assert validate_url("https://example.com/x", p) == "https://example.com/x"
        assert validate_url("https://evil.example/x", p) is None

    def test_reregistering_replaces_predicate(self) -> None:
        p = Policy().allow_url_scheme_with_custom_policy("https", lambda url: False)
        assert validate_url("https://example.com/", p) is None
        p.allow_url_schemes("https")
        assert validate_url("https://example.com/", p) == "https://example.com/"

    def test_scheme_patterns(self) -> None:
        p = Policy().allow_url_schemes_matching(r"^(web\+)?mastodon$")
        assert validate_url("web+mastodon://share?text=hi", p) == "web+mastodon://share?text=hi"
        assert validate_url("mastodon://x", p) == "mastodon://x"
        assert validate_url("webmastodon://x", p) is None

    def test_data_uri_images(self) -> None:
        p = Policy().allow_data_uri_images()
        assert validate_url("data:image/png;base64,iVBORw0KGgo=", p) == "data:image/png;base64,iVBORw0KGgo="
        assert validate_url("data:text/html;base64,PHNjcmlwdD4=", p) is None
        assert validate_url("data:image/png;base64,not*base64", p) is None
        assert validate_url("data:image/png,rawdata", p) is None

    def test_data_uri_line_breaks_are_removed(self) -> None:
        p = Policy().allow_data_uri_images()
        assert validate_url("data:image/png;base64,iVBOR\r\nw0KGgo=", p) == "data:image/png;base64,iVBORw0KGgo="


class TestUrlHelpers(unittest.TestCase):
    def test_url_attributes(self) -> None:
        assert is_url_attribute("a", "href")
        assert is_url_attribute("img", "src")
        assert is_url_attribute("blockquote", "cite")
        assert not is_url_attribute("a", "title")
        assert not is_url_attribute("p", "href")

    def test_fully_qualified(self) -> None:
        assert is_fully_qualified("https://x.com")
        assert is_fully_qualified("//x.com/a")
        assert not is_fully_qualified("/a")
        assert not is_fully_qualified("mailto:a@b.c")
        assert not is_fully_qualified("http://[::1")

    def test_parse_url(self) -> None:
        parsed = parse_url("https://example.com:8443/p?q#f")
        assert parsed.hostname == "example.com"
        assert parsed.port == 8443
        assert parse_url("http://x/%") is None


class TestUrlsInMarkup(unittest.TestCase):
    def test_href_is_validated(self) -> None:
        p = Policy().allow_attrs("href").on_elements("a").allow_url_schemes("http", "https")
        assert p.sanitize('<a href="javascript:alert(1)">x</a>') == "x"
        assert p.sanitize('<a href="https://x.com/">x</a>') == '<a href="https://x.com/">x</a>'

    def test_entity_encoded_scheme_is_caught(self) -> None:
        p = Policy().allow_attrs("href").on_elements("a").allow_url_schemes("https")
        assert p.sanitize('<a href="jav&#x09;ascript:alert(1)">x</a>') == "x"
        assert p.sanitize('<a href="&#106;avascript:alert(1)">x</a>') == "x"

    def test_legacy_names_in_query_strings_are_kept(self) -> None:
        p = Policy().allow_attrs("href").on_elements("a").allow_url_schemes("https")
        html = '<a href="https://x.com/?a=1&copy=2&not=3&reg">t</a>'
        expected = '<a href="https://x.com/?a=1&amp;copy=2&amp;not=3\xae">t</a>'
        assert p.sanitize(html) == expected

    def test_urls_unchecked_without_parseable_urls(self) -> None:
        p = Policy().allow_attrs("href").on_elements("a")
        assert p.sanitize('<a href="anything goes">x</a>') == '<a href="anything goes">x</a>'

    def test_non_url_attributes_are_not_parsed(self) -> None:
        p = Policy().allow_attrs("title").on_elements("a").allow_url_schemes("https")
        assert p.sanitize('<a title="javascript:x">t</a>') == '<a title="javascript:x">t</a>'


if __name__ == "__main__":
    unittest.main()
