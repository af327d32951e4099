from __future__ import annotations

import unittest

from allowhtml import Policy
from allowhtml.css import filter_style, is_safe_style_value, split_declarations, strip_vendor_prefix


class TestSplitDeclarations(unittest.TestCase):
    def test_basic(self) -> None:
        assert split_declarations("color: red; margin:0") == [("color", "red"), ("margin", "0")]

    def test_semicolons_inside_quotes_and_parens(self) -> None:
        raw = "background: url('a;b'); font-family: \"A;B\", serif"
        assert split_declarations(raw) == [("background", "url('a;b')"), ("font-family", '"A;B", serif')]

    def test_properties_lowercased_and_trimmed(self) -> None:
        assert split_declarations("  COLOR : Red ;;") == [("color", "Red")]

    def test_malformed_pieces_are_skipped(self) -> None:
        assert split_declarations("no-colon; :novalue; a:b") == [("a", "b")]

    def test_escaped_semicolon(self) -> None:
        assert split_declarations("content: 'x'\\; color: red") == [("content", "'x'\\; color: red")]


class TestHelpers(unittest.TestCase):
    def test_vendor_prefixes(self) -> None:
        assert strip_vendor_prefix("-webkit-transition") == "transition"
        assert strip_vendor_prefix("mso-line-height-rule") == "line-height-rule"
        assert strip_vendor_prefix("color") == "color"

    def test_safe_values(self) -> None:
        assert is_safe_style_value("red")
        assert is_safe_style_value("1px solid #ccc")
        assert not is_safe_style_value("expression(alert(1))")
        assert not is_safe_style_value("url(javascript:alert(1))")
        assert not is_safe_style_value("URL (x.png)")
        assert not is_safe_style_value("\\75rl(x)")
        assert not is_safe_style_value("</style>")


class TestFilterStyle(unittest.TestCase):
    def test_unlisted_properties_are_dropped(self) -> None:
        p = Policy().allow_styles("color", "font-weight").globally()
        raw = "color:red;unknown:1;font-weight:bold"
        assert filter_style("span", raw, p) == "color: red; font-weight: bold"

    def test_enum_matcher(self) -> None:
        p = Policy().allow_styles("text-align").matching_enum("left", "center").globally()
        assert filter_style("p", "text-align: CENTER", p) == "text-align: CENTER"
        assert filter_style("p", "text-align: justify", p) == ""

    def test_regex_matcher_sees_trimmed_value(self) -> None:
        p = Policy().allow_styles("color").matching(r"^red$").globally()
        assert filter_style("p", "color:   red   ;", p) == "color: red"
        assert filter_style("p", "color: reddish", p) == ""

    def test_handler_matcher(self) -> None:
        p = Policy().allow_styles("width").matching_handler(lambda v: v.endswith("px")).globally()
        assert filter_style("p", "width: 10px; width: 10%", p) == "width: 10px"

    def test_vendor_prefixed_property_uses_base_rule(self) -> None:
        p = Policy().allow_styles("transition").globally()
        assert filter_style("p", "-webkit-transition: all 1s", p) == "-webkit-transition: all 1s"

    def test_escapes_do_not_bypass_matchers(self) -> None:
        p = Policy().allow_styles("background").matching(r"^[a-z]+$").globally()
        assert filter_style("p", "background: \\0075\\0072\\006C(x)", p) == ""
        q = Policy().allow_styles("background").globally()
        assert filter_style("p", "background: \\0075\\0072\\006C(x)", q) == ""

    def test_empty_values_are_dropped(self) -> None:
        p = Policy().allow_styles("color").globally()
        assert filter_style("p", "color:", p) == ""

    def test_element_rule_beats_global(self) -> None:
        p = Policy()
        p.allow_styles("color").matching(r"^red$").globally()
        p.allow_styles("color").matching(r"^blue$").on_elements("span")
        assert filter_style("span", "color: red", p) == ""
        assert filter_style("span", "color: blue", p) == "color: blue"
        assert filter_style("p", "color: red", p) == "color: red"

    def test_pattern_rule(self) -> None:
        p = Policy().allow_styles("color").on_elements_matching(r"^h[1-6]$")
        assert filter_style("h2", "color: red", p) == "color: red"
        assert filter_style("p", "color: red", p) == ""


class TestStyleAttribute(unittest.TestCase):
    def test_style_attribute_is_filtered(self) -> None:
        p = Policy().allow_attrs("style").on_elements("span").allow_styles("color").on_elements("span")
        html = '<span style="color: red; position: fixed">x</span>'
        assert p.sanitize(html) == '<span style="color: red">x</span>'

    def test_style_rules_alone_allow_the_attribute(self) -> None:
        p = Policy().allow_elements("span").allow_styles("color").on_elements("span")
        assert p.sanitize('<span style="color: red">x</span>') == '<span style="color: red">x</span>'

    def test_style_attribute_dropped_when_nothing_survives(self) -> None:
        p = Policy().allow_attrs("style").on_elements("div").allow_styles("color").globally()
        assert p.sanitize('<div style="behavior: url(x.htc)">x</div>') == "<div>x</div>"

    def test_style_attribute_rule_checks_filtered_value(self) -> None:
        p = Policy().allow_attrs("style").matching(r"^color").on_elements("p")
        p.allow_styles("color", "margin").globally()
        assert p.sanitize('<p style="margin: 0; color: red">x</p>') == "<p>x</p>"
        assert p.sanitize('<p style="color: red; margin: 0">x</p>') == '<p style="color: red; margin: 0">x</p>'

    def test_style_kept_raw_without_style_rules(self) -> None:
        p = Policy().allow_attrs("style").on_elements("p")
        assert p.sanitize('<p style="anything: x">t</p>') == '<p style="anything: x">t</p>'


if __name__ == "__main__":
    unittest.main()
