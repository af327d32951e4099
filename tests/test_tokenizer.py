from __future__ import annotations

import io
import unittest

from allowhtml import Tokenizer, TokenizerOpts
from allowhtml.tokens import CharacterTokens, CommentToken, DoctypeToken, ErrorToken, Tag


def _tokens(source, opts=None):
    return list(Tokenizer(source, opts))


def _text(tokens):
    return "".join(token.data for token in tokens if isinstance(token, CharacterTokens))


class _FailingReader:
    def read(self, size=-1):
        raise OSError("disk on fire")


class TestTags(unittest.TestCase):
    def test_start_and_end_tags(self) -> None:
        assert _tokens("<b>hi</b>") == [Tag(Tag.START, "b"), CharacterTokens("hi"), Tag(Tag.END, "b")]

    def test_names_are_lowercased(self) -> None:
        assert _tokens("<DIV CLASS=x></Div>") == [Tag(Tag.START, "div", {"class": "x"}), Tag(Tag.END, "div")]

    def test_duplicate_attributes_keep_first(self) -> None:
        tokens = _tokens('<a HREF="x" href="y" Title=t>')
        assert tokens == [Tag(Tag.START, "a", {"href": "x", "title": "t"})]

    def test_attribute_quoting_styles(self) -> None:
        tokens = _tokens("<p a=\"1\" b='2' c=3 d>")
        assert tokens[0].attrs == {"a": "1", "b": "2", "c": "3", "d": ""}

    def test_self_closing(self) -> None:
        assert _tokens("<br/>") == [Tag(Tag.SELF_CLOSING, "br")]
        assert _tokens('<img src="a.png" />') == [Tag(Tag.SELF_CLOSING, "img", {"src": "a.png"})]

    def test_attribute_values_are_entity_decoded(self) -> None:
        tokens = _tokens('<a title="&amp;x &notit; &amp">')
        assert tokens[0].attrs["title"] == "&x &notit; &"

    def test_incomplete_tag_at_eof_is_discarded(self) -> None:
        assert _tokens('<a href="x') == []
        assert _tokens("text<b") == [CharacterTokens("text")]

    def test_lone_less_than_is_text(self) -> None:
        assert _text(_tokens("a < b")) == "a < b"
        assert _text(_tokens("<<b>")) == "<"

    def test_empty_end_tag_is_dropped(self) -> None:
        assert _tokens("a</>b") == [CharacterTokens("a"), CharacterTokens("b")]


class TestTextAndReferences(unittest.TestCase):
    def test_character_references_in_text(self) -> None:
        assert _text(_tokens("&lt;x&gt; &#65;&#x42; &copy &notit;")) == "<x> AB \xa9 \xacit;"

    def test_c1_numeric_references_are_remapped(self) -> None:
        assert _text(_tokens("&#128;&#0;")) == "\u20ac\ufffd"

    def test_newlines_are_normalized(self) -> None:
        assert _text(_tokens("a\r\nb\rc")) == "a\nb\nc"

    def test_nul_is_replaced(self) -> None:
        assert _text(_tokens("a\x00b")) == "a\ufffdb"

    def test_bom_is_discarded(self) -> None:
        assert _text(_tokens("\ufeffhi")) == "hi"

    def test_bom_is_kept_when_asked(self) -> None:
        assert _text(_tokens("\ufeffhi", TokenizerOpts(discard_bom=False))) == "\ufeffhi"


class TestRawText(unittest.TestCase):
    def test_script_content_is_raw(self) -> None:
        tokens = _tokens("<script>if (a<b) { x = '</p>' }</script>")
        assert tokens == [
            Tag(Tag.START, "script"),
            CharacterTokens("if (a<b) { x = '</p>' }"),
            Tag(Tag.END, "script"),
        ]

    def test_style_references_are_not_decoded(self) -> None:
        assert _text(_tokens("<style>a &amp; b</style>")) == "a &amp; b"

    def test_title_references_are_decoded(self) -> None:
        assert _text(_tokens("<title>a &amp; b</title>")) == "a & b"

    def test_end_tag_match_is_case_insensitive(self) -> None:
        tokens = _tokens("<style>x</STYLE >y")
        assert tokens == [Tag(Tag.START, "style"), CharacterTokens("x"), Tag(Tag.END, "style"), CharacterTokens("y")]

    def test_self_closing_raw_element_still_opens(self) -> None:
        tokens = _tokens("<script/>alert(1)</script>")
        assert tokens[0] == Tag(Tag.START, "script")
        assert tokens[1] == CharacterTokens("alert(1)")

    def test_unterminated_raw_text_runs_to_eof(self) -> None:
        assert _tokens("<xmp><b>") == [Tag(Tag.START, "xmp"), CharacterTokens("<b>")]

    def test_plaintext_consumes_everything(self) -> None:
        assert _tokens("<plaintext><b>x</plaintext>") == [
            Tag(Tag.START, "plaintext"),
            CharacterTokens("<b>x</plaintext>"),
        ]


class TestMarkupDeclarations(unittest.TestCase):
    def test_comment(self) -> None:
        assert _tokens("<!-- c -->") == [CommentToken(" c ")]

    def test_abrupt_comments(self) -> None:
        assert _tokens("<!-->x") == [CommentToken(""), CharacterTokens("x")]
        assert _tokens("<!--->x") == [CommentToken(""), CharacterTokens("x")]

    def test_comment_closed_with_bang(self) -> None:
        assert _tokens("<!--a--!>b") == [CommentToken("a"), CharacterTokens("b")]

    def test_conditional_comment_kept_verbatim(self) -> None:
        assert _tokens("<!--[if gte mso 9]>Hi<![endif]-->") == [CommentToken("[if gte mso 9]>Hi<![endif]")]

    def test_doctype(self) -> None:
        assert _tokens("<!DOCTYPE html>") == [DoctypeToken("html")]
        assert _tokens("<!doctype  html >") == [DoctypeToken("html")]

    def test_bogus_comments(self) -> None:
        assert _tokens('<?xml version="1.0"?>') == [CommentToken('?xml version="1.0"?')]
        assert _tokens("</ x>") == [CommentToken(" x")]
        assert _tokens("<![CDATA[x]]>") == [CommentToken("[CDATA[x]]")]


class TestStreaming(unittest.TestCase):
    SAMPLE = (
        '<p class="a" title=\'it&apos;s\'>Hello &amp; welcome\r\n<!-- a comment -->'
        "<script>if (a < b) {}</script><br/>caf\u00e9 <!DOCTYPE html></p>"
    )

    def test_small_chunks_match_string_source(self) -> None:
        expected = _tokens(self.SAMPLE)
        for size in (1, 2, 3, 7, 64):
            with self.subTest(chunk_size=size):
                assert _tokens(io.StringIO(self.SAMPLE), TokenizerOpts(chunk_size=size)) == expected

    def test_bytes_reader_is_decoded_incrementally(self) -> None:
        reader = io.BytesIO(self.SAMPLE.encode("utf-8"))
        assert _tokens(reader, TokenizerOpts(chunk_size=3)) == _tokens(self.SAMPLE)

    def test_invalid_utf8_is_replaced(self) -> None:
        assert _text(_tokens(io.BytesIO(b"a\xffb"))) == "a\ufffdb"

    def test_bom_in_stream_is_discarded(self) -> None:
        assert _text(_tokens(io.BytesIO(b"\xef\xbb\xbfhi"), TokenizerOpts(chunk_size=1))) == "hi"

    def test_crlf_split_across_chunks(self) -> None:
        assert _text(_tokens(io.StringIO("a\r\nb"), TokenizerOpts(chunk_size=2))) == "a\nb"

    def test_oversized_token_yields_error(self) -> None:
        source = io.StringIO("<p>" + "x" * 100 + "</p>")
        tokens = _tokens(source, TokenizerOpts(max_buffer=10, chunk_size=4))
        assert tokens[0] == Tag(Tag.START, "p")
        assert isinstance(tokens[-1], ErrorToken)
        assert tokens[-1].error.code == "buffer-exceeded"
        assert (tokens[-1].error.line, tokens[-1].error.column) == (1, 4)

    def test_error_location_counts_released_input(self) -> None:
        source = io.StringIO("<b>x</b>\n" * 5 + "  <!--" + "x" * 100)
        tokens = _tokens(source, TokenizerOpts(max_buffer=10, chunk_size=4))
        error = tokens[-1].error
        assert error.code == "buffer-exceeded"
        assert (error.line, error.column) == (6, 3)
        assert str(error).startswith("(6,3): buffer-exceeded")

    def test_read_failure_yields_error(self) -> None:
        tokens = _tokens(_FailingReader())
        assert len(tokens) == 1
        assert isinstance(tokens[0], ErrorToken)
        assert tokens[0].error.code == "read-error"
        assert "disk on fire" in str(tokens[0].error)
        assert (tokens[0].error.line, tokens[0].error.column) == (1, 1)

    def test_next_token_returns_none_when_done(self) -> None:
        tokenizer = Tokenizer("x")
        assert tokenizer.next_token() == CharacterTokens("x")
        assert tokenizer.next_token() is None
        assert tokenizer.next_token() is None


if __name__ == "__main__":
    unittest.main()
