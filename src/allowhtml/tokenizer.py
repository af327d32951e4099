"""Pull tokenizer for HTML fragments.

Tokens are produced one at a time by ``next_token()`` (or by iterating the
tokenizer). The source may be a string or a readable file-like object; file
sources are read in chunks and consumed text is released between tokens.
"""

import codecs
import re
from collections import deque

from .entities import decode_entities_in_text
from .tokens import CharacterTokens, CommentToken, DoctypeToken, ErrorToken, ParseError, Tag

_ASCII_LOWER_TABLE = str.maketrans({chr(code): chr(code + 32) for code in range(65, 91)})
_ASCII_ALPHA = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ")
_WHITESPACE = ("\t", "\n", "\f", " ")

_TAG_NAME_TERMINATOR_PATTERN = re.compile(r"[\t\n\f />]")
_ATTR_NAME_TERMINATOR_PATTERN = re.compile(r"[\t\n\f />=]")
_ATTR_VALUE_DOUBLE_PATTERN = re.compile('"')
_ATTR_VALUE_SINGLE_PATTERN = re.compile("'")
_ATTR_VALUE_UNQUOTED_PATTERN = re.compile(r"[\t\n\f >]")
_DATA_PATTERN = re.compile("<")
_COMMENT_END_PATTERN = re.compile("--!?>")
_GT_PATTERN = re.compile(">")
_NEVER_PATTERN = re.compile("(?!)")

# Elements whose content is text up to the matching end tag
_RAWTEXT_ELEMENTS = frozenset(["iframe", "noembed", "noframes", "noscript", "script", "style", "xmp"])
_RCDATA_ELEMENTS = frozenset(["textarea", "title"])

_RAWTEXT_END_PATTERNS = {
    name: re.compile(rf"</{name}[\t\n\f />]", re.IGNORECASE) for name in _RAWTEXT_ELEMENTS | _RCDATA_ELEMENTS
}


def _normalize_newlines(text):
    if "\r" in text:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
    if "\0" in text:
        text = text.replace("\0", "\ufffd")
    return text


class _StreamError(Exception):
    def __init__(self, error):
        super().__init__(str(error))
        self.error = error


class TokenizerOpts:
    __slots__ = ("chunk_size", "discard_bom", "max_buffer")

    def __init__(self, discard_bom=True, max_buffer=None, chunk_size=65536):
        self.discard_bom = bool(discard_bom)
        # Largest single token (in characters) accepted from a streamed source
        self.max_buffer = max_buffer
        self.chunk_size = chunk_size


class Tokenizer:
    DATA = 0
    TAG_OPEN = 1
    END_TAG_OPEN = 2
    TAG_NAME = 3
    BEFORE_ATTRIBUTE_NAME = 4
    ATTRIBUTE_NAME = 5
    AFTER_ATTRIBUTE_NAME = 6
    BEFORE_ATTRIBUTE_VALUE = 7
    ATTRIBUTE_VALUE_DOUBLE = 8
    ATTRIBUTE_VALUE_SINGLE = 9
    ATTRIBUTE_VALUE_UNQUOTED = 10
    AFTER_ATTRIBUTE_VALUE_QUOTED = 11
    SELF_CLOSING_START_TAG = 12
    MARKUP_DECLARATION_OPEN = 13
    COMMENT = 14
    BOGUS_COMMENT = 15
    DOCTYPE = 16
    RAWTEXT = 17
    PLAINTEXT = 18

    __slots__ = (
        "_decoder",
        "_column_base",
        "_done",
        "_line_base",
        "_pending",
        "_pending_cr",
        "_reader",
        "_started",
        "_token_start",
        "buffer",
        "current_attr_name",
        "current_attr_value",
        "current_tag_attrs",
        "current_tag_kind",
        "current_tag_name",
        "current_tag_self_closing",
        "opts",
        "pos",
        "rawtext_tag_name",
        "state",
        "text_buffer",
    )

    def __init__(self, source, opts=None):
        self.opts = opts or TokenizerOpts()
        self.state = self.DATA
        self.pos = 0
        self.text_buffer = []
        self.current_tag_kind = Tag.START
        self.current_tag_name = ""
        self.current_tag_attrs = {}
        self.current_tag_self_closing = False
        self.current_attr_name = None
        self.current_attr_value = ""
        self.rawtext_tag_name = None
        self._pending = deque()
        self._done = False
        self._decoder = None
        self._pending_cr = ""
        self._token_start = 0
        # Line and column reached by text already dropped from the buffer
        self._line_base = 0
        self._column_base = 0

        if isinstance(source, str):
            if source and source[0] == "\ufeff" and self.opts.discard_bom:
                source = source[1:]
            self.buffer = _normalize_newlines(source)
            self._reader = None
            self._started = True
        else:
            self.buffer = ""
            self._reader = source
            self._started = False

    def __iter__(self):
        return self

    def __next__(self):
        token = self.next_token()
        if token is None:
            raise StopIteration
        return token

    def next_token(self):
        """Return the next token, or None once the input is exhausted."""
        pending = self._pending
        if pending:
            return pending.popleft()
        if self._done:
            return None

        if self._reader is not None and self.pos > self.opts.chunk_size:
            self._drop_consumed()
        self._token_start = self.pos

        handlers = self._state_handlers
        try:
            while not pending and not self._done:
                handlers[self.state](self)
        except _StreamError as exc:
            self._done = True
            pending.append(ErrorToken(exc.error))
        return pending.popleft() if pending else None

    # Input handling

    def _drop_consumed(self):
        consumed = self.buffer[: self.pos]
        newlines = consumed.count("\n")
        if newlines:
            self._line_base += newlines
            self._column_base = len(consumed) - consumed.rfind("\n") - 1
        else:
            self._column_base += len(consumed)
        self.buffer = self.buffer[self.pos :]
        self.pos = 0

    def _error(self, code, offset, message):
        """Build a ParseError located at offset in the current buffer (1-based)."""
        buffer = self.buffer
        line = self._line_base + buffer.count("\n", 0, offset) + 1
        newline = buffer.rfind("\n", 0, offset)
        column = self._column_base + offset + 1 if newline == -1 else offset - newline
        return ParseError(code, line=line, column=column, message=message)

    def _fill(self):
        """Append the next chunk of the source to the buffer. False at EOF."""
        reader = self._reader
        opts = self.opts
        while reader is not None:
            # More input is needed while the current token already exceeds the limit
            if opts.max_buffer is not None and len(self.buffer) - self._token_start > opts.max_buffer:
                raise _StreamError(
                    self._error(
                        "buffer-exceeded", self._token_start, f"token larger than {opts.max_buffer} characters"
                    )
                )
            try:
                raw = reader.read(opts.chunk_size)
            except OSError as exc:
                raise _StreamError(self._error("read-error", len(self.buffer), str(exc))) from exc
            at_eof = not raw
            if isinstance(raw, (bytes, bytearray)):
                if self._decoder is None:
                    self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
                text = self._decoder.decode(raw, final=at_eof)
            else:
                text = raw or ""
            if at_eof:
                self._reader = reader = None

            text = self._pending_cr + text
            self._pending_cr = ""
            if not at_eof and text.endswith("\r"):
                # A following "\n" may arrive with the next chunk
                text = text[:-1]
                self._pending_cr = "\r"
            if not self._started and text:
                self._started = True
                if text[0] == "\ufeff" and opts.discard_bom:
                    text = text[1:]
            if not text:
                continue

            self.buffer += _normalize_newlines(text)
            return True
        return False

    def _get_char(self):
        if self.pos >= len(self.buffer) and not self._fill():
            return None
        c = self.buffer[self.pos]
        self.pos += 1
        return c

    def _reconsume_current(self):
        self.pos -= 1

    def _skip_whitespace(self):
        while True:
            c = self._get_char()
            if c not in _WHITESPACE:
                return c

    def _scan_to(self, pattern, keep=0):
        """Consume up to and including the next match of pattern.

        Returns (text_before_match, match). At EOF the match is None and the
        text holds everything left. keep is the number of trailing characters
        held back when refilling so that a match spanning chunks is found.
        """
        parts = []
        while True:
            buffer = self.buffer
            match = pattern.search(buffer, self.pos)
            if match is not None:
                parts.append(buffer[self.pos : match.start()])
                self.pos = match.end()
                return "".join(parts), match
            stop = max(self.pos, len(buffer) - keep)
            parts.append(buffer[self.pos : stop])
            self.pos = stop
            if not self._fill():
                parts.append(self.buffer[self.pos :])
                self.pos = len(self.buffer)
                return "".join(parts), None

    def _consume_if(self, literal):
        end = self.pos + len(literal)
        while len(self.buffer) < end and self._fill():
            pass
        if self.buffer[self.pos : end] == literal:
            self.pos = end
            return True
        return False

    def _consume_case_insensitive(self, literal):
        end = self.pos + len(literal)
        while len(self.buffer) < end and self._fill():
            pass
        if self.buffer[self.pos : end].lower() == literal.lower():
            self.pos = end
            return True
        return False

    # Token assembly

    def _flush_text(self, decode=True):
        if not self.text_buffer:
            return
        data = "".join(self.text_buffer)
        self.text_buffer.clear()
        if not data:
            return
        if decode:
            data = decode_entities_in_text(data)
        self._pending.append(CharacterTokens(data))

    def _finish_eof(self):
        self._flush_text()
        self._done = True

    def _start_tag(self, kind, first_char):
        self.current_tag_kind = kind
        self.current_tag_name = first_char.translate(_ASCII_LOWER_TABLE)
        self.current_tag_attrs = {}
        self.current_tag_self_closing = False
        self.current_attr_name = None

    def _start_attribute(self, name=""):
        self._finish_attribute()
        self.current_attr_name = name
        self.current_attr_value = ""

    def _finish_attribute(self):
        name = self.current_attr_name
        if name is None:
            return
        self.current_attr_name = None
        name = name.translate(_ASCII_LOWER_TABLE)
        if not name or name in self.current_tag_attrs:
            return
        value = self.current_attr_value
        if "&" in value:
            value = decode_entities_in_text(value, in_attribute=True)
        self.current_tag_attrs[name] = value

    def _emit_current_tag(self):
        self._finish_attribute()
        name = self.current_tag_name
        self.state = self.DATA
        if self.current_tag_kind == Tag.END:
            self._pending.append(Tag(Tag.END, name))
            return

        if name in _RAWTEXT_END_PATTERNS:
            # The self-closing flag is ignored on raw text elements
            self._pending.append(Tag(Tag.START, name, self.current_tag_attrs))
            self.rawtext_tag_name = name
            self.state = self.RAWTEXT
            return
        if name == "plaintext":
            self._pending.append(Tag(Tag.START, name, self.current_tag_attrs))
            self.state = self.PLAINTEXT
            return
        kind = Tag.SELF_CLOSING if self.current_tag_self_closing else Tag.START
        self._pending.append(Tag(kind, name, self.current_tag_attrs))

    def _emit_comment(self, data):
        self._pending.append(CommentToken(data))
        self.state = self.DATA

    # States

    def _state_data(self):
        text, match = self._scan_to(_DATA_PATTERN)
        if text:
            self.text_buffer.append(text)
        if match is None:
            self._finish_eof()
            return
        if self.text_buffer:
            # Emit the text first; the "<" then starts the next token
            self.pos = match.start()
            self._flush_text()
            return
        self.state = self.TAG_OPEN

    def _state_tag_open(self):
        c = self._get_char()
        if c is None:
            self.text_buffer.append("<")
            self._finish_eof()
            return
        if c == "!":
            self.state = self.MARKUP_DECLARATION_OPEN
            return
        if c == "/":
            self.state = self.END_TAG_OPEN
            return
        if c == "?":
            self._reconsume_current()
            self.state = self.BOGUS_COMMENT
            return
        if c in _ASCII_ALPHA:
            self._start_tag(Tag.START, c)
            self.state = self.TAG_NAME
            return
        # Not a tag: "<" is text
        self.text_buffer.append("<")
        self._reconsume_current()
        self.state = self.DATA

    def _state_end_tag_open(self):
        c = self._get_char()
        if c is None:
            self.text_buffer.append("</")
            self._finish_eof()
            return
        if c in _ASCII_ALPHA:
            self._start_tag(Tag.END, c)
            self.state = self.TAG_NAME
            return
        if c == ">":
            self.state = self.DATA
            return
        self._reconsume_current()
        self.state = self.BOGUS_COMMENT

    def _state_tag_name(self):
        text, match = self._scan_to(_TAG_NAME_TERMINATOR_PATTERN)
        if match is None:
            # EOF inside a tag: the incomplete tag is discarded
            self._finish_eof()
            return
        self.current_tag_name += text.translate(_ASCII_LOWER_TABLE)
        c = match.group()
        if c == ">":
            self._emit_current_tag()
        elif c == "/":
            self.state = self.SELF_CLOSING_START_TAG
        else:
            self.state = self.BEFORE_ATTRIBUTE_NAME

    def _state_before_attribute_name(self):
        c = self._skip_whitespace()
        if c is None:
            self._finish_eof()
            return
        if c == "/":
            self.state = self.SELF_CLOSING_START_TAG
            return
        if c == ">":
            self._emit_current_tag()
            return
        if c == "=":
            self._start_attribute("=")
        else:
            self._start_attribute()
            self._reconsume_current()
        self.state = self.ATTRIBUTE_NAME

    def _state_attribute_name(self):
        text, match = self._scan_to(_ATTR_NAME_TERMINATOR_PATTERN)
        if match is None:
            self._finish_eof()
            return
        self.current_attr_name += text
        c = match.group()
        if c == "=":
            self.state = self.BEFORE_ATTRIBUTE_VALUE
        elif c == ">":
            self._emit_current_tag()
        elif c == "/":
            self._finish_attribute()
            self.state = self.SELF_CLOSING_START_TAG
        else:
            self.state = self.AFTER_ATTRIBUTE_NAME

    def _state_after_attribute_name(self):
        c = self._skip_whitespace()
        if c is None:
            self._finish_eof()
            return
        if c == "=":
            self.state = self.BEFORE_ATTRIBUTE_VALUE
            return
        if c == ">":
            self._emit_current_tag()
            return
        if c == "/":
            self._finish_attribute()
            self.state = self.SELF_CLOSING_START_TAG
            return
        self._start_attribute()
        self._reconsume_current()
        self.state = self.ATTRIBUTE_NAME

    def _state_before_attribute_value(self):
        c = self._skip_whitespace()
        if c is None:
            self._finish_eof()
            return
        if c == '"':
            self.state = self.ATTRIBUTE_VALUE_DOUBLE
            return
        if c == "'":
            self.state = self.ATTRIBUTE_VALUE_SINGLE
            return
        if c == ">":
            self._emit_current_tag()
            return
        self._reconsume_current()
        self.state = self.ATTRIBUTE_VALUE_UNQUOTED

    def _state_attribute_value_quoted(self, pattern):
        text, match = self._scan_to(pattern)
        if match is None:
            self._finish_eof()
            return
        self.current_attr_value = text
        self._finish_attribute()
        self.state = self.AFTER_ATTRIBUTE_VALUE_QUOTED

    def _state_attribute_value_double(self):
        self._state_attribute_value_quoted(_ATTR_VALUE_DOUBLE_PATTERN)

    def _state_attribute_value_single(self):
        self._state_attribute_value_quoted(_ATTR_VALUE_SINGLE_PATTERN)

    def _state_attribute_value_unquoted(self):
        text, match = self._scan_to(_ATTR_VALUE_UNQUOTED_PATTERN)
        if match is None:
            self._finish_eof()
            return
        self.current_attr_value = text
        self._finish_attribute()
        if match.group() == ">":
            self._emit_current_tag()
        else:
            self.state = self.BEFORE_ATTRIBUTE_NAME

    def _state_after_attribute_value_quoted(self):
        c = self._get_char()
        if c is None:
            self._finish_eof()
            return
        if c in _WHITESPACE:
            self.state = self.BEFORE_ATTRIBUTE_NAME
        elif c == "/":
            self.state = self.SELF_CLOSING_START_TAG
        elif c == ">":
            self._emit_current_tag()
        else:
            self._reconsume_current()
            self.state = self.BEFORE_ATTRIBUTE_NAME

    def _state_self_closing_start_tag(self):
        c = self._get_char()
        if c is None:
            self._finish_eof()
            return
        if c == ">":
            self.current_tag_self_closing = True
            self._emit_current_tag()
            return
        self._reconsume_current()
        self.state = self.BEFORE_ATTRIBUTE_NAME

    def _state_markup_declaration_open(self):
        if self._consume_if("--"):
            self.state = self.COMMENT
        elif self._consume_case_insensitive("DOCTYPE"):
            self.state = self.DOCTYPE
        else:
            self.state = self.BOGUS_COMMENT

    def _state_comment(self):
        # "<!-->" and "<!--->" are complete, empty comments
        if self._consume_if(">") or self._consume_if("->"):
            self._emit_comment("")
            return
        text, match = self._scan_to(_COMMENT_END_PATTERN, keep=3)
        self._emit_comment(text)
        if match is None:
            self._done = True

    def _state_bogus_comment(self):
        text, match = self._scan_to(_GT_PATTERN)
        self._emit_comment(text)
        if match is None:
            self._done = True

    def _state_doctype(self):
        text, match = self._scan_to(_GT_PATTERN)
        self._pending.append(DoctypeToken(text.strip()))
        self.state = self.DATA
        if match is None:
            self._done = True

    def _state_rawtext(self):
        name = self.rawtext_tag_name
        text, match = self._scan_to(_RAWTEXT_END_PATTERNS[name], keep=len(name) + 2)
        if text:
            self.text_buffer.append(text)
        self._flush_text(decode=name in _RCDATA_ELEMENTS)
        if match is None:
            self._done = True
            return
        self.rawtext_tag_name = None
        # Resume inside the end tag, right after "</"
        self.pos = match.start() + 2
        self.state = self.END_TAG_OPEN

    def _state_plaintext(self):
        text, _ = self._scan_to(_NEVER_PATTERN)
        if text:
            self.text_buffer.append(text)
        self._flush_text(decode=False)
        self._done = True

    _state_handlers = (
        _state_data,
        _state_tag_open,
        _state_end_tag_open,
        _state_tag_name,
        _state_before_attribute_name,
        _state_attribute_name,
        _state_after_attribute_name,
        _state_before_attribute_value,
        _state_attribute_value_double,
        _state_attribute_value_single,
        _state_attribute_value_unquoted,
        _state_after_attribute_value_quoted,
        _state_self_closing_start_tag,
        _state_markup_declaration_open,
        _state_comment,
        _state_bogus_comment,
        _state_doctype,
        _state_rawtext,
        _state_plaintext,
    )
