"""The sanitizer: walks a token stream and writes what the policy allows.

One ``Sanitizer`` is created per call and holds all per-call state, so a
single Policy can be shared freely between threads.
"""

from __future__ import annotations

import re
import sys
from collections.abc import Callable
from typing import IO, TYPE_CHECKING

from .css import filter_style
from .errors import EmptyInputError, TokenizationError, UnsupportedTokenError
from .serialize import escape_text, serialize_comment, serialize_doctype, serialize_end_tag, serialize_start_tag
from .tokenizer import Tokenizer
from .tokens import CharacterTokens, CommentToken, DoctypeToken, ErrorToken, Tag
from .urls import is_fully_qualified, is_url_attribute, validate_url

if TYPE_CHECKING:
    from .policy import Policy
    from .tokenizer import TokenizerOpts

LINK_ELEMENTS = frozenset(["a", "area", "base", "link"])
CROSS_ORIGIN_ELEMENTS = frozenset(["audio", "img", "link", "script", "video"])
# Never written unless the policy allows unsafe content
UNSAFE_ELEMENTS = frozenset(["script", "style"])

_DATA_ATTRIBUTE = re.compile(r"^data-(?!xml)[a-z0-9_.:\-]+$")
# Output never starts with these; a leading U+FEFF would be read back as a byte order mark
_LEADING_SPACE = re.compile(r"^[\s\ufeff]+")

# What to do with text directly inside a script/style element
_RAW_DROP = 1
_RAW_WRITE = 2


def is_data_attribute(name: str) -> bool:
    return _DATA_ATTRIBUTE.match(name) is not None


def _merge_rel(current: str | None, additions: list[str]) -> str:
    tokens: list[str] = []
    for token in (current or "").split() + additions:
        if token not in tokens:
            tokens.append(token)
    return " ".join(tokens)


class Sanitizer:
    __slots__ = (
        "_dropped_end_tags",
        "_held",
        "_raw_text",
        "_seen_content",
        "_skip_depth",
        "_skip_name",
        "_write",
        "_wrote",
        "env_debug",
        "policy",
    )

    def __init__(self, policy: Policy, write: Callable[[str], object], *, debug: bool = False) -> None:
        self.policy = policy
        self.env_debug = bool(debug)
        self._write = write
        self._wrote = False
        # Element whose content is being discarded, and how deep we are in it
        self._skip_name: str | None = None
        self._skip_depth = 0
        # element name -> end tags still to drop because the start tag was dropped
        self._dropped_end_tags: dict[str, int] = {}
        self._raw_text: int | None = None
        # Trailing whitespace, written only if more output follows
        self._held = ""
        self._seen_content = False

    def _emit(self, text: str) -> None:
        if not self._wrote:
            text = _LEADING_SPACE.sub("", text)
            if not text:
                return
            self._wrote = True
        body = text.rstrip()
        if not body:
            self._held += text
            return
        if self._held:
            self._write(self._held)
        self._write(body)
        self._held = text[len(body) :]

    def debug(self, message: str, indent: int = 4) -> None:
        if self.env_debug:
            print(f"{' ' * indent}Sanitizer: {message}", file=sys.stderr)

    def run(self, tokenizer: Tokenizer) -> None:
        for token in tokenizer:
            self.process_token(token)
        self.finish()

    def finish(self) -> None:
        self._held = ""
        if not self._seen_content and self.policy.strict:
            raise EmptyInputError()

    def process_token(self, token: object) -> None:
        if not self._seen_content and not (isinstance(token, CharacterTokens) and not token.data.strip()):
            self._seen_content = True

        if isinstance(token, CharacterTokens):
            self._process_text(token.data)
            return

        self._raw_text = None
        if isinstance(token, Tag):
            if token.kind == Tag.START:
                self._process_start_tag(token, self_closing=False)
            elif token.kind == Tag.SELF_CLOSING:
                self._process_start_tag(token, self_closing=True)
            elif token.kind == Tag.END:
                self._process_end_tag(token)
            else:
                raise UnsupportedTokenError(token)
        elif isinstance(token, CommentToken):
            if self._skip_name is None and self.policy.allow_comments_flag:
                self._emit(serialize_comment(token.data))
        elif isinstance(token, DoctypeToken):
            if self._skip_name is None and self.policy.allow_doc_type_flag:
                self._emit(serialize_doctype(token.data))
        elif isinstance(token, ErrorToken):
            raise TokenizationError(token.error)
        else:
            raise UnsupportedTokenError(token)

    def _strip(self, tag: Tag, reason: str) -> None:
        self.debug(f"stripped {tag!r} ({reason})")
        if self.policy.add_space_on_strip:
            self._emit(" ")

    def _process_text(self, data: str) -> None:
        if self._skip_name is not None or self._raw_text == _RAW_DROP:
            return
        if self._raw_text == _RAW_WRITE:
            self._emit(data)
            return
        self._emit(escape_text(data))

    def _process_start_tag(self, tag: Tag, *, self_closing: bool) -> None:
        name = tag.name
        if self._skip_name is not None:
            if name == self._skip_name and not self_closing:
                self._skip_depth += 1
            return

        policy = self.policy
        if not policy.is_element_allowed(name):
            if name in policy.skip_content and not self_closing:
                self.debug(f"skipping content of <{name}>")
                self._skip_name = name
                self._skip_depth = 1
                if policy.add_space_on_strip:
                    self._emit(" ")
                return
            self._strip(tag, "element not allowed")
            return

        if name in UNSAFE_ELEMENTS and not policy.allow_unsafe_flag:
            self._strip(tag, "unsafe element")
            if not self_closing:
                self._raw_text = _RAW_DROP
            return

        attrs = self.filter_attrs(name, tag.attrs)
        if attrs:
            self._apply_link_safety(name, attrs)
        if attrs and policy.require_cross_origin and name in CROSS_ORIGIN_ELEMENTS:
            attrs["crossorigin"] = "anonymous"
        if name == "iframe" and policy.sandbox_tokens is not None:
            self._apply_sandbox(attrs)

        if not attrs and not policy.allows_no_attrs(name):
            self._strip(tag, "no attributes left")
            if not self_closing:
                self._dropped_end_tags[name] = self._dropped_end_tags.get(name, 0) + 1
            return

        self._emit(serialize_start_tag(name, attrs, self_closing=self_closing))
        if name in UNSAFE_ELEMENTS and not self_closing:
            self._raw_text = _RAW_WRITE

    def _process_end_tag(self, tag: Tag) -> None:
        name = tag.name
        if self._skip_name is not None:
            if name == self._skip_name:
                self._skip_depth -= 1
                if self._skip_depth == 0:
                    self.debug(f"finished skipping <{name}>")
                    self._skip_name = None
                    if self.policy.add_space_on_strip:
                        self._emit(" ")
            return

        pending = self._dropped_end_tags.get(name, 0)
        if pending:
            if pending == 1:
                del self._dropped_end_tags[name]
            else:
                self._dropped_end_tags[name] = pending - 1
            self._strip(tag, "start tag was stripped")
            return

        policy = self.policy
        if not policy.is_element_allowed(name):
            self._strip(tag, "element not allowed")
            return
        if name in UNSAFE_ELEMENTS and not policy.allow_unsafe_flag:
            self._strip(tag, "unsafe element")
            return
        self._emit(serialize_end_tag(name))

    def filter_attrs(self, element: str, attrs: dict[str, str]) -> dict[str, str]:
        """Return the attributes of element that survive the policy."""
        policy = self.policy
        clean: dict[str, str] = {}
        styled = policy.has_style_rules(element)
        for name, value in attrs.items():
            if policy.allow_data_attrs and is_data_attribute(name):
                clean[name] = value
                continue

            rule = policy.attr_rule(element, name)
            if name == "style" and styled:
                value = filter_style(element, value, policy)
                if value and (rule is None or rule.accepts(value)):
                    clean[name] = value
                continue

            if rule is None or not rule.accepts(value):
                self.debug(f"dropped attribute {name}={value!r} on <{element}>", indent=6)
                continue
            if policy.parseable_urls and is_url_attribute(element, name):
                url = validate_url(value, policy)
                if url is None:
                    self.debug(f"rejected URL {value!r} on <{element}>", indent=6)
                    continue
                value = url
            clean[name] = value
        return clean

    def _apply_link_safety(self, element: str, attrs: dict[str, str]) -> None:
        policy = self.policy
        if element not in LINK_ELEMENTS or "href" not in attrs:
            return
        if not (
            policy.require_nofollow
            or policy.require_nofollow_fully_qualified
            or policy.require_noreferrer
            or policy.require_noreferrer_fully_qualified
            or policy.add_target_blank
        ):
            return

        external = is_fully_qualified(attrs["href"])
        additions = []
        if policy.require_nofollow or (external and policy.require_nofollow_fully_qualified):
            additions.append("nofollow")
        if policy.require_noreferrer or (external and policy.require_noreferrer_fully_qualified):
            additions.append("noreferrer")

        add_target = external and policy.add_target_blank
        if add_target or attrs.get("target") == "_blank":
            additions.append("noopener")

        if additions or "rel" in attrs:
            attrs["rel"] = _merge_rel(attrs.get("rel"), additions)
            if not attrs["rel"]:
                del attrs["rel"]
        if add_target:
            attrs["target"] = "_blank"

    def _apply_sandbox(self, attrs: dict[str, str]) -> None:
        allowed = self.policy.sandbox_tokens or ()
        if "sandbox" not in attrs:
            attrs["sandbox"] = ""
            return
        kept: list[str] = []
        for token in attrs["sandbox"].lower().split():
            if token in allowed and token not in kept:
                kept.append(token)
        attrs["sandbox"] = " ".join(kept)


def sanitize(text: str, policy: Policy, *, debug: bool = False) -> str:
    """Sanitize an HTML fragment held in a string."""
    parts: list[str] = []
    Sanitizer(policy, parts.append, debug=debug).run(Tokenizer(text))
    return "".join(parts)


def sanitize_bytes(data: bytes, policy: Policy, *, debug: bool = False) -> bytes:
    """Sanitize UTF-8 encoded markup. Invalid sequences become U+FFFD."""
    return sanitize(data.decode("utf-8", errors="replace"), policy, debug=debug).encode("utf-8")


def sanitize_reader(
    reader: IO,
    policy: Policy,
    *,
    debug: bool = False,
    tokenizer_opts: TokenizerOpts | None = None,
) -> str:
    """Sanitize markup read from a text or binary file-like object."""
    parts: list[str] = []
    Sanitizer(policy, parts.append, debug=debug).run(Tokenizer(reader, tokenizer_opts))
    return "".join(parts)


def sanitize_reader_to_writer(
    reader: IO,
    writer: IO,
    policy: Policy,
    *,
    debug: bool = False,
    tokenizer_opts: TokenizerOpts | None = None,
) -> None:
    """Sanitize from reader to writer without holding the whole document.

    Output is written as it is produced; if an error is raised, whatever was
    already written is sanitized.
    """
    Sanitizer(policy, writer.write, debug=debug).run(Tokenizer(reader, tokenizer_opts))
