"""Serialization of sanitized tokens back to markup."""

from __future__ import annotations

_ESCAPE_TABLE = str.maketrans(
    {
        "&": "&amp;",
        "'": "&#39;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&#34;",
    }
)


def escape_text(text: str | None) -> str:
    if not text:
        return ""
    return text.translate(_ESCAPE_TABLE)


# Attribute values are always double quoted, so the same table is enough.
escape_attr_value = escape_text


def serialize_start_tag(name: str, attrs: dict[str, str] | None, *, self_closing: bool = False) -> str:
    parts: list[str] = ["<", name]
    if attrs:
        for key, value in attrs.items():
            parts.extend([" ", key, '="', escape_attr_value(value), '"'])
    parts.append("/>" if self_closing else ">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    return f"</{name}>"


def serialize_comment(data: str) -> str:
    return f"<!--{data}-->"


def serialize_doctype(data: str) -> str:
    if not data:
        return "<!DOCTYPE>"
    return f"<!DOCTYPE {escape_text(data)}>"
