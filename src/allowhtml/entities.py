"""Character reference decoding for text and attribute values.

Named references come from the standard library's HTML5 table. Legacy
references (the HTML4 Latin-1 set) may appear without a trailing semicolon.
"""

import html.entities
import re

# Keys without the trailing semicolon
NAMED_ENTITIES = {}
for _key, _value in html.entities.html5.items():
    NAMED_ENTITIES[_key.rstrip(";")] = _value

# html5 lists a name without ';' exactly when it is a legacy reference
LEGACY_ENTITIES = frozenset(key for key in html.entities.html5 if not key.endswith(";"))

_LONGEST_NAME = max(len(name) for name in NAMED_ENTITIES)

# Windows-1252 remapping for C1 numeric references
NUMERIC_REPLACEMENTS = {
    0x00: "\ufffd",
    0x80: "\u20ac",
    0x82: "\u201a",
    0x83: "\u0192",
    0x84: "\u201e",
    0x85: "\u2026",
    0x86: "\u2020",
    0x87: "\u2021",
    0x88: "\u02c6",
    0x89: "\u2030",
    0x8A: "\u0160",
    0x8B: "\u2039",
    0x8C: "\u0152",
    0x8E: "\u017d",
    0x91: "\u2018",
    0x92: "\u2019",
    0x93: "\u201c",
    0x94: "\u201d",
    0x95: "\u2022",
    0x96: "\u2013",
    0x97: "\u2014",
    0x98: "\u02dc",
    0x99: "\u2122",
    0x9A: "\u0161",
    0x9B: "\u203a",
    0x9C: "\u0153",
    0x9E: "\u017e",
    0x9F: "\u0178",
}

_REFERENCE = re.compile(r"&(?:#[xX]([0-9a-fA-F]+);?|#([0-9]+);?|([A-Za-z][A-Za-z0-9]*);?)")


def decode_numeric_entity(text, is_hex=False):
    """Decode the digits of a numeric reference like &#60; or &#x3C;.

    Returns None when the digits are not a number at all.
    """
    try:
        codepoint = int(text, 16 if is_hex else 10)
    except ValueError:
        return None
    if codepoint in NUMERIC_REPLACEMENTS:
        return NUMERIC_REPLACEMENTS[codepoint]
    if codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
        return "\ufffd"
    return chr(codepoint)


def _decode_named(match, in_attribute):
    whole = match.group(0)
    name = match.group(3)
    has_semicolon = whole.endswith(";")
    if has_semicolon and name in NAMED_ENTITIES:
        return NAMED_ENTITIES[name]

    # Longest legacy prefix: "&notit;" decodes to "\xacit;"
    for size in range(min(len(name), _LONGEST_NAME), 1, -1):
        prefix = name[:size]
        if prefix not in LEGACY_ENTITIES:
            continue
        rest = whole[1 + size:]
        if in_attribute:
            # The character deciding the attribute rule may follow the match
            following = rest[:1] or match.string[match.end() : match.end() + 1]
            if following.isalnum() or following == "=":
                return whole
        return NAMED_ENTITIES[prefix] + rest
    return whole


def decode_entities_in_text(text, in_attribute=False):
    """Decode every character reference in text.

    in_attribute applies the stricter attribute-value rule for legacy
    references that are directly followed by an alphanumeric or '='.
    """
    if "&" not in text:
        return text

    def replace(match):
        hex_digits, dec_digits, name = match.groups()
        if name is not None:
            return _decode_named(match, in_attribute)
        decoded = decode_numeric_entity(hex_digits or dec_digits, is_hex=hex_digits is not None)
        return match.group(0) if decoded is None else decoded

    return _REFERENCE.sub(replace, text)
