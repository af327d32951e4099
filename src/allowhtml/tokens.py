class Tag:
    __slots__ = ("attrs", "kind", "name")

    START = 0
    END = 1
    SELF_CLOSING = 2

    def __init__(self, kind, name, attrs=None):
        self.kind = kind
        self.name = name
        # Ordered name -> value; duplicates are dropped by the tokenizer.
        self.attrs = attrs if attrs is not None else {}

    def __repr__(self):
        attrs = " ".join(f"{name}={value!r}" for name, value in self.attrs.items())
        if self.kind == self.START:
            kind_str = "start"
        elif self.kind == self.END:
            kind_str = "end"
        else:
            kind_str = "self-closing"
        return f"<{kind_str}:{self.name} {attrs}>" if attrs else f"<{kind_str}:{self.name}>"

    def __eq__(self, other):
        if not isinstance(other, Tag):
            return NotImplemented
        return self.kind == other.kind and self.name == other.name and self.attrs == other.attrs


class CharacterTokens:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data

    def __repr__(self):
        return f"CharacterTokens({self.data!r})"

    def __eq__(self, other):
        if not isinstance(other, CharacterTokens):
            return NotImplemented
        return self.data == other.data


class CommentToken:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data

    def __repr__(self):
        return f"CommentToken({self.data!r})"

    def __eq__(self, other):
        if not isinstance(other, CommentToken):
            return NotImplemented
        return self.data == other.data


class DoctypeToken:
    __slots__ = ("data",)

    def __init__(self, data):
        # Everything between "<!DOCTYPE" and ">", whitespace-trimmed.
        self.data = data

    def __repr__(self):
        return f"DoctypeToken({self.data!r})"

    def __eq__(self, other):
        if not isinstance(other, DoctypeToken):
            return NotImplemented
        return self.data == other.data


class ErrorToken:
    __slots__ = ("error",)

    def __init__(self, error):
        self.error = error

    def __repr__(self):
        return f"ErrorToken({self.error!r})"


class ParseError:
    """Represents a tokenizer error with location information."""

    __slots__ = ("code", "column", "line", "message")

    def __init__(self, code, line=None, column=None, message=None):
        self.code = code
        self.line = line
        self.column = column
        self.message = message or code

    def __repr__(self):
        if self.line is not None and self.column is not None:
            return f"ParseError({self.code!r}, line={self.line}, column={self.column})"
        return f"ParseError({self.code!r})"

    def __str__(self):
        location = f"({self.line},{self.column}): " if self.line is not None and self.column is not None else ""
        if self.message != self.code:
            return f"{location}{self.code} - {self.message}"
        return f"{location}{self.code}"

    def __eq__(self, other):
        if not isinstance(other, ParseError):
            return NotImplemented
        return (
            self.code == other.code
            and self.line == other.line
            and self.column == other.column
            and self.message == other.message
        )

    __hash__ = None
