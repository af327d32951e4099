"""Exceptions raised while building policies and sanitizing markup."""

from __future__ import annotations

from typing import Any

from .tokens import ParseError


class SanitizeError(Exception):
    """Base class for every error raised by allowhtml."""


class ConstructionError(SanitizeError, ValueError):
    """A policy could not be built, e.g. because a pattern failed to compile."""

    def __init__(self, message: str, pattern: Any = None) -> None:
        super().__init__(message)
        self.pattern = pattern


class EmptyInputError(SanitizeError):
    """Input was empty or whitespace only and the policy treats that as an error."""

    def __init__(self, message: str = "empty input") -> None:
        super().__init__(message)


class TokenizationError(SanitizeError):
    """The tokenizer reported an error token."""

    def __init__(self, error: ParseError) -> None:
        self.error = error
        super().__init__(str(error))


class UnsupportedTokenError(SanitizeError):
    """The sanitizer met a token kind it does not model."""

    def __init__(self, token: Any) -> None:
        self.token = token
        super().__init__(f"unsupported token: {token!r}")
