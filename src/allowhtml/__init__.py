from .errors import ConstructionError, EmptyInputError, SanitizeError, TokenizationError, UnsupportedTokenError
from .helpers import clean_non_utf8, snip_text
from .policies import strict_policy, strip_tags_policy, ugc_policy
from .policy import AttributeRule, Policy
from .sanitize import Sanitizer, sanitize, sanitize_bytes, sanitize_reader, sanitize_reader_to_writer
from .tokenizer import Tokenizer, TokenizerOpts
from .tokens import ParseError

__all__ = [
    "AttributeRule",
    "ConstructionError",
    "EmptyInputError",
    "ParseError",
    "Policy",
    "SanitizeError",
    "Sanitizer",
    "TokenizationError",
    "Tokenizer",
    "TokenizerOpts",
    "UnsupportedTokenError",
    "clean_non_utf8",
    "sanitize",
    "sanitize_bytes",
    "sanitize_reader",
    "sanitize_reader_to_writer",
    "snip_text",
    "strict_policy",
    "strip_tags_policy",
    "ugc_policy",
]
