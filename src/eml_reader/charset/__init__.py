# Charset resolution and conversion

from .decoding import CharsetDecodingReader, detect_charset
from .registry import (
    MAIL_CHARSET_ALIASES,
    CharsetRegistry,
    DecoderFactory,
    default_registry,
    normalize_charset_name,
)

__all__ = [
    "CharsetRegistry",
    "CharsetDecodingReader",
    "DecoderFactory",
    "MAIL_CHARSET_ALIASES",
    "default_registry",
    "detect_charset",
    "normalize_charset_name",
]
