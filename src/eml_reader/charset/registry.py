"""
Charset name to decoder resolution.

Maps the charset label found in a MIME header to a Python incremental decoder
factory. Names are resolved through Python's codec registry, extended with the
aliases real-world mail uses but Python does not know.
"""

import codecs
from typing import Callable, Dict, Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)

# Factory producing a fresh incremental decoder for one body
DecoderFactory = Callable[..., codecs.IncrementalDecoder]

# Mail charset labels missing from Python's codec registry
MAIL_CHARSET_ALIASES: Dict[str, str] = {
    "ks_c_5601-1987": "cp949",
    "ks_c_5601-1989": "cp949",
    "ksc5601": "cp949",
    "ksc_5601": "cp949",
    "iso-8859-8-i": "iso-8859-8",
    "iso-8859-8-e": "iso-8859-8",
    "iso-8859-6-i": "iso-8859-6",
    "iso-8859-6-e": "iso-8859-6",
    "x-gbk": "gbk",
    "x-sjis": "shift_jis",
    "x-mac-roman": "mac_roman",
    "x-mac-cyrillic": "mac_cyrillic",
    "unicode-1-1-utf-7": "utf-7",
    "windows-874": "cp874",
    "x-windows-874": "cp874",
    "windows-31j": "cp932",
    "x-unicode20utf8": "utf-8",
    "unicode-1-1-utf-8": "utf-8",
    "ansi_x3.4-1968": "ascii",
    "us": "ascii",
}

# Sink for unresolved names; may return a decoder factory to use instead
UnknownCharsetHook = Callable[[str], Optional[DecoderFactory]]


def normalize_charset_name(name: str) -> str:
    """Lowercase a charset label and strip quotes, whitespace and RFC 2231 language suffixes."""
    name = name.strip().strip('"').strip()
    if "*" in name:
        # RFC 2231 section 5: charset*language
        name = name.split("*", 1)[0]
    return name.lower()


class CharsetRegistry:
    """
    Injectable charset resolver.

    ``resolve`` never raises: an unknown label yields ``None`` so callers can
    fall back to passing raw bytes through.
    """

    def __init__(
        self,
        aliases: Optional[Mapping[str, str]] = None,
        on_unknown: Optional[UnknownCharsetHook] = None,
    ):
        """
        Initialize the registry.

        Args:
            aliases: Extra label -> Python codec name mappings, merged over the
                built-in mail aliases
            on_unknown: Hook called with the normalized label when no codec is
                found; it may return a decoder factory
        """
        self.aliases: Dict[str, str] = dict(MAIL_CHARSET_ALIASES)
        if aliases:
            self.aliases.update({normalize_charset_name(k): v for k, v in aliases.items()})
        self.on_unknown = on_unknown

    def codec_name(self, name: str) -> Optional[str]:
        """
        Return the canonical Python codec name for a charset label.

        Args:
            name: Charset label as found in the header

        Returns:
            Codec name (e.g. ``cp1251``) or None if unknown
        """
        label = normalize_charset_name(name)
        if not label:
            return None
        label = self.aliases.get(label, label)
        try:
            info = codecs.lookup(label)
        except LookupError:
            return None
        # Binary transforms (base64_codec, rot13, ...) are not text charsets
        if not getattr(info, "_is_text_encoding", True):
            return None
        return info.name

    def resolve(self, name: str) -> Optional[DecoderFactory]:
        """
        Resolve a charset label to an incremental decoder factory.

        Args:
            name: Charset label as found in the header

        Returns:
            Factory accepting an ``errors`` argument, or None when the label is
            unknown and the ``on_unknown`` hook did not supply one
        """
        codec = self.codec_name(name)
        if codec is not None:
            return codecs.getincrementaldecoder(codec)

        if self.on_unknown is not None:
            factory = self.on_unknown(normalize_charset_name(name))
            if factory is not None:
                return factory

        logger.debug("charset_unresolved", charset=name)
        return None

    def decode(self, data: bytes, name: str, errors: str = "replace") -> Optional[str]:
        """
        Decode a complete byte string.

        Args:
            data: Bytes to decode
            name: Charset label
            errors: Codec error handler

        Returns:
            Decoded text, or None if the charset is unknown
        """
        factory = self.resolve(name)
        if factory is None:
            return None
        return factory(errors).decode(data, final=True)


# Registry used when none is injected
default_registry = CharsetRegistry()
