"""
Header model: an ordered multimap of raw header fields.

Fields keep their insertion order and may repeat. Lookups are
case-insensitive and single-valued lookups return the last occurrence.
"""

import re
from typing import Callable, Iterator, List, Optional, Tuple

from ..charset.registry import CharsetRegistry, default_registry
from ..errors import StructuralParseError
from .encoded_words import decode_encoded_words
from .params import DEFAULT_MEDIA_TYPE, MediaParams, parse_header_params

_FIELD_NAME_RE = re.compile(rb"^[!-9;-~]+$")
_MSG_ID_RE = re.compile(r"<[^<>\s]+>")


class Header:
    """Ordered, case-insensitive multimap of header fields."""

    def __init__(self, fields=(), registry: Optional[CharsetRegistry] = None):
        """
        Initialize a header.

        Args:
            fields: Iterable of (name, raw value) pairs, e.g. another Header
            registry: Charset registry used for display decoding
        """
        self._fields: List[Tuple[str, str]] = [(name, value) for name, value in fields]
        if registry is None and isinstance(fields, Header):
            registry = fields.registry
        self.registry = registry or default_registry

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        key = name.lower()
        return any(field.lower() == key for field, _ in self._fields)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._fields!r})"

    def keys(self) -> List[str]:
        """Field names in insertion order (repeats included)."""
        return [name for name, _ in self._fields]

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Raw value of the last field called ``name``."""
        key = name.lower()
        for field, value in reversed(self._fields):
            if field.lower() == key:
                return value
        return default

    def get_all(self, name: str) -> List[str]:
        """Raw values of every field called ``name``, in order."""
        key = name.lower()
        return [value for field, value in self._fields if field.lower() == key]

    def text(self, name: str) -> str:
        """Display form of a field: RFC 2047 encoded words decoded, '' when absent."""
        value = self.get(name)
        if value is None:
            return ""
        return decode_encoded_words(value, self.registry)

    def subject(self) -> str:
        """Decoded Subject, '' when absent."""
        return self.text("Subject")

    def content_type(self) -> MediaParams:
        """
        Parse Content-Type.

        Returns:
            MediaParams(media_type, params, error). An absent field yields
            ``text/plain``; a malformed one yields ``text/plain`` plus the error.
        """
        parsed = parse_header_params(self.get("Content-Type"), require_subtype=True, registry=self.registry)
        if not parsed.value:
            return MediaParams(DEFAULT_MEDIA_TYPE, parsed.params, parsed.error)
        return parsed

    def content_disposition(self) -> MediaParams:
        """
        Parse Content-Disposition.

        Returns:
            MediaParams(disposition, params, error), disposition '' when absent
        """
        return parse_header_params(self.get("Content-Disposition"), registry=self.registry)

    def message_id(self) -> Optional[str]:
        """Message-ID without angle brackets, None when absent or unparseable."""
        ids = self.message_id_list("Message-ID")
        return ids[0] if ids else None

    def message_id_list(self, name: str) -> List[str]:
        """
        Extract ``<id>`` tokens from a field such as References or In-Reply-To.

        Args:
            name: Field name

        Returns:
            Message ids without angle brackets, in order
        """
        value = self.get(name)
        if not value:
            return []
        return [token[1:-1] for token in _MSG_ID_RE.findall(value)]


def _decode_field_bytes(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def parse_header_block(
    readline: Callable[[int], bytes],
    max_bytes: int = 1024 * 1024,
    is_delimiter: Optional[Callable[[bytes], bool]] = None,
    registry: Optional[CharsetRegistry] = None,
) -> Tuple[Header, Optional[bytes]]:
    """
    Read a header block up to and including the blank line that ends it.

    Args:
        readline: ``stream.readline``-like callable taking a size limit
        max_bytes: Maximum size of the header block
        is_delimiter: Predicate for lines that end the block early (multipart
            delimiters); such a line is consumed and returned
        registry: Charset registry attached to the resulting Header

    Returns:
        Tuple of (Header, delimiter line or None). The block also ends at
        end of stream.

    Raises:
        StructuralParseError: If a line is not a valid field or the block is too large
    """
    fields: List[Tuple[bytes, bytearray]] = []
    consumed = 0
    stop_line = None

    while True:
        line = readline(max_bytes - consumed + 1)
        if not line:
            break
        consumed += len(line)
        if consumed > max_bytes:
            raise StructuralParseError(f"header block exceeds {max_bytes} bytes")
        if is_delimiter is not None and is_delimiter(line):
            stop_line = line
            break
        if line in (b"\r\n", b"\n"):
            break

        stripped = line.rstrip(b"\r\n")
        if stripped[:1] in (b" ", b"\t"):
            if not fields:
                raise StructuralParseError("header starts with a continuation line", line)
            fields[-1][1].extend(stripped)
            continue

        name, colon, value = stripped.partition(b":")
        name = name.rstrip(b" \t")
        if not colon or not _FIELD_NAME_RE.match(name):
            raise StructuralParseError("malformed header line", line)
        fields.append((name, bytearray(value)))

    header = Header(
        ((_decode_field_bytes(name), _decode_field_bytes(bytes(value)).strip()) for name, value in fields),
        registry=registry,
    )
    return header, stop_line

