"""
eml_reader: streaming MIME message reader.

Walks a message's entity tree lazily and yields each leaf part (inline text
or attachment) with its transfer encoding and charset reversed.
"""

from .charset.registry import CharsetRegistry, default_registry
from .config import Settings, settings
from .errors import (
    BoundaryError,
    HeaderParseError,
    MailError,
    NotFoundError,
    StructuralParseError,
    TransferDecodeError,
    TruncatedInputError,
    UnsupportedEncodingError,
)
from .header.fields import Header
from .header.params import MediaParams
from .mail.headers import AttachmentHeader, InlineHeader, PartKind
from .mail.reader import MailReader, Part, create_reader, open_reader
from .parsing.entity import Entity, read_entity
from .parsing.multipart import MultipartReader

__version__ = "0.1.0"

__all__ = [
    "AttachmentHeader",
    "BoundaryError",
    "CharsetRegistry",
    "Entity",
    "Header",
    "HeaderParseError",
    "InlineHeader",
    "MailError",
    "MailReader",
    "MediaParams",
    "MultipartReader",
    "NotFoundError",
    "Part",
    "PartKind",
    "Settings",
    "StructuralParseError",
    "TransferDecodeError",
    "TruncatedInputError",
    "UnsupportedEncodingError",
    "create_reader",
    "default_registry",
    "open_reader",
    "read_entity",
    "settings",
]
