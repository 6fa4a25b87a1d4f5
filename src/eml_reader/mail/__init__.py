# Mail-level traversal: classified leaf parts of a message

from .headers import AttachmentHeader, InlineHeader, PartKind, classified_header, classify
from .reader import MailReader, Part, create_reader, open_reader

__all__ = [
    "AttachmentHeader",
    "InlineHeader",
    "MailReader",
    "Part",
    "PartKind",
    "classified_header",
    "classify",
    "create_reader",
    "open_reader",
]
