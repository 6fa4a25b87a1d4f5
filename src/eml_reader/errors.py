"""
Exception hierarchy for the MIME reader.

Structural failures abort reader creation. Everything else is scoped to the
single part or header access that triggered it.
"""

from typing import Optional


class MailError(Exception):
    """Base class for every error raised by eml_reader."""


class StructuralParseError(MailError):
    """A header block could not be parsed."""

    def __init__(self, message: str, line: Optional[bytes] = None):
        super().__init__(message)
        self.line = line


class BoundaryError(MailError):
    """A multipart entity declares a missing or invalid boundary parameter."""


class TruncatedInputError(MailError):
    """The stream ended before a multipart terminator was seen."""


class UnsupportedEncodingError(MailError):
    """Unknown Content-Transfer-Encoding token."""

    def __init__(self, encoding: str):
        super().__init__(f"unsupported Content-Transfer-Encoding: {encoding!r}")
        self.encoding = encoding


class TransferDecodeError(MailError):
    """Body bytes are corrupt for the declared transfer encoding."""


class HeaderParseError(MailError):
    """Non-fatal error while parsing a structured header value."""


class NotFoundError(MailError, LookupError):
    """A requested header field or parameter is not present."""
