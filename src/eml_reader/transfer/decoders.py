"""
Content-Transfer-Encoding decoders.

Each decoder wraps a body stream and yields decoded bytes lazily. Encoding
tokens are matched case-insensitively; anything not listed here is rejected
with UnsupportedEncodingError.
"""

import binascii
import string
from typing import BinaryIO, Optional

from ..errors import TransferDecodeError, UnsupportedEncodingError
from ..streams import ChunkedReader, buffered

IDENTITY_ENCODINGS = frozenset({"", "7bit", "8bit", "binary"})
QUOTED_PRINTABLE = "quoted-printable"
BASE64 = "base64"

SUPPORTED_ENCODINGS = IDENTITY_ENCODINGS | {QUOTED_PRINTABLE, BASE64}

_BASE64_ALPHABET = (string.ascii_letters + string.digits + "+/=").encode("ascii")
_BASE64_NOISE = bytes(b for b in range(256) if b not in _BASE64_ALPHABET)


def normalize_encoding(token: Optional[str]) -> str:
    """Normalize a Content-Transfer-Encoding value ('7bit' when absent)."""
    if token is None:
        return "7bit"
    token = token.strip().strip('"').lower()
    return token or "7bit"


class Base64DecodingReader(ChunkedReader):
    """Decodes base64, ignoring line breaks and any other non-alphabet bytes."""

    def __init__(self, source: BinaryIO, chunk_size: int = 8192):
        super().__init__()
        self._source = source
        self._chunk_size = chunk_size
        self._carry = b""
        self._finished = False

    def _next_chunk(self) -> Optional[bytes]:
        if self._finished:
            return None

        data = self._source.read(self._chunk_size)
        if not data:
            self._finished = True
            return self._decode_tail()

        data = self._carry + data.translate(None, _BASE64_NOISE)
        usable = len(data) - len(data) % 4
        self._carry = data[usable:]
        return self._decode(data[:usable])

    def _decode_tail(self) -> bytes:
        tail = self._carry.rstrip(b"=")
        self._carry = b""
        if not tail:
            return b""
        if len(tail) % 4 == 1 or b"=" in tail:
            raise TransferDecodeError("truncated base64 data")
        return self._decode(tail + b"=" * (-len(tail) % 4))

    @staticmethod
    def _decode(data: bytes) -> bytes:
        # a2b_base64 stops at the first padded quantum, so decode each padded run on its own
        out = bytearray()
        start = 0
        while start < len(data):
            pad = data.find(b"=", start)
            end = len(data) if pad < 0 else pad - pad % 4 + 4
            segment = data[start:end]
            if pad >= 0 and (pad % 4 < 2 or segment[pad - start:].strip(b"=")):
                raise TransferDecodeError("invalid base64 padding")
            try:
                out += binascii.a2b_base64(segment)
            except binascii.Error as e:
                raise TransferDecodeError(f"invalid base64 data: {e}") from e
            start = end
        return bytes(out)


class QuotedPrintableDecodingReader(ChunkedReader):
    """
    Decodes quoted-printable line by line.

    Trailing whitespace on encoded lines is dropped, ``=`` at end of line is a
    soft break, and escapes that are not two hex digits are kept literally.
    """

    def __init__(self, source: BinaryIO, chunk_size: int = 8192):
        super().__init__()
        self._source = source
        self._chunk_size = chunk_size
        self._partial = b""

    def _next_chunk(self) -> Optional[bytes]:
        line = self._source.readline(self._chunk_size)
        if not line:
            if not self._partial:
                return None
            line, self._partial = self._partial, b""
            return self._decode_line(line, b"")

        if not line.endswith(b"\n"):
            # line longer than the read size; wait for the rest of it
            self._partial += line
            return b""

        line, self._partial = self._partial + line, b""
        if line.endswith(b"\r\n"):
            return self._decode_line(line[:-2], b"\r\n")
        return self._decode_line(line[:-1], b"\n")

    @staticmethod
    def _decode_line(content: bytes, eol: bytes) -> bytes:
        content = content.rstrip(b" \t")
        if content.endswith(b"="):
            return binascii.a2b_qp(content[:-1])
        return binascii.a2b_qp(content) + eol


def transfer_decoder(encoding: Optional[str], source: BinaryIO, chunk_size: int = 8192) -> BinaryIO:
    """
    Wrap a body stream with the decoder for a Content-Transfer-Encoding.

    Args:
        encoding: Raw header value (None means 7bit)
        source: Encoded body stream
        chunk_size: Read size used by the decoder

    Returns:
        Readable stream of decoded bytes (``source`` itself for identity encodings)

    Raises:
        UnsupportedEncodingError: If the encoding is unknown
    """
    token = normalize_encoding(encoding)
    if token in IDENTITY_ENCODINGS:
        return source
    if token == QUOTED_PRINTABLE:
        return buffered(QuotedPrintableDecodingReader(source, chunk_size), chunk_size)
    if token == BASE64:
        return buffered(Base64DecodingReader(source, chunk_size), chunk_size)
    raise UnsupportedEncodingError(token)

