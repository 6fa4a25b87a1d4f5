"""
Entity decode pipeline.

A leaf body goes through transfer decoding and then, for textual parts,
charset conversion to UTF-8:

1. Content-Transfer-Encoding (7bit/8bit/binary identity, quoted-printable,
   base64). An unknown encoding does not fail here; the returned stream
   raises UnsupportedEncodingError when read.
2. Charset decoding, only for ``text/*`` parts that are inline, or are
   attachments while ``Settings.decode_text_attachments`` is enabled. An
   unknown charset degrades to the transfer-decoded bytes.

The header is never modified: callers always see the declared Content-Type.
"""

import io
from dataclasses import dataclass
from typing import BinaryIO, Optional

import structlog

from .charset.decoding import CharsetDecodingReader, detect_charset
from .charset.registry import CharsetRegistry
from .config import Settings
from .errors import UnsupportedEncodingError
from .header.fields import Header
from .streams import FailingReader, buffered
from .transfer.decoders import normalize_encoding, transfer_decoder

logger = structlog.get_logger(__name__)


@dataclass
class DecodedBody:
    """Result of the decode pipeline for one leaf."""

    stream: BinaryIO
    transfer_encoding: str
    declared_charset: Optional[str] = None
    effective_charset: Optional[str] = None  # None: bytes passed through unconverted

    @property
    def charset_decoded(self) -> bool:
        """True if the stream yields UTF-8 converted from the part's charset."""
        return self.effective_charset is not None


def should_decode_charset(media_type: str, attachment: bool, settings: Settings) -> bool:
    """
    Decide whether a part's bytes are converted to text.

    Args:
        media_type: Lowercased media type
        attachment: Whether the part is classified as an attachment
        settings: Settings holding the decode_text_attachments policy

    Returns:
        True for text/* parts that are inline, or attachments when the policy allows
    """
    if not media_type.startswith("text/"):
        return False
    return not attachment or settings.decode_text_attachments


def decode_body(
    header: Header,
    raw: BinaryIO,
    attachment: bool,
    settings: Settings,
    registry: CharsetRegistry,
) -> DecodedBody:
    """
    Wrap a raw leaf body with the decoders its header calls for.

    Args:
        header: Leaf header
        raw: Raw (transfer-encoded) body stream
        attachment: Whether the leaf is classified as an attachment
        settings: Reader settings
        registry: Charset registry

    Returns:
        DecodedBody describing the decoded stream
    """
    media_type, params, _ = header.content_type()
    declared = params.get("charset")
    encoding = normalize_encoding(header.get("Content-Transfer-Encoding"))
    chunk_size = settings.read_chunk_size

    try:
        stream = transfer_decoder(encoding, raw, chunk_size)
    except UnsupportedEncodingError as e:
        logger.warning("transfer_encoding_unsupported", encoding=encoding, media_type=media_type)
        return DecodedBody(buffered(FailingReader(e), chunk_size), encoding, declared)

    if not should_decode_charset(media_type, attachment, settings):
        return DecodedBody(stream, encoding, declared)

    charset = declared or settings.default_charset
    factory = registry.resolve(charset)
    effective = registry.codec_name(charset) or charset

    if factory is None and settings.detect_unknown_charsets:
        payload = stream.read()
        stream = io.BytesIO(payload)
        guessed = detect_charset(payload)
        if guessed is not None:
            factory = registry.resolve(guessed)
            effective = guessed
            logger.info("charset_detected", declared=charset, detected=guessed)

    if factory is None:
        logger.warning("charset_unresolved_passthrough", charset=charset, media_type=media_type)
        return DecodedBody(stream, encoding, declared)

    decoder = factory(settings.charset_errors)
    return DecodedBody(
        buffered(CharsetDecodingReader(stream, decoder, chunk_size), chunk_size),
        encoding,
        declared,
        effective,
    )
