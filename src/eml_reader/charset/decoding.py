"""
Streaming charset conversion to UTF-8.
"""

import codecs
from typing import BinaryIO, Optional

import charset_normalizer

from ..streams import ChunkedReader


class CharsetDecodingReader(ChunkedReader):
    """
    Converts a byte stream in some charset to UTF-8 bytes, chunk by chunk.

    Multi-byte sequences split across chunks are handled by the incremental
    decoder; lone surrogates produced by ``surrogateescape`` map back to the
    original bytes.
    """

    def __init__(self, source: BinaryIO, decoder: codecs.IncrementalDecoder, chunk_size: int = 8192):
        super().__init__()
        self._source = source
        self._decoder = decoder
        self._chunk_size = chunk_size
        self._finished = False

    def _next_chunk(self) -> Optional[bytes]:
        if self._finished:
            return None
        data = self._source.read(self._chunk_size)
        if not data:
            self._finished = True
            text = self._decoder.decode(b"", final=True)
        else:
            text = self._decoder.decode(data)
        return text.encode("utf-8", "surrogateescape")


def detect_charset(payload: bytes) -> Optional[str]:
    """
    Guess the encoding of a byte payload with charset-normalizer.

    Args:
        payload: Complete body bytes

    Returns:
        Detected encoding name (e.g. 'cp1251'), or None if nothing plausible
    """
    if not payload:
        return None
    detected = charset_normalizer.from_bytes(payload).best()
    if detected:
        return detected.encoding
    return None
