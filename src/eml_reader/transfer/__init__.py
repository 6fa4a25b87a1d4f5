# Content-Transfer-Encoding decoders

from .decoders import (
    BASE64,
    IDENTITY_ENCODINGS,
    QUOTED_PRINTABLE,
    SUPPORTED_ENCODINGS,
    Base64DecodingReader,
    QuotedPrintableDecodingReader,
    normalize_encoding,
    transfer_decoder,
)

__all__ = [
    "BASE64",
    "IDENTITY_ENCODINGS",
    "QUOTED_PRINTABLE",
    "SUPPORTED_ENCODINGS",
    "Base64DecodingReader",
    "QuotedPrintableDecodingReader",
    "normalize_encoding",
    "transfer_decoder",
]
