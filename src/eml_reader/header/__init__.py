# Header model: field multimap, structured parameters, encoded words

from .encoded_words import decode_encoded_words
from .fields import Header, parse_header_block
from .params import DEFAULT_MEDIA_TYPE, MediaParams, parse_header_params

__all__ = [
    "DEFAULT_MEDIA_TYPE",
    "Header",
    "MediaParams",
    "decode_encoded_words",
    "parse_header_block",
    "parse_header_params",
]
