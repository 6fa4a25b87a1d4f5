"""
RFC 2047 encoded-word decoding for header display.

Runs like ``=?utf-8?Q?caf=C3=A9?=`` are replaced by their text. Adjacent
words separated only by whitespace are joined, and their bytes are
concatenated before decoding when they share a charset so multi-byte
characters split across words survive. A word whose charset is unknown or
whose payload is corrupt is left verbatim.
"""

import binascii
import re
from typing import List, Optional, Tuple

from ..charset.registry import CharsetRegistry, default_registry

ENCODED_WORD_RE = re.compile(
    r"=\?(?P<charset>[^?\s]+)\?(?P<encoding>[QqBb])\?(?P<text>[^?\s]*)\?="
)


def _decode_payload(encoding: str, text: str) -> Optional[bytes]:
    data = text.encode("ascii", "surrogateescape")
    if encoding in "Qq":
        return binascii.a2b_qp(data, header=True)
    data = data.rstrip(b"=")
    if len(data) % 4 == 1:
        return None
    try:
        return binascii.a2b_base64(data + b"=" * (-len(data) % 4))
    except binascii.Error:
        return None


def decode_encoded_words(value: str, registry: Optional[CharsetRegistry] = None) -> str:
    """
    Decode every RFC 2047 encoded word inside a raw header value.

    Args:
        value: Raw (unfolded) header value
        registry: Charset registry used to decode each word (default registry if None)

    Returns:
        Display text with encoded words decoded
    """
    if "=?" not in value:
        return value
    registry = registry or default_registry

    out: List[str] = []
    # (charset, accumulated bytes, verbatim source of the run)
    run: Optional[Tuple[str, bytearray, str]] = None
    pos = 0

    def flush() -> None:
        nonlocal run
        if run is None:
            return
        charset, data, source = run
        text = registry.decode(bytes(data), charset, errors="replace")
        out.append(source if text is None else text)
        run = None

    for match in ENCODED_WORD_RE.finditer(value):
        gap = value[pos:match.start()]
        charset = match.group("charset")
        payload = _decode_payload(match.group("encoding"), match.group("text"))
        pos = match.end()

        if payload is None:
            flush()
            out.append(gap + match.group(0))
            continue

        if run is not None and gap.strip() == "":
            # whitespace between adjacent encoded words is not displayed
            if run[0].lower() == charset.lower():
                run[1].extend(payload)
                run = (run[0], run[1], run[2] + gap + match.group(0))
                continue
            flush()
        else:
            flush()
            out.append(gap)
        run = (charset, bytearray(payload), match.group(0))

    flush()
    out.append(value[pos:])
    return "".join(out)
