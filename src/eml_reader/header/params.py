"""
Structured header values: ``value; name=value; ...``.

Parses Content-Type and Content-Disposition per RFC 2045/2183 with RFC 2231
parameter continuations and charset-encoded values. Parsing never raises;
problems are returned as a HeaderParseError next to a best-effort result.
"""

import re
from typing import Dict, List, NamedTuple, Optional, Tuple
from urllib.parse import unquote_to_bytes

from ..charset.registry import CharsetRegistry, default_registry
from ..errors import HeaderParseError
from .encoded_words import decode_encoded_words

DEFAULT_MEDIA_TYPE = "text/plain"

_TOKEN_RE = re.compile(r"[^\s()<>@,;:\\\"/\[\]?=]+")
_RFC2231_KEY_RE = re.compile(r"^(?P<name>[^*]+)(?:\*(?P<section>\d+))?(?P<extended>\*)?$")


class MediaParams(NamedTuple):
    """Parsed structured header: main value, parameters, non-fatal parse error."""

    value: str
    params: Dict[str, str]
    error: Optional[HeaderParseError] = None


def _split_params(s: str) -> Tuple[List[Tuple[str, str]], Optional[str]]:
    """Split ``; a=b; c="d"`` into raw (key, value) pairs. Returns (pairs, error message)."""
    pairs: List[Tuple[str, str]] = []
    i, n = 0, len(s)
    while True:
        while i < n and (s[i].isspace() or s[i] == ";"):
            i += 1
        if i >= n:
            return pairs, None

        match = _TOKEN_RE.match(s, i)
        if not match:
            return pairs, f"invalid parameter name at {s[i:]!r}"
        key = match.group(0).lower()
        i = match.end()
        while i < n and s[i].isspace():
            i += 1
        if i >= n or s[i] != "=":
            return pairs, f"missing '=' after parameter {key!r}"
        i += 1
        while i < n and s[i].isspace():
            i += 1

        if i < n and s[i] == '"':
            i += 1
            chars = []
            closed = False
            while i < n:
                c = s[i]
                if c == "\\" and i + 1 < n:
                    chars.append(s[i + 1])
                    i += 2
                    continue
                i += 1
                if c == '"':
                    closed = True
                    break
                chars.append(c)
            pairs.append((key, "".join(chars)))
            if not closed:
                return pairs, f"unterminated quoted string for parameter {key!r}"
        else:
            # unquoted values in the wild carry tspecials and spaces; run to ';'
            end = s.find(";", i)
            end = n if end < 0 else end
            pairs.append((key, s[i:end].strip()))
            i = end


def _collapse_rfc2231(
    pairs: List[Tuple[str, str]], registry: CharsetRegistry
) -> Tuple[Dict[str, str], List[str]]:
    params: Dict[str, str] = {}
    problems: List[str] = []
    sections: Dict[str, List[Tuple[int, str, bool]]] = {}

    for key, value in pairs:
        match = _RFC2231_KEY_RE.match(key)
        if not match or (match.group("section") is None and match.group("extended") is None):
            if key in params or key in sections:
                problems.append(f"duplicate parameter {key!r}")
                continue
            params[key] = value
            continue
        name = match.group("name")
        section = int(match.group("section") or 0)
        sections.setdefault(name, []).append((section, value, bool(match.group("extended"))))

    for name, pieces in sections.items():
        pieces.sort(key=lambda piece: piece[0])
        charset = None
        data = bytearray()
        for index, (section, value, extended) in enumerate(pieces):
            if section != index:
                problems.append(f"missing continuation {index} for parameter {name!r}")
                break
            if extended and section == 0:
                head = value.split("'", 2)
                if len(head) == 3:
                    charset = head[0] or "us-ascii"
                    value = head[2]
            if extended:
                data.extend(unquote_to_bytes(value))
            else:
                data.extend(value.encode("utf-8"))

        if charset is None:
            text = bytes(data).decode("utf-8", "replace")
        else:
            text = registry.decode(bytes(data), charset, errors="replace")
            if text is None:
                problems.append(f"unknown parameter charset {charset!r}")
                text = bytes(data).decode("latin-1")
        # an extended parameter overrides a plain one of the same name
        params[name] = text

    return params, problems


def parse_header_params(
    raw: Optional[str],
    require_subtype: bool = False,
    registry: Optional[CharsetRegistry] = None,
) -> MediaParams:
    """
    Parse a structured header value.

    Args:
        raw: Raw header value, or None when the field is absent
        require_subtype: Require a ``type/subtype`` main value (Content-Type)
        registry: Charset registry for RFC 2231 and RFC 2047 decoding

    Returns:
        MediaParams with the lowercased main value (empty if absent or invalid), decoded
        parameters and an optional non-fatal HeaderParseError
    """
    if raw is None:
        return MediaParams("", {})
    registry = registry or default_registry

    main, sep, rest = raw.partition(";")
    value = main.strip().lower()
    problems: List[str] = []

    if require_subtype:
        kind, slash, subtype = (piece.strip() for piece in value.partition("/"))
        if not slash or not _TOKEN_RE.fullmatch(kind) or not _TOKEN_RE.fullmatch(subtype):
            return MediaParams("", {}, HeaderParseError(f"invalid media type {main.strip()!r}"))
        value = f"{kind}/{subtype}"
    elif value and not _TOKEN_RE.fullmatch(value):
        return MediaParams("", {}, HeaderParseError(f"invalid value {main.strip()!r}"))

    pairs, problem = _split_params(rest) if sep else ([], None)
    if problem:
        problems.append(problem)
    params, more = _collapse_rfc2231(pairs, registry)
    problems.extend(more)

    for key, param in params.items():
        if "=?" in param:
            params[key] = decode_encoded_words(param, registry)

    error = HeaderParseError("; ".join(problems)) if problems else None
    return MediaParams(value, params, error)
