"""
Multipart boundary parser.

Splits a multipart body into sub-entities lazily. The parser reads the
parent stream line by line; each part body is a bounded view that stops at
the next delimiter line, so no part is ever held in memory as a whole.
"""

from typing import TYPE_CHECKING, BinaryIO, Iterator, Optional, Tuple

import structlog

from ..charset.registry import CharsetRegistry
from ..config import Settings
from ..errors import StructuralParseError, TruncatedInputError
from ..header.fields import parse_header_block
from ..streams import ChunkedReader, buffered

if TYPE_CHECKING:
    from .entity import Entity

logger = structlog.get_logger(__name__)

# Parser states
PREAMBLE = "preamble"
PARTS = "parts"
DONE = "done"
TRUNCATED = "truncated"

DELIMITER = "delimiter"
TERMINATOR = "terminator"


def split_line_ending(line: bytes) -> Tuple[bytes, bytes]:
    """Split a line into (content, line ending)."""
    if line.endswith(b"\r\n"):
        return line[:-2], b"\r\n"
    if line.endswith(b"\n"):
        return line[:-1], b"\n"
    return line, b""


class PartBody(ChunkedReader):
    """
    Bounded view over one part of a multipart body.

    The line ending that precedes a delimiter belongs to the delimiter, so
    each line's ending is held back until the next line is known not to be one.
    """

    def __init__(self, multipart: "MultipartReader", finished: bool = False):
        super().__init__()
        self._multipart = multipart
        self._held_eol = b""
        self._at_line_start = True
        self.finished = finished

    def _next_chunk(self) -> Optional[bytes]:
        if self.finished:
            return None

        line = self._multipart._readline()
        if not line:
            self.finished = True
            self._multipart._end_of_stream()
            return None

        if self._at_line_start:
            kind = self._multipart.delimiter_kind(line)
            if kind is not None:
                self.finished = True
                self._multipart._delimiter_seen(kind)
                return None

        content, eol = split_line_ending(line)
        chunk = self._held_eol + content
        self._held_eol = eol
        self._at_line_start = bool(eol)
        return chunk

    def skip_rest(self) -> None:
        """Consume the remainder of the part, even if the stream was closed."""
        self._pending = b""
        while self._next_chunk() is not None:
            pass


class MultipartReader:
    """
    Iterates over the parts of one multipart body.

    Bytes before the first delimiter (preamble) and after the terminator
    (epilogue) are ignored. A missing terminator is reported once as
    TruncatedInputError after the last part.
    """

    def __init__(
        self,
        source: BinaryIO,
        boundary: str,
        settings: Settings,
        registry: CharsetRegistry,
        depth: int = 0,
        path: Tuple[int, ...] = (),
    ):
        """
        Initialize the reader.

        Args:
            source: Multipart body stream (must support ``readline(size)``)
            boundary: Boundary parameter from Content-Type
            settings: Reader settings
            registry: Charset registry passed to child entities
            depth: Nesting depth of the multipart entity
            path: Child indexes leading to the multipart entity
        """
        self._source = source
        self._dash_boundary = b"--" + boundary.encode("utf-8")
        self.settings = settings
        self.registry = registry
        self.depth = depth
        self.path = path
        self._state = PREAMBLE
        self._current: Optional[PartBody] = None
        self._index = 0
        self._truncation_reported = False

        self.logger = logger.bind(boundary=boundary, depth=depth)

    @property
    def truncated(self) -> bool:
        """True once the stream ended before the terminator."""
        return self._state == TRUNCATED

    def delimiter_kind(self, line: bytes) -> Optional[str]:
        """Classify a line as DELIMITER, TERMINATOR or neither (None)."""
        if not line.startswith(self._dash_boundary):
            return None
        rest = line[len(self._dash_boundary):].rstrip(b" \t\r\n")
        if not rest:
            return DELIMITER
        if rest == b"--":
            return TERMINATOR
        return None

    def _could_be_delimiter(self, partial: bytes) -> bool:
        dash_boundary = self._dash_boundary
        if len(partial) <= len(dash_boundary):
            return dash_boundary.startswith(partial)
        if not partial.startswith(dash_boundary):
            return False
        rest = partial[len(dash_boundary):]
        if rest == b"-" or rest.startswith(b"--"):
            rest = rest[2:]
        return not rest.strip(b" \t\r")

    def _readline(self) -> bytes:
        size = self.settings.read_chunk_size
        line = self._source.readline(size)
        # a delimiter or a CRLF pair must not be split across reads
        while line and not line.endswith(b"\n") and (line.endswith(b"\r") or self._could_be_delimiter(line)):
            more = self._source.readline(size)
            if not more:
                break
            line += more
        return line

    def _delimiter_seen(self, kind: str) -> None:
        self._state = DONE if kind == TERMINATOR else PARTS

    def _end_of_stream(self) -> None:
        if self._state != DONE:
            self._state = TRUNCATED

    def _skip_preamble(self) -> None:
        at_line_start = True
        while self._state == PREAMBLE:
            line = self._readline()
            if not line:
                self._end_of_stream()
                return
            kind = self.delimiter_kind(line) if at_line_start else None
            if kind is not None:
                self._delimiter_seen(kind)
            at_line_start = line.endswith(b"\n")

    def suppress_truncation(self) -> None:
        """Mark a truncation as already reported by an enclosing or nested reader."""
        self._truncation_reported = True

    def _report_truncation(self) -> None:
        if self._truncation_reported:
            return
        self._truncation_reported = True
        self.logger.warning("multipart_truncated", parts_read=self._index)
        raise TruncatedInputError(
            f"stream ended before the multipart terminator after {self._index} part(s)"
        )

    def next_part(self) -> Optional["Entity"]:
        """
        Advance to the next part.

        Any unread remainder of the previous part is skipped first. A part
        whose header block is cut off by the end of the stream is not
        returned; the truncation is reported instead.

        Returns:
            The next child Entity, or None when the parts are exhausted

        Raises:
            TruncatedInputError: Once, if the stream ended before the terminator
            StructuralParseError: If the part's header block is malformed; the
                part is skipped on the following call
        """
        from .entity import Entity

        if self._current is not None:
            self._current.skip_rest()
            self._current = None

        if self._state == PREAMBLE:
            self._skip_preamble()

        if self._state == TRUNCATED:
            return self._report_truncation()
        if self._state == DONE:
            return None

        body = PartBody(self)
        self._current = body
        last_line = b""

        def readline(size: int) -> bytes:
            nonlocal last_line
            last_line = self._source.readline(size)
            return last_line

        try:
            header, stop_line = parse_header_block(
                readline,
                max_bytes=self.settings.max_header_bytes,
                is_delimiter=lambda line: self.delimiter_kind(line) is not None,
                registry=self.registry,
            )
        except StructuralParseError as e:
            self.logger.warning("part_header_malformed", index=self._index, error=str(e))
            self._index += 1
            raise

        if stop_line is None and not last_line:
            # end of stream before the blank line closing the header block
            body.finished = True
            self._current = None
            self._end_of_stream()
            return self._report_truncation()

        if stop_line is not None:
            # delimiter right after the headers: empty body
            body.finished = True
            self._delimiter_seen(self.delimiter_kind(stop_line))

        index = self._index
        self._index += 1
        return Entity(
            header,
            buffered(body, self.settings.read_chunk_size),
            settings=self.settings,
            registry=self.registry,
            depth=self.depth + 1,
            path=self.path + (index,),
        )

    def __iter__(self) -> Iterator["Entity"]:
        while True:
            part = self.next_part()
            if part is None:
                return
            yield part
