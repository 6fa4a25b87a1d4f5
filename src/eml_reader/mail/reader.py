"""
Mail reader: flattens a message's MIME tree into its leaf parts.

The reader walks the entity tree depth-first, pre-order, with an explicit
stack of multipart frames. Containers are descended into, never yielded.
Every leaf comes out as a Part classified inline or attachment, with its
body run through the decode pipeline.

Example:
    with create_reader(raw_bytes) as reader:
        for part in reader:
            match part.header:
                case AttachmentHeader():
                    save(part.header.filename(), part.body)
                case InlineHeader():
                    show(part.body.read())
"""

import io
from dataclasses import dataclass
from typing import BinaryIO, Iterator, List, Optional, Tuple, Union

import structlog

from ..charset.registry import CharsetRegistry, default_registry
from ..config import Settings, settings as default_settings
from ..errors import StructuralParseError, TruncatedInputError
from ..header.fields import Header
from ..parsing.entity import Entity, read_entity
from ..parsing.multipart import MultipartReader
from .headers import PartKind, classified_header, classify

logger = structlog.get_logger(__name__)

# Reader states
READING = "reading"
EXHAUSTED = "exhausted"
CLOSED = "closed"
FAILED = "failed"


@dataclass
class Part:
    """
    One leaf of a message.

    ``body`` yields decoded bytes (UTF-8 when ``effective_charset`` is set).
    ``raw`` is the undecoded view of the same bytes; read one or the other.
    """

    header: Header
    body: BinaryIO
    raw: BinaryIO
    kind: PartKind
    transfer_encoding: str
    declared_charset: Optional[str] = None
    effective_charset: Optional[str] = None
    path: Tuple[int, ...] = ()

    @property
    def is_attachment(self) -> bool:
        return self.kind is PartKind.ATTACHMENT

    def read(self) -> bytes:
        """Read the whole decoded body."""
        return self.body.read()


@dataclass
class _Frame:
    """Remaining siblings of one multipart level."""

    reader: MultipartReader
    path: Tuple[int, ...]


class MailReader:
    """
    Pull-based reader over the leaf parts of one message.

    Not thread-safe: serialize ``next_part``/``close`` calls.
    """

    def __init__(
        self,
        root: Entity,
        settings: Optional[Settings] = None,
        registry: Optional[CharsetRegistry] = None,
        owned_stream: Optional[BinaryIO] = None,
    ):
        """
        Initialize the reader over a parsed root entity.

        Args:
            root: Root entity (top-level header already parsed)
            settings: Reader settings (global settings if None)
            registry: Charset registry (default registry if None)
            owned_stream: Stream closed by ``close()``
        """
        self.header: Header = root.header
        self.settings = settings or default_settings
        self.registry = registry or default_registry
        self._root = root
        self._owned_stream = owned_stream
        self._stack: List[_Frame] = []
        self._pending_leaf: Optional[Entity] = None
        self._state = READING
        self._parts_read = 0

        reader = root.multipart_reader()
        if reader is not None:
            self._stack.append(_Frame(reader, ()))
        else:
            self._pending_leaf = root

        self.logger = logger.bind(media_type=root.media_type)

    @property
    def state(self) -> str:
        """One of 'reading', 'exhausted', 'closed', 'failed'."""
        return self._state

    def next_part(self) -> Optional[Part]:
        """
        Get the next leaf part.

        Returns:
            The next Part, or None once all parts are read or the reader is
            closed (repeated calls keep returning None)

        Raises:
            TruncatedInputError: Once, when the stream ended before a multipart
                terminator; parts read before it remain valid
            StructuralParseError: If a nested part header is malformed; the
                traversal continues with the next call
        """
        if self._state != READING:
            return None

        if self._pending_leaf is not None:
            leaf, self._pending_leaf = self._pending_leaf, None
            return self._make_part(leaf, is_root=True)

        while self._stack:
            frame = self._stack[-1]
            try:
                child = frame.reader.next_part()
            except TruncatedInputError:
                self._unwind_truncated()
                raise
            except StructuralParseError:
                self.logger.warning("part_skipped", path=frame.path)
                raise

            if child is None:
                self._stack.pop()
                continue

            nested = child.multipart_reader()
            if nested is not None:
                self._stack.append(_Frame(nested, child.path))
                continue

            return self._make_part(child)

        self._state = EXHAUSTED
        self.logger.debug("message_exhausted", parts_read=self._parts_read)
        return None

    def _unwind_truncated(self) -> None:
        # A truncation ends every enclosing multipart too; report it only once.
        self._stack.pop()
        while self._stack and self._stack[-1].reader.truncated:
            self._stack.pop().reader.suppress_truncation()
        if not self._stack:
            self._state = FAILED

    def _make_part(self, entity: Entity, is_root: bool = False) -> Part:
        kind = classify(entity.header, self.settings, is_root=is_root)
        decoded = entity.decoded_body(attachment=kind is PartKind.ATTACHMENT)
        self._parts_read += 1
        self.logger.debug(
            "part_yielded",
            path=entity.path,
            kind=kind.value,
            media_type=entity.media_type,
            transfer_encoding=decoded.transfer_encoding,
            charset=decoded.effective_charset,
        )
        return Part(
            header=classified_header(entity.header, kind),
            body=decoded.stream,
            raw=entity.body,
            kind=kind,
            transfer_encoding=decoded.transfer_encoding,
            declared_charset=decoded.declared_charset,
            effective_charset=decoded.effective_charset,
            path=entity.path,
        )

    def close(self) -> None:
        """Abandon the traversal and release owned resources. Safe to call repeatedly."""
        if self._state == CLOSED:
            return
        self._state = CLOSED
        self._stack.clear()
        self._pending_leaf = None
        if self._owned_stream is not None:
            self._owned_stream.close()
            self._owned_stream = None

    def __iter__(self) -> Iterator[Part]:
        while True:
            part = self.next_part()
            if part is None:
                return
            yield part

    def __enter__(self) -> "MailReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def create_reader(
    source: Union[bytes, bytearray, BinaryIO],
    settings: Optional[Settings] = None,
    registry: Optional[CharsetRegistry] = None,
    close_source: bool = False,
) -> MailReader:
    """
    Create a reader over a message.

    Only the top-level header is parsed here; parts are read on demand.

    Args:
        source: Message bytes or a binary stream positioned at its start
        settings: Reader settings (global settings if None)
        registry: Charset registry (default registry if None)
        close_source: Close ``source`` when the reader is closed

    Returns:
        MailReader positioned before the first part

    Raises:
        StructuralParseError: If the top-level header block is unparseable
    """
    settings = settings or default_settings
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))
        close_source = True

    try:
        root = read_entity(source, settings=settings, registry=registry)
    except StructuralParseError as e:
        logger.error("message_header_unparseable", error=str(e))
        if close_source:
            source.close()
        raise

    return MailReader(root, settings, registry, owned_stream=source if close_source else None)


def open_reader(
    path: str,
    settings: Optional[Settings] = None,
    registry: Optional[CharsetRegistry] = None,
) -> MailReader:
    """
    Open a message file and create a reader that owns the file handle.

    Args:
        path: Path to an .eml file

    Returns:
        MailReader; closing it closes the file

    Raises:
        FileNotFoundError: If the file doesn't exist
        StructuralParseError: If the top-level header block is unparseable
    """
    f = open(path, "rb")
    return create_reader(f, settings=settings, registry=registry, close_source=True)
