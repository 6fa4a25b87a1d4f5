"""
MIME entity: one node of a message's structural tree.

An entity is a header plus a body stream. Multipart entities expose their
children lazily through a MultipartReader reading that same stream; leaves
expose the raw (still transfer-encoded) bytes.
"""

import io
from typing import BinaryIO, Iterator, Optional, Tuple

import structlog

from ..charset.registry import CharsetRegistry, default_registry
from ..config import Settings, settings as default_settings
from ..errors import BoundaryError, StructuralParseError
from ..header.fields import Header, parse_header_block
from ..pipeline import DecodedBody, decode_body
from ..streams import as_line_source
from .multipart import MultipartReader

logger = structlog.get_logger(__name__)


def validate_boundary(boundary: Optional[str]) -> Optional[BoundaryError]:
    """
    Check a multipart boundary parameter.

    Args:
        boundary: Value of the ``boundary`` parameter, None if missing

    Returns:
        BoundaryError describing the problem, or None if usable
    """
    if boundary is None:
        return BoundaryError("multipart entity without boundary parameter")
    if not boundary.strip():
        return BoundaryError("empty multipart boundary")
    if boundary != boundary.rstrip(" \t"):
        return BoundaryError(f"multipart boundary ends with whitespace: {boundary!r}")
    if any(ord(c) < 0x20 or ord(c) == 0x7F for c in boundary):
        return BoundaryError(f"multipart boundary contains control characters: {boundary!r}")
    return None


class Entity:
    """A header plus either a raw leaf body or a lazily parsed list of children."""

    def __init__(
        self,
        header: Header,
        body: BinaryIO,
        settings: Optional[Settings] = None,
        registry: Optional[CharsetRegistry] = None,
        depth: int = 0,
        path: Tuple[int, ...] = (),
    ):
        """
        Initialize an entity.

        Args:
            header: Parsed header block
            body: Raw body stream (bounded to this entity)
            settings: Reader settings (global settings if None)
            registry: Charset registry (default registry if None)
            depth: Number of multipart ancestors
            path: Child indexes from the root to this entity
        """
        self.header = header
        self.body = body
        self.settings = settings or default_settings
        self.registry = registry or default_registry
        self.depth = depth
        self.path = path
        self.boundary_error: Optional[BoundaryError] = None
        self._boundary: Optional[str] = None
        self._multipart: Optional[MultipartReader] = None

        media_type, params, _ = header.content_type()
        self.media_type = media_type
        if media_type.startswith("multipart/"):
            self._init_multipart(params.get("boundary"))

    def _init_multipart(self, boundary: Optional[str]) -> None:
        error = validate_boundary(boundary)
        if error is not None:
            self.boundary_error = error
            logger.warning(
                "multipart_boundary_invalid",
                media_type=self.media_type,
                path=self.path,
                error=str(error),
            )
            return
        if self.depth >= self.settings.max_nesting_depth:
            logger.warning(
                "multipart_nesting_too_deep",
                depth=self.depth,
                max_depth=self.settings.max_nesting_depth,
                path=self.path,
            )
            return
        self._boundary = boundary

    @property
    def is_multipart(self) -> bool:
        """True if this entity has children (multipart with a usable boundary)."""
        return self._boundary is not None

    def multipart_reader(self) -> Optional[MultipartReader]:
        """
        Get the child iterator of a multipart entity.

        Returns:
            The (single) MultipartReader over this entity's body, or None for a leaf
        """
        if self._boundary is None:
            return None
        if self._multipart is None:
            self._multipart = MultipartReader(
                self.body,
                self._boundary,
                self.settings,
                self.registry,
                depth=self.depth,
                path=self.path,
            )
        return self._multipart

    def decoded_body(self, attachment: bool = False) -> DecodedBody:
        """
        Run the decode pipeline over this leaf's body.

        Args:
            attachment: Whether the entity is classified as an attachment

        Returns:
            DecodedBody with the decoded stream and charset information
        """
        return decode_body(self.header, self.body, attachment, self.settings, self.registry)

    def walk(self) -> Iterator["Entity"]:
        """
        Iterate over this entity and all descendants, depth-first, pre-order.

        Containers are included. Each entity's ``path`` holds its child
        indexes. Reading is lazy: advancing the iterator skips whatever the
        caller left unread of the previous entity.
        """
        yield self
        reader = self.multipart_reader()
        if reader is None:
            return
        for child in reader:
            yield from child.walk()

    def __repr__(self) -> str:
        return f"Entity(media_type={self.media_type!r}, path={self.path!r}, multipart={self.is_multipart})"


def read_entity(
    source,
    settings: Optional[Settings] = None,
    registry: Optional[CharsetRegistry] = None,
) -> Entity:
    """
    Parse the top-level header of a message and wrap the rest as its body.

    Args:
        source: Binary stream or bytes holding the message
        settings: Reader settings (global settings if None)
        registry: Charset registry (default registry if None)

    Returns:
        Root Entity; its body is the unread remainder of ``source``

    Raises:
        StructuralParseError: If the header block is empty or malformed
    """
    settings = settings or default_settings
    registry = registry or default_registry
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))
    stream = as_line_source(source, settings.read_chunk_size)

    consumed = 0

    def readline(size: int) -> bytes:
        nonlocal consumed
        line = stream.readline(size)
        consumed += len(line)
        return line

    header, _ = parse_header_block(readline, max_bytes=settings.max_header_bytes, registry=registry)
    if consumed == 0:
        raise StructuralParseError("empty message")
    return Entity(header, stream, settings=settings, registry=registry)
