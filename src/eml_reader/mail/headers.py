"""
Classified part headers.

Each leaf of a message is exposed with an InlineHeader or an
AttachmentHeader; both are plain Header views over the same fields, so
call sites can dispatch with ``match``/``isinstance`` or on ``Part.kind``.
"""

from enum import Enum

from ..config import Settings
from ..errors import NotFoundError
from ..header.fields import Header


class PartKind(str, Enum):
    """Classification of a message leaf."""

    INLINE = "inline"
    ATTACHMENT = "attachment"


class InlineHeader(Header):
    """Header of a part meant to be displayed as the message text."""

    kind = PartKind.INLINE


class AttachmentHeader(Header):
    """Header of a part meant to be saved or opened separately."""

    kind = PartKind.ATTACHMENT

    def filename(self) -> str:
        """
        Get the attachment's file name.

        Prefers Content-Disposition ``filename`` and falls back to the
        Content-Type ``name`` parameter. RFC 2231 and RFC 2047 encodings are
        decoded.

        Returns:
            Decoded file name

        Raises:
            NotFoundError: If neither parameter is present
        """
        _, params, _ = self.content_disposition()
        if "filename" in params:
            return params["filename"]
        _, params, _ = self.content_type()
        if "name" in params:
            return params["name"]
        raise NotFoundError("attachment has no filename parameter")


def classify(header: Header, settings: Settings, is_root: bool = False) -> PartKind:
    """
    Classify a leaf as inline content or an attachment.

    Rules:
    - ``Content-Disposition: attachment`` -> attachment
    - ``Content-Disposition: inline`` -> inline
    - no disposition or any other token: the root of a non-multipart
      message is inline; a nested leaf is inline only if its media type
      matches ``settings.inline_media_types``

    Args:
        header: Leaf header
        settings: Reader settings
        is_root: Whether the leaf is the message itself

    Returns:
        PartKind for the leaf
    """
    disposition, _, _ = header.content_disposition()
    if disposition == "attachment":
        return PartKind.ATTACHMENT
    if disposition == "inline":
        return PartKind.INLINE
    if is_root:
        return PartKind.INLINE

    media_type, _, _ = header.content_type()
    if settings.is_inline_media_type(media_type):
        return PartKind.INLINE
    return PartKind.ATTACHMENT


def classified_header(header: Header, kind: PartKind) -> Header:
    """Wrap a header's fields in the header class matching ``kind``."""
    if kind is PartKind.ATTACHMENT:
        return AttachmentHeader(header)
    return InlineHeader(header)
