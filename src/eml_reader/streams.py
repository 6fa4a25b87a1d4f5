"""
Readable stream building blocks.

Every body view and decoder in the package is a ``ChunkedReader``: a raw,
read-only stream that produces its output one chunk at a time and is wrapped
in ``io.BufferedReader`` before it reaches a caller.
"""

import io
from typing import BinaryIO, Optional


class ChunkedReader(io.RawIOBase):
    """
    Raw stream fed by ``_next_chunk``.

    Subclasses return ``None`` from ``_next_chunk`` at end of data; an empty
    ``bytes`` means "nothing produced yet, call again".
    """

    def __init__(self):
        super().__init__()
        self._pending = b""
        self._exhausted = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        while not self._pending and not self._exhausted:
            chunk = self._next_chunk()
            if chunk is None:
                self._exhausted = True
            else:
                self._pending = chunk

        n = min(len(buffer), len(self._pending))
        buffer[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n

    def _next_chunk(self) -> Optional[bytes]:
        raise NotImplementedError


class FailingReader(ChunkedReader):
    """Stream whose first read raises a stored exception."""

    def __init__(self, error: Exception):
        super().__init__()
        self.error = error

    def _next_chunk(self) -> Optional[bytes]:
        raise self.error


def buffered(raw: io.RawIOBase, chunk_size: int = io.DEFAULT_BUFFER_SIZE) -> io.BufferedReader:
    """Wrap a raw stream so callers get ``read``/``readline``/``peek``."""
    return io.BufferedReader(raw, buffer_size=max(chunk_size, 1))


def as_line_source(stream: BinaryIO, chunk_size: int = io.DEFAULT_BUFFER_SIZE) -> BinaryIO:
    """
    Return a stream with an efficient ``readline(size)``.

    Raw (unbuffered) streams are wrapped; buffered ones are used as-is.
    """
    if isinstance(stream, io.RawIOBase):
        return buffered(stream, chunk_size)
    return stream

