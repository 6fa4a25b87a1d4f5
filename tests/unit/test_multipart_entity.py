"""
Unit tests for structural parsing (parsing/multipart.py, parsing/entity.py).

Tests cover:
- Delimiter recognition, preamble and epilogue handling
- Part body boundaries and line-ending ownership
- Truncation reporting
- Entity tree walking, invalid boundaries and nesting limits
"""

import io

import pytest

from eml_reader.config import Settings
from eml_reader.errors import BoundaryError, StructuralParseError, TruncatedInputError
from eml_reader.parsing import Entity, MultipartReader, read_entity, validate_boundary
from eml_reader.parsing.multipart import DELIMITER, TERMINATOR
from tests.fixtures.emails import SAMPLE_EMAILS


def multipart(body: bytes, boundary: str = "b", settings=None) -> MultipartReader:
    """Build a MultipartReader over a bare multipart body."""
    return MultipartReader(io.BytesIO(body), boundary, settings or Settings(), registry=None)


class TestDelimiters:
    """Tests for MultipartReader.delimiter_kind()."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "line,kind",
        [
            (b"--b\r\n", DELIMITER),
            (b"--b\n", DELIMITER),
            (b"--b \t\r\n", DELIMITER),
            (b"--b--\r\n", TERMINATOR),
            (b"--b--", TERMINATOR),
            (b"--b-- \r\n", TERMINATOR),
            (b"--bb\r\n", None),
            (b"--b--x\r\n", None),
            (b" --b\r\n", None),
            (b"b\r\n", None),
        ],
    )
    def test_delimiter_kind(self, line, kind):
        """Only exact boundaries, optionally followed by whitespace, delimit."""
        assert multipart(b"").delimiter_kind(line) == kind


class TestMultipartReader:
    """Tests for splitting a multipart body into parts."""

    @pytest.mark.unit
    def test_preamble_and_epilogue_ignored(self):
        """Text before the first and after the last delimiter is dropped."""
        reader = multipart(
            b"preamble\r\n--b\r\n\r\none\r\n--b\r\n\r\ntwo\r\n--b--\r\nepilogue\r\n"
        )
        bodies = [part.body.read() for part in reader]
        assert bodies == [b"one", b"two"]

    @pytest.mark.unit
    def test_line_ending_before_delimiter_belongs_to_delimiter(self):
        """Only the last line ending of a part is removed."""
        reader = multipart(b"--b\r\n\r\nline one\r\n\r\n--b--\r\n")
        assert reader.next_part().body.read() == b"line one\r\n"

    @pytest.mark.unit
    def test_boundary_lookalike_inside_body(self):
        """Lines that merely start with the boundary stay in the body."""
        reader = multipart(b"--b\r\n\r\n--bx\r\n--b--x\r\n--b--\r\n")
        assert reader.next_part().body.read() == b"--bx\r\n--b--x"

    @pytest.mark.unit
    def test_part_headers(self):
        """Each part has its own header block."""
        reader = multipart(
            b"--b\r\nContent-Type: text/html\r\n\r\n<p/>\r\n--b\r\n\r\nplain\r\n--b--\r\n"
        )
        first, second = list(reader)
        assert first.media_type == "text/html"
        assert second.media_type == "text/plain"
        assert first.path == (0,)
        assert second.path == (1,)
        assert first.depth == 1

    @pytest.mark.unit
    def test_unread_part_is_skipped(self):
        """Advancing discards whatever the caller left unread."""
        reader = multipart(b"--b\r\n\r\n" + b"x" * 100000 + b"\r\n--b\r\n\r\nnext\r\n--b--\r\n")
        first = reader.next_part()
        assert first.body.read(10) == b"x" * 10
        assert reader.next_part().body.read() == b"next"
        assert reader.next_part() is None

    @pytest.mark.unit
    def test_empty_body_after_headers(self):
        """A delimiter directly after the header block yields an empty part."""
        reader = multipart(b"--b\r\nContent-Type: text/plain\r\n--b--\r\n")
        part = reader.next_part()
        assert part.header.get("Content-Type") == "text/plain"
        assert part.body.read() == b""
        assert reader.next_part() is None

    @pytest.mark.unit
    def test_no_parts(self):
        """A terminator right after the preamble means zero parts."""
        assert list(multipart(b"just a preamble\r\n--b--\r\n")) == []

    @pytest.mark.unit
    def test_truncated_reported_once(self):
        """A missing terminator raises once, after the last part."""
        reader = multipart(b"--b\r\n\r\nfirst\r\n--b\r\n\r\nlast")
        assert reader.next_part().body.read() == b"first"
        assert reader.next_part().body.read() == b"last"
        with pytest.raises(TruncatedInputError):
            reader.next_part()
        assert reader.truncated
        assert reader.next_part() is None

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "body",
        [
            b"--b\r\n\r\none\r\n--b\r\n",
            b"--b\r\n\r\none\r\n--b\r\nContent-Type: text/html\r\n",
            b"--b\r\n\r\none\r\n--b\r\nContent-Type: text/html",
        ],
    )
    def test_no_part_after_trailing_delimiter(self, body):
        """End of stream after a delimiter or inside a header block yields no empty part."""
        reader = multipart(body)
        assert reader.next_part().body.read() == b"one"
        with pytest.raises(TruncatedInputError):
            reader.next_part()
        assert reader.truncated
        assert reader.next_part() is None

    @pytest.mark.unit
    def test_no_delimiter_at_all(self):
        """A body without any delimiter is truncated."""
        reader = multipart(b"no parts here\r\n")
        with pytest.raises(TruncatedInputError):
            reader.next_part()

    @pytest.mark.unit
    def test_suppressed_truncation(self):
        """A truncation already reported elsewhere is not raised again."""
        reader = multipart(b"--b\r\n\r\nbody")
        reader.next_part().body.read()
        reader.suppress_truncation()
        assert reader.next_part() is None

    @pytest.mark.unit
    def test_malformed_part_header(self):
        """A broken part header raises, then the next part is reachable."""
        reader = multipart(b"--b\r\nbroken\r\n\r\nx\r\n--b\r\n\r\nok\r\n--b--\r\n")
        with pytest.raises(StructuralParseError):
            reader.next_part()
        assert reader.next_part().body.read() == b"ok"

    @pytest.mark.unit
    def test_small_read_size(self):
        """Lines longer than the read size do not hide delimiters."""
        settings = Settings(read_chunk_size=4)
        reader = multipart(b"--b\r\n\r\nlonger line\r\n--b--\r\n", settings=settings)
        assert reader.next_part().body.read() == b"longer line"


class TestValidateBoundary:
    """Tests for validate_boundary()."""

    @pytest.mark.unit
    @pytest.mark.parametrize("boundary", ["b", "----=_Part_0_1.2", "with space inside"])
    def test_valid(self, boundary):
        """Ordinary boundaries pass."""
        assert validate_boundary(boundary) is None

    @pytest.mark.unit
    @pytest.mark.parametrize("boundary", [None, "", "   ", "trailing ", "bad\x00"])
    def test_invalid(self, boundary):
        """Missing, blank, whitespace-terminated and control-laden boundaries fail."""
        assert isinstance(validate_boundary(boundary), BoundaryError)


class TestEntity:
    """Tests for Entity and read_entity()."""

    @pytest.mark.unit
    def test_read_entity_from_bytes(self, sample_eml_bytes):
        """The root header is parsed and the body left unread."""
        root = read_entity(sample_eml_bytes)
        assert root.media_type == "text/plain"
        assert not root.is_multipart
        assert root.multipart_reader() is None
        assert root.body.read().startswith(b"Hello, this is")

    @pytest.mark.unit
    def test_read_entity_empty(self):
        """An empty stream is not a message."""
        with pytest.raises(StructuralParseError):
            read_entity(io.BytesIO(b""))

    @pytest.mark.unit
    def test_walk_pre_order(self, mail_eml):
        """walk() visits containers and leaves depth-first, pre-order."""
        visited = [(entity.path, entity.media_type) for entity in read_entity(mail_eml).walk()]
        assert visited == [
            ((), "multipart/mixed"),
            ((0,), "multipart/alternative"),
            ((0, 0), "text/plain"),
            ((1,), "text/plain"),
        ]

    @pytest.mark.unit
    def test_multipart_reader_is_cached(self, mail_eml):
        """The same reader is returned on each call."""
        root = read_entity(mail_eml)
        assert root.multipart_reader() is root.multipart_reader()

    @pytest.mark.unit
    def test_missing_boundary_makes_a_leaf(self):
        """A multipart without boundary is kept as a leaf with a boundary error."""
        root = read_entity(SAMPLE_EMAILS["missing_boundary"])
        assert root.media_type == "multipart/mixed"
        assert not root.is_multipart
        assert isinstance(root.boundary_error, BoundaryError)
        assert root.body.read() == b"--whatever\r\nraw body\r\n"

    @pytest.mark.unit
    def test_nesting_limit(self, mail_eml):
        """Multiparts deeper than max_nesting_depth are treated as leaves."""
        root = read_entity(mail_eml, settings=Settings(max_nesting_depth=1))
        entities = list(root.walk())
        assert [entity.path for entity in entities] == [(), (0,), (1,)]
        inner = entities[1]
        assert inner.media_type == "multipart/alternative"
        assert not inner.is_multipart
        assert inner.boundary_error is None

    @pytest.mark.unit
    def test_decoded_body(self):
        """decoded_body() runs the decode pipeline on a leaf."""
        header = b"Content-Type: text/plain; charset=iso-8859-1\r\nContent-Transfer-Encoding: base64\r\n\r\n"
        entity = read_entity(header + b"Y2Fm6Q==\r\n")
        decoded = entity.decoded_body()
        assert decoded.stream.read() == "café".encode("utf-8")
        assert decoded.transfer_encoding == "base64"
        assert decoded.declared_charset == "iso-8859-1"
        assert decoded.effective_charset == "iso8859-1"

    @pytest.mark.unit
    def test_entity_defaults(self):
        """An entity built directly falls back to global settings and registry."""
        from eml_reader.header import Header

        entity = Entity(Header(), io.BytesIO(b""))
        assert entity.media_type == "text/plain"
        assert entity.path == ()
        assert entity.depth == 0
