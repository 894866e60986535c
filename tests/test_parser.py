import io

import pytest

from helpers import (
    END_MARKER,
    SAMPLE_STREAM,
    FailingSource,
    TrickleSource,
    make_header,
    make_stream,
)
from qoistream.chunk import RGB, RGBA, EndMarker, OpDiff, OpIndex, OpLuma, OpRun
from qoistream.errors import (
    InvalidChunkEncoding,
    MalformedHeader,
    SourceError,
    UnexpectedEndOfStream,
)
from qoistream.header import QOIHeader
from qoistream.parser import ParserState, QOIParser

SAMPLE_CHUNK_LIST = [
    RGBA(10, 20, 30, 200),
    RGB(100, 50, 25),
    OpDiff(3, 2, 1),
    OpLuma(40, 9, 6),
    OpRun(2),
    OpIndex(44),
    OpDiff(0, 0, 0),
    EndMarker(),
]


def test_read_header():
    parser = QOIParser(io.BytesIO(SAMPLE_STREAM))

    assert parser.state is ParserState.READING_HEADER
    assert parser.read_header() == QOIHeader(3, 3, 4, 0)
    assert parser.consumed == 14
    assert parser.state is ParserState.READING_CHUNKS


def test_chunks_in_stream_order():
    parser = QOIParser(io.BytesIO(SAMPLE_STREAM))

    assert list(parser.chunks()) == SAMPLE_CHUNK_LIST
    assert parser.state is ParserState.FINISHED
    assert parser.consumed == len(SAMPLE_STREAM)


@pytest.mark.parametrize("step", [1, 2, 3, 5, 64])
def test_any_read_size_yields_same_chunks(step):
    parser = QOIParser(TrickleSource(SAMPLE_STREAM, step=step))
    assert list(parser.chunks()) == SAMPLE_CHUNK_LIST


def test_produce_next_reads_header_implicitly():
    parser = QOIParser(io.BytesIO(SAMPLE_STREAM))

    assert parser.produce_next() == RGBA(10, 20, 30, 200)
    assert parser.header == QOIHeader(3, 3, 4, 0)


def test_no_reads_after_end_marker():
    source = TrickleSource(make_stream(1, 1, b"\xc0") + b"trailing garbage", step=1)
    parser = QOIParser(source)

    assert list(parser.chunks()) == [OpRun(0), EndMarker()]
    reads = source.reads
    assert parser.produce_next() is None
    assert source.reads == reads


def test_buffer_grows_from_tiny_capacity():
    parser = QOIParser(TrickleSource(SAMPLE_STREAM, step=1), initial_capacity=1)

    assert list(parser.chunks()) == SAMPLE_CHUNK_LIST
    assert parser.capacity >= 16


def test_empty_stream_is_malformed_header():
    with pytest.raises(MalformedHeader):
        QOIParser(io.BytesIO(b"")).read_header()


def test_truncated_header_is_malformed_header():
    parser = QOIParser(TrickleSource(make_header(4, 4)[:10], step=3))
    with pytest.raises(MalformedHeader):
        parser.read_header()


def test_bad_magic():
    with pytest.raises(MalformedHeader):
        QOIParser(io.BytesIO(b"qoixxxxxxxxxxxxxxxx")).produce_next()


def test_truncated_chunk_is_unexpected_end():
    parser = QOIParser(io.BytesIO(make_header(2, 2) + b"\xfe\x01"))

    with pytest.raises(UnexpectedEndOfStream) as excinfo:
        parser.produce_next()
    assert excinfo.value.consumed == 14


def test_missing_end_marker_is_unexpected_end():
    parser = QOIParser(io.BytesIO(make_header(2, 1) + b"\xc1"))

    assert parser.produce_next() == OpRun(1)
    with pytest.raises(UnexpectedEndOfStream) as excinfo:
        parser.produce_next()
    assert excinfo.value.consumed == 15


def test_partial_end_marker_is_unexpected_end():
    parser = QOIParser(io.BytesIO(make_header(1, 1) + b"\xc0" + END_MARKER[:5]))

    assert parser.produce_next() == OpRun(0)
    with pytest.raises(UnexpectedEndOfStream):
        parser.produce_next()


def test_empty_reads_are_retried_up_to_the_limit():
    class Hiccup:
        """Returns nothing on every other read."""

        def __init__(self, data):
            self.inner = TrickleSource(data, step=1)
            self.toggle = False

        def readinto(self, buffer):
            self.toggle = not self.toggle
            return 0 if self.toggle else self.inner.readinto(buffer)

    with pytest.raises(MalformedHeader):
        QOIParser(Hiccup(SAMPLE_STREAM)).read_header()

    parser = QOIParser(Hiccup(SAMPLE_STREAM), max_empty_reads=2)
    assert list(parser.chunks()) == SAMPLE_CHUNK_LIST


def test_source_error_is_wrapped():
    error = ConnectionResetError("peer went away")
    parser = QOIParser(FailingSource(make_header(2, 2), error))

    parser.read_header()
    with pytest.raises(SourceError) as excinfo:
        parser.produce_next()
    assert excinfo.value.original is error
    assert excinfo.value.__cause__ is error


def test_unmatched_bytes_are_invalid_encoding(monkeypatch):
    monkeypatch.setattr("qoistream.parser.parse_chunk", lambda window: None)
    parser = QOIParser(io.BytesIO(SAMPLE_STREAM))

    with pytest.raises(InvalidChunkEncoding) as excinfo:
        parser.produce_next()
    assert excinfo.value.consumed == 14


def test_max_empty_reads_must_be_positive():
    with pytest.raises(ValueError):
        QOIParser(io.BytesIO(b""), max_empty_reads=0)
