import enum
import logging

from .buffer import CircularBuffer
from .chunk import EndMarker, Incomplete, parse_chunk
from .errors import (
    InvalidChunkEncoding,
    MalformedHeader,
    SourceError,
    UnexpectedEndOfStream,
)
from .header import QOI_PIXELS_MAX, parse_header

logger = logging.getLogger(__name__)

INITIAL_BUFFER_CAPACITY = 17
MAX_EMPTY_READS = 1


class ParserState(enum.Enum):
    READING_HEADER = "reading_header"
    READING_CHUNKS = "reading_chunks"
    FINISHED = "finished"


def _next_power_of_two(value: int) -> int:
    return 1 << (value - 1).bit_length()


class QOIParser:
    """
    Incremental QOI parser over a blocking byte source.

    Call ``produce_next()`` repeatedly: each call returns one chunk in stream
    order, or None after the end marker has been returned.
    """

    def __init__(
        self,
        source,
        initial_capacity: int = INITIAL_BUFFER_CAPACITY,
        max_empty_reads: int = MAX_EMPTY_READS,
        pixels_max: int = QOI_PIXELS_MAX,
    ):
        """
        :param source: Object with ``readinto(buffer) -> int``, see ``qoistream.source``.
        :param initial_capacity: Starting size of the staging buffer in bytes.
        :param max_empty_reads: Consecutive zero-byte reads treated as end of stream.
        :param pixels_max: Largest width * height accepted from the header.
        """
        if max_empty_reads < 1:
            raise ValueError("QOIParser: max_empty_reads must be at least 1")
        self._source = source
        self._buffer = CircularBuffer(initial_capacity)
        self._max_empty_reads = max_empty_reads
        self._pixels_max = pixels_max
        self.state = ParserState.READING_HEADER
        self.header = None
        self.consumed = 0

    @property
    def capacity(self) -> int:
        return self._buffer.capacity

    def read_header(self):
        """Read and return the QOIHeader, moving on to chunk parsing."""
        if self.state is not ParserState.READING_HEADER:
            return self.header

        header, length = self._recognize(
            lambda window: parse_header(window, self._pixels_max),
            self._header_truncated,
        )
        self._buffer.consume(length)
        self.consumed += length
        self.header = header
        self.state = ParserState.READING_CHUNKS
        return header

    def produce_next(self):
        """
        Return the next chunk of the stream, or None once the end marker was produced.

        :raises UnexpectedEndOfStream: The source ran dry before the end marker.
        :raises InvalidChunkEncoding: The buffered bytes match no chunk.
        :raises SourceError: The source raised an I/O error.
        """
        if self.state is ParserState.FINISHED:
            return None
        if self.state is ParserState.READING_HEADER:
            self.read_header()

        chunk, length = self._recognize(parse_chunk, self._chunk_truncated)
        self._buffer.consume(length)
        self.consumed += length

        if isinstance(chunk, EndMarker):
            self.state = ParserState.FINISHED
            logger.debug("End marker reached after %d bytes", self.consumed)

        return chunk

    def chunks(self):
        """Iterate over the remaining chunks, end marker included."""
        while True:
            chunk = self.produce_next()
            if chunk is None:
                return
            yield chunk

    # --- Internals ---

    def _header_truncated(self):
        return MalformedHeader(
            f"QOI.decode: Stream ended after {self._buffer.available_data()} bytes, "
            "before the header was complete"
        )

    def _chunk_truncated(self):
        return UnexpectedEndOfStream(self.consumed)

    def _recognize(self, recognizer, on_eof):
        """Run ``recognizer`` over the buffer, reading more bytes until it decides."""
        empty_reads = 0

        if self._buffer.available_data() == 0:
            while self._fill() == 0:
                empty_reads += 1
                if empty_reads >= self._max_empty_reads:
                    raise on_eof()
            empty_reads = 0

        while True:
            try:
                result = recognizer(self._buffer.data())
            except Incomplete as e:
                needed = e.needed
            else:
                if result is None:
                    raise InvalidChunkEncoding(self.consumed)
                return result

            required = self._buffer.available_data() + needed
            if required > self._buffer.capacity:
                self._grow(required)

            if self._fill() == 0:
                empty_reads += 1
                if empty_reads >= self._max_empty_reads:
                    raise on_eof()
            else:
                empty_reads = 0

    def _grow(self, required: int):
        capacity = max(self._buffer.capacity * 2, _next_power_of_two(required))
        self._buffer.grow(capacity)
        logger.debug("Grew staging buffer to %d bytes", capacity)

    def _fill(self) -> int:
        """Read once from the source into the free tail of the buffer."""
        if self._buffer.available_space() == 0:
            self._buffer.shift()
        if self._buffer.available_space() == 0:
            self._grow(self._buffer.capacity + 1)

        try:
            count = self._source.readinto(self._buffer.space())
        except OSError as e:
            raise SourceError(e) from e

        # Non-blocking raw streams return None when nothing is ready
        return self._buffer.fill(count or 0)
