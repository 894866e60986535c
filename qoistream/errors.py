class QOIError(ValueError):
    """Base class for every failure raised while decoding a QOI stream."""


class MalformedHeader(QOIError):
    """The magic does not match, a field is out of range, or the stream ended inside the header."""


class UnexpectedEndOfStream(QOIError):
    def __init__(self, consumed: int, message: str = None):
        self.consumed = consumed
        super().__init__(
            message
            or f"QOI.decode: Source exhausted after {consumed} bytes, more data was needed"
        )


class InvalidChunkEncoding(QOIError):
    def __init__(self, consumed: int):
        self.consumed = consumed
        super().__init__(
            f"QOI.decode: Bytes at offset {consumed} match no chunk encoding"
        )


class InvalidCacheReference(QOIError):
    def __init__(self, index: int, cursor: int):
        self.index = index
        self.cursor = cursor
        super().__init__(
            f"QOI.decode: Pixel {cursor} references empty color cache slot {index}"
        )


class BufferOverrun(QOIError):
    def __init__(self, cursor: int, count: int, capacity: int):
        self.cursor = cursor
        self.count = count
        self.capacity = capacity
        super().__init__(
            f"QOI.decode: Writing {count} pixel(s) at {cursor} overruns an image of {capacity} pixels"
        )


class SourceError(QOIError):
    """The byte source raised an I/O error; the original is kept in ``original``."""

    def __init__(self, original: OSError):
        self.original = original
        super().__init__(f"QOI.decode: Reading from the source failed: {original}")


class DecodeCancelled(QOIError):
    """The decode was cancelled or ran past its deadline."""
