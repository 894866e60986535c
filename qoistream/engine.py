import logging

from .chunk import RGB, RGBA, EndMarker, OpDiff, OpIndex, OpLuma, OpRun
from .errors import BufferOverrun, InvalidCacheReference
from .utils import pixels_to_array, pixels_to_image, strip_alpha

logger = logging.getLogger(__name__)

INDEX_ARRAY_LENGTH = 64
INITIAL_PIXEL = (0, 0, 0, 255)


def pixel_hash(pixel) -> int:
    """Calculates the index position for the color array."""
    r, g, b, a = pixel
    return (r * 3 + g * 5 + b * 7 + a * 11) % 64


class PixelBuffer:
    """
    Flat RGBA output of a decode: ``width * height`` pixels of 4 bytes each.

    Every slot starts as opaque black, so a stream that ends early leaves
    the tail of the image at (0, 0, 0, 255).
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.data = bytearray(bytes(INITIAL_PIXEL) * (width * height))
        self.pixels_written = 0

    def __len__(self) -> int:
        return self.width * self.height

    def __getitem__(self, position: int) -> tuple:
        if position < 0:
            position += len(self)
        if not 0 <= position < len(self):
            raise IndexError("PixelBuffer index out of range")
        return tuple(self.data[position * 4 : position * 4 + 4])

    def tobytes(self, channels: int = 4) -> bytes:
        """Return the pixels as packed RGBA bytes, or RGB bytes when ``channels`` is 3."""
        if channels == 4:
            return bytes(self.data)
        if channels == 3:
            return strip_alpha(self.data)
        raise ValueError("QOI.decode: The number of channels for the output is invalid")

    def to_array(self, channels: int = 4):
        return pixels_to_array(self.data, self.width, self.height, channels)

    def to_image(self, channels: int = 4):
        return pixels_to_image(self.data, self.width, self.height, channels)


class DecoderState:
    def __init__(self):
        self.cursor = 0
        self.previous = INITIAL_PIXEL
        # Color lookup table, None marks a slot no pixel has landed in yet
        self.cache = [None] * INDEX_ARRAY_LENGTH


class PixelReconstructor:
    """
    Replays chunks in stream order against the decode state and writes pixels.

    :param header: QOIHeader whose width and height size the output.
    :param lenient_cache: Read empty cache slots as (0, 0, 0, 0) the way the
        reference codec does, instead of raising InvalidCacheReference.
    """

    def __init__(self, header, lenient_cache: bool = False):
        self.header = header
        self.buffer = PixelBuffer(header.width, header.height)
        self.state = DecoderState()
        self.lenient_cache = lenient_cache
        self.finished = False

    def apply(self, chunk) -> bool:
        """
        Reconstruct the pixel(s) encoded by ``chunk``.

        :return: False once the end marker was applied, True otherwise.
        """
        state = self.state
        r, g, b, a = state.previous
        count = 1

        if isinstance(chunk, RGB):
            r, g, b = chunk.r, chunk.g, chunk.b

        elif isinstance(chunk, RGBA):
            r, g, b, a = chunk.r, chunk.g, chunk.b, chunk.a

        elif isinstance(chunk, OpIndex):
            cached = state.cache[chunk.index]
            if cached is None:
                if not self.lenient_cache:
                    raise InvalidCacheReference(chunk.index, state.cursor)
                cached = (0, 0, 0, 0)
            r, g, b, a = cached

        elif isinstance(chunk, OpDiff):
            # Subtract the bias of 2 and wrap the result to 8-bit unsigned
            r = (r + chunk.dr - 2) % 256
            g = (g + chunk.dg - 2) % 256
            b = (b + chunk.db - 2) % 256

        elif isinstance(chunk, OpLuma):
            vg = chunk.dg - 32
            r = (r + vg + chunk.dr_dg - 8) % 256
            g = (g + vg) % 256
            b = (b + vg + chunk.db_dg - 8) % 256

        elif isinstance(chunk, OpRun):
            count = chunk.run + 1

        elif isinstance(chunk, EndMarker):
            self._finish()
            return False

        else:
            raise TypeError(f"QOI.decode: Not a QOI chunk: {chunk!r}")

        pixel = (r, g, b, a)
        self._write(pixel, count)
        state.previous = pixel
        state.cache[pixel_hash(pixel)] = pixel
        return True

    def _write(self, pixel: tuple, count: int):
        cursor = self.state.cursor
        capacity = len(self.buffer)
        if cursor + count > capacity:
            raise BufferOverrun(cursor, count, capacity)

        self.buffer.data[cursor * 4 : (cursor + count) * 4] = bytes(pixel) * count
        self.state.cursor = cursor + count
        self.buffer.pixels_written = self.state.cursor

    def _finish(self):
        self.finished = True
        if self.state.cursor < len(self.buffer):
            logger.warning(
                "End marker after %d of %d pixels, the rest stay opaque black",
                self.state.cursor,
                len(self.buffer),
            )
