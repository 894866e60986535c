import logging
import struct
from dataclasses import dataclass

from .chunk import Incomplete
from .errors import MalformedHeader

logger = logging.getLogger(__name__)

QOI_MAGIC = b"qoif"
QOI_HEADER_SIZE = 14
QOI_PIXELS_MAX = 400000000  # Safety limit (400MP)

# > : Big Endian
# 4s: 4-byte string (magic)
# I : unsigned int (4 bytes)
# B : unsigned char (1 byte)
_HEADER_STRUCT = struct.Struct(">4sIIBB")


@dataclass(frozen=True)
class QOIHeader:
    width: int
    height: int
    channels: int
    colorspace: int

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "channels": self.channels,
            "colorspace": self.colorspace,
        }


def parse_header(window, pixels_max: int = QOI_PIXELS_MAX) -> tuple:
    """
    Parse the fixed QOI header from the start of a byte window.

    :param window: Bytes-like object holding the first bytes of the stream.
    :param pixels_max: Largest width * height accepted.
    :return: Tuple of (QOIHeader, bytes consumed), the count is always 14.
    :raises Incomplete: The window is a valid prefix but shorter than 14 bytes.
    :raises MalformedHeader: Bad magic or a field out of range.
    """
    available = len(window)

    # The magic can be rejected as soon as any of it is visible
    prefix = bytes(window[: min(available, len(QOI_MAGIC))])
    if prefix != QOI_MAGIC[: len(prefix)]:
        raise MalformedHeader("QOI.decode: The signature of the QOI file is invalid")

    if available < QOI_HEADER_SIZE:
        raise Incomplete(QOI_HEADER_SIZE - available)

    _, width, height, channels, colorspace = _HEADER_STRUCT.unpack(
        bytes(window[:QOI_HEADER_SIZE])
    )

    # --- Validation ---
    if channels not in (3, 4):
        raise MalformedHeader(
            "QOI.decode: The number of channels declared in the file is invalid"
        )

    if colorspace > 1:
        raise MalformedHeader(
            "QOI.decode: The colorspace declared in the file is invalid"
        )

    if width * height > pixels_max:
        raise MalformedHeader(
            f"QOI.decode: Image of {width}x{height} exceeds the {pixels_max} pixel limit"
        )

    header = QOIHeader(width, height, channels, colorspace)
    logger.debug("Parsed header %s", header)

    return header, QOI_HEADER_SIZE
