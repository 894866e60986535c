from .chunk import RGB, RGBA, EndMarker, OpDiff, OpIndex, OpLuma, OpRun, parse_chunk
from .decoder import QOIDecoder, decode, read
from .engine import PixelBuffer, PixelReconstructor, pixel_hash
from .errors import (
    BufferOverrun,
    DecodeCancelled,
    InvalidCacheReference,
    InvalidChunkEncoding,
    MalformedHeader,
    QOIError,
    SourceError,
    UnexpectedEndOfStream,
)
from .header import QOIHeader, parse_header
from .parser import QOIParser

__all__ = [
    "QOIDecoder",
    "QOIParser",
    "QOIHeader",
    "PixelBuffer",
    "PixelReconstructor",
    "decode",
    "read",
    "parse_chunk",
    "parse_header",
    "pixel_hash",
    "RGB",
    "RGBA",
    "OpIndex",
    "OpDiff",
    "OpLuma",
    "OpRun",
    "EndMarker",
    "QOIError",
    "MalformedHeader",
    "UnexpectedEndOfStream",
    "InvalidChunkEncoding",
    "InvalidCacheReference",
    "BufferOverrun",
    "SourceError",
    "DecodeCancelled",
]
