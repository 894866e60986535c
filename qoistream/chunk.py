"""
QOI chunk types and the stateless recognizers that read them from a byte window.

Every recognizer takes a bytes-like window and either returns
``(chunk, bytes_consumed)``, returns ``None`` when the bytes are not that
chunk, or raises ``Incomplete`` when the window is too short to tell.
"""
from dataclasses import dataclass

# QOI Constants
QOI_OP_INDEX = 0x00  # 00xxxxxx
QOI_OP_DIFF = 0x40  # 01xxxxxx
QOI_OP_LUMA = 0x80  # 10xxxxxx
QOI_OP_RUN = 0xC0  # 11xxxxxx
QOI_OP_RGB = 0xFE  # 11111110
QOI_OP_RGBA = 0xFF  # 11111111

QOI_MASK_2 = 0xC0  # 11000000
QOI_END_MARKER = b"\x00\x00\x00\x00\x00\x00\x00\x01"


class Incomplete(Exception):
    """The window ends before a chunk can be recognized; ``needed`` more bytes are required."""

    def __init__(self, needed: int):
        self.needed = needed
        super().__init__(f"{needed} more byte(s) needed")


@dataclass(frozen=True)
class RGB:
    r: int
    g: int
    b: int

    size = 4


@dataclass(frozen=True)
class RGBA:
    r: int
    g: int
    b: int
    a: int

    size = 5


@dataclass(frozen=True)
class OpIndex:
    index: int

    size = 1


@dataclass(frozen=True)
class OpDiff:
    """Each field stores the channel delta plus a bias of 2."""

    dr: int
    dg: int
    db: int

    size = 1


@dataclass(frozen=True)
class OpLuma:
    """``dg`` carries a bias of 32, ``dr_dg`` and ``db_dg`` a bias of 8."""

    dg: int
    dr_dg: int
    db_dg: int

    size = 2


@dataclass(frozen=True)
class OpRun:
    """Repeat the previous pixel ``run + 1`` times."""

    run: int

    size = 1


@dataclass(frozen=True)
class EndMarker:
    size = 8


END_MARKER = EndMarker()


def _first_byte(window) -> int:
    if len(window) == 0:
        raise Incomplete(1)
    return window[0]


def parse_end_marker(window):
    available = min(len(window), len(QOI_END_MARKER))
    if bytes(window[:available]) != QOI_END_MARKER[:available]:
        return None
    if available < len(QOI_END_MARKER):
        raise Incomplete(len(QOI_END_MARKER) - available)
    return END_MARKER, EndMarker.size


def parse_op_index_chunk(window):
    b1 = _first_byte(window)
    if (b1 & QOI_MASK_2) != QOI_OP_INDEX:
        return None
    return OpIndex(b1 & 0x3F), OpIndex.size


def parse_rgb_chunk(window):
    b1 = _first_byte(window)
    if b1 != QOI_OP_RGB:
        return None
    if len(window) < RGB.size:
        raise Incomplete(RGB.size - len(window))
    return RGB(window[1], window[2], window[3]), RGB.size


def parse_rgba_chunk(window):
    b1 = _first_byte(window)
    if b1 != QOI_OP_RGBA:
        return None
    if len(window) < RGBA.size:
        raise Incomplete(RGBA.size - len(window))
    return RGBA(window[1], window[2], window[3], window[4]), RGBA.size


def parse_op_diff_chunk(window):
    b1 = _first_byte(window)
    if (b1 & QOI_MASK_2) != QOI_OP_DIFF:
        return None
    return OpDiff((b1 >> 4) & 0x03, (b1 >> 2) & 0x03, b1 & 0x03), OpDiff.size


def parse_op_luma_chunk(window):
    b1 = _first_byte(window)
    if (b1 & QOI_MASK_2) != QOI_OP_LUMA:
        return None
    if len(window) < OpLuma.size:
        raise Incomplete(OpLuma.size - len(window))
    b2 = window[1]
    return OpLuma(b1 & 0x3F, (b2 >> 4) & 0x0F, b2 & 0x0F), OpLuma.size


def parse_op_run_chunk(window):
    b1 = _first_byte(window)
    # 0xFE and 0xFF share the 11 prefix, RGB and RGBA must be tried first
    if (b1 & QOI_MASK_2) != QOI_OP_RUN:
        return None
    return OpRun(b1 & 0x3F), OpRun.size


CHUNK_PARSERS = (
    parse_end_marker,
    parse_op_index_chunk,
    parse_rgb_chunk,
    parse_rgba_chunk,
    parse_op_diff_chunk,
    parse_op_luma_chunk,
    parse_op_run_chunk,
)


def parse_chunk(window):
    """
    Recognize the chunk at the start of ``window``.

    Alternatives are tried in priority order and the first match wins. An
    ``Incomplete`` from any alternative propagates immediately.

    :return: ``(chunk, bytes_consumed)``, or None when nothing matches.
    """
    for parser in CHUNK_PARSERS:
        result = parser(window)
        if result is not None:
            return result
    return None
