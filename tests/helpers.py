import struct
import threading

END_MARKER = b"\x00\x00\x00\x00\x00\x00\x00\x01"


def make_header(width, height, channels=4, colorspace=0) -> bytes:
    return b"qoif" + struct.pack(">IIBB", width, height, channels, colorspace)


def make_stream(width, height, chunk_bytes, channels=4, colorspace=0) -> bytes:
    return make_header(width, height, channels, colorspace) + bytes(chunk_bytes) + END_MARKER


# A 3x3 image touching every chunk type:
# RGBA, RGB, OpDiff, OpLuma, OpRun(2), OpIndex(44), OpDiff with negative deltas
SAMPLE_CHUNKS = bytes(
    [
        0xFF, 10, 20, 30, 200,
        0xFE, 100, 50, 25,
        0b01111001,
        0x80 | 40, (9 << 4) | 6,
        0xC2,
        0x2C,
        0b01000000,
    ]
)
SAMPLE_PIXELS = [
    (10, 20, 30, 200),
    (100, 50, 25, 200),
    (101, 50, 24, 200),
    (110, 58, 30, 200),
    (110, 58, 30, 200),
    (110, 58, 30, 200),
    (110, 58, 30, 200),
    (10, 20, 30, 200),
    (8, 18, 28, 200),
]
SAMPLE_STREAM = make_stream(3, 3, SAMPLE_CHUNKS)


class TrickleSource:
    """Hands out at most ``step`` bytes per read."""

    def __init__(self, data: bytes, step: int = 1):
        self.data = data
        self.step = step
        self.position = 0
        self.reads = 0

    def readinto(self, buffer) -> int:
        self.reads += 1
        count = min(self.step, len(buffer), len(self.data) - self.position)
        buffer[:count] = self.data[self.position : self.position + count]
        self.position += count
        return count


class ReadOnlySource:
    """Offers only ``read(n)``, like a socket file or a pipe."""

    def __init__(self, data: bytes, step: int = 3):
        self.data = data
        self.step = step
        self.position = 0

    def read(self, size: int) -> bytes:
        size = min(size, self.step)
        chunk = self.data[self.position : self.position + size]
        self.position += len(chunk)
        return chunk


class FailingSource:
    """Serves ``data`` and then raises the given OSError."""

    def __init__(self, data: bytes, error: OSError):
        self.data = data
        self.error = error
        self.served = False

    def readinto(self, buffer) -> int:
        if self.served:
            raise self.error
        self.served = True
        count = min(len(buffer), len(self.data))
        buffer[:count] = self.data[:count]
        self.data = self.data[count:]
        self.served = not self.data
        return count


class StallingSource:
    """Serves ``data`` and then blocks until ``release`` is set."""

    def __init__(self, data: bytes):
        self.data = data
        self.release = threading.Event()

    def readinto(self, buffer) -> int:
        if self.data:
            count = min(len(buffer), len(self.data))
            buffer[:count] = self.data[:count]
            self.data = self.data[count:]
            return count
        self.release.wait()
        return 0
