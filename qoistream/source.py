import io
import os
from contextlib import contextmanager


class _ReadAdapter:
    """Give a ``read(n)``-only stream (sockets files, pipes, custom readers) a ``readinto``."""

    def __init__(self, stream):
        self._stream = stream

    def readinto(self, buffer) -> int:
        data = self._stream.read(len(buffer))
        if not data:
            return 0
        buffer[: len(data)] = data
        return len(data)


def as_byte_source(source):
    """
    Wrap ``source`` into an object with a blocking ``readinto(buffer) -> int``.

    :param source: bytes-like, or a file-like object with ``readinto`` or ``read``.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(source)
    if hasattr(source, "readinto"):
        return source
    if hasattr(source, "read"):
        return _ReadAdapter(source)
    raise TypeError(
        f"QOI.decode: Unsupported byte source of type {type(source).__name__}"
    )


@contextmanager
def open_source(source):
    """Yield a byte source for ``source``, opening and closing it when given a path."""
    if isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as f:
            yield f
    else:
        yield as_byte_source(source)
