import logging
import queue
import threading
import time

from .engine import PixelReconstructor
from .errors import DecodeCancelled
from .header import QOI_PIXELS_MAX
from .parser import INITIAL_BUFFER_CAPACITY, MAX_EMPTY_READS, QOIParser
from .source import open_source

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 4
QUEUE_POLL_INTERVAL = 0.05  # seconds between cancellation checks while blocked

_END_OF_STREAM = object()


class _Failure:
    """Carries a producer-side exception across the queue."""

    def __init__(self, error: BaseException):
        self.error = error


class QOIDecoder:
    """
    Decode a QOI stream with the parser and the pixel engine on separate threads.

    The parser runs on a producer thread and hands chunks over a bounded
    queue to the engine, which runs on the calling thread.
    """

    def __init__(
        self,
        source,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        initial_capacity: int = INITIAL_BUFFER_CAPACITY,
        max_empty_reads: int = MAX_EMPTY_READS,
        pixels_max: int = QOI_PIXELS_MAX,
        lenient_cache: bool = False,
        cancel_event: threading.Event = None,
        timeout: float = None,
    ):
        """
        :param source: Object with ``readinto(buffer) -> int``, see ``qoistream.source``.
        :param queue_size: Chunks buffered between producer and consumer.
        :param initial_capacity: Starting size of the parser's staging buffer.
        :param max_empty_reads: Consecutive zero-byte reads treated as end of stream.
        :param pixels_max: Largest width * height accepted from the header.
        :param lenient_cache: Read empty color cache slots as (0, 0, 0, 0).
        :param cancel_event: Set it from any thread to abort the decode.
        :param timeout: Seconds ``run()`` may take, header included.
        """
        if queue_size < 1:
            raise ValueError("QOIDecoder: queue_size must be positive")
        self.parser = QOIParser(
            source,
            initial_capacity=initial_capacity,
            max_empty_reads=max_empty_reads,
            pixels_max=pixels_max,
        )
        self.lenient_cache = lenient_cache
        self._queue = queue.Queue(maxsize=queue_size)
        self._stop = threading.Event()
        self._cancel = cancel_event
        self._timeout = timeout
        self._deadline = None

    def run(self) -> tuple:
        """
        Decode the whole stream.

        The timeout starts here and covers the header as well as the chunks.

        :return: Tuple of (QOIHeader, PixelBuffer).
        """
        if self._timeout is not None:
            self._deadline = time.monotonic() + self._timeout

        producer = threading.Thread(
            target=self._produce, name="qoistream-parser", daemon=True
        )
        producer.start()

        try:
            # The producer sends the header first, it decides the output size
            header = self._get()
            if isinstance(header, _Failure):
                raise header.error
            engine = PixelReconstructor(header, lenient_cache=self.lenient_cache)

            while True:
                item = self._get()
                if item is _END_OF_STREAM:
                    break
                if isinstance(item, _Failure):
                    raise item.error
                if not engine.apply(item):
                    break
        except BaseException:
            self._stop.set()
            # A producer blocked in the source cannot be joined, it stays behind as a daemon
            producer.join(timeout=QUEUE_POLL_INTERVAL * 4)
            raise

        # Past the end marker the producer makes no more reads
        self._stop.set()
        producer.join()

        logger.debug(
            "Decoded %dx%d image, %d pixels from %d bytes",
            header.width,
            header.height,
            engine.buffer.pixels_written,
            self.parser.consumed,
        )
        return header, engine.buffer

    @staticmethod
    def decode(file_data, output_channels: int = None, **options) -> dict:
        """
        Decode a QOI file given as bytes, a path or a binary stream.

        :param file_data: Bytes containing the QOI file, a path, or a readable stream.
        :param output_channels: Number of channels to include in the decoded data (3 or 4).
                                If None, uses the channels defined in the file header.
        :param options: Keyword arguments for QOIDecoder. ``lenient_cache`` defaults
                        to True here, files from the reference encoder may index
                        the zero-filled cache.
        :return: Dictionary containing width, height, colorspace, channels, and data (bytes).
        """
        if output_channels is not None and not (3 <= output_channels <= 4):
            raise ValueError(
                "QOI.decode: The number of channels for the output is invalid"
            )

        options.setdefault("lenient_cache", True)
        header, pixels = decode(file_data, **options)

        if output_channels is None:
            output_channels = header.channels

        return {
            "width": header.width,
            "height": header.height,
            "colorspace": header.colorspace,
            "channels": output_channels,
            "data": pixels.tobytes(output_channels),
        }

    # --- Producer side ---

    def _produce(self):
        logger.debug("Parser thread started")
        try:
            if not self._put(self.parser.read_header()):
                return
            for chunk in self.parser.chunks():
                if not self._put(chunk):
                    logger.debug("Parser thread stopped by the consumer")
                    return
        except Exception as e:
            self._put(_Failure(e))
            return
        self._put(_END_OF_STREAM)
        logger.debug("Parser thread finished after %d bytes", self.parser.consumed)

    def _put(self, item) -> bool:
        while not self._stop.is_set():
            try:
                self._queue.put(item, timeout=QUEUE_POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    # --- Consumer side ---

    def _cancelled(self) -> bool:
        if self._cancel is not None and self._cancel.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def _get(self):
        while True:
            if self._cancelled():
                raise DecodeCancelled("QOI.decode: Decode cancelled before completion")
            try:
                return self._queue.get(timeout=QUEUE_POLL_INTERVAL)
            except queue.Empty:
                continue


def decode(source, **options) -> tuple:
    """
    Decode a QOI stream into its header and RGBA pixels.

    :param source: Path, bytes-like object, or binary file-like object.
    :param options: Keyword arguments for QOIDecoder.
    :return: Tuple of (QOIHeader, PixelBuffer).
    """
    with open_source(source) as byte_source:
        return QOIDecoder(byte_source, **options).run()


def read(path, channels: int = None, **options):
    """Decode a QOI file into a (height, width, channels) numpy array, reading empty cache slots as (0, 0, 0, 0)."""
    options.setdefault("lenient_cache", True)
    header, pixels = decode(path, **options)
    return pixels.to_array(channels or header.channels)
