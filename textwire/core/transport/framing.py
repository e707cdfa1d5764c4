from textwire.core.errors import FrameTooLargeError
from textwire.core.models.config import DEFAULT_DELIMITER


def strip_delimiter(text: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    """
    Remove every literal occurrence of the delimiter from text.

    Removal is repeated until none is left, so that a payload such as
    "<<EO<<EOF>>F>>" cannot rebuild a delimiter and split the frame.
    """
    while delimiter in text:
        text = text.replace(delimiter, "")
    return text


def encode_frame(
    text: str,
    delimiter: str = DEFAULT_DELIMITER,
    encoding: str = "utf-8",
) -> bytes:
    """Build the wire representation of one message."""
    return (strip_delimiter(text, delimiter) + delimiter).encode(encoding)


class FrameDecoder:
    """
    Incremental delimiter scanner for a single connection.

    Received bytes are accumulated in an internal buffer. Every call to
    `feed()` returns the messages completed by the new bytes, decoded as
    text and without their delimiter. The first occurrence of the delimiter
    always ends a frame, wherever the read boundaries fall.

    The scan does not restart from the beginning of the buffer on each call:
    a cursor remembers the first position where a delimiter could still
    start, which is at most `len(delimiter) - 1` bytes before the end of the
    data already scanned.

    A match only counts when it starts on a code unit boundary of the
    encoding, counted from the start of the frame. With multi-byte code
    units (UTF-16, UTF-32) the bytes of ordinary characters may otherwise
    contain the encoded delimiter at an odd offset.

    Bytes that follow a delimiter are kept as the beginning of the next
    frame. When the buffer grows beyond `max_size` a FrameTooLargeError is
    raised; the decoder should then be discarded together with its
    connection.
    """
    def __init__(
        self,
        delimiter: str = DEFAULT_DELIMITER,
        encoding: str = "utf-8",
        max_size: int | None = None,
    ) -> None:
        if not delimiter:
            raise ValueError("Delimiter must not be empty")

        self._delimiter = delimiter.encode(encoding)
        self._encoding = encoding
        self._unit = _code_unit_size(encoding)
        self._max_size = max_size
        self._buffer = bytearray()
        self._cursor = 0

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet part of a complete frame."""
        return len(self._buffer)

    def feed(self, data: bytes) -> list[str]:
        self._buffer.extend(data)

        if self._max_size is not None and len(self._buffer) > self._max_size:
            raise FrameTooLargeError(
                f"{len(self._buffer)} unframed bytes exceed the "
                f"limit of {self._max_size}"
            )

        size = len(self._delimiter)
        frames: list[str] = []

        while len(self._buffer) >= size:
            index = self._find()
            if index < 0:
                cursor = len(self._buffer) - size + 1
                self._cursor = cursor - cursor % self._unit
                break

            payload = bytes(self._buffer[:index])
            del self._buffer[:index + size]
            self._cursor = 0
            frames.append(payload.decode(self._encoding, errors="replace"))

        return frames

    def reset(self) -> None:
        self._buffer.clear()
        self._cursor = 0

    def _find(self) -> int:
        start = self._cursor
        while True:
            index = self._buffer.find(self._delimiter, start)
            if index < 0 or index % self._unit == 0:
                return index
            start = index + 1


def _code_unit_size(encoding: str) -> int:
    # a byte order mark is emitted once, not per code unit
    return len("\0\0".encode(encoding)) - len("\0".encode(encoding))
