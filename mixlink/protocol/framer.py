"""Line framing for the controller byte stream.

Turns arbitrarily chunked bytes into complete, trimmed text lines and keeps
the undelimited remainder in a bounded buffer between calls.
"""
from __future__ import annotations

import logging
import re
from typing import List, Union

from ..config import MAX_FRAME_BUFFER_SIZE, MAX_LINE_LENGTH

logger = logging.getLogger(__name__)

# Everything except printable ASCII and line terminators
_NOISE_RE = re.compile(r"[^\x20-\x7E\r\n]")
_TERMINATORS = "\r\n"


class FrameBuffer:
    """Bounded holder for characters not yet resolved into a line.

    Unlike a sliding FIFO, an overflowing remainder is dropped entirely:
    past the bound the framing is already lost and the next terminator
    resynchronizes it.
    """

    def __init__(self, max_size: int = MAX_FRAME_BUFFER_SIZE):
        """Initialize buffer.

        Args:
            max_size: Maximum retained characters. Larger remainders are dropped.
        """
        self._max_size = max_size
        self._data = ""
        self._overflow_count = 0

    def store(self, text: str) -> None:
        """Replace the buffered remainder, resetting it on overflow."""
        if len(text) > self._max_size:
            self._overflow_count += 1
            self._data = ""
            if self._overflow_count % 100 == 1:  # Log periodically
                logger.warning(
                    f"Frame buffer overflow: dropped {len(text)} undelimited characters"
                )
            return
        self._data = text

    def take(self) -> str:
        """Return the buffered remainder and clear it."""
        data, self._data = self._data, ""
        return data

    def clear(self) -> None:
        self._data = ""

    @property
    def size(self) -> int:
        """Current number of buffered characters."""
        return len(self._data)

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def overflow_count(self) -> int:
        return self._overflow_count


class LineFramer:
    """Splits a character stream into lines on `\\n`, `\\r` or their pairs.

    Not thread-safe: the owning connection serializes calls to feed().

    Example:
        >>> framer = LineFramer()
        >>> framer.feed(b"512|76")
        []
        >>> framer.feed(b"8\\r\\n400|")
        ['512|768']
    """

    def __init__(self,
                 max_line_length: int = MAX_LINE_LENGTH,
                 max_buffer_size: int = MAX_FRAME_BUFFER_SIZE):
        """Initialize framer.

        Args:
            max_line_length: Lines of this length or longer are discarded
            max_buffer_size: Bound of the undelimited remainder
        """
        self._max_line_length = max_line_length
        self._buffer = FrameBuffer(max_size=max_buffer_size)
        self._dropped_lines = 0

    def feed(self, chunk: Union[bytes, str]) -> List[str]:
        """Consume a chunk and return every line it completes.

        Args:
            chunk: Raw bytes (decoded as ASCII) or already-decoded text

        Returns:
            Complete trimmed lines in arrival order
        """
        if not chunk:
            return []

        if isinstance(chunk, (bytes, bytearray)):
            text = bytes(chunk).decode("ascii", errors="ignore")
        else:
            text = chunk
        text = _NOISE_RE.sub("", text)
        if not text:
            return []

        data = self._buffer.take() + text
        lines = []
        start = 0
        i = 0
        length = len(data)

        while i < length:
            char = data[i]
            if char not in _TERMINATORS:
                i += 1
                continue

            self._emit(data[start:i], lines)

            # \r\n and \n\r form a single terminator
            if i + 1 < length and data[i + 1] in _TERMINATORS and data[i + 1] != char:
                i += 1
            i += 1
            start = i

        self._buffer.store(data[start:])
        return lines

    def _emit(self, candidate: str, lines: List[str]) -> None:
        line = candidate.strip()
        if not line:
            return
        if len(line) >= self._max_line_length:
            self._dropped_lines += 1
            logger.debug(f"Discarding over-long line ({len(line)} chars)")
            return
        lines.append(line)

    def reset(self) -> None:
        """Discard any partial line."""
        self._buffer.clear()

    @property
    def pending_size(self) -> int:
        """Characters waiting for a terminator."""
        return self._buffer.size

    @property
    def overflow_count(self) -> int:
        return self._buffer.overflow_count

    @property
    def dropped_lines(self) -> int:
        """Lines discarded for exceeding max_line_length."""
        return self._dropped_lines
