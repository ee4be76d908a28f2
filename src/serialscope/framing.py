"""CRLF framing for the raw debug byte stream."""
from __future__ import annotations

import logging
from typing import Iterable, Iterator, List

LOGGER = logging.getLogger(__name__)

TERMINATOR = b"\r\n"
DEFAULT_MAX_FRAME = 4096


class LineFramer:
    """Accumulate bytes and emit one text line per ``CRLF`` terminator.

    The framer never raises on malformed input. A frame that is not valid
    UTF-8 is discarded and framing resumes with an empty buffer. A frame that
    grows past ``max_frame`` payload bytes is also discarded, and the rest of
    it is skipped up to the next terminator.
    """

    __slots__ = ("_buffer", "_discarded", "_max_frame", "_skipping")

    def __init__(self, max_frame: int = DEFAULT_MAX_FRAME) -> None:
        if max_frame < 1:
            raise ValueError("max_frame must be positive")
        self._buffer = bytearray()
        self._discarded = 0
        self._max_frame = max_frame
        self._skipping = False

    @property
    def pending(self) -> int:
        """Return the number of buffered bytes awaiting a terminator."""

        return len(self._buffer)

    @property
    def discarded(self) -> int:
        """Return how many frames were dropped as invalid UTF-8 or oversized."""

        return self._discarded

    def push(self, byte: int) -> str | None:
        """Append a single byte, returning a line when a frame completes."""

        buffer = self._buffer
        buffer.append(byte)
        if self._skipping:
            if buffer[-2:] == TERMINATOR:
                self._skipping = False
                buffer.clear()
            else:
                del buffer[:-1]
            return None
        if len(buffer) < 2 or buffer[-2:] != TERMINATOR:
            # A trailing CR may still be completed by the next byte.
            if len(buffer) - (buffer[-1] == TERMINATOR[0]) > self._max_frame:
                self._discarded += 1
                self._skipping = True
                LOGGER.warning(
                    "discarding frame longer than %d bytes without a terminator",
                    self._max_frame,
                )
                del buffer[:-1]
            return None
        payload = bytes(buffer[:-2])
        buffer.clear()
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError:
            self._discarded += 1
            LOGGER.debug("discarding %d byte frame with invalid UTF-8", len(payload))
            return None

    def feed(self, data: bytes) -> List[str]:
        """Consume ``data`` and return the lines completed by it."""

        lines: list[str] = []
        for byte in data:
            line = self.push(byte)
            if line is not None:
                lines.append(line)
        return lines

    def iter_lines(self, chunks: Iterable[bytes]) -> Iterator[str]:
        """Yield lines framed from an iterable of byte chunks."""

        for chunk in chunks:
            yield from self.feed(chunk)

    def reset(self) -> None:
        """Drop any unterminated fragment and restart framing."""

        if self._buffer:
            LOGGER.debug("dropping %d byte unterminated fragment", len(self._buffer))
        self._buffer.clear()
        self._skipping = False


__all__ = ["DEFAULT_MAX_FRAME", "LineFramer", "TERMINATOR"]
