"""Producer thread that frames device bytes into a line queue."""
from __future__ import annotations

import logging
import queue
import threading

from ..config import DEFAULT_READ_SIZE, DEFAULT_RETRY_DELAY
from ..framing import LineFramer
from .sources import ByteSource, TransportError

LOGGER = logging.getLogger(__name__)


class LineReader(threading.Thread):
    """Read from a :class:`ByteSource`, frame lines and enqueue them.

    The reader is the only producer for ``lines``. A read error is logged and
    retried after ``retry_delay``. An exhausted finite source ends the thread.
    :meth:`stop` interrupts both reads and retry waits between iterations.
    """

    def __init__(
        self,
        source: ByteSource,
        lines: "queue.Queue[str]",
        *,
        read_size: int = DEFAULT_READ_SIZE,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        name: str = "serialscope-reader",
    ) -> None:
        super().__init__(name=name, daemon=True)
        self.source = source
        self.lines = lines
        self.read_size = read_size
        self.retry_delay = retry_delay
        self._framer = LineFramer()
        self._stop_event = threading.Event()
        self.dropped_lines = 0
        self.read_errors = 0

    @property
    def framer(self) -> LineFramer:
        return self._framer

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the read loop to finish after the current read."""

        self._stop_event.set()

    def run(self) -> None:
        try:
            while not self._stop_event.is_set():
                if not self.read_once():
                    LOGGER.info("byte source exhausted")
                    break
        finally:
            self._framer.reset()

    def read_once(self) -> bool:
        """Perform one read, returning ``False`` once the source is exhausted."""

        try:
            data = self.source.read(self.read_size)
        except TransportError as exc:
            self.read_errors += 1
            LOGGER.warning("%s; retrying in %.2fs", exc, self.retry_delay)
            self._stop_event.wait(self.retry_delay)
            return True
        if not data:
            return not getattr(self.source, "exhausted", False)
        for line in self._framer.feed(data):
            self._enqueue(line)
        return True

    def _enqueue(self, line: str) -> None:
        try:
            self.lines.put_nowait(line)
        except queue.Full:
            self.dropped_lines += 1
            LOGGER.warning("line queue full; dropping %r", line)


__all__ = ["LineReader"]
