"""Byte sources feeding the line reader: serial ports, captures and a demo."""
from __future__ import annotations

import logging
import math
import time
from collections import deque
from pathlib import Path
from typing import Callable, Deque, Iterable, Protocol

import serial

from ..config import SerialSettings
from ..framing import TERMINATOR

LOGGER = logging.getLogger(__name__)


class TransportError(OSError):
    """Raised when the byte source cannot be opened or read."""


class ByteSource(Protocol):
    """Ordered byte stream consumed by :class:`~serialscope.runtime.reader.LineReader`.

    ``read`` returns ``b""`` when no data arrived within the source's timeout.
    Finite sources additionally expose a truthy ``exhausted`` attribute once
    drained.
    """

    def read(self, size: int) -> bytes:
        ...

    def close(self) -> None:
        ...


class SerialByteSource:
    """Adapter exposing a :class:`serial.Serial` port as a :class:`ByteSource`."""

    def __init__(self, port: serial.Serial) -> None:
        self._port = port

    @classmethod
    def open(cls, settings: SerialSettings) -> "SerialByteSource":
        """Open the configured port, raising :class:`TransportError` on failure."""

        try:
            port = serial.Serial(settings.port, settings.baud, timeout=settings.timeout)
        except (serial.SerialException, ValueError) as exc:
            raise TransportError(f"unable to open {settings.port}: {exc}") from exc
        LOGGER.info("opened %s at %d baud", settings.port, settings.baud)
        return cls(port)

    @property
    def port(self) -> serial.Serial:
        return self._port

    def read(self, size: int) -> bytes:
        try:
            return self._port.read(size)
        except (serial.SerialException, OSError) as exc:
            raise TransportError(f"read from {self._port.port} failed: {exc}") from exc

    def close(self) -> None:
        self._port.close()


class ReplaySource:
    """Replay a capture file of raw device bytes."""

    def __init__(self, path: Path) -> None:
        self.path = path
        try:
            self._stream = path.open("rb")
        except OSError as exc:
            raise TransportError(f"unable to open capture {path}: {exc}") from exc
        self.exhausted = False

    def read(self, size: int) -> bytes:
        if self.exhausted:
            return b""
        try:
            data = self._stream.read(size)
        except OSError as exc:
            raise TransportError(f"read from {self.path} failed: {exc}") from exc
        if not data:
            self.exhausted = True
        return data

    def close(self) -> None:
        self._stream.close()


class MemorySource:
    """Serve pre-recorded chunks, one per read."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks: Deque[bytes] = deque(chunks)
        self._pending = b""
        self.exhausted = False

    def read(self, size: int) -> bytes:
        if not self._pending:
            if not self._chunks:
                self.exhausted = True
                return b""
            self._pending = self._chunks.popleft()
        data, self._pending = self._pending[:size], self._pending[size:]
        return data

    def close(self) -> None:
        self._chunks.clear()
        self._pending = b""


DEMO_SCOPE = "Demo"
DEMO_FREQUENCY = 1.0
DEMO_AMPLITUDE = 100.0


class DemoSource:
    """Synthesise a scope declaration followed by sine and sawtooth rows.

    Rows are paced at ``rate`` per second using ``clock``. ``read`` returns
    ``b""`` between rows, mirroring a serial timeout.
    """

    def __init__(
        self,
        *,
        rate: float = 60.0,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], object] | None = None,
        limit: int | None = None,
    ) -> None:
        if rate <= 0:
            raise ValueError("demo rate must be positive")
        self.rate = rate
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._limit = limit
        self._emitted = 0
        self._started: float | None = None
        self._pending = bytearray(
            self._encode(
                f"`SCOPE {DEMO_SCOPE} SIZE 254 84 SAMPLES 256",
                f"`{DEMO_SCOPE} 'Sine' {-DEMO_AMPLITUDE:g} {DEMO_AMPLITUDE:g} 64 32 %1111 GREEN",
                f"`{DEMO_SCOPE} 'Sawtooth' 0 63 64 10 %1111 YELLOW",
            )
        )
        self.exhausted = False

    @staticmethod
    def _encode(*lines: str) -> bytes:
        return b"".join(line.encode("ascii") + TERMINATOR for line in lines)

    def _due_rows(self) -> int:
        now = self._clock()
        if self._started is None:
            self._started = now
        due = int((now - self._started) * self.rate) + 1
        if self._limit is not None:
            due = min(due, self._limit)
        return due - self._emitted

    def read(self, size: int) -> bytes:
        if not self._pending:
            if self._limit is not None and self._emitted >= self._limit:
                self.exhausted = True
                return b""
            due = self._due_rows()
            if due <= 0:
                self._sleep(1.0 / self.rate)
                return b""
            for _ in range(due):
                t = self._emitted / self.rate
                sine = math.sin(t * DEMO_FREQUENCY * math.tau) * DEMO_AMPLITUDE
                sawtooth = self._emitted % 64
                self._pending.extend(
                    self._encode(f"`{DEMO_SCOPE} {sine:.3f}, {sawtooth}")
                )
                self._emitted += 1
        data = bytes(self._pending[:size])
        del self._pending[:size]
        return data

    def close(self) -> None:
        self._pending.clear()


__all__ = [
    "ByteSource",
    "DemoSource",
    "MemorySource",
    "ReplaySource",
    "SerialByteSource",
    "TransportError",
]
