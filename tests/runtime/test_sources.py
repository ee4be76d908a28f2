"""Unit tests covering the byte sources behind the line reader."""

from __future__ import annotations

import queue
from pathlib import Path

import pytest
import serial

from serialscope.config import SerialSettings
from serialscope.framing import LineFramer
from serialscope.objects.registry import DebugObjectRegistry
from serialscope.runtime import sources
from serialscope.runtime.reader import LineReader
from serialscope.runtime.sources import (
    DemoSource,
    MemorySource,
    ReplaySource,
    SerialByteSource,
    TransportError,
)


class FakePort:
    def __init__(self, payload: bytes = b"", error: Exception | None = None) -> None:
        self.port = "/dev/fake"
        self.payload = payload
        self.error = error
        self.closed = False

    def read(self, size: int) -> bytes:
        if self.error is not None:
            raise self.error
        data, self.payload = self.payload[:size], self.payload[size:]
        return data

    def close(self) -> None:
        self.closed = True


def test_memory_source_serves_chunks_then_exhausts() -> None:
    source = MemorySource([b"abcdef", b"gh"])

    assert source.read(4) == b"abcd"
    assert source.read(4) == b"ef"
    assert source.read(4) == b"gh"
    assert not source.exhausted
    assert source.read(4) == b""
    assert source.exhausted


def test_replay_source_reads_capture_until_eof(tmp_path: Path, sawtooth_bytes: bytes) -> None:
    capture = tmp_path / "capture.bin"
    capture.write_bytes(sawtooth_bytes)
    source = ReplaySource(capture)

    chunks = []
    while not source.exhausted:
        chunks.append(source.read(7))
    source.close()

    assert b"".join(chunks) == sawtooth_bytes
    assert source.read(7) == b""


def test_replay_source_missing_file(tmp_path: Path) -> None:
    with pytest.raises(TransportError, match="unable to open capture"):
        ReplaySource(tmp_path / "missing.bin")


def test_serial_source_open_wraps_serial_exception(monkeypatch: pytest.MonkeyPatch) -> None:
    def _refuse(*args: object, **kwargs: object) -> None:
        raise serial.SerialException("could not open port")

    monkeypatch.setattr(sources.serial, "Serial", _refuse)

    with pytest.raises(TransportError, match="unable to open /dev/ttyUSB9") as excinfo:
        SerialByteSource.open(SerialSettings(port="/dev/ttyUSB9"))
    assert isinstance(excinfo.value, OSError)


def test_serial_source_open_passes_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[object, ...]] = []

    def _open(port: str, baud: int, *, timeout: float) -> FakePort:
        calls.append((port, baud, timeout))
        return FakePort(b"`A 1\r\n")

    monkeypatch.setattr(sources.serial, "Serial", _open)

    source = SerialByteSource.open(SerialSettings(port="/dev/ttyACM0", baud=9600, timeout=0.5))

    assert calls == [("/dev/ttyACM0", 9600, 0.5)]
    assert source.read(64) == b"`A 1\r\n"
    source.close()
    assert source.port.closed


def test_serial_source_read_error_becomes_transport_error() -> None:
    source = SerialByteSource(FakePort(error=serial.SerialException("device reports readiness")))

    with pytest.raises(TransportError, match="read from /dev/fake failed"):
        source.read(16)


def test_serial_source_os_error_becomes_transport_error() -> None:
    source = SerialByteSource(FakePort(error=OSError(5, "Input/output error")))

    with pytest.raises(TransportError, match="Input/output error"):
        source.read(16)


def test_reader_survives_os_error_from_serial_port() -> None:
    lines: "queue.Queue[str]" = queue.Queue()
    reader = LineReader(
        SerialByteSource(FakePort(error=OSError(5, "Input/output error"))),
        lines,
        retry_delay=0.0,
    )

    assert reader.read_once() is True
    assert reader.read_once() is True
    assert reader.read_errors == 2
    assert lines.empty()


def test_demo_source_declares_scope_then_paces_rows() -> None:
    now = [0.0]
    sleeps: list[float] = []
    source = DemoSource(rate=10.0, clock=lambda: now[0], sleep=sleeps.append, limit=3)
    framer = LineFramer()
    registry = DebugObjectRegistry()

    def _drain() -> None:
        for line in framer.feed(source.read(4096)):
            registry.route(line)

    _drain()
    assert registry.names() == ("Demo",)
    assert [signal.name for signal in registry.get("Demo").signals] == ["Sine", "Sawtooth"]

    _drain()
    _drain()
    assert sleeps == [pytest.approx(0.1)]

    now[0] = 1.0
    _drain()
    assert not source.exhausted
    assert source.read(4096) == b""
    assert source.exhausted

    sine, sawtooth = registry.get("Demo").signals
    assert list(sawtooth) == [0.0, 1.0, 2.0]
    assert len(sine) == 3
    assert sine.latest is not None and -100.0 <= sine.latest <= 100.0
    assert registry.dropped == 0


def test_demo_source_rejects_non_positive_rate() -> None:
    with pytest.raises(ValueError):
        DemoSource(rate=0)
