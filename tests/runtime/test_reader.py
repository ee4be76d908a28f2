"""Producer/consumer tests for the line reader thread and decoder session."""

from __future__ import annotations

import queue
import threading
import time

import pytest

from serialscope.objects.registry import DebugObjectRegistry, RouteOutcome
from serialscope.runtime.reader import LineReader
from serialscope.runtime.session import DecoderSession
from serialscope.runtime.sources import MemorySource, TransportError

JOIN_TIMEOUT = 5.0


class FlakySource:
    """Raise once, then behave like an exhausted capture."""

    def __init__(self, payload: bytes) -> None:
        self.payload = payload
        self.failures = 1
        self.exhausted = False

    def read(self, size: int) -> bytes:
        if self.failures:
            self.failures -= 1
            raise TransportError("device unplugged")
        if not self.payload:
            self.exhausted = True
            return b""
        data, self.payload = self.payload[:size], self.payload[size:]
        return data

    def close(self) -> None:
        pass


class IdleSource:
    """Never produce data, like a quiet serial port."""

    def __init__(self) -> None:
        self.reads = threading.Event()

    def read(self, size: int) -> bytes:
        self.reads.set()
        time.sleep(0.01)
        return b""

    def close(self) -> None:
        pass


def test_reader_frames_stream_into_session(sawtooth_bytes: bytes) -> None:
    session = DecoderSession()
    chunks = [sawtooth_bytes[index : index + 5] for index in range(0, len(sawtooth_bytes), 5)]
    reader = LineReader(MemorySource(chunks), session.lines, read_size=3)

    reader.start()
    reader.join(JOIN_TIMEOUT)

    assert not reader.is_alive()
    assert session.poll() == 8
    assert session.outcomes[RouteOutcome.CREATED] == 1
    assert session.outcomes[RouteOutcome.FED] == 7
    assert list(session.registry.get("MyScope").signals[0]) == [31.0, 32.0, 33.0, 34.0, 35.0, 36.0]


def test_unterminated_tail_is_discarded_when_source_ends() -> None:
    lines: "queue.Queue[str]" = queue.Queue()
    reader = LineReader(MemorySource([b"`SCOPE A\r\n`A 1"]), lines)

    reader.run()

    assert lines.get_nowait() == "`SCOPE A"
    assert lines.empty()
    assert reader.framer.pending == 0


def test_transport_error_is_counted_and_retried(caplog: pytest.LogCaptureFixture) -> None:
    lines: "queue.Queue[str]" = queue.Queue()
    reader = LineReader(FlakySource(b"`SCOPE A\r\n"), lines, retry_delay=0.0)

    assert reader.read_once() is True
    assert reader.read_errors == 1
    assert "device unplugged" in caplog.text

    reader.run()
    assert lines.get_nowait() == "`SCOPE A"


def test_full_queue_drops_newest_lines() -> None:
    lines: "queue.Queue[str]" = queue.Queue(maxsize=2)
    reader = LineReader(MemorySource([b"`A 1\r\n`A 2\r\n`A 3\r\n"]), lines)

    assert reader.read_once() is True

    assert reader.dropped_lines == 1
    assert [lines.get_nowait(), lines.get_nowait()] == ["`A 1", "`A 2"]


def test_exhausted_source_ends_read_loop() -> None:
    reader = LineReader(MemorySource([]), queue.Queue())

    assert reader.read_once() is False


def test_stop_interrupts_idle_reader() -> None:
    source = IdleSource()
    reader = LineReader(source, queue.Queue())

    reader.start()
    assert source.reads.wait(JOIN_TIMEOUT)
    reader.stop()
    reader.join(JOIN_TIMEOUT)

    assert reader.stopping
    assert not reader.is_alive()


def test_stop_interrupts_retry_wait() -> None:
    class _Broken:
        def read(self, size: int) -> bytes:
            raise TransportError("no device")

        def close(self) -> None:
            pass

    reader = LineReader(_Broken(), queue.Queue(), retry_delay=60.0)

    reader.start()
    reader.stop()
    reader.join(JOIN_TIMEOUT)

    assert not reader.is_alive()


def test_session_uses_supplied_registry(sawtooth_lines: tuple[str, ...]) -> None:
    registry = DebugObjectRegistry()
    session = DecoderSession(registry)

    for line in sawtooth_lines:
        session.submit(line)
    session.submit("console chatter")

    assert session.registry is registry
    assert session.poll() == 9
    assert session.poll() == 0
    assert session.lines_routed == 9
    assert session.outcomes[RouteOutcome.DROPPED] == 1
    assert registry.names() == ("MyScope",)


def test_session_route_all_bypasses_queue(sawtooth_lines: tuple[str, ...]) -> None:
    session = DecoderSession(queue_limit=1)

    assert session.route_all(sawtooth_lines) == 8
    assert session.lines.empty()
    assert session.lines_routed == 8


def test_bounded_session_queue_refuses_extra_submissions() -> None:
    session = DecoderSession(queue_limit=1)
    session.submit("`SCOPE A")

    with pytest.raises(queue.Full):
        session.submit("`SCOPE B")
