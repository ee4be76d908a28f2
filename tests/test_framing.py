from __future__ import annotations

import pytest

from serialscope.framing import LineFramer


def test_feed_emits_lines_without_terminators() -> None:
    framer = LineFramer()

    lines = framer.feed(b"`SCOPE A\r\n`A 1\r\n")

    assert lines == ["`SCOPE A", "`A 1"]
    assert framer.pending == 0


def test_partial_frames_are_joined_across_reads() -> None:
    framer = LineFramer()

    assert framer.feed(b"`A 1") == []
    assert framer.feed(b"2\r") == []
    assert framer.pending == 6
    assert framer.feed(b"\n`A") == ["`A 12"]
    assert framer.pending == 2


def test_unterminated_fragment_is_never_emitted() -> None:
    framer = LineFramer()

    assert list(framer.iter_lines([b"`A 1\r\n", b"`A 2"])) == ["`A 1"]
    framer.reset()
    assert framer.pending == 0
    assert framer.feed(b"\r\n") == [""]


def test_invalid_utf8_frame_is_discarded_and_framing_resumes() -> None:
    framer = LineFramer()

    lines = framer.feed(b"`A 1\r\n\xff\xfe garbage\r\n`A 2\r\n")

    assert lines == ["`A 1", "`A 2"]
    assert framer.discarded == 1


def test_back_to_back_terminators_yield_empty_line() -> None:
    framer = LineFramer()

    assert framer.feed(b"\r\n\r\n") == ["", ""]


def test_embedded_nul_and_lone_cr_or_lf_stay_in_line() -> None:
    framer = LineFramer()

    assert framer.feed(b"a\x00b\rc\nd\r\n") == ["a\x00b\rc\nd"]


@pytest.mark.parametrize(
    "payload, expected",
    [
        (b"", []),
        (b"\r\n", [""]),
        (b"x\r\ny\r\nz", ["x", "y"]),
        (b"\xc3\r\n\xc3\xa9\r\n", ["é"]),
    ],
)
def test_line_count_never_exceeds_terminator_count(payload: bytes, expected: list[str]) -> None:
    framer = LineFramer()

    lines = framer.feed(payload)

    assert lines == expected
    assert len(lines) <= payload.count(b"\r\n")


def test_byte_at_a_time_matches_bulk_feed(sawtooth_bytes: bytes) -> None:
    bulk = LineFramer().feed(sawtooth_bytes)
    framer = LineFramer()
    trickled = [line for byte in sawtooth_bytes if (line := framer.push(byte)) is not None]

    assert trickled == bulk
    assert len(bulk) == 8


def test_flood_without_crlf_stays_bounded() -> None:
    framer = LineFramer(max_frame=64)

    assert framer.feed(b"abcde\n" * 10_000) == []
    assert framer.pending <= 65
    assert framer.discarded == 1


def test_oversized_frame_is_skipped_up_to_next_terminator() -> None:
    framer = LineFramer(max_frame=8)

    assert framer.feed(b"0123456789abc\r\n`A 1\r\n") == ["`A 1"]
    assert framer.discarded == 1
    assert framer.pending == 0


def test_oversized_frame_split_at_terminator_is_skipped() -> None:
    framer = LineFramer(max_frame=8)

    assert framer.feed(b"0123456789\r") == []
    assert framer.feed(b"\n`A 2\r\n") == ["`A 2"]
    assert framer.discarded == 1


def test_frame_at_the_limit_is_emitted() -> None:
    framer = LineFramer(max_frame=8)

    assert framer.feed(b"12345678\r\n") == ["12345678"]
    assert framer.discarded == 0


def test_max_frame_must_be_positive() -> None:
    with pytest.raises(ValueError):
        LineFramer(max_frame=0)
