"""Pytest configuration and shared protocol fixtures."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

_SRC = Path(__file__).resolve().parents[1] / "src"
_src_str = str(_SRC)
if _SRC.exists() and _src_str not in sys.path:
    sys.path.insert(0, _src_str)

from serialscope.objects.registry import DebugObjectRegistry  # noqa: E402


SAWTOOTH_SESSION = (
    "`SCOPE MyScope SIZE 254 84 SAMPLES 128",
    "`MyScope 'Sawtooth' 0 63 64 10 %1111",
    "`MyScope 31",
    "`MyScope 32",
    "`MyScope 33",
    "`MyScope 34",
    "`MyScope 35",
    "`MyScope 36",
)


@pytest.fixture
def registry() -> DebugObjectRegistry:
    return DebugObjectRegistry()


@pytest.fixture
def sawtooth_lines() -> tuple[str, ...]:
    return SAWTOOTH_SESSION


@pytest.fixture
def sawtooth_bytes() -> bytes:
    return "".join(line + "\r\n" for line in SAWTOOTH_SESSION).encode("ascii")
