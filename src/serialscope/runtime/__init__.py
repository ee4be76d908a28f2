"""Runtime pieces that move bytes from a device into the decoder."""
from __future__ import annotations

from .reader import LineReader
from .session import DecoderSession
from .sources import (
    ByteSource,
    DemoSource,
    MemorySource,
    ReplaySource,
    SerialByteSource,
    TransportError,
)

__all__ = [
    "ByteSource",
    "DecoderSession",
    "DemoSource",
    "LineReader",
    "MemorySource",
    "ReplaySource",
    "SerialByteSource",
    "TransportError",
]
