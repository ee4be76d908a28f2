"""Host-side decoder for scope telemetry streamed by embedded targets."""
from __future__ import annotations

from .framing import LineFramer
from .grammar import (
    Color,
    FormatError,
    GrammarError,
    MissingTokenError,
    NoNameGiven,
    Rect,
    ScopeConfig,
    SignalConfig,
    UnknownColor,
    parse_numeric_row,
)
from .objects import (
    DebugObjectRegistry,
    FeedResult,
    RouteOutcome,
    Scope,
    ScopeState,
    ScopeView,
    Signal,
    SignalView,
)
from .tokenizer import DebugLine, tokenize_line

__version__ = "0.1.0"

__all__ = [
    "Color",
    "DebugLine",
    "DebugObjectRegistry",
    "FeedResult",
    "FormatError",
    "GrammarError",
    "LineFramer",
    "MissingTokenError",
    "NoNameGiven",
    "Rect",
    "RouteOutcome",
    "Scope",
    "ScopeConfig",
    "ScopeState",
    "ScopeView",
    "Signal",
    "SignalConfig",
    "SignalView",
    "UnknownColor",
    "parse_numeric_row",
    "tokenize_line",
]
