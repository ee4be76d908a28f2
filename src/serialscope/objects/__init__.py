"""Debug objects built from the line protocol and the registry that owns them."""
from __future__ import annotations

from .registry import (
    DebugObject,
    DebugObjectRegistry,
    DebugObjectView,
    ObjectFactory,
    RouteOutcome,
    feed_object,
    object_name,
    view_object,
)
from .scope import FeedResult, Scope, ScopeState, ScopeView, Signal, SignalView

__all__ = [
    "DebugObject",
    "DebugObjectRegistry",
    "DebugObjectView",
    "FeedResult",
    "ObjectFactory",
    "RouteOutcome",
    "Scope",
    "ScopeState",
    "ScopeView",
    "Signal",
    "SignalView",
    "feed_object",
    "object_name",
    "view_object",
]
