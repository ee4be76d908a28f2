"""Name-indexed registry that routes decoded lines to debug objects."""
from __future__ import annotations

import logging
from enum import Enum, auto
from types import MappingProxyType
from typing import Callable, Dict, Iterator, Mapping, Sequence, Tuple, Union

from ..grammar import SCOPE_KEYWORD, GrammarError
from ..tokenizer import DebugLine, tokenize_line
from .scope import FeedResult, Scope, ScopeView

LOGGER = logging.getLogger(__name__)

# Closed union of object kinds. Extend the isinstance chains below when adding one.
DebugObject = Union[Scope]
DebugObjectView = Union[ScopeView]

ObjectFactory = Callable[[Sequence[str]], DebugObject]


class RouteOutcome(Enum):
    """Result of routing a single line through :class:`DebugObjectRegistry`."""

    FED = auto()
    CREATED = auto()
    REPLACED = auto()
    DROPPED = auto()


def object_name(obj: DebugObject) -> str:
    """Return the declared name of ``obj``."""

    if isinstance(obj, Scope):
        return obj.name
    raise TypeError(f"unsupported debug object {type(obj)!r}")


def feed_object(obj: DebugObject, tokens: Sequence[str]) -> bool:
    """Deliver ``tokens`` to ``obj`` and report whether they were accepted."""

    if isinstance(obj, Scope):
        return obj.feed(tokens) is not FeedResult.REJECTED
    raise TypeError(f"unsupported debug object {type(obj)!r}")


def view_object(obj: DebugObject) -> DebugObjectView:
    """Return the read-only rendering view of ``obj``."""

    if isinstance(obj, Scope):
        return obj.view()
    raise TypeError(f"unsupported debug object {type(obj)!r}")


class DebugObjectRegistry:
    """Table of live debug objects keyed by their declared names."""

    def __init__(self, factories: Mapping[str, ObjectFactory] | None = None) -> None:
        self._objects: Dict[str, DebugObject] = {}
        self._object_view: Mapping[str, DebugObject] = MappingProxyType(self._objects)
        if factories is None:
            factories = {SCOPE_KEYWORD: Scope.create}
        self._factories: Dict[str, ObjectFactory] = dict(factories)
        self._dropped = 0

    @property
    def objects(self) -> Mapping[str, DebugObject]:
        """Expose a read-only view of the live objects."""

        return self._object_view

    @property
    def dropped(self) -> int:
        """Return the number of lines dropped since creation."""

        return self._dropped

    def __contains__(self, name: object) -> bool:
        return name in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def get(self, name: str) -> DebugObject | None:
        return self._objects.get(name)

    def names(self) -> Tuple[str, ...]:
        return tuple(self._objects)

    def views(self) -> Iterator[DebugObjectView]:
        """Yield rendering snapshots in declaration order."""

        for obj in self._objects.values():
            yield view_object(obj)

    def register_factory(self, keyword: str, factory: ObjectFactory) -> None:
        """Register ``factory`` for declarations introduced by ``keyword``."""

        self._factories[keyword] = factory

    def route(self, line: DebugLine | str) -> RouteOutcome:
        """Feed ``line`` to its object or create the object it declares.

        Grammar failures are logged and reported as :attr:`RouteOutcome.DROPPED`;
        they never propagate to the caller.
        """

        if isinstance(line, str):
            decoded = tokenize_line(line)
            if decoded is None:
                self._dropped += 1
                return RouteOutcome.DROPPED
            line = decoded

        target = self._objects.get(line.keyword)
        if target is not None:
            if feed_object(target, line.tokens):
                return RouteOutcome.FED
            self._dropped += 1
            return RouteOutcome.DROPPED
        return self._create(line)

    def _create(self, line: DebugLine) -> RouteOutcome:
        factory = self._factories.get(line.keyword)
        if factory is None:
            return self._drop("no object or factory for keyword %r", line.keyword)
        if not line.tokens:
            return self._drop("%s declaration without a name", line.keyword)
        try:
            created = factory(line.tokens)
        except GrammarError as exc:
            return self._drop("failed to create %s: %s", line.keyword, exc)

        name = object_name(created)
        if name in self._factories:
            return self._drop("refusing to register object under keyword %r", name)
        replaced = name in self._objects
        # Re-declaration drops the previous object and its signals.
        self._objects.pop(name, None)
        self._objects[name] = created
        if replaced:
            LOGGER.info("replaced %s %s", line.keyword, name)
            return RouteOutcome.REPLACED
        LOGGER.info("created %s %s", line.keyword, name)
        return RouteOutcome.CREATED

    def _drop(self, message: str, *args: object) -> RouteOutcome:
        self._dropped += 1
        LOGGER.warning("dropping line: " + message, *args)
        return RouteOutcome.DROPPED


__all__ = [
    "DebugObject",
    "DebugObjectRegistry",
    "DebugObjectView",
    "ObjectFactory",
    "RouteOutcome",
    "feed_object",
    "object_name",
    "view_object",
]
