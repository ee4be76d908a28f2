"""Consumer side of the decoder: drain queued lines into the registry."""
from __future__ import annotations

import queue
from collections import Counter
from typing import Iterable

from ..config import DEFAULT_QUEUE_LIMIT
from ..objects.registry import DebugObjectRegistry, RouteOutcome


class DecoderSession:
    """Own the registry and the line queue shared with the reader thread.

    Only the thread calling :meth:`poll` touches the registry, so no locking is
    needed around scope state.
    """

    def __init__(
        self,
        registry: DebugObjectRegistry | None = None,
        *,
        queue_limit: int = DEFAULT_QUEUE_LIMIT,
    ) -> None:
        self.registry = registry if registry is not None else DebugObjectRegistry()
        self.lines: "queue.Queue[str]" = queue.Queue(maxsize=queue_limit)
        self.outcomes: Counter[RouteOutcome] = Counter()

    @property
    def lines_routed(self) -> int:
        return sum(self.outcomes.values())

    def submit(self, line: str) -> None:
        """Queue ``line`` as if the reader had framed it."""

        self.lines.put_nowait(line)

    def route_all(self, lines: Iterable[str]) -> int:
        """Route ``lines`` synchronously in order, bypassing the queue."""

        count = 0
        for line in lines:
            self._route(line)
            count += 1
        return count

    def poll(self) -> int:
        """Route every line queued so far without blocking; return the count."""

        count = 0
        while True:
            try:
                line = self.lines.get_nowait()
            except queue.Empty:
                break
            self._route(line)
            count += 1
        return count

    def _route(self, line: str) -> None:
        outcome = self.registry.route(line)
        self.outcomes[outcome] += 1


__all__ = ["DecoderSession"]
