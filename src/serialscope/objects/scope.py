"""Scope objects and their bounded, clamped signal histories."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import Deque, Iterator, Sequence, Tuple

from ..grammar import (
    Color,
    GrammarError,
    ScopeConfig,
    SignalConfig,
    parse_numeric_row,
)

LOGGER = logging.getLogger(__name__)


class ScopeState(Enum):
    """Lifecycle phases of a :class:`Scope`."""

    EMPTY = auto()
    POPULATED = auto()


class FeedResult(Enum):
    """How a scope interpreted the tokens handed to :meth:`Scope.feed`."""

    SAMPLES = auto()
    SIGNAL = auto()
    REJECTED = auto()


@dataclass(frozen=True)
class SignalView:
    """Read-only snapshot of a signal for rendering consumers."""

    name: str
    color: Color
    min: float
    max: float
    legend: int | None
    history: Tuple[float, ...]


@dataclass(frozen=True)
class ScopeView:
    """Read-only snapshot of a scope and its signals."""

    name: str
    config: ScopeConfig
    signals: Tuple[SignalView, ...]


class Signal:
    """Named sample history clamped to ``[min, max]``."""

    __slots__ = ("config", "_history")

    def __init__(self, config: SignalConfig) -> None:
        self.config = config
        self._history: Deque[float] = deque()

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def min(self) -> float:
        return self.config.min

    @property
    def max(self) -> float:
        return self.config.max

    @property
    def color(self) -> Color:
        return self.config.color

    @property
    def latest(self) -> float | None:
        """Return the newest retained sample, if any."""

        if not self._history:
            return None
        return self._history[-1]

    def __len__(self) -> int:
        return len(self._history)

    def __iter__(self) -> Iterator[float]:
        return iter(self._history)

    def append(self, value: float, capacity: int) -> None:
        """Clamp ``value`` into range and retain fewer than ``capacity`` samples."""

        history = self._history
        history.append(min(max(value, self.config.min), self.config.max))
        while len(history) >= capacity:
            history.popleft()

    def clear(self) -> None:
        self._history.clear()

    def snapshot(self) -> SignalView:
        """Return an immutable view of the signal."""

        return SignalView(
            name=self.config.name,
            color=self.config.color,
            min=self.config.min,
            max=self.config.max,
            legend=self.config.legend,
            history=tuple(self._history),
        )


class Scope:
    """Named, ordered collection of signals sharing a sample capacity."""

    def __init__(self, config: ScopeConfig) -> None:
        self.config = config
        self._signals: list[Signal] = []

    @classmethod
    def create(cls, tokens: Sequence[str]) -> "Scope":
        """Build a scope from the tokens following ``SCOPE``.

        Only a missing name fails creation. Malformed options fall back to
        their defaults.
        """

        config = ScopeConfig.parse(tokens, strict=False)
        LOGGER.debug("created scope %s from %r", config.name, tuple(tokens))
        return cls(config)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def sample_capacity(self) -> int:
        return self.config.sample_capacity

    @property
    def state(self) -> ScopeState:
        return ScopeState.POPULATED if self._signals else ScopeState.EMPTY

    @property
    def signals(self) -> Tuple[Signal, ...]:
        return tuple(self._signals)

    def signal(self, name: str) -> Signal | None:
        """Return the first signal called ``name``."""

        for candidate in self._signals:
            if candidate.name == name:
                return candidate
        return None

    def attach_signal(self, config: SignalConfig) -> Signal:
        """Append a new signal after the existing ones."""

        signal = Signal(config)
        self._signals.append(signal)
        LOGGER.debug(
            "scope %s: attached signal %s [%s, %s]",
            self.name,
            config.name,
            config.min,
            config.max,
        )
        return signal

    def append_samples(self, values: Sequence[float]) -> int:
        """Pair ``values`` with signals by position and return how many landed."""

        if len(values) != len(self._signals):
            LOGGER.warning(
                "scope %s: %d values for %d signals",
                self.name,
                len(values),
                len(self._signals),
            )
        capacity = self.config.sample_capacity
        applied = 0
        for signal, value in zip(self._signals, values):
            signal.append(value, capacity)
            applied += 1
        return applied

    def feed(self, tokens: Sequence[str]) -> FeedResult:
        """Apply a data row or a signal declaration addressed to this scope."""

        values = parse_numeric_row(tokens)
        if values is not None:
            self.append_samples(values)
            return FeedResult.SAMPLES
        try:
            config = SignalConfig.parse(tokens)
        except GrammarError as exc:
            LOGGER.warning("scope %s: dropping line %r: %s", self.name, " ".join(tokens), exc)
            return FeedResult.REJECTED
        self.attach_signal(config)
        return FeedResult.SIGNAL

    def view(self) -> ScopeView:
        """Return an immutable snapshot for rendering."""

        return ScopeView(
            name=self.name,
            config=self.config,
            signals=tuple(signal.snapshot() for signal in self._signals),
        )


__all__ = [
    "FeedResult",
    "Scope",
    "ScopeState",
    "ScopeView",
    "Signal",
    "SignalView",
]
