"""Decoders for scope declarations, signal declarations and sample rows."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Sequence, Tuple

LOGGER = logging.getLogger(__name__)

SCOPE_KEYWORD = "SCOPE"
QUOTE_CHARACTERS = ("'", '"')
LEGEND_PREFIX = "%"
LEGEND_WIDTH = 4


class GrammarError(ValueError):
    """Base class for failures decoding a single protocol line."""


class FormatError(GrammarError):
    """Raised when a token is present but cannot be parsed."""


class MissingTokenError(GrammarError, IndexError):
    """Raised when an expected token is absent."""


class NoNameGiven(GrammarError):
    """Raised when a declaration carries no name token."""


class UnknownColor(GrammarError):
    """Raised when a colour token is not recognised."""


@dataclass(frozen=True)
class Color:
    """Eight-bit RGB triple."""

    red: int
    green: int
    blue: int

    @classmethod
    def gray(cls, level: int) -> "Color":
        """Return the grayscale colour for ``level`` (0 dark, 10 white)."""

        intensity = min(0xFF, max(0, 5 + level * 25))
        return cls(intensity, intensity, intensity)

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.red, self.green, self.blue)


BLACK = Color(0x00, 0x00, 0x00)
WHITE = Color(0xFF, 0xFF, 0xFF)
ORANGE = Color(0xFF, 0xA5, 0x00)
BLUE = Color(0x00, 0x00, 0xFF)
GREEN = Color(0x00, 0x80, 0x00)
CYAN = Color(0x00, 0xFF, 0xFF)
RED = Color(0xFF, 0x00, 0x00)
MAGENTA = Color(0xFF, 0x00, 0xFF)
YELLOW = Color(0xFF, 0xFF, 0x00)

NAMED_COLORS: Mapping[str, Color] = {
    "BLACK": BLACK,
    "WHITE": WHITE,
    "ORANGE": ORANGE,
    "BLUE": BLUE,
    "GREEN": GREEN,
    "CYAN": CYAN,
    "RED": RED,
    "MAGENTA": MAGENTA,
    "YELLOW": YELLOW,
}
GRAY_NAMES = frozenset({"GRAY", "GREY"})

DEFAULT_SAMPLE_CAPACITY = 256
DEFAULT_SAMPLE_RATE = 1
DEFAULT_SIGNAL_COLOR = GREEN
DEFAULT_BACKGROUND_COLOR = BLACK


@dataclass(frozen=True)
class Rect:
    """Scope placement in host window coordinates."""

    x: int = 0
    y: int = 0
    width: int = 255
    height: int = 256


DEFAULT_RECT = Rect()


class _TokenCursor:
    """Forward-only reader over a declaration's tokens."""

    __slots__ = ("_tokens", "index")

    def __init__(self, tokens: Sequence[str], index: int = 0) -> None:
        self._tokens = tuple(tokens)
        self.index = index

    @property
    def at_end(self) -> bool:
        return self.index >= len(self._tokens)

    @property
    def remaining(self) -> Tuple[str, ...]:
        return self._tokens[self.index :]

    def peek(self) -> str | None:
        if self.at_end:
            return None
        return self._tokens[self.index]

    def take(self, what: str) -> str:
        if self.at_end:
            raise MissingTokenError(f"missing {what} at token {self.index}")
        token = self._tokens[self.index]
        self.index += 1
        return token

    def take_float(self, what: str) -> float:
        token = self.take(what)
        try:
            value = float(token)
        except ValueError as exc:
            raise FormatError(f"{what} must be numeric, got {token!r}") from exc
        if math.isnan(value):
            raise FormatError(f"{what} must be a number, got {token!r}")
        return value

    def take_int(self, what: str) -> int:
        token = self.take(what)
        try:
            return int(token, 10)
        except ValueError as exc:
            raise FormatError(f"{what} must be an integer, got {token!r}") from exc


def strip_quotes(token: str) -> str:
    """Return ``token`` without its surrounding quote pair.

    The opening quote must be the first character and the closing quote is the
    next occurrence of the same character. Anything after the closing quote is
    ignored. A token without a matching pair is returned unchanged.
    """

    if len(token) < 2 or token[0] not in QUOTE_CHARACTERS:
        return token
    closing = token.find(token[0], 1)
    if closing < 0:
        return token
    return token[1:closing]


def _read_color(cursor: _TokenCursor) -> Color:
    """Consume a colour from ``cursor`` or raise :class:`UnknownColor`.

    The offending tokens are consumed either way so callers can continue past
    an unrecognised colour.
    """

    token = cursor.take("colour")
    named = NAMED_COLORS.get(token)
    if named is not None:
        return named
    if token in GRAY_NAMES:
        level_token = cursor.peek()
        if level_token is None:
            raise UnknownColor(f"{token} requires a level between 0 and 10")
        cursor.index += 1
        try:
            level = int(level_token, 10)
        except ValueError as exc:
            raise UnknownColor(f"invalid {token} level {level_token!r}") from exc
        return Color.gray(level)
    raise UnknownColor(f"unknown colour {token!r}")


def parse_color(tokens: Sequence[str]) -> Color:
    """Decode a colour such as ``["RED"]`` or ``["GRAY", "4"]``."""

    cursor = _TokenCursor(tokens)
    return _read_color(cursor)


def _read_color_or_default(cursor: _TokenCursor, default: Color, owner: str) -> Color:
    try:
        return _read_color(cursor)
    except UnknownColor as exc:
        LOGGER.warning("%s: %s; using default colour", owner, exc)
        return default


def is_legend_token(token: str) -> bool:
    """Return ``True`` if ``token`` is shaped like ``%1010``."""

    if not token.startswith(LEGEND_PREFIX):
        return False
    bits = token[len(LEGEND_PREFIX) :]
    return len(bits) == LEGEND_WIDTH and all(bit in "01" for bit in bits)


@dataclass(frozen=True)
class ScopeConfig:
    """Typed form of a ``SCOPE`` declaration."""

    name: str
    rect: Rect = field(default_factory=Rect)
    sample_capacity: int = DEFAULT_SAMPLE_CAPACITY
    sample_rate: int = DEFAULT_SAMPLE_RATE
    background_color: Color = DEFAULT_BACKGROUND_COLOR

    @property
    def position(self) -> Tuple[int, int]:
        return (self.rect.x, self.rect.y)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.rect.width, self.rect.height)

    @classmethod
    def parse(cls, tokens: Sequence[str], *, strict: bool = True) -> "ScopeConfig":
        """Decode ``name [SIZE w h] [SAMPLES n] [POS x y] [RATE n] [COLOR c]``.

        Keywords may appear in any order. Scanning stops silently at the first
        unrecognised keyword. With ``strict`` disabled, a bad or missing
        argument also stops the scan and the remaining fields keep their
        defaults; only a missing name is still raised.
        """

        if not tokens:
            raise NoNameGiven("scope declaration requires a name")
        cursor = _TokenCursor(tokens)
        name = strip_quotes(cursor.take("scope name"))
        if not name:
            raise NoNameGiven("scope declaration has an empty name")

        fields: Dict[str, object] = {}
        try:
            while not cursor.at_end:
                keyword = cursor.peek()
                handler = _SCOPE_KEYWORDS.get(keyword or "")
                if handler is None:
                    LOGGER.debug(
                        "scope %s: stopping at unrecognised keyword %r", name, keyword
                    )
                    break
                cursor.index += 1
                handler(cursor, fields, name)
        except (FormatError, MissingTokenError) as exc:
            if strict:
                raise
            LOGGER.warning("scope %s: %s; keeping defaults for remaining fields", name, exc)

        rect = Rect(
            x=int(fields.get("x", 0)),
            y=int(fields.get("y", 0)),
            width=int(fields.get("width", DEFAULT_RECT.width)),
            height=int(fields.get("height", DEFAULT_RECT.height)),
        )
        return cls(
            name=name,
            rect=rect,
            sample_capacity=int(fields.get("sample_capacity", DEFAULT_SAMPLE_CAPACITY)),
            sample_rate=int(fields.get("sample_rate", DEFAULT_SAMPLE_RATE)),
            background_color=fields.get("background_color", DEFAULT_BACKGROUND_COLOR),  # type: ignore[arg-type]
        )


def _scope_size(cursor: _TokenCursor, fields: Dict[str, object], name: str) -> None:
    width = cursor.take_int("SIZE width")
    height = cursor.take_int("SIZE height")
    if width <= 0 or height <= 0:
        raise FormatError(f"SIZE must be positive, got {width}x{height}")
    fields["width"] = width
    fields["height"] = height


def _scope_samples(cursor: _TokenCursor, fields: Dict[str, object], name: str) -> None:
    capacity = cursor.take_int("SAMPLES count")
    if capacity < 1:
        raise FormatError(f"SAMPLES must be at least 1, got {capacity}")
    fields["sample_capacity"] = capacity


def _scope_position(cursor: _TokenCursor, fields: Dict[str, object], name: str) -> None:
    x = cursor.take_int("POS x")
    y = cursor.take_int("POS y")
    fields["x"] = x
    fields["y"] = y


def _scope_rate(cursor: _TokenCursor, fields: Dict[str, object], name: str) -> None:
    rate = cursor.take_int("RATE")
    if rate < 1:
        raise FormatError(f"RATE must be at least 1, got {rate}")
    fields["sample_rate"] = rate


def _scope_color(cursor: _TokenCursor, fields: Dict[str, object], name: str) -> None:
    if cursor.at_end:
        raise MissingTokenError("missing COLOR value")
    fields["background_color"] = _read_color_or_default(
        cursor, DEFAULT_BACKGROUND_COLOR, f"scope {name}"
    )


_ScopeKeywordHandler = Callable[[_TokenCursor, Dict[str, object], str], None]

_SCOPE_KEYWORDS: Mapping[str, _ScopeKeywordHandler] = {
    "SIZE": _scope_size,
    "SAMPLES": _scope_samples,
    "POS": _scope_position,
    "RATE": _scope_rate,
    "COLOR": _scope_color,
}


@dataclass(frozen=True)
class SignalConfig:
    """Typed form of a signal declaration addressed to a scope."""

    name: str
    min: float
    max: float
    y_size: float
    y_base: float
    legend: int | None = None
    color: Color = DEFAULT_SIGNAL_COLOR

    @property
    def legend_flags(self) -> Tuple[bool, ...] | None:
        """Return the legend mask as four flags, most significant first."""

        if self.legend is None:
            return None
        return tuple(bool(self.legend & (1 << bit)) for bit in reversed(range(LEGEND_WIDTH)))

    @classmethod
    def parse(cls, tokens: Sequence[str]) -> "SignalConfig":
        """Decode ``'name' min max y_size y_base [%bbbb color | color]``.

        The five leading fields are mandatory and any failure among them
        rejects the declaration. The legend mask and colour are optional and
        parsing stops at the first one that is absent.
        """

        cursor = _TokenCursor(tokens)
        name = strip_quotes(cursor.take("signal name"))
        if not name:
            raise FormatError("signal name must not be empty")
        minimum = cursor.take_float("min")
        maximum = cursor.take_float("max")
        y_size = cursor.take_float("y_size")
        y_base = cursor.take_float("y_base")
        if not (math.isfinite(minimum) and math.isfinite(maximum)):
            raise FormatError(f"signal {name}: range [{minimum}, {maximum}] must be finite")
        if minimum > maximum:
            raise FormatError(f"signal {name}: min {minimum} exceeds max {maximum}")

        legend: int | None = None
        token = cursor.peek()
        if token is not None and is_legend_token(token):
            legend = int(token[len(LEGEND_PREFIX) :], 2)
            cursor.index += 1

        color = DEFAULT_SIGNAL_COLOR
        if not cursor.at_end:
            color = _read_color_or_default(cursor, DEFAULT_SIGNAL_COLOR, f"signal {name}")

        if not cursor.at_end:
            LOGGER.debug("signal %s: ignoring trailing tokens %r", name, cursor.remaining)

        return cls(
            name=name,
            min=minimum,
            max=maximum,
            y_size=y_size,
            y_base=y_base,
            legend=legend,
            color=color,
        )


def parse_numeric_row(tokens: Sequence[str]) -> Tuple[float, ...] | None:
    """Return the sample values in ``tokens`` or ``None`` if it is not a row.

    Each token may carry one trailing comma, and values packed without spaces
    (``1,2,3``) are split on their commas. Every piece must be a float; ``nan``
    carries no sample and disqualifies the row.
    """

    if not tokens:
        return None
    values: list[float] = []
    for token in tokens:
        text = token[:-1] if token.endswith(",") else token
        for piece in text.split(","):
            try:
                value = float(piece)
            except ValueError:
                return None
            if math.isnan(value):
                return None
            values.append(value)
    return tuple(values)


__all__ = [
    "BLACK",
    "BLUE",
    "CYAN",
    "Color",
    "DEFAULT_BACKGROUND_COLOR",
    "DEFAULT_RECT",
    "DEFAULT_SAMPLE_CAPACITY",
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_SIGNAL_COLOR",
    "FormatError",
    "GREEN",
    "GrammarError",
    "MAGENTA",
    "MissingTokenError",
    "NAMED_COLORS",
    "NoNameGiven",
    "ORANGE",
    "RED",
    "Rect",
    "SCOPE_KEYWORD",
    "ScopeConfig",
    "SignalConfig",
    "UnknownColor",
    "WHITE",
    "YELLOW",
    "is_legend_token",
    "parse_color",
    "parse_numeric_row",
    "strip_quotes",
]
