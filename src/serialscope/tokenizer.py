"""Split framed lines into a sigil keyword and its argument tokens."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

LOGGER = logging.getLogger(__name__)

SIGIL = "`"


@dataclass(frozen=True)
class DebugLine:
    """Keyword and ordered tokens recovered from a single protocol line."""

    keyword: str
    tokens: Tuple[str, ...]


def tokenize_line(line: str) -> DebugLine | None:
    """Return the :class:`DebugLine` for ``line`` or ``None`` if it is not one.

    Lines without tokens, or whose first token lacks the sigil, are not
    protocol lines. Keyword legality is left to the registry.
    """

    tokens = [token for token in line.split() if token]
    if not tokens:
        return None
    head = tokens[0]
    if not head.startswith(SIGIL):
        LOGGER.debug("ignoring line without sigil: %r", line)
        return None
    keyword = head[len(SIGIL) :]
    if not keyword:
        LOGGER.debug("ignoring line with bare sigil: %r", line)
        return None
    return DebugLine(keyword=keyword, tokens=tuple(tokens[1:]))


__all__ = ["DebugLine", "SIGIL", "tokenize_line"]
