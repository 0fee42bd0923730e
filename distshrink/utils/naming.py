"""Short-name generation, ranking and the size SafetyGate."""
from __future__ import annotations

import logging
import string
from typing import Callable, Iterable, Mapping, TypeVar

from distshrink.errors import ParseError

logger = logging.getLogger(__name__)

ALPHABET_ALPHA = string.ascii_lowercase + string.ascii_uppercase
ALPHABET_LOWER_DIGITS = string.ascii_lowercase + string.digits

T = TypeVar("T")


def short_name(index: int, alphabet: str = ALPHABET_ALPHA) -> str:
    """Return the ``index``-th name of the bijective base-N sequence.

    ``0 -> a``, ``N-1 -> <last letter>``, ``N -> aa`` and so on: every string
    over ``alphabet`` appears exactly once, shortest first.
    """
    if index < 0:
        raise ValueError("index must be non-negative")
    base = len(alphabet)
    out = ""
    i = index
    while i >= 0:
        out = alphabet[i % base] + out
        i = i // base - 1
    return out


def byte_length(value: str) -> int:
    return len(value.encode("utf-8"))


def sort_by_usage(names: Iterable[str], counts: Mapping[str, int]) -> list[str]:
    """Order names by usage (desc), encoded length (desc), then lexically."""
    return sorted(names, key=lambda name: (-counts.get(name, 0), -byte_length(name), name))


def apply_if_smaller(original: str, candidate: str) -> str:
    """Keep ``candidate`` only if it is strictly smaller than ``original``."""
    return candidate if byte_length(candidate) < byte_length(original) else original


def gated(original: str, transform: Callable[[str], str], label: str = "") -> str:
    """Run one transform step behind the SafetyGate.

    A step that abstains returns its input; a step that raises ``ParseError``
    is treated the same way. Either way the best text so far is kept.
    """
    try:
        candidate = transform(original)
    except ParseError as exc:
        logger.debug("%s abstained: %s", label or transform.__name__, exc)
        return original
    return apply_if_smaller(original, candidate)
