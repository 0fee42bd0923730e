"""Exceptions raised by the optimizer."""
from __future__ import annotations

from dataclasses import dataclass


class DistShrinkError(Exception):
    """Base class for all optimizer errors."""


class ParseError(DistShrinkError):
    """Raised when a grammar cannot make sense of the text it was given.

    The error is scoped to one transform of one file: the SafetyGate that ran
    the transform keeps the previous text and the pass carries on.
    """

    def __init__(self, grammar: str, message: str, offset: int | None = None):
        self.grammar = grammar
        self.offset = offset
        where = f" at offset {offset}" if offset is not None else ""
        super().__init__(f"{grammar}: {message}{where}")


class ConfigError(DistShrinkError):
    """Raised when the settings file cannot be read or validated."""


@dataclass(frozen=True)
class FileFailure:
    """An I/O or worker failure that removed one file from the pass."""

    path: str
    operation: str
    message: str
