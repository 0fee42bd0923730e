"""Transient token model shared by the grammar scanners.

Tokens never outlive the file they were produced from. Every scanner emits a
stream whose ``text`` fields concatenate back to the exact input, so a rewriter
only has to replace the texts it cares about and join the rest.
"""
from __future__ import annotations

import enum
from typing import Iterable, NamedTuple


class TokenKind(enum.Enum):
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    NUMBER = "number"
    STRING = "string"
    TEMPLATE_SEGMENT = "templateSegment"
    COMMENT = "comment"
    WHITESPACE = "whitespace"
    # Source text a scanner copies through without looking inside.
    CODE = "code"


class Token(NamedTuple):
    kind: TokenKind
    text: str
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.text)


def join_tokens(tokens: Iterable[Token]) -> str:
    return "".join(token.text for token in tokens)
