"""Streaming scanner for JS source.

Only the *content* of string and template literals is ever rewritten; code,
comments and regular-expression literals are copied through untouched.
Template literals are emitted as::

    OPERATOR "`"  TEMPLATE_SEGMENT  (OPERATOR "${"  ...hole...  OPERATOR "}"  TEMPLATE_SEGMENT)*  OPERATOR "`"

where the hole is scanned recursively, so strings, templates and comments
nested inside ``${ }`` are found as well.
"""
from __future__ import annotations

from typing import Callable, Iterator

from distshrink.tokens import Token, TokenKind, join_tokens

_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%<>~^")
_REGEX_KEYWORDS = {
    "return", "typeof", "case", "do", "else", "in", "of", "new", "delete",
    "void", "throw", "instanceof", "yield", "await",
}


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


class JsScanner:
    def __init__(self, code: str):
        self.code = code
        self.n = len(code)
        self.i = 0
        self.tokens: list[Token] = []
        self._code_start = 0

    def tokenize(self) -> list[Token]:
        self._scan_code(in_hole=False)
        self._flush(self.n)
        return self.tokens

    def _flush(self, upto: int) -> None:
        if upto > self._code_start:
            self.tokens.append(Token(TokenKind.CODE, self.code[self._code_start:upto], self._code_start))
        self._code_start = max(self._code_start, upto)

    def _emit(self, kind: TokenKind, start: int, end: int) -> None:
        end = min(end, self.n)
        self._flush(start)
        self.tokens.append(Token(kind, self.code[start:end], start))
        self._code_start = self.i = end

    def _scan_code(self, in_hole: bool) -> None:
        code = self.code
        depth = 0
        while self.i < self.n:
            i = self.i
            ch = code[i]
            nxt = code[i + 1] if i + 1 < self.n else ""
            if ch == "/" and nxt == "/":
                end = code.find("\n", i + 2)
                self._emit(TokenKind.COMMENT, i, self.n if end == -1 else end)
                continue
            if ch == "/" and nxt == "*":
                end = code.find("*/", i + 2)
                self._emit(TokenKind.COMMENT, i, self.n if end == -1 else end + 2)
                continue
            if ch in "\"'":
                self._emit(TokenKind.STRING, i, self._string_end(i))
                continue
            if ch == "`":
                self._scan_template()
                continue
            if ch == "/" and self._regex_allowed(i):
                end = self._regex_end(i)
                if end is not None:
                    self.i = end
                    continue
            if in_hole:
                if ch == "{":
                    depth += 1
                elif ch == "}":
                    if depth == 0:
                        return
                    depth -= 1
            self.i += 1

    def _string_end(self, start: int) -> int:
        quote = self.code[start]
        i = start + 1
        while i < self.n:
            ch = self.code[i]
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                return i + 1
            i += 1
        return self.n

    def _regex_allowed(self, index: int) -> bool:
        j = index - 1
        while j >= 0 and self.code[j].isspace():
            j -= 1
        if j < 0:
            return True
        prev = self.code[j]
        if prev in "+-" and j > 0 and self.code[j - 1] == prev:
            # postfix i++ / i--
            return False
        if prev in _REGEX_PRECEDERS:
            return True
        if _is_word_char(prev):
            k = j
            while k >= 0 and _is_word_char(self.code[k]):
                k -= 1
            return self.code[k + 1:j + 1] in _REGEX_KEYWORDS
        return False

    def _regex_end(self, start: int) -> int | None:
        i = start + 1
        in_class = False
        while i < self.n:
            ch = self.code[i]
            if ch == "\\":
                i += 2
                continue
            if ch == "\n":
                return None
            if in_class:
                if ch == "]":
                    in_class = False
            elif ch == "[":
                in_class = True
            elif ch == "/":
                i += 1
                while i < self.n and self.code[i].isalpha():
                    i += 1
                return i
            i += 1
        return None

    def _scan_template(self) -> None:
        code = self.code
        self._emit(TokenKind.OPERATOR, self.i, self.i + 1)
        seg_start = j = self.i
        while j < self.n:
            ch = code[j]
            if ch == "\\":
                j += 2
                continue
            if ch == "`":
                self._emit(TokenKind.TEMPLATE_SEGMENT, seg_start, j)
                self._emit(TokenKind.OPERATOR, j, j + 1)
                return
            if ch == "$" and j + 1 < self.n and code[j + 1] == "{":
                self._emit(TokenKind.TEMPLATE_SEGMENT, seg_start, j)
                self._emit(TokenKind.OPERATOR, j, j + 2)
                self._scan_code(in_hole=True)
                if self.i >= self.n:
                    return
                self._emit(TokenKind.OPERATOR, self.i, self.i + 1)
                seg_start = j = self.i
                continue
            j += 1
        self._emit(TokenKind.TEMPLATE_SEGMENT, seg_start, self.n)


def tokenize(code: str) -> list[Token]:
    return JsScanner(code).tokenize()


def string_body(token: Token) -> tuple[str, str, str]:
    """Split a STRING token into ``(open quote, body, close quote)``."""
    text = token.text
    quote = text[0]
    if len(text) >= 2 and text[-1] == quote and not _ends_escaped(text[:-1]):
        return quote, text[1:-1], quote
    return quote, text[1:], ""


def _ends_escaped(text: str) -> bool:
    count = len(text) - len(text.rstrip("\\"))
    return count % 2 == 1


def iter_literals(code: str) -> Iterator[str]:
    """Yield the raw content of every string literal and template segment."""
    for token in tokenize(code):
        if token.kind is TokenKind.STRING:
            yield string_body(token)[1]
        elif token.kind is TokenKind.TEMPLATE_SEGMENT:
            yield token.text


def iter_plain_templates(tokens: list[Token]) -> Iterator[int]:
    """Yield indexes of template segments that form a whole template.

    A whole template is one with no ``${ }`` hole: an opening backtick, a
    single segment and the closing backtick.
    """
    for k in range(1, len(tokens) - 1):
        token = tokens[k]
        if token.kind is not TokenKind.TEMPLATE_SEGMENT:
            continue
        before, after = tokens[k - 1], tokens[k + 1]
        if before.kind is TokenKind.OPERATOR and before.text == "`" and after.kind is TokenKind.OPERATOR and after.text == "`":
            yield k


def rewrite_literals(code: str, rewrite: Callable[[str], str]) -> str:
    """Apply ``rewrite`` to the content of every literal in ``code``."""
    out = []
    for token in tokenize(code):
        if token.kind is TokenKind.STRING:
            open_quote, body, close_quote = string_body(token)
            out.append(token._replace(text=open_quote + rewrite(body) + close_quote))
        elif token.kind is TokenKind.TEMPLATE_SEGMENT:
            out.append(token._replace(text=rewrite(token.text)))
        else:
            out.append(token)
    return join_tokens(out)
