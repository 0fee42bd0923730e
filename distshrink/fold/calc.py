"""Exact folding of static ``calc()`` expressions.

Numbers are read as exact decimal fractions and every step is done on
:class:`fractions.Fraction`, so ``calc(.1px + .2px)`` really is ``.3px``.
"""
from __future__ import annotations

import re
from fractions import Fraction
from typing import NamedTuple, Optional

from distshrink.errors import ParseError
from distshrink.mangle.css import scan_css
from distshrink.tokens import Token, TokenKind, join_tokens
from distshrink.utils.naming import byte_length

_CALC_RE = re.compile(r"(?<![\w-])calc\(", re.IGNORECASE)
_ABSTAIN_RE = re.compile(r"(?:var|env|min|max|clamp|calc)\s*\(", re.IGNORECASE)
_NUMBER_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)([a-zA-Z%]*)")
_OPERATORS = "+-*/()"


class Dimension(NamedTuple):
    value: Fraction
    unit: str


def parse_number(text: str) -> Dimension:
    match = _NUMBER_RE.fullmatch(text)
    if match is None:
        raise ParseError("calc", f"not a number: {text!r}")
    whole, _, frac = match.group(1).partition(".")
    value = Fraction(int((whole or "0") + frac), 10 ** len(frac))
    return Dimension(value, match.group(2))


def tokenize(expr: str) -> list[Token]:
    tokens = []
    i = 0
    while i < len(expr):
        ch = expr[i]
        if ch.isspace():
            i += 1
        elif ch in _OPERATORS:
            tokens.append(Token(TokenKind.OPERATOR, ch, i))
            i += 1
        else:
            match = _NUMBER_RE.match(expr, i)
            if match is None:
                raise ParseError("calc", f"unexpected {ch!r}", i)
            tokens.append(Token(TokenKind.NUMBER, match.group(0), i))
            i = match.end()
    return tokens


def apply_operator(left: Dimension, operator: str, right: Dimension) -> Dimension:
    if operator in "+-":
        if left.unit != right.unit:
            raise ParseError("calc", f"cannot add {left.unit!r} and {right.unit!r}")
        value = left.value + right.value if operator == "+" else left.value - right.value
        return Dimension(value, left.unit)
    if operator == "*":
        if left.unit and right.unit:
            raise ParseError("calc", "both factors carry a unit")
        return Dimension(left.value * right.value, left.unit or right.unit)
    if right.unit:
        raise ParseError("calc", "divisor carries a unit")
    if right.value == 0:
        raise ParseError("calc", "division by zero")
    return Dimension(left.value / right.value, left.unit)


class CalcParser:
    """Recursive-descent parser over calc tokens.

    expression := term (('+'|'-') term)*
    term       := factor (('*'|'/') factor)*
    factor     := ('+'|'-') factor | '(' expression ')' | number
    """

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.index = 0

    def peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def next(self) -> Token:
        token = self.peek()
        if token is None:
            raise ParseError("calc", "unexpected end of expression")
        self.index += 1
        return token

    def _at(self, operators: str) -> bool:
        token = self.peek()
        return token is not None and token.kind is TokenKind.OPERATOR and token.text in operators

    def parse(self) -> Dimension:
        result = self.expression()
        if self.index != len(self.tokens):
            raise ParseError("calc", "trailing tokens", self.tokens[self.index].start)
        return result

    def expression(self) -> Dimension:
        left = self.term()
        while self._at("+-"):
            operator = self.next().text
            left = apply_operator(left, operator, self.term())
        return left

    def term(self) -> Dimension:
        left = self.factor()
        while self._at("*/"):
            operator = self.next().text
            left = apply_operator(left, operator, self.factor())
        return left

    def factor(self) -> Dimension:
        token = self.next()
        if token.kind is TokenKind.NUMBER:
            return parse_number(token.text)
        if token.text in "+-":
            value = self.factor()
            return Dimension(-value.value, value.unit) if token.text == "-" else value
        if token.text == "(":
            inner = self.expression()
            closing = self.next()
            if closing.text != ")":
                raise ParseError("calc", "expected ')'", closing.start)
            return inner
        raise ParseError("calc", f"unexpected {token.text!r}", token.start)


def format_number(value: Fraction) -> Optional[str]:
    """Render ``value`` as the shortest exact decimal, or ``None``.

    Only fractions whose denominator has no prime factor other than 2 and 5
    have a terminating decimal expansion.
    """
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    num, den = abs(value.numerator), value.denominator
    if den == 1:
        return sign + str(num)
    rest, twos, fives = den, 0, 0
    while rest % 2 == 0:
        rest //= 2
        twos += 1
    while rest % 5 == 0:
        rest //= 5
        fives += 1
    if rest != 1:
        return None
    scale = max(twos, fives)
    integer, fraction = divmod(num * 10 ** scale // den, 10 ** scale)
    digits = str(fraction).rjust(scale, "0").rstrip("0")
    if not digits:
        return sign + str(integer)
    if integer == 0:
        return f"{sign}.{digits}"
    return f"{sign}{integer}.{digits}"


def format_dimension(dimension: Dimension) -> Optional[str]:
    number = format_number(dimension.value)
    if number is None:
        return None
    if number == "0":
        return "0"
    return number + dimension.unit


def evaluate(expr: str) -> Optional[str]:
    """Fold the inside of one ``calc()`` to a literal, or ``None`` to abstain."""
    if _ABSTAIN_RE.search(expr):
        return None
    try:
        return format_dimension(CalcParser(tokenize(expr)).parse())
    except ParseError:
        return None


def _closing_paren(text: str, start: int) -> Optional[int]:
    depth = 1
    for i in range(start, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return None


def fold_calcs(text: str) -> str:
    """Replace every foldable ``calc()`` in ``text`` with its value.

    When a ``calc()`` cannot be folded as a whole, the ones nested inside it
    are still tried on their own.
    """
    out = []
    i = 0
    while True:
        match = _CALC_RE.search(text, i)
        if match is None:
            out.append(text[i:])
            break
        inner_start = match.end()
        close = _closing_paren(text, inner_start)
        if close is None:
            out.append(text[i:])
            break
        original = text[match.start():close + 1]
        folded = evaluate(text[inner_start:close])
        if folded is not None and byte_length(folded) < byte_length(original):
            out.append(text[i:match.start()])
            out.append(folded)
            i = close + 1
        else:
            out.append(text[i:inner_start])
            i = inner_start
    return "".join(out)


def fold_stylesheet(css: str) -> str:
    """Fold the ``calc()`` calls of a stylesheet, skipping strings and comments."""
    if "calc(" not in css.lower():
        return css
    tokens = [
        token._replace(text=fold_calcs(token.text)) if token.kind is TokenKind.CODE else token
        for token in scan_css(css)
    ]
    return join_tokens(tokens)
