"""Boundary-safe scanning of CSS identifiers.

The scanner never builds a stylesheet tree. It splits the text into comments,
strings and everything else, and only ever looks for ``.name``/``#name``
selectors and ``--name`` custom properties in the "everything else" parts.
"""
from __future__ import annotations

import re
import string
from typing import Iterator, Mapping, NamedTuple

from distshrink.tokens import Token, TokenKind, join_tokens

_HEX_DIGITS = set(string.hexdigits)
_IDENT_ASCII = set(string.ascii_letters + string.digits + "_-")

_ESCAPE_RE = re.compile(r"\\(?:([0-9a-fA-F]{1,6})[ \t\n\r\f]?|(.))", re.DOTALL)
_DIGIT_START_RE = re.compile(r"^-?[0-9]")
_HEX_COLOR_IDENT_RE = re.compile(r"^(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_URL_OPEN_RE = re.compile(r"url\(", re.IGNORECASE)

CUSTOM_PROPERTY_RE = re.compile(r"(?<![\w-])--[A-Za-z0-9_-]+")
URL_FRAGMENT_RE = re.compile(r"""url\(\s*(['"]?)#([^'")\s]+)\1\s*\)""", re.IGNORECASE)
ATTRIBUTE_SELECTOR_RE = re.compile(
    r"""\[\s*(class|id)\s*([~|^$*]?)=\s*(?:"([^"]*)"|'([^']*)'|([^\s\]"']+))(\s+[iIsS])?\s*\]"""
)

EXACT_OPERATORS = ("", "~")


class AttributeSelector(NamedTuple):
    attribute: str
    operator: str
    value: str
    case_insensitive: bool

    @property
    def is_exact(self) -> bool:
        return self.operator in EXACT_OPERATORS and not self.case_insensitive


def is_ident_char(ch: str) -> bool:
    return ch in _IDENT_ASCII or ord(ch) >= 0x80


def is_hex_color_ident(value: str) -> bool:
    return bool(_HEX_COLOR_IDENT_RE.match(value))


def read_escape(text: str, start: int) -> int:
    """Return the length of the escape sequence starting at ``text[start]``."""
    i = start + 1
    if i >= len(text):
        return 1
    j = i
    while j < len(text) and j - i < 6 and text[j] in _HEX_DIGITS:
        j += 1
    if j > i:
        if j < len(text) and text[j] == " ":
            j += 1
        return j - start
    return 2


def read_ident(text: str, start: int) -> tuple[str, int] | None:
    """Read a raw (still escaped) identifier at ``start``.

    Returns ``(raw, end)`` or ``None`` when no identifier starts there.
    """
    i = start
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += read_escape(text, i)
            continue
        if is_ident_char(ch):
            i += 1
            continue
        break
    if i == start:
        return None
    return text[start:i], i


def unescape_ident(raw: str) -> str:
    def repl(match: re.Match) -> str:
        if match.group(1) is not None:
            code = int(match.group(1), 16)
            if code == 0 or code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                return "\ufffd"
            return chr(code)
        return match.group(2)

    return _ESCAPE_RE.sub(repl, raw)


def escape_ident(value: str) -> str:
    """Serialize ``value`` as a CSS identifier (CSSOM ``CSS.escape`` rules)."""
    out = []
    length = len(value)
    first = value[:1]
    for index, ch in enumerate(value):
        code = ord(ch)
        if code == 0:
            out.append("\ufffd")
        elif (
            0x01 <= code <= 0x1F
            or code == 0x7F
            or (index == 0 and ch in string.digits)
            or (index == 1 and ch in string.digits and first == "-")
        ):
            out.append(f"\\{code:x} ")
        elif index == 0 and ch == "-" and length == 1:
            out.append("\\-")
        elif code >= 0x80 or ch in _IDENT_ASCII:
            out.append(ch)
        else:
            out.append("\\" + ch)
    return "".join(out)


def scan_css(css: str) -> list[Token]:
    """Split a stylesheet into COMMENT, STRING and CODE tokens."""
    tokens: list[Token] = []
    n = len(css)
    code_start = 0
    i = 0

    def flush(upto: int) -> None:
        if upto > code_start:
            tokens.append(Token(TokenKind.CODE, css[code_start:upto], code_start))

    while i < n:
        ch = css[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "/" and css.startswith("/*", i):
            end = css.find("*/", i + 2)
            end = n if end == -1 else end + 2
            flush(i)
            tokens.append(Token(TokenKind.COMMENT, css[i:end], i))
            i = code_start = end
            continue
        if ch in "\"'":
            j = i + 1
            while j < n:
                c = css[j]
                if c == "\\":
                    j += 2
                    continue
                if c == ch:
                    j += 1
                    break
                if c == "\n":
                    break
                j += 1
            j = min(j, n)
            flush(i)
            tokens.append(Token(TokenKind.STRING, css[i:j], i))
            i = code_start = j
            continue
        i += 1
    flush(n)
    return tokens


def iter_prefixed_idents(text: str, prefix: str) -> Iterator[tuple[int, int, str, str]]:
    """Yield ``(start, end, raw, canonical)`` for every ``<prefix>name``.

    ``start`` points at the prefix character. Names starting with a digit
    (``.5em``) are skipped, as are hex colors when the prefix is ``#`` and
    anything inside an unquoted ``url(...)``.
    """
    n = len(text)
    i = 0
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch in "uU" and _URL_OPEN_RE.match(text, i) and (i == 0 or not is_ident_char(text[i - 1])):
            close = text.find(")", i)
            i = n if close == -1 else close + 1
            continue
        if ch != prefix:
            i += 1
            continue
        parsed = read_ident(text, i + 1)
        if parsed is None:
            i += 1
            continue
        raw, end = parsed
        canonical = unescape_ident(raw)
        if canonical and not _DIGIT_START_RE.match(canonical):
            if not (prefix == "#" and is_hex_color_ident(canonical)):
                yield i, end, raw, canonical
        i = end


def replace_prefixed_idents(text: str, prefix: str, mapping: Mapping[str, str]) -> str:
    if not mapping:
        return text
    out = []
    last = 0
    for start, end, _raw, canonical in iter_prefixed_idents(text, prefix):
        short = mapping.get(canonical)
        if short is None:
            continue
        out.append(text[last:start])
        out.append(prefix + escape_ident(short))
        last = end
    if not out:
        return text
    out.append(text[last:])
    return "".join(out)


def _code_tokens(css: str) -> Iterator[Token]:
    return (token for token in scan_css(css) if token.kind is TokenKind.CODE)


def iter_selector_names(css: str, prefix: str) -> Iterator[tuple[str, str]]:
    """Yield ``(raw, canonical)`` for each class (``.``) or id (``#``) occurrence."""
    for token in _code_tokens(css):
        for _start, _end, raw, canonical in iter_prefixed_idents(token.text, prefix):
            yield raw, canonical


def iter_custom_properties(css: str) -> Iterator[str]:
    for token in _code_tokens(css):
        yield from CUSTOM_PROPERTY_RE.findall(token.text)


def iter_attribute_selectors(css: str) -> Iterator[AttributeSelector]:
    for match in ATTRIBUTE_SELECTOR_RE.finditer(css):
        value = next(group for group in match.group(3, 4, 5) if group is not None)
        flag = (match.group(6) or "").strip().lower()
        yield AttributeSelector(match.group(1), match.group(2), value, flag == "i")


def iter_url_fragments(text: str) -> Iterator[str]:
    for match in URL_FRAGMENT_RE.finditer(text):
        yield match.group(2)


def replace_custom_properties(text: str, mapping: Mapping[str, str]) -> str:
    if not mapping:
        return text
    return CUSTOM_PROPERTY_RE.sub(lambda m: mapping.get(m.group(0), m.group(0)), text)


def replace_url_fragments(text: str, id_map: Mapping[str, str]) -> str:
    if not id_map:
        return text

    def repl(match: re.Match) -> str:
        quote, name = match.group(1), match.group(2)
        if name not in id_map:
            return match.group(0)
        return f"url({quote}#{id_map[name]}{quote})"

    return URL_FRAGMENT_RE.sub(repl, text)


def replace_attribute_selectors(
    css: str, class_map: Mapping[str, str], id_map: Mapping[str, str]
) -> str:
    def repl(match: re.Match) -> str:
        selector = next(iter_attribute_selectors(match.group(0)))
        if not selector.is_exact:
            return match.group(0)
        mapping = class_map if selector.attribute == "class" else id_map
        if selector.attribute == "class":
            renamed = re.sub(r"\S+", lambda w: mapping.get(w.group(0), w.group(0)), selector.value)
        else:
            renamed = mapping.get(selector.value, selector.value)
        if renamed == selector.value:
            return match.group(0)
        start, end = next(match.span(g) for g in (3, 4, 5) if match.group(g) is not None)
        offset = match.start()
        whole = match.group(0)
        return whole[: start - offset] + renamed + whole[end - offset:]

    if not class_map and not id_map:
        return css
    return ATTRIBUTE_SELECTOR_RE.sub(repl, css)


def rewrite_stylesheet(css: str, class_map: Mapping[str, str], id_map: Mapping[str, str],
                       property_map: Mapping[str, str]) -> str:
    """Apply the class, id and custom-property rename maps to a stylesheet."""
    if not (class_map or id_map or property_map):
        return css
    tokens = scan_css(css)
    out = []
    for token in tokens:
        if token.kind is TokenKind.CODE:
            text = replace_prefixed_idents(token.text, ".", class_map)
            text = replace_prefixed_idents(text, "#", id_map)
            text = replace_custom_properties(text, property_map)
            out.append(token._replace(text=text))
        else:
            out.append(token)
    res = join_tokens(out)
    res = replace_attribute_selectors(res, class_map, id_map)
    return replace_url_fragments(res, id_map)
