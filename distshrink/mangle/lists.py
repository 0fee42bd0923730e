"""Deciding when a piece of text is a list of class or id tokens.

HTML ``class``/``id`` attributes are token lists by definition. JS string and
template content is not, so it is only treated as a class list when every
whitespace-separated token has the shape of a class name and at least one of
them is a name the stylesheets already declare. The heuristic is approximate
by nature; widening or narrowing it changes which names get renamed.
"""
from __future__ import annotations

import html
import re
from typing import Callable, Collection, Iterator, Mapping, Optional

from distshrink.mangle import css

CLASS_TOKEN_RE = re.compile(r"^[!A-Za-z0-9_:\-./%#\[\](),=+*&@?<>|~^$]+$")

# \n, \r and \t escapes inside JS literals separate class tokens too
_LITERAL_SEPARATOR_RE = re.compile(r"(\s+|\\[nrt])")
_WHITESPACE_RE = re.compile(r"(\s+)")

ID_ATTR_SELECTOR_RE = re.compile(r"""\[id\s*=\s*(['"]?)([^'"\]]+)\1\]""", re.IGNORECASE)
HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def split_literal(value: str) -> list[str]:
    """Split literal content into class-shaped tokens, dropping separators."""
    return [part for part in _LITERAL_SEPARATOR_RE.split(value) if part and not _LITERAL_SEPARATOR_RE.fullmatch(part)]


def is_class_token(token: str) -> bool:
    return bool(CLASS_TOKEN_RE.match(token))


def is_class_list(value: str, known: Collection[str]) -> bool:
    tokens = split_literal(value)
    if not tokens:
        return False
    if not all(is_class_token(token) for token in tokens):
        return False
    return any(token in known for token in tokens)


def collect_class_tokens(value: str, known: Collection[str]) -> list[str]:
    """Return the known class names used by ``value`` if it is a class list."""
    if not value or not is_class_list(value, known):
        return []
    return [token for token in split_literal(value) if token in known]


def _replace_parts(parts: list[str], mapping: Mapping[str, str], separator: re.Pattern,
                   key: Optional[Callable[[str], str]] = None) -> str:
    out = []
    for part in parts:
        name = key(part) if key and part else part
        if part and not separator.fullmatch(part) and name in mapping:
            out.append(mapping[name])
        else:
            out.append(part)
    return "".join(out)


def replace_class_literal(value: str, class_map: Mapping[str, str]) -> str:
    """Rename the tokens of a JS literal that passes the class-list test."""
    if not value or not class_map or not is_class_list(value, class_map):
        return value
    return _replace_parts(_LITERAL_SEPARATOR_RE.split(value), class_map, _LITERAL_SEPARATOR_RE)


def replace_token_list(value: str, mapping: Mapping[str, str], unescape: bool = False) -> str:
    """Rename the whitespace-separated tokens of an attribute value.

    Whitespace between tokens is kept as written. With ``unescape`` each
    token is looked up with its HTML character references decoded.
    """
    if not value or not mapping:
        return value
    key = html.unescape if unescape else None
    return _replace_parts(_WHITESPACE_RE.split(value), mapping, _WHITESPACE_RE, key)


def iter_literal_tokens(value: str) -> Iterator[str]:
    """Yield the class-shaped tokens of a literal, for name reservation."""
    for token in split_literal(value):
        if is_class_token(token):
            yield token


def iter_dotted_names(value: str) -> Iterator[str]:
    """Yield canonical names written as ``.name`` anywhere in ``value``."""
    for _start, _end, _raw, canonical in css.iter_prefixed_idents(value, "."):
        yield canonical


def iter_selector_ids(value: str, known: Collection[str]) -> Iterator[str]:
    """Yield the known ids a selector-like literal refers to.

    Covers a literal that is exactly an id (``getElementById``), ``#id``
    hash selectors and ``[id="x"]`` attribute selectors.
    """
    if not value or not known:
        return
    if value in known:
        yield value
        return
    if HEX_COLOR_RE.match(value):
        return
    for _start, _end, _raw, canonical in css.iter_prefixed_idents(value, "#"):
        if canonical in known:
            yield canonical
    for match in ID_ATTR_SELECTOR_RE.finditer(value):
        if match.group(2) in known:
            yield match.group(2)


def replace_selector_ids(value: str, id_map: Mapping[str, str]) -> str:
    if not value or not id_map:
        return value
    if HEX_COLOR_RE.match(value):
        return value
    if value in id_map:
        return id_map[value]

    def attr_repl(match: re.Match) -> str:
        quote, name = match.group(1), match.group(2)
        if name not in id_map:
            return match.group(0)
        return f"[id={quote}{id_map[name]}{quote}]"

    value = ID_ATTR_SELECTOR_RE.sub(attr_repl, value)
    return css.replace_prefixed_idents(value, "#", id_map)
