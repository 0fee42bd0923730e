"""Minification of GLSL shader source embedded in JS template literals.

Only whole templates (no ``${ }`` holes) that look like shader source are
touched. Each pass runs behind the SafetyGate: comment stripping, local
identifier mangling, float shortening and whitespace collapsing.
"""
from __future__ import annotations

import logging
import re
import string
from collections import Counter
from typing import Iterable, Optional

from distshrink.mangle import js
from distshrink.mangle.allocator import allocate
from distshrink.mangle.model import Category, Identifier
from distshrink.tokens import Token, TokenKind, join_tokens
from distshrink.utils.naming import gated

logger = logging.getLogger(__name__)

BUILTIN_TYPES = frozenset("""
    void bool int uint float double
    vec2 vec3 vec4 ivec2 ivec3 ivec4 uvec2 uvec3 uvec4 bvec2 bvec3 bvec4 dvec2 dvec3 dvec4
    mat2 mat3 mat4 mat2x2 mat2x3 mat2x4 mat3x2 mat3x3 mat3x4 mat4x2 mat4x3 mat4x4
    sampler2D sampler3D samplerCube sampler2DArray samplerCubeArray sampler2DShadow
    samplerCubeShadow sampler2DArrayShadow isampler2D isampler3D isamplerCube isampler2DArray
    usampler2D usampler3D usamplerCube usampler2DArray
""".split())

KEYWORDS = frozenset("""
    if else for while do switch case default break continue return discard
    struct layout in out inout uniform attribute varying buffer shared const
    precision lowp mediump highp flat smooth noperspective centroid sample invariant
    true false main
""".split())

STORAGE_QUALIFIERS = frozenset(["uniform", "in", "out", "attribute", "varying", "buffer", "shared"])
PRECISION_QUALIFIERS = frozenset(["lowp", "mediump", "highp"])

_SPACED_OPERATORS = set("+-*/%<>=!&|^")
_IDENTIFIER_START = set(string.ascii_letters + "_")
_DIGITS = set(string.digits)

_WHITESPACE_RE = re.compile(r"\s+")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER_RE = re.compile(
    r"0[xX][0-9a-fA-F]+[uU]?|(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?(?:lf|LF|[fFuU])?"
)
_FLOAT_RE = re.compile(r"^(\d*)\.(\d*)((?:[eE][+-]?\d+)?(?:lf|LF|[fF])?)$")

_MAIN_RE = re.compile(r"\bvoid\s+main\s*\(")
_INCLUDE_RE = re.compile(r"^[ \t]*#[ \t]*include\b", re.MULTILINE)
_DEFINE_RE = re.compile(r"^[ \t]*#[ \t]*define[ \t]+([A-Za-z_]\w*)", re.MULTILINE)
_STRUCT_RE = re.compile(r"\bstruct\s+([A-Za-z_]\w*)")
_SHADER_HINT_RES = (
    _MAIN_RE,
    re.compile(r"\bgl_(?:Position|FragColor|FragCoord|PointSize|FragData)\b"),
    re.compile(r"\bprecision\s+(?:lowp|mediump|highp)\s+\w+\s*;"),
    re.compile(r"\A\s*#\s*(?:version|define|extension|pragma|include|ifdef|ifndef|if)\b"),
    re.compile(
        r"^\s*(?:layout\s*\([^)]*\)\s*)?(?:uniform|varying|attribute|in|out)\s+"
        r"(?:(?:lowp|mediump|highp)\s+)?[A-Za-z_]\w*\s+[A-Za-z_]\w*\s*[;\[]",
        re.MULTILINE,
    ),
)
_DIRECTIVE_RE = re.compile(r"^#\s*([A-Za-z_]\w*)\s*(.*)$")


def tokenize(source: str) -> list[Token]:
    """Split GLSL source into identifier, number, operator, whitespace and comment tokens."""
    tokens = []
    i = 0
    n = len(source)
    while i < n:
        ch = source[i]
        if ch.isspace():
            kind, end = TokenKind.WHITESPACE, _WHITESPACE_RE.match(source, i).end()
        elif source.startswith("//", i):
            end = source.find("\n", i)
            kind, end = TokenKind.COMMENT, n if end == -1 else end
        elif source.startswith("/*", i):
            end = source.find("*/", i + 2)
            kind, end = TokenKind.COMMENT, n if end == -1 else end + 2
        elif ch in _IDENTIFIER_START:
            kind, end = TokenKind.IDENTIFIER, _IDENTIFIER_RE.match(source, i).end()
        elif ch in _DIGITS or (ch == "." and source[i + 1:i + 2] in _DIGITS):
            kind, end = TokenKind.NUMBER, _NUMBER_RE.match(source, i).end()
        else:
            kind, end = TokenKind.OPERATOR, i + 1
        tokens.append(Token(kind, source[i:end], i))
        i = end
    return tokens


def looks_like_shader(source: str) -> bool:
    return any(pattern.search(source) for pattern in _SHADER_HINT_RES)


def should_mangle(source: str) -> bool:
    # included chunks may use any local name, so nothing is safe to rename
    return bool(_MAIN_RE.search(source)) and not _INCLUDE_RE.search(source)


def strip_comments(source: str) -> str:
    out = []
    for token in tokenize(source):
        if token.kind is TokenKind.COMMENT:
            # a block comment may be the only thing separating two tokens
            if token.text.startswith("/*"):
                out.append(" ")
            continue
        out.append(token.text)
    return "".join(out)


def shorten_float(text: str) -> str:
    """Minimal spelling of a float literal: ``0.50`` -> ``.5``, ``1.0`` -> ``1.``."""
    match = _FLOAT_RE.match(text)
    if match is None:
        return text
    whole, frac, rest = match.groups()
    whole = whole.lstrip("0")
    frac = frac.rstrip("0")
    if not whole and not frac:
        mantissa = ".0"
    elif not whole:
        mantissa = "." + frac
    else:
        mantissa = whole + "." + frac
    candidate = mantissa + rest
    return candidate if len(candidate) < len(text) else text


def shorten_numbers(source: str) -> str:
    tokens = tokenize(source)
    return join_tokens(
        token._replace(text=shorten_float(token.text)) if token.kind is TokenKind.NUMBER else token
        for token in tokens
    )


class _DeclarationScanner:
    """Find locally declared names and the names that must keep their spelling."""

    def __init__(self, tokens: list[Token], struct_names: set):
        self.tokens = [t for t in tokens if t.kind not in (TokenKind.WHITESPACE, TokenKind.COMMENT)]
        self.types = BUILTIN_TYPES | struct_names
        self.candidates: set = set()
        self.pinned: set = set()

    def _text(self, index: int) -> Optional[str]:
        return self.tokens[index].text if index < len(self.tokens) else None

    def _is_identifier(self, index: int) -> bool:
        return index < len(self.tokens) and self.tokens[index].kind is TokenKind.IDENTIFIER

    def _consider(self, name: str, interface: bool) -> None:
        if name.startswith("gl_") or name in KEYWORDS or name in self.types:
            return
        if interface:
            self.pinned.add(name)
        else:
            self.candidates.add(name)

    def _skip_brackets(self, index: int) -> int:
        depth = 0
        while index < len(self.tokens):
            text = self.tokens[index].text
            depth += text == "["
            depth -= text == "]"
            index += 1
            if depth == 0:
                break
        return index

    def _skip_initializer(self, index: int) -> int:
        depth = 0
        while index < len(self.tokens):
            text = self.tokens[index].text
            if text in "([{":
                depth += 1
            elif text in ")]}":
                if depth == 0:
                    break
                depth -= 1
            elif depth == 0 and text in ",;":
                break
            index += 1
        return index

    def scan(self) -> None:
        storage = pending_block = precision = False
        pending_struct = False
        brace_depth = 0
        interface_depth = None
        tokens = self.tokens
        for i, token in enumerate(tokens):
            text = token.text
            if token.kind is TokenKind.OPERATOR:
                if text == "{":
                    brace_depth += 1
                    if (pending_block or pending_struct) and interface_depth is None:
                        interface_depth = brace_depth
                    pending_block = pending_struct = False
                elif text == "}":
                    if interface_depth == brace_depth:
                        interface_depth = None
                    brace_depth = max(0, brace_depth - 1)
                elif text == ";":
                    storage = pending_block = precision = False
                elif text == ")":
                    storage = pending_block = False
                elif text == "." and self._is_identifier(i + 1):
                    # swizzles and member access
                    self.pinned.add(tokens[i + 1].text)
                continue
            if token.kind is not TokenKind.IDENTIFIER:
                continue
            if text == "precision":
                precision = True
                continue
            if precision or text in PRECISION_QUALIFIERS:
                continue
            if text == "struct":
                pending_struct = True
                continue
            if text in STORAGE_QUALIFIERS:
                storage = pending_block = True
                continue
            if text not in self.types or (i and tokens[i - 1].text == "."):
                continue

            interface = storage or interface_depth is not None
            j = i + 1
            if self._is_identifier(j) and self._text(j + 1) == "(":
                self._consider(tokens[j].text, interface)
                continue
            while self._is_identifier(j):
                self._consider(tokens[j].text, interface)
                j += 1
                if self._text(j) == "[":
                    j = self._skip_brackets(j)
                if self._text(j) == "=":
                    j = self._skip_initializer(j + 1)
                if self._text(j) != ",":
                    break
                j += 1


def mangle_identifiers(source: str) -> str:
    """Rename locally declared identifiers to the shortest free names."""
    tokens = tokenize(source)
    identifiers = Counter(t.text for t in tokens if t.kind is TokenKind.IDENTIFIER)
    macros = set(_DEFINE_RE.findall(source))
    structs = set(_STRUCT_RE.findall(source))

    scanner = _DeclarationScanner(tokens, structs)
    scanner.scan()
    pinned = scanner.pinned | macros | structs
    records = [
        Identifier(Category.SHADER_LOCAL, name, {name}, identifiers[name])
        for name in sorted(scanner.candidates - pinned)
    ]
    if not records:
        return source
    reserved = set(identifiers) | KEYWORDS | BUILTIN_TYPES | macros | structs
    renames = allocate(Category.SHADER_LOCAL, records, reserved)
    if not renames:
        return source
    return join_tokens(
        token._replace(text=renames.get(token.text, token.text)) if token.kind is TokenKind.IDENTIFIER else token
        for token in tokens
    )


def _needs_space(prev: Token, token: Token, separated: bool) -> bool:
    words = (TokenKind.IDENTIFIER, TokenKind.NUMBER)
    if prev.kind in words and token.kind in words:
        return True
    # keep "a - -b" and "x / *p" from fusing into new operators
    return separated and prev.text in _SPACED_OPERATORS and token.text in _SPACED_OPERATORS


def minify_code(tokens: Iterable[Token]) -> str:
    out = []
    prev = None
    separated = False
    for token in tokens:
        if token.kind in (TokenKind.WHITESPACE, TokenKind.COMMENT):
            separated = True
            continue
        if prev is not None and _needs_space(prev, token, separated):
            out.append(" ")
        out.append(token.text)
        prev = token
        separated = False
    return "".join(out)


def minify_directive(line: str) -> str:
    match = _DIRECTIVE_RE.match(line)
    if match is None:
        return "#" + line[1:].strip()
    directive, rest = match.groups()
    rest = rest.strip()
    if not rest:
        return "#" + directive
    if directive == "include":
        return f"#include {rest}"
    if directive == "define":
        name = _IDENTIFIER_RE.match(rest)
        if name is not None:
            head, body = rest[:name.end()], rest[name.end():]
            if body.startswith("("):
                close = body.find(")")
                if close != -1:
                    head += minify_code(tokenize(body[:close + 1]))
                    body = body[close + 1:]
            body = minify_code(tokenize(body))
            return f"#define {head} {body}" if body else f"#define {head}"
    return f"#{directive} {minify_code(tokenize(rest))}"


def minify_spacing(source: str) -> str:
    """Collapse whitespace, keeping each preprocessor directive on its own line."""
    normalized = source.replace("\r\n", "\n").replace("\r", "\n")
    lines = []
    pending: list[str] = []

    def flush() -> None:
        if pending:
            code = minify_code(tokenize("\n".join(pending)))
            if code:
                lines.append(code)
            pending.clear()

    for line in normalized.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("#"):
            flush()
            lines.append(minify_directive(stripped))
        else:
            pending.append(stripped)
    flush()

    result = "\n".join(lines)
    if normalized.startswith("\n"):
        result = "\n" + result
    if normalized.endswith("\n"):
        result += "\n"
    return result


def optimize_source(source: str) -> Optional[str]:
    """Minify one shader body; ``None`` when it does not look like a shader."""
    if "\\" in source or not looks_like_shader(source):
        return None
    result = gated(source, strip_comments, "shader comments")
    if should_mangle(result):
        result = gated(result, mangle_identifiers, "shader identifiers")
    result = gated(result, shorten_numbers, "shader numbers")
    return gated(result, minify_spacing, "shader spacing")


def optimize_shaders(code: str) -> str:
    """Minify every shader template literal found in a JS source."""
    if "`" not in code:
        return code
    tokens = js.tokenize(code)
    changed = 0
    for index in js.iter_plain_templates(tokens):
        body = tokens[index].text
        optimized = optimize_source(body)
        if optimized is not None and len(optimized) < len(body):
            tokens[index] = tokens[index]._replace(text=optimized)
            changed += 1
    if not changed:
        return code
    logger.debug("minified %d shader(s)", changed)
    return join_tokens(tokens)
