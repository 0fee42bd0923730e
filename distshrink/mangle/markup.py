"""HTML handling: block splitting, tag-scoped attribute rewriting, harvesting.

Rewriting never re-serializes the document. ``<script>``/``<style>`` blocks
are cut out with their tags kept verbatim, their bodies are handed to the JS
and CSS rewriters, and every other edit happens inside one attribute value of
one start tag. BeautifulSoup is only used for reading.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Callable, Iterator, NamedTuple

from bs4 import BeautifulSoup

from distshrink.mangle import css, lists
from distshrink.mangle.model import Renames

ID_REFERENCE_ATTRIBUTES = (
    "for", "form", "list", "headers",
    "aria-labelledby", "aria-describedby", "aria-controls", "aria-owns",
    "aria-activedescendant", "aria-flowto", "aria-details", "aria-errormessage",
)
ID_ATTRIBUTES = ("id",) + ID_REFERENCE_ATTRIBUTES
FRAGMENT_ATTRIBUTES = ("href", "xlink:href")

BLOCK_RE = re.compile(r"(<(script|style)\b[^>]*>)(.*?)(</\2\s*>)", re.IGNORECASE | re.DOTALL)
TAG_RE = re.compile(r"""<[A-Za-z][\w:-]*(?:"[^"]*"|'[^']*'|[^'">])*>""")

_TAG_NAME_RE = re.compile(r"<[A-Za-z][\w:-]*")
_ATTRIBUTE_RE = re.compile(r"""([^\s"'>/=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?""")

# a class attribute cut in half by a template hole
OPEN_CLASS_ATTR_RE = re.compile(r"""(?<![\w:-])class\s*=\s*(["'])([^"']*)$""", re.IGNORECASE)
CLOSE_ATTR_RE = re.compile(r"""^([^"'<>]*)["']""")


class Block(NamedTuple):
    """One piece of a split document.

    ``kind`` is ``"markup"``, ``"script"`` or ``"style"``; for markup the whole
    text is in ``body`` and the tags are empty.
    """

    kind: str
    open_tag: str
    body: str
    close_tag: str

    @property
    def text(self) -> str:
        return self.open_tag + self.body + self.close_tag


class Attribute(NamedTuple):
    name: str
    value: str | None
    start: int
    end: int


def split_blocks(document: str) -> list[Block]:
    blocks = []
    last = 0
    for match in BLOCK_RE.finditer(document):
        if match.start() > last:
            blocks.append(Block("markup", "", document[last:match.start()], ""))
        blocks.append(Block(match.group(2).lower(), match.group(1), match.group(3), match.group(4)))
        last = match.end()
    if last < len(document):
        blocks.append(Block("markup", "", document[last:], ""))
    return blocks


def iter_attributes(tag: str) -> Iterator[Attribute]:
    """Yield the attributes of one start tag with the span of each value.

    Names are lower-cased; ``value`` is ``None`` for a bare attribute.
    """
    head = _TAG_NAME_RE.match(tag)
    pos = head.end() if head else 0
    while pos < len(tag):
        if tag[pos].isspace() or tag[pos] in "/>":
            pos += 1
            continue
        match = _ATTRIBUTE_RE.match(tag, pos)
        if match is None:
            pos += 1
            continue
        value, start, end = None, match.end(), match.end()
        for group in (2, 3, 4):
            if match.group(group) is not None:
                value = match.group(group)
                start, end = match.span(group)
                break
        yield Attribute(match.group(1).lower(), value, start, end)
        pos = match.end()


def rewrite_attribute(name: str, value: str, renames: Renames) -> str:
    if name == "class":
        value = lists.replace_token_list(value, renames.classes, unescape=True)
    elif name in ID_ATTRIBUTES:
        value = lists.replace_token_list(value, renames.ids, unescape=True)
    elif name in FRAGMENT_ATTRIBUTES:
        fragment = html.unescape(value[1:]) if value.startswith("#") else None
        if fragment in renames.ids:
            value = "#" + renames.ids[fragment]
    else:
        value = css.replace_url_fragments(value, renames.ids)
    return css.replace_custom_properties(value, renames.custom_properties)


def rewrite_tag(tag: str, renames: Renames) -> str:
    """Rename classes, ids, fragments and custom properties inside one start tag."""
    out = []
    last = 0
    for attribute in iter_attributes(tag):
        if not attribute.value:
            continue
        renamed = rewrite_attribute(attribute.name, attribute.value, renames)
        if renamed != attribute.value:
            out.append(tag[last:attribute.start])
            out.append(renamed)
            last = attribute.end
    if not out:
        return tag
    out.append(tag[last:])
    return "".join(out)


def rewrite_tags(markup: str, renames: Renames) -> str:
    if not renames:
        return markup
    return TAG_RE.sub(lambda m: rewrite_tag(m.group(0), renames), markup)


def rewrite_document(
    document: str,
    renames: Renames,
    rewrite_script: Callable[[str], str],
    rewrite_style: Callable[[str], str],
) -> str:
    """Rewrite a whole HTML document.

    Markup is rewritten tag by tag; script and style bodies go through the
    given callbacks. The ``<script>``/``<style>`` start tags are rewritten
    like any other tag.
    """
    out = []
    for block in split_blocks(document):
        if block.kind == "markup":
            out.append(rewrite_tags(block.body, renames))
            continue
        body = rewrite_script(block.body) if block.kind == "script" else rewrite_style(block.body)
        out.append(rewrite_tags(block.open_tag, renames) + body + block.close_tag)
    return "".join(out)


def iter_tag_custom_properties(markup: str) -> Iterator[str]:
    for tag in TAG_RE.finditer(markup):
        for attribute in iter_attributes(tag.group(0)):
            if attribute.value:
                yield from css.CUSTOM_PROPERTY_RE.findall(attribute.value)


def iter_split_class_tokens(segment: str, after_hole: bool, before_hole: bool) -> Iterator[str]:
    """Yield class tokens of a ``class`` attribute cut by a template hole.

    The value is only complete at run time, so these tokens are never safe
    to rename.
    """
    if before_hole:
        match = OPEN_CLASS_ATTR_RE.search(segment)
        if match:
            yield from match.group(2).split()
    if after_hole:
        match = CLOSE_ATTR_RE.match(segment)
        if match:
            yield from match.group(1).split()


def is_markup(value: str) -> bool:
    """True when literal content carries at least one HTML start tag."""
    return bool(TAG_RE.search(value))


def iter_markup_names(value: str) -> Iterator[tuple[str, str]]:
    """Yield ``("class" | "id", name)`` for names used by tags inside ``value``."""
    for tag in TAG_RE.finditer(value):
        for attribute in iter_attributes(tag.group(0)):
            if not attribute.value:
                continue
            if attribute.name == "class":
                for token in attribute.value.split():
                    yield "class", html.unescape(token)
            elif attribute.name in ID_ATTRIBUTES:
                for token in attribute.value.split():
                    yield "id", html.unescape(token)
            elif attribute.name in FRAGMENT_ATTRIBUTES:
                if attribute.value.startswith("#"):
                    yield "id", html.unescape(attribute.value[1:])
            else:
                for fragment in css.iter_url_fragments(attribute.value):
                    yield "id", fragment


@dataclass
class DocumentFacts:
    """What a single HTML document says about class and id usage."""

    class_tokens: list = field(default_factory=list)
    id_tokens: list = field(default_factory=list)
    reference_tokens: list = field(default_factory=list)
    remote_fragments: list = field(default_factory=list)
    handler_values: list = field(default_factory=list)
    other_values: list = field(default_factory=list)
    scripts: list = field(default_factory=list)
    styles: list = field(default_factory=list)


def _attribute_text(value) -> str:
    # bs4 hands multi-valued attributes (class, rel, headers, ...) back as lists
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def extract_facts(document: str) -> DocumentFacts:
    facts = DocumentFacts()
    soup = BeautifulSoup(document, "html.parser")
    for tag in soup.find_all(True):
        for name, value in tag.attrs.items():
            text = _attribute_text(value)
            name = name.lower()
            if name == "class":
                facts.class_tokens.extend(text.split())
            elif name == "id":
                facts.id_tokens.extend(text.split())
            elif name in ID_REFERENCE_ATTRIBUTES:
                facts.reference_tokens.extend(text.split())
            elif name in FRAGMENT_ATTRIBUTES:
                if text.startswith("#"):
                    facts.reference_tokens.append(text[1:])
                elif "#" in text:
                    facts.remote_fragments.append(text.split("#", 1)[1])
            elif name.startswith("on"):
                facts.handler_values.append(text)
            else:
                facts.reference_tokens.extend(css.iter_url_fragments(text))
                facts.other_values.append(text)
    for script in soup.find_all("script"):
        if script.string:
            facts.scripts.append(str(script.string))
    for style in soup.find_all("style"):
        if style.string:
            facts.styles.append(str(style.string))
    return facts
