"""Whole-corpus identifier harvest.

Harvesting runs in two steps. :func:`scan_file` looks at one file on its own
and records raw facts (declared names, attribute tokens, literal contents,
pins); it can run on any number of files in parallel. :func:`combine` then
folds every :class:`FileScan` together, in path order, into the identifier
records and reserved-name sets the allocator needs. Counts only ever add up,
so the order of the scans does not change the result.
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from distshrink.mangle import css, js, lists, markup, scope
from distshrink.mangle.model import Category, Identifier
from distshrink.tokens import TokenKind

logger = logging.getLogger(__name__)

STYLESHEET_SUFFIXES = (".css",)
SCRIPT_SUFFIXES = (".js", ".mjs", ".cjs")
DOCUMENT_SUFFIXES = (".html", ".htm")


def file_kind(path: str) -> str | None:
    lowered = path.lower()
    if lowered.endswith(STYLESHEET_SUFFIXES):
        return "css"
    if lowered.endswith(SCRIPT_SUFFIXES):
        return "js"
    if lowered.endswith(DOCUMENT_SUFFIXES):
        return "html"
    return None


@dataclass
class FileScan:
    """Raw facts about one file, gathered without looking at any other file.

    Attributes:
        declared_classes (Counter): ``.name`` occurrences in stylesheets.
        declared_ids (Counter): ``#name`` and ``url(#name)`` occurrences in stylesheets.
        raw_forms (dict): escaped spellings seen per ``(category, canonical)``.
        class_uses (Counter): tokens of HTML ``class`` attributes.
        id_uses (Counter): tokens of id-bearing attributes and local fragments.
        literals (list): content of every JS string literal and template segment.
        pinned_classes (set): names seen where a rename cannot be followed.
        pinned_ids (set): same, for ids.
        class_patterns (list): values of non-exact ``[class...]`` selectors.
        id_patterns (list): values of non-exact ``[id...]`` selectors.
        custom_properties (Counter): ``--name`` occurrences that get rewritten.
        all_custom_properties (set): every ``--name`` in the file, anywhere.
        scope_ids (Counter): scope-id suffixes.
    """

    path: str
    declared_classes: Counter = field(default_factory=Counter)
    declared_ids: Counter = field(default_factory=Counter)
    raw_forms: dict = field(default_factory=lambda: defaultdict(set))
    class_uses: Counter = field(default_factory=Counter)
    id_uses: Counter = field(default_factory=Counter)
    literals: list = field(default_factory=list)
    pinned_classes: set = field(default_factory=set)
    pinned_ids: set = field(default_factory=set)
    class_patterns: list = field(default_factory=list)
    id_patterns: list = field(default_factory=list)
    custom_properties: Counter = field(default_factory=Counter)
    all_custom_properties: set = field(default_factory=set)
    scope_ids: Counter = field(default_factory=Counter)


@dataclass
class Harvest:
    identifiers: dict = field(default_factory=dict)
    reserved: dict = field(default_factory=dict)

    def records(self, category: Category) -> list:
        return self.identifiers.get(category, [])

    def reserved_names(self, category: Category) -> set:
        return self.reserved.get(category, set())


def scan_stylesheet(scan: FileScan, text: str) -> None:
    for raw, canonical in css.iter_selector_names(text, "."):
        scan.declared_classes[canonical] += 1
        scan.raw_forms[(Category.CLASS, canonical)].add(raw)
    for raw, canonical in css.iter_selector_names(text, "#"):
        scan.declared_ids[canonical] += 1
        scan.raw_forms[(Category.ID, canonical)].add(raw)
    for fragment in css.iter_url_fragments(text):
        scan.declared_ids[fragment] += 1
    for selector in css.iter_attribute_selectors(text):
        exact = selector.is_exact
        if selector.attribute == "class":
            if exact:
                scan.declared_classes.update(selector.value.split())
            else:
                scan.class_patterns.append(selector.value)
        else:
            if exact:
                scan.declared_ids[selector.value] += 1
            else:
                scan.id_patterns.append(selector.value)
    scan.custom_properties.update(css.iter_custom_properties(text))


def scan_script(scan: FileScan, code: str) -> None:
    tokens = js.tokenize(code)
    for index, token in enumerate(tokens):
        if token.kind is TokenKind.STRING:
            value = js.string_body(token)[1]
        elif token.kind is TokenKind.TEMPLATE_SEGMENT:
            value = token.text
            before = tokens[index - 1] if index else None
            after = tokens[index + 1] if index + 1 < len(tokens) else None
            after_hole = before is not None and before.kind is TokenKind.OPERATOR and before.text == "}"
            before_hole = after is not None and after.kind is TokenKind.OPERATOR and after.text == "${"
            scan.pinned_classes.update(markup.iter_split_class_tokens(value, after_hole, before_hole))
        else:
            continue
        scan.literals.append(value)
        scan.custom_properties.update(css.CUSTOM_PROPERTY_RE.findall(value))


def _pin_handler(scan: FileScan, handler: str) -> None:
    # inline handlers are JS the rewriters never see
    for value in js.iter_literals(handler):
        tokens = list(lists.iter_literal_tokens(value))
        scan.pinned_classes.update(tokens)
        scan.pinned_ids.update(tokens)
        scan.pinned_classes.update(lists.iter_dotted_names(value))
        scan.pinned_ids.update(name for *_, name in css.iter_prefixed_idents(value, "#"))


def scan_document(scan: FileScan, document: str) -> None:
    facts = markup.extract_facts(document)
    scan.class_uses.update(facts.class_tokens)
    scan.id_uses.update(facts.id_tokens)
    scan.id_uses.update(facts.reference_tokens)
    scan.pinned_ids.update(facts.remote_fragments)
    for value in facts.other_values:
        scan.pinned_classes.update(lists.iter_dotted_names(value))
        scan.pinned_ids.update(name for *_, name in css.iter_prefixed_idents(value, "#"))
    for handler in facts.handler_values:
        _pin_handler(scan, handler)
    for style in facts.styles:
        scan_stylesheet(scan, style)
    for script in facts.scripts:
        scan_script(scan, script)
    scan.custom_properties.update(markup.iter_tag_custom_properties(document))


def scan_file(path: str, text: str, scope_id_prefix: str = "astro-cid-") -> FileScan:
    """Collect the raw facts of one file; the kind is taken from its suffix."""
    scan = FileScan(path)
    kind = file_kind(path)
    if kind == "css":
        scan_stylesheet(scan, text)
    elif kind == "js":
        scan_script(scan, text)
    elif kind == "html":
        scan_document(scan, text)
    scan.all_custom_properties.update(css.CUSTOM_PROPERTY_RE.findall(text))
    scan.scope_ids.update(scope.iter_scope_ids(text, scope_id_prefix))
    return scan


class _Tally:
    """Per-category accumulator used while combining scans."""

    def __init__(self, category: Category):
        self.category = category
        self.declared: Counter = Counter()
        self.counts: Counter = Counter()
        self.used: set = set()
        self.pinned: set = set()
        self.reserved: set = set()
        self.raw_forms = defaultdict(set)
        self.patterns: list = []

    def records(self) -> list:
        out = []
        for name in sorted(self.declared):
            pinned = name in self.pinned or any(pattern in name for pattern in self.patterns)
            out.append(Identifier(
                category=self.category,
                canonical=name,
                raw_forms=set(self.raw_forms.get(name, ())),
                usage_count=self.counts[name],
                is_reserved=pinned or name not in self.used,
            ))
        return out


def _tally_literal(literal: str, classes: _Tally, ids: _Tally) -> None:
    if markup.is_markup(literal):
        for kind, name in markup.iter_markup_names(literal):
            tally = classes if kind == "class" else ids
            tally.reserved.add(name)
            if name in tally.declared:
                tally.used.add(name)
                tally.counts[name] += 1
    tokens = lists.collect_class_tokens(literal, classes.declared)
    id_names = list(lists.iter_selector_ids(literal, ids.declared))
    if tokens and id_names:
        # the literal could be either; renaming one side would break the other
        classes.pinned.update(tokens)
        ids.pinned.update(id_names)
    elif tokens:
        classes.used.update(tokens)
        classes.counts.update(tokens)
    else:
        classes.pinned.update(lists.iter_dotted_names(literal))
        ids.used.update(id_names)
        ids.counts.update(id_names)
    literal_tokens = set(lists.iter_literal_tokens(literal))
    classes.reserved.update(literal_tokens)
    ids.reserved.update(literal_tokens)


def combine(scans: Iterable[FileScan], custom_property_min_length: int = 6) -> Harvest:
    """Fold per-file scans into identifier records and reserved sets."""
    scans = sorted(scans, key=lambda scan: scan.path)
    classes, ids = _Tally(Category.CLASS), _Tally(Category.ID)
    properties, property_names = Counter(), set()
    scope_ids = Counter()

    for scan in scans:
        for tally, declared, uses, pinned, patterns, category in (
            (classes, scan.declared_classes, scan.class_uses, scan.pinned_classes, scan.class_patterns, Category.CLASS),
            (ids, scan.declared_ids, scan.id_uses, scan.pinned_ids, scan.id_patterns, Category.ID),
        ):
            tally.declared.update(declared)
            tally.counts.update(declared)
            tally.pinned.update(pinned)
            tally.patterns.extend(patterns)
            tally.reserved.update(uses)
            for (raw_category, canonical), forms in scan.raw_forms.items():
                if raw_category is category:
                    tally.raw_forms[canonical].update(forms)
        properties.update(scan.custom_properties)
        property_names.update(scan.all_custom_properties)
        scope_ids.update(scan.scope_ids)

    # usage is only decided once every stylesheet has declared its names
    for scan in scans:
        for tally, uses in ((classes, scan.class_uses), (ids, scan.id_uses)):
            for name, count in uses.items():
                if name in tally.declared:
                    tally.used.add(name)
                    tally.counts[name] += count
        for literal in scan.literals:
            _tally_literal(literal, classes, ids)

    harvest = Harvest()
    for tally in (classes, ids):
        tally.reserved.update(tally.declared)
        tally.reserved.update(tally.pinned)
        harvest.identifiers[tally.category] = tally.records()
        harvest.reserved[tally.category] = tally.reserved

    harvest.identifiers[Category.CUSTOM_PROPERTY] = [
        Identifier(Category.CUSTOM_PROPERTY, name, {name}, count)
        for name, count in sorted(properties.items())
        if len(name.encode("utf-8")) >= custom_property_min_length
    ]
    harvest.reserved[Category.CUSTOM_PROPERTY] = property_names | set(properties)

    harvest.identifiers[Category.SCOPE_ID] = [
        Identifier(Category.SCOPE_ID, name, {name}, count) for name, count in sorted(scope_ids.items())
    ]
    harvest.reserved[Category.SCOPE_ID] = set(scope_ids)

    for category, records in harvest.identifiers.items():
        eligible = sum(1 for record in records if not record.is_reserved)
        logger.debug("harvested %d %s names, %d eligible", len(records), category.value, eligible)
    return harvest
