"""Usage-ranked allocation of short names."""
from __future__ import annotations

import logging
from typing import Callable, Collection, Iterable, Optional

from distshrink.mangle.model import Category, Identifier, RenameMap
from distshrink.utils.naming import ALPHABET_ALPHA, byte_length, short_name, sort_by_usage

logger = logging.getLogger(__name__)


def allocate(
    category: Category,
    records: Iterable[Identifier],
    reserved: Collection[str] = (),
    alphabet: str = ALPHABET_ALPHA,
    render: Optional[Callable[[str], str]] = None,
) -> RenameMap:
    """Give every eligible record the shortest free name.

    ``render`` turns a generated name into the form it takes in source (for
    custom properties ``a`` becomes ``--a``); reservations and the length
    comparison both apply to the rendered form. A candidate that is already
    reserved or handed out is skipped for good. A candidate that would not
    be strictly shorter leaves the name unmapped and stays available for the
    next, longer, name.
    """
    render = render or (lambda short: short)
    records = list(records)
    taken = set(reserved)
    taken.update(record.canonical for record in records)
    counts = {record.canonical: record.usage_count for record in records if not record.is_reserved}

    mapping = {}
    counter = 0
    for name in sort_by_usage(counts, counts):
        limit = byte_length(name)
        chosen = None
        while True:
            candidate = render(short_name(counter, alphabet))
            if byte_length(candidate) >= limit:
                break
            counter += 1
            if candidate in taken:
                continue
            chosen = candidate
            break
        if chosen is None:
            continue
        mapping[name] = chosen
        taken.add(chosen)

    logger.debug("%s: %d of %d names mapped", category.value, len(mapping), len(counts))
    return RenameMap(category, mapping)
