"""Component scope ids such as ``astro-cid-j7pv25f6``.

The prefix makes these tokens unambiguous, so they are found and rewritten by
a plain pattern in every file type, in markup, selectors and scripts alike.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterator, Mapping


@lru_cache(maxsize=8)
def scope_id_re(prefix: str) -> re.Pattern:
    return re.compile(re.escape(prefix) + r"([A-Za-z0-9]+)")


def iter_scope_ids(text: str, prefix: str) -> Iterator[str]:
    """Yield the suffix of every scope id in ``text``."""
    if not prefix or prefix not in text:
        return
    for match in scope_id_re(prefix).finditer(text):
        yield match.group(1)


def replace_scope_ids(text: str, prefix: str, mapping: Mapping[str, str]) -> str:
    if not mapping or not prefix or prefix not in text:
        return text

    def repl(match: re.Match) -> str:
        short = mapping.get(match.group(1))
        return match.group(0) if short is None else prefix + short

    return scope_id_re(prefix).sub(repl, text)
