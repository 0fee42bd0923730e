"""Identifier records and rename maps for one optimization pass."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping


class Category(enum.Enum):
    CUSTOM_PROPERTY = "customProperty"
    CLASS = "class"
    ID = "id"
    SHADER_LOCAL = "shaderLocal"
    SCOPE_ID = "scopeId"


@dataclass
class Identifier:
    """Everything the harvester learned about one canonical name.

    ``raw_forms`` keeps every literal spelling seen in source (CSS escapes
    mean one canonical name can be written several ways). ``is_reserved``
    marks a name that must keep its spelling: it was never seen in use, or it
    was seen somewhere the rewriters cannot follow.
    """

    category: Category
    canonical: str
    raw_forms: set = field(default_factory=set)
    usage_count: int = 0
    is_reserved: bool = False


class RenameMap(Mapping):
    """Injective ``canonical -> short`` mapping for one category.

    Built once by the allocator and read-only afterwards, so rewriter
    workers can share it without locking.
    """

    def __init__(self, category: Category, mapping: Mapping[str, str]):
        self.category = category
        self._mapping = MappingProxyType(dict(mapping))

    def __getitem__(self, name: str) -> str:
        return self._mapping[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:
        return f"RenameMap({self.category.value}, {dict(self._mapping)!r})"

    @classmethod
    def empty(cls, category: Category) -> "RenameMap":
        return cls(category, {})


@dataclass(frozen=True)
class Renames:
    """The frozen rename maps handed to every rewriter worker."""

    custom_properties: RenameMap = field(default_factory=lambda: RenameMap.empty(Category.CUSTOM_PROPERTY))
    classes: RenameMap = field(default_factory=lambda: RenameMap.empty(Category.CLASS))
    ids: RenameMap = field(default_factory=lambda: RenameMap.empty(Category.ID))
    scope_ids: RenameMap = field(default_factory=lambda: RenameMap.empty(Category.SCOPE_ID))
    scope_id_prefix: str = "astro-cid-"

    def __bool__(self) -> bool:
        return bool(self.custom_properties or self.classes or self.ids or self.scope_ids)
