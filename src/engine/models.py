"""Data models for the engine module — collection/index declarations and key ranges."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

__all__ = ["Direction", "IndexSpec", "CollectionSpec", "KeyRange"]


class Direction(str, Enum):
    NEXT = "next"   # ascending
    PREV = "prev"   # descending


@dataclass(frozen=True)
class IndexSpec:
    """
    Secondary index over one or more record fields.

    A single-field index is keyed by the bare value; a composite index by
    the tuple of values, compared field by field.
    """
    name:   str
    fields: tuple[str, ...]
    unique: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.fields, str):
            object.__setattr__(self, "fields", (self.fields,))
        if not self.fields:
            raise ValueError(f"Index {self.name!r} must cover at least one field")

    @property
    def is_composite(self) -> bool:
        return len(self.fields) > 1


@dataclass(frozen=True)
class CollectionSpec:
    """
    Declaration of one collection (table).

    Fields
    ──────
    name           — collection name, also the SQLite table name
    key_path       — record field holding the primary key
    auto_increment — assign integer keys to records added without one
    indexes        — secondary indexes attached to the collection
    """
    name:           str
    key_path:       str
    auto_increment: bool = False
    indexes:        tuple[IndexSpec, ...] = field(default_factory=tuple)

    def index(self, name: str) -> IndexSpec:
        for idx in self.indexes:
            if idx.name == name:
                return idx
        raise KeyError(f"Collection {self.name!r} has no index {name!r}")

    @property
    def indexed_fields(self) -> list[str]:
        """Distinct indexed field names in declaration order."""
        seen: list[str] = []
        for idx in self.indexes:
            for f in idx.fields:
                if f not in seen:
                    seen.append(f)
        return seen


@dataclass(frozen=True)
class KeyRange:
    """
    Range over primary keys or index keys.

    ``None`` for a bound means unbounded on that side.  Composite index keys
    are given as tuples with one element per index field.
    """
    lower:      Any = None
    upper:      Any = None
    lower_open: bool = False
    upper_open: bool = False

    @classmethod
    def only(cls, value: Any) -> "KeyRange":
        return cls(lower=value, upper=value)

    @classmethod
    def bound(
        cls,
        lower: Any,
        upper: Any,
        lower_open: bool = False,
        upper_open: bool = False,
    ) -> "KeyRange":
        return cls(lower=lower, upper=upper, lower_open=lower_open, upper_open=upper_open)

    @classmethod
    def lower_bound(cls, value: Any, exclusive: bool = False) -> "KeyRange":
        return cls(lower=value, lower_open=exclusive)

    @classmethod
    def upper_bound(cls, value: Any, exclusive: bool = False) -> "KeyRange":
        return cls(upper=value, upper_open=exclusive)

    def is_unbounded(self) -> bool:
        return self.lower is None and self.upper is None


def as_key_tuple(value: Any, width: int) -> Optional[tuple]:
    """Normalise a scalar or tuple bound to a tuple of *width* elements."""
    if value is None:
        return None
    if isinstance(value, (tuple, list)):
        key = tuple(value)
    else:
        key = (value,)
    if len(key) != width:
        raise ValueError(f"Key {value!r} does not match an index of {width} field(s)")
    return key
