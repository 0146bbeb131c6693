"""
Descriptor types for tyeff programs.

A program is not executable code but a tree of immutable descriptors. Effect
nodes carry a tag and ordered arguments; everything else describes values,
placeholders and the structural operations the analyzer resolves lazily.

Example:
    >>> from tyeff.descriptors import EffectNode, Literal
    >>> EffectNode("Pure", (Literal(5),))
    EffectNode(tag='Pure', args=(Literal(value=5),))
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from frozendict import frozendict


@dataclass(frozen=True)
class Literal:
    """A scalar literal: str, int, float, bool or None."""

    value: str | int | float | bool | None


@dataclass(frozen=True)
class Unknown:
    """Placeholder for a declared field whose value is not known yet."""


@dataclass(frozen=True)
class TupleDesc:
    items: tuple[Descriptor, ...] = ()


@dataclass(frozen=True)
class Record:
    """Object shape. A record binds its own field names for nested ``Var``s."""

    fields: frozendict[str, Descriptor] = field(default_factory=frozendict)

    def declares(self, name: str) -> bool:
        return name in self.fields


@dataclass(frozen=True)
class EffectNode:
    """One operation: an optional tag and its ordered argument descriptors."""

    tag: str | None
    args: tuple[Descriptor, ...] = ()


@dataclass(frozen=True)
class Var:
    """Named placeholder, the equivalent of ``this['name']``."""

    name: str


@dataclass(frozen=True)
class Ref:
    """Reference to a named definition of the loaded artifact."""

    name: str


@dataclass(frozen=True)
class ResultRef:
    """Reference to a synthesized result slot."""

    key: str


@dataclass(frozen=True)
class Index:
    """Field projection ``target[field]``; integer fields index tuples."""

    target: Descriptor
    field: str | int


@dataclass(frozen=True)
class Intersection:
    parts: tuple[Descriptor, ...]


@dataclass(frozen=True)
class Op:
    """Pure operator applied during resolution, e.g. ``Op("add", (a, b))``."""

    name: str
    args: tuple[Descriptor, ...] = ()


Descriptor: TypeAlias = (
    Literal
    | Unknown
    | TupleDesc
    | Record
    | EffectNode
    | Var
    | Ref
    | ResultRef
    | Index
    | Intersection
    | Op
)

DESCRIPTOR_TYPES: tuple[type, ...] = (
    Literal,
    Unknown,
    TupleDesc,
    Record,
    EffectNode,
    Var,
    Ref,
    ResultRef,
    Index,
    Intersection,
    Op,
)

UNKNOWN = Unknown()
NULL = Literal(None)


def is_descriptor(value: Any) -> bool:
    return isinstance(value, DESCRIPTOR_TYPES)


def from_python(value: Any) -> Descriptor:
    """Coerce a plain Python value into a descriptor.

    Descriptors pass through unchanged, mappings become records, lists and
    tuples become ``TupleDesc`` and scalars become ``Literal``.
    """
    if is_descriptor(value):
        return value
    if value is None or isinstance(value, (str, bool, int, float)):
        return Literal(value)
    if isinstance(value, Mapping):
        return Record(frozendict({str(k): from_python(v) for k, v in value.items()}))
    if isinstance(value, (list, tuple)):
        return TupleDesc(tuple(from_python(item) for item in value))
    raise TypeError(f"Cannot describe value of type {type(value).__name__}: {value!r}")


def record(**fields: Any) -> Record:
    return Record(frozendict({name: from_python(v) for name, v in fields.items()}))


__all__ = [
    "DESCRIPTOR_TYPES",
    "NULL",
    "UNKNOWN",
    "Descriptor",
    "EffectNode",
    "Index",
    "Intersection",
    "Literal",
    "Op",
    "Record",
    "Ref",
    "ResultRef",
    "TupleDesc",
    "Unknown",
    "Var",
    "from_python",
    "is_descriptor",
    "record",
]
