"""
Builders for writing tyeff programs as Python modules.

Example:
    >>> from tyeff.dsl import eff, kind, op, var
    >>> Double = kind(return_=eff.Pure(op.mul(var("input"), 2)))
    >>> main = eff.Bind(eff.Pure(5), Double)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from frozendict import frozendict

from tyeff.descriptors import (
    UNKNOWN,
    Descriptor,
    EffectNode,
    Index,
    Intersection,
    Op,
    Record,
    Ref,
    TupleDesc,
    Var,
    from_python,
)


def effect(tag: str, *args: Any) -> EffectNode:
    return EffectNode(tag, tuple(from_python(arg) for arg in args))


class _EffectFactory:
    """``eff.Pure(1)`` is ``effect("Pure", 1)``."""

    def __getattr__(self, tag: str) -> Callable[..., EffectNode]:
        if tag.startswith("_"):
            raise AttributeError(tag)
        return lambda *args: effect(tag, *args)


class _OpFactory:
    """``op.add(a, b)`` is ``Op("add", (a, b))``; ``op.if_`` builds ``if``."""

    def __getattr__(self, name: str) -> Callable[..., Op]:
        if name.startswith("_"):
            raise AttributeError(name)
        name = name.rstrip("_")
        return lambda *args: Op(name, tuple(from_python(arg) for arg in args))


eff = _EffectFactory()
op = _OpFactory()


def _field_name(name: str) -> str:
    return name[:-1] if name.endswith("_") else name


def kind(**fields: Any) -> Record:
    """A continuation record. Declares ``input`` so ``var("input")`` binds here."""
    values = {_field_name(name): from_python(value) for name, value in fields.items()}
    values.setdefault("input", UNKNOWN)
    return Record(frozendict(values))


def shape(**fields: Any) -> Record:
    return Record(frozendict({_field_name(n): from_python(v) for n, v in fields.items()}))


def var(name: str) -> Var:
    return Var(name)


def ref(name: str) -> Ref:
    return Ref(name)


def index(target: Any, field: str | int) -> Index:
    return Index(from_python(target), field)


def both(*parts: Any) -> Intersection:
    return Intersection(tuple(from_python(part) for part in parts))


def seq(*nodes: Any) -> EffectNode:
    return EffectNode("Seq", (TupleDesc(tuple(from_python(n) for n in nodes)),))


def do(*nodes: Any) -> EffectNode:
    return EffectNode("Do", (TupleDesc(tuple(from_python(n) for n in nodes)),))


def bind(node: Any, continuation: Descriptor) -> EffectNode:
    return EffectNode("Bind", (from_python(node), continuation))


__all__ = [
    "both",
    "bind",
    "do",
    "eff",
    "effect",
    "index",
    "kind",
    "op",
    "ref",
    "seq",
    "shape",
    "var",
]
