"""
Minimal generic-instantiation engine.

Continuations are records such as ``{ input: unknown; return: Pure<this['input']> }``.
Specializing one intersects it with ``{ input: <value> }``; projecting its
``return`` field substitutes the record's own fields for the ``Var``
placeholders it binds. Substitution is capture avoiding: a nested record that
declares a field shadows the outer binding of that name.

Everything else is lazy. ``Ref``, ``ResultRef``, ``Index``, ``Intersection`` and
``Op`` are only expanded when something inspects the head of a descriptor,
which keeps recursive definitions finite.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

from frozendict import frozendict

from tyeff.descriptors import (
    UNKNOWN,
    Descriptor,
    EffectNode,
    Index,
    Intersection,
    Literal,
    Op,
    Record,
    Ref,
    ResultRef,
    TupleDesc,
    Unknown,
    Var,
    from_python,
)
from tyeff.errors import SpecializationError

DEFAULT_MAX_STEPS = 10_000


class NotLiteral(Exception):
    """Raised internally when a descriptor has no plain value."""


def _concat(*parts: Any) -> str:
    return "".join(p if isinstance(p, str) else json.dumps(p) for p in parts)


def _sub(a: Any, b: Any) -> Any:
    return a - b


def _div(a: Any, b: Any) -> Any:
    result = a / b
    return int(result) if isinstance(result, float) and result.is_integer() else result


def _mul(*values: Any) -> Any:
    result = 1
    for value in values:
        result = result * value
    return result


def _add(*values: Any) -> Any:
    if values and isinstance(values[0], str):
        return _concat(*values)
    return sum(values)


OPERATORS: dict[str, Callable[..., Any]] = {
    "add": _add,
    "sub": _sub,
    "mul": _mul,
    "div": _div,
    "mod": lambda a, b: a % b,
    "concat": _concat,
    "eq": lambda a, b: a == b,
    "ne": lambda a, b: a != b,
    "lt": lambda a, b: a < b,
    "le": lambda a, b: a <= b,
    "gt": lambda a, b: a > b,
    "ge": lambda a, b: a >= b,
    "not": lambda a: not a,
    "and": lambda *values: all(values),
    "or": lambda *values: any(values),
    "length": len,
    "json": lambda value: json.dumps(value),
    "keys": lambda value: sorted(value),
    "upper": lambda value: value.upper(),
    "lower": lambda value: value.lower(),
    "split": lambda value, sep: value.split(sep),
    "trim": lambda value: value.strip(),
}


class Specializer:
    """Resolves descriptors against a definition table and result slots."""

    def __init__(
        self,
        definitions: Mapping[str, Descriptor],
        slots: Mapping[str, Descriptor],
        *,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        self._definitions = definitions
        self._slots = slots
        self._max_steps = max_steps

    # ------------------------------------------------------------------
    # Substitution
    # ------------------------------------------------------------------

    def substitute(self, desc: Descriptor, scope: Mapping[str, Descriptor]) -> Descriptor:
        """Replace free ``Var`` placeholders bound in ``scope``."""
        if not scope:
            return desc
        if isinstance(desc, Var):
            return scope.get(desc.name, desc)
        if isinstance(desc, TupleDesc):
            return TupleDesc(tuple(self.substitute(item, scope) for item in desc.items))
        if isinstance(desc, EffectNode):
            return EffectNode(desc.tag, tuple(self.substitute(arg, scope) for arg in desc.args))
        if isinstance(desc, Record):
            inner = {k: v for k, v in scope.items() if not desc.declares(k)}
            if not inner:
                return desc
            return Record(
                frozendict({k: self.substitute(v, inner) for k, v in desc.fields.items()})
            )
        if isinstance(desc, Index):
            return Index(self.substitute(desc.target, scope), desc.field)
        if isinstance(desc, Intersection):
            return Intersection(tuple(self.substitute(part, scope) for part in desc.parts))
        if isinstance(desc, Op):
            return Op(desc.name, tuple(self.substitute(arg, scope) for arg in desc.args))
        return desc

    # ------------------------------------------------------------------
    # Head normalization
    # ------------------------------------------------------------------

    def head(self, desc: Descriptor) -> Descriptor:
        """Expand lazy forms at the top of ``desc`` until it is stable."""
        for _ in range(self._max_steps):
            expanded = self._step(desc)
            if expanded is desc:
                return desc
            desc = expanded
        raise SpecializationError(f"Descriptor did not resolve after {self._max_steps} steps")

    def _step(self, desc: Descriptor) -> Descriptor:
        if isinstance(desc, Ref):
            try:
                target = self._definitions[desc.name]
            except KeyError:
                raise SpecializationError(f"Unknown definition: {desc.name!r}") from None
            if target == desc:
                raise SpecializationError(f"Cyclic definition: {desc.name!r}")
            return target
        if isinstance(desc, ResultRef):
            try:
                return self._slots[desc.key]
            except KeyError:
                raise SpecializationError(f"Unknown result slot: {desc.key!r}") from None
        if isinstance(desc, Index):
            projected = self.project(self.head(desc.target), desc.field)
            return UNKNOWN if projected is None else projected
        if isinstance(desc, Intersection):
            merged: Descriptor = UNKNOWN
            for part in desc.parts:
                merged = self.merge(merged, self.head(part))
            return merged
        if isinstance(desc, Op):
            return self._apply(desc)
        return desc

    def merge(self, left: Descriptor, right: Descriptor) -> Descriptor:
        if isinstance(left, Unknown):
            return right
        if isinstance(right, Unknown):
            return left
        if isinstance(left, Record) and isinstance(right, Record):
            fields = dict(left.fields)
            for name, value in right.fields.items():
                fields[name] = self.merge(fields[name], value) if name in fields else value
            return Record(frozendict(fields))
        return right

    def project(self, desc: Descriptor, field: str | int) -> Descriptor | None:
        """Project ``field`` of an already head-normalized descriptor."""
        if isinstance(desc, Record):
            if field not in desc.fields:
                return None
            return self._close_over(desc.fields[field], desc.fields)
        if isinstance(desc, TupleDesc):
            if field == "length":
                return Literal(len(desc.items))
            if isinstance(field, str) and field.lstrip("-").isdigit():
                field = int(field)
            if isinstance(field, int) and -len(desc.items) <= field < len(desc.items):
                return desc.items[field]
        return None

    def _close_over(self, value: Descriptor, fields: Mapping[str, Descriptor]) -> Descriptor:
        """Substitute ``fields`` into ``value`` until none of their names is free.

        Fields may refer to siblings that in turn refer to other siblings, so
        one pass is not enough. An acyclic chain is at most ``len(fields)``
        long; anything still free after that is a cycle.
        """
        for _ in range(len(fields) + 1):
            pending = {name for name in _free_vars(value) if name in fields}
            if not pending:
                return value
            value = self.substitute(value, fields)
        raise SpecializationError(f"Cyclic field reference: {', '.join(sorted(pending))}")

    def _apply(self, desc: Op) -> Descriptor:
        if desc.name == "if":
            if len(desc.args) != 3:
                raise SpecializationError("if expects exactly three arguments")
            try:
                condition = self.to_python(desc.args[0])
            except NotLiteral:
                return desc
            return desc.args[1] if condition else desc.args[2]
        func = OPERATORS.get(desc.name)
        if func is None:
            raise SpecializationError(f"Unknown operator: {desc.name!r}")
        try:
            values = [self.to_python(arg) for arg in desc.args]
        except NotLiteral:
            return desc
        try:
            return from_python(func(*values))
        except (TypeError, ValueError, ArithmeticError, AttributeError) as exc:
            raise SpecializationError(f"Operator {desc.name!r} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def to_python(self, desc: Descriptor, _depth: int = 0) -> Any:
        """Decode ``desc`` into a plain value or raise ``NotLiteral``."""
        if _depth > 256:
            raise NotLiteral(desc)
        desc = self.head(desc)
        if isinstance(desc, Literal):
            return desc.value
        if isinstance(desc, TupleDesc):
            return [self.to_python(item, _depth + 1) for item in desc.items]
        if isinstance(desc, Record):
            return {
                name: self.to_python(Index(desc, name), _depth + 1) for name in desc.fields
            }
        raise NotLiteral(desc)

    def stringify(self, desc: Descriptor) -> str:
        return self._render(desc, frozenset())

    def _render(self, desc: Descriptor, seen: frozenset[str]) -> str:
        if isinstance(desc, Ref):
            if desc.name in seen:
                return desc.name
            seen = seen | {desc.name}
        desc = self.head(desc)
        if isinstance(desc, Literal):
            return json.dumps(desc.value)
        if isinstance(desc, Unknown):
            return "unknown"
        if isinstance(desc, TupleDesc):
            return "[" + ", ".join(self._render(item, seen) for item in desc.items) + "]"
        if isinstance(desc, Record):
            if not desc.fields:
                return "{}"
            members = "; ".join(
                f"{_member_name(name)}: {self._render(value, seen)}"
                for name, value in desc.fields.items()
            )
            return "{ " + members + " }"
        if isinstance(desc, EffectNode):
            tag = desc.tag or "anonymous"
            if not desc.args:
                return tag
            return f"{tag}<" + ", ".join(self._render(arg, seen) for arg in desc.args) + ">"
        if isinstance(desc, Var):
            return f"this[{json.dumps(desc.name)}]"
        if isinstance(desc, Op):
            return f"{desc.name}<" + ", ".join(self._render(arg, seen) for arg in desc.args) + ">"
        return repr(desc)


def _free_vars(desc: Descriptor) -> set[str]:
    if isinstance(desc, Var):
        return {desc.name}
    if isinstance(desc, Record):
        inner: set[str] = set()
        for value in desc.fields.values():
            inner |= _free_vars(value)
        return {name for name in inner if not desc.declares(name)}
    if isinstance(desc, Index):
        return _free_vars(desc.target)
    if isinstance(desc, TupleDesc):
        children: tuple[Descriptor, ...] = desc.items
    elif isinstance(desc, (EffectNode, Op)):
        children = desc.args
    elif isinstance(desc, Intersection):
        children = desc.parts
    else:
        return set()
    names: set[str] = set()
    for child in children:
        names |= _free_vars(child)
    return names


def _member_name(name: str) -> str:
    return name if name.isidentifier() else json.dumps(name)


__all__ = [
    "DEFAULT_MAX_STEPS",
    "NotLiteral",
    "OPERATORS",
    "Specializer",
]
