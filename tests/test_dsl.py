from __future__ import annotations

import pytest

from tyeff.descriptors import (
    UNKNOWN,
    EffectNode,
    Index,
    Intersection,
    Literal,
    Op,
    Ref,
    TupleDesc,
    Var,
    from_python,
)
from tyeff.dsl import bind, both, do, eff, effect, index, kind, op, ref, seq, shape, var


def test_effect_factory() -> None:
    assert eff.Pure(5) == EffectNode("Pure", (Literal(5),))
    assert eff.GetArgs() == effect("GetArgs")


def test_effect_arguments_are_described() -> None:
    node = eff.Print([1, {"a": None}])

    assert node.args == (TupleDesc((Literal(1), from_python({"a": None}))),)


def test_kind_declares_input_and_maps_return() -> None:
    desc = kind(return_=eff.Pure(var("input")))

    assert set(desc.fields) == {"return", "input"}
    assert desc.fields["input"] == UNKNOWN


def test_shape_does_not_declare_input() -> None:
    assert set(shape(a=1, if_=2).fields) == {"a", "if"}


def test_op_factory() -> None:
    assert op.add(var("x"), 1) == Op("add", (Var("x"), Literal(1)))
    assert op.if_(True, 1, 2).name == "if"


def test_helpers() -> None:
    assert ref("Main") == Ref("Main")
    assert index([1], 0) == Index(TupleDesc((Literal(1),)), 0)
    assert both({"a": 1}, {"b": 2}) == Intersection(
        (from_python({"a": 1}), from_python({"b": 2}))
    )
    assert seq(eff.Pure(1)).args == (TupleDesc((eff.Pure(1),)),)
    assert do(eff.Pure(1)).tag == "Do"
    assert bind(eff.Pure(1), kind()) == eff.Bind(eff.Pure(1), kind())


def test_private_attributes_are_not_effects() -> None:
    with pytest.raises(AttributeError):
        eff._private  # noqa: B018


def test_from_python_rejects_objects() -> None:
    with pytest.raises(TypeError):
        from_python(object())
