"""Tests for descriptor substitution, resolution and rendering."""

from __future__ import annotations

import pytest
from frozendict import frozendict

from tyeff.analysis.specializer import NotLiteral, Specializer
from tyeff.descriptors import (
    UNKNOWN,
    EffectNode,
    Index,
    Intersection,
    Literal,
    Op,
    Record,
    Ref,
    ResultRef,
    TupleDesc,
    Var,
    record,
)
from tyeff.dsl import eff, kind, op, var
from tyeff.errors import SpecializationError


def make(definitions=None, slots=None, **kwargs) -> Specializer:
    return Specializer(definitions or {}, slots or {}, **kwargs)


class TestSubstitute:
    def test_replaces_free_vars(self) -> None:
        spec = make()

        result = spec.substitute(eff.Pure(var("x")), {"x": Literal(1)})

        assert result == EffectNode("Pure", (Literal(1),))

    def test_leaves_unbound_vars(self) -> None:
        spec = make()

        assert spec.substitute(var("y"), {"x": Literal(1)}) == Var("y")

    def test_record_shadows_declared_fields(self) -> None:
        spec = make()
        inner = kind(return_=eff.Pure(var("input")))

        result = spec.substitute(eff.Bind(eff.Pure(var("input")), inner), {"input": Literal(9)})

        assert result.args[0] == EffectNode("Pure", (Literal(9),))
        assert result.args[1] == inner

    def test_record_passes_through_other_names(self) -> None:
        spec = make()
        inner = kind(return_=eff.Pure(var("outer")))

        result = spec.substitute(inner, {"outer": Literal("o")})

        assert result.fields["return"] == EffectNode("Pure", (Literal("o"),))

    def test_substitutes_inside_ops_and_tuples(self) -> None:
        spec = make()

        result = spec.substitute(TupleDesc((op.add(var("a"), 1),)), {"a": Literal(2)})

        assert result == TupleDesc((Op("add", (Literal(2), Literal(1))),))


class TestHead:
    def test_resolves_definitions(self) -> None:
        spec = make({"Five": Literal(5)})

        assert spec.head(Ref("Five")) == Literal(5)

    def test_unknown_definition(self) -> None:
        with pytest.raises(SpecializationError, match="Unknown definition"):
            make().head(Ref("Missing"))

    def test_self_reference_is_cyclic(self) -> None:
        with pytest.raises(SpecializationError, match="Cyclic"):
            make({"A": Ref("A")}).head(Ref("A"))

    def test_mutual_reference_exhausts_steps(self) -> None:
        spec = make({"A": Ref("B"), "B": Ref("A")}, max_steps=50)

        with pytest.raises(SpecializationError, match="did not resolve"):
            spec.head(Ref("A"))

    def test_resolves_result_slots(self) -> None:
        spec = make(slots={"k": record(output=3)})

        assert spec.head(Index(ResultRef("k"), "output")) == Literal(3)

    def test_index_of_missing_field_is_unknown(self) -> None:
        spec = make()

        assert spec.head(Index(record(a=1), "b")) == UNKNOWN

    def test_intersection_merges_records(self) -> None:
        spec = make()
        merged = spec.head(Intersection((record(a=1, b=UNKNOWN), record(b=2))))

        assert merged == record(a=1, b=2)

    def test_intersection_right_wins_for_scalars(self) -> None:
        assert make().head(Intersection((Literal(1), Literal(2)))) == Literal(2)

    def test_op_applies_when_arguments_are_literal(self) -> None:
        assert make().head(op.add(1, 2)) == Literal(3)

    def test_op_stays_stuck_on_free_vars(self) -> None:
        desc = op.add(var("x"), 2)

        assert make().head(desc) is desc

    def test_if_selects_branch(self) -> None:
        assert make().head(Op("if", (Literal(False), Literal("a"), Literal("b")))) == Literal("b")

    def test_unknown_operator(self) -> None:
        with pytest.raises(SpecializationError, match="Unknown operator"):
            make().head(Op("nope", (Literal(1),)))

    def test_failing_operator(self) -> None:
        with pytest.raises(SpecializationError, match="failed"):
            make().head(op.div(1, 0))


@pytest.mark.parametrize(
    "desc, expected",
    [
        (op.sub(5, 2), 3),
        (op.mul(2, 3, 4), 24),
        (op.div(6, 3), 2),
        (op.div(1, 2), 0.5),
        (op.concat("a", 1, True), "a1true"),
        (op.add("a", "b"), "ab"),
        (op.eq(1, 1), True),
        (op.length([1, 2, 3]), 3),
        (op.split("a,b", ","), ["a", "b"]),
        (op.upper("x"), "X"),
        (op.json({"a": 1}), '{"a": 1}'),
    ],
)
def test_operators(desc, expected) -> None:
    assert make().to_python(desc) == expected


class TestProject:
    def test_record_field_sees_sibling_fields(self) -> None:
        spec = make()
        desc = Record(frozendict({"input": Literal(4), "return": op.mul(var("input"), 2)}))

        assert spec.to_python(spec.project(desc, "return")) == 8

    def test_record_field_chains_through_siblings(self) -> None:
        spec = make()
        desc = Record(
            frozendict(
                {
                    "input": Literal(4),
                    "doubled": op.mul(var("input"), 2),
                    "plus_one": op.add(var("doubled"), 1),
                    "return": eff.Pure(var("plus_one")),
                }
            )
        )

        assert spec.project(desc, "return") == eff.Pure(
            op.add(op.mul(Literal(4), 2), 1)
        )
        assert spec.to_python(Index(desc, "plus_one")) == 9

    def test_cyclic_sibling_fields(self) -> None:
        spec = make()
        desc = Record(frozendict({"a": var("b"), "b": op.add(var("a"), 1)}))

        with pytest.raises(SpecializationError, match="Cyclic field reference"):
            spec.project(desc, "a")

    def test_tuple_index_and_length(self) -> None:
        spec = make()
        items = TupleDesc((Literal("a"), Literal("b")))

        assert spec.project(items, 1) == Literal("b")
        assert spec.project(items, "0") == Literal("a")
        assert spec.project(items, "length") == Literal(2)
        assert spec.project(items, 5) is None


class TestDecode:
    def test_to_python_nested(self) -> None:
        spec = make()

        assert spec.to_python(record(a=[1, {"b": None}])) == {"a": [1, {"b": None}]}

    def test_to_python_rejects_effects(self) -> None:
        with pytest.raises(NotLiteral):
            make().to_python(eff.Pure(1))


class TestStringify:
    @pytest.mark.parametrize(
        "desc, expected",
        [
            (Literal("a"), '"a"'),
            (Literal(None), "null"),
            (UNKNOWN, "unknown"),
            (TupleDesc((Literal(1), Literal(2))), "[1, 2]"),
            (record(a=1, b="x"), '{ a: 1; b: "x" }'),
            (record(), "{}"),
            (eff.Pure(5), "Pure<5>"),
            (eff.GetArgs(), "GetArgs"),
            (var("input"), 'this["input"]'),
            (op.add(var("x"), 1), 'add<this["x"], 1>'),
            (Record(frozendict({"not valid": Literal(1)})), '{ "not valid": 1 }'),
        ],
    )
    def test_render(self, desc, expected) -> None:
        assert make().stringify(desc) == expected

    def test_recursive_definition_renders_by_name(self) -> None:
        loop = kind(return_=eff.Bind(eff.Pure(1), Ref("Loop")))
        spec = make({"Loop": loop})

        assert spec.stringify(Ref("Loop")) == "{ return: Bind<Pure<1>, Loop>; input: unknown }"
