"""Tests for the DescriptorAnalyzer collaborator."""

from __future__ import annotations

import pytest

from tyeff.analysis import Analyzer, DescriptorAnalyzer
from tyeff.descriptors import UNKNOWN, EffectNode, Literal, TupleDesc
from tyeff.dsl import eff, kind, op, ref, var
from tyeff.errors import MissingEntryPointError

Double = kind(return_=eff.Pure(op.mul(var("input"), 2)))


def test_satisfies_protocol() -> None:
    assert isinstance(DescriptorAnalyzer(), Analyzer)


def test_parse_entry_point(assets) -> None:
    analyzer = DescriptorAnalyzer()

    root = analyzer.parse_entry_point(assets / "double.json")

    assert analyzer.entry_point is root
    assert analyzer.tag_of(root) == "Bind"
    assert analyzer.stringify(ref("Double")).startswith("{ return: Pure<")


def test_parse_entry_point_missing_main(assets) -> None:
    with pytest.raises(MissingEntryPointError):
        DescriptorAnalyzer().parse_entry_point(assets / "no_main.json")


def test_tag_and_arguments_resolve_references() -> None:
    analyzer = DescriptorAnalyzer({"Main": eff.Print("a", 1)})

    assert analyzer.tag_of(ref("Main")) == "Print"
    assert analyzer.arguments_of(ref("Main")) == (Literal("a"), Literal(1))


def test_non_effect_has_no_tag() -> None:
    analyzer = DescriptorAnalyzer()

    assert analyzer.tag_of(Literal(1)) is None
    assert analyzer.arguments_of(Literal(1)) == ()


def test_elements_of() -> None:
    analyzer = DescriptorAnalyzer()

    assert analyzer.elements_of(TupleDesc((Literal(1),))) == (Literal(1),)
    assert analyzer.elements_of(Literal(1)) is None


def test_literal_value_is_best_effort() -> None:
    analyzer = DescriptorAnalyzer()

    assert analyzer.literal_value(Literal("x")) == "x"
    assert analyzer.literal_value(eff.Pure(1)) is None
    assert analyzer.literal_value(var("free")) is None


def test_specialize_binds_input() -> None:
    analyzer = DescriptorAnalyzer()

    resolved = analyzer.specialize(Double, {"input": Literal(5)})
    node = analyzer.project_field(resolved, "return")

    assert node == EffectNode("Pure", (op.mul(5, 2),))
    assert analyzer.literal_value(node.args[0]) == 10


def test_specialize_named_generic() -> None:
    analyzer = DescriptorAnalyzer({"Double": Double})

    resolved = analyzer.specialize(ref("Double"), {"input": Literal(1)})

    assert analyzer.literal_value(analyzer.project_field(resolved, "input")) == 1


def test_project_missing_field() -> None:
    analyzer = DescriptorAnalyzer()

    assert analyzer.project_field(kind(), "return") is None
    assert analyzer.project_field(kind(), "input") == UNKNOWN


def test_result_slots_are_referencable() -> None:
    analyzer = DescriptorAnalyzer()

    analyzer.synthesize_result_slot("k1", Literal(3))

    assert analyzer.render_results() == "results = {\n  k1: { output: 3 };\n}"


def test_define_adds_definition() -> None:
    analyzer = DescriptorAnalyzer()

    analyzer.define("Answer", 42)

    assert analyzer.literal_value(ref("Answer")) == 42
