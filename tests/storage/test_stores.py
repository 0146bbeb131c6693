"""Tests for the reference and result stores."""

from __future__ import annotations

import pytest

from tyeff.analysis import DescriptorAnalyzer
from tyeff.descriptors import Index, Literal, ResultRef
from tyeff.errors import RefDeletedError
from tyeff.storage import DescriptorStore, ReferenceStore, ResultEntry, ResultStore


class TestReferenceStore:
    def test_create_and_get(self) -> None:
        refs = ReferenceStore()

        key = refs.create(Literal(1))

        assert refs.get(key) == Literal(1)
        assert refs.exists(key)

    def test_keys_are_unique(self) -> None:
        refs = ReferenceStore()

        keys = {refs.create(Literal(i)) for i in range(50)}

        assert len(keys) == 50
        assert len(refs) == 50

    def test_set_overwrites(self) -> None:
        refs = ReferenceStore()
        key = refs.create(Literal("a"))

        refs.set(key, Literal("b"))

        assert refs.get(key) == Literal("b")

    def test_delete_then_get_raises(self) -> None:
        refs = ReferenceStore()
        key = refs.create(Literal("a"))

        assert refs.delete(key) is True
        with pytest.raises(RefDeletedError, match="Ref has been deleted"):
            refs.get(key)

    def test_delete_missing_key(self) -> None:
        assert ReferenceStore().delete("missing") is False

    def test_ref_deleted_error_is_a_key_error(self) -> None:
        with pytest.raises(KeyError):
            ReferenceStore().get("missing")

    def test_unhashable_key_raises_ref_error(self) -> None:
        with pytest.raises(RefDeletedError):
            ReferenceStore().get(["not", "a", "key"])  # type: ignore[arg-type]

    def test_satisfies_store_protocol(self) -> None:
        assert isinstance(ReferenceStore(), DescriptorStore)


class TestResultStore:
    def test_create_records_entry(self) -> None:
        results = ResultStore()

        key = results.create(Literal(5))

        assert results.get(key) == Literal(5)
        assert results.entry(key) == ResultEntry(key=key, output=Literal(5))
        assert key in results
        assert len(results) == 1

    def test_entries_keep_insertion_order(self) -> None:
        results = ResultStore()

        keys = [results.create(Literal(i)) for i in range(5)]

        assert list(results.keys()) == keys
        assert [entry.output for entry in results] == [Literal(i) for i in range(5)]

    def test_project_references_output(self) -> None:
        results = ResultStore()
        key = results.create(Literal(5))

        assert results.project(key) == Index(ResultRef(key), "output")

    def test_project_unknown_key(self) -> None:
        with pytest.raises(KeyError):
            ResultStore().project("missing")

    def test_create_synthesizes_analyzer_slot(self) -> None:
        analyzer = DescriptorAnalyzer()
        results = ResultStore(analyzer)

        key = results.create(Literal("hello"))

        assert analyzer.literal_value(results.project(key)) == "hello"
        assert key in analyzer.render_results()

    def test_snapshot_is_a_copy(self) -> None:
        results = ResultStore()
        results.create(Literal(1))

        snapshot = results.snapshot()
        results.create(Literal(2))

        assert len(snapshot) == 1
        assert len(results) == 2

    def test_satisfies_store_protocol(self) -> None:
        assert isinstance(ResultStore(), DescriptorStore)
