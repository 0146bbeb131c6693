"""
Static-analysis collaborator for tyeff.

The evaluator never inspects descriptors directly. It goes through the
``Analyzer`` protocol, which loads artifacts, exposes tags and arguments,
decodes literals, records synthesized result slots and resolves
continuations.

Public API:
- Analyzer: Protocol consumed by the evaluator
- DescriptorAnalyzer: Implementation over ``tyeff.descriptors``
- load_artifact / Artifact: Artifact loading (JSON and Python files)

Example usage:
    from tyeff.analysis import DescriptorAnalyzer

    analyzer = DescriptorAnalyzer()
    root = analyzer.parse_entry_point("program.json")
    print(analyzer.stringify(root))
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from frozendict import frozendict

from tyeff.descriptors import (
    Descriptor,
    EffectNode,
    Intersection,
    Record,
    TupleDesc,
    from_python,
)


@runtime_checkable
class Analyzer(Protocol):
    """
    Protocol for the structural analysis service.

    Methods:
        parse_entry_point: Load an artifact and return its entry descriptor.
        tag_of: Opcode name of an effect node, or None.
        arguments_of: Ordered argument descriptors of an effect node.
        elements_of: Items of a tuple descriptor, or None.
        stringify: Render a descriptor as text.
        literal_value: Decode a descriptor into a plain value (best effort).
        synthesize_result_slot: Register a result slot so it can be referenced.
        specialize: Intersect a generic descriptor with substitutions.
        project_field: Project a field of a specialized descriptor.
    """

    def parse_entry_point(self, path: str | Path) -> Descriptor: ...

    def tag_of(self, node: Descriptor) -> str | None: ...

    def arguments_of(self, node: Descriptor) -> Sequence[Descriptor]: ...

    def elements_of(self, node: Descriptor) -> Sequence[Descriptor] | None: ...

    def stringify(self, node: Descriptor) -> str: ...

    def literal_value(self, node: Descriptor) -> Any: ...

    def synthesize_result_slot(self, key: str, descriptor: Descriptor) -> None: ...

    def specialize(
        self, generic: Descriptor, substitutions: Mapping[str, Descriptor]
    ) -> Descriptor: ...

    def project_field(
        self, resolved: Descriptor, field: str, location: Descriptor | None = None
    ) -> Descriptor | None: ...


from tyeff.analysis.loader import ENTRY_POINT_NAME, Artifact, decode_json, load_artifact
from tyeff.analysis.specializer import DEFAULT_MAX_STEPS, NotLiteral, Specializer


class DescriptorAnalyzer:
    """
    Analyzer over in-memory descriptors.

    Definitions come from the loaded artifact (or the constructor, for
    programs built in Python). Result slots are appended by the result store
    and stay for the lifetime of the analyzer.
    """

    def __init__(
        self,
        definitions: Mapping[str, Any] | None = None,
        *,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        self._definitions: dict[str, Descriptor] = {
            name: from_python(value) for name, value in (definitions or {}).items()
        }
        self._slots: dict[str, Descriptor] = {}
        self._specializer = Specializer(self._definitions, self._slots, max_steps=max_steps)
        self.artifact: Artifact | None = None
        self.entry_point: Descriptor | None = None

    def parse_entry_point(self, path: str | Path) -> Descriptor:
        artifact = load_artifact(path, entry_name=ENTRY_POINT_NAME)
        self._definitions.update(artifact.definitions)
        self.artifact = artifact
        self.entry_point = artifact.entry
        return artifact.entry

    def define(self, name: str, value: Any) -> None:
        self._definitions[name] = from_python(value)

    def head(self, node: Descriptor) -> Descriptor:
        return self._specializer.head(node)

    def tag_of(self, node: Descriptor) -> str | None:
        node = self.head(node)
        if isinstance(node, EffectNode):
            return node.tag
        return None

    def arguments_of(self, node: Descriptor) -> Sequence[Descriptor]:
        node = self.head(node)
        if isinstance(node, EffectNode):
            return node.args
        return ()

    def elements_of(self, node: Descriptor) -> Sequence[Descriptor] | None:
        node = self.head(node)
        if isinstance(node, TupleDesc):
            return node.items
        return None

    def stringify(self, node: Descriptor) -> str:
        return self._specializer.stringify(node)

    def literal_value(self, node: Descriptor) -> Any:
        try:
            return self._specializer.to_python(node)
        except NotLiteral:
            return None

    def synthesize_result_slot(self, key: str, descriptor: Descriptor) -> None:
        self._slots[key] = Record(frozendict({"output": descriptor}))

    def specialize(
        self, generic: Descriptor, substitutions: Mapping[str, Descriptor]
    ) -> Descriptor:
        binding = Record(frozendict({k: from_python(v) for k, v in substitutions.items()}))
        return self.head(Intersection((generic, binding)))

    def project_field(
        self, resolved: Descriptor, field: str, location: Descriptor | None = None
    ) -> Descriptor | None:
        """Project ``field`` of ``resolved``.

        ``location`` is accepted for parity with analyzers whose resolution
        depends on a source position; descriptors here are position independent.
        """
        projected = self._specializer.project(self.head(resolved), field)
        if projected is None:
            return None
        return self.head(projected)

    def render_results(self) -> str:
        """Render the synthetic result table, one slot per line."""
        lines = ["results = {"]
        for key, slot in self._slots.items():
            lines.append(f"  {key}: {self.stringify(slot)};")
        lines.append("}")
        return "\n".join(lines)


__all__ = [
    "ENTRY_POINT_NAME",
    "Analyzer",
    "Artifact",
    "DescriptorAnalyzer",
    "decode_json",
    "load_artifact",
]
