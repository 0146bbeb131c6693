"""
Artifact loading.

Two artifact formats are understood:

- ``.json`` documents with a ``main`` entry and an optional ``definitions``
  table. Objects carrying a ``$``-prefixed key encode the special descriptor
  forms; all other objects are records, arrays are tuples and scalars are
  literals.
- ``.py`` modules, executed in isolation. The module attribute ``main`` is the
  entry; every other public attribute holding a descriptor is a definition,
  as are the entries of an optional ``definitions`` dict.
"""

from __future__ import annotations

import importlib.util
import json
import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
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
    Var,
    from_python,
    is_descriptor,
)
from tyeff.errors import ArtifactError, MissingEntryPointError

logger = logging.getLogger(__name__)

ENTRY_POINT_NAME = "main"


@dataclass(frozen=True)
class Artifact:
    """A loaded source artifact: its entry descriptor and named definitions."""

    path: Path
    entry: Descriptor
    definitions: Mapping[str, Descriptor] = field(default_factory=frozendict)


def load_artifact(path: str | Path, *, entry_name: str = ENTRY_POINT_NAME) -> Artifact:
    path = Path(path).resolve()
    if not path.exists():
        raise ArtifactError(f"Source file not found: {path}")

    if path.suffix == ".py":
        entry, definitions = _load_python(path, entry_name)
    else:
        entry, definitions = _load_json(path, entry_name)

    logger.debug("Loaded %s with %d definitions", path, len(definitions))
    return Artifact(path=path, entry=entry, definitions=frozendict(definitions))


# ----------------------------------------------------------------------
# JSON
# ----------------------------------------------------------------------


def _load_json(path: Path, entry_name: str) -> tuple[Descriptor, dict[str, Descriptor]]:
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ArtifactError(f"Invalid JSON in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ArtifactError(f"Cannot read {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise ArtifactError(f"Expected a JSON object at the top of {path}")
    if entry_name not in document:
        raise MissingEntryPointError(path, entry_name)

    raw_definitions = document.get("definitions", {})
    if not isinstance(raw_definitions, dict):
        raise ArtifactError(f'"definitions" must be an object in {path}')

    definitions = {name: decode_json(value) for name, value in raw_definitions.items()}
    return decode_json(document[entry_name]), definitions


def _decode_args(obj: dict[str, Any]) -> tuple[Descriptor, ...]:
    args = obj.get("args", [])
    if not isinstance(args, list):
        raise ArtifactError(f'"args" must be an array: {obj!r}')
    return tuple(decode_json(arg) for arg in args)


def _decode_fields(fields: Any) -> frozendict[str, Descriptor]:
    if not isinstance(fields, dict):
        raise ArtifactError(f"Record fields must be an object: {fields!r}")
    return frozendict({name: decode_json(value) for name, value in fields.items()})


def decode_json(obj: Any) -> Descriptor:  # noqa: PLR0911
    """Decode one JSON value into a descriptor."""
    if isinstance(obj, list):
        return TupleDesc(tuple(decode_json(item) for item in obj))
    if not isinstance(obj, dict):
        return Literal(obj)

    special = [key for key in obj if key.startswith("$")]
    if not special:
        return Record(_decode_fields(obj))
    if len(special) > 1:
        raise ArtifactError(f"Ambiguous descriptor with keys {special}: {obj!r}")

    key = special[0]
    value = obj[key]
    if key == "$effect":
        return EffectNode(value, _decode_args(obj))
    if key == "$var":
        return Var(value)
    if key == "$ref":
        return Ref(value)
    if key == "$result":
        return ResultRef(value)
    if key == "$index":
        if "field" not in obj:
            raise ArtifactError(f'"$index" requires a "field": {obj!r}')
        return Index(decode_json(value), obj["field"])
    if key == "$and":
        return Intersection(tuple(decode_json(part) for part in value))
    if key == "$op":
        return Op(value, _decode_args(obj))
    if key == "$unknown":
        return UNKNOWN
    if key == "$record":
        return Record(_decode_fields(value))
    if key == "$kind":
        fields = dict(_decode_fields(value))
        fields.setdefault("input", UNKNOWN)
        return Record(frozendict(fields))
    if key == "$lit":
        return Literal(value)
    raise ArtifactError(f"Unknown descriptor form {key!r}: {obj!r}")


# ----------------------------------------------------------------------
# Python
# ----------------------------------------------------------------------


def _load_python(path: Path, entry_name: str) -> tuple[Descriptor, dict[str, Descriptor]]:
    module_name = f"_tyeff_artifact_{abs(hash(str(path)))}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if not spec or not spec.loader:
        raise ArtifactError(f"Unable to load {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ArtifactError(f"Error executing {path}: {exc}") from exc
    finally:
        sys.modules.pop(module_name, None)

    if not hasattr(module, entry_name):
        raise MissingEntryPointError(path, entry_name)

    definitions: dict[str, Descriptor] = {}
    for name, value in vars(module).items():
        if name.startswith("_") or name == entry_name:
            continue
        if is_descriptor(value):
            definitions[name] = value

    extra = getattr(module, "definitions", None)
    if isinstance(extra, Mapping):
        for name, value in extra.items():
            definitions[str(name)] = from_python(value)

    try:
        entry = from_python(getattr(module, entry_name))
    except TypeError as exc:
        raise ArtifactError(f"{entry_name!r} in {path} is not a descriptor: {exc}") from exc
    return entry, definitions


__all__ = [
    "ENTRY_POINT_NAME",
    "Artifact",
    "decode_json",
    "load_artifact",
]
