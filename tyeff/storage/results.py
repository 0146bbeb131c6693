"""
Append-only result store.

Each expression-producing effect appends one entry. The entry is mirrored into
the analyzer as a synthesized result slot so later descriptors can reference it
through ``project(key)``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tyeff.descriptors import Descriptor, Index, ResultRef

if TYPE_CHECKING:
    from tyeff.analysis import Analyzer


@dataclass(frozen=True)
class ResultEntry:
    key: str
    output: Descriptor


class ResultStore:
    """
    Insertion-ordered mapping from key to ``ResultEntry``.

    No key is ever reused or removed during a run, so memory grows linearly
    with the number of expression-producing effects.
    """

    def __init__(self, analyzer: Analyzer | None = None) -> None:
        self._entries: dict[str, ResultEntry] = {}
        self._analyzer = analyzer

    def create(self, descriptor: Descriptor) -> str:
        key = str(uuid.uuid4())
        while key in self._entries:  # pragma: no cover - uuid4 collision
            key = str(uuid.uuid4())
        self._entries[key] = ResultEntry(key=key, output=descriptor)
        if self._analyzer is not None:
            self._analyzer.synthesize_result_slot(key, descriptor)
        return key

    def get(self, key: str) -> Descriptor:
        return self._entries[key].output

    def entry(self, key: str) -> ResultEntry:
        return self._entries[key]

    def project(self, key: str) -> Descriptor:
        """Return a descriptor referencing the output of entry ``key``."""
        if key not in self._entries:
            raise KeyError(f"Unknown result key: {key!r}")
        return Index(ResultRef(key), "output")

    def keys(self) -> Iterable[str]:
        return list(self._entries)

    def snapshot(self) -> list[ResultEntry]:
        return list(self._entries.values())

    def __iter__(self) -> Iterator[ResultEntry]:
        return iter(self.snapshot())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ResultStore({len(self._entries)} entries)"
